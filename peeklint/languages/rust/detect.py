"""Run unnecessary_indexing over Rust files.

Each file is parsed once, lowered, indexed for parent lookup, and then every
method call in it is handed to the rule in source order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from peeklint.engine.ancestry import AncestorIndex
from peeklint.engine.diagnostics import Diagnostic, DiagnosticCollector
from peeklint.engine.nodes import MethodCall
from peeklint.engine.oracles import ConstFolder, DeclarationResolver
from peeklint.engine.visitors import iter_nodes
from peeklint.languages.rust._parser import (
    PARSE_INIT_ERRORS,
    _PARSE_CACHE,
    get_parser,
    parse_source,
)
from peeklint.languages.rust.lowering import lower_rust
from peeklint.rules import RULES, unnecessary_indexing
from peeklint.utils import resolve_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleOptions:
    method_names: frozenset[str] = frozenset({"is_empty"})
    binding_name: str = "x"
    peek_method: str = "first"

    @classmethod
    def from_config(cls, config: dict) -> RuleOptions:
        return cls(
            method_names=frozenset(config.get("method_names") or ("is_empty",)),
            binding_name=config.get("binding_name") or "x",
            peek_method=config.get("peek_method") or "first",
        )


def analyze_tree(
    source: bytes, tree, filepath: str = "", options: RuleOptions | None = None
) -> list[Diagnostic]:
    options = options or RuleOptions()
    lowered = lower_rust(source, tree)
    if lowered.has_error:
        logger.info("skipping %s: file has syntax errors", filepath or "<source>")
        return []

    rule = RULES[unnecessary_indexing.NAME]
    collector = DiagnosticCollector(rule.name, file=filepath)
    cx = unnecessary_indexing.LintContext(
        source=source,
        ancestors=AncestorIndex.build(lowered.root),
        names=DeclarationResolver(),
        consts=ConstFolder(lowered.constants),
        reporter=collector,
        method_names=options.method_names,
        binding_name=options.binding_name,
        peek_method=options.peek_method,
    )
    for call in iter_nodes(lowered.root, MethodCall):
        rule.check(cx, call, call.method, call.receiver)

    return [d for d in collector.diagnostics if not lowered.is_allowed(d.span)]


def analyze_source(
    source: str | bytes, filepath: str = "", options: RuleOptions | None = None
) -> list[Diagnostic]:
    """Analyze an in-memory Rust source buffer."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    return analyze_tree(source, parse_source(source), filepath, options)


def detect_unnecessary_indexing(
    file_list: list[str], options: RuleOptions | None = None
) -> list[Diagnostic]:
    """Analyze every file in *file_list*; unreadable files are skipped."""
    try:
        parser = get_parser()
    except PARSE_INIT_ERRORS as exc:
        logger.debug("tree-sitter init failed: %s", exc)
        return []

    diagnostics: list[Diagnostic] = []
    for filepath in file_list:
        cached = _PARSE_CACHE.get_or_parse(resolve_path(filepath), parser)
        if cached is None:
            logger.debug("could not read %s", filepath)
            continue
        source, tree = cached
        diagnostics.extend(analyze_tree(source, tree, filepath, options))
    return diagnostics


__all__ = [
    "RuleOptions",
    "analyze_source",
    "analyze_tree",
    "detect_unnecessary_indexing",
]
