"""Shared helpers used by multiple command modules."""

from __future__ import annotations

from pathlib import Path

from ..engine.diagnostics import Diagnostic
from ..languages.rust._parser import disable_parse_cache, enable_parse_cache
from ..languages.rust.detect import RuleOptions, detect_unnecessary_indexing
from ..utils import DEFAULT_PATH, find_rs_files, log, matches_exclusion


def scan_path(args) -> Path:
    return Path(getattr(args, "path", None) or DEFAULT_PATH)


def collect_diagnostics(args) -> list[Diagnostic]:
    """Discover files under --path, run the rule, drop ignored findings."""
    config = args._config
    files = find_rs_files(scan_path(args))
    log(f"  Scanning {len(files)} Rust file(s)")
    enable_parse_cache()
    try:
        diagnostics = detect_unnecessary_indexing(files, RuleOptions.from_config(config))
    finally:
        disable_parse_cache()
    ignores = config.get("ignore") or []
    return [
        d for d in diagnostics
        if not any(matches_exclusion(d.file, pattern) for pattern in ignores)
    ]
