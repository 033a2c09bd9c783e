"""unnecessary_indexing: ``is_empty()`` guard followed by ``seq[0]`` indexing.

Flags code such as::

    if seq.is_empty() {
        return;
    } else {
        use_it(seq[0]);
    }

where the branch that runs on a non-empty ``seq`` only ever indexes it at
position zero, and suggests::

    if let Some(x) = seq.first() {
        use_it(x);
    } else {
        return;
    }

The check runs in three steps. Any step that cannot prove the rewrite safe
returns None and nothing is reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from peeklint.engine.ancestry import AncestorIndex
from peeklint.engine.nodes import (
    Block,
    Conditional,
    FunctionCall,
    Identifier,
    IndexAccess,
    MethodCall,
    Node,
    Other,
    Span,
    UnaryNot,
)
from peeklint.engine.oracles import ConstantFolder, DiagnosticReporter, NameResolver
from peeklint.engine.visitors import ControlFlow, for_each_expr, iter_nodes

logger = logging.getLogger(__name__)

NAME = "unnecessary_indexing"
DESCRIPTION = (
    "Checks for `if seq.is_empty()` (or its negation) where the non-empty "
    "branch only indexes `seq` at position zero. `if let Some(x) = seq.first()` "
    "states the same thing without an index that could panic."
)

# Parent kinds under which an index expression is written through, not read.
_WRITE_CONTEXTS = frozenset({"assignment", "compound_assignment"})
_MUT_BORROW = "mut_reference"
# Parent kinds whose first item is the place they project from.
_PLACE_PROJECTIONS = frozenset({"field_expression", "deref"})


@dataclass(frozen=True)
class LintContext:
    """Everything one call-site check needs; built once per file by the driver."""
    source: bytes
    ancestors: AncestorIndex
    names: NameResolver
    consts: ConstantFolder
    reporter: DiagnosticReporter
    method_names: frozenset[str] = frozenset({"is_empty"})
    binding_name: str = "x"
    peek_method: str = "first"

    def snippet(self, span: Span) -> str | None:
        if span.start < 0 or span.end > len(self.source) or span.start > span.end:
            return None
        return self.source[span.start:span.end].decode("utf-8", errors="replace")


# ── Guard resolution ──────────────────────────────────────────


@dataclass(frozen=True)
class Guard:
    conditional: Conditional
    # True for `if seq.is_empty()`, False for `if !seq.is_empty()`, and so on
    # for every further `!`.
    is_empty: bool

    @property
    def assumes_non_empty_in_then(self) -> bool:
        return not self.is_empty

    def block_to_visit(self) -> Block | None:
        """The branch that runs when the sequence is non-empty.

        Both branches must exist: without an else there is nothing to move
        into the other arm of the rewritten ``if let``.
        """
        if self.conditional.else_branch is None:
            return None
        branch = self.conditional.else_branch if self.is_empty else self.conditional.then_branch
        return branch if isinstance(branch, Block) else None


def resolve_guard(ancestors: AncestorIndex, call: Node) -> Guard | None:
    """Find the ``if`` whose condition is *call*, possibly under ``!`` layers."""
    not_count = 0
    for child, parent in ancestors.ancestors(call):
        if isinstance(parent, Conditional):
            if parent.condition is not child:
                return None
            return Guard(parent, is_empty=not_count % 2 == 0)
        if isinstance(parent, UnaryNot):
            not_count += 1
            continue
        if isinstance(parent, (MethodCall, FunctionCall)):
            # The check is an argument or receiver of another call; its truth
            # value says nothing about which branch runs.
            return None
        return None
    return None


# ── Branch scanning ───────────────────────────────────────────


@dataclass
class ScanResult:
    accesses: list[IndexAccess] = field(default_factory=list)
    safe: bool = False
    disqualified: IndexAccess | None = None


def _place_root(ancestors: AncestorIndex, access: IndexAccess) -> tuple[Node, Node | None]:
    """Climb from *access* through field, deref and index projections of it.

    Returns the outermost place expression built on *access* and its parent.
    """
    node: Node = access
    parent = ancestors.parent(node)
    while parent is not None:
        if isinstance(parent, Other):
            projects = parent.kind in _PLACE_PROJECTIONS and parent.items[:1] == (node,)
        else:
            projects = isinstance(parent, IndexAccess) and parent.base is node
        if not projects:
            break
        node, parent = parent, ancestors.parent(parent)
    return node, parent


def _is_written(ancestors: AncestorIndex, access: IndexAccess) -> bool:
    """True when *access*, or a place projected from it, may be mutated.

    Method receivers count as writes: ``self`` may be ``&mut self``.
    """
    place, parent = _place_root(ancestors, access)
    if isinstance(parent, MethodCall):
        return parent.receiver is place
    if not isinstance(parent, Other):
        return False
    if parent.kind in _WRITE_CONTEXTS:
        return parent.items[:1] == (place,)
    return parent.kind == _MUT_BORROW


def scan_branch(cx: LintContext, block: Block, receiver: Node) -> ScanResult:
    """Collect every ``receiver[0]`` in *block*; any other index on it is fatal."""
    result = ScanResult()

    def visit(node: Node) -> ControlFlow:
        if not isinstance(node, IndexAccess):
            return ControlFlow.CONTINUE
        if not cx.names.same_declaration(node.base, receiver):
            return ControlFlow.CONTINUE
        if cx.consts.eval_unsigned(node.index) == 0 and not _is_written(cx.ancestors, node):
            result.accesses.append(node)
            return ControlFlow.CONTINUE
        result.disqualified = node
        return ControlFlow.BREAK

    if for_each_expr(block, visit) is ControlFlow.BREAK:
        result.accesses.clear()
        result.safe = False
        return result
    result.safe = bool(result.accesses)
    return result


# ── Suggestion ────────────────────────────────────────────────


@dataclass(frozen=True)
class Suggestion:
    condition: str
    then_text: str
    else_text: str
    condition_span: Span
    then_span: Span
    else_span: Span

    def edits(self) -> list[tuple[Span, str]]:
        return [
            (self.condition_span, self.condition),
            (self.then_span, self.then_text),
            (self.else_span, self.else_text),
        ]


def fresh_binding_name(preferred: str, scope: Node) -> str:
    """*preferred*, or *preferred* plus the smallest numeric suffix unused in *scope*."""
    taken = {node.name for node in iter_nodes(scope, Identifier)}
    if preferred not in taken:
        return preferred
    suffix = 1
    while f"{preferred}{suffix}" in taken:
        suffix += 1
    return f"{preferred}{suffix}"


def _render(cx: LintContext, span: Span, accesses: list[IndexAccess], name: str) -> str | None:
    """Source text of *span* with each access inside it replaced by *name*."""
    if cx.snippet(span) is None:
        return None
    chunks: list[bytes] = []
    cursor = span.start
    for access in sorted(accesses, key=lambda a: a.span.start):
        if not span.contains(access.span) or access.span.start < cursor:
            continue
        chunks.append(cx.source[cursor:access.span.start])
        chunks.append(name.encode("utf-8"))
        cursor = access.span.end
    chunks.append(cx.source[cursor:span.end])
    return b"".join(chunks).decode("utf-8", errors="replace")


def make_suggestion(
    cx: LintContext, guard: Guard, scan: ScanResult, receiver: Node
) -> Suggestion | None:
    conditional = guard.conditional
    if conditional.else_branch is None:
        return None
    caller = cx.snippet(receiver.span)
    if caller is None:
        return None

    name = fresh_binding_name(cx.binding_name, conditional)
    then_text = _render(cx, conditional.then_branch.span, scan.accesses, name)
    else_text = _render(cx, conditional.else_branch.span, scan.accesses, name)
    if then_text is None or else_text is None:
        return None
    # `Some(..)` matches when the sequence is non-empty, so an `is_empty`
    # test has its arms swapped.
    if guard.is_empty:
        then_text, else_text = else_text, then_text

    return Suggestion(
        condition=f"let Some({name}) = {caller}.{cx.peek_method}()",
        then_text=then_text,
        else_text=else_text,
        condition_span=conditional.condition.span,
        then_span=conditional.then_branch.span,
        else_span=conditional.else_branch.span,
    )


# ── Entry point ───────────────────────────────────────────────


def message_for(peek_method: str) -> str:
    return f"this `if` condition could be replaced with an if-let pattern using `.{peek_method}()`"


def check(cx: LintContext, call: Node, method_name: str, receiver: Node):
    """Run the rule for one ``receiver.method_name()`` call.

    Returns whatever the reporter returned for the finding, or None.
    """
    if method_name not in cx.method_names:
        return None
    if isinstance(call, MethodCall) and call.args:
        return None

    guard = resolve_guard(cx.ancestors, call)
    if guard is None:
        logger.debug("%s at %s: not the condition of an if", method_name, call.span)
        return None
    block = guard.block_to_visit()
    if block is None:
        logger.debug("%s at %s: required branch missing", method_name, call.span)
        return None

    scan = scan_branch(cx, block, receiver)
    if not scan.safe:
        if scan.disqualified is not None:
            logger.debug("%s at %s: index at %s is not a constant zero",
                         method_name, call.span, scan.disqualified.span)
        return None

    suggestion = make_suggestion(cx, guard, scan, receiver)
    if suggestion is None:
        logger.debug("%s at %s: could not build suggestion", method_name, call.span)
        return None
    return cx.reporter.report(
        guard.conditional.condition.span, message_for(cx.peek_method), suggestion.edits()
    )


__all__ = [
    "DESCRIPTION",
    "Guard",
    "LintContext",
    "NAME",
    "ScanResult",
    "Suggestion",
    "check",
    "fresh_binding_name",
    "make_suggestion",
    "message_for",
    "resolve_guard",
    "scan_branch",
]
