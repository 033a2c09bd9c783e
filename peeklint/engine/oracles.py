"""Name resolution, constant folding and reporting services used by rules.

Rules depend only on the three protocols; the concrete classes below are the
implementations the Rust frontend wires up.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Protocol

from peeklint.engine.nodes import BinaryOp, Cast, Identifier, IntLiteral, Node, Span

logger = logging.getLogger(__name__)


class NameResolver(Protocol):
    def same_declaration(self, a: Node, b: Node) -> bool: ...


class ConstantFolder(Protocol):
    def eval_unsigned(self, expr: Node) -> int | None: ...


class DiagnosticReporter(Protocol):
    def report(self, span: Span, message: str, edits=()) -> object: ...


# ── Name resolution ───────────────────────────────────────────


def path_to_local(expr: Node) -> int | None:
    """Declaration id of a plain local variable reference, else None."""
    if isinstance(expr, Identifier):
        return expr.decl
    return None


class DeclarationResolver:
    """Two expressions are the same variable when both are resolved identifiers
    pointing at one declaration."""

    def same_declaration(self, a: Node, b: Node) -> bool:
        a_decl = path_to_local(a)
        return a_decl is not None and a_decl == path_to_local(b)


# ── Constant folding ──────────────────────────────────────────

UNSIGNED_BITS: dict[str, int] = {
    "u8": 8, "u16": 16, "u32": 32, "u64": 64, "u128": 128, "usize": 64,
}
_NON_UNSIGNED_SUFFIXES = ("i8", "i16", "i32", "i64", "i128", "isize", "f32", "f64")

_INT_RE = re.compile(
    r"^(?P<digits>0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+|[0-9][0-9_]*)"
    r"(?P<suffix>u8|u16|u32|u64|u128|usize|i8|i16|i32|i64|i128|isize|f32|f64)?$"
)

_MAX_CONST_DEPTH = 32


def parse_unsigned_literal(text: str) -> int | None:
    """Value of a Rust integer literal if it is an unsigned integer, else None."""
    match = _INT_RE.match(text.strip())
    if match is None:
        return None
    suffix = match.group("suffix")
    if suffix in _NON_UNSIGNED_SUFFIXES:
        return None
    digits = match.group("digits").replace("_", "")
    try:
        value = int(digits, 0) if digits[:2] in ("0x", "0o", "0b") else int(digits, 10)
    except ValueError:
        return None
    bits = UNSIGNED_BITS.get(suffix or "usize", 64)
    if value >= 1 << bits:
        return None
    return value


def _apply_unsigned(op: str, left: int, right: int) -> int | None:
    if op == "+":
        result = left + right
    elif op == "-":
        result = left - right
    elif op == "*":
        result = left * right
    elif op in ("/", "%"):
        if right == 0:
            return None
        result = left // right if op == "/" else left % right
    elif op == "&":
        result = left & right
    elif op == "|":
        result = left | right
    elif op == "^":
        result = left ^ right
    elif op in ("<<", ">>"):
        if right >= 128:
            return None
        result = left << right if op == "<<" else left >> right
    else:
        return None
    if result < 0 or result >= 1 << 128:
        return None
    return result


class ConstFolder:
    """Best-effort evaluation of an expression to an unsigned integer.

    ``constants`` maps the declaration id of a ``const``/``static`` item to its
    value expression so that ``seq[FIRST]`` folds like ``seq[0]``.
    """

    def __init__(self, constants: Mapping[int, Node] | None = None) -> None:
        self.constants = dict(constants or {})

    def eval_unsigned(self, expr: Node) -> int | None:
        return self._eval(expr, frozenset(), 0)

    def _eval(self, expr: Node, visiting: frozenset[int], depth: int) -> int | None:
        if depth > _MAX_CONST_DEPTH:
            logger.debug("constant folding depth exceeded at %s", expr.span)
            return None
        if isinstance(expr, IntLiteral):
            return parse_unsigned_literal(expr.text)
        if isinstance(expr, Identifier):
            if expr.decl is None or expr.decl in visiting:
                return None
            value = self.constants.get(expr.decl)
            if value is None:
                return None
            return self._eval(value, visiting | {expr.decl}, depth + 1)
        if isinstance(expr, BinaryOp):
            left = self._eval(expr.left, visiting, depth + 1)
            if left is None:
                return None
            right = self._eval(expr.right, visiting, depth + 1)
            if right is None:
                return None
            return _apply_unsigned(expr.op, left, right)
        if isinstance(expr, Cast):
            bits = UNSIGNED_BITS.get(expr.type_name)
            if bits is None:
                return None
            value = self._eval(expr.value, visiting, depth + 1)
            if value is None:
                return None
            return value % (1 << bits)
        return None


__all__ = [
    "ConstFolder",
    "ConstantFolder",
    "DeclarationResolver",
    "DiagnosticReporter",
    "NameResolver",
    "UNSIGNED_BITS",
    "parse_unsigned_literal",
    "path_to_local",
]
