"""Lower a tree-sitter Rust syntax tree into the engine's node model.

Besides reshaping nodes, lowering resolves every local identifier to a
declaration id using lexical scopes, so rules can ask "is this the same
variable" without re-walking the source. Parenthesized expressions are
dropped, keeping the outer span. Constructs without a dedicated node class
become ``Other(kind=...)`` with their lowered sub-expressions.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field

from peeklint.engine.nodes import (
    BinaryOp,
    Block,
    Cast,
    Closure,
    Conditional,
    FunctionCall,
    Identifier,
    IndexAccess,
    IntLiteral,
    Let,
    MethodCall,
    Node,
    Other,
    Span,
    UnaryNot,
)

logger = logging.getLogger(__name__)

# Node types that carry no expressions the rules care about.
_SKIP_NODE_TYPES = frozenset({
    "line_comment", "block_comment", "label", "lifetime",
    "primitive_type", "type_identifier", "generic_type", "reference_type",
    "scoped_type_identifier", "type_arguments", "type_parameters",
    "abstract_type", "array_type", "tuple_type", "function_type",
    "pointer_type", "dynamic_type", "bounded_type", "where_clause",
    "visibility_modifier", "function_modifiers", "mutable_specifier",
    "attribute_item", "inner_attribute_item",
})

# Leaves that never refer to a local variable.
_OPAQUE_LEAVES = frozenset({
    "scoped_identifier", "field_identifier", "string_literal",
    "raw_string_literal", "char_literal", "float_literal", "boolean_literal",
    "unit_expression", "crate", "super", "metavariable",
})

_CONST_ITEMS = frozenset({"const_item", "static_item"})
_ITEM_CONTAINERS = frozenset({"source_file", "declaration_list"})

_ALLOW_RE = re.compile(r"\b(?:allow|expect)\s*\([^)]*\bunnecessary_indexing\b")

_STRING_LITERALS = frozenset({"string_literal", "raw_string_literal"})
# `{name}` or `{name:spec}`; `{{` is an escaped brace.
_FORMAT_CAPTURE_RE = re.compile(rb"(?<!\{)\{([A-Za-z_][A-Za-z0-9_]*)(?::[^{}]*)?\}")


def _text(node) -> str:
    text = node.text
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return str(text)


def _span(node) -> Span:
    row, col = node.start_point
    return Span(node.start_byte, node.end_byte, row + 1, col + 1)


def _span_between(first, last) -> Span:
    row, col = first.start_point
    return Span(first.start_byte, last.end_byte, row + 1, col + 1)


def _item_key(node) -> tuple[int, int, str]:
    return node.start_byte, node.end_byte, node.type


@dataclass
class LoweredFile:
    root: Node
    source: bytes
    constants: dict[int, Node] = field(default_factory=dict)
    declarations: dict[int, str] = field(default_factory=dict)
    allowed: list[Span] = field(default_factory=list)
    has_error: bool = False

    def is_allowed(self, span: Span) -> bool:
        return any(region.contains(span) for region in self.allowed)


class _Scopes:
    def __init__(self) -> None:
        self._stack: list[dict[str, int]] = [{}]
        self.names: dict[int, str] = {}

    def push(self) -> None:
        self._stack.append({})

    def pop(self) -> None:
        self._stack.pop()

    def declare(self, name: str) -> int:
        decl = len(self.names) + 1
        self.names[decl] = name
        self._stack[-1][name] = decl
        return decl

    def lookup(self, name: str) -> int | None:
        for frame in reversed(self._stack):
            if name in frame:
                return frame[name]
        return None


class RustLowerer:
    """One-shot converter; create a new instance per file."""

    def __init__(self, source: bytes) -> None:
        self.source = source
        self.scopes = _Scopes()
        self.constants: dict[int, Node] = {}
        self.allowed: list[Span] = []
        self._hoisted: dict[tuple[int, int, str], int] = {}
        self._handlers = {
            "source_file": self._lower_items,
            "declaration_list": self._lower_items,
            "block": self._lower_block,
            "function_item": self._lower_function,
            "closure_expression": self._lower_closure,
            "let_declaration": self._lower_let,
            "expression_statement": self._lower_transparent,
            "parenthesized_expression": self._lower_parenthesized,
            "if_expression": self._lower_if,
            "if_let_expression": self._lower_if_let,
            "else_clause": self._lower_transparent,
            "let_condition": self._lower_let_condition,
            "while_expression": self._lower_scoped,
            "while_let_expression": self._lower_if_let,
            "for_expression": self._lower_for,
            "match_expression": self._lower_match,
            "unary_expression": self._lower_unary,
            "call_expression": self._lower_call,
            "index_expression": self._lower_index,
            "binary_expression": self._lower_binary,
            "type_cast_expression": self._lower_cast,
            "assignment_expression": self._lower_assignment,
            "compound_assignment_expr": self._lower_assignment,
            "reference_expression": self._lower_reference,
            "identifier": self._lower_identifier,
            "self": self._lower_identifier,
            "integer_literal": self._lower_integer,
            "const_item": self._lower_const,
            "static_item": self._lower_const,
            "macro_invocation": self._lower_macro,
        }

    # ── Entry ─────────────────────────────────────────────

    def lower_tree(self, tree) -> LoweredFile:
        root = tree.root_node
        lowered = self.lower(root)
        return LoweredFile(
            root=lowered,
            source=self.source,
            constants=self.constants,
            declarations=dict(self.scopes.names),
            allowed=self.allowed,
            has_error=bool(root.has_error),
        )

    def lower(self, node) -> Node:
        if node.type in _OPAQUE_LEAVES:
            return Other(_span(node), node.type)
        handler = self._handlers.get(node.type, self._lower_other)
        return handler(node)

    def _lower_children(self, node) -> tuple[Node, ...]:
        return tuple(
            self.lower(child)
            for child in node.named_children
            if child.type not in _SKIP_NODE_TYPES
        )

    def _lower_other(self, node) -> Node:
        return Other(_span(node), node.type, self._lower_children(node))

    def _lower_transparent(self, node) -> Node:
        children = self._lower_children(node)
        if len(children) == 1:
            return children[0]
        return Other(_span(node), node.type, children)

    def _lower_parenthesized(self, node) -> Node:
        inner = self._lower_transparent(node)
        return dataclasses.replace(inner, span=_span(node))

    def _lower_field(self, node, name: str) -> Node | None:
        child = node.child_by_field_name(name)
        if child is None:
            return None
        return self.lower(child)

    # ── Sequences, scopes and items ───────────────────────

    def _hoist_constants(self, node) -> None:
        for child in node.named_children:
            if child.type in _CONST_ITEMS:
                name = child.child_by_field_name("name")
                if name is not None:
                    self._hoisted[_item_key(child)] = self.scopes.declare(_text(name))

    def _lower_sequence(self, node) -> tuple[Node, ...]:
        """Lower statements in order, honouring ``#[allow(...)]`` attributes."""
        items: list[Node] = []
        allow_next = False
        for child in node.named_children:
            if child.type == "attribute_item":
                allow_next = allow_next or bool(_ALLOW_RE.search(_text(child)))
                continue
            if child.type == "inner_attribute_item":
                if _ALLOW_RE.search(_text(child)):
                    self.allowed.append(_span(node))
                continue
            if child.type in _SKIP_NODE_TYPES:
                continue
            if allow_next:
                self.allowed.append(_span(child))
                allow_next = False
            items.append(self.lower(child))
        return tuple(items)

    def _lower_items(self, node) -> Node:
        self.scopes.push()
        try:
            self._hoist_constants(node)
            items = self._lower_sequence(node)
        finally:
            self.scopes.pop()
        return Other(_span(node), node.type, items)

    def _lower_block(self, node) -> Block:
        self.scopes.push()
        try:
            self._hoist_constants(node)
            items = self._lower_sequence(node)
        finally:
            self.scopes.pop()
        return Block(_span(node), items)

    def _lower_scoped(self, node) -> Node:
        self.scopes.push()
        try:
            return self._lower_other(node)
        finally:
            self.scopes.pop()

    def _lower_const(self, node) -> Node:
        name_node = node.child_by_field_name("name")
        value = self._lower_field(node, "value")
        if name_node is None:
            return Other(_span(node), node.type, (value,) if value else ())
        decl = self._hoisted.get(_item_key(node))
        if decl is None:
            decl = self.scopes.declare(_text(name_node))
        name = Identifier(_span(name_node), _text(name_node), decl)
        is_mutable = any(c.type == "mutable_specifier" for c in node.children)
        if value is None:
            return Other(_span(node), node.type, (name,))
        if not is_mutable:
            self.constants[decl] = value
        return Other(_span(node), node.type, (name, value))

    # ── Bindings ──────────────────────────────────────────

    def _pattern_names(self, pattern) -> list:
        if pattern is None:
            return []
        if pattern.type in ("identifier", "shorthand_field_identifier", "self"):
            return [pattern]
        if pattern.type in _OPAQUE_LEAVES:
            return []
        names = []
        type_child = pattern.child_by_field_name("type")
        for child in pattern.named_children:
            if type_child is not None and child == type_child:
                continue
            if pattern.type == "field_pattern" and child.type == "field_identifier":
                continue
            names.extend(self._pattern_names(child))
        return names

    def _declare_pattern(self, pattern) -> tuple[Identifier, ...]:
        bindings = []
        for name_node in self._pattern_names(pattern):
            name = _text(name_node)
            bindings.append(Identifier(_span(name_node), name, self.scopes.declare(name)))
        return tuple(bindings)

    def _declare_parameters(self, params) -> tuple[Identifier, ...]:
        if params is None:
            return ()
        bindings: list[Identifier] = []
        for child in params.named_children:
            if child.type == "parameter":
                bindings.extend(self._declare_pattern(child.child_by_field_name("pattern")))
            elif child.type == "self_parameter":
                bindings.append(Identifier(_span(child), "self", self.scopes.declare("self")))
            elif child.type not in _SKIP_NODE_TYPES:
                bindings.extend(self._declare_pattern(child))
        return tuple(bindings)

    def _lower_function(self, node) -> Node:
        self.scopes.push()
        try:
            params = self._declare_parameters(node.child_by_field_name("parameters"))
            body = self._lower_field(node, "body")
        finally:
            self.scopes.pop()
        items = params if body is None else (*params, body)
        return Other(_span(node), "function", items)

    def _lower_closure(self, node) -> Node:
        self.scopes.push()
        try:
            params = self._declare_parameters(node.child_by_field_name("parameters"))
            body = self._lower_field(node, "body")
        finally:
            self.scopes.pop()
        if body is None:
            body = Other(_span(node), "closure_body")
        return Closure(_span(node), params, body)

    def _lower_let(self, node) -> Node:
        value = self._lower_field(node, "value")
        alternative = self._lower_field(node, "alternative")
        if alternative is not None:
            value = Other(_span(node), "let_else", tuple(n for n in (value, alternative) if n))
        bindings = self._declare_pattern(node.child_by_field_name("pattern"))
        return Let(_span(node), bindings, value)

    def _lower_let_condition(self, node) -> Node:
        value = self._lower_field(node, "value")
        bindings = self._declare_pattern(node.child_by_field_name("pattern"))
        items = bindings if value is None else (*bindings, value)
        return Other(_span(node), "let_condition", items)

    # ── Control flow ──────────────────────────────────────

    def _lower_if(self, node) -> Node:
        condition_node = node.child_by_field_name("condition")
        consequence_node = node.child_by_field_name("consequence")
        if condition_node is None or consequence_node is None:
            return self._lower_other(node)
        self.scopes.push()
        try:
            condition = self.lower(condition_node)
            consequence = self.lower(consequence_node)
        finally:
            self.scopes.pop()
        alternative = self._lower_field(node, "alternative")
        if not isinstance(consequence, Block):
            consequence = Block(consequence.span, (consequence,))
        return Conditional(_span(node), condition, consequence, alternative)

    def _lower_if_let(self, node) -> Node:
        value = self._lower_field(node, "value")
        self.scopes.push()
        try:
            bindings = self._declare_pattern(node.child_by_field_name("pattern"))
            body_node = node.child_by_field_name("consequence") or node.child_by_field_name("body")
            body = self.lower(body_node) if body_node is not None else None
        finally:
            self.scopes.pop()
        alternative = self._lower_field(node, "alternative")
        items = tuple(n for n in (*bindings, value, body, alternative) if n is not None)
        return Other(_span(node), node.type, items)

    def _lower_for(self, node) -> Node:
        value = self._lower_field(node, "value")
        self.scopes.push()
        try:
            bindings = self._declare_pattern(node.child_by_field_name("pattern"))
            body = self._lower_field(node, "body")
        finally:
            self.scopes.pop()
        items = tuple(n for n in (*bindings, value, body) if n is not None)
        return Other(_span(node), "for", items)

    def _lower_match(self, node) -> Node:
        value = self._lower_field(node, "value")
        arms: list[Node] = []
        body = node.child_by_field_name("body")
        for arm in body.named_children if body is not None else ():
            if arm.type != "match_arm":
                continue
            self.scopes.push()
            try:
                arm_items: list[Node] = []
                pattern = arm.child_by_field_name("pattern")
                if pattern is not None:
                    guard = pattern.child_by_field_name("condition")
                    for child in pattern.named_children:
                        if guard is None or child != guard:
                            arm_items.extend(self._declare_pattern(child))
                    if guard is not None:
                        arm_items.append(self.lower(guard))
                arm_value = self._lower_field(arm, "value")
                if arm_value is not None:
                    arm_items.append(arm_value)
            finally:
                self.scopes.pop()
            arms.append(Other(_span(arm), "match_arm", tuple(arm_items)))
        items = (value, *arms) if value is not None else tuple(arms)
        return Other(_span(node), "match", items)

    # ── Expressions ───────────────────────────────────────

    def _lower_unary(self, node) -> Node:
        operands = [c for c in node.named_children if c.type not in _SKIP_NODE_TYPES]
        if not operands:
            return self._lower_other(node)
        operand = self.lower(operands[0])
        operator = node.children[0].type
        if operator == "!":
            return UnaryNot(_span(node), operand)
        kind = {"-": "negate", "*": "deref"}.get(operator, "unary")
        return Other(_span(node), kind, (operand,))

    def _call_arguments(self, node) -> tuple[Node, ...]:
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return ()
        return self._lower_children(arguments)

    def _lower_call(self, node) -> Node:
        function = node.child_by_field_name("function")
        if function is None:
            return self._lower_other(node)
        target = function
        if target.type == "generic_function":
            inner = target.child_by_field_name("function")
            if inner is not None and inner.type == "field_expression":
                target = inner
        if target.type == "field_expression":
            value = target.child_by_field_name("value")
            method = target.child_by_field_name("field")
            if value is not None and method is not None:
                receiver = self.lower(value)
                return MethodCall(_span(node), receiver, _text(method), self._call_arguments(node))
        return FunctionCall(_span(node), self.lower(function), self._call_arguments(node))

    def _lower_index(self, node) -> Node:
        operands = [c for c in node.named_children if c.type not in _SKIP_NODE_TYPES]
        if len(operands) != 2:
            return self._lower_other(node)
        return IndexAccess(_span(node), self.lower(operands[0]), self.lower(operands[1]))

    def _lower_binary(self, node) -> Node:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        operator = node.child_by_field_name("operator")
        if left is None or right is None or operator is None:
            return self._lower_other(node)
        return BinaryOp(_span(node), operator.type, self.lower(left), self.lower(right))

    def _lower_cast(self, node) -> Node:
        value = node.child_by_field_name("value")
        type_node = node.child_by_field_name("type")
        if value is None or type_node is None:
            return self._lower_other(node)
        return Cast(_span(node), self.lower(value), _text(type_node))

    def _lower_assignment(self, node) -> Node:
        kind = "assignment" if node.type == "assignment_expression" else "compound_assignment"
        left = self._lower_field(node, "left")
        right = self._lower_field(node, "right")
        return Other(_span(node), kind, tuple(n for n in (left, right) if n is not None))

    def _lower_reference(self, node) -> Node:
        is_mut = any(c.type == "mutable_specifier" for c in node.children)
        value = self._lower_field(node, "value")
        kind = "mut_reference" if is_mut else "reference"
        return Other(_span(node), kind, (value,) if value is not None else ())

    def _lower_identifier(self, node) -> Node:
        name = _text(node)
        return Identifier(_span(node), name, self.scopes.lookup(name))

    def _lower_integer(self, node) -> Node:
        return IntLiteral(_span(node), _text(node))

    # ── Macros ────────────────────────────────────────────

    def _lower_macro(self, node) -> Node:
        items = tuple(
            self._lower_token_tree(child)
            for child in node.named_children
            if child.type == "token_tree"
        )
        return Other(_span(node), "macro", items)

    def _lower_token_tree(self, node) -> Node:
        """Recover identifiers and ``name[...]`` indexing from macro tokens.

        Macro arguments are not parsed as expressions, so ``println!("{}", v[1])``
        would otherwise hide an index on ``v``. An index whose brackets hold
        anything but a single integer literal lowers to an opaque index.
        """
        children = node.children
        items: list[Node] = []
        i = 0
        while i < len(children):
            child = children[i]
            prev = children[i - 1] if i > 0 else None
            after_path = prev is not None and prev.type in (".", "::")
            if child.type in ("identifier", "self") and not after_path:
                ident = self._lower_identifier(child)
                nxt = children[i + 1] if i + 1 < len(children) else None
                if nxt is not None and nxt.type == "!":
                    i += 1
                    continue
                if nxt is not None and nxt.type == "token_tree" and _text(nxt).startswith("["):
                    items.append(IndexAccess(
                        _span_between(child, nxt), ident, self._lower_macro_index(nxt)
                    ))
                    i += 2
                    continue
                items.append(ident)
            elif child.type in _STRING_LITERALS:
                items.extend(self._format_captures(child))
            elif child.type == "token_tree":
                items.append(self._lower_token_tree(child))
            i += 1
        return Other(_span(node), "token_tree", tuple(items))

    def _format_captures(self, literal) -> list[Identifier]:
        """Variables named inside a format string, e.g. ``x`` in ``"{x:>4}"``."""
        text = self.source[literal.start_byte:literal.end_byte]
        row, col = literal.start_point
        captures = []
        for match in _FORMAT_CAPTURE_RE.finditer(text):
            name = match.group(1).decode("utf-8")
            start = literal.start_byte + match.start(1)
            span = Span(start, start + len(match.group(1)), row + 1, col + 1 + match.start(1))
            captures.append(Identifier(span, name, self.scopes.lookup(name)))
        return captures

    def _lower_macro_index(self, bracket) -> Node:
        inner = [c for c in bracket.children if c.type not in ("[", "]")]
        if len(inner) == 1 and inner[0].type == "integer_literal":
            return self._lower_integer(inner[0])
        return self._lower_token_tree(bracket)


def lower_rust(source: bytes, tree) -> LoweredFile:
    """Lower an already-parsed tree for *source*."""
    lowered = RustLowerer(source).lower_tree(tree)
    if lowered.has_error:
        logger.debug("syntax errors present; %d declarations resolved", len(lowered.declarations))
    return lowered


__all__ = ["LoweredFile", "RustLowerer", "lower_rust"]
