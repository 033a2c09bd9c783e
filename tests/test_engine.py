"""Tests for peeklint.engine — node model, ancestor index, traversal, oracles."""

from __future__ import annotations

import pytest

from peeklint.engine.ancestry import AncestorIndex
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
    MethodCall,
    Span,
    UnaryNot,
)
from peeklint.engine.oracles import (
    ConstFolder,
    DeclarationResolver,
    parse_unsigned_literal,
)
from peeklint.engine.visitors import ControlFlow, for_each_expr, iter_nodes

S = Span(0, 0)


# ── Node model ─────────────────────────────────────────────


class TestNodes:
    def test_nodes_compare_by_identity(self):
        a = Identifier(S, "seq", 1)
        b = Identifier(S, "seq", 1)
        assert a != b
        assert len({a, b}) == 2

    def test_conditional_children_without_else(self):
        cond = Identifier(S, "c", None)
        then = Block(S)
        node = Conditional(S, cond, then)
        assert node.children() == (cond, then)

    def test_closure_children_include_params_and_body(self):
        param = Identifier(S, "i", 3)
        body = IntLiteral(S, "0")
        assert Closure(S, (param,), body).children() == (param, body)

    def test_span_contains_and_overlaps(self):
        outer = Span(10, 20)
        assert outer.contains(Span(12, 15))
        assert not outer.contains(Span(5, 15))
        assert outer.overlaps(Span(19, 25))
        assert not outer.overlaps(Span(20, 25))


# ── Ancestor index ─────────────────────────────────────────


class TestAncestorIndex:
    def _tree(self):
        receiver = Identifier(S, "seq", 1)
        call = MethodCall(S, receiver, "is_empty")
        negated = UnaryNot(S, call)
        cond = Conditional(S, negated, Block(S), Block(S))
        root = Block(S, (cond,))
        return root, cond, negated, call, receiver

    def test_parent_lookup(self):
        root, cond, negated, call, receiver = self._tree()
        index = AncestorIndex.build(root)
        assert index.parent(receiver) is call
        assert index.parent(call) is negated
        assert index.parent(negated) is cond
        assert index.parent(root) is None

    def test_ancestors_walk_to_root(self):
        root, cond, negated, call, receiver = self._tree()
        index = AncestorIndex.build(root)
        pairs = list(index.ancestors(call))
        assert pairs == [(call, negated), (negated, cond), (cond, root)]


# ── Traversal ──────────────────────────────────────────────


class TestTraversal:
    def test_iter_nodes_is_preorder_source_order(self):
        a = IntLiteral(S, "1")
        b = IntLiteral(S, "2")
        op = BinaryOp(S, "+", a, b)
        assert list(iter_nodes(op)) == [op, a, b]

    def test_iter_nodes_filters_by_type(self):
        a = IntLiteral(S, "1")
        op = BinaryOp(S, "+", a, Identifier(S, "n", 2))
        assert list(iter_nodes(op, IntLiteral)) == [a]

    def test_iter_nodes_enters_closures(self):
        access = IndexAccess(S, Identifier(S, "seq", 1), IntLiteral(S, "0"))
        closure = Closure(S, (), access)
        assert access in list(iter_nodes(Block(S, (closure,))))

    def test_for_each_expr_stops_on_break(self):
        seen = []
        items = tuple(IntLiteral(S, str(i)) for i in range(5))

        def visit(node):
            seen.append(node)
            if isinstance(node, IntLiteral) and node.text == "2":
                return ControlFlow.BREAK
            return ControlFlow.CONTINUE

        assert for_each_expr(Block(S, items), visit) is ControlFlow.BREAK
        assert [n.text for n in seen if isinstance(n, IntLiteral)] == ["0", "1", "2"]

    def test_for_each_expr_continue_visits_everything(self):
        items = tuple(IntLiteral(S, str(i)) for i in range(3))
        count = 0

        def visit(node):
            nonlocal count
            count += 1
            return ControlFlow.CONTINUE

        assert for_each_expr(Block(S, items), visit) is ControlFlow.CONTINUE
        assert count == 4


# ── Oracles ────────────────────────────────────────────────


class TestParseUnsignedLiteral:
    @pytest.mark.parametrize("text,expected", [
        ("0", 0),
        ("0usize", 0),
        ("0_u32", 0),
        ("1_000", 1000),
        ("0x1F", 31),
        ("0xffu8", 255),
        ("0o17", 15),
        ("0b101", 5),
        ("7u64", 7),
    ])
    def test_unsigned_values(self, text, expected):
        assert parse_unsigned_literal(text) == expected

    @pytest.mark.parametrize("text", ["0i32", "1isize", "0f64", "abc", "", "256u8", "1.0"])
    def test_not_unsigned(self, text):
        assert parse_unsigned_literal(text) is None


class TestConstFolder:
    def test_literal(self):
        assert ConstFolder().eval_unsigned(IntLiteral(S, "0")) == 0

    def test_unresolved_identifier(self):
        assert ConstFolder().eval_unsigned(Identifier(S, "i", None)) is None

    def test_local_variable_is_not_constant(self):
        assert ConstFolder().eval_unsigned(Identifier(S, "i", 4)) is None

    def test_named_constant(self):
        folder = ConstFolder({7: IntLiteral(S, "0")})
        assert folder.eval_unsigned(Identifier(S, "FIRST", 7)) == 0

    def test_constant_chain(self):
        folder = ConstFolder({
            1: IntLiteral(S, "2"),
            2: BinaryOp(S, "-", Identifier(S, "A", 1), IntLiteral(S, "2")),
        })
        assert folder.eval_unsigned(Identifier(S, "B", 2)) == 0

    def test_constant_cycle(self):
        folder = ConstFolder({
            1: Identifier(S, "B", 2),
            2: Identifier(S, "A", 1),
        })
        assert folder.eval_unsigned(Identifier(S, "A", 1)) is None

    @pytest.mark.parametrize("op,left,right,expected", [
        ("+", "1", "2", 3),
        ("-", "3", "3", 0),
        ("-", "1", "2", None),
        ("*", "4", "0", 0),
        ("/", "1", "0", None),
        ("%", "7", "7", 0),
        ("&", "6", "1", 0),
        ("|", "0", "0", 0),
        ("^", "5", "5", 0),
        ("<<", "1", "3", 8),
        (">>", "1", "1", 0),
        ("&&", "1", "1", None),
    ])
    def test_binary_ops(self, op, left, right, expected):
        expr = BinaryOp(S, op, IntLiteral(S, left), IntLiteral(S, right))
        assert ConstFolder().eval_unsigned(expr) == expected

    def test_cast_to_unsigned(self):
        assert ConstFolder().eval_unsigned(Cast(S, IntLiteral(S, "0"), "usize")) == 0

    def test_cast_truncates(self):
        assert ConstFolder().eval_unsigned(Cast(S, IntLiteral(S, "256"), "u8")) == 0

    def test_cast_to_signed(self):
        assert ConstFolder().eval_unsigned(Cast(S, IntLiteral(S, "0"), "i32")) is None

    def test_call_is_not_constant(self):
        call = FunctionCall(S, Identifier(S, "zero", None))
        assert ConstFolder().eval_unsigned(call) is None


class TestDeclarationResolver:
    def test_same_declaration(self):
        resolver = DeclarationResolver()
        assert resolver.same_declaration(Identifier(S, "seq", 3), Identifier(S, "seq", 3))

    def test_different_declaration_same_name(self):
        resolver = DeclarationResolver()
        assert not resolver.same_declaration(Identifier(S, "seq", 3), Identifier(S, "seq", 4))

    def test_unresolved_never_matches(self):
        resolver = DeclarationResolver()
        assert not resolver.same_declaration(Identifier(S, "seq", None), Identifier(S, "seq", None))

    def test_non_identifier_never_matches(self):
        resolver = DeclarationResolver()
        call = MethodCall(S, Identifier(S, "seq", 3), "items")
        assert not resolver.same_declaration(call, Identifier(S, "seq", 3))
