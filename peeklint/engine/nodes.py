"""Expression tree consumed by the lint rules.

The tree is a closed family of immutable node classes. Frontends (see
``peeklint.languages.rust.lowering``) build it once per file; rules only read
it. Nodes compare by identity so they can key dicts and sets, and no node
holds a reference to its parent (use ``AncestorIndex`` for that).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """Half-open byte range into the source, plus the 1-based start position."""
    start: int
    end: int
    line: int = 1
    column: int = 1

    def contains(self, other: Span) -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: Span) -> bool:
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True, eq=False)
class Node:
    span: Span

    def children(self) -> tuple[Node, ...]:
        return ()


@dataclass(frozen=True, eq=False)
class Identifier(Node):
    name: str
    decl: int | None = None


@dataclass(frozen=True, eq=False)
class IntLiteral(Node):
    text: str


@dataclass(frozen=True, eq=False)
class UnaryNot(Node):
    operand: Node

    def children(self) -> tuple[Node, ...]:
        return (self.operand,)


@dataclass(frozen=True, eq=False)
class MethodCall(Node):
    receiver: Node
    method: str
    args: tuple[Node, ...] = ()

    def children(self) -> tuple[Node, ...]:
        return (self.receiver, *self.args)


@dataclass(frozen=True, eq=False)
class FunctionCall(Node):
    func: Node
    args: tuple[Node, ...] = ()

    def children(self) -> tuple[Node, ...]:
        return (self.func, *self.args)


@dataclass(frozen=True, eq=False)
class IndexAccess(Node):
    base: Node
    index: Node

    def children(self) -> tuple[Node, ...]:
        return (self.base, self.index)


@dataclass(frozen=True, eq=False)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def children(self) -> tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class Cast(Node):
    value: Node
    type_name: str

    def children(self) -> tuple[Node, ...]:
        return (self.value,)


@dataclass(frozen=True, eq=False)
class Block(Node):
    items: tuple[Node, ...] = ()

    def children(self) -> tuple[Node, ...]:
        return self.items


@dataclass(frozen=True, eq=False)
class Conditional(Node):
    """``if condition { then } else { ... }``.

    ``else_branch`` is a Block, a nested Conditional (``else if``) or None.
    """
    condition: Node
    then_branch: Block
    else_branch: Node | None = None

    def children(self) -> tuple[Node, ...]:
        if self.else_branch is None:
            return (self.condition, self.then_branch)
        return (self.condition, self.then_branch, self.else_branch)


@dataclass(frozen=True, eq=False)
class Closure(Node):
    params: tuple[Identifier, ...]
    body: Node

    def children(self) -> tuple[Node, ...]:
        return (*self.params, self.body)


@dataclass(frozen=True, eq=False)
class Let(Node):
    bindings: tuple[Identifier, ...]
    value: Node | None = None

    def children(self) -> tuple[Node, ...]:
        if self.value is None:
            return self.bindings
        return (*self.bindings, self.value)


@dataclass(frozen=True, eq=False)
class Other(Node):
    """Any construct the rules have no dedicated case for."""
    kind: str
    items: tuple[Node, ...] = ()

    def children(self) -> tuple[Node, ...]:
        return self.items


__all__ = [
    "BinaryOp",
    "Block",
    "Cast",
    "Closure",
    "Conditional",
    "FunctionCall",
    "Identifier",
    "IndexAccess",
    "IntLiteral",
    "Let",
    "MethodCall",
    "Node",
    "Other",
    "Span",
    "UnaryNot",
]
