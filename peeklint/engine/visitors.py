"""Short-circuiting tree traversal."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterator

from peeklint.engine.nodes import Node


class ControlFlow(enum.Enum):
    CONTINUE = "continue"
    BREAK = "break"


def iter_nodes(root: Node, node_type: type | tuple[type, ...] | None = None) -> Iterator[Node]:
    """Yield *root* and all descendants in source order, optionally filtered by type."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node_type is None or isinstance(node, node_type):
            yield node
        stack.extend(reversed(node.children()))


def for_each_expr(root: Node, visit: Callable[[Node], ControlFlow]) -> ControlFlow:
    """Call *visit* on every node under *root*, closure bodies included.

    Returns ``ControlFlow.BREAK`` as soon as *visit* does, otherwise
    ``ControlFlow.CONTINUE`` once the whole tree has been seen.
    """
    for node in iter_nodes(root):
        if visit(node) is ControlFlow.BREAK:
            return ControlFlow.BREAK
    return ControlFlow.CONTINUE


__all__ = ["ControlFlow", "for_each_expr", "iter_nodes"]
