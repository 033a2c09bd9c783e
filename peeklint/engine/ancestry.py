"""Parent lookup for an immutable expression tree."""

from __future__ import annotations

from collections.abc import Iterator

from peeklint.engine.nodes import Node


class AncestorIndex:
    """Map from node identity to its parent, built once per tree.

    Holds a reference to every indexed node so that ``id()`` keys stay valid
    for the lifetime of the index.
    """

    def __init__(self, root: Node) -> None:
        self.root = root
        self._parents: dict[int, Node] = {}
        self._nodes: list[Node] = []
        stack = [root]
        while stack:
            node = stack.pop()
            self._nodes.append(node)
            for child in node.children():
                self._parents[id(child)] = node
                stack.append(child)

    @classmethod
    def build(cls, root: Node) -> AncestorIndex:
        return cls(root)

    def parent(self, node: Node) -> Node | None:
        return self._parents.get(id(node))

    def ancestors(self, node: Node) -> Iterator[tuple[Node, Node]]:
        """Yield ``(child, parent)`` pairs from *node* up to the root."""
        child = node
        parent = self.parent(child)
        while parent is not None:
            yield child, parent
            child = parent
            parent = self.parent(child)


__all__ = ["AncestorIndex"]
