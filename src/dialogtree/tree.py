"""Generic ordered tree container."""

from __future__ import annotations

from typing import Self


class TreeNode[C]:
    """Holds an ordered, mutable list of children.

    Shape rules are not enforced here; the owner of the tree validates them.
    """

    def __init__(self) -> None:
        self.children: list[C] = []

    def set_children(self, children: list[C]) -> Self:
        """Replace all children and return self for chaining."""
        self.children = list(children)
        return self

    def add_child(self, child: C) -> Self:
        """Append a child and return self for chaining."""
        self.children.append(child)
        return self
