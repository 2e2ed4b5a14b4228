"""Hierarchy builder for tree-shaped option data.

Domain values carrying ``parentCode`` form a forest.  Roots are values with
no parent, a parent that is not in the list, or themselves as parent.  Parent
links that loop never drop nodes: anything unreachable from a root after the
first pass is promoted to a root, in input order.

:class:`TreeState` adds the interactive state a tree control needs:
expansion, selection (which expands every ancestor so the selection stays
visible), and text filtering (which keeps each match's full ancestor chain and
force-expands everything that survives).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formctl.domain.controls import DomainValue

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    """One node of the option forest."""

    code: str
    display_text: str
    parent_code: str | None = None
    extension: Any = None
    children: list[TreeNode] = field(default_factory=list)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "displayText": self.display_text,
            "parentCode": self.parent_code,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class FlatNode:
    """A visible tree row: node plus depth, as a flat list renders it."""

    code: str
    display_text: str
    level: int
    expandable: bool
    expanded: bool


def _walk(node: TreeNode) -> Iterable[TreeNode]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def build_forest(values: Iterable[DomainValue]) -> list[TreeNode]:
    """Group flat ``{code, parentCode}`` records into a forest."""
    nodes: dict[str, TreeNode] = {}
    order: list[TreeNode] = []
    for value in values:
        code = str(value.code)
        if code in nodes:
            logger.debug("Duplicate tree code %r ignored", code)
            continue
        parent = value.parent_code
        node = TreeNode(
            code=code,
            display_text=value.display_text,
            parent_code=None if parent is None or parent == "" else str(parent),
            extension=value.extension,
        )
        nodes[code] = node
        order.append(node)

    roots: list[TreeNode] = []
    for node in order:
        parent_code = node.parent_code
        if parent_code is None or parent_code == node.code or parent_code not in nodes:
            roots.append(node)
        else:
            nodes[parent_code].children.append(node)

    reachable = {n.code for root in roots for n in _walk(root)}
    for node in order:
        if node.code in reachable:
            continue
        logger.warning("Tree node %r is part of a parent cycle, promoted to root", node.code)
        if node.parent_code is not None:
            siblings = nodes[node.parent_code].children
            siblings[:] = [child for child in siblings if child is not node]
        roots.append(node)
        reachable.update(n.code for n in _walk(node))
    return roots


def filter_forest(roots: list[TreeNode], text: str) -> list[TreeNode]:
    """Pruned copy keeping case-insensitive matches and all their ancestors."""
    needle = text.strip().lower()
    if not needle:
        return roots

    def prune(node: TreeNode) -> TreeNode | None:
        kept = [c for c in (prune(child) for child in node.children) if c is not None]
        if kept or needle in node.display_text.lower():
            return TreeNode(
                code=node.code,
                display_text=node.display_text,
                parent_code=node.parent_code,
                extension=node.extension,
                children=kept,
            )
        return None

    return [pruned for pruned in (prune(root) for root in roots) if pruned is not None]


class TreeState:
    """Expansion, selection, and filter state over a built forest."""

    def __init__(self, values: Iterable[DomainValue] = ()) -> None:
        self.expanded: set[str] = set()
        self.selected: str | None = None
        self.filter_text = ""
        self.load(values)

    def load(self, values: Iterable[DomainValue]) -> None:
        """Rebuild the forest; expansion of codes that disappeared is dropped."""
        self.roots = build_forest(values)
        self._index: dict[str, TreeNode] = {}
        self._parents: dict[str, str | None] = {}
        for root in self.roots:
            self._parents[root.code] = None
            for node in _walk(root):
                self._index[node.code] = node
                for child in node.children:
                    self._parents[child.code] = node.code
        self.expanded &= set(self._index)

    def __contains__(self, code: object) -> bool:
        return code in self._index

    def node(self, code: str) -> TreeNode | None:
        return self._index.get(code)

    def ancestors(self, code: str) -> list[str]:
        """Ancestor codes, root first."""
        chain: list[str] = []
        parent = self._parents.get(code)
        while parent is not None:
            chain.append(parent)
            parent = self._parents.get(parent)
        return list(reversed(chain))

    def expand(self, code: str) -> None:
        if code in self._index:
            self.expanded.add(code)

    def collapse(self, code: str) -> None:
        self.expanded.discard(code)

    def toggle(self, code: str) -> None:
        if code in self.expanded:
            self.collapse(code)
        else:
            self.expand(code)

    def select(self, code: str) -> bool:
        """Select *code* and expand every ancestor. False if unknown."""
        if code not in self._index:
            return False
        self.selected = code
        self.expanded.update(self.ancestors(code))
        return True

    def filter(self, text: str) -> None:
        self.filter_text = text

    def visible(self) -> list[FlatNode]:
        """Rows in display order.

        With a filter active every surviving branch is shown expanded.
        """
        filtering = bool(self.filter_text.strip())
        roots = filter_forest(self.roots, self.filter_text) if filtering else self.roots
        rows: list[FlatNode] = []

        def visit(node: TreeNode, level: int) -> None:
            is_open = filtering or node.code in self.expanded
            rows.append(
                FlatNode(
                    code=node.code,
                    display_text=node.display_text,
                    level=level,
                    expandable=node.has_children,
                    expanded=is_open and node.has_children,
                )
            )
            if is_open:
                for child in node.children:
                    visit(child, level + 1)

        for root in roots:
            visit(root, 0)
        return rows
