"""
Finite labelled trees over a shape descriptor.

``build`` and ``destruct`` are exact inverses; ``recurse`` is the only
recursion primitive, everything else on finite trees is a fold through it.

Equality, hashing and ordering of trees walk them with explicit stacks as
well, so none of them is bounded by the interpreter's recursion limit.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar, final

from qpf.shape import Children, Shape, Tag

A = TypeVar("A")


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class FiniteTree:
    """
    A node: a tag and one subtree per slot. Subtrees may be shared.

    Trees compare structurally, and order lexicographically by tag, then by
    children in slot order.
    """

    tag: Tag
    children: "Children[FiniteTree]" = Children()

    _hash: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Children hash in constant time, so this stays one layer deep.
        object.__setattr__(self, "_hash", hash((self.tag, self.children.entries)))

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FiniteTree):
            return NotImplemented
        visited: set[tuple[int, int]] = set()
        stack = [(self, other)]
        while stack:
            left, right = stack.pop()
            if left is right or (id(left), id(right)) in visited:
                continue
            if (
                left._hash != right._hash
                or left.tag != right.tag
                or len(left.children) != len(right.children)
            ):
                return False
            visited.add((id(left), id(right)))
            for (left_slot, left_child), (right_slot, right_child) in zip(
                left.children.entries, right.children.entries
            ):
                if left_slot != right_slot:
                    return False
                stack.append((left_child, right_child))
        return True

    def __lt__(self, other: "FiniteTree") -> bool:
        if not isinstance(other, FiniteTree):
            return NotImplemented
        return _compare(self, other) < 0

    def __le__(self, other: "FiniteTree") -> bool:
        if not isinstance(other, FiniteTree):
            return NotImplemented
        return _compare(self, other) <= 0

    def __gt__(self, other: "FiniteTree") -> bool:
        if not isinstance(other, FiniteTree):
            return NotImplemented
        return _compare(self, other) > 0

    def __ge__(self, other: "FiniteTree") -> bool:
        if not isinstance(other, FiniteTree):
            return NotImplemented
        return _compare(self, other) >= 0


def _order(left: object, right: object) -> int:
    return -1 if left < right else 1  # type: ignore[operator]


def _compare(left: FiniteTree, right: FiniteTree) -> int:
    """
    Three-way lexicographic comparison.

    The stack holds pending subtree pairs and, interleaved in slot order,
    verdicts that decide the comparison once everything before them is equal.
    """
    visited: set[tuple[int, int]] = set()
    stack: list[tuple[FiniteTree, FiniteTree] | int] = [(left, right)]
    while stack:
        item = stack.pop()
        if isinstance(item, int):
            return item
        left_node, right_node = item
        if left_node is right_node or (id(left_node), id(right_node)) in visited:
            continue
        visited.add((id(left_node), id(right_node)))
        if left_node.tag != right_node.tag:
            return _order(left_node.tag, right_node.tag)
        left_entries = left_node.children.entries
        right_entries = right_node.children.entries
        pending: list[tuple[FiniteTree, FiniteTree] | int] = []
        for (left_slot, left_child), (right_slot, right_child) in zip(
            left_entries, right_entries
        ):
            if left_slot != right_slot:
                pending.append(_order(left_slot, right_slot))
                break
            pending.append((left_child, right_child))
        else:
            if len(left_entries) != len(right_entries):
                pending.append(_order(len(left_entries), len(right_entries)))
        stack.extend(reversed(pending))
    return 0


def build(layer: Shape[FiniteTree]) -> FiniteTree:
    return FiniteTree(tag=layer.tag, children=layer.children)


def destruct(tree: FiniteTree) -> Shape[FiniteTree]:
    return Shape(tag=tree.tag, children=tree.children)


def recurse(step: Callable[[Shape[A]], A], tree: FiniteTree) -> A:
    """
    Fold ``tree`` bottom-up with a one-layer ``step``.

    Uses an explicit stack, so tree depth is not bounded by the interpreter's
    recursion limit. A subtree shared by several parents is folded once.
    """
    results: dict[int, A] = {}
    stack: list[tuple[FiniteTree, bool]] = [(tree, False)]
    while stack:
        node, expanded = stack.pop()
        if id(node) in results:
            continue
        if expanded:
            layer = destruct(node).map(lambda child: results[id(child)])
            results[id(node)] = step(layer)
        else:
            stack.append((node, True))
            stack.extend(
                (child, False)
                for _, child in node.children.entries
                if id(child) not in results
            )
    return results[id(tree)]


def size(tree: FiniteTree) -> int:
    """Number of nodes, counting shared subtrees once per occurrence."""
    return recurse(lambda layer: 1 + sum(layer.values), tree)


def depth(tree: FiniteTree) -> int:
    return recurse(lambda layer: 1 + max(layer.values, default=0), tree)
