"""
Structural equivalence of finite trees and canonical representatives.

Two finite trees are structurally equivalent when they are related by the
least relation that

1. relates nodes with the same tag and pointwise equivalent children,
2. relates nodes whose root layers have equal ``abstract`` images (children
   treated as opaque payload),
3. is transitive.

:func:`recurse_with` gives the same result on equivalent trees for any step
function, and :func:`canonicalize` uses it to pass every node once through
``concretize . abstract``. Because ``concretize`` is a function of the abstract
value, equivalent trees have identical canonical forms, so comparing canonical
forms decides the relation.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from qpf.functor import Witness
from qpf.tree import FiniteTree, build, recurse

A = TypeVar("A")


def recurse_with(witness: Witness, step: Callable[[Any], A], tree: FiniteTree) -> A:
    """
    Fold ``tree`` with a step function on values of ``F``.

    Every layer is folded structurally, its children replaced by their
    results, abstracted into ``F`` and handed to ``step``.
    """
    return recurse(lambda layer: step(witness.abstract(layer)), tree)


def canonicalize(witness: Witness, tree: FiniteTree) -> FiniteTree:
    return recurse_with(
        witness, lambda value: build(witness.concretize(value)), tree
    )


def equivalent(witness: Witness, left: FiniteTree, right: FiniteTree) -> bool:
    if left is right:
        return True
    return canonicalize(witness, left) == canonicalize(witness, right)
