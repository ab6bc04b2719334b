"""
Least fixed points.

A :class:`LeastFixedPoint` is the type ``Fix[F]`` for one witness. Its values
(:class:`Fix`) are equivalence classes of finite trees, each stored as its
canonical tree, so ``==``, ``hash`` and ordering of ``Fix`` values are those of
the classes.

Example::

    shape = TableShape(table={"leaf": (), "node": ("left", "right")})
    tree = LeastFixedPoint(witness=PolynomialWitness(descriptor=shape))
    leaf = tree.mk(shape.instance("leaf"))
    count_leaves = tree.fold(
        lambda layer: 1 if layer.tag == "leaf" else sum(layer.values)
    )
    count_leaves(tree.mk(shape.instance("node", (leaf, leaf))))  # 2
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar, final

from qpf.canonical import canonicalize, recurse_with
from qpf.functor import Witness
from qpf.shape import Shape
from qpf.tree import FiniteTree, build, destruct, recurse

A = TypeVar("A")


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, order=True)
class Fix:
    """A value of a least fixed point, represented by its canonical tree."""

    tree: FiniteTree
    fixpoint: "LeastFixedPoint"

    def __repr__(self) -> str:
        return f"Fix({self.tree!r})"


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class LeastFixedPoint:
    """The least fixed point of the functor described by ``witness``."""

    witness: Witness

    def mk(self, value: Any) -> Fix:
        """
        Inject one layer ``F[Fix]``.

        :raises TypeError: if a recursive position holds anything but a
            :class:`Fix` of this type.
        """
        layer = self.witness.concretize(value).map(self._tree_of)
        return Fix(tree=self._canonical_root(layer), fixpoint=self)

    def dest(self, value: Fix) -> Any:
        """
        Peel one layer off ``value``, giving ``F[Fix]``.

        Agrees with ``fold(lambda x: witness.map(mk, x))`` and reads the
        canonical root layer directly instead of refolding the whole tree.
        """
        tree = self._tree_of(value)
        return self.witness.abstract(destruct(tree).map(self._from_canonical))

    def fold(self, algebra: Callable[[Any], A]) -> Callable[[Fix], A]:
        """
        Lift ``algebra: F[A] -> A`` to ``Fix -> A``.

        The result ``h`` is the only function with
        ``h(mk(x)) == algebra(witness.map(h, x))`` for every ``x``.
        """

        def folded(value: Fix) -> A:
            return recurse_with(self.witness, algebra, self._tree_of(value))

        return folded

    def quotient(self, tree: FiniteTree) -> Fix:
        """The equivalence class of an arbitrary raw tree."""
        return Fix(tree=canonicalize(self.witness, tree), fixpoint=self)

    def subvalues(self, value: Fix) -> Iterator[Fix]:
        """
        Every value recursively contained in ``value``, ``value`` included.

        Inner values come before the values containing them; each distinct
        value is produced once.
        """
        seen: set[FiniteTree] = set()
        ordered: list[Fix] = []

        def step(layer: Shape[FiniteTree]) -> FiniteTree:
            node = build(layer)
            if node not in seen:
                seen.add(node)
                ordered.append(self._from_canonical(node))
            return node

        recurse(step, self._tree_of(value))
        return iter(ordered)

    def find_disagreement(
        self,
        left: Callable[[Fix], object],
        right: Callable[[Fix], object],
        value: Fix,
    ) -> Fix | None:
        """
        Find the innermost sub-value of ``value`` on which two functions differ.

        The returned value's own sub-values all agree, so it is the place where
        an inductive argument ``map(left, x) == map(right, x) implies
        left(mk(x)) == right(mk(x))`` breaks. ``None`` means the functions agree
        on all of ``value``.
        """
        for subvalue in self.subvalues(value):
            if left(subvalue) != right(subvalue):
                return subvalue
        return None

    def _tree_of(self, value: object) -> FiniteTree:
        if not isinstance(value, Fix):
            raise TypeError(f"Expected a Fix value, got {value!r}")
        if value.fixpoint is not self:
            raise TypeError(f"{value!r} belongs to a different fixed point")
        return value.tree

    def _from_canonical(self, tree: FiniteTree) -> Fix:
        return Fix(tree=tree, fixpoint=self)

    def _canonical_root(self, layer: Shape[FiniteTree]) -> FiniteTree:
        # Children are canonical already; one pass through the root suffices.
        return build(self.witness.concretize(self.witness.abstract(layer)))
