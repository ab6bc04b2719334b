"""
Greatest fixed points and bisimulation.

A :class:`GreatestFixedPoint` is the type ``Cofix[F]`` for one witness. Its
values (:class:`Cofix`) wrap handles of lazily generated trees. ``==`` on
``Cofix`` is handle identity: sound, but not complete, because equality of
infinite values is undecidable in general. Equality is established by
exhibiting a bisimulation instead:

- :meth:`GreatestFixedPoint.bisim` checks a caller-supplied relation and
  concludes that related values are equal;
- :meth:`GreatestFixedPoint.search_bisimulation` tries to discover a finite
  bisimulation by exploring both values layer by layer.
"""

import enum
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from types import EllipsisType
from typing import Any, Final, TypeVar, final
from weakref import WeakValueDictionary

from qpf.functor import Witness
from qpf.infinite import InfiniteTree, corecurse
from qpf.shape import Shape

_logger: Final[logging.Logger] = logging.getLogger(__name__)

S = TypeVar("S")


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Cofix:
    """A value of a greatest fixed point."""

    handle: InfiniteTree
    fixpoint: "GreatestFixedPoint"

    def __repr__(self) -> str:
        return f"Cofix(seed={self.handle.seed!r})"


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class _ConcretizingGenerator:
    witness: Witness
    generator: Callable[[Any], Any]

    def __call__(self, seed: object) -> Shape[Any]:
        return self.witness.concretize(self.generator(seed))


class BisimulationStatus(enum.Enum):
    BISIMILAR = enum.auto()
    """A finite relation closed up; the values are equal."""

    MISMATCH = enum.auto()
    """Two layers paired slot by slot have different tags."""

    EXHAUSTED = enum.auto()
    """The pair budget ran out before the relation closed up."""


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class BisimulationResult:
    status: BisimulationStatus
    relation: frozenset[tuple[Cofix, Cofix]]
    """The pairs explored. A bisimulation when ``status`` is ``BISIMILAR``."""

    mismatch: tuple[Cofix, Cofix] | None = None


@final
@dataclass(kw_only=True, slots=True, eq=False)
class _EquivalenceClasses:
    """Union-find over ``Cofix`` values, handing out one integer per class."""

    _parents: dict[Cofix, Cofix] = field(default_factory=dict)
    _markers: dict[Cofix, int] = field(default_factory=dict)

    def find(self, value: Cofix) -> Cofix:
        root = value
        while (parent := self._parents.get(root, root)) != root:
            root = parent
        while value != root:
            self._parents[value], value = root, self._parents[value]
        return root

    def union(self, left: Cofix, right: Cofix) -> None:
        left_root = self.find(left)
        right_root = self.find(right)
        self._parents.setdefault(left_root, left_root)
        if left_root != right_root:
            self._parents[right_root] = left_root

    def marker(self, value: Cofix) -> int:
        root = self.find(value)
        return self._markers.setdefault(root, len(self._markers))


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class GreatestFixedPoint:
    """The greatest fixed point of the functor described by ``witness``."""

    witness: Witness

    _generators: "WeakValueDictionary[int, _ConcretizingGenerator]" = field(
        default_factory=WeakValueDictionary, init=False, repr=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def corec(self, generator: Callable[[S], Any], seed: S) -> Cofix:
        """
        Unfold ``seed`` with ``generator: S -> F[S]``.

        Satisfies ``dest(corec(g, s)) == witness.map(lambda t: corec(g, t), g(s))``
        whenever ``g`` is the same generator object and seeds are hashable.
        """
        return Cofix(handle=corecurse(seed, self._concretizing(generator)), fixpoint=self)

    def corecursive(self, generator: Callable[[S], Any]) -> Callable[[S], Cofix]:
        def unfold(seed: S) -> Cofix:
            return self.corec(generator, seed)

        return unfold

    def dest(self, value: Cofix) -> Any:
        """Observe one layer of ``value``, giving ``F[Cofix]``."""
        layer = self._handle_of(value).destruct()
        return self.witness.abstract(layer.map(self._from_handle))

    def bisimulation_counterexample(
        self, relation: Iterable[tuple[Cofix, Cofix]]
    ) -> tuple[Cofix, Cofix] | None:
        """
        Find a related pair whose layers disagree once children are
        replaced by their class in the equivalence closure of ``relation``.

        Children outside the relation form classes of their own. ``None``
        means ``relation`` is a bisimulation.
        """
        pairs = tuple(relation)
        return self._counterexample(pairs, self._classes(pairs))

    def is_bisimulation(self, relation: Iterable[tuple[Cofix, Cofix]]) -> bool:
        return self.bisimulation_counterexample(relation) is None

    def bisim(
        self, relation: Iterable[tuple[Cofix, Cofix]], left: Cofix, right: Cofix
    ) -> bool:
        """
        Conclude ``left`` equals ``right`` from a bisimulation relating them.

        Returns ``False`` when ``relation`` is not a bisimulation or does not
        relate the two values; that is the absence of a proof, not a proof of
        inequality.
        """
        if left == right:
            return True
        pairs = tuple(relation)
        classes = self._classes(pairs)
        counterexample = self._counterexample(pairs, classes)
        if counterexample is not None:
            _logger.debug("Not a bisimulation, counterexample %r", counterexample)
            return False
        return classes.find(left) == classes.find(right)

    def search_bisimulation(
        self, left: Cofix, right: Cofix, *, max_pairs: int = 10_000
    ) -> BisimulationResult:
        """
        Explore ``left`` and ``right`` together, pairing children slot by slot.

        ``BISIMILAR`` is conclusive. ``MISMATCH`` reports the first pair whose
        concretized layers carry different tags; it proves the values differ
        only for witnesses whose ``abstract`` never identifies layers with
        different tags or reordered children.
        """
        worklist: list[tuple[Cofix, Cofix]] = [(left, right)]
        explored: set[tuple[Cofix, Cofix]] = set()
        while worklist:
            pair = worklist.pop()
            if pair in explored or pair[0] == pair[1]:
                continue
            if len(explored) >= max_pairs:
                _logger.debug("Bisimulation search gave up after %d pairs", max_pairs)
                return BisimulationResult(
                    status=BisimulationStatus.EXHAUSTED, relation=frozenset(explored)
                )
            explored.add(pair)
            left_layer = self._handle_of(pair[0]).destruct()
            right_layer = self._handle_of(pair[1]).destruct()
            if left_layer.tag != right_layer.tag or left_layer.slots != right_layer.slots:
                return BisimulationResult(
                    status=BisimulationStatus.MISMATCH,
                    relation=frozenset(explored),
                    mismatch=pair,
                )
            worklist.extend(
                (self._from_handle(left_child), self._from_handle(right_child))
                for left_child, right_child in zip(left_layer.values, right_layer.values)
            )
        _logger.debug("Found a bisimulation of %d pairs", len(explored))
        return BisimulationResult(
            status=BisimulationStatus.BISIMILAR, relation=frozenset(explored)
        )

    def truncate(self, value: Cofix, depth: int) -> "Shape[Any] | EllipsisType":
        """
        The first ``depth`` layers of ``value`` as nested shapes.

        Positions below the cut hold ``...``.
        """
        if depth <= 0:
            return ...
        layer = self.witness.concretize(self.dest(value))
        return layer.map(lambda child: self.truncate(child, depth - 1))

    def _classes(self, pairs: tuple[tuple[Cofix, Cofix], ...]) -> _EquivalenceClasses:
        classes = _EquivalenceClasses()
        for left, right in pairs:
            classes.union(left, right)
        return classes

    def _counterexample(
        self,
        pairs: tuple[tuple[Cofix, Cofix], ...],
        classes: _EquivalenceClasses,
    ) -> tuple[Cofix, Cofix] | None:
        for left, right in pairs:
            left_layer = self.witness.map(classes.marker, self.dest(left))
            right_layer = self.witness.map(classes.marker, self.dest(right))
            if left_layer != right_layer:
                return left, right
        return None

    def _concretizing(self, generator: Callable[[Any], Any]) -> _ConcretizingGenerator:
        # Keyed by id(generator): the wrapper keeps the generator alive while
        # the entry exists.
        with self._lock:
            try:
                return self._generators[id(generator)]
            except KeyError:
                wrapper = _ConcretizingGenerator(witness=self.witness, generator=generator)
                self._generators[id(generator)] = wrapper
                return wrapper

    def _handle_of(self, value: object) -> InfiniteTree:
        if not isinstance(value, Cofix):
            raise TypeError(f"Expected a Cofix value, got {value!r}")
        if value.fixpoint is not self:
            raise TypeError(f"{value!r} belongs to a different fixed point")
        return value.handle

    def _from_handle(self, handle: InfiniteTree) -> Cofix:
        return Cofix(handle=handle, fixpoint=self)
