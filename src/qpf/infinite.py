"""
Possibly infinite labelled trees, generated on demand.

An :class:`InfiniteTree` is an opaque handle. It is only ever produced by
:func:`corecurse` and only ever observed by :meth:`InfiniteTree.destruct`,
which satisfies the one-step law::

    destruct(corecurse(seed, generator))
        == generator(seed).map(lambda s: corecurse(s, generator))

Each handle computes its layer at most once, under its own lock, and then
serves the cached layer. Handles for hashable seeds are shared per generator
through weak caches, so ``corecurse(seed, generator)`` returns the same handle
while that handle is alive, and unfoldings that revisit a seed close into
finite handle graphs.

Generators must produce their top layer with bounded work; nothing deeper is
ever forced.
"""

import logging
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, Final, final
from weakref import WeakValueDictionary

from qpf.shape import Shape

_logger: Final[logging.Logger] = logging.getLogger(__name__)

LayerGenerator = Callable[[Any], Shape[Any]]


@final
@dataclass(slots=True, weakref_slot=True, eq=False, init=False)
class InfiniteTree:
    """
    Handle to a lazily generated tree.

    Handles have no public constructor; they come from :func:`corecurse`.
    """

    seed: Final[object]
    unfolding: Final["Unfolding"]

    _layer: "Shape[InfiniteTree] | None" = field(repr=False)
    _lock: threading.Lock = field(repr=False)

    def __init__(self) -> None:
        raise TypeError("InfiniteTree handles are created by corecurse")

    @classmethod
    def _unfold(cls, seed: object, unfolding: "Unfolding") -> "InfiniteTree":
        tree = object.__new__(cls)
        tree.seed = seed
        tree.unfolding = unfolding
        tree._layer = None
        tree._lock = threading.Lock()
        return tree

    def destruct(self) -> "Shape[InfiniteTree]":
        layer = self._layer
        if layer is None:
            with self._lock:
                layer = self._layer
                if layer is None:
                    _logger.debug("Generating layer for seed %r", self.seed)
                    layer = self.unfolding.generator(self.seed).map(self.unfolding.handle)
                    self._layer = layer
        return layer


@final
@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class Unfolding:
    """
    One generator together with the live handles it has produced, by seed.

    Seeds are told apart by type as well as by value, so ``1``, ``1.0`` and
    ``True`` get separate handles.
    """

    generator: Final[LayerGenerator]

    _handles: "WeakValueDictionary[tuple[type, Hashable], InfiniteTree]" = field(
        default_factory=WeakValueDictionary, init=False, repr=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def handle(self, seed: object) -> InfiniteTree:
        try:
            hash(seed)
        except TypeError:
            return InfiniteTree._unfold(seed, self)
        key = (type(seed), seed)
        with self._lock:
            try:
                return self._handles[key]
            except KeyError:
                tree = InfiniteTree._unfold(seed, self)
                self._handles[key] = tree
                return tree


# Keyed by id(generator): an Unfolding keeps its generator alive, so the id
# cannot be reused while the entry exists.
_unfoldings: Final["WeakValueDictionary[int, Unfolding]"] = WeakValueDictionary()
_unfoldings_lock: Final[threading.Lock] = threading.Lock()


def unfolding_of(generator: LayerGenerator) -> Unfolding:
    with _unfoldings_lock:
        try:
            return _unfoldings[id(generator)]
        except KeyError:
            unfolding = Unfolding(generator=generator)
            _unfoldings[id(generator)] = unfolding
            return unfolding


def corecurse(seed: object, generator: LayerGenerator) -> InfiniteTree:
    return unfolding_of(generator).handle(seed)


def destruct(tree: InfiniteTree) -> Shape[InfiniteTree]:
    return tree.destruct()
