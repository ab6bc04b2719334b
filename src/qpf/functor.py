"""
Witnesses: container functors presented as quotients of a polynomial shape.

A :class:`Witness` plays the role of the "mappable container" capability for
its functor ``F``: values of ``F[X]`` are ordinary Python objects, and the
witness knows how to map over them, how to view them as a :class:`Shape`
(``concretize``) and how to collapse a shape back into ``F`` (``abstract``).

Every witness is expected to satisfy:

- round trip: ``abstract(concretize(v)) == v``;
- naturality: ``abstract(s.map(f)) == map(f, abstract(s))``;
- ``concretize`` is a function of the abstract value: ``==``-equal values of
  ``F[X]`` concretize to ``==``-equal shapes.

The laws are not checked at runtime.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, final

from typing_extensions import override

from qpf.shape import Shape, ShapeDescriptor


class Witness(ABC):
    """Shape descriptor plus an abstraction/concretization pair for a functor ``F``."""

    __slots__ = ()

    @property
    @abstractmethod
    def shape(self) -> ShapeDescriptor: ...

    @abstractmethod
    def abstract(self, instance: Shape[Any], /) -> Any:
        """Collapse one shape layer into a value of ``F``."""

    @abstractmethod
    def concretize(self, value: Any, /) -> Shape[Any]:
        """Choose a shape layer representing a value of ``F``."""

    def map(self, function: Callable[[Any], Any], value: Any, /) -> Any:
        """
        Map ``function`` over the payload of ``value``.

        The default goes through the shape, which is law-abiding whenever the
        witness is. Witnesses with a native ``map`` may override it.
        """
        return self.abstract(self.concretize(value).map(function))

    def supp(self, value: Any, /) -> tuple[Any, ...]:
        """Payload values of ``value``, in slot order of its concretization."""
        return self.concretize(value).values

    def liftp(self, predicate: Callable[[Any], bool], value: Any, /) -> bool:
        """Whether every payload value of ``value`` satisfies ``predicate``."""
        return all(predicate(child) for child in self.supp(value))

    def liftr(
        self, relation: Callable[[Any, Any], bool], left: Any, right: Any, /
    ) -> bool:
        """
        Whether ``left`` and ``right`` have the same tag and pointwise related payloads.
        """
        left_layer = self.concretize(left)
        right_layer = self.concretize(right)
        if left_layer.tag != right_layer.tag or left_layer.slots != right_layer.slots:
            return False
        return all(
            relation(left_child, right_child)
            for left_child, right_child in zip(left_layer.values, right_layer.values)
        )


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class FunctionWitness(Witness):
    """Witness assembled from plain functions."""

    shape_descriptor: ShapeDescriptor
    abstract_function: Callable[[Shape[Any]], Any]
    concretize_function: Callable[[Any], Shape[Any]]
    map_function: Callable[[Callable[[Any], Any], Any], Any] | None = None

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return self.shape_descriptor

    @override
    def abstract(self, instance: Shape[Any], /) -> Any:
        return self.abstract_function(instance)

    @override
    def concretize(self, value: Any, /) -> Shape[Any]:
        return self.concretize_function(value)

    @override
    def map(self, function: Callable[[Any], Any], value: Any, /) -> Any:
        if self.map_function is None:
            return Witness.map(self, function, value)
        return self.map_function(function, value)
