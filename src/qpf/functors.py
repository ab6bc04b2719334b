"""
Ready-made witnesses for common container functors.

=================  ====================  =========================
Witness            ``F[X]``              shape descriptor
=================  ====================  =========================
PolynomialWitness  ``Shape[X]``          any
PairWitness        ``tuple[X, X]``       one tag, two slots
OptionWitness      ``None | Some[X]``    ``none`` / ``some``
ListWitness        ``tuple[X, ...]``     :class:`ArityShape`
StreamWitness      ``tuple[label, X]``   :class:`UniformShape`
bag_witness()      ``Bag[X]``            quotient of ListWitness
=================  ====================  =========================
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeVar, final

from typing_extensions import override

from qpf.functor import Witness
from qpf.quotient import QuotientWitness, quotient
from qpf.shape import (
    ArityShape,
    Children,
    Shape,
    ShapeDescriptor,
    TableShape,
    UniformShape,
)

T_co = TypeVar("T_co", covariant=True)

PAIR_SHAPE: Final = TableShape(table={"pair": (0, 1)})
OPTION_SHAPE: Final = TableShape(table={"none": (), "some": ("value",)})
LIST_SHAPE: Final = ArityShape()
STREAM_SHAPE: Final = UniformShape(uniform_slots=("tail",))


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class PolynomialWitness(Witness):
    """The polynomial functor of a descriptor: its values are the shapes themselves."""

    descriptor: ShapeDescriptor

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return self.descriptor

    @override
    def abstract(self, instance: Shape[Any], /) -> Shape[Any]:
        return instance

    @override
    def concretize(self, value: Shape[Any], /) -> Shape[Any]:
        return value

    @override
    def map(self, function: Callable[[Any], Any], value: Shape[Any], /) -> Shape[Any]:
        return value.map(function)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class PairWitness(Witness):
    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return PAIR_SHAPE

    @override
    def abstract(self, instance: Shape[Any], /) -> tuple[Any, Any]:
        return instance[0], instance[1]

    @override
    def concretize(self, value: tuple[Any, Any], /) -> Shape[Any]:
        return PAIR_SHAPE.instance("pair", value)

    @override
    def map(self, function: Callable[[Any], Any], value: tuple[Any, Any], /) -> tuple[Any, Any]:
        first, second = value
        return function(first), function(second)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Some(Generic[T_co]):
    value: T_co


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class OptionWitness(Witness):
    """``None`` or ``Some(value=x)``; its least fixed point is the naturals."""

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return OPTION_SHAPE

    @override
    def abstract(self, instance: Shape[Any], /) -> Some[Any] | None:
        if instance.tag == "none":
            return None
        return Some(value=instance["value"])

    @override
    def concretize(self, value: Some[Any] | None, /) -> Shape[Any]:
        if value is None:
            return OPTION_SHAPE.instance("none")
        return OPTION_SHAPE.instance("some", (value.value,))

    @override
    def map(self, function: Callable[[Any], Any], value: Some[Any] | None, /) -> Some[Any] | None:
        if value is None:
            return None
        return Some(value=function(value.value))


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ListWitness(Witness):
    """Tuples; the tag is the length."""

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return LIST_SHAPE

    @override
    def abstract(self, instance: Shape[Any], /) -> tuple[Any, ...]:
        return instance.values

    @override
    def concretize(self, value: tuple[Any, ...], /) -> Shape[Any]:
        return LIST_SHAPE.instance(len(value), value)

    @override
    def map(self, function: Callable[[Any], Any], value: tuple[Any, ...], /) -> tuple[Any, ...]:
        return tuple(function(element) for element in value)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class StreamWitness(Witness):
    """``(label, x)`` pairs; the label is the tag, ``x`` sits in the ``tail`` slot."""

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return STREAM_SHAPE

    @override
    def abstract(self, instance: Shape[Any], /) -> tuple[Any, Any]:
        return instance.tag, instance["tail"]

    @override
    def concretize(self, value: tuple[Any, Any], /) -> Shape[Any]:
        label, tail = value
        return Shape(tag=label, children=Children(entries=(("tail", tail),)))

    @override
    def map(self, function: Callable[[Any], Any], value: tuple[Any, Any], /) -> tuple[Any, Any]:
        label, tail = value
        return label, function(tail)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class Bag(Generic[T_co]):
    """
    A finite multiset. Equality ignores order.

    :meth:`ordered` lists the elements sorted when they are mutually
    orderable, which makes the listing a function of the multiset; otherwise
    it keeps insertion order.
    """

    elements: tuple[T_co, ...] = ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bag):
            return NotImplemented
        remaining = list(other.elements)
        for element in self.elements:
            for index, candidate in enumerate(remaining):
                if candidate == element:
                    del remaining[index]
                    break
            else:
                return False
        return not remaining

    def __hash__(self) -> int:
        return hash(tuple(sorted(hash(element) for element in self.elements)))

    def __iter__(self) -> Iterator[T_co]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def ordered(self) -> tuple[T_co, ...]:
        try:
            return tuple(sorted(self.elements))  # type: ignore[type-var]
        except TypeError:
            return self.elements


def bag(elements: Iterable[T_co] = ()) -> Bag[T_co]:
    return Bag(elements=tuple(elements))


def bag_witness() -> QuotientWitness:
    """Multisets, as the quotient of :class:`ListWitness` that forgets order."""
    return quotient(
        ListWitness(),
        to_quotient=bag,
        from_quotient=Bag.ordered,
        map_function=lambda function, value: bag(map(function, value.elements)),
    )
