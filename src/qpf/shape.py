"""
Shape descriptors and shape instances.

A shape descriptor is a polynomial signature: a set of tags and, per tag, an
ordered tuple of child slots. A :class:`Shape` is one layer of such a
signature with a payload value in every slot of its tag.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, final

from typing_extensions import override

Tag: TypeAlias = Hashable
Slot: TypeAlias = Hashable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
U = TypeVar("U")


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, order=True)
class Children(Mapping[Slot, T_co]):
    """
    Immutable, ordered mapping from slots to payload values.

    Entries keep the slot order of the descriptor that produced them, so two
    ``Children`` compare equal only when they list the same slots in the same
    order with equal payloads.
    """

    entries: tuple[tuple[Slot, T_co], ...] = ()

    def __getitem__(self, slot: Slot) -> T_co:
        for key, value in self.entries:
            if key == slot:
                return value
        raise KeyError(slot)

    def __iter__(self) -> Iterator[Slot]:
        return (key for key, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def map(self, function: Callable[[T_co], U]) -> "Children[U]":
        return Children(entries=tuple((key, function(value)) for key, value in self.entries))


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, order=True)
class Shape(Generic[T_co]):
    """
    One layer of a polynomial signature: a tag plus a payload per slot.

    Mapping acts on the payload only; the tag and the slot order are fixed.
    """

    tag: Tag
    children: Children[T_co] = Children()

    def __getitem__(self, slot: Slot) -> T_co:
        return self.children[slot]

    def map(self, function: Callable[[T_co], U]) -> "Shape[U]":
        return Shape(tag=self.tag, children=self.children.map(function))

    @property
    def slots(self) -> tuple[Slot, ...]:
        return tuple(self.children)

    @property
    def values(self) -> tuple[T_co, ...]:
        return tuple(value for _, value in self.children.entries)


class ShapeDescriptor(ABC):
    """
    A polynomial signature.

    Subclasses only have to say which slots a tag has; membership,
    construction and validation of instances are derived from that.
    """

    __slots__ = ()

    @abstractmethod
    def slots(self, tag: Tag, /) -> tuple[Slot, ...]:
        """
        Return the ordered slots of ``tag``.

        :raises KeyError: if ``tag`` is not a tag of this descriptor.
        """

    def __contains__(self, tag: object) -> bool:
        try:
            self.slots(tag)  # type: ignore[arg-type]
        except (KeyError, TypeError):
            return False
        return True

    def instance(self, tag: Tag, children: Mapping[Slot, T] | Iterable[T] = ()) -> Shape[T]:
        """
        Build a :class:`Shape` of ``tag``.

        ``children`` is either a mapping keyed by slot, or an iterable giving
        one payload per slot in slot order.

        :raises KeyError: if ``tag`` is unknown.
        :raises ValueError: if the children do not match the slots of ``tag``.
        """
        slots = self.slots(tag)
        if isinstance(children, Mapping):
            if set(children) != set(slots):
                raise ValueError(
                    f"Tag {tag!r} has slots {slots!r}, got children for {tuple(children)!r}"
                )
            entries = tuple((slot, children[slot]) for slot in slots)
        else:
            values = tuple(children)
            if len(values) != len(slots):
                raise ValueError(
                    f"Tag {tag!r} has {len(slots)} slots, got {len(values)} children"
                )
            entries = tuple(zip(slots, values))
        return Shape(tag=tag, children=Children(entries=entries))

    def validate(self, shape: Shape[T]) -> Shape[T]:
        """
        Check that ``shape`` is an instance of this descriptor.

        :raises ValueError: on an unknown tag or a slot mismatch.
        """
        try:
            slots = self.slots(shape.tag)
        except KeyError as e:
            raise ValueError(f"Unknown tag {shape.tag!r}") from e
        if shape.slots != slots:
            raise ValueError(
                f"Tag {shape.tag!r} has slots {slots!r}, got {shape.slots!r}"
            )
        return shape


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class TableShape(ShapeDescriptor, Iterable[Tag]):
    """A finite descriptor given by a table from tags to slots."""

    table: Mapping[Tag, tuple[Slot, ...]]

    @override
    def slots(self, tag: Tag, /) -> tuple[Slot, ...]:
        return tuple(self.table[tag])

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.table)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ArityShape(ShapeDescriptor):
    """Tags are natural numbers ``n``; tag ``n`` has the slots ``0 .. n-1``."""

    @override
    def slots(self, tag: Tag, /) -> tuple[Slot, ...]:
        if not isinstance(tag, int) or isinstance(tag, bool) or tag < 0:
            raise KeyError(tag)
        return tuple(range(tag))


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class UniformShape(ShapeDescriptor):
    """Every hashable value is a tag, and every tag has the same slots."""

    uniform_slots: tuple[Slot, ...]

    @override
    def slots(self, tag: Tag, /) -> tuple[Slot, ...]:
        try:
            hash(tag)
        except TypeError as e:
            raise KeyError(tag) from e
        return self.uniform_slots
