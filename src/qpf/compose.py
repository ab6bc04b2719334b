"""
Composition of witnesses.

For witnesses of ``Outer`` and ``Inner``, :func:`compose` builds a witness of
``Outer[Inner[X]]``. A composed tag pairs an outer tag with one inner tag per
outer slot; a composed slot is an ``(outer_slot, inner_slot)`` pair.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, final

from typing_extensions import override

from qpf.functor import Witness
from qpf.shape import Children, Shape, ShapeDescriptor, Slot, Tag


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ComposedShape(ShapeDescriptor):
    outer: ShapeDescriptor
    inner: ShapeDescriptor

    @override
    def slots(self, tag: Tag, /) -> tuple[Slot, ...]:
        try:
            outer_tag, inner_tags = tag  # type: ignore[misc]
        except (TypeError, ValueError) as e:
            raise KeyError(tag) from e
        if not isinstance(inner_tags, Children):
            raise KeyError(tag)
        if tuple(inner_tags) != self.outer.slots(outer_tag):
            raise KeyError(tag)
        return tuple(
            (outer_slot, inner_slot)
            for outer_slot, inner_tag in inner_tags.entries
            for inner_slot in self.inner.slots(inner_tag)
        )


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ComposedWitness(Witness):
    outer: Witness
    inner: Witness

    @property
    @override
    def shape(self) -> ComposedShape:
        return ComposedShape(outer=self.outer.shape, inner=self.inner.shape)

    @override
    def abstract(self, instance: Shape[Any], /) -> Any:
        outer_tag, inner_tags = instance.tag

        def inner_value(outer_slot: Slot, inner_tag: Tag) -> Any:
            children = Children(
                entries=tuple(
                    (inner_slot, value)
                    for (slot, inner_slot), value in instance.children.entries
                    if slot == outer_slot
                )
            )
            return self.inner.abstract(Shape(tag=inner_tag, children=children))

        outer_layer = Shape(
            tag=outer_tag,
            children=Children(
                entries=tuple(
                    (outer_slot, inner_value(outer_slot, inner_tag))
                    for outer_slot, inner_tag in inner_tags.entries
                )
            ),
        )
        return self.outer.abstract(outer_layer)

    @override
    def concretize(self, value: Any, /) -> Shape[Any]:
        outer_layer = self.outer.concretize(value).map(self.inner.concretize)
        inner_tags = outer_layer.children.map(lambda inner_layer: inner_layer.tag)
        return Shape(
            tag=(outer_layer.tag, inner_tags),
            children=Children(
                entries=tuple(
                    ((outer_slot, inner_slot), payload)
                    for outer_slot, inner_layer in outer_layer.children.entries
                    for inner_slot, payload in inner_layer.children.entries
                )
            ),
        )

    @override
    def map(self, function: Callable[[Any], Any], value: Any, /) -> Any:
        return self.outer.map(lambda inner: self.inner.map(function, inner), value)


def compose(outer: Witness, inner: Witness) -> ComposedWitness:
    return ComposedWitness(outer=outer, inner=inner)
