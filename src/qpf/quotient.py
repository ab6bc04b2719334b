"""
Transfer of a witness along a quotient.

Given a witness of ``F`` and conversions ``to_quotient: F[X] -> G[X]`` and
``from_quotient: G[X] -> F[X]`` with ``to_quotient(from_quotient(y)) == y``
that commute with mapping, :func:`quotient` gives a witness of ``G`` on the
same shape descriptor, so ``G`` gets ``Fix`` and ``Cofix`` for free.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, final

from typing_extensions import override

from qpf.functor import Witness
from qpf.shape import Shape, ShapeDescriptor


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class QuotientWitness(Witness):
    base: Witness
    to_quotient: Callable[[Any], Any]
    from_quotient: Callable[[Any], Any]
    map_function: Callable[[Callable[[Any], Any], Any], Any] | None = None

    @property
    @override
    def shape(self) -> ShapeDescriptor:
        return self.base.shape

    @override
    def abstract(self, instance: Shape[Any], /) -> Any:
        return self.to_quotient(self.base.abstract(instance))

    @override
    def concretize(self, value: Any, /) -> Shape[Any]:
        return self.base.concretize(self.from_quotient(value))

    @override
    def map(self, function: Callable[[Any], Any], value: Any, /) -> Any:
        if self.map_function is None:
            return self.to_quotient(self.base.map(function, self.from_quotient(value)))
        return self.map_function(function, value)


def quotient(
    base: Witness,
    *,
    to_quotient: Callable[[Any], Any],
    from_quotient: Callable[[Any], Any],
    map_function: Callable[[Callable[[Any], Any], Any], Any] | None = None,
) -> QuotientWitness:
    return QuotientWitness(
        base=base,
        to_quotient=to_quotient,
        from_quotient=from_quotient,
        map_function=map_function,
    )
