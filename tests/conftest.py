"""Test utilities and fixtures for qpf tests."""

import threading
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final, final

import pytest

from qpf import (
    GreatestFixedPoint,
    LeastFixedPoint,
    OptionWitness,
    PolynomialWitness,
    Some,
    StreamWitness,
    TableShape,
)


@final
@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class CountingGenerator:
    """Test utility: generator that records how often each seed is unfolded."""

    step: Final[Callable[[Any], Any]]
    calls: Counter = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __call__(self, seed: Any) -> Any:
        with self._lock:
            self.calls[seed] += 1
        return self.step(seed)


@pytest.fixture
def binary_shape() -> TableShape:
    return TableShape(table={"leaf": (), "node": ("left", "right")})


@pytest.fixture
def binary_trees(binary_shape: TableShape) -> LeastFixedPoint:
    return LeastFixedPoint(witness=PolynomialWitness(descriptor=binary_shape))


@pytest.fixture
def naturals() -> LeastFixedPoint:
    return LeastFixedPoint(witness=OptionWitness())


@pytest.fixture
def nat(naturals: LeastFixedPoint) -> Callable[[int], Any]:
    """Build the natural number ``n`` as ``Some(Some(... None))``."""

    def make(n: int) -> Any:
        value = naturals.mk(None)
        for _ in range(n):
            value = naturals.mk(Some(value=value))
        return value

    return make


@pytest.fixture
def to_int(naturals: LeastFixedPoint) -> Callable[[Any], int]:
    return naturals.fold(lambda layer: 0 if layer is None else layer.value + 1)


@pytest.fixture
def streams() -> GreatestFixedPoint:
    return GreatestFixedPoint(witness=StreamWitness())


@pytest.fixture
def labels(streams: GreatestFixedPoint) -> Callable[[Any, int], tuple[Any, ...]]:
    """Read the first ``count`` labels of a stream by repeated ``dest``."""

    def take(stream: Any, count: int) -> tuple[Any, ...]:
        result = []
        for _ in range(count):
            label, stream = streams.dest(stream)
            result.append(label)
        return tuple(result)

    return take
