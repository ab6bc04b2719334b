from collections.abc import Callable
from typing import Any

import pytest
from syrupy.assertion import SnapshotAssertion

from qpf import (
    BisimulationStatus,
    Cofix,
    GreatestFixedPoint,
    OptionWitness,
    Shape,
    Some,
    bag,
    bag_witness,
)

Take = Callable[[Cofix, int], tuple[Any, ...]]


def count_up(n: int) -> tuple[int, int]:
    return n, n + 1


def constant_ones(seed: str) -> tuple[int, str]:
    return 1, seed


def ones_in_two_states(state: int) -> tuple[int, int]:
    return 1, 1 - state


def alternating(state: int) -> tuple[int, int]:
    return state, 1 - state


def fibonacci(pair: tuple[int, int]) -> tuple[int, tuple[int, int]]:
    current, following = pair
    return current, (following, current + following)


class TestCorec:
    """The dest/corec unfold law."""

    def test_dest_corec(self, streams: GreatestFixedPoint) -> None:
        for seed in (0, 5, 42):
            stream = streams.corec(count_up, seed)
            assert streams.dest(stream) == streams.witness.map(
                lambda next_seed: streams.corec(count_up, next_seed), count_up(seed)
            )

    def test_seeds_equal_across_types(self, streams: GreatestFixedPoint) -> None:
        def describe(seed: object) -> tuple[str, object]:
            return repr(seed), seed

        ones = streams.corec(describe, 1)
        label, _ = streams.dest(streams.corec(describe, True))
        assert label == "True"
        assert streams.dest(ones)[0] == "1"

    def test_corecursive(self, streams: GreatestFixedPoint, labels: Take) -> None:
        from_seed = streams.corecursive(count_up)
        assert labels(from_seed(3), 4) == (3, 4, 5, 6)

    def test_infinity(self) -> None:
        conaturals = GreatestFixedPoint(witness=OptionWitness())
        infinity = conaturals.corec(lambda seed: Some(value=seed), "omega")
        assert conaturals.dest(infinity) == Some(value=infinity)

    def test_finite_conatural(self) -> None:
        conaturals = GreatestFixedPoint(witness=OptionWitness())

        def count_down(n: int) -> Some[int] | None:
            return None if n == 0 else Some(value=n - 1)

        value = conaturals.corec(count_down, 2)
        steps = 0
        while (layer := conaturals.dest(value)) is not None:
            value = layer.value
            steps += 1
        assert steps == 2

    def test_dest_rejects_foreign_values(self, streams: GreatestFixedPoint) -> None:
        other = GreatestFixedPoint(witness=streams.witness)
        with pytest.raises(TypeError):
            streams.dest(other.corec(count_up, 0))
        with pytest.raises(TypeError):
            streams.dest((1, 2))


class TestFibonacci:
    """Observing a stream layer by layer."""

    def test_first_labels(
        self, streams: GreatestFixedPoint, labels: Take, snapshot: SnapshotAssertion
    ) -> None:
        assert labels(streams.corec(fibonacci, (0, 1)), 10) == snapshot

    def test_truncate(self, streams: GreatestFixedPoint) -> None:
        prefix = streams.truncate(streams.corec(fibonacci, (0, 1)), 3)
        assert isinstance(prefix, Shape)
        assert prefix.tag == 0
        assert prefix["tail"].tag == 1
        assert prefix["tail"]["tail"].tag == 1
        assert prefix["tail"]["tail"]["tail"] is ...


class TestBisimulation:
    """Equality of streams by exhibiting a bisimulation."""

    def test_bisimulation_proves_equality(self, streams: GreatestFixedPoint, labels: Take) -> None:
        ones = streams.corec(constant_ones, "one")
        even = streams.corec(ones_in_two_states, 0)
        odd = streams.corec(ones_in_two_states, 1)
        relation = {(ones, even), (ones, odd)}

        assert streams.is_bisimulation(relation)
        assert streams.bisim(relation, ones, even)
        assert streams.bisim(relation, even, odd)
        assert labels(ones, 20) == labels(even, 20)
        assert streams.truncate(ones, 8) == streams.truncate(even, 8)

    def test_counterexample(self, streams: GreatestFixedPoint) -> None:
        ones = streams.corec(constant_ones, "one")
        zero_one = streams.corec(alternating, 0)
        relation = [(ones, zero_one)]

        assert streams.bisimulation_counterexample(relation) == (ones, zero_one)
        assert not streams.is_bisimulation(relation)
        assert not streams.bisim(relation, ones, zero_one)

    def test_unrelated_values_are_not_concluded_equal(self, streams: GreatestFixedPoint) -> None:
        ones = streams.corec(constant_ones, "one")
        even = streams.corec(ones_in_two_states, 0)
        odd = streams.corec(ones_in_two_states, 1)
        other = streams.corec(constant_ones, "other")
        relation = {(ones, even), (ones, odd)}

        assert not streams.bisim(relation, ones, other)
        assert streams.bisim(relation, other, other)

    def test_corec_is_unique(self, streams: GreatestFixedPoint) -> None:
        def generator(n: int) -> tuple[int, int]:
            return n % 2, (n + 1) % 4

        first = streams.corecursive(generator)
        second = streams.corecursive(lambda n: generator(n))
        relation = {(first(n), second(n)) for n in range(4)}

        assert streams.is_bisimulation(relation)
        for n in range(4):
            assert first(n) != second(n)
            assert streams.bisim(relation, first(n), second(n))

    def test_bisimulation_up_to_reordering(self) -> None:
        trees = GreatestFixedPoint(witness=bag_witness())
        left_children = {"root": ("x", "y"), "x": ("root",), "y": ()}
        right_children = {0: (2, 1), 1: (), 2: (0,)}
        left = trees.corecursive(lambda seed: bag(left_children[seed]))
        right = trees.corecursive(lambda seed: bag(right_children[seed]))
        relation = {(left("root"), right(0)), (left("x"), right(2)), (left("y"), right(1))}

        assert trees.bisim(relation, left("root"), right(0))
        assert not trees.bisim(
            {(left("root"), right(0)), (left("x"), right(1)), (left("y"), right(2))},
            left("root"),
            right(0),
        )


class TestSearchBisimulation:
    """Discovering a finite bisimulation."""

    def test_finds_bisimulation(self, streams: GreatestFixedPoint) -> None:
        ones = streams.corec(constant_ones, "one")
        even = streams.corec(ones_in_two_states, 0)
        result = streams.search_bisimulation(ones, even)

        assert result.status is BisimulationStatus.BISIMILAR
        assert result.mismatch is None
        assert streams.is_bisimulation(result.relation)
        assert streams.bisim(result.relation, ones, even)

    def test_reports_mismatch(self, streams: GreatestFixedPoint) -> None:
        ones = streams.corec(constant_ones, "one")
        counting = streams.corec(count_up, 1)
        result = streams.search_bisimulation(ones, counting)

        assert result.status is BisimulationStatus.MISMATCH
        assert result.mismatch is not None
        mismatched_left, mismatched_right = result.mismatch
        assert streams.dest(mismatched_left)[0] != streams.dest(mismatched_right)[0]

    def test_exhausts_budget(self, streams: GreatestFixedPoint) -> None:
        first = streams.corec(count_up, 0)
        second = streams.corec(lambda n: (n, n + 1), 0)
        result = streams.search_bisimulation(first, second, max_pairs=50)

        assert result.status is BisimulationStatus.EXHAUSTED
        assert len(result.relation) == 50

    def test_identical_values(self, streams: GreatestFixedPoint) -> None:
        stream = streams.corec(count_up, 0)
        result = streams.search_bisimulation(stream, stream)
        assert result.status is BisimulationStatus.BISIMILAR
        assert result.relation == frozenset()
