"""Tests for the partitioned accumulation runner."""

from __future__ import annotations

import logging
from unittest.mock import patch

import numpy as np
import pytest

from statchain.accumulators import AccumulatorChain, DynamicAccumulatorChain
from statchain.interfaces.models import AccumulationConfig, PartitionResult
from statchain.interfaces.runner import (
    InvalidPartitionCountError,
    _partition_bounds,
    accumulate_partitioned,
    accumulate_regions_partitioned,
    run_accumulation,
    run_region_accumulation,
)
from statchain.regions import RegionAccumulator

STATISTICS = ["Mean", "Variance", "Skewness", "Minimum"]


@pytest.fixture
def values() -> np.ndarray:
    return np.random.default_rng(11).normal(loc=3.0, size=101)


class TestPartitionBounds:
    """Tests for contiguous partitioning."""

    def test_bounds_cover_every_sample(self) -> None:
        """Test that partitions are contiguous and cover the range."""
        bounds = _partition_bounds(101, 4)

        assert bounds[0][0] == 0
        assert bounds[-1][1] == 101
        assert all(prev[1] == nxt[0] for prev, nxt in zip(bounds, bounds[1:]))

    def test_more_partitions_than_samples(self) -> None:
        """Test that empty partitions are dropped."""
        assert _partition_bounds(2, 5) == [(0, 1), (1, 2)]
        assert _partition_bounds(0, 3) == []

    def test_invalid_partition_count(self) -> None:
        with pytest.raises(InvalidPartitionCountError, match="n_partitions"):
            _partition_bounds(10, 0)


class TestAccumulatePartitioned:
    """Tests for accumulate_partitioned."""

    @pytest.mark.parametrize(("n_partitions", "n_jobs"), [(1, 1), (4, 1), (4, 2), (7, 3)])
    def test_matches_sequential_chain(self, values: np.ndarray, n_partitions: int, n_jobs: int) -> None:
        """Test that merging partitions reproduces the single-chain result."""
        expected = AccumulatorChain(STATISTICS).accumulate(values)
        result = accumulate_partitioned(values, STATISTICS, n_partitions=n_partitions, n_jobs=n_jobs)

        for name in STATISTICS:
            assert result.get(name) == pytest.approx(expected.get(name))

    def test_accepts_generators(self) -> None:
        result = accumulate_partitioned((float(i) for i in range(10)), "Mean", n_partitions=3)

        assert result.get("Mean") == pytest.approx(4.5)

    def test_weights(self, values: np.ndarray) -> None:
        weights = np.linspace(1.0, 2.0, values.size)
        expected = AccumulatorChain(["Mean", "Variance"]).accumulate(values, weights)
        result = accumulate_partitioned(values, ["Mean", "Variance"], weights=weights, n_partitions=5)

        assert result.get("Variance") == pytest.approx(expected.get("Variance"))

    def test_weight_length_mismatch(self, values: np.ndarray) -> None:
        with pytest.raises(ValueError, match="weights"):
            accumulate_partitioned(values, "Mean", weights=[1.0, 2.0])

    def test_invalid_job_count(self, values: np.ndarray) -> None:
        with pytest.raises(InvalidPartitionCountError, match="n_jobs"):
            accumulate_partitioned(values, "Mean", n_jobs=0)

    def test_dynamic_chains(self, values: np.ndarray) -> None:
        result = accumulate_partitioned(values, ["Mean"], n_partitions=3, dynamic=True)

        assert isinstance(result, DynamicAccumulatorChain)
        assert result.get("Mean") == pytest.approx(values.mean())

    def test_partition_failure_is_logged_and_raised(self, values: np.ndarray, caplog) -> None:
        """Test that a failing partition propagates its exception."""
        with (
            patch(
                "statchain.interfaces.runner._accumulate_partition",
                side_effect=RuntimeError("boom"),
            ),
            caplog.at_level(logging.ERROR, logger="statchain.interfaces.runner"),
            pytest.raises(RuntimeError, match="boom"),
        ):
            accumulate_partitioned(values, "Mean", n_partitions=2)

        assert "Failed to accumulate partition" in caplog.text

    def test_partitions_are_merged_in_order(self, values: np.ndarray) -> None:
        """Test that partial chains are merged by partition index."""
        seen: list[int] = []
        original_merge = AccumulatorChain.merge

        def recording_merge(self, other):
            seen.append(int(other.get("Count")))
            return original_merge(self, other)

        with patch.object(AccumulatorChain, "merge", recording_merge):
            accumulate_partitioned(values, "Mean", n_partitions=4, n_jobs=4)

        assert seen == [26, 25, 25, 25]


class TestRegionsPartitioned:
    """Tests for accumulate_regions_partitioned."""

    def test_matches_whole_volume(self) -> None:
        rng = np.random.default_rng(5)
        labels = rng.integers(0, 4, size=(6, 5, 4))
        volume = rng.normal(size=(6, 5, 4))
        expected = RegionAccumulator(["Mean", "Kurtosis"]).accumulate(labels, volume)
        result = accumulate_regions_partitioned(labels, volume, ["Mean", "Kurtosis"], n_partitions=3, n_jobs=2)

        assert result.regions == expected.regions
        for label in expected.regions:
            assert result.get(label, "Mean") == pytest.approx(expected.get(label, "Mean"))
            assert result.get(label, "Kurtosis") == pytest.approx(expected.get(label, "Kurtosis"))


class TestRunAccumulation:
    """Tests for run_accumulation."""

    def test_uses_config(self, values: np.ndarray) -> None:
        config = AccumulationConfig(statistics=["Mean", "StdDev"], n_jobs=2, n_partitions=5)
        result = run_accumulation(values, config)

        assert result.requested == ("Mean", "StdDev")
        assert result.get("StdDev") == pytest.approx(values.std())

    def test_region_workflow_uses_ignore_label(self) -> None:
        """Test that the configured ignore label is skipped."""
        labels = np.array([[-1, 0, 0], [1, 1, -1]])
        volume = np.array([[9.0, 2.0, 4.0], [1.0, 5.0, 9.0]])
        config = AccumulationConfig(statistics=["Mean"], ignore_label=-1, n_jobs=2)
        result = run_region_accumulation(labels, volume, config)

        assert result.regions == (0, 1)
        assert result.get(0, "Mean") == pytest.approx(3.0)
        assert result.get(1, "Mean") == pytest.approx(3.0)

    def test_region_workflow_keeps_every_label(self) -> None:
        config = AccumulationConfig(statistics=["Count"], ignore_label=None)
        result = run_region_accumulation(np.array([0, 0, 2]), np.array([1.0, 2.0, 3.0]), config)

        assert result.get(0, "Count") == 2.0

    def test_partition_result_size(self) -> None:
        result = PartitionResult(index=0, start=3, stop=10, chain=AccumulatorChain("Count"))

        assert result.size == 7
