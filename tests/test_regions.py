"""Tests for statchain.regions.labels."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from statchain.accumulators import DynamicAccumulatorChain
from statchain.errors import AccessError
from statchain.regions import RegionAccumulator
from statchain.regions.labels import RegionNotFoundError


@pytest.fixture
def labelled() -> tuple[np.ndarray, np.ndarray]:
    labels = np.array([[0, 1, 1], [2, 2, 0], [1, 2, 3]])
    values = np.array([[9.0, 1.0, 3.0], [4.0, 6.0, 9.0], [5.0, 8.0, 7.0]])
    return labels, values


class TestRegionAccumulator:
    """Per-label accumulation."""

    def test_background_is_ignored(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["Mean"]).accumulate(labels, values)

        assert regions.regions == (1, 2, 3)
        assert 0 not in regions
        assert len(regions) == 3

    def test_per_region_statistics(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["Mean", "Variance", "Maximum"]).accumulate(labels, values)

        assert regions.get(1, "Mean") == pytest.approx(3.0)
        assert regions.get(2, "Mean") == pytest.approx(6.0)
        assert regions.get(2, "Variance") == pytest.approx(8.0 / 3.0)
        assert regions.get(3, "Maximum") == 7.0

    def test_keep_every_label(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["Count"], ignore_label=None).accumulate(labels, values)

        assert regions.get(0, "Count") == 2.0

    def test_two_pass_statistics(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["CentralMoment2"]).accumulate(labels, values)

        assert regions.passes_required() == 2
        assert regions.get(1, "CentralMoment2") == pytest.approx(np.var([1.0, 3.0, 5.0]))

    def test_weights(self, labelled) -> None:
        labels, values = labelled
        weights = np.where(labels == 1, 2.0, 1.0)
        regions = RegionAccumulator(["Count", "Mean"]).accumulate(labels, values, weights)

        assert regions.get(1, "Count") == 6.0
        assert regions.get(1, "Mean") == pytest.approx(3.0)

    def test_region_with_zero_weights(self, labelled) -> None:
        labels, values = labelled
        weights = np.where(labels == 3, 0.0, 1.0)
        regions = RegionAccumulator(["Mean", "Skewness"]).accumulate(labels, values, weights)

        assert regions.get(3, "Count") == 0.0
        assert np.isnan(regions.get(3, "Skewness"))
        assert regions.get(1, "Mean") == pytest.approx(3.0)

    def test_vector_samples_with_trailing_axis(self) -> None:
        labels = np.array([1, 1, 2])
        values = np.array([[1.0, 10.0], [3.0, 30.0], [5.0, 50.0]])
        regions = RegionAccumulator(["Mean"]).accumulate(labels, values)

        np.testing.assert_allclose(regions.get(1, "Mean"), [2.0, 20.0])
        np.testing.assert_allclose(regions.get(2, "Mean"), [5.0, 50.0])

    def test_preallocated_labels(self) -> None:
        regions = RegionAccumulator(["Count"], labels=[4, 5])

        assert regions.regions == (4, 5)
        assert regions.get(5, "Count") == 0.0

    def test_dynamic_chains(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["Mean", "Skewness"], dynamic=True, active=["Mean"])
        regions.accumulate(labels, values)

        assert isinstance(regions.chain(1), DynamicAccumulatorChain)
        assert regions.passes_required() == 1
        assert not regions.chain(1).is_active("Skewness")

    def test_missing_region(self) -> None:
        regions = RegionAccumulator(["Mean"])

        with pytest.raises(RegionNotFoundError, match="region 7"):
            regions.get(7, "Mean")
        assert issubclass(RegionNotFoundError, AccessError)

    def test_float_labels_rejected(self) -> None:
        with pytest.raises(ValueError, match="integers"):
            RegionAccumulator(["Mean"]).update(np.array([1.0, 2.0]), np.array([1.0, 2.0]))

    def test_shape_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError, match="do not match"):
            RegionAccumulator(["Mean"]).update(np.array([1, 2]), np.array([1.0, 2.0, 3.0]))

    def test_reset(self, labelled) -> None:
        labels, values = labelled
        regions = RegionAccumulator(["Mean"]).accumulate(labels, values)
        regions.reset()

        assert len(regions) == 0


class TestRegionMerge:
    """Merging region accumulators built on separate slabs."""

    def test_merge_matches_whole(self, labelled) -> None:
        labels, values = labelled
        whole = RegionAccumulator(["Mean", "Variance"]).accumulate(labels, values)
        top = RegionAccumulator(["Mean", "Variance"]).accumulate(labels[:1], values[:1])
        bottom = RegionAccumulator(["Mean", "Variance"]).accumulate(labels[1:], values[1:])
        top += bottom

        assert top.regions == whole.regions
        for label in whole.regions:
            assert top.get(label, "Variance") == pytest.approx(whole.get(label, "Variance"))

    def test_merge_copies_new_regions(self) -> None:
        left = RegionAccumulator(["Count"]).accumulate(np.array([1]), np.array([1.0]))
        right = RegionAccumulator(["Count"]).accumulate(np.array([2]), np.array([1.0]))
        left.merge(right)
        left.chain(2).update(5.0)

        assert right.get(2, "Count") == 1.0
        assert left.get(2, "Count") == 2.0


class TestRegionFrame:
    """Tabular export."""

    def test_to_frame(self, labelled) -> None:
        labels, values = labelled
        frame = RegionAccumulator(["Count", "Mean"]).accumulate(labels, values).to_frame()

        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["label", "Count", "Mean"]
        assert frame["label"].tolist() == [1, 2, 3]
        assert frame["Count"].tolist() == [3.0, 3.0, 1.0]

    def test_to_frame_nests_arrays(self) -> None:
        regions = RegionAccumulator(["Mean"]).accumulate(np.array([1, 1]), np.array([[1.0, 2.0], [3.0, 4.0]]))
        frame = regions.to_frame()

        assert frame.loc[0, "Mean"] == [2.0, 3.0]
