"""Tests for statchain.accumulators.resolver."""

from __future__ import annotations

import itertools

import pytest

from statchain.accumulators.resolver import (
    dependency_graph,
    required_passes,
    resolve_dependencies,
)
from statchain.errors import ConfigurationError, UnknownStatisticError
from statchain.metrics import BUILTIN_STATISTICS, Mean, Statistic, StatisticLayer, Variance
from statchain.metrics import base as metrics_base


def _names(statistics) -> list[str]:
    return [s.name for s in statistics]


class TestResolveDependencies:
    """Tests for dependency closure and ordering."""

    def test_statistic_without_dependencies_resolves_to_itself(self) -> None:
        assert _names(resolve_dependencies("Count")) == ["Count"]

    def test_mean_pulls_in_sum_and_count(self) -> None:
        assert _names(resolve_dependencies(Mean)) == ["Sum", "Count", "Mean"]

    def test_variance_order(self) -> None:
        assert _names(resolve_dependencies(Variance)) == [
            "Sum",
            "Count",
            "Mean",
            "SumSquaredDifferences",
            "Variance",
        ]

    def test_kurtosis_pulls_in_lower_central_moments(self) -> None:
        assert _names(resolve_dependencies("Kurtosis")) == [
            "Sum",
            "Count",
            "Mean",
            "CentralMoment2",
            "CentralMoment3",
            "CentralMoment4",
            "Kurtosis",
        ]

    def test_duplicates_removed_first_occurrence_wins(self) -> None:
        resolved = _names(resolve_dependencies(["Mean", "Sum", "Count", "Mean"]))
        assert resolved == ["Sum", "Count", "Mean"]

    def test_empty_request(self) -> None:
        assert resolve_dependencies([]) == ()

    def test_alias_resolves_to_canonical_name(self) -> None:
        assert _names(resolve_dependencies("SSD"))[-1] == "SumSquaredDifferences"

    def test_unknown_statistic_raises(self) -> None:
        with pytest.raises(UnknownStatisticError, match="Median"):
            resolve_dependencies(["Mean", "Median"])

    def test_resolution_is_cached(self) -> None:
        first = resolve_dependencies(["Skewness", "Variance"])
        second = resolve_dependencies(["Skewness", "Variance"])
        assert first is second

    @pytest.mark.parametrize("pair", list(itertools.combinations([s.name for s in BUILTIN_STATISTICS], 2)))
    def test_dependencies_precede_dependents(self, pair) -> None:
        resolved = resolve_dependencies(pair)
        position = {s.name: i for i, s in enumerate(resolved)}
        assert len(position) == len(resolved)
        assert set(pair) <= set(position)
        for statistic in resolved:
            for dependency in statistic.dependencies:
                assert position[dependency] < position[statistic.name]

    def test_cycle_is_reported(self, monkeypatch) -> None:
        monkeypatch.setitem(metrics_base._REGISTRY, "CycleA", Statistic("CycleA", StatisticLayer, ("CycleB",)))
        monkeypatch.setitem(metrics_base._REGISTRY, "CycleB", Statistic("CycleB", StatisticLayer, ("CycleA",)))

        with pytest.raises(ConfigurationError) as exc_info:
            resolve_dependencies("CycleA")

        assert "CycleA -> CycleB -> CycleA" in str(exc_info.value)


class TestDependencyGraph:
    """Tests for the explicit dependency graph."""

    def test_restricted_graph_contains_closure_only(self) -> None:
        graph = dependency_graph(["Variance"])
        assert set(graph) == {"Sum", "Count", "Mean", "SumSquaredDifferences", "Variance"}
        assert graph["Variance"] == ("SumSquaredDifferences", "Count")
        assert graph["Count"] == ()

    def test_full_graph_covers_builtins(self) -> None:
        graph = dependency_graph()
        for statistic in BUILTIN_STATISTICS:
            assert graph[statistic.name] == statistic.dependencies


class TestRequiredPasses:
    """Tests for pass counting."""

    def test_single_pass(self) -> None:
        assert required_passes(resolve_dependencies(["Mean", "Variance", "Covariance"])) == 1

    def test_central_moments_need_two_passes(self) -> None:
        assert required_passes(resolve_dependencies(["Mean", "Skewness"])) == 2

    def test_empty(self) -> None:
        assert required_passes([]) == 1
