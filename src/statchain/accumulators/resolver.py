"""Resolve requested statistics into a dependency-ordered sequence.

The registry forms a directed acyclic graph over statistic names. Resolution
walks it depth-first so that every statistic is preceded by everything it
depends on, and each distinct request is resolved only once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import lru_cache

from statchain.errors import ConfigurationError
from statchain.metrics.base import Statistic, get_statistic, registered_statistics

logger = logging.getLogger(__name__)

StatisticLike = Statistic | str


def _as_names(requested: StatisticLike | Iterable[StatisticLike]) -> tuple[str, ...]:
    """Normalise one statistic or an iterable of statistics to registered names."""
    if isinstance(requested, Statistic | str):
        requested = [requested]
    return tuple(get_statistic(item).name for item in requested)


def _push(statistic: Statistic, ordered: dict[str, Statistic], visiting: tuple[str, ...]) -> None:
    if statistic.name in ordered:
        return
    if statistic.name in visiting:
        cycle = " -> ".join((*visiting[visiting.index(statistic.name) :], statistic.name))
        raise ConfigurationError(f"Cyclic statistic dependency: {cycle}")
    for dependency in statistic.dependencies:
        _push(get_statistic(dependency), ordered, (*visiting, statistic.name))
    ordered[statistic.name] = statistic


@lru_cache(maxsize=None)
def _resolve_names(names: tuple[str, ...]) -> tuple[Statistic, ...]:
    ordered: dict[str, Statistic] = {}
    for name in names:
        _push(get_statistic(name), ordered, ())
    logger.debug("Resolved %s to %s", list(names), list(ordered))
    return tuple(ordered.values())


def resolve_dependencies(requested: StatisticLike | Iterable[StatisticLike]) -> tuple[Statistic, ...]:
    """Return the dependency closure of the requested statistics.

    Parameters
    ----------
    requested
        A statistic, a statistic name, or an iterable of either.

    Returns
    -------
    tuple[Statistic, ...]
        Every requested statistic and everything it transitively depends on,
        without duplicates, with dependencies strictly before dependents. The
        order is deterministic for a given request order.

    Raises
    ------
    UnknownStatisticError
        If a name is not registered.
    ConfigurationError
        If the registry contains a dependency cycle reachable from the request.

    Examples
    --------
    >>> [s.name for s in resolve_dependencies("Mean")]
    ['Sum', 'Count', 'Mean']
    """
    return _resolve_names(_as_names(requested))


def required_passes(statistics: Iterable[Statistic]) -> int:
    """Return how many passes over the data a set of statistics needs (1 or 2)."""
    return max((statistic.layer.passes for statistic in statistics), default=1)


def dependency_graph(statistics: Iterable[StatisticLike] | None = None) -> dict[str, tuple[str, ...]]:
    """Return the declared dependency edges as a mapping of name to dependency names.

    Parameters
    ----------
    statistics
        Restrict the graph to the closure of these statistics. Defaults to
        every registered statistic.
    """
    nodes = registered_statistics() if statistics is None else resolve_dependencies(statistics)
    return {statistic.name: statistic.dependencies for statistic in nodes}


def clear_resolution_cache() -> None:
    """Forget cached resolutions, e.g. after registering new statistics."""
    _resolve_names.cache_clear()
