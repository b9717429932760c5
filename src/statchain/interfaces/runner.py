"""Run sharded accumulation workflows.

Samples are split into contiguous partitions, one independent chain is
accumulated per partition in a thread pool, and the partial chains are then
merged sequentially in partition order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

import numpy as np

from statchain.accumulators.chain import AccumulatorChain, build_chain
from statchain.accumulators.resolver import StatisticLike, _as_names
from statchain.interfaces.models import AccumulationConfig, PartitionResult
from statchain.regions.labels import RegionAccumulator

logger = logging.getLogger(__name__)


class InvalidPartitionCountError(ValueError):
    """Raised when the number of partitions or jobs is not positive."""

    def __init__(self, name: str, value: int):
        """Initialize the error."""
        super().__init__(f"{name} must be a positive integer, got {value}")


def _partition_bounds(n_samples: int, n_partitions: int) -> list[tuple[int, int]]:
    """Split ``range(n_samples)`` into at most ``n_partitions`` non-empty contiguous ranges.

    Examples
    --------
    >>> _partition_bounds(10, 3)
    [(0, 4), (4, 7), (7, 10)]
    >>> _partition_bounds(2, 4)
    [(0, 1), (1, 2)]
    """
    if n_partitions < 1:
        raise InvalidPartitionCountError("n_partitions", n_partitions)
    base, extra = divmod(n_samples, n_partitions)
    bounds = []
    start = 0
    for i in range(n_partitions):
        stop = start + base + (1 if i < extra else 0)
        if stop > start:
            bounds.append((start, stop))
        start = stop
    return bounds


def _accumulate_partition(
    index: int,
    start: int,
    stop: int,
    samples: Sequence[Any],
    weights: Sequence[float] | None,
    statistics: tuple[str, ...],
    dynamic: bool,
) -> PartitionResult:
    """Accumulate a single partition into a fresh chain."""
    logger.debug("Accumulating partition %d [%d:%d]", index, start, stop)
    chain = build_chain(statistics, dynamic=dynamic)
    chain.accumulate(samples[start:stop], None if weights is None else weights[start:stop])
    return PartitionResult(index=index, start=start, stop=stop, chain=chain)


def accumulate_partitioned(
    values: Iterable[Any],
    statistics: StatisticLike | Iterable[StatisticLike],
    *,
    weights: Iterable[float] | None = None,
    n_partitions: int | None = None,
    n_jobs: int = 1,
    dynamic: bool = False,
) -> AccumulatorChain:
    """Accumulate samples partition by partition and merge the partial chains.

    Parameters
    ----------
    values
        The samples.
    statistics
        Statistics to compute.
    weights
        Optional per-sample weights.
    n_partitions
        Number of contiguous partitions; defaults to ``n_jobs``.
    n_jobs
        Number of worker threads.
    dynamic
        Build dynamic chains with the requested statistics active.

    Returns
    -------
    AccumulatorChain
        A chain equivalent (up to rounding) to one fed every sample in order.
    """
    if n_jobs < 1:
        raise InvalidPartitionCountError("n_jobs", n_jobs)
    names = _as_names(statistics)
    samples = values if isinstance(values, Sequence | np.ndarray) else list(values)
    sample_weights = None if weights is None else list(weights)
    if sample_weights is not None and len(sample_weights) != len(samples):
        raise ValueError(f"Got {len(sample_weights)} weights for {len(samples)} samples.")
    bounds = _partition_bounds(len(samples), n_partitions or n_jobs)
    logger.info("Accumulating %d samples in %d partitions with %d jobs", len(samples), len(bounds), n_jobs)

    results: dict[int, PartitionResult] = {}
    with ThreadPoolExecutor(max_workers=n_jobs) as executor:
        future_to_index = {
            executor.submit(_accumulate_partition, i, start, stop, samples, sample_weights, names, dynamic): i
            for i, (start, stop) in enumerate(bounds)
        }
        for future in as_completed(future_to_index):
            i = future_to_index[future]
            try:
                results[i] = future.result()
            except Exception:
                logger.exception("Failed to accumulate partition %d", i)
                raise

    total = build_chain(names, dynamic=dynamic)
    for i in sorted(results):
        total.merge(results[i].chain)
    logger.info("Merged %d partial chains", len(results))
    return total


def accumulate_regions_partitioned(
    labels: Any,
    values: Any,
    statistics: StatisticLike | Iterable[StatisticLike],
    *,
    weights: Any | None = None,
    ignore_label: int | None = 0,
    n_partitions: int | None = None,
    n_jobs: int = 1,
    dynamic: bool = False,
) -> RegionAccumulator:
    """Accumulate per-region statistics over slabs of the first axis and merge them.

    ``labels`` and ``values`` are split along axis 0; every slab is fed to its
    own :class:`~statchain.regions.RegionAccumulator` and the results are merged.
    """
    if n_jobs < 1:
        raise InvalidPartitionCountError("n_jobs", n_jobs)
    label_data = np.asarray(labels)
    value_data = np.asarray(values)
    weight_data = None if weights is None else np.asarray(weights)
    bounds = _partition_bounds(label_data.shape[0] if label_data.ndim else 0, n_partitions or n_jobs)

    def _run(start: int, stop: int) -> RegionAccumulator:
        partial = RegionAccumulator(statistics, ignore_label=ignore_label, dynamic=dynamic)
        return partial.accumulate(
            label_data[start:stop],
            value_data[start:stop],
            None if weight_data is None else weight_data[start:stop],
        )

    partials: dict[int, RegionAccumulator] = {}
    with ThreadPoolExecutor(max_workers=n_jobs) as executor:
        future_to_index = {executor.submit(_run, start, stop): i for i, (start, stop) in enumerate(bounds)}
        for future in as_completed(future_to_index):
            i = future_to_index[future]
            try:
                partials[i] = future.result()
            except Exception:
                logger.exception("Failed to accumulate region slab %d", i)
                raise

    total = RegionAccumulator(statistics, ignore_label=ignore_label, dynamic=dynamic)
    for i in sorted(partials):
        total.merge(partials[i])
    logger.info("Merged %d region slabs covering %d regions", len(partials), len(total))
    return total


def run_accumulation(
    values: Iterable[Any],
    config: AccumulationConfig,
    weights: Iterable[float] | None = None,
) -> AccumulatorChain:
    """Run :func:`accumulate_partitioned` with settings from a configuration."""
    return accumulate_partitioned(
        values,
        config.statistics,
        weights=weights,
        n_partitions=config.partitions,
        n_jobs=config.n_jobs,
        dynamic=config.dynamic,
    )


def run_region_accumulation(
    labels: Any,
    values: Any,
    config: AccumulationConfig,
    weights: Any | None = None,
) -> RegionAccumulator:
    """Run :func:`accumulate_regions_partitioned` with settings from a configuration.

    Samples labelled ``config.ignore_label`` are skipped.
    """
    return accumulate_regions_partitioned(
        labels,
        values,
        config.statistics,
        weights=weights,
        ignore_label=config.ignore_label,
        n_partitions=config.partitions,
        n_jobs=config.n_jobs,
        dynamic=config.dynamic,
    )
