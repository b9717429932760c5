"""Structured representations of accumulation settings and results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from statchain.accumulators.chain import AccumulatorChain
from statchain.metrics import CORE_STATISTICS


def _core_names() -> list[str]:
    return [statistic.name for statistic in CORE_STATISTICS]


@dataclass
class AccumulationConfig:
    """Configuration for accumulation workflows.

    Collects the settings that can come from a TOML file or the command line.
    """

    statistics: list[str] = field(default_factory=_core_names)
    dynamic: bool = False
    ignore_label: int | None = 0
    n_jobs: int = 1
    n_partitions: int | None = None
    log_level: int = logging.INFO

    @property
    def partitions(self) -> int:
        """Number of data partitions, defaulting to one per job."""
        return self.n_partitions or self.n_jobs


@dataclass(frozen=True)
class PartitionResult:
    """Chain accumulated over one contiguous partition of the samples."""

    index: int
    start: int
    stop: int
    chain: AccumulatorChain

    @property
    def size(self) -> int:
        return self.stop - self.start
