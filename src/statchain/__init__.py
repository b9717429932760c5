"""Composable streaming statistics with dependency resolution and parallel merging.

This package builds accumulator chains that compute exactly a requested set
of statistics (count, mean, variance, higher moments, scatter matrices) plus
whatever they depend on, over scalar, vector or array samples. Partial chains
built on separate data partitions can be merged into one.
"""

from statchain.accumulators import (
    AccumulatorChain,
    DynamicAccumulatorChain,
    activate,
    build_chain,
    get,
    merge,
    reset,
    resolve_dependencies,
)
from statchain.errors import (
    AccessError,
    ConfigurationError,
    InactiveStatisticError,
    StatChainError,
    UnknownStatisticError,
)
from statchain.regions import RegionAccumulator

__all__ = [
    "AccessError",
    "AccumulatorChain",
    "ConfigurationError",
    "DynamicAccumulatorChain",
    "InactiveStatisticError",
    "RegionAccumulator",
    "StatChainError",
    "UnknownStatisticError",
    "activate",
    "build_chain",
    "get",
    "merge",
    "reset",
    "resolve_dependencies",
]
