"""Dependency resolution and accumulator chains."""

from statchain.accumulators.chain import (
    AccumulatorChain,
    DynamicAccumulatorChain,
    activate,
    build_chain,
    get,
    merge,
    reset,
)
from statchain.accumulators.resolver import (
    clear_resolution_cache,
    dependency_graph,
    required_passes,
    resolve_dependencies,
)

__all__ = [
    "AccumulatorChain",
    "DynamicAccumulatorChain",
    "activate",
    "build_chain",
    "clear_resolution_cache",
    "dependency_graph",
    "get",
    "merge",
    "required_passes",
    "reset",
    "resolve_dependencies",
]
