"""Configuration, parsing and workflow helpers around accumulator chains.

This subpackage contains:

- ``models``: configuration and result dataclasses
- ``config``: TOML configuration loading with CLI overrides
- ``runner``: sharded accumulation with merge reduction
- ``utils``: shared parsing helpers
"""

from statchain.interfaces.config import load_config
from statchain.interfaces.models import AccumulationConfig, PartitionResult
from statchain.interfaces.runner import (
    accumulate_partitioned,
    accumulate_regions_partitioned,
    run_accumulation,
    run_region_accumulation,
)

__all__ = [
    "AccumulationConfig",
    "PartitionResult",
    "accumulate_partitioned",
    "accumulate_regions_partitioned",
    "load_config",
    "run_accumulation",
    "run_region_accumulation",
]
