"""Per-region fan-out of accumulator chains."""

from statchain.regions.labels import RegionAccumulator, RegionNotFoundError

__all__ = ["RegionAccumulator", "RegionNotFoundError"]
