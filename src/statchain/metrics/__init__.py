"""Statistics that can be composed into accumulator chains.

Each built-in statistic is exported as a :class:`~statchain.metrics.base.Statistic`
descriptor named after the quantity it computes (``Mean``, ``Variance``, ...).
Descriptors and their string names can be used interchangeably wherever a
statistic is expected.

Tier system
-----------
Statistics are grouped into named tiers for convenience:

- ``"core"``: single-pass descriptors (count, sum, mean, std, min, max).
- ``"moments"``: core + variances, skewness and kurtosis (two passes).
- ``"all"``: every built-in statistic, including the scatter/covariance matrices.
"""

from statchain.metrics.base import (
    Statistic,
    StatisticLayer,
    get_statistic,
    register_statistic,
    registered_statistics,
)
from statchain.metrics.moments import (
    BUILTIN_STATISTICS,
    CORE_STATISTICS,
    MOMENT_STATISTICS,
    SSD,
    STATISTIC_TIERS,
    CentralMoment2,
    CentralMoment3,
    CentralMoment4,
    Count,
    Covariance,
    Kurtosis,
    Maximum,
    Mean,
    Minimum,
    ScatterMatrix,
    Skewness,
    StdDev,
    Sum,
    SumSquaredDifferences,
    UnbiasedCovariance,
    UnbiasedStdDev,
    UnbiasedVariance,
    Variance,
    central_moment,
)

__all__ = [
    "BUILTIN_STATISTICS",
    "CORE_STATISTICS",
    "MOMENT_STATISTICS",
    "SSD",
    "STATISTIC_TIERS",
    "CentralMoment2",
    "CentralMoment3",
    "CentralMoment4",
    "Count",
    "Covariance",
    "Kurtosis",
    "Maximum",
    "Mean",
    "Minimum",
    "ScatterMatrix",
    "Skewness",
    "Statistic",
    "StatisticLayer",
    "StdDev",
    "Sum",
    "SumSquaredDifferences",
    "UnbiasedCovariance",
    "UnbiasedStdDev",
    "UnbiasedVariance",
    "Variance",
    "central_moment",
    "get_statistic",
    "register_statistic",
    "registered_statistics",
]
