"""
The built-in battery of accumulated statistics.

Every statistic is a :class:`~statchain.metrics.base.StatisticLayer` paired
with a :class:`~statchain.metrics.base.Statistic` descriptor declaring what it
depends on. Layers that need an aggregate of the *previous* state (the running
mean before the current sample is counted, both sides' means before a merge)
rely on the chain visiting dependents before their dependencies.
"""

from __future__ import annotations

from typing import Any, ClassVar

import numpy as np

from statchain.errors import ConfigurationError
from statchain.metrics.base import Statistic, StatisticLayer, register_statistic
from statchain.utils.arrays import _extreme


def _divide(numerator: Any, denominator: float) -> Any:
    """Divide without raising on empty accumulators; 0/0 yields NaN."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.true_divide(numerator, denominator)


def _copy(value: Any) -> Any:
    return value.copy() if isinstance(value, np.ndarray) else value


def _weight(weight: float | None) -> float:
    return 1.0 if weight is None else weight


def _weighted_outer(values: Any, weight: float) -> Any:
    """Return ``weight * outer(values, values)`` on the flattened sample."""
    if np.ndim(values) == 0:
        return weight * values * values
    flat = np.ravel(values)
    return weight * np.outer(flat, flat)


# =============================================================================
# FIRST-PASS ACCUMULATORS
# =============================================================================


class CountLayer(StatisticLayer):
    """Number of samples, or the sum of weights for weighted samples."""

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.count = 0.0

    def reset(self) -> None:
        self.count = 0.0

    def update(self, value, weight) -> None:
        self.count += _weight(weight)

    def merge(self, other: CountLayer) -> None:
        self.count += other.count

    def value(self) -> float:
        return self.count


class SumLayer(StatisticLayer):
    """Elementwise (weighted) sum of the samples."""

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.total = 0.0

    def reset(self) -> None:
        self.total = 0.0

    def reshape(self, shape, dtype) -> None:
        self.total = np.zeros(shape, dtype=np.float64)

    def update(self, value, weight) -> None:
        if weight is None:
            self.total += value
        else:
            self.total += weight * value

    def merge(self, other: SumLayer) -> None:
        self.total = self.total + other.total

    def value(self) -> Any:
        return self.total


class _ExtremumLayer(StatisticLayer):
    """Shared implementation of the elementwise minimum and maximum."""

    keeps_largest: ClassVar[bool]
    supports_weights = False

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.reset()

    def reset(self) -> None:
        self.extremum = -np.inf if self.keeps_largest else np.inf

    def reshape(self, shape, dtype) -> None:
        self.extremum = np.full(shape, _extreme(dtype, lowest=self.keeps_largest), dtype=dtype)

    def _combine(self, left: Any, right: Any) -> Any:
        return np.maximum(left, right) if self.keeps_largest else np.minimum(left, right)

    def update(self, value, weight) -> None:
        if weight is not None:
            raise ConfigurationError(f"{self.name} accumulator does not support weights.")
        self.extremum = self._combine(self.extremum, value)

    def merge(self, other: _ExtremumLayer) -> None:
        self.extremum = self._combine(self.extremum, other.extremum)

    def value(self) -> Any:
        return self.extremum


class MinimumLayer(_ExtremumLayer):
    keeps_largest = False


class MaximumLayer(_ExtremumLayer):
    keeps_largest = True


class MeanLayer(StatisticLayer):
    def value(self) -> Any:
        return _divide(self.dependency("Sum").value(), self.dependency("Count").value())


class SumSquaredDifferencesLayer(StatisticLayer):
    """Sum of squared deviations from the mean, updated incrementally.

    The update reads ``Sum`` and ``Count`` before they advance for the current
    sample, which is what the one-pass formula requires.
    """

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.ssd = 0.0

    def reset(self) -> None:
        self.ssd = 0.0

    def reshape(self, shape, dtype) -> None:
        self.ssd = np.zeros(shape, dtype=np.float64)

    def update(self, value, weight) -> None:
        old_count = self.dependency("Count").count
        if old_count != 0.0:
            w = _weight(weight)
            diff = self.dependency("Sum").total / old_count - value
            self.ssd += old_count / (old_count + w) * w * diff * diff

    def merge(self, other: SumSquaredDifferencesLayer) -> None:
        count_l = self.dependency("Count").count
        count_r = other.dependency("Count").count
        if count_r == 0.0:
            return
        if count_l == 0.0:
            self.ssd = _copy(other.ssd)
            return
        weight = count_l * count_r / (count_l + count_r)
        delta = self.dependency("Sum").total / count_l - other.dependency("Sum").total / count_r
        self.ssd = self.ssd + other.ssd + weight * delta * delta

    def value(self) -> Any:
        return self.ssd


class VarianceLayer(StatisticLayer):
    def value(self) -> Any:
        return _divide(self.dependency("SumSquaredDifferences").ssd, self.dependency("Count").count)


class StdDevLayer(StatisticLayer):
    def value(self) -> Any:
        return np.sqrt(self.dependency("Variance").value())


class UnbiasedVarianceLayer(StatisticLayer):
    def value(self) -> Any:
        return _divide(self.dependency("SumSquaredDifferences").ssd, self.dependency("Count").count - 1.0)


class UnbiasedStdDevLayer(StatisticLayer):
    def value(self) -> Any:
        return np.sqrt(self.dependency("UnbiasedVariance").value())


# =============================================================================
# SCATTER / COVARIANCE
# =============================================================================


class ScatterMatrixLayer(StatisticLayer):
    """Scatter matrix of the flattened samples.

    Array samples of ``size`` elements produce a ``(size, size)`` matrix;
    scalar samples produce a scalar equal to the sum of squared differences.
    """

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.scatter = 0.0

    def reset(self) -> None:
        self.scatter = 0.0

    def reshape(self, shape, dtype) -> None:
        size = int(np.prod(shape))
        self.scatter = np.zeros((size, size), dtype=np.float64)

    def update(self, value, weight) -> None:
        old_count = self.dependency("Count").count
        if old_count != 0.0:
            w = _weight(weight)
            diff = self.dependency("Sum").total / old_count - value
            self.scatter += _weighted_outer(diff, old_count / (old_count + w) * w)

    def merge(self, other: ScatterMatrixLayer) -> None:
        count_l = self.dependency("Count").count
        count_r = other.dependency("Count").count
        if count_r == 0.0:
            return
        if count_l == 0.0:
            self.scatter = _copy(other.scatter)
            return
        diff = self.dependency("Sum").total / count_l - other.dependency("Sum").total / count_r
        weight = count_l * count_r / (count_l + count_r)
        self.scatter = self.scatter + other.scatter + _weighted_outer(diff, weight)

    def value(self) -> Any:
        return self.scatter


class CovarianceLayer(StatisticLayer):
    def value(self) -> Any:
        return _divide(self.dependency("ScatterMatrix").scatter, self.dependency("Count").count)


class UnbiasedCovarianceLayer(StatisticLayer):
    def value(self) -> Any:
        return _divide(self.dependency("ScatterMatrix").scatter, self.dependency("Count").count - 1.0)


# =============================================================================
# TWO-PASS CENTRAL MOMENTS
# =============================================================================


class _CentralMomentLayer(StatisticLayer):
    """Sum of ``weight * (x - mean) ** order`` accumulated in the second pass.

    ``moment`` holds the raw sum; :meth:`value` normalises it by ``Count``.
    The first pass only advances ``Sum`` and ``Count`` further down the chain.
    """

    order: ClassVar[int]
    passes = 2

    def __init__(self, name, index) -> None:
        super().__init__(name, index)
        self.moment = 0.0

    def reset(self) -> None:
        self.moment = 0.0

    def reshape(self, shape, dtype) -> None:
        self.moment = np.zeros(shape, dtype=np.float64)

    def update_pass2(self, value, weight) -> None:
        mean = _divide(self.dependency("Sum").total, self.dependency("Count").count)
        self.moment += _weight(weight) * (value - mean) ** self.order

    def _lower(self, order: int) -> Any:
        return self.dependency(f"CentralMoment{order}").moment

    def merge(self, other: _CentralMomentLayer) -> None:
        count_l = self.dependency("Count").count
        count_r = other.dependency("Count").count
        if count_r == 0.0:
            return
        if count_l == 0.0:
            self.moment = _copy(other.moment)
            return
        count = count_l + count_r
        delta = other.dependency("Sum").total / count_r - self.dependency("Sum").total / count_l
        self.moment = self.moment + other.moment + self._cross_terms(count_l, count_r, count, delta, other)

    def _cross_terms(self, count_l, count_r, count, delta, other) -> Any:
        raise NotImplementedError

    def value(self) -> Any:
        return _divide(self.moment, self.dependency("Count").count)


class CentralMoment2Layer(_CentralMomentLayer):
    order = 2

    def _cross_terms(self, count_l, count_r, count, delta, other):
        return count_l * count_r / count * delta**2


class CentralMoment3Layer(_CentralMomentLayer):
    order = 3

    def _cross_terms(self, count_l, count_r, count, delta, other):
        m2_l, m2_r = self._lower(2), other._lower(2)
        return (
            count_l * count_r * (count_l - count_r) / count**2 * delta**3
            + 3.0 * delta * (count_l * m2_r - count_r * m2_l) / count
        )


class CentralMoment4Layer(_CentralMomentLayer):
    order = 4

    def _cross_terms(self, count_l, count_r, count, delta, other):
        m2_l, m2_r = self._lower(2), other._lower(2)
        m3_l, m3_r = self._lower(3), other._lower(3)
        count_l_2 = count_l * count_l
        count_r_2 = count_r * count_r
        return (
            count_l * count_r * (count_l_2 - count_l * count_r + count_r_2) / count**3 * delta**4
            + 6.0 * delta**2 * (count_l_2 * m2_r + count_r_2 * m2_l) / count**2
            + 4.0 * delta * (count_l * m3_r - count_r * m3_l) / count
        )


class SkewnessLayer(StatisticLayer):
    def value(self) -> Any:
        count = self.dependency("Count").count
        m2 = self.dependency("CentralMoment2").moment
        m3 = self.dependency("CentralMoment3").moment
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.sqrt(count) * m3 / np.power(m2, 1.5)


class KurtosisLayer(StatisticLayer):
    """Pearson kurtosis ``n * M4 / M2**2`` (3.0 for a normal distribution)."""

    def value(self) -> Any:
        count = self.dependency("Count").count
        m2 = self.dependency("CentralMoment2").moment
        m4 = self.dependency("CentralMoment4").moment
        with np.errstate(divide="ignore", invalid="ignore"):
            return count * m4 / (m2 * m2)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

Count = register_statistic(
    Statistic("Count", CountLayer, description="Number of samples, or the sum of weights."),
)
Sum = register_statistic(Statistic("Sum", SumLayer, description="Elementwise sum of the samples."))
Minimum = register_statistic(Statistic("Minimum", MinimumLayer, description="Elementwise minimum."))
Maximum = register_statistic(Statistic("Maximum", MaximumLayer, description="Elementwise maximum."))
Mean = register_statistic(
    Statistic("Mean", MeanLayer, ("Sum", "Count"), description="Sum divided by Count."),
)
SumSquaredDifferences = register_statistic(
    Statistic(
        "SumSquaredDifferences",
        SumSquaredDifferencesLayer,
        ("Mean", "Count"),
        description="Sum of squared deviations from the mean (one pass).",
    ),
    "SSD",
)
SSD = SumSquaredDifferences
Variance = register_statistic(
    Statistic(
        "Variance",
        VarianceLayer,
        ("SumSquaredDifferences", "Count"),
        description="Population variance.",
    ),
)
StdDev = register_statistic(
    Statistic("StdDev", StdDevLayer, ("Variance",), description="Population standard deviation."),
)
UnbiasedVariance = register_statistic(
    Statistic(
        "UnbiasedVariance",
        UnbiasedVarianceLayer,
        ("SumSquaredDifferences", "Count"),
        description="Sample variance with Bessel's correction.",
    ),
)
UnbiasedStdDev = register_statistic(
    Statistic(
        "UnbiasedStdDev",
        UnbiasedStdDevLayer,
        ("UnbiasedVariance",),
        description="Square root of the unbiased variance.",
    ),
)
CentralMoment2 = register_statistic(
    Statistic(
        "CentralMoment2",
        CentralMoment2Layer,
        ("Mean", "Count"),
        description="Second central moment (two passes).",
    ),
)
CentralMoment3 = register_statistic(
    Statistic(
        "CentralMoment3",
        CentralMoment3Layer,
        ("Mean", "Count", "CentralMoment2"),
        description="Third central moment (two passes).",
    ),
)
CentralMoment4 = register_statistic(
    Statistic(
        "CentralMoment4",
        CentralMoment4Layer,
        ("Mean", "Count", "CentralMoment3"),
        description="Fourth central moment (two passes).",
    ),
)
Skewness = register_statistic(
    Statistic("Skewness", SkewnessLayer, ("CentralMoment3",), description="Third standardized moment."),
)
Kurtosis = register_statistic(
    Statistic("Kurtosis", KurtosisLayer, ("CentralMoment4",), description="Fourth standardized moment."),
)
ScatterMatrix = register_statistic(
    Statistic(
        "ScatterMatrix",
        ScatterMatrixLayer,
        ("Mean", "Count"),
        description="Scatter matrix of the flattened samples.",
    ),
)
Covariance = register_statistic(
    Statistic(
        "Covariance",
        CovarianceLayer,
        ("ScatterMatrix", "Count"),
        description="Population covariance matrix.",
    ),
)
UnbiasedCovariance = register_statistic(
    Statistic(
        "UnbiasedCovariance",
        UnbiasedCovarianceLayer,
        ("ScatterMatrix", "Count"),
        description="Sample covariance matrix with Bessel's correction.",
    ),
)

_CENTRAL_MOMENTS: dict[int, Statistic] = {2: CentralMoment2, 3: CentralMoment3, 4: CentralMoment4}


def central_moment(order: int) -> Statistic:
    """Return the central-moment descriptor of the given order.

    Parameters
    ----------
    order : int
        Moment order; only 2, 3 and 4 have merge formulas.

    Raises
    ------
    ConfigurationError
        For any other order.
    """
    try:
        return _CENTRAL_MOMENTS[int(order)]
    except KeyError:
        raise ConfigurationError(f"CentralMoment<{order}> is not implemented; supported orders are 2, 3 and 4.") from None


# ---------------------------------------------------------------------------
# Tier definitions
# ---------------------------------------------------------------------------

#: Names of statistics in the *core* tier.
#: Cheap single-pass descriptors.
CORE_STATISTIC_NAMES: frozenset[str] = frozenset({
    "Count",
    "Sum",
    "Mean",
    "StdDev",
    "Minimum",
    "Maximum",
})

#: Names of statistics in the *moments* tier.
#: Adds variances and the two-pass shape descriptors on top of *core*.
MOMENT_STATISTIC_NAMES: frozenset[str] = CORE_STATISTIC_NAMES | {
    "Variance",
    "UnbiasedVariance",
    "UnbiasedStdDev",
    "Skewness",
    "Kurtosis",
}

BUILTIN_STATISTICS: list[Statistic] = [
    Count,
    Sum,
    Minimum,
    Maximum,
    Mean,
    SumSquaredDifferences,
    Variance,
    StdDev,
    UnbiasedVariance,
    UnbiasedStdDev,
    CentralMoment2,
    CentralMoment3,
    CentralMoment4,
    Skewness,
    Kurtosis,
    ScatterMatrix,
    Covariance,
    UnbiasedCovariance,
]

CORE_STATISTICS: list[Statistic] = [s for s in BUILTIN_STATISTICS if s.name in CORE_STATISTIC_NAMES]

MOMENT_STATISTICS: list[Statistic] = [s for s in BUILTIN_STATISTICS if s.name in MOMENT_STATISTIC_NAMES]

#: Mapping from tier name to the corresponding list of statistics.
#:
#: Valid keys: ``"core"``, ``"moments"``, ``"all"``.
STATISTIC_TIERS: dict[str, list[Statistic]] = {
    "core": CORE_STATISTICS,
    "moments": MOMENT_STATISTICS,
    "all": BUILTIN_STATISTICS,
}
