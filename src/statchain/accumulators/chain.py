"""Accumulator chains composed from resolved statistics.

A chain owns one :class:`~statchain.metrics.base.StatisticLayer` per member of
the dependency closure of the requested statistics. Layers are stored with
dependencies first; feeding and merging visit them in the opposite order, so
each layer sees the values of its dependencies from *before* the current
sample (or the other chain) was folded in.

Two flavours are provided:

* :class:`AccumulatorChain`: every layer is always active.
* :class:`DynamicAccumulatorChain`: every layer carries an active flag that
  is switched on with :meth:`~DynamicAccumulatorChain.activate`, which also
  activates the statistic's dependencies.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar

import numpy as np

from statchain.accumulators.resolver import StatisticLike, _as_names, required_passes, resolve_dependencies
from statchain.errors import (
    ConfigurationError,
    InactiveStatisticError,
    UnknownStatisticError,
)
from statchain.metrics.base import Statistic, StatisticLayer, get_statistic
from statchain.utils.arrays import _as_sample, _element_dtype, _readonly, _sample_shape

logger = logging.getLogger(__name__)


def _check_weight(weight: float | None) -> float | None:
    if weight is None:
        return None
    weight = float(weight)
    if not np.isfinite(weight) or weight < 0.0:
        raise ConfigurationError(f"Sample weights must be finite and non-negative, got {weight}.")
    return weight


def _as_result(value: Any) -> float | np.ndarray:
    """Return scalars as ``float`` and arrays as read-only views."""
    if np.ndim(value) == 0:
        return float(value)
    return _readonly(np.asarray(value))


class AccumulatorChain:
    """A static accumulator chain: every statistic is computed for every sample.

    Parameters
    ----------
    statistics
        The statistics to compute, as descriptors or names. Their dependencies
        are added automatically.

    Examples
    --------
    >>> chain = AccumulatorChain(["Mean", "Variance"])
    >>> chain.accumulate([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]).get("Mean")
    5.0
    """

    dynamic: ClassVar[bool] = False

    def __init__(self, statistics: StatisticLike | Iterable[StatisticLike]) -> None:
        self._requested = _as_names(statistics)
        self._statistics = resolve_dependencies(self._requested)
        self._descriptors: dict[str, Statistic] = {s.name: s for s in self._statistics}
        self._index: dict[str, StatisticLayer] = {}
        self._layers: list[StatisticLayer] = []
        for statistic in self._statistics:
            layer = statistic.layer(statistic.name, self._index)
            self._index[statistic.name] = layer
            self._layers.append(layer)
        self._active: set[str] = set(self._index)
        self._schedule: tuple[StatisticLayer, ...] = ()
        self._refresh_schedule()
        self._needs_reshape = True
        self._shape: tuple[int, ...] | None = None
        self._dtype: np.dtype | None = None
        logger.debug("Built %s with layers %s", type(self).__name__, self.names)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    @property
    def statistics(self) -> tuple[Statistic, ...]:
        """Resolved statistics, dependencies first."""
        return self._statistics

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._index)

    @property
    def requested(self) -> tuple[str, ...]:
        """Names of the statistics the chain was built for, before resolution."""
        return self._requested

    @property
    def needs_reshape(self) -> bool:
        """Whether array storage is still waiting for the first sample's shape."""
        return self._needs_reshape

    @property
    def shape(self) -> tuple[int, ...] | None:
        """Sample shape seen on the first update, ``()`` for scalars."""
        return self._shape

    def __contains__(self, statistic: object) -> bool:
        try:
            self._layer(statistic)  # type: ignore[arg-type]
        except UnknownStatisticError:
            return False
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.names)!r})"

    def _layer(self, statistic: StatisticLike) -> StatisticLayer:
        try:
            name = get_statistic(statistic).name
        except UnknownStatisticError:
            raise UnknownStatisticError(str(statistic)) from None
        layer = self._index.get(name)
        if layer is None:
            raise UnknownStatisticError(name)
        return layer

    def _refresh_schedule(self) -> None:
        # dependents before dependencies
        self._schedule = tuple(layer for layer in reversed(self._layers) if layer.name in self._active)

    # ------------------------------------------------------------------
    # Activation and lookup
    # ------------------------------------------------------------------

    def is_active(self, statistic: StatisticLike) -> bool:
        return self._layer(statistic).name in self._active

    def activate(self, statistic: StatisticLike) -> None:
        """Validate membership; all statistics of a static chain are always active."""
        self._layer(statistic)

    def get(self, statistic: StatisticLike) -> float | np.ndarray:
        """Return the current value of a statistic.

        Scalars are returned as ``float``. Array-valued statistics are returned
        as read-only arrays that may share memory with the chain and are only
        valid until the chain is next modified.

        Raises
        ------
        UnknownStatisticError
            If the statistic is not part of this chain.
        InactiveStatisticError
            If the statistic is switched off in a dynamic chain.
        """
        layer = self._layer(statistic)
        if layer.name not in self._active:
            raise InactiveStatisticError(layer.name)
        return _as_result(layer.value())

    def passes_required(self) -> int:
        """Return 2 if any active statistic needs a second pass over the data, else 1."""
        return required_passes(self._descriptors[layer.name] for layer in self._schedule)

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def _reshape(self, shape: tuple[int, ...], dtype: np.dtype) -> None:
        if shape:
            logger.debug("Allocating %s storage of shape %s", type(self).__name__, shape)
            for layer in self._layers:
                layer.reshape(shape, dtype)
        self._shape = shape
        self._dtype = dtype
        self._needs_reshape = False

    def _prepare(self, value: Any, weight: float | None) -> tuple[Any, float | None]:
        sample = _as_sample(value)
        weight = _check_weight(weight)
        if weight is not None:
            for layer in self._schedule:
                if not layer.supports_weights:
                    raise ConfigurationError(f"{layer.name} accumulator does not support weights.")
        if self._needs_reshape:
            self._reshape(_sample_shape(sample), _element_dtype(sample))
        return sample, weight

    def update(self, value: Any, weight: float | None = None) -> None:
        """Feed one sample to every active statistic (first pass).

        Parameters
        ----------
        value
            A scalar, vector or array. The first sample fixes the shape of
            array-valued storage; later samples must have the same shape.
        weight
            Optional non-negative sample weight.

        Raises
        ------
        ConfigurationError
            If the weight is negative or an active statistic cannot be weighted.
        """
        sample, weight = self._prepare(value, weight)
        for layer in self._schedule:
            layer.update(sample, weight)

    def update_pass2(self, value: Any, weight: float | None = None) -> None:
        """Feed one sample during the second pass.

        Only meaningful after every sample has gone through :meth:`update`.
        """
        sample, weight = self._prepare(value, weight)
        for layer in self._schedule:
            layer.update_pass2(sample, weight)

    def update_many(
        self,
        values: Iterable[Any],
        weights: Iterable[float] | None = None,
        *,
        pass_number: int = 1,
    ) -> AccumulatorChain:
        """Feed a sequence of samples during the given pass."""
        feed = self.update if pass_number == 1 else self.update_pass2
        if weights is None:
            for value in values:
                feed(value)
        else:
            for value, weight in zip(values, weights, strict=True):
                feed(value, weight)
        return self

    def accumulate(self, values: Iterable[Any], weights: Iterable[float] | None = None) -> AccumulatorChain:
        """Run every pass the chain needs over ``values`` and return the chain."""
        samples = values if isinstance(values, Sequence | np.ndarray) else list(values)
        sample_weights = None if weights is None else list(weights)
        self.update_many(samples, sample_weights)
        if self.passes_required() > 1:
            self.update_many(samples, sample_weights, pass_number=2)
        return self

    # ------------------------------------------------------------------
    # Merge / reset
    # ------------------------------------------------------------------

    def merge(self, other: AccumulatorChain) -> AccumulatorChain:
        """Fold the state of ``other`` into this chain.

        The result describes the union of both sample sets. Only statistics
        active in this chain are merged. ``other`` is left untouched.

        Raises
        ------
        ConfigurationError
            If the chains were built from different statistics, or ``other``
            does not have all of this chain's active statistics switched on.
        """
        if other.names != self.names:
            raise ConfigurationError(
                f"Cannot merge chains of different composition: {list(self.names)} and {list(other.names)}"
            )
        missing = self._active - other._active
        if missing:
            raise ConfigurationError(f"Cannot merge: statistics {sorted(missing)} are inactive in the other chain.")
        if other is self:
            other = other.copy()
        if self._needs_reshape and not other._needs_reshape:
            self._reshape(other._shape or (), other._dtype)
        for layer in self._schedule:
            layer.merge(other._index[layer.name])
        return self

    def __iadd__(self, other: AccumulatorChain) -> AccumulatorChain:
        return self.merge(other)

    def reset(self) -> None:
        """Zero every layer and forget the sample shape."""
        for layer in self._layers:
            layer.reset()
        self._needs_reshape = True
        self._shape = None
        self._dtype = None

    def copy(self) -> AccumulatorChain:
        """Return an independent deep copy of the chain and its state."""
        return copy.deepcopy(self)


class DynamicAccumulatorChain(AccumulatorChain):
    """An accumulator chain whose statistics are switched on at runtime.

    The full dependency closure is built up front but every layer starts
    inactive. Inactive layers are skipped when feeding and merging, and
    activating a statistic also activates its dependencies.

    Parameters
    ----------
    statistics
        Statistics the chain can compute.
    active
        Statistics to activate at construction. These stay active across
        :meth:`reset`; everything else is switched off again.
    """

    dynamic = True

    def __init__(
        self,
        statistics: StatisticLike | Iterable[StatisticLike],
        active: StatisticLike | Iterable[StatisticLike] = (),
    ) -> None:
        super().__init__(statistics)
        self._active = set()
        self._baseline = _as_names(active)
        for name in self._baseline:
            self.activate(name)
        self._refresh_schedule()

    @property
    def active(self) -> tuple[str, ...]:
        """Names of the currently active statistics, dependencies first."""
        return tuple(name for name in self._index if name in self._active)

    def _activate(self, name: str) -> None:
        if name in self._active:
            return
        self._active.add(name)
        for dependency in self._descriptors[name].dependencies:
            self._activate(dependency)

    def activate(self, statistic: StatisticLike) -> None:
        """Switch a statistic on, together with everything it depends on."""
        layer = self._layer(statistic)
        self._activate(layer.name)
        self._refresh_schedule()
        logger.debug("Activated %s; active statistics: %s", layer.name, self.active)

    def reset(self) -> None:
        """Zero every layer and switch off all but the construction-time statistics."""
        super().reset()
        self._active = set()
        for name in self._baseline:
            self._activate(name)
        self._refresh_schedule()


def build_chain(
    statistics: StatisticLike | Iterable[StatisticLike],
    *,
    dynamic: bool = False,
    active: StatisticLike | Iterable[StatisticLike] | None = None,
) -> AccumulatorChain:
    """Build a chain computing ``statistics`` and their dependencies.

    Parameters
    ----------
    statistics
        Statistics to compose.
    dynamic
        Build a :class:`DynamicAccumulatorChain` instead of a static one.
    active
        For dynamic chains, the statistics active from the start. Defaults to
        the requested statistics.
    """
    names = _as_names(statistics)
    if not dynamic:
        return AccumulatorChain(names)
    return DynamicAccumulatorChain(names, active=names if active is None else active)


def get(chain: AccumulatorChain, statistic: StatisticLike) -> float | np.ndarray:
    """Return the current value of ``statistic`` in ``chain``."""
    return chain.get(statistic)


def activate(chain: AccumulatorChain, statistic: StatisticLike) -> None:
    """Activate ``statistic`` (and its dependencies) in ``chain``."""
    chain.activate(statistic)


def reset(chain: AccumulatorChain) -> None:
    chain.reset()


def merge(chain: AccumulatorChain, other: AccumulatorChain) -> AccumulatorChain:
    """Merge ``other`` into ``chain`` and return ``chain``."""
    return chain.merge(other)
