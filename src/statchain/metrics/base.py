from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

import numpy as np

from statchain.errors import ConfigurationError, UnknownStatisticError


@dataclass(frozen=True)
class Statistic:
    """Static identity of a named statistic and the layer that computes it."""

    name: str
    layer: type[StatisticLayer] = field(compare=False, repr=False)
    dependencies: tuple[str, ...] = ()
    description: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.name


class StatisticLayer:
    """One layer of an accumulator chain, owning the state of a single statistic.

    Layers read the statistics they depend on through ``index``, the
    name-to-layer mapping of the chain they belong to. Every hook defaults to
    a no-op so that derived statistics (e.g. ``Mean``) only implement
    :meth:`value`.
    """

    passes: ClassVar[int] = 1
    supports_weights: ClassVar[bool] = True

    def __init__(self, name: str, index: Mapping[str, StatisticLayer]) -> None:
        self.name = name
        self._index = index

    def dependency(self, name: str) -> StatisticLayer:
        return self._index[name]

    def reset(self) -> None:
        pass

    def reshape(self, shape: tuple[int, ...], dtype: np.dtype) -> None:
        pass

    def update(self, value: Any, weight: float | None) -> None:
        pass

    def update_pass2(self, value: Any, weight: float | None) -> None:
        pass

    def merge(self, other: StatisticLayer) -> None:
        pass

    def passes_required(self) -> int:
        return self.passes

    def value(self) -> Any:
        raise NotImplementedError


_REGISTRY: dict[str, Statistic] = {}
_ALIASES: dict[str, str] = {}


def register_statistic(statistic: Statistic, *aliases: str) -> Statistic:
    """Add a statistic descriptor to the registry.

    Parameters
    ----------
    statistic
        The descriptor to register.
    *aliases
        Alternative names resolving to the same descriptor.

    Returns
    -------
    Statistic
        The registered descriptor, so the call can be used as an assignment.

    Raises
    ------
    ConfigurationError
        If a different descriptor is already registered under the same name.
    """
    existing = _REGISTRY.get(statistic.name)
    if existing is not None and existing.layer is not statistic.layer:
        raise ConfigurationError(f"A different statistic is already registered as '{statistic.name}'.")
    _REGISTRY[statistic.name] = statistic
    for alias in aliases:
        _ALIASES[alias] = statistic.name
    return statistic


def get_statistic(statistic: Statistic | str) -> Statistic:
    """Return the registered descriptor for a name or descriptor."""
    if isinstance(statistic, Statistic):
        name = statistic.name
    else:
        name = _ALIASES.get(str(statistic), str(statistic))
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownStatisticError(name, context="registry") from None


def registered_statistics() -> tuple[Statistic, ...]:
    """Return every registered descriptor in registration order."""
    return tuple(_REGISTRY.values())
