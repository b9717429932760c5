"""Shared utility functions for interfaces.

This module provides parsing helpers shared by the configuration loader and
the command line.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from statchain.metrics import STATISTIC_TIERS, get_statistic

logger = logging.getLogger(__name__)


def _parse_log_level(value: str | int | None) -> int:
    """Return a logging level from common string/int inputs.

    Parameters
    ----------
    value
        The value to parse.

    Returns
    -------
    int
        The logging level.

    Examples
    --------
    >>> _parse_log_level("INFO")
    20
    >>> _parse_log_level("DEBUG")
    10
    >>> _parse_log_level(logging.WARNING)
    30
    >>> _parse_log_level(None)
    20
    """
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    return getattr(logging, str(value).upper(), logging.INFO)


def _as_list(value: Iterable[str] | str | None) -> list[str] | None:
    """Normalize configuration values into a list of strings.

    Parameters
    ----------
    value
        The value to normalize.

    Returns
    -------
    list[str] | None
        The normalized list of strings, or None if the input is None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)


def parse_statistics(
    statistics: Iterable[str] | str | None = None,
    tier: str | None = None,
) -> list[str]:
    """Combine explicit statistic names and a named tier into one list.

    Parameters
    ----------
    statistics
        Statistic names (or aliases such as ``"SSD"``).
    tier
        Name of a tier from :data:`~statchain.metrics.STATISTIC_TIERS`.

    Returns
    -------
    list[str]
        Registered names without duplicates, tier members first, in order.
        Falls back to the ``"core"`` tier when neither argument is given.

    Raises
    ------
    ValueError
        If ``tier`` is not a known tier.
    UnknownStatisticError
        If a statistic name is not registered.
    """
    names: list[str] = []
    if tier is not None:
        if tier not in STATISTIC_TIERS:
            raise ValueError(f"Unknown statistics tier '{tier}'; choose from {sorted(STATISTIC_TIERS)}.")
        names.extend(statistic.name for statistic in STATISTIC_TIERS[tier])
    for item in _as_list(statistics) or []:
        names.append(get_statistic(item).name)
    if not names:
        logger.debug("No statistics requested; using the core tier")
        names = [statistic.name for statistic in STATISTIC_TIERS["core"]]
    return list(dict.fromkeys(names))
