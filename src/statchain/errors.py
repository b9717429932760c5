"""Exceptions raised by accumulator chains."""

from __future__ import annotations


class StatChainError(Exception):
    """Base class for all statistic-engine faults."""


class ConfigurationError(StatChainError, ValueError):
    """Raised when a chain is asked to do something its composition cannot support."""


class AccessError(StatChainError, LookupError):
    """Raised when a statistic cannot be read from a chain."""


class UnknownStatisticError(AccessError):
    """Raised when a statistic is not part of the registry or the chain."""

    def __init__(self, name: str, context: str = "accumulator"):
        """Initialize the error."""
        self.name = name
        super().__init__(f"get({context}): statistic '{name}' is not part of this composition.")


class InactiveStatisticError(AccessError):
    """Raised when reading a statistic that is switched off in a dynamic chain."""

    def __init__(self, name: str):
        """Initialize the error."""
        self.name = name
        super().__init__(f"get(accumulator): attempt to access inactive statistic '{name}'.")
