from __future__ import annotations


class FormicaryError(Exception):
    """Base class for errors raised by the clustering engines."""


class ConfigurationError(FormicaryError, ValueError):
    """A parameter or input dataset cannot be used; raised before any ant runs."""


class SimulationInvariantViolation(FormicaryError, RuntimeError):
    """Internal bookkeeping reached a state that must never happen."""
