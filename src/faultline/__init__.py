"""Faultline — error classification and propagation for event-driven runtimes."""

__version__ = "0.1.0"


class FaultlineError(Exception):
    """Base exception for misuse of the faultline library itself."""


class ConfigurationError(FaultlineError):
    """Raised on invalid configuration."""


class RegistryConflictError(FaultlineError):
    """Raised when a system error code would change its published meaning."""


class ChannelStateError(FaultlineError):
    """Raised when a delivery channel is used after it reached a terminal state."""
