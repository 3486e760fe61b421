"""
Exception hierarchy for execguard.

Denials, timeouts and spawn failures are reported as tagged results, not
exceptions. These classes cover library misuse only.
"""


class ExecGuardError(Exception):
    """Base class for all execguard errors."""


class ConfigurationError(ExecGuardError):
    """Raised when configuration values or wiring are invalid."""


class RequestError(ExecGuardError):
    """Raised when a tool call has the wrong shape (missing command, bad timeout)."""
