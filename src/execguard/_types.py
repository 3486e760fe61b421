"""
Core type definitions for execguard.

Uses frozen dataclasses, enums and Protocols for lightweight, typed
abstractions. Every outcome of an invocation is an explicit tagged value;
nothing here is signalled by raising.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol

from execguard.errors import RequestError

MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 3600
DEFAULT_TIMEOUT_SECONDS = 30


class SecurityMode(Enum):
    """How much of the policy engine applies to a request."""

    UNRESTRICTED = "unrestricted"  # Policy bypassed entirely
    RESTRICTED = "restricted"  # Denylist, allowlist and subcommand rules
    STRICT = "strict"  # RESTRICTED plus dangerous-argument scan


class DenialRule(Enum):
    """Which policy stage rejected a command."""

    EMPTY = "empty"
    ALWAYS_BLOCKED = "always_blocked"
    NOT_ALLOWLISTED = "not_allowlisted"
    SUBCOMMAND = "subcommand"
    PATH_GUARD = "path_guard"
    DANGEROUS_PATTERN = "dangerous_pattern"
    CUSTOM_VALIDATOR = "custom_validator"


class RunStatus(Enum):
    """How a single process run ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    START_FAILED = "start_failed"


class Status(Enum):
    """Terminal state of one coordinator invocation."""

    COMPLETED = "completed"
    DENIED = "denied"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"


class FailureKind(Enum):
    """Typed failure reported back to the calling agent."""

    INVALID_REQUEST = "invalid_request"
    VALIDATION_DENIED = "validation_denied"
    APPROVAL_DENIED = "approval_denied"
    WORKDIR_MISSING = "workdir_missing"
    TIMED_OUT = "timed_out"
    PROCESS_START_FAILURE = "process_start_failure"
    SANDBOX_DISPOSED = "sandbox_disposed"
    EXECUTION_FAILED = "execution_failed"


@dataclass(frozen=True, slots=True)
class ValidationVerdict:
    """Allow/deny decision with a reason that can be shown to the user."""

    allowed: bool
    reason: str = ""
    rule: DenialRule | None = None

    @classmethod
    def allow(cls, reason: str = "") -> ValidationVerdict:
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str, rule: DenialRule) -> ValidationVerdict:
        return cls(allowed=False, reason=reason, rule=rule)


# Keys accepted for each request field, in the order they are looked up.
_REQUEST_KEYS: dict[str, tuple[str, ...]] = {
    "command": ("command",),
    "working_directory": ("workingDirectory", "working_directory", "cwd"),
    "timeout": ("timeout",),
    "capture_output": ("captureOutput", "capture_output"),
    "run_as_shell": ("runAsShell", "run_as_shell"),
}


def _lookup(arguments: Mapping[str, Any], field_name: str) -> Any:
    for key in _REQUEST_KEYS[field_name]:
        if key in arguments and arguments[key] is not None:
            return arguments[key]
    return None


def _coerce_bool(value: Any, name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise RequestError(f"Parameter '{name}' must be a boolean")


@dataclass(frozen=True, slots=True)
class CommandRequest:
    """One parsed, shape-checked tool call."""

    command: str
    working_directory: str
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    capture_output: bool = True
    run_as_shell: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.command, str) or not self.command.strip():
            raise RequestError("Command parameter is required")
        if (
            isinstance(self.timeout, bool)
            or not isinstance(self.timeout, int)
            or not MIN_TIMEOUT_SECONDS <= self.timeout <= MAX_TIMEOUT_SECONDS
        ):
            raise RequestError(
                f"Timeout must be between {MIN_TIMEOUT_SECONDS} and "
                f"{MAX_TIMEOUT_SECONDS} seconds"
            )

    @classmethod
    def from_arguments(
        cls,
        arguments: Mapping[str, Any],
        *,
        default_timeout: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> CommandRequest:
        """
        Build a request from a tool-call argument mapping.

        Both the camelCase wire names (``workingDirectory``) and their
        snake_case equivalents are accepted.

        Raises:
            RequestError: If a parameter is missing or has the wrong shape.
        """
        if not isinstance(arguments, Mapping):
            raise RequestError("Tool arguments must be a mapping")

        command = _lookup(arguments, "command")
        if not isinstance(command, str):
            raise RequestError("Command parameter is required")

        workdir = _lookup(arguments, "working_directory")
        if workdir is None:
            workdir = os.getcwd()
        elif not isinstance(workdir, (str, os.PathLike)):
            raise RequestError("Parameter 'workingDirectory' must be a path")

        timeout = _lookup(arguments, "timeout")
        if timeout is None:
            timeout = default_timeout
        elif isinstance(timeout, str):
            try:
                timeout = int(timeout.strip())
            except ValueError:
                raise RequestError("Parameter 'timeout' must be an integer") from None
        elif isinstance(timeout, float) and timeout.is_integer():
            timeout = int(timeout)

        return cls(
            command=command,
            working_directory=os.fspath(workdir),
            timeout=timeout,
            capture_output=_coerce_bool(
                _lookup(arguments, "capture_output"), "captureOutput", True
            ),
            run_as_shell=_coerce_bool(
                _lookup(arguments, "run_as_shell"), "runAsShell", False
            ),
        )


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Immutable result of one process run."""

    command: str
    working_directory: str
    status: RunStatus
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    duration: float = 0.0
    """Wall-clock seconds from spawn to exit or kill."""
    error: str | None = None

    @property
    def success(self) -> bool:
        """Return True if the process ran to completion with exit code 0."""
        return self.status is RunStatus.COMPLETED and self.exit_code == 0

    @property
    def truncated(self) -> bool:
        return self.stdout_truncated or self.stderr_truncated


@dataclass(frozen=True, slots=True)
class ExecutionRecord:
    """One audit-log entry."""

    command: str
    working_directory: str
    timestamp: datetime
    status: Status
    success: bool = False
    exit_code: int | None = None
    duration: float | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ToolResult:
    """What the coordinator hands back to the calling agent."""

    success: bool
    formatted_output: str
    status: Status
    error: str | None = None
    failure: FailureKind | None = None
    raw_data: ExecutionOutcome | None = None

    @classmethod
    def failed(
        cls,
        status: Status,
        failure: FailureKind,
        error: str,
        raw_data: ExecutionOutcome | None = None,
        formatted_output: str | None = None,
    ) -> ToolResult:
        return cls(
            success=False,
            formatted_output=error if formatted_output is None else formatted_output,
            status=status,
            error=error,
            failure=failure,
            raw_data=raw_data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the camelCase shape used on the tool-call wire."""
        raw: dict[str, Any] | None = None
        if self.raw_data is not None:
            outcome = self.raw_data
            raw = {
                "command": outcome.command,
                "workingDirectory": outcome.working_directory,
                "status": outcome.status.value,
                "exitCode": outcome.exit_code,
                "standardOutput": outcome.stdout,
                "standardError": outcome.stderr,
                "truncated": outcome.truncated,
                "durationMs": round(outcome.duration * 1000, 2),
            }
        return {
            "success": self.success,
            "formattedOutput": self.formatted_output,
            "error": self.error,
            "rawData": raw,
        }


class ApprovalGate(Protocol):
    """Human-in-the-loop confirmation consulted before validation."""

    def request_approval(self, command: str, working_directory: str) -> Awaitable[bool]: ...


class OperationTracer(Protocol):
    """Write-only sink for operation start/success/failure events."""

    def start(self, operation: str, context: Mapping[str, Any]) -> None: ...

    def success(self, operation: str, context: Mapping[str, Any]) -> None: ...

    def failure(self, operation: str, error: str, context: Mapping[str, Any]) -> None: ...


CustomValidator = Callable[[str], ValidationVerdict]
"""Extra host-supplied check run after the built-in policy allows a command."""
