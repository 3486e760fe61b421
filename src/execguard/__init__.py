"""
Top-level facade for execguard.
"""

from execguard._types import (
    ApprovalGate,
    CommandRequest,
    DenialRule,
    ExecutionOutcome,
    ExecutionRecord,
    FailureKind,
    OperationTracer,
    RunStatus,
    SecurityMode,
    Status,
    ToolResult,
    ValidationVerdict,
)
from execguard.api import create_command_tool
from execguard.approval import CallbackApprovalGate, StaticApprovalGate
from execguard.config import SandboxConfig
from execguard.coordinator import ExecutionCoordinator
from execguard.errors import ConfigurationError, ExecGuardError, RequestError
from execguard.history import HistoryLedger
from execguard.sandbox import CommandRunner, ProcessRunner
from execguard.security import CommandPolicy, PolicyRegistry, validate_command
from execguard.tracing import LoggingTracer

__all__ = [
    "create_command_tool",
    "ExecutionCoordinator",
    "SandboxConfig",
    "SecurityMode",
    "CommandPolicy",
    "PolicyRegistry",
    "validate_command",
    "HistoryLedger",
    "CommandRunner",
    "ProcessRunner",
    "ApprovalGate",
    "StaticApprovalGate",
    "CallbackApprovalGate",
    "OperationTracer",
    "LoggingTracer",
    "CommandRequest",
    "ValidationVerdict",
    "ExecutionOutcome",
    "ExecutionRecord",
    "ToolResult",
    "Status",
    "RunStatus",
    "FailureKind",
    "DenialRule",
    "ExecGuardError",
    "ConfigurationError",
    "RequestError",
]
