"""
Main entry point: create_command_tool factory function.

This is the composition root. It is the only place that builds default
collaborators; ExecutionCoordinator itself accepts fully formed ones only.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from execguard._types import SecurityMode
from execguard.approval import ApprovalCallback, CallbackApprovalGate, StaticApprovalGate
from execguard.config import SandboxConfig
from execguard.coordinator import ExecutionCoordinator
from execguard.history import HistoryLedger
from execguard.sandbox.process import MAX_OUTPUT_BYTES, ProcessRunner
from execguard.security.registry import PolicyRegistry
from execguard.tracing import LoggingTracer

if TYPE_CHECKING:
    from execguard._types import ApprovalGate, OperationTracer
    from execguard.sandbox._base import CommandRunner


def create_command_tool(
    *,
    config: SandboxConfig | SecurityMode | str | Path | None = None,
    approval: ApprovalGate | ApprovalCallback | bool | None = None,
    registry: PolicyRegistry | None = None,
    runner: CommandRunner | None = None,
    tracer: OperationTracer | None = None,
    max_output_bytes: int = MAX_OUTPUT_BYTES,
) -> ExecutionCoordinator:
    """
    Create a command-execution tool for an AI agent.

    Args:
        config: A SandboxConfig, a SecurityMode, or a path to a JSON config
                file. Defaults to ``SandboxConfig()`` (STRICT mode).
        approval: Approval gate for ``require_approval``. Accepts a gate, a
                  sync or async ``(command, cwd) -> bool`` callable, or a
                  bool for a fixed answer. Passing anything other than None
                  turns ``require_approval`` on.
        registry: Policy registry to share between tools. A fresh one is
                  created if omitted.
        runner: Custom runner. Defaults to a ProcessRunner.
        tracer: Operation tracer. Defaults to a LoggingTracer.
        max_output_bytes: Per-stream output cap for the default runner.

    Returns:
        A ready-to-use ExecutionCoordinator.

    Example:
        >>> tool = create_command_tool(config=SecurityMode.RESTRICTED)
        >>> result = await tool.execute({"command": "git log -n 3"})
        >>> print(result.formatted_output)

    Example with human approval:
        >>> tool = create_command_tool(approval=lambda cmd, cwd: cmd.startswith("ls"))
    """
    # Resolve configuration
    resolved: SandboxConfig
    if config is None:
        resolved = SandboxConfig()
    elif isinstance(config, SecurityMode):
        resolved = SandboxConfig(mode=config)
    elif isinstance(config, (str, Path)):
        resolved = SandboxConfig.from_json_file(config)
    else:
        resolved = config

    # Resolve approval gate
    gate: ApprovalGate | None
    if approval is None:
        gate = None
    elif isinstance(approval, bool):
        gate = StaticApprovalGate(approval)
    elif hasattr(approval, "request_approval"):
        gate = approval
    else:
        gate = CallbackApprovalGate(approval)

    if gate is not None and not resolved.require_approval:
        resolved = replace(resolved, require_approval=True)

    return ExecutionCoordinator(
        resolved,
        runner=runner if runner is not None else ProcessRunner(max_output_bytes=max_output_bytes),
        ledger=HistoryLedger(resolved.history_size),
        registry=registry if registry is not None else PolicyRegistry(),
        approval_gate=gate,
        tracer=tracer if tracer is not None else LoggingTracer(),
    )
