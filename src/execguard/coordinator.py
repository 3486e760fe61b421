"""
Tool-facing entry point: approval -> policy -> process -> audit log.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

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
from execguard.config import SandboxConfig
from execguard.discovery import generate_tool_prompt
from execguard.errors import ConfigurationError, RequestError
from execguard.formatting import format_outcome, truncate_display
from execguard.history import HistoryLedger
from execguard.sandbox._base import CommandRunner
from execguard.security.policy import CommandPolicy
from execguard.security.registry import PolicyRegistry

logger = logging.getLogger(__name__)

_OPERATION = "execute_command"


class ExecutionCoordinator:
    """
    Runs one agent-requested command per call and reports a ToolResult.

    Each call moves through ``Received -> [ApprovalPending] -> Validated ->
    Running`` and ends in exactly one of COMPLETED, DENIED, TIMED_OUT or
    ERRORED. Nothing is retried. Every collaborator must be supplied fully
    formed; use ``execguard.create_command_tool`` for the default wiring.

    Example:
        >>> tool = create_command_tool(config=SandboxConfig.restricted())
        >>> result = await tool.execute({"command": "git status"})
        >>> result.success
        True
    """

    name = "execute_command"
    description = "Executes system commands and returns their output"

    def __init__(
        self,
        config: SandboxConfig,
        *,
        runner: CommandRunner,
        ledger: HistoryLedger,
        registry: PolicyRegistry,
        approval_gate: ApprovalGate | None,
        tracer: OperationTracer | None = None,
    ) -> None:
        """
        Initialize a coordinator.

        Args:
            config: Read-only sandbox configuration.
            runner: Executes commands that passed validation.
            ledger: Audit log shared by all invocations of this coordinator.
            registry: Source of the named policy in ``config.policy_name``.
            approval_gate: Consulted when ``config.require_approval`` is set.
            tracer: Optional sink for start/success/failure events.

        Raises:
            ConfigurationError: If approval is required but no gate is given.
        """
        if config.require_approval and approval_gate is None:
            raise ConfigurationError("require_approval is set but no approval gate was supplied")

        self._config = config
        self._runner = runner
        self._ledger = ledger
        self._approval_gate = approval_gate
        self._tracer = tracer
        self._policy = registry.get_or_create(config.policy_name, CommandPolicy.default)
        self._closed = False

    @property
    def config(self) -> SandboxConfig:
        return self._config

    @property
    def policy(self) -> CommandPolicy:
        return self._policy

    @property
    def closed(self) -> bool:
        return self._closed

    def tool_prompt(self) -> str:
        """Description of the tool for an LLM, including the usable commands."""
        prompt = generate_tool_prompt(self._policy, self._config.mode)
        return f"{self.description}. {prompt}" if prompt else self.description

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the tool-call arguments."""
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The system command to execute",
                },
                "workingDirectory": {
                    "type": "string",
                    "description": "The working directory for command execution. Defaults to current directory",
                },
                "timeout": {
                    "type": "integer",
                    "description": f"Command timeout in seconds. Default is {self._config.default_timeout} seconds",
                    "minimum": 1,
                    "maximum": 3600,
                },
                "captureOutput": {
                    "type": "boolean",
                    "description": "Whether to capture command output. Default is true",
                },
                "runAsShell": {
                    "type": "boolean",
                    "description": "Whether to run command through shell. Default is false",
                },
            },
            "required": ["command"],
        }

    def display_summary(self, arguments: Mapping[str, Any]) -> str:
        """One-line summary of a pending call, e.g. for a confirmation prompt."""
        command = arguments.get("command") or ""
        return f"$ {truncate_display(str(command), 50)}"

    async def execute(self, arguments: Mapping[str, Any]) -> ToolResult:
        """
        Parse a tool-call argument mapping and run it.

        Never raises for anything the agent can cause; every failure comes
        back as a ToolResult with ``success=False``.
        """
        if self._closed:
            return self._disposed()
        try:
            request = CommandRequest.from_arguments(
                arguments, default_timeout=self._config.default_timeout
            )
        except RequestError as e:
            return ToolResult.failed(Status.ERRORED, FailureKind.INVALID_REQUEST, str(e))
        return await self.run(request)

    async def run(self, request: CommandRequest) -> ToolResult:
        """Run an already-parsed request."""
        if self._closed:
            return self._disposed()

        workdir = request.working_directory
        if not os.path.isdir(workdir):
            return ToolResult.failed(
                Status.ERRORED,
                FailureKind.WORKDIR_MISSING,
                f"Working directory does not exist: {workdir}",
            )

        started_at = datetime.now(timezone.utc)
        context = {"command": request.command, "working_directory": workdir}
        if self._tracer is not None:
            self._tracer.start(_OPERATION, context)

        try:
            result = await self._run_checked(request, started_at)
        except Exception as e:
            logger.exception("Unexpected failure running %r", request.command)
            error = f"Command execution failed: {e}"
            self._record(request, started_at, Status.ERRORED, error=str(e))
            result = ToolResult.failed(Status.ERRORED, FailureKind.EXECUTION_FAILED, error)

        if self._tracer is not None:
            if result.success:
                self._tracer.success(_OPERATION, context)
            else:
                self._tracer.failure(_OPERATION, result.error or "", context)
        return result

    async def _run_checked(self, request: CommandRequest, started_at: datetime) -> ToolResult:
        command = request.command
        workdir = request.working_directory

        gate = self._approval_gate
        if self._config.require_approval and gate is not None:
            approved = await gate.request_approval(command, workdir)
            if not approved:
                error = "Command execution denied by user"
                logger.warning("%s: %s", error, command)
                self._record(request, started_at, Status.DENIED, error=error)
                return ToolResult.failed(Status.DENIED, FailureKind.APPROVAL_DENIED, error)

        if self._config.mode is not SecurityMode.UNRESTRICTED:
            verdict = self._validate(command, workdir)
            if not verdict.allowed:
                error = f"Command blocked: {verdict.reason}"
                logger.warning("%s (%s)", error, command)
                self._record(request, started_at, Status.DENIED, error=error)
                return ToolResult.failed(Status.DENIED, FailureKind.VALIDATION_DENIED, error)

        outcome = await self._runner.run(
            command,
            workdir,
            request.timeout,
            capture_output=request.capture_output,
            run_as_shell=request.run_as_shell,
        )
        return self._settle(request, started_at, outcome)

    def _validate(self, command: str, workdir: str) -> ValidationVerdict:
        verdict = self._policy.validate(command, self._config.mode, cwd=workdir)
        validator = self._config.custom_validator
        if not verdict.allowed or validator is None:
            return verdict
        try:
            custom = validator(command)
        except Exception as e:
            logger.exception("Custom validator raised for %r", command)
            return ValidationVerdict.deny(f"Custom validator failed: {e}", DenialRule.CUSTOM_VALIDATOR)
        if not custom.allowed and custom.rule is None:
            return ValidationVerdict.deny(custom.reason, DenialRule.CUSTOM_VALIDATOR)
        return custom

    def _settle(
        self,
        request: CommandRequest,
        started_at: datetime,
        outcome: ExecutionOutcome,
    ) -> ToolResult:
        if outcome.status is RunStatus.START_FAILED:
            error = outcome.error or "Failed to start process"
            self._record(request, started_at, Status.ERRORED, outcome=outcome, error=error)
            kind = (
                FailureKind.WORKDIR_MISSING
                if error.startswith("Working directory does not exist")
                else FailureKind.PROCESS_START_FAILURE
            )
            return ToolResult.failed(Status.ERRORED, kind, error, raw_data=outcome)

        summary = format_outcome(outcome)

        if outcome.status is RunStatus.TIMED_OUT:
            error = outcome.error or "Command execution was cancelled or timed out"
            self._record(request, started_at, Status.TIMED_OUT, outcome=outcome, error=error)
            return ToolResult.failed(
                Status.TIMED_OUT,
                FailureKind.TIMED_OUT,
                error,
                raw_data=outcome,
                formatted_output=f"{error}\n\n{summary}",
            )

        self._record(request, started_at, Status.COMPLETED, outcome=outcome)
        logger.info(
            "Command %r exited with code %s in %.2fms",
            request.command, outcome.exit_code, outcome.duration * 1000,
        )
        if outcome.exit_code == 0:
            return ToolResult(
                success=True,
                formatted_output=summary,
                status=Status.COMPLETED,
                raw_data=outcome,
            )
        return ToolResult(
            success=False,
            formatted_output=summary,
            status=Status.COMPLETED,
            error=f"Command exited with code {outcome.exit_code}",
            raw_data=outcome,
        )

    def _record(
        self,
        request: CommandRequest,
        started_at: datetime,
        status: Status,
        *,
        outcome: ExecutionOutcome | None = None,
        error: str | None = None,
    ) -> None:
        if not self._config.enable_history:
            return
        self._ledger.append(
            ExecutionRecord(
                command=request.command,
                working_directory=request.working_directory,
                timestamp=started_at,
                status=status,
                success=outcome is not None and outcome.success,
                exit_code=outcome.exit_code if outcome is not None else None,
                duration=outcome.duration if outcome is not None else None,
                error=error,
            )
        )

    def _disposed(self) -> ToolResult:
        return ToolResult.failed(
            Status.ERRORED,
            FailureKind.SANDBOX_DISPOSED,
            "Command executor has been closed",
        )

    def history(self) -> tuple[ExecutionRecord, ...]:
        """Snapshot of the audit log, oldest first."""
        return self._ledger.snapshot()

    def clear_history(self) -> None:
        self._ledger.clear()

    async def close(self) -> None:
        """
        Clear the history and release the runner.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        self._ledger.clear()
        await self._runner.close()

    async def __aenter__(self) -> ExecutionCoordinator:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
