"""Pytest configuration and fixtures for execguard tests."""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio

from execguard import (
    CommandPolicy,
    ExecutionCoordinator,
    ExecutionOutcome,
    HistoryLedger,
    PolicyRegistry,
    ProcessRunner,
    RunStatus,
    SandboxConfig,
)
from execguard.sandbox import CommandRunner


class FakeRunner(CommandRunner):
    """Runner that records calls and returns a canned outcome."""

    def __init__(
        self,
        *,
        exit_code: int | None = 0,
        stdout: str = "ok\n",
        stderr: str = "",
        status: RunStatus = RunStatus.COMPLETED,
        error: str | None = None,
        raises: Exception | None = None,
    ) -> None:
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.status = status
        self.error = error
        self.raises = raises
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def run(
        self,
        command: str,
        working_directory: str,
        timeout: float,
        *,
        capture_output: bool = True,
        run_as_shell: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        self.calls.append({
            "command": command,
            "working_directory": working_directory,
            "timeout": timeout,
            "capture_output": capture_output,
            "run_as_shell": run_as_shell,
        })
        if self.raises is not None:
            raise self.raises
        return ExecutionOutcome(
            command=command,
            working_directory=working_directory,
            status=self.status,
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
            duration=0.0125,
            error=self.error,
        )

    async def close(self) -> None:
        self.closed = True


class RecordingGate:
    """Approval gate that remembers what it was asked."""

    def __init__(self, approved: bool = True) -> None:
        self.approved = approved
        self.requests: list[tuple[str, str]] = []

    async def request_approval(self, command: str, working_directory: str) -> bool:
        self.requests.append((command, working_directory))
        return self.approved


class RecordingTracer:
    """OperationTracer that keeps every event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def start(self, operation: str, context: Mapping[str, Any]) -> None:
        self.events.append(("start", operation, dict(context)))

    def success(self, operation: str, context: Mapping[str, Any]) -> None:
        self.events.append(("success", operation, dict(context)))

    def failure(self, operation: str, error: str, context: Mapping[str, Any]) -> None:
        self.events.append(("failure", operation, {"error": error, **context}))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="execguard_test_") as tmp:
        path = Path(tmp)
        (path / "test.txt").write_text("hello world")
        yield path


@pytest.fixture
def policy() -> CommandPolicy:
    """Create the default command policy."""
    return CommandPolicy.default()


@pytest_asyncio.fixture
async def runner() -> AsyncGenerator[ProcessRunner, None]:
    """Create a ProcessRunner for testing."""
    runner = ProcessRunner()
    try:
        yield runner
    finally:
        await runner.close()


@pytest.fixture
def make_coordinator() -> Callable[..., ExecutionCoordinator]:
    """Factory building a coordinator with explicit collaborators."""

    def factory(
        config: SandboxConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        gate: Any = None,
        ledger: HistoryLedger | None = None,
        registry: PolicyRegistry | None = None,
        tracer: Any = None,
    ) -> ExecutionCoordinator:
        config = config or SandboxConfig.restricted()
        return ExecutionCoordinator(
            config,
            runner=runner if runner is not None else FakeRunner(),
            ledger=ledger if ledger is not None else HistoryLedger(config.history_size),
            registry=registry if registry is not None else PolicyRegistry(),
            approval_gate=gate,
            tracer=tracer,
        )

    return factory
