"""
Abstract base class for command runners.

The coordinator only talks to this interface, so tests and hosts can swap in
their own runner.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from execguard._types import ExecutionOutcome


class CommandRunner(ABC):
    """
    Abstract base for everything that turns a validated command into a process.
    """

    @abstractmethod
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
        """
        Run an already-validated command and return its outcome.

        Args:
            command: The command text. No sanitisation happens here.
            working_directory: Directory to run in; must exist.
            timeout: Seconds before the process tree is killed.
            capture_output: Collect stdout/stderr if True, discard otherwise.
            run_as_shell: Hand the text to the platform shell verbatim.
            cancel: Optional event; setting it kills the run.

        Returns:
            Exactly one ExecutionOutcome per call.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Release runner resources.

        Idempotent - safe to call multiple times.
        """
        ...

    async def __aenter__(self) -> CommandRunner:
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager, cleaning up resources."""
        await self.close()
