"""
Subprocess-based command runner.

Uses asyncio.subprocess for non-blocking execution with:
- timeout enforcement plus an outer deadline guarding the kill path
- whole process-tree termination (process groups on POSIX, taskkill on Windows)
- output capping so a misbehaving command cannot exhaust memory
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import signal
import subprocess
import time

from execguard._types import ExecutionOutcome, RunStatus
from execguard.sandbox._base import CommandRunner

logger = logging.getLogger(__name__)

MAX_OUTPUT_BYTES = 1024 * 1024  # 1 MiB per stream
DEADLINE_BUFFER_SECONDS = 5.0
_READ_CHUNK_BYTES = 64 * 1024

_IS_WINDOWS = os.name == "nt"


class CappedBuffer:
    """Byte buffer that keeps at most ``limit`` bytes and counts the rest."""

    def __init__(self, limit: int = MAX_OUTPUT_BYTES) -> None:
        self.limit = limit
        self.discarded = 0
        self._data = bytearray()

    def feed(self, chunk: bytes) -> None:
        room = self.limit - len(self._data)
        if room > 0:
            self._data.extend(chunk[:room])
        if len(chunk) > room:
            self.discarded += len(chunk) - max(room, 0)

    @property
    def truncated(self) -> bool:
        return self.discarded > 0

    def __len__(self) -> int:
        return len(self._data)

    def text(self) -> str:
        return self._data.decode("utf-8", errors="replace")


def build_argv(command: str, run_as_shell: bool) -> list[str]:
    """
    Turn command text into an argv list.

    Shell mode hands the text verbatim to ``/bin/sh -c`` (``cmd.exe /c`` on
    Windows). Otherwise the text is tokenised with shell-like quoting rules.

    Raises:
        ValueError: If the quoting is unbalanced.
    """
    if run_as_shell:
        if _IS_WINDOWS:
            return ["cmd.exe", "/c", command]
        return ["/bin/sh", "-c", command]
    return shlex.split(command, posix=not _IS_WINDOWS)


def _process_group_kwargs() -> dict[str, object]:
    if _IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


async def _taskkill(pid: int) -> None:
    killer = await asyncio.create_subprocess_exec(
        "taskkill", "/F", "/T", "/PID", str(pid),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        await asyncio.wait_for(killer.wait(), DEADLINE_BUFFER_SECONDS)
    except TimeoutError:
        killer.kill()


async def kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    """
    Forcibly terminate ``proc`` and everything it spawned.

    Errors are ignored: the process may already have exited.
    """
    if _IS_WINDOWS:
        try:
            await _taskkill(proc.pid)
        except (OSError, TimeoutError):
            pass
    else:
        try:
            # start_new_session makes the child its own group leader.
            os.killpg(proc.pid, signal.SIGKILL)
        except OSError:
            pass
    try:
        proc.kill()
    except (ProcessLookupError, OSError):
        pass


async def _drain(stream: asyncio.StreamReader, buffer: CappedBuffer) -> None:
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return
        buffer.feed(chunk)


async def _wait_for_exit(
    proc: asyncio.subprocess.Process,
    readers: list[asyncio.Task[None]],
) -> int:
    if readers:
        await asyncio.gather(*readers)
    return await proc.wait()


class ProcessRunner(CommandRunner):
    """
    Runs validated commands as child processes.

    Example:
        >>> runner = ProcessRunner()
        >>> outcome = await runner.run("echo hi", ".", timeout=5)
        >>> outcome.stdout
        'hi\\n'
    """

    def __init__(
        self,
        *,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        deadline_buffer: float = DEADLINE_BUFFER_SECONDS,
        env: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize a process runner.

        Args:
            max_output_bytes: Cap for each of stdout and stderr.
            deadline_buffer: Extra seconds on top of the timeout before the
                             outer deadline gives up on reaping the process.
            env: Environment for child processes. Inherits ours if None.
        """
        self._max_output_bytes = max_output_bytes
        self._deadline_buffer = deadline_buffer
        self._env = env
        self._running: set[asyncio.subprocess.Process] = set()
        self._closed = False

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
        if self._closed:
            raise RuntimeError("Runner has been closed")

        if not os.path.isdir(working_directory):
            return self._start_failed(
                command, working_directory, f"Working directory does not exist: {working_directory}"
            )

        try:
            argv = build_argv(command, run_as_shell)
        except ValueError as e:
            return self._start_failed(command, working_directory, f"Could not parse command: {e}")
        if not argv:
            return self._start_failed(command, working_directory, "No command specified")

        stream = asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL
        logger.debug("Spawning %r in %s", argv, working_directory)

        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=working_directory,
                env=self._env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
                **_process_group_kwargs(),
            )
        except OSError as e:
            return self._start_failed(command, working_directory, f"Failed to start process: {e}")

        stdout = CappedBuffer(self._max_output_bytes)
        stderr = CappedBuffer(self._max_output_bytes)
        self._running.add(proc)
        try:
            interrupted = await self._supervise(proc, timeout, stdout, stderr, cancel)
        finally:
            self._running.discard(proc)
        duration = time.monotonic() - started

        error = None
        status = RunStatus.COMPLETED
        if interrupted is not None:
            status = RunStatus.TIMED_OUT
            error = (
                "Command execution was cancelled"
                if interrupted == "cancelled"
                else f"Command execution timed out after {timeout:g} seconds"
            )
            logger.warning("%s: %s", error, command)

        return ExecutionOutcome(
            command=command,
            working_directory=working_directory,
            status=status,
            exit_code=proc.returncode,
            stdout=stdout.text(),
            stderr=stderr.text(),
            stdout_truncated=stdout.truncated,
            stderr_truncated=stderr.truncated,
            duration=duration,
            error=error,
        )

    async def _supervise(
        self,
        proc: asyncio.subprocess.Process,
        timeout: float,
        stdout: CappedBuffer,
        stderr: CappedBuffer,
        cancel: asyncio.Event | None,
    ) -> str | None:
        """
        Wait for ``proc`` until it exits, the timeout elapses, or ``cancel`` is set.

        Returns None on normal exit, otherwise "timeout" or "cancelled".
        """
        readers: list[asyncio.Task[None]] = []
        if proc.stdout is not None:
            readers.append(asyncio.ensure_future(_drain(proc.stdout, stdout)))
        if proc.stderr is not None:
            readers.append(asyncio.ensure_future(_drain(proc.stderr, stderr)))

        completion = asyncio.ensure_future(_wait_for_exit(proc, readers))
        watched: set[asyncio.Future[object]] = {completion}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            watched.add(cancel_waiter)

        interrupted: str | None = None
        try:
            async with asyncio.timeout(timeout + self._deadline_buffer):
                done, _ = await asyncio.wait(
                    watched, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                # Cancellation wins a race with normal completion.
                if cancel_waiter is not None and cancel_waiter in done:
                    interrupted = "cancelled"
                elif completion not in done:
                    interrupted = "timeout"

                if interrupted is None:
                    completion.result()
                else:
                    await kill_process_tree(proc)
                    for reader in readers:
                        reader.cancel()
                    await proc.wait()
        except TimeoutError:
            # Outer deadline: reaping the killed tree stalled.
            interrupted = interrupted or "timeout"
            await kill_process_tree(proc)
        except BaseException:
            # Caller cancelled us, or reading failed: leave nothing running.
            await kill_process_tree(proc)
            raise
        finally:
            pending = [t for t in (completion, cancel_waiter, *readers) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return interrupted

    def _start_failed(self, command: str, working_directory: str, error: str) -> ExecutionOutcome:
        logger.warning("Process start failed: %s", error)
        return ExecutionOutcome(
            command=command,
            working_directory=working_directory,
            status=RunStatus.START_FAILED,
            error=error,
        )

    async def close(self) -> None:
        """
        Kill every process tree this runner still owns.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        for proc in list(self._running):
            await kill_process_tree(proc)
        self._running.clear()
