"""
Approval gate adapters.

The coordinator asks an ApprovalGate before validating a command when
``require_approval`` is set. These adapters cover the common wiring; a UI can
implement the protocol directly.
"""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Union

logger = logging.getLogger(__name__)

ApprovalCallback = Callable[[str, str], Union[bool, Awaitable[bool]]]


class StaticApprovalGate:
    """Answers every request the same way."""

    def __init__(self, approved: bool) -> None:
        self.approved = approved

    async def request_approval(self, command: str, working_directory: str) -> bool:
        logger.debug("Static approval (%s) for %r", self.approved, command)
        return self.approved


class CallbackApprovalGate:
    """
    Delegates the decision to a sync or async callable.

    Example:
        >>> def ask(command: str, cwd: str) -> bool:
        ...     return input(f"Run {command!r} in {cwd}? [y/N] ").lower() == "y"
        >>> gate = CallbackApprovalGate(ask)
    """

    def __init__(self, callback: ApprovalCallback) -> None:
        self._callback = callback

    async def request_approval(self, command: str, working_directory: str) -> bool:
        answer = self._callback(command, working_directory)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
