"""
PydanticAI integration for execguard.

Provides helpers to create PydanticAI-compatible tools.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

try:
    from pydantic_ai import RunContext
except ImportError:
    raise ImportError(
        "PydanticAI integration requires 'pydantic-ai'. "
        "Install with `pip install execguard[pydantic-ai]`"
    )

from execguard.formatting import render_for_agent

if TYPE_CHECKING:
    from execguard.coordinator import ExecutionCoordinator


def create_command_tool_function(
    coordinator: ExecutionCoordinator,
) -> Callable[..., Awaitable[str]]:
    """
    Create a PydanticAI tool function backed by ``coordinator``.

    Example:
        >>> from pydantic_ai import Agent
        >>> execute_command = create_command_tool_function(create_command_tool())
        >>> agent = Agent("openai:gpt-4o", tools=[execute_command])
    """

    async def execute_command(
        ctx: RunContext[Any],
        command: str,
        working_directory: str | None = None,
        timeout: int | None = None,
    ) -> str:
        """
        Execute a system command safely.
        Only commands allowed by the sandbox policy will run.
        """
        result = await coordinator.execute({
            "command": command,
            "workingDirectory": working_directory,
            "timeout": timeout,
        })
        return render_for_agent(result)

    execute_command.__doc__ = coordinator.tool_prompt()
    return execute_command
