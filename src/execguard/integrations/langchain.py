"""LangChain integration for execguard."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from execguard.formatting import render_for_agent

if TYPE_CHECKING:
    from execguard.coordinator import ExecutionCoordinator

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tool(coordinator: ExecutionCoordinator) -> Any:
    """
    Create a LangChain tool from an ExecutionCoordinator.

    Args:
        coordinator: The coordinator to wrap.

    Returns:
        A LangChain StructuredTool named ``execute_command``.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> tool = create_langchain_tool(create_command_tool())
        >>> agent = create_react_agent(llm, [tool])
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install execguard[langchain]"
        )

    async def execute_command(
        command: str,
        working_directory: str | None = None,
        timeout: int | None = None,
        run_as_shell: bool = False,
    ) -> str:
        """Execute a system command under the sandbox policy."""
        result = await coordinator.execute({
            "command": command,
            "workingDirectory": working_directory,
            "timeout": timeout,
            "runAsShell": run_as_shell,
        })
        return render_for_agent(result)

    return _StructuredTool.from_function(
        coroutine=execute_command,
        name=coordinator.name,
        description=coordinator.tool_prompt(),
    )
