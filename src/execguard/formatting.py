"""
Human-readable rendering of execution outcomes.
"""

from __future__ import annotations

from execguard._types import ExecutionOutcome, ToolResult

TRUNCATION_MARKER = "... (output truncated)"


def format_outcome(outcome: ExecutionOutcome) -> str:
    """
    Summarise an outcome for the agent or the end user.

    Layout: command, working directory, exit code and duration, then one
    section per non-empty stream, each followed by a truncation marker when
    the output cap was hit.
    """
    exit_code = "n/a" if outcome.exit_code is None else str(outcome.exit_code)
    lines = [
        f"Command: {outcome.command}",
        f"Working Directory: {outcome.working_directory}",
        f"Exit Code: {exit_code}",
        f"Duration: {outcome.duration * 1000:.2f}ms",
        "",
    ]

    if outcome.stdout.strip():
        lines.append("=== Standard Output ===")
        lines.append(_section(outcome.stdout, outcome.stdout_truncated))

    if outcome.stderr.strip():
        lines.append("=== Standard Error ===")
        lines.append(_section(outcome.stderr, outcome.stderr_truncated))

    return "\n".join(lines)


def _section(text: str, truncated: bool) -> str:
    if truncated:
        return f"{text}\n\n{TRUNCATION_MARKER}"
    return text


def truncate_display(text: str, limit: int) -> str:
    """Shorten ``text`` to ``limit`` characters for one-line summaries."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."


def render_for_agent(result: ToolResult) -> str:
    """Flatten a ToolResult into the single string framework tools return."""
    if result.success:
        return result.formatted_output
    if not result.formatted_output or result.formatted_output == result.error:
        return f"Error: {result.error}"
    return f"Error: {result.error}\n\n{result.formatted_output}"
