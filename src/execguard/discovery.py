"""
Tool discovery and LLM prompt generation.

Checks which allowlisted tools are actually installed and generates a prompt
that tells the LLM what it can run, so it does not waste turns on commands the
policy will reject.
"""

from __future__ import annotations

import shutil

from execguard._types import SecurityMode
from execguard.security.policy import CommandPolicy

# Known tools with their descriptions for LLM prompting
KNOWN_TOOLS: dict[str, str] = {
    # Version control
    "git": "Version control (read-only subcommands: status, log, diff, show, ...)",
    "svn": "Subversion (read-only subcommands)",
    "hg": "Mercurial (read-only subcommands)",
    # Search and filter
    "grep": "Pattern matching and searching (regex support)",
    "find": "Locate files by pattern, name, or attributes",
    # Text processing
    "sed": "Stream editor for substitution and transformation",
    "awk": "Field-based processing and pattern scanning",
    "cut": "Extract columns/fields by delimiter",
    "tr": "Translate, squeeze, or delete characters",
    "sort": "Sort lines alphabetically/numerically",
    "uniq": "Remove duplicates or count occurrences",
    # File viewing
    "cat": "View file contents",
    "head": "View first N lines of a file",
    "tail": "View last N lines of a file",
    "wc": "Count lines, words, characters",
    "ls": "List directory contents",
    "diff": "Compare files line by line",
    # Programming
    "python3": "Python interpreter",
    "python": "Python interpreter",
    "node": "Node.js runtime",
    "npm": "Node.js package scripts",
    "make": "Run build targets",
    "cargo": "Rust build tool",
    "dotnet": ".NET CLI",
    # Network
    "curl": "Transfer data from URLs",
    "ping": "Check host reachability",
}

_MODE_NOTES: dict[SecurityMode, str] = {
    SecurityMode.UNRESTRICTED: "Commands are not restricted by policy.",
    SecurityMode.RESTRICTED: (
        "Only allowlisted commands run; destructive commands, privilege "
        "escalation and chained dangerous commands are rejected."
    ),
    SecurityMode.STRICT: (
        "Only allowlisted commands run. Force/recursive flags, shell "
        "metacharacters, redirection and path traversal (.., ~) are rejected."
    ),
}


def discover_tools(policy: CommandPolicy) -> set[str]:
    """
    Return the allowlisted commands that are installed on PATH.

    Args:
        policy: The policy whose allowlist is checked.

    Returns:
        Set of available command names.
    """
    return {name for name in policy.allowed_commands if shutil.which(name)}


def generate_tool_prompt(policy: CommandPolicy, mode: SecurityMode) -> str:
    """
    Generate an LLM-optimized prompt describing the usable commands.

    The prompt includes:
    - A note on what the current security mode rejects
    - The allowlisted commands that are installed
    - Descriptions for well-known tools among them

    Args:
        policy: Policy in effect.
        mode: Security mode in effect.

    Returns:
        A formatted prompt string.
    """
    lines: list[str] = [_MODE_NOTES[mode]]
    if mode is SecurityMode.UNRESTRICTED:
        return "\n".join(lines)

    available = discover_tools(policy)
    if not available:
        return "\n".join(lines)

    lines.append(f"Available commands: {', '.join(sorted(available))}")

    described = [f"- {name}: {KNOWN_TOOLS[name]}" for name in sorted(available) if name in KNOWN_TOOLS]
    if described:
        lines.append("Notable tools:")
        lines.extend(described)

    return "\n".join(lines)
