"""
Command policy: allowlist, denylist and argument checks.

This is the core security layer. It decides, before anything is spawned,
whether a requested command may run. ``CommandPolicy.validate`` is total:
malformed input is denied, never raised on.
"""

from __future__ import annotations

import logging
import ntpath
import os
import re
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from execguard._types import DenialRule, SecurityMode, ValidationVerdict

logger = logging.getLogger(__name__)


# Blocked anywhere in the raw text, in any mode except UNRESTRICTED.
ALWAYS_BLOCKED_COMMANDS: frozenset[str] = frozenset({
    # File system destruction
    "rm", "rmdir", "del", "rd", "format", "fdisk", "mkfs", "dd",
    # System control
    "sudo", "su", "runas", "shutdown", "reboot", "halt", "poweroff",
    "systemctl", "service", "sc", "net",
    # Process control
    "kill", "killall", "pkill", "taskkill", "pskill",
    # Permission changes
    "chmod", "chown", "chgrp", "icacls", "attrib",
    # Network configuration
    "iptables", "netsh", "route", "ifconfig", "ip",
    # Package installation
    "rpm", "dpkg", "pacman",
    # Disk operations
    "mount", "umount", "fsck", "partprobe",
})

# Default-deny: only these base names may run.
ALLOWED_COMMANDS: frozenset[str] = frozenset({
    # Version control
    "git", "svn", "hg",
    # File inspection
    "ls", "dir", "cat", "type", "head", "tail", "find", "grep", "sort", "wc",
    "diff", "which",
    # Development tools
    "dotnet", "npm", "node", "python", "python3", "pip", "mvn", "gradle",
    "cargo", "rustc", "gcc", "clang", "make", "cmake", "msbuild",
    # Text processing
    "echo", "printf", "sed", "awk", "cut", "tr", "uniq",
    # System info
    "whoami", "pwd", "date", "uptime", "uname", "hostname", "sleep",
    # Network diagnostics
    "curl", "wget", "ping", "traceroute", "nslookup", "dig",
})


@dataclass(frozen=True, slots=True)
class SubcommandRule:
    """Read-only subcommands a tool may run, and the ones it must never run."""

    allowed: frozenset[str]
    denied: frozenset[str] = frozenset()


SUBCOMMAND_RULES: Mapping[str, SubcommandRule] = MappingProxyType({
    "git": SubcommandRule(
        allowed=frozenset({
            "status", "log", "diff", "show", "rev-parse", "branch", "remote", "describe",
        }),
        denied=frozenset({
            "reset", "checkout", "clean", "rebase", "merge", "pull", "push",
            "commit", "apply", "cherry-pick",
        }),
    ),
    "svn": SubcommandRule(
        allowed=frozenset({"status", "st", "log", "diff", "info", "list", "ls", "cat", "blame"}),
        denied=frozenset({
            "commit", "ci", "update", "up", "revert", "delete", "rm", "move", "mv",
            "copy", "cp", "import", "switch", "merge", "cleanup",
        }),
    ),
    "hg": SubcommandRule(
        allowed=frozenset({
            "status", "st", "log", "diff", "summary", "identify", "id", "branch",
            "branches", "annotate",
        }),
        denied=frozenset({
            "commit", "ci", "push", "pull", "update", "up", "revert", "merge",
            "strip", "rebase", "histedit", "remove",
        }),
    ),
})

# STRICT mode: matched as substrings of a sub-command.
DANGEROUS_SUBSTRINGS: tuple[str, ...] = (
    # Command injection
    "$(", "${", "`", "&&", "||", ";", "|", ">", "<",
    # Path traversal
    "..", "~", "$HOME", "%USERPROFILE%",
)

# STRICT mode: matched against whole arguments.
DANGEROUS_ARGUMENTS: frozenset[str] = frozenset({
    "/f", "/s", "/q", "/y",  # Windows force/quiet flags
})

# Long options and their variants (--force, --force=true, --force-reinstall).
_DANGEROUS_LONG_OPTIONS = re.compile(r"^--(force|recursive|all)($|[=-])", re.IGNORECASE)

# Single-dash short-flag clusters carrying all, force or recursive (-a, -rf, -la).
_DANGEROUS_SHORT_FLAGS = re.compile(r"^-[a-z]*[afr][a-z]*$", re.IGNORECASE)

_COMMAND_SEPARATORS = re.compile(r"[;&|\n\r]")


def _default_trusted_directories() -> frozenset[str]:
    dirs = {"/usr/bin", "/bin", "/usr/local/bin"}
    system_root = os.environ.get("SystemRoot") or os.environ.get("WINDIR")
    if system_root:
        dirs.add(ntpath.join(system_root, "System32"))
    for var in ("ProgramFiles", "ProgramFiles(x86)"):
        if os.environ.get(var):
            dirs.add(os.environ[var])
    return frozenset(os.path.normcase(os.path.normpath(d)) for d in dirs)


def _compile_blocked(names: frozenset[str]) -> re.Pattern[str] | None:
    if not names:
        return None
    # Longest first so "killall" is reported rather than "kill".
    alternation = "|".join(re.escape(n) for n in sorted(names, key=lambda n: (-len(n), n)))
    # Only a letter, digit or underscore next to a name makes it part of another
    # word (pip, dotnet). Option values such as c=rm or --exec=sudo still match.
    return re.compile(rf"(?<!\w)({alternation})(?!\w)", re.IGNORECASE)


@dataclass(frozen=True)
class CommandPolicy:
    """
    Immutable rule set deciding whether a command may run.

    Validation short-circuits at the first failing stage:

    1. Always-blocked scan of the whole raw text (before splitting, so a
       blocked token smuggled into a chain denies the entire request).
    2. Split the text into sub-commands on ``; & |`` and newlines.
    3. For each sub-command: path guard, allowlist, subcommand rules, and
       in STRICT mode the dangerous-argument scan.

    UNRESTRICTED mode always allows.

    Example:
        >>> policy = CommandPolicy.default()
        >>> policy.validate("git status", SecurityMode.RESTRICTED).allowed
        True
        >>> policy.validate("ls; sudo reboot", SecurityMode.RESTRICTED).reason
        "Command contains always-blocked command 'sudo'"
    """

    allowed_commands: frozenset[str] = ALLOWED_COMMANDS
    blocked_commands: frozenset[str] = ALWAYS_BLOCKED_COMMANDS
    subcommand_rules: Mapping[str, SubcommandRule] = field(default_factory=lambda: SUBCOMMAND_RULES)
    trusted_directories: frozenset[str] = field(default_factory=_default_trusted_directories)
    _blocked_pattern: re.Pattern[str] | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lowered_allowed = frozenset(c.lower() for c in self.allowed_commands)
        lowered_blocked = frozenset(c.lower() for c in self.blocked_commands)
        object.__setattr__(self, "allowed_commands", lowered_allowed)
        object.__setattr__(self, "blocked_commands", lowered_blocked)
        object.__setattr__(self, "subcommand_rules", MappingProxyType(dict(self.subcommand_rules)))
        object.__setattr__(
            self,
            "trusted_directories",
            frozenset(os.path.normcase(os.path.normpath(d)) for d in self.trusted_directories),
        )
        object.__setattr__(self, "_blocked_pattern", _compile_blocked(lowered_blocked))

    @classmethod
    def default(cls) -> CommandPolicy:
        """Create the built-in policy (recommended)."""
        return cls()

    def with_allowed(self, *commands: str) -> CommandPolicy:
        """Return a copy whose allowlist also contains ``commands``."""
        return replace(self, allowed_commands=self.allowed_commands | set(commands))

    def without_allowed(self, *commands: str) -> CommandPolicy:
        """Return a copy whose allowlist no longer contains ``commands``."""
        removed = {c.lower() for c in commands}
        return replace(self, allowed_commands=self.allowed_commands - removed)

    def validate(
        self,
        command: object,
        mode: SecurityMode,
        *,
        cwd: str | os.PathLike[str] | None = None,
    ) -> ValidationVerdict:
        """
        Classify ``command`` under ``mode``.

        Args:
            command: Raw command text as supplied by the agent.
            mode: Security mode in effect.
            cwd: Directory relative executable paths are resolved against.
                 Defaults to the process working directory.

        Returns:
            A ValidationVerdict; denials carry a user-facing reason.
        """
        if mode is SecurityMode.UNRESTRICTED:
            return ValidationVerdict.allow("Unrestricted mode")

        if not isinstance(command, str):
            return ValidationVerdict.deny("Command must be a string", DenialRule.EMPTY)
        if not command.strip():
            return ValidationVerdict.deny("Command cannot be empty", DenialRule.EMPTY)

        verdict = self._check_always_blocked(command)
        if not verdict.allowed:
            return verdict

        sub_commands = [part.strip() for part in _COMMAND_SEPARATORS.split(command)]
        sub_commands = [part for part in sub_commands if part]
        if not sub_commands:
            return ValidationVerdict.deny("No command specified", DenialRule.EMPTY)

        for sub_command in sub_commands:
            verdict = self._check_single(sub_command, mode, cwd)
            if not verdict.allowed:
                return verdict

        logger.debug("Policy allowed command %r in %s mode", command, mode.value)
        return ValidationVerdict.allow()

    def _check_always_blocked(self, command: str) -> ValidationVerdict:
        if self._blocked_pattern is None:
            return ValidationVerdict.allow()
        match = self._blocked_pattern.search(command)
        if match:
            return ValidationVerdict.deny(
                f"Command contains always-blocked command '{match.group(1).lower()}'",
                DenialRule.ALWAYS_BLOCKED,
            )
        return ValidationVerdict.allow()

    def _check_single(
        self,
        command: str,
        mode: SecurityMode,
        cwd: str | os.PathLike[str] | None,
    ) -> ValidationVerdict:
        parts = command.split()
        if not parts:
            return ValidationVerdict.deny("No command specified", DenialRule.EMPTY)

        executable = parts[0]
        base_command = _base_name(executable)

        if "/" in executable or "\\" in executable or ".." in executable:
            verdict = self._check_path(executable, cwd)
            if not verdict.allowed:
                return verdict

        if base_command not in self.allowed_commands:
            return ValidationVerdict.deny(
                f"Command '{base_command}' is not in the allowed commands list",
                DenialRule.NOT_ALLOWLISTED,
            )

        rule = self.subcommand_rules.get(base_command)
        if rule is not None and len(parts) > 1:
            sub = parts[1].lower()
            if sub in rule.denied:
                return ValidationVerdict.deny(
                    f"{base_command} subcommand '{sub}' is not permitted",
                    DenialRule.SUBCOMMAND,
                )
            if sub not in rule.allowed:
                return ValidationVerdict.deny(
                    f"{base_command} subcommand '{sub}' is not in the allowed read-only list",
                    DenialRule.SUBCOMMAND,
                )

        if mode is SecurityMode.STRICT:
            pattern = _find_dangerous_pattern(command, parts[1:])
            if pattern is not None:
                return ValidationVerdict.deny(
                    f"Command contains dangerous pattern '{pattern}'",
                    DenialRule.DANGEROUS_PATTERN,
                )

        return ValidationVerdict.allow()

    def _check_path(
        self,
        executable: str,
        cwd: str | os.PathLike[str] | None,
    ) -> ValidationVerdict:
        try:
            base = os.fspath(cwd) if cwd is not None else os.getcwd()
            full_path = os.path.normpath(os.path.join(base, executable))
            directory = os.path.normcase(os.path.dirname(full_path))
        except (OSError, TypeError, ValueError):
            return ValidationVerdict.deny("Invalid command path", DenialRule.PATH_GUARD)

        if directory not in self.trusted_directories:
            return ValidationVerdict.deny(
                f"Command path '{full_path}' is not in an allowed directory",
                DenialRule.PATH_GUARD,
            )
        return ValidationVerdict.allow()


def _base_name(executable: str) -> str:
    name = re.split(r"[\\/]", executable)[-1].lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name


def _find_dangerous_pattern(command: str, arguments: list[str]) -> str | None:
    lowered = command.lower()
    for pattern in DANGEROUS_SUBSTRINGS:
        if pattern.lower() in lowered:
            return pattern
    for argument in arguments:
        token = argument.lower()
        if token in DANGEROUS_ARGUMENTS or _DANGEROUS_LONG_OPTIONS.match(token):
            return argument
        if _DANGEROUS_SHORT_FLAGS.match(token):
            return argument
    return None


_DEFAULT_POLICY = CommandPolicy.default()


def validate_command(
    command: object,
    mode: SecurityMode,
    *,
    cwd: str | os.PathLike[str] | None = None,
) -> ValidationVerdict:
    """Validate ``command`` against the built-in policy."""
    return _DEFAULT_POLICY.validate(command, mode, cwd=cwd)
