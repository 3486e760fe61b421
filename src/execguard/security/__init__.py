"""Security module for execguard."""

from execguard.security.policy import (
    ALLOWED_COMMANDS,
    ALWAYS_BLOCKED_COMMANDS,
    SUBCOMMAND_RULES,
    CommandPolicy,
    SubcommandRule,
    validate_command,
)
from execguard.security.registry import DEFAULT_POLICY_NAME, PolicyRegistry

__all__ = [
    "ALLOWED_COMMANDS",
    "ALWAYS_BLOCKED_COMMANDS",
    "DEFAULT_POLICY_NAME",
    "SUBCOMMAND_RULES",
    "CommandPolicy",
    "PolicyRegistry",
    "SubcommandRule",
    "validate_command",
]
