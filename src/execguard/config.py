"""
Sandbox configuration.

Loaded once when a coordinator is built and read-only afterwards.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from execguard._types import (
    DEFAULT_TIMEOUT_SECONDS,
    MAX_TIMEOUT_SECONDS,
    MIN_TIMEOUT_SECONDS,
    CustomValidator,
    SecurityMode,
)
from execguard.errors import ConfigurationError
from execguard.history import DEFAULT_HISTORY_SIZE
from execguard.security.registry import DEFAULT_POLICY_NAME

logger = logging.getLogger(__name__)

# Alternative spellings accepted by from_mapping().
_KEY_ALIASES = {
    "security_mode": "mode",
    "securityMode": "mode",
    "defaultTimeout": "default_timeout",
    "max_history_size": "history_size",
    "maxHistorySize": "history_size",
    "enableHistory": "enable_history",
    "require_command_approval": "require_approval",
    "requireCommandApproval": "require_approval",
    "policyName": "policy_name",
}


@dataclass(frozen=True)
class SandboxConfig:
    """
    Immutable configuration for an ExecutionCoordinator.

    Presets:
    - unrestricted(): policy bypassed, for trusted automation only
    - restricted(): denylist, allowlist and subcommand rules
    - strict(): restricted plus the dangerous-argument scan (default)
    """

    mode: SecurityMode = SecurityMode.STRICT
    default_timeout: int = DEFAULT_TIMEOUT_SECONDS
    enable_history: bool = True
    history_size: int = DEFAULT_HISTORY_SIZE
    require_approval: bool = False
    policy_name: str = DEFAULT_POLICY_NAME
    custom_validator: CustomValidator | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.mode, SecurityMode):
            raise ConfigurationError(f"Unknown security mode: {self.mode!r}")
        if (
            isinstance(self.default_timeout, bool)
            or not isinstance(self.default_timeout, int)
            or not MIN_TIMEOUT_SECONDS <= self.default_timeout <= MAX_TIMEOUT_SECONDS
        ):
            raise ConfigurationError(
                f"default_timeout must be between {MIN_TIMEOUT_SECONDS} and "
                f"{MAX_TIMEOUT_SECONDS} seconds"
            )
        if isinstance(self.history_size, bool) or not isinstance(self.history_size, int) or self.history_size < 1:
            raise ConfigurationError("history_size must be a positive integer")
        if not self.policy_name:
            raise ConfigurationError("policy_name must not be empty")
        if self.custom_validator is not None and not callable(self.custom_validator):
            raise ConfigurationError("custom_validator must be callable")

    @classmethod
    def unrestricted(cls, **overrides: Any) -> SandboxConfig:
        """
        Bypass the policy engine entirely.

        Use only where the caller fully trusts the command source.
        """
        return cls(mode=SecurityMode.UNRESTRICTED, **overrides)

    @classmethod
    def restricted(cls, **overrides: Any) -> SandboxConfig:
        return cls(mode=SecurityMode.RESTRICTED, **overrides)

    @classmethod
    def strict(cls, **overrides: Any) -> SandboxConfig:
        return cls(mode=SecurityMode.STRICT, **overrides)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SandboxConfig:
        """
        Build a config from plain data (e.g. a parsed JSON settings file).

        ``mode`` may be given by name (``"strict"``). Unknown keys are logged
        and ignored.

        Raises:
            ConfigurationError: If a value is invalid.
        """
        known = {f.name for f in fields(cls)} - {"custom_validator"}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown sandbox config key: %s", key)
                continue
            values[name] = value

        if "mode" in values and not isinstance(values["mode"], SecurityMode):
            values["mode"] = _parse_mode(values["mode"])
        return cls(**values)

    @classmethod
    def from_json_file(cls, path: str | Path) -> SandboxConfig:
        """
        Load a config from a JSON file.

        Raises:
            ConfigurationError: If the file is unreadable or malformed.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load sandbox config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Sandbox config in {path} must be a JSON object")
        return cls.from_mapping(data)


def _parse_mode(value: Any) -> SecurityMode:
    if isinstance(value, str):
        try:
            return SecurityMode(value.strip().lower())
        except ValueError:
            pass
    raise ConfigurationError(
        f"Unknown security mode: {value!r}. "
        f"Use one of: {', '.join(m.value for m in SecurityMode)}"
    )
