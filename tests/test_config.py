"""Tests for SandboxConfig and request parsing."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from pathlib import Path

import pytest

from execguard import CommandRequest, ConfigurationError, RequestError, SandboxConfig, SecurityMode


class TestSandboxConfig:
    """Tests for SandboxConfig."""

    def test_defaults(self) -> None:
        """The default config should be strict with a 30 second timeout."""
        config = SandboxConfig()
        assert config.mode is SecurityMode.STRICT
        assert config.default_timeout == 30
        assert config.enable_history
        assert config.history_size == 100
        assert not config.require_approval
        assert config.policy_name == "default"
        assert config.custom_validator is None

    def test_presets(self) -> None:
        """Presets should set the mode and accept overrides."""
        assert SandboxConfig.unrestricted().mode is SecurityMode.UNRESTRICTED
        assert SandboxConfig.restricted().mode is SecurityMode.RESTRICTED
        config = SandboxConfig.strict(default_timeout=60)
        assert config.mode is SecurityMode.STRICT
        assert config.default_timeout == 60

    def test_is_frozen(self) -> None:
        """Configs should be read-only once built."""
        config = SandboxConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.mode = SecurityMode.UNRESTRICTED  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"default_timeout": 0},
            {"default_timeout": 3601},
            {"default_timeout": True},
            {"history_size": 0},
            {"policy_name": ""},
            {"mode": "strict"},
            {"custom_validator": "not callable"},
        ],
    )
    def test_invalid_values(self, kwargs: dict[str, object]) -> None:
        """Invalid values should raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            SandboxConfig(**kwargs)  # type: ignore[arg-type]

    def test_from_mapping_with_aliases(self) -> None:
        """Both field names and camelCase aliases should be accepted."""
        config = SandboxConfig.from_mapping({
            "securityMode": "Restricted",
            "defaultTimeout": 10,
            "maxHistorySize": 5,
            "requireCommandApproval": True,
            "policy_name": "ci",
        })
        assert config.mode is SecurityMode.RESTRICTED
        assert config.default_timeout == 10
        assert config.history_size == 5
        assert config.require_approval
        assert config.policy_name == "ci"

    def test_from_mapping_ignores_unknown_keys(self, caplog: pytest.LogCaptureFixture) -> None:
        """Unknown keys should be logged and skipped."""
        with caplog.at_level(logging.WARNING, logger="execguard.config"):
            config = SandboxConfig.from_mapping({"mode": "unrestricted", "colour": "blue"})
        assert config.mode is SecurityMode.UNRESTRICTED
        assert "colour" in caplog.text

    def test_from_mapping_rejects_unknown_mode(self) -> None:
        """An unknown mode name should raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Unknown security mode"):
            SandboxConfig.from_mapping({"mode": "paranoid"})

    def test_from_json_file(self, tmp_path: Path) -> None:
        """Configs should load from JSON files."""
        path = tmp_path / "sandbox.json"
        path.write_text(json.dumps({"mode": "restricted", "enableHistory": False}))
        config = SandboxConfig.from_json_file(path)
        assert config.mode is SecurityMode.RESTRICTED
        assert not config.enable_history

    def test_from_json_file_errors(self, tmp_path: Path) -> None:
        """Missing, malformed or non-object files should raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            SandboxConfig.from_json_file(tmp_path / "missing.json")

        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        with pytest.raises(ConfigurationError):
            SandboxConfig.from_json_file(broken)

        listing = tmp_path / "list.json"
        listing.write_text("[1, 2]")
        with pytest.raises(ConfigurationError, match="JSON object"):
            SandboxConfig.from_json_file(listing)


class TestCommandRequest:
    """Tests for CommandRequest.from_arguments."""

    def test_defaults(self) -> None:
        """Omitted fields should take their defaults."""
        request = CommandRequest.from_arguments({"command": "ls"}, default_timeout=15)
        assert request.working_directory == os.getcwd()
        assert request.timeout == 15
        assert request.capture_output
        assert not request.run_as_shell

    def test_coercions(self, tmp_path: Path) -> None:
        """Paths, numeric strings, integral floats and bool strings should be accepted."""
        request = CommandRequest.from_arguments({
            "command": "ls",
            "working_directory": tmp_path,
            "timeout": 5.0,
            "captureOutput": "False",
        })
        assert request.working_directory == str(tmp_path)
        assert request.timeout == 5
        assert not request.capture_output

    @pytest.mark.parametrize("timeout", [True, 2.5, -1, "ten"])
    def test_bad_timeouts(self, timeout: object) -> None:
        """Non-integral or out-of-range timeouts should be rejected."""
        with pytest.raises(RequestError):
            CommandRequest.from_arguments({"command": "ls", "timeout": timeout})

    def test_non_mapping(self) -> None:
        """Arguments must be a mapping."""
        with pytest.raises(RequestError):
            CommandRequest.from_arguments(["ls"])  # type: ignore[arg-type]

    def test_bad_working_directory_type(self) -> None:
        """A working directory must be path-like."""
        with pytest.raises(RequestError):
            CommandRequest.from_arguments({"command": "ls", "workingDirectory": 42})
