"""Tests for recovery configuration."""
import dataclasses

import pytest

from backend.src.fault_recovery.config import (
    AUTHENTICATION,
    GITHUB_API,
    MCP_SERVICES,
    RecoveryConfig,
    preset,
)
from backend.src.fault_recovery.exceptions import RecoveryConfigError


class TestRecoveryConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        """Test default values."""
        config = RecoveryConfig(operation_name="GitHub API")
        assert config.max_retries == 3
        assert config.base_delay_ms == 1000
        assert config.rate_limit_delay_ms == 60000
        assert config.escape_target == "/dashboard"
        assert config.reconnect_target == "/login"

    def test_immutable(self):
        """Test that a config cannot be changed after construction."""
        config = RecoveryConfig(operation_name="op")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.max_retries = 10

    def test_zero_retries_allowed(self):
        """Test that a zero retry budget is valid."""
        assert RecoveryConfig(operation_name="op", max_retries=0).max_retries == 0

    @pytest.mark.parametrize("changes,field_name", [
        ({"max_retries": -1}, "max_retries"),
        ({"base_delay_ms": 0}, "base_delay_ms"),
        ({"rate_limit_delay_ms": -5}, "rate_limit_delay_ms"),
        ({"base_delay_ms": 1.5}, "base_delay_ms"),
        ({"max_retries": True}, "max_retries"),
        ({"operation_name": "  "}, "operation_name"),
    ])
    def test_invalid_values(self, changes, field_name):
        """Test that invalid values are rejected with the field name."""
        kwargs = {"operation_name": "op", **changes}
        with pytest.raises(RecoveryConfigError) as exc_info:
            RecoveryConfig(**kwargs)
        assert exc_info.value.field_name == field_name

    def test_config_error_is_value_error(self):
        """Test that config errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            RecoveryConfig(operation_name="op", max_retries=-1)

    def test_with_overrides_validates(self):
        """Test that overrides produce a new validated config."""
        config = RecoveryConfig(operation_name="op")
        changed = config.with_overrides(max_retries=5)
        assert changed.max_retries == 5
        assert config.max_retries == 3
        with pytest.raises(RecoveryConfigError):
            config.with_overrides(base_delay_ms=0)


class TestFromEnv:
    """Test environment loading."""

    def test_reads_prefixed_variables(self):
        """Test that prefixed variables override the defaults."""
        env = {
            "RECOVERY_MAX_RETRIES": "5",
            "RECOVERY_BASE_DELAY_MS": "250",
            "RECOVERY_RATE_LIMIT_DELAY_MS": "30000",
        }
        config = RecoveryConfig.from_env("op", environ=env)
        assert (config.max_retries, config.base_delay_ms, config.rate_limit_delay_ms) == (5, 250, 30000)

    def test_missing_variables_keep_defaults(self):
        """Test that unset or blank variables fall back to defaults."""
        config = RecoveryConfig.from_env("op", environ={"RECOVERY_MAX_RETRIES": ""})
        assert config.max_retries == 3
        assert config.base_delay_ms == 1000

    def test_custom_prefix(self):
        """Test reading with a custom prefix."""
        config = RecoveryConfig.from_env("op", prefix="GITHUB_", environ={"GITHUB_MAX_RETRIES": "1"})
        assert config.max_retries == 1

    def test_non_integer_value(self):
        """Test that garbage values raise a config error naming the variable."""
        with pytest.raises(RecoveryConfigError) as exc_info:
            RecoveryConfig.from_env("op", environ={"RECOVERY_BASE_DELAY_MS": "soon"})
        assert exc_info.value.field_name == "RECOVERY_BASE_DELAY_MS"

    def test_reads_os_environ(self, monkeypatch):
        """Test that os.environ is used when no mapping is passed."""
        monkeypatch.setenv("RECOVERY_MAX_RETRIES", "7")
        assert RecoveryConfig.from_env("op").max_retries == 7


class TestPresets:
    """Test the named presets."""

    def test_preset_values(self):
        """Test the preset budgets and delays."""
        assert (GITHUB_API.max_retries, GITHUB_API.base_delay_ms) == (3, 2000)
        assert (MCP_SERVICES.max_retries, MCP_SERVICES.base_delay_ms) == (2, 1500)
        assert (AUTHENTICATION.max_retries, AUTHENTICATION.base_delay_ms) == (1, 1000)

    def test_lookup(self):
        """Test lookup by name, case-insensitively."""
        assert preset("GitHub") is GITHUB_API
        assert preset("mcp") is MCP_SERVICES

    def test_unknown_preset(self):
        """Test that unknown names raise."""
        with pytest.raises(RecoveryConfigError):
            preset("nope")
