"""
Configuration for recovery behavior.
"""
import os
from dataclasses import dataclass, replace
from typing import Dict, Optional

from .exceptions import RecoveryConfigError


DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_RATE_LIMIT_DELAY_MS = 60000  # 1 minute for rate limits


@dataclass(frozen=True)
class RecoveryConfig:
    """
    Configuration for a single recovery controller.

    Supplied at construction and never changed afterwards.

    Attributes:
        operation_name: Human readable label used in messages and logs
        max_retries: Retry budget, 0 disables retries entirely
        base_delay_ms: Delay before the first automatic retry; doubles on
            every further attempt
        rate_limit_delay_ms: Fixed delay used for rate limited failures
        escape_target: Where the host's escape action navigates to
        reconnect_target: Where the host's reconnect action navigates to
    """

    operation_name: str
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    rate_limit_delay_ms: int = DEFAULT_RATE_LIMIT_DELAY_MS
    escape_target: str = "/dashboard"
    reconnect_target: str = "/login"

    def __post_init__(self):
        if not isinstance(self.operation_name, str) or not self.operation_name.strip():
            raise RecoveryConfigError("operation_name must be a non-empty string", "operation_name")
        _check_int("max_retries", self.max_retries, minimum=0)
        _check_int("base_delay_ms", self.base_delay_ms, minimum=1)
        _check_int("rate_limit_delay_ms", self.rate_limit_delay_ms, minimum=1)

    @classmethod
    def from_env(
        cls,
        operation_name: str,
        prefix: str = "RECOVERY_",
        environ: Optional[Dict[str, str]] = None
    ) -> 'RecoveryConfig':
        """
        Build a config from environment variables.

        Reads ``<prefix>MAX_RETRIES``, ``<prefix>BASE_DELAY_MS`` and
        ``<prefix>RATE_LIMIT_DELAY_MS``; unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        return cls(
            operation_name=operation_name,
            max_retries=_env_int(env, f"{prefix}MAX_RETRIES", DEFAULT_MAX_RETRIES),
            base_delay_ms=_env_int(env, f"{prefix}BASE_DELAY_MS", DEFAULT_BASE_DELAY_MS),
            rate_limit_delay_ms=_env_int(
                env, f"{prefix}RATE_LIMIT_DELAY_MS", DEFAULT_RATE_LIMIT_DELAY_MS
            ),
        )

    def with_overrides(self, **changes) -> 'RecoveryConfig':
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)


def _check_int(name: str, value, minimum: int) -> None:
    # bool is an int subclass but never a sensible retry count or delay
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecoveryConfigError(f"{name} must be an integer, got {value!r}", name)
    if value < minimum:
        raise RecoveryConfigError(f"{name} must be >= {minimum}, got {value}", name)


def _env_int(env, key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RecoveryConfigError(f"{key} must be an integer, got {raw!r}", key) from None


# Presets for the services the dashboard protects
GITHUB_API = RecoveryConfig(operation_name="GitHub API", max_retries=3, base_delay_ms=2000)
MCP_SERVICES = RecoveryConfig(operation_name="MCP Services", max_retries=2, base_delay_ms=1500)
AUTHENTICATION = RecoveryConfig(operation_name="Authentication", max_retries=1, base_delay_ms=1000)

PRESETS: Dict[str, RecoveryConfig] = {
    "github": GITHUB_API,
    "mcp": MCP_SERVICES,
    "auth": AUTHENTICATION,
}


def preset(name: str) -> RecoveryConfig:
    """Look up a named preset."""
    try:
        return PRESETS[name.lower()]
    except KeyError:
        known = ", ".join(sorted(PRESETS))
        raise RecoveryConfigError(f"Unknown preset '{name}' (known: {known})", "preset") from None
