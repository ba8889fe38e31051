"""Ordered classification rules.

Order matters: the first rule whose indicators appear in the message wins,
so a message mentioning both "401" and "500" is an auth failure.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

from ..types import FailureKind


@dataclass(frozen=True)
class ClassificationRule:
    """Maps message substrings to a failure kind."""

    kind: FailureKind
    indicators: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        """Check a lower-cased message against the indicators."""
        return any(indicator in text for indicator in self.indicators)


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(FailureKind.NETWORK, ("network", "fetch")),
    ClassificationRule(FailureKind.RATE_LIMIT, ("rate limit", "429")),
    ClassificationRule(FailureKind.AUTH, ("auth", "401", "403")),
    ClassificationRule(FailureKind.SERVER, ("500", "502", "503")),
)


USER_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.NETWORK: "We couldn't connect to {name}. Please check your internet connection.",
    FailureKind.RATE_LIMIT: "{name} is temporarily rate-limited. We'll retry automatically in a moment.",
    FailureKind.AUTH: "Authentication failed for {name}. You may need to reconnect your account.",
    FailureKind.SERVER: "{name} is experiencing technical difficulties. Our team has been notified.",
    FailureKind.UNKNOWN: "We encountered an issue with {name}. Please try again.",
}
