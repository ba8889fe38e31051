"""Tests for failure classification."""
import pytest

from backend.src.fault_recovery.classification import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    classify,
    failure_message,
    user_message,
)
from backend.src.fault_recovery.types import FailureKind


class TestClassify:
    """Test the ordered message rules."""

    @pytest.mark.parametrize("message,expected", [
        ("Network request failed", FailureKind.NETWORK),
        ("TypeError: Failed to fetch", FailureKind.NETWORK),
        ("Rate limit exceeded", FailureKind.RATE_LIMIT),
        ("429 Too Many Requests", FailureKind.RATE_LIMIT),
        ("Authentication required", FailureKind.AUTH),
        ("401 Unauthorized", FailureKind.AUTH),
        ("403 Forbidden", FailureKind.AUTH),
        ("500 Internal Server Error", FailureKind.SERVER),
        ("502 Bad Gateway", FailureKind.SERVER),
        ("503 Service Unavailable", FailureKind.SERVER),
        ("Something odd happened", FailureKind.UNKNOWN),
        ("", FailureKind.UNKNOWN),
    ])
    def test_message_rules(self, message, expected):
        """Test each rule against a representative message."""
        assert classify(RuntimeError(message)) is expected

    def test_case_insensitive(self):
        """Test that matching ignores case."""
        assert classify(RuntimeError("NETWORK DOWN")) is FailureKind.NETWORK
        assert classify(RuntimeError("RATE LIMIT hit")) is FailureKind.RATE_LIMIT

    def test_auth_wins_over_server(self):
        """Test that a message with both 401 and 500 is an auth failure."""
        assert classify(RuntimeError("401 after upstream 500")) is FailureKind.AUTH

    def test_network_wins_over_everything(self):
        """Test that network indicators take priority over later rules."""
        assert classify(RuntimeError("network error 429 401 503")) is FailureKind.NETWORK

    def test_rate_limit_wins_over_auth(self):
        """Test that rate limit is checked before auth."""
        assert classify(RuntimeError("429 from auth service")) is FailureKind.RATE_LIMIT

    def test_accepts_plain_string(self):
        """Test that a bare message string is classified like an exception."""
        assert classify("502 Bad Gateway") is FailureKind.SERVER

    def test_deterministic(self):
        """Test that repeated classification gives the same answer."""
        error = RuntimeError("503 Service Unavailable")
        results = {classify(error) for _ in range(20)}
        assert results == {FailureKind.SERVER}

    def test_exception_type_is_ignored(self):
        """Test that only the message text decides the kind."""
        assert classify(ConnectionError("boom")) is FailureKind.UNKNOWN
        assert classify(PermissionError("403")) is FailureKind.AUTH

    def test_custom_rules(self):
        """Test classification with a caller supplied rule list."""
        rules = (ClassificationRule(FailureKind.SERVER, ("gateway",)),)
        assert classify("Bad Gateway", rules) is FailureKind.SERVER
        assert classify("network error", rules) is FailureKind.UNKNOWN


class TestRules:
    """Test the rule table itself."""

    def test_rule_order(self):
        """Test that the table keeps network, rate limit, auth, server order."""
        assert [rule.kind for rule in CLASSIFICATION_RULES] == [
            FailureKind.NETWORK,
            FailureKind.RATE_LIMIT,
            FailureKind.AUTH,
            FailureKind.SERVER,
        ]

    def test_rule_matches_lowercase_text(self):
        """Test that rules match against already lower-cased text."""
        rule = ClassificationRule(FailureKind.AUTH, ("auth",))
        assert rule.matches("oauth token expired")
        assert not rule.matches("timeout")


class TestMessages:
    """Test message helpers."""

    def test_failure_message(self):
        """Test message extraction for exceptions and strings."""
        assert failure_message(ValueError("bad")) == "bad"
        assert failure_message("plain") == "plain"

    def test_user_message_mentions_operation(self):
        """Test that every kind has a message naming the operation."""
        for kind in FailureKind:
            assert "GitHub API" in user_message(kind, "GitHub API")

    def test_rate_limit_message(self):
        """Test the rate limit wording."""
        assert user_message(FailureKind.RATE_LIMIT, "MCP Services") == (
            "MCP Services is temporarily rate-limited. We'll retry automatically in a moment."
        )
