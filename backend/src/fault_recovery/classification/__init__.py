"""Failure classification for recovery."""
from .classifier import classify, failure_message, user_message
from .rules import CLASSIFICATION_RULES, USER_MESSAGES, ClassificationRule

__all__ = [
    "classify",
    "failure_message",
    "user_message",
    "ClassificationRule",
    "CLASSIFICATION_RULES",
    "USER_MESSAGES",
]
