"""Failure classifier."""
from typing import Sequence, Union

from ..types import FailureKind
from .rules import CLASSIFICATION_RULES, USER_MESSAGES, ClassificationRule


def failure_message(error: Union[BaseException, str]) -> str:
    """Return the message text of a reported failure."""
    if isinstance(error, str):
        return error
    return str(error)


def classify(
    error: Union[BaseException, str],
    rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES
) -> FailureKind:
    """Classify a failure by its message text.

    Args:
        error: The exception (or bare message) to classify
        rules: Ordered rules, the first match wins

    Returns:
        The failure kind, ``FailureKind.UNKNOWN`` when nothing matches

    """
    text = failure_message(error).lower()
    for rule in rules:
        if rule.matches(text):
            return rule.kind
    return FailureKind.UNKNOWN


def user_message(kind: FailureKind, operation_name: str) -> str:
    """Friendly text for a failure kind."""
    return USER_MESSAGES[kind].format(name=operation_name)
