"""
Action list derived from a recovery snapshot for host rendering.
"""
from typing import List

from .config import RecoveryConfig
from .types import ActionKind, FailureKind, RecoveryAction, RecoverySnapshot, RecoveryStatus


def derive_actions(snapshot: RecoverySnapshot, config: RecoveryConfig) -> List[RecoveryAction]:
    """
    Compute the actions a host should offer for a snapshot.

    Nothing is offered while no failure is on record. Otherwise:

    - retrying: a disabled "Retrying in Ns..." indicator
    - failed with budget left: "Try Again"
    - auth failures: "Reconnect Account", whatever the budget
    - always: an escape action to ``config.escape_target``
    """
    if snapshot.status is RecoveryStatus.IDLE or snapshot.failure is None:
        return []

    actions: List[RecoveryAction] = []

    if snapshot.status is RecoveryStatus.RETRYING:
        actions.append(RecoveryAction(
            kind=ActionKind.RETRYING,
            label=f"Retrying in {snapshot.seconds_until_retry}s...",
            enabled=False,
            seconds=snapshot.seconds_until_retry,
        ))
    elif snapshot.status is RecoveryStatus.FAILED and snapshot.attempt < config.max_retries:
        actions.append(RecoveryAction(kind=ActionKind.RETRY, label="Try Again"))

    if snapshot.failure.kind is FailureKind.AUTH:
        actions.append(RecoveryAction(
            kind=ActionKind.RECONNECT,
            label="Reconnect Account",
            target=config.reconnect_target,
        ))

    actions.append(RecoveryAction(
        kind=ActionKind.NAVIGATE,
        label="Return to Dashboard",
        target=config.escape_target,
    ))
    return actions
