"""
Shared type definitions for the fault recovery system.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol


class FailureKind(Enum):
    """Classification buckets for caught failures."""
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    SERVER = "server"
    UNKNOWN = "unknown"


class RecoveryStatus(Enum):
    """States of the recovery controller."""
    IDLE = "idle"
    FAILED = "failed"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"  # Terminal until reset


class ActionKind(Enum):
    """Action descriptors a host can render."""
    RETRY = "retry"
    RETRYING = "retrying"
    RECONNECT = "reconnect"
    NAVIGATE = "navigate"


@dataclass(frozen=True)
class FailureInfo:
    """A classified failure as recorded by the controller."""

    kind: FailureKind
    message: str
    error_id: str
    user_message: str
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "error_id": self.error_id,
            "user_message": self.user_message,
        }


@dataclass(frozen=True)
class RecoverySnapshot:
    """Immutable view of controller state delivered to the host."""

    status: RecoveryStatus
    operation_name: str
    max_retries: int
    failure: Optional[FailureInfo] = None
    attempt: int = 0
    seconds_until_retry: int = 0
    can_retry_manually: bool = False
    delay_ms: Optional[int] = None

    @property
    def attempt_label(self) -> str:
        """Human readable attempt counter, e.g. "Attempt 2 of 3".

        Clamped to the budget, so a zero budget reads "Attempt 1 of 1".
        """
        total = max(self.max_retries, 1)
        return f"Attempt {min(self.attempt + 1, total)} of {total}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "operation_name": self.operation_name,
            "failure": self.failure.to_dict() if self.failure else None,
            "attempt": self.attempt,
            "max_retries": self.max_retries,
            "seconds_until_retry": self.seconds_until_retry,
            "can_retry_manually": self.can_retry_manually,
            "delay_ms": self.delay_ms,
        }


@dataclass(frozen=True)
class RecoveryAction:
    """
    Tagged action descriptor.

    The controller only signals that an action is available; executing it
    (retrying, navigating, reconnecting) is the host's business.
    """

    kind: ActionKind
    label: str
    enabled: bool = True
    target: Optional[str] = None
    seconds: Optional[int] = None


@dataclass(frozen=True)
class RecoveryEvent:
    """Structured observability event emitted by the controller."""

    event: str
    operation_name: str
    attempt: int
    level: int = logging.INFO
    kind: Optional[FailureKind] = None
    delay_ms: Optional[int] = None
    error_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "operation_name": self.operation_name,
            "kind": self.kind.value if self.kind else None,
            "attempt": self.attempt,
            "delay_ms": self.delay_ms,
            "error_id": self.error_id,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class TimerHandle(Protocol):
    """Handle for a scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback. Must be safe to call more than once."""
        ...


class Scheduler(Protocol):
    """Protocol for timer sources."""

    def time(self) -> float:
        """Current time in seconds on the scheduler's clock."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback after delay seconds."""
        ...


class EventSink(Protocol):
    """Protocol for observability sinks."""

    def emit(self, event: RecoveryEvent) -> None:
        ...


SnapshotListener = Callable[[RecoverySnapshot], None]
