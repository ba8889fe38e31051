"""Observability sinks for recovery events."""
import logging
from typing import List, Optional

from .types import RecoveryEvent

logger = logging.getLogger(__name__)

# Events whose log record carries the original exception
_TRACEBACK_EVENTS = {"failure_classified", "retries_exhausted"}


class LoggingEventSink:
    """Writes recovery events to a standard library logger.

    The structured payload is attached as ``record.recovery_event`` so a
    JSON formatter can pick it up unchanged.
    """

    def __init__(self, target: Optional[logging.Logger] = None):
        self.logger = target or logger

    def emit(self, event: RecoveryEvent) -> None:
        payload = event.to_dict()
        parts = [f"{event.event} for {event.operation_name}"]
        if event.kind is not None:
            parts.append(f"kind={event.kind.value}")
        parts.append(f"attempt={event.attempt}")
        if event.delay_ms is not None:
            parts.append(f"delay_ms={event.delay_ms}")
        if event.message:
            parts.append(f"message={event.message!r}")

        exc_info = None
        if event.error is not None and event.event in _TRACEBACK_EVENTS:
            exc_info = (type(event.error), event.error, event.error.__traceback__)

        self.logger.log(
            event.level,
            " ".join(parts),
            exc_info=exc_info,
            extra={"recovery_event": payload},
        )


class MemoryEventSink:
    """Keeps events in memory.

    Useful for testing and for hosts that render a recovery history.
    """

    def __init__(self):
        self.events: List[RecoveryEvent] = []

    def emit(self, event: RecoveryEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [event.event for event in self.events]

    def of(self, name: str) -> List[RecoveryEvent]:
        return [event for event in self.events if event.event == name]

    def clear(self) -> None:
        self.events.clear()


class FanOutEventSink:
    """Forwards every event to several sinks."""

    def __init__(self, *sinks):
        self.sinks = list(sinks)

    def emit(self, event: RecoveryEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
