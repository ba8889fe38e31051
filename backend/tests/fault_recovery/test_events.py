"""Tests for observability sinks."""
import logging

from backend.src.fault_recovery.events import FanOutEventSink, LoggingEventSink, MemoryEventSink
from backend.src.fault_recovery.types import FailureKind, RecoveryEvent


def make_event(name="failure_classified", level=logging.WARNING, error=None):
    return RecoveryEvent(
        event=name,
        operation_name="MCP Services",
        attempt=1,
        level=level,
        kind=FailureKind.SERVER,
        delay_ms=3000,
        error_id="API_ERR_1_abcdef",
        message="503 Service Unavailable",
        error=error,
    )


class TestLoggingEventSink:
    """Test logging output."""

    def test_structured_payload(self, caplog):
        """Test that the record carries the event dictionary."""
        with caplog.at_level(logging.DEBUG):
            LoggingEventSink().emit(make_event())
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.recovery_event["event"] == "failure_classified"
        assert record.recovery_event["kind"] == "server"
        assert record.recovery_event["attempt"] == 1
        assert record.recovery_event["delay_ms"] == 3000
        assert "timestamp" in record.recovery_event
        assert "kind=server" in record.getMessage()

    def test_original_error_resurfaced(self, caplog):
        """Test that the failure's traceback reaches the log."""
        try:
            raise RuntimeError("503 Service Unavailable")
        except RuntimeError as exc:
            error = exc
        with caplog.at_level(logging.DEBUG):
            LoggingEventSink().emit(make_event(error=error))
        record = caplog.records[-1]
        assert record.exc_info[1] is error

    def test_no_traceback_for_scheduling_events(self, caplog):
        """Test that routine events do not attach exc_info."""
        with caplog.at_level(logging.DEBUG):
            LoggingEventSink().emit(make_event("auto_retry_scheduled", logging.INFO, RuntimeError("x")))
        assert caplog.records[-1].exc_info is None

    def test_custom_logger(self, caplog):
        """Test logging to a supplied logger."""
        target = logging.getLogger("host.recovery")
        with caplog.at_level(logging.DEBUG, logger="host.recovery"):
            LoggingEventSink(target).emit(make_event(level=logging.ERROR))
        assert caplog.records[-1].name == "host.recovery"


class TestMemoryEventSink:
    """Test in-memory recording."""

    def test_records_and_filters(self):
        """Test names and filtering."""
        sink = MemoryEventSink()
        sink.emit(make_event("failure_classified"))
        sink.emit(make_event("auto_retry_scheduled"))
        assert sink.names() == ["failure_classified", "auto_retry_scheduled"]
        assert len(sink.of("auto_retry_scheduled")) == 1
        sink.clear()
        assert sink.events == []


def test_fan_out():
    """Test that every sink receives every event."""
    first, second = MemoryEventSink(), MemoryEventSink()
    FanOutEventSink(first, second).emit(make_event())
    assert first.names() == second.names() == ["failure_classified"]
