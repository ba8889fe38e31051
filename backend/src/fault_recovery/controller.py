"""
Recovery controller: the state machine that turns reported failures into
scheduled or manual retries.
"""
import asyncio
import logging
import time
import uuid
from typing import Callable, List, Optional, Union

from .actions import derive_actions
from .classification import classify, failure_message, user_message
from .config import RecoveryConfig
from .events import LoggingEventSink
from .exceptions import ControllerDisposedError, RecoveryConfigError
from .timers import AsyncioScheduler, RecoveryTimers
from .types import (
    EventSink,
    FailureInfo,
    FailureKind,
    RecoveryAction,
    RecoveryEvent,
    RecoverySnapshot,
    RecoveryStatus,
    Scheduler,
    SnapshotListener,
)

logger = logging.getLogger(__name__)

Classifier = Callable[[Union[BaseException, str]], FailureKind]


def new_error_id() -> str:
    """Correlation id for one failure, e.g. ``API_ERR_1718000000000_3f9a1c``."""
    return f"API_ERR_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class RecoveryController:
    """
    Drives recovery for one protected operation.

    States::

        IDLE --report--> FAILED --policy--> RETRYING --delay/retry_now--> IDLE
                                   |  \\
                                   |   +--> EXHAUSTED (budget used) --reset--> IDLE
                                   +--> FAILED (auth, manual retry only)

    The host reports failures, renders the snapshots it is notified with and
    re-runs the protected operation whenever a retry hands control back
    (status becomes IDLE with a higher attempt count). Commands arrive
    serially from one event loop; no locking is done.

    Without an explicit ``scheduler`` the controller binds to the running
    event loop, so it must then be created from a coroutine.
    """

    def __init__(
        self,
        config: RecoveryConfig,
        *,
        scheduler: Optional[Scheduler] = None,
        sink: Optional[EventSink] = None,
        classifier: Classifier = classify
    ):
        self.config = config
        self.classifier = classifier
        self.sink = sink or LoggingEventSink()
        if scheduler is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise RecoveryConfigError(
                    f"Recovery controller for {config.operation_name} needs a running "
                    f"event loop or an explicit scheduler",
                    "scheduler"
                ) from None
            scheduler = AsyncioScheduler(loop)
        self._timers = RecoveryTimers(scheduler)
        self._listeners: List[SnapshotListener] = []
        self._disposed = False

        self._status = RecoveryStatus.IDLE
        self._failure: Optional[FailureInfo] = None
        self._attempt = 0
        self._seconds_until_retry = 0
        self._delay_ms: Optional[int] = None
        self._snapshot = self._build_snapshot()

    # Queries

    @property
    def snapshot(self) -> RecoverySnapshot:
        return self._snapshot

    @property
    def status(self) -> RecoveryStatus:
        return self._status

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def live_timers(self) -> int:
        """Number of live timer handles (delay and countdown)."""
        return self._timers.live

    def actions(self) -> List[RecoveryAction]:
        """Actions the host should render for the current state."""
        return derive_actions(self._snapshot, self.config)

    def compute_delay(self, kind: FailureKind, attempt: int) -> int:
        """Delay in milliseconds before the automatic retry of ``attempt``."""
        if kind is FailureKind.RATE_LIMIT:
            return self.config.rate_limit_delay_ms
        return self.config.base_delay_ms * (2 ** attempt)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot.

        Returns:
            A function that removes the listener again
        """
        self._ensure_alive("subscribe")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Commands

    def report(self, error: Union[BaseException, str]) -> None:
        """Record a failure of the protected operation and apply retry policy."""
        self._ensure_alive("report")

        if self._status is RecoveryStatus.RETRYING:
            # A retry is already scheduled; the pending countdown stands.
            self._emit(
                "report_ignored",
                logging.DEBUG,
                kind=self._failure.kind if self._failure else None,
                delay_ms=self._delay_ms,
                message=failure_message(error),
            )
            return

        kind = self.classifier(error)
        failure = FailureInfo(
            kind=kind,
            message=failure_message(error),
            error_id=new_error_id(),
            user_message=user_message(kind, self.config.operation_name),
            error=error if isinstance(error, BaseException) else None,
        )

        planned_delay = None
        if kind is not FailureKind.AUTH and self._attempt < self.config.max_retries:
            planned_delay = self.compute_delay(kind, self._attempt)

        self._timers.cancel()
        self._status = RecoveryStatus.FAILED
        self._failure = failure
        self._seconds_until_retry = 0
        self._delay_ms = None
        self._emit(
            "failure_classified",
            logging.WARNING,
            kind=kind,
            delay_ms=planned_delay,
            error_id=failure.error_id,
            message=failure.message,
            error=failure.error,
        )
        self._publish()

        # A listener may have retried, reset or disposed in the meantime
        if self._disposed or self._status is not RecoveryStatus.FAILED or self._failure is not failure:
            return
        self._apply_policy(failure, planned_delay)

    def retry_now(self) -> None:
        """Hand control back to the host for another attempt."""
        self._ensure_alive("retry_now")
        self._retry(automatic=False)

    def reset(self) -> None:
        """Forget the failure and the consumed retry budget."""
        self._ensure_alive("reset")
        previous = self._failure
        self._timers.cancel()
        self._status = RecoveryStatus.IDLE
        self._failure = None
        self._attempt = 0
        self._seconds_until_retry = 0
        self._delay_ms = None
        self._emit(
            "recovery_reset",
            logging.INFO,
            kind=previous.kind if previous else None,
            error_id=previous.error_id if previous else None,
        )
        self._publish()

    def dispose(self) -> None:
        """Release timers and detach from the host. Idempotent."""
        if self._disposed:
            return
        self._timers.cancel()
        self._seconds_until_retry = 0
        self._disposed = True
        self._listeners.clear()
        self._emit(
            "controller_disposed",
            logging.INFO,
            kind=self._failure.kind if self._failure else None,
        )

    # Internals

    def _apply_policy(self, failure: FailureInfo, delay_ms: Optional[int]) -> None:
        if failure.kind is FailureKind.AUTH:
            # Manual retry or reconnect only
            return

        if self._attempt >= self.config.max_retries:
            self._timers.cancel()
            self._status = RecoveryStatus.EXHAUSTED
            self._emit(
                "retries_exhausted",
                logging.ERROR,
                kind=failure.kind,
                error_id=failure.error_id,
                message=failure.message,
                error=failure.error,
            )
            self._publish()
            return

        try:
            seconds = self._timers.arm(delay_ms, self._on_countdown_tick, self._on_delay_expired)
        except RuntimeError:
            # No usable timer source; stay FAILED with manual retry available
            self._timers.cancel()
            logger.exception(
                f"Could not schedule retry for {self.config.operation_name}"
            )
            return
        self._delay_ms = delay_ms
        self._seconds_until_retry = seconds
        self._status = RecoveryStatus.RETRYING
        self._emit(
            "auto_retry_scheduled",
            logging.INFO,
            kind=failure.kind,
            delay_ms=delay_ms,
            error_id=failure.error_id,
        )
        self._publish()

    def _retry(self, automatic: bool) -> None:
        if self._failure is None:
            self._emit("retry_rejected", logging.WARNING, message="no failure on record")
            return
        if self._attempt >= self.config.max_retries:
            self._emit(
                "retry_rejected",
                logging.WARNING,
                kind=self._failure.kind,
                error_id=self._failure.error_id,
                message=f"max retries ({self.config.max_retries}) reached",
            )
            return

        previous = self._failure
        delay_ms = self._delay_ms
        self._timers.cancel()
        self._attempt += 1
        self._status = RecoveryStatus.IDLE
        self._failure = None
        self._seconds_until_retry = 0
        self._delay_ms = None
        self._emit(
            "automatic_retry_fired" if automatic else "manual_retry_invoked",
            logging.INFO,
            kind=previous.kind,
            delay_ms=delay_ms,
            error_id=previous.error_id,
        )
        self._publish()

    def _on_delay_expired(self) -> None:
        if self._disposed or self._status is not RecoveryStatus.RETRYING:
            return
        self._retry(automatic=True)

    def _on_countdown_tick(self, seconds: int) -> None:
        if self._disposed or self._status is not RecoveryStatus.RETRYING:
            return
        self._seconds_until_retry = seconds
        self._publish()

    def _ensure_alive(self, command: str) -> None:
        if self._disposed:
            raise ControllerDisposedError(self.config.operation_name, command)

    def _build_snapshot(self) -> RecoverySnapshot:
        return RecoverySnapshot(
            status=self._status,
            operation_name=self.config.operation_name,
            max_retries=self.config.max_retries,
            failure=self._failure,
            attempt=self._attempt,
            seconds_until_retry=self._seconds_until_retry,
            can_retry_manually=(
                self._status is RecoveryStatus.FAILED
                and self._attempt < self.config.max_retries
            ),
            delay_ms=self._delay_ms,
        )

    def _publish(self) -> None:
        self._snapshot = self._build_snapshot()
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception(
                    f"Snapshot listener failed for {self.config.operation_name}"
                )

    def _emit(
        self,
        name: str,
        level: int,
        kind: Optional[FailureKind] = None,
        delay_ms: Optional[int] = None,
        error_id: Optional[str] = None,
        message: Optional[str] = None,
        error: Optional[BaseException] = None
    ) -> None:
        event = RecoveryEvent(
            event=name,
            operation_name=self.config.operation_name,
            attempt=self._attempt,
            level=level,
            kind=kind,
            delay_ms=delay_ms,
            error_id=error_id,
            message=message,
            error=error,
        )
        try:
            self.sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed while recording {name}")
