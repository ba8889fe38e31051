"""
Reference host: runs a protected async operation under a recovery controller.
"""
import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

from .controller import RecoveryController
from .integrations import translate_http_error
from .types import RecoverySnapshot, RecoveryStatus

logger = logging.getLogger(__name__)

T = TypeVar('T')

Translator = Callable[[BaseException], Optional[BaseException]]


class ProtectedOperation(Generic[T]):
    """
    Runs ``operation`` and feeds its failures into ``controller``.

    Whenever the controller hands control back after a retry (status IDLE
    with a higher attempt count) the operation is run again on the event
    loop. Exceptions are passed through ``translate`` first so transport
    errors classify correctly; the translated error chains the original.

    Usage::

        controller = RecoveryController(GITHUB_API)
        async with ProtectedOperation(lambda: fetch_json(session, url), controller) as op:
            await op.run()
            result = await op.wait()
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        controller: RecoveryController,
        translate: Optional[Translator] = translate_http_error
    ):
        self.operation = operation
        self.controller = controller
        self.translate = translate
        self.result: Optional[T] = None
        self.succeeded = False
        self.runs = 0

        self._tasks: Set[asyncio.Task] = set()
        self._scheduled = False
        self._running = 0
        self._settled = asyncio.Event()
        self._last_attempt = controller.snapshot.attempt
        self._unsubscribe = controller.subscribe(self._on_snapshot)

    async def run(self) -> Optional[T]:
        """Run the operation once; failures are reported, not raised."""
        self._scheduled = False
        self._running += 1
        self.runs += 1
        self._settled.clear()
        try:
            result = await self.operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            translated = self.translate(exc) if self.translate else None
            if translated is not None and translated is not exc and translated.__cause__ is None:
                translated.__cause__ = exc
            logger.debug(f"{self.controller.config.operation_name} failed: {exc!r}")
            self.controller.report(translated or exc)
            return None
        else:
            self.result = result
            self.succeeded = True
            return result
        finally:
            self._running -= 1
            self._refresh_settled()

    async def wait(self, timeout: Optional[float] = None) -> Optional[T]:
        """
        Wait until no retry is pending or running.

        Returns:
            The result of the last successful run, or None when recovery
            stopped in FAILED or EXHAUSTED
        """
        await asyncio.wait_for(self._settled.wait(), timeout)
        return self.result if self.succeeded else None

    async def close(self) -> None:
        """Dispose the controller and cancel any scheduled run."""
        self._unsubscribe()
        self.controller.dispose()
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._settled.set()

    async def __aenter__(self) -> 'ProtectedOperation[T]':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _on_snapshot(self, snapshot: RecoverySnapshot) -> None:
        retried = snapshot.status is RecoveryStatus.IDLE and snapshot.attempt > self._last_attempt
        self._last_attempt = snapshot.attempt
        if retried:
            self.succeeded = False
            self._scheduled = True
            task = asyncio.get_running_loop().create_task(self.run())
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)
        self._refresh_settled()

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Re-run of {self.controller.config.operation_name} failed outside recovery",
                exc_info=error
            )
            self._scheduled = False
            self._refresh_settled()

    def _refresh_settled(self) -> None:
        busy = (
            self._scheduled
            or self._running > 0
            or self.controller.status is RecoveryStatus.RETRYING
        )
        if busy:
            self._settled.clear()
        else:
            self._settled.set()
