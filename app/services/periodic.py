import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicDispatcher:
    """Owns one background asyncio task that runs a cycle on a fixed interval.

    Subclasses implement :meth:`run_cycle`.  The first cycle runs as soon
    as :meth:`start` is called; each later cycle starts ``interval_seconds``
    after the previous one finished, so a slow cycle delays the next tick
    instead of overlapping it.  Cycles triggered from elsewhere (an HTTP
    endpoint, a test) go through :meth:`_guarded` and are skipped while
    another cycle is in progress.
    """

    name: str = "dispatcher"

    def __init__(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._cycle_in_progress = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_in_progress

    async def run_cycle(self) -> object:
        raise NotImplementedError

    async def _guarded(self, cycle: Callable[[], Awaitable[T]]) -> Optional[T]:
        """Run *cycle* unless one is already running; ``None`` when skipped."""
        if self._cycle_in_progress:
            logger.warning("%s cycle already in progress; skipping", self.name)
            return None
        self._cycle_in_progress = True
        try:
            return await cycle()
        finally:
            self._cycle_in_progress = False

    def start(self) -> None:
        """Schedule the background loop on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_forever(), name=self.name)
        logger.info("%s scheduled", self.name)

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("%s stopped", self.name)
        finally:
            self._task = None

    async def _run_forever(self) -> None:
        logger.info(
            "%s background task started (interval=%ds)",
            self.name,
            self._interval_seconds,
        )
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.error("%s cycle failed", self.name, exc_info=True)
            await asyncio.sleep(self._interval_seconds)
