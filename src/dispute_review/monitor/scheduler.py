"""Fixed-cadence driver for the deadline monitor workflow."""

import asyncio
import logging
import math

from ..clock import Clock, SystemClock
from ..schemas.output import TickReport
from .tick_workflow import DeadlineMonitorWorkflow, TickStartEvent

logger = logging.getLogger(__name__)


class MonitorScheduler:
    """Runs a deadline check on start and then once per interval.

    Ticks never overlap: a tick that is due while the previous one is still
    running is skipped rather than queued. ``stop`` lets an in-progress tick
    finish before returning.
    """

    def __init__(
        self,
        workflow: DeadlineMonitorWorkflow,
        clock: Clock | None = None,
    ):
        self._workflow = workflow
        self._clock = clock or SystemClock()
        self._interval: float | None = None
        self._tick_lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.last_report: TickReport | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Begin monitoring; the first check runs immediately."""
        if self.is_running:
            return
        # The tick derives its new-flag window from this same interval
        config = await self._workflow.monitor_config()
        self._interval = config.check_interval_seconds
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run_forever())
        logger.info("Deadline monitoring started (every %ss)", self._interval)

    async def stop(self) -> None:
        """Stop monitoring. Safe to call repeatedly and while a tick is running."""
        task = self._task
        if task is None:
            return
        self._stopping.set()
        await task
        self._task = None
        logger.info("Deadline monitoring stopped")

    async def run_once(self) -> TickReport | None:
        """Run one tick now, unless one is already running.

        Returns None when the tick was skipped or raised.
        """
        if self._tick_lock.locked():
            logger.warning("Deadline check still running, skipping this tick")
            return None

        async with self._tick_lock:
            try:
                report = await self._workflow.run(
                    start_event=TickStartEvent(now=self._clock.now())
                )
            except Exception:
                logger.exception("Deadline check failed")
                return None

        self.last_report = report
        return report

    async def _run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_due = loop.time()

        while not self._stopping.is_set():
            await self.run_once()

            next_due += self._interval
            overrun = loop.time() - next_due
            if overrun > 0:
                missed = math.floor(overrun / self._interval) + 1
                logger.warning("Deadline check overran, skipping %d tick(s)", missed)
                next_due += missed * self._interval

            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=max(0.0, next_due - loop.time())
                )
            except asyncio.TimeoutError:
                pass
