"""Periodic, non-overlapping flush scheduling."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Flush scheduler state enumeration."""

    STOPPED = "stopped"
    RUNNING = "running"


class FlushScheduler:
    """Drives flush cycles on a fixed interval.

    A cycle awaits the flush, reports any failure to ``on_error`` and, only if
    the scheduler is still RUNNING, arms a single timer for the next cycle.
    The next timer therefore exists only after the previous flush settled, so
    at most one flush is ever in flight.

    ``stop()`` cancels the pending timer only. A flush already in flight runs
    to completion and its rollback still applies.

    Args:
        flush: Coroutine function performing one flush.
        interval: Seconds between the end of a flush and the start of the next.
        on_error: Called with every exception raised by ``flush``.

    Example:
        ```python
        scheduler = FlushScheduler(flusher.flush, interval=2.0, on_error=report)
        scheduler.start()
        ...
        scheduler.stop()
        await scheduler.wait_idle()
        ```
    """

    def __init__(
        self,
        flush: Callable[[], Awaitable[Any]],
        interval: float,
        on_error: Callable[[Exception], None],
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._flush = flush
        self._interval = interval
        self._on_error = on_error

        self._state = SchedulerState.STOPPED
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._cycle_count = 0

    @property
    def state(self) -> SchedulerState:
        """Current scheduler state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is RUNNING."""
        return self._state == SchedulerState.RUNNING

    @property
    def has_pending_timer(self) -> bool:
        """Check if a next cycle is armed."""
        return self._timer is not None

    @property
    def is_flushing(self) -> bool:
        """Check if a flush cycle is in flight."""
        return self._in_flight is not None

    @property
    def cycle_count(self) -> int:
        """Number of flush cycles started."""
        return self._cycle_count

    @property
    def interval(self) -> float:
        """Seconds between flush cycles."""
        return self._interval

    def start(self) -> None:
        """Start scheduling and run one flush cycle immediately.

        Must be called from within a running event loop. Restarting a running
        scheduler stops it cleanly first.

        Raises:
            RuntimeError: If no event loop is running.
        """
        if self._state == SchedulerState.RUNNING:
            self.stop()

        self._loop = asyncio.get_running_loop()
        self._state = SchedulerState.RUNNING
        self._log_transition("flush_scheduler_started")

        # A cycle left over from before stop() re-arms the timer when it settles.
        if self._in_flight is None:
            self._run_cycle()

    def stop(self) -> None:
        """Cancel the pending timer and stop scheduling. Idempotent."""
        if self._state == SchedulerState.STOPPED:
            return

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        self._state = SchedulerState.STOPPED
        self._log_transition("flush_scheduler_stopped")

    async def wait_idle(self) -> None:
        """Wait until no flush cycle is in flight."""
        task = self._in_flight
        if task is not None:
            await asyncio.wait({task})

    def _run_cycle(self) -> None:
        """Timer callback: launch one flush cycle."""
        self._timer = None
        if self._state != SchedulerState.RUNNING or self._loop is None:
            return
        self._cycle_count += 1
        self._in_flight = self._loop.create_task(self._cycle())

    async def _cycle(self) -> None:
        try:
            await self._flush()
        except asyncio.CancelledError:
            self._in_flight = None
            raise
        except Exception as exc:
            self._on_error(exc)

        self._in_flight = None
        self._arm()

    def _arm(self) -> None:
        if self._state != SchedulerState.RUNNING or self._loop is None:
            return
        self._timer = self._loop.call_later(self._interval, self._run_cycle)

    def _log_transition(self, event: str) -> None:
        log_entry = {
            "event": event,
            "state": self._state.value,
            "interval_s": self._interval,
            "cycles": self._cycle_count,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        logger.info(json.dumps(log_entry))
