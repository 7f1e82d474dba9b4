"""Tests for the periodic flush scheduler state machine."""

import asyncio

import pytest

from log_shipper.writer.scheduler import FlushScheduler, SchedulerState


class FlushRecorder:
    """Flush callable that counts calls and can stall or fail."""

    def __init__(self) -> None:
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: asyncio.Event | None = None
        self.fail = False
        self.duration = 0.0

    async def __call__(self) -> int:
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.duration:
                await asyncio.sleep(self.duration)
            if self.fail:
                raise ConnectionError("flush failed")
            return 0
        finally:
            self.in_flight -= 1


class TestFlushSchedulerLifecycle:
    """Tests for start/stop transitions."""

    def test_initial_state_is_stopped(self) -> None:
        """A new scheduler is STOPPED with no timer."""
        scheduler = FlushScheduler(FlushRecorder(), interval=1.0, on_error=lambda exc: None)
        assert scheduler.state == SchedulerState.STOPPED
        assert not scheduler.has_pending_timer
        assert not scheduler.is_flushing

    def test_invalid_interval_rejected(self) -> None:
        """Non-positive intervals are rejected."""
        with pytest.raises(ValueError):
            FlushScheduler(FlushRecorder(), interval=0, on_error=lambda exc: None)

    def test_start_requires_running_loop(self) -> None:
        """Starting outside an event loop raises RuntimeError."""
        scheduler = FlushScheduler(FlushRecorder(), interval=1.0, on_error=lambda exc: None)
        with pytest.raises(RuntimeError):
            scheduler.start()

    @pytest.mark.asyncio
    async def test_start_runs_one_cycle_immediately(self) -> None:
        """start() launches a flush cycle right away."""
        flush = FlushRecorder()
        scheduler = FlushScheduler(flush, interval=10.0, on_error=lambda exc: None)

        scheduler.start()
        await scheduler.wait_idle()

        assert flush.calls == 1
        assert scheduler.is_running
        assert scheduler.has_pending_timer
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_cycles_repeat_on_interval(self) -> None:
        """Cycles keep firing every interval while RUNNING."""
        flush = FlushRecorder()
        scheduler = FlushScheduler(flush, interval=0.01, on_error=lambda exc: None)

        scheduler.start()
        await asyncio.sleep(0.1)
        scheduler.stop()
        await scheduler.wait_idle()

        assert flush.calls >= 3

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self) -> None:
        """Calling stop() twice is harmless."""
        scheduler = FlushScheduler(FlushRecorder(), interval=0.01, on_error=lambda exc: None)
        scheduler.start()
        await scheduler.wait_idle()

        scheduler.stop()
        scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED
        assert not scheduler.has_pending_timer

    @pytest.mark.asyncio
    async def test_stop_prevents_further_cycles(self) -> None:
        """No cycle runs after stop()."""
        flush = FlushRecorder()
        scheduler = FlushScheduler(flush, interval=0.01, on_error=lambda exc: None)
        scheduler.start()
        await scheduler.wait_idle()
        scheduler.stop()

        calls = flush.calls
        await asyncio.sleep(0.05)

        assert flush.calls == calls

    @pytest.mark.asyncio
    async def test_restart_while_running_keeps_single_timer(self) -> None:
        """start() on a running scheduler stops it first and never doubles cycles."""
        flush = FlushRecorder()
        scheduler = FlushScheduler(flush, interval=0.02, on_error=lambda exc: None)

        scheduler.start()
        await scheduler.wait_idle()
        scheduler.start()
        await scheduler.wait_idle()

        assert flush.calls == 2
        assert scheduler.has_pending_timer
        assert flush.max_in_flight == 1
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_restart_during_in_flight_flush_does_not_overlap(self) -> None:
        """Restarting while a cycle is in flight waits for that cycle to re-arm."""
        flush = FlushRecorder()
        flush.gate = asyncio.Event()
        scheduler = FlushScheduler(flush, interval=0.01, on_error=lambda exc: None)

        scheduler.start()
        await asyncio.sleep(0)
        scheduler.start()
        await asyncio.sleep(0)

        assert flush.calls == 1
        flush.gate.set()
        await scheduler.wait_idle()

        assert scheduler.has_pending_timer
        assert flush.max_in_flight == 1
        scheduler.stop()


class TestFlushSchedulerFailures:
    """Tests for failure reporting and non-overlap."""

    @pytest.mark.asyncio
    async def test_failed_flush_is_reported_and_rescheduled(self) -> None:
        """A failing flush reaches on_error and the scheduler keeps running."""
        flush = FlushRecorder()
        flush.fail = True
        errors: list[Exception] = []
        scheduler = FlushScheduler(flush, interval=0.01, on_error=errors.append)

        scheduler.start()
        await asyncio.sleep(0.06)
        scheduler.stop()
        await scheduler.wait_idle()

        assert flush.calls >= 2
        assert len(errors) == flush.calls
        assert all(isinstance(e, ConnectionError) for e in errors)

    @pytest.mark.asyncio
    async def test_slow_flush_never_overlaps(self) -> None:
        """The next timer is armed only after the slow flush settles."""
        flush = FlushRecorder()
        flush.duration = 0.03
        scheduler = FlushScheduler(flush, interval=0.001, on_error=lambda exc: None)

        scheduler.start()
        await asyncio.sleep(0.15)
        scheduler.stop()
        await scheduler.wait_idle()

        assert flush.max_in_flight == 1
        assert flush.calls >= 2

    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_flush_complete(self) -> None:
        """stop() cancels the timer only; the in-flight flush still finishes."""
        flush = FlushRecorder()
        flush.gate = asyncio.Event()
        scheduler = FlushScheduler(flush, interval=0.01, on_error=lambda exc: None)

        scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.is_flushing

        scheduler.stop()
        flush.gate.set()
        await scheduler.wait_idle()

        assert flush.in_flight == 0
        assert not scheduler.is_flushing
        assert not scheduler.has_pending_timer
        assert flush.calls == 1
