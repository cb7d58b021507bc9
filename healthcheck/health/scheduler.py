"""HealthScheduler — one independent periodic timer per monitored target."""

from __future__ import annotations

import asyncio
from types import TracebackType

import structlog

from healthcheck.health.checks import TargetCheck
from healthcheck.health.debouncer import FailureDebouncer
from healthcheck.health.status import StatusBoard

logger = structlog.get_logger(__name__)


class HealthScheduler:
    """Runs every registered check on its own fixed-period timer.

    Each timer fires immediately and then every ``check_frequency`` seconds.
    Every tick starts a new cycle task without waiting for the previous one,
    so a slow collector never delays the schedule and never blocks other
    targets. Overlapping cycles of one target are reconciled by the check
    itself.

    Usage::

        scheduler = HealthScheduler(debouncer, board)
        scheduler.add(host_check)
        async with scheduler:
            await asyncio.sleep(3600)
    """

    def __init__(self, debouncer: FailureDebouncer, board: StatusBoard) -> None:
        self._debouncer = debouncer
        self._board = board
        self._checks: dict[str, TargetCheck] = {}
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def checks(self) -> dict[str, TargetCheck]:
        return dict(self._checks)

    @property
    def inflight(self) -> int:
        """Number of cycles still awaiting their collector."""
        return len(self._inflight)

    def add(self, check: TargetCheck) -> None:
        """Register a check. Checks added while running start immediately."""
        if check.target_id in self._checks:
            raise ValueError(f"target already registered: {check.target_id}")
        self._checks[check.target_id] = check
        self._board.register(check.target_id, check.kind)
        if self._running:
            self._start_timer(check)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for check in self._checks.values():
            self._start_timer(check)
        logger.info("scheduler_started", targets=sorted(self._checks))

    async def stop(self) -> None:
        """Cancel every timer and drop all in-memory health state.

        Safe to call repeatedly or before :meth:`start`. Cycles already
        waiting on a collector are left to finish; their checks are
        deactivated first so the results are discarded.
        """
        was_running = self._running
        self._running = False

        for check in self._checks.values():
            check.deactivate()

        timers = list(self._timers.values())
        self._timers.clear()
        for task in timers:
            task.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

        self._debouncer.clear()
        self._board.clear()
        self._checks.clear()

        if was_running:
            logger.info("scheduler_stopped", inflight=len(self._inflight))

    def _start_timer(self, check: TargetCheck) -> None:
        self._timers[check.target_id] = asyncio.create_task(
            self._timer(check), name=f"healthcheck-timer-{check.target_id}",
        )
        logger.info(
            "target_scheduled",
            target_id=check.target_id,
            kind=check.kind.value,
            check_frequency=check.spec.check_frequency,
            max_attempts=check.spec.max_attempts,
        )

    async def _timer(self, check: TargetCheck) -> None:
        loop = asyncio.get_running_loop()
        period = check.spec.check_frequency
        next_tick = loop.time()
        while self._running and check.active:
            self._spawn_cycle(check)
            next_tick += period
            try:
                await asyncio.sleep(max(0.0, next_tick - loop.time()))
            except asyncio.CancelledError:
                break

    def _spawn_cycle(self, check: TargetCheck) -> None:
        task = asyncio.create_task(self._run_cycle(check))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_cycle(self, check: TargetCheck) -> None:
        try:
            await check.cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("check_cycle_error", target_id=check.target_id)

    async def __aenter__(self) -> HealthScheduler:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
