"""Cycle scheduler driving periodic monitoring.

The scheduler waits for the startup delay, then repeats monitoring cycles
separated by a fixed idle interval until shutdown is requested. One cycle
probes every endpoint, diffs the results against the status store and routes
the resulting transitions to the alert destinations, strictly in that order.
Cycles never overlap, and a fault inside a cycle never stops the loop.
A shutdown request abandons an in-flight cycle instead of waiting for its
probes and deliveries to finish.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from enum import Enum
from uuid import uuid4

from portwatch.core.cycle import CycleRunner
from portwatch.core.router import DestinationRouter
from portwatch.core.status_store import StatusStore
from portwatch.types import CycleSummary, MonitoredEndpoint, ProbeResult, TransitionEvent
from portwatch.utils.formatting import format_duration, format_latency
from portwatch.utils.logging import (
    clear_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)

__all__ = ["CycleScheduler", "SchedulerState"]


class SchedulerState(Enum):
    """Lifecycle state of the scheduler.

    ``IDLE`` covers the startup delay, the wait between cycles and a stopped
    scheduler. ``RUNNING`` holds only while a cycle is in flight.
    """

    IDLE = "idle"
    RUNNING = "running"


class CycleScheduler:
    """Run monitoring cycles on a fixed interval until shutdown."""

    def __init__(
        self,
        runner: CycleRunner,
        store: StatusStore,
        router: DestinationRouter,
        endpoints: Sequence[MonitoredEndpoint],
        *,
        check_interval: float,
        startup_delay: float = 5.0,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        if check_interval <= 0:
            msg = "check_interval must be greater than zero"
            raise ValueError(msg)
        if startup_delay < 0:
            msg = "startup_delay must not be negative"
            raise ValueError(msg)

        self._runner: CycleRunner = runner
        self._store: StatusStore = store
        self._router: DestinationRouter = router
        self._endpoints: tuple[MonitoredEndpoint, ...] = tuple(endpoints)
        self._check_interval: float = check_interval
        self._startup_delay: float = startup_delay
        self._logger: logging.Logger = logger_obj or get_logger(__name__)

        self._state: SchedulerState = SchedulerState.IDLE
        self._loop_active: bool = False
        self._shutdown_event: asyncio.Event = asyncio.Event()
        self._cycle_lock: asyncio.Lock = asyncio.Lock()
        self._cycles_completed: int = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True if the scheduler loop is active."""
        return self._loop_active

    @property
    def store(self) -> StatusStore:
        """Expose the status store for diagnostics and tests."""
        return self._store

    @property
    def cycles_completed(self) -> int:
        return self._cycles_completed

    def request_shutdown(self) -> None:
        """Signal the scheduler to stop after the current cycle or wait."""
        if self._shutdown_event.is_set():
            return
        self._logger.info("Shutdown requested for scheduler")
        self._shutdown_event.set()

    async def start(self) -> None:
        """Run cycles until shutdown is requested.

        Raises:
            RuntimeError: If the scheduler is already running
        """
        if self._loop_active:
            msg = "Scheduler is already running"
            raise RuntimeError(msg)

        self._loop_active = True
        started = time.monotonic()
        log_with_context(
            self._logger,
            logging.INFO,
            "Monitoring started",
            extra={
                "endpoint_count": len(self._endpoints),
                "check_interval_seconds": self._check_interval,
                "startup_delay_seconds": self._startup_delay,
            },
        )
        try:
            if await self._wait_for_shutdown(self._startup_delay):
                return
            while not self._shutdown_event.is_set():
                await self._run_guarded_cycle()
                if await self._wait_for_shutdown(self._check_interval):
                    break
        except asyncio.CancelledError:
            self._logger.info("Scheduler cancelled")
            raise
        finally:
            self._loop_active = False
            self._state = SchedulerState.IDLE
            self._shutdown_event.clear()
            log_with_context(
                self._logger,
                logging.INFO,
                "Monitoring stopped",
                extra={
                    "cycles_completed": self._cycles_completed,
                    "uptime": format_duration(time.monotonic() - started),
                },
            )

    async def run_once(self) -> CycleSummary:
        """Run a single monitoring cycle and return its summary."""
        async with self._cycle_lock:
            self._state = SchedulerState.RUNNING
            cycle_id = str(uuid4())
            set_correlation_id(cycle_id)
            start = time.perf_counter()
            try:
                results = await self._runner.run_cycle(self._endpoints)
                events = self._store.diff_and_update(results)
                self._log_results(results)
                self._log_transitions(events)
                deliveries = await self._router.route_all(events)
                summary = CycleSummary(
                    cycle_id=cycle_id,
                    results=results,
                    events=events,
                    deliveries=deliveries,
                    duration_ms=(time.perf_counter() - start) * 1000.0,
                )
                self._cycles_completed += 1
                log_with_context(
                    self._logger,
                    logging.INFO,
                    "Monitoring cycle completed",
                    extra={
                        "cycle_id": cycle_id,
                        "up_count": summary.up_count,
                        "down_count": summary.down_count,
                        "transition_count": len(summary.transitions),
                        "delivery_count": len(deliveries),
                        "failed_delivery_count": sum(1 for d in deliveries if not d.success),
                        "duration_ms": round(summary.duration_ms, 2),
                    },
                )
                return summary
            finally:
                self._state = SchedulerState.IDLE
                clear_correlation_id()

    def _log_results(self, results: Sequence[ProbeResult]) -> None:
        for result in results:
            context: dict[str, object] = {
                "endpoint_name": result.endpoint_name,
                "host": result.host,
                "port": result.port,
            }
            if result.reachable:
                context["latency"] = format_latency(result.latency)
                log_with_context(
                    self._logger,
                    logging.INFO,
                    f"✅ {result.endpoint_name} ({result.key}) is UP - Response {context['latency']}",
                    extra=context,
                )
            else:
                context["error_message"] = result.error_message
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    f"❌ {result.endpoint_name} ({result.key}) is DOWN - Error: {result.error_message}",
                    extra=context,
                )

    def _log_transitions(self, events: Sequence[TransitionEvent]) -> None:
        for event in events:
            current = event.current
            context = {"endpoint_name": current.endpoint_name, "host": current.host, "port": current.port}
            if event.went_down:
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    f"Endpoint {current.endpoint_name} went DOWN",
                    extra=context,
                )
            elif event.came_up:
                log_with_context(
                    self._logger,
                    logging.INFO,
                    f"Endpoint {current.endpoint_name} came UP",
                    extra=context,
                )

    async def _run_guarded_cycle(self) -> None:
        """Run one cycle, abandoning it if shutdown is requested meanwhile."""
        cycle_task = asyncio.create_task(self.run_once(), name="portwatch-cycle")
        shutdown_task = asyncio.create_task(self._shutdown_event.wait(), name="portwatch-shutdown-wait")
        try:
            _ = await asyncio.wait({cycle_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            _ = shutdown_task.cancel()
            if not cycle_task.done():
                if self._shutdown_event.is_set():
                    self._logger.info("Shutdown requested; abandoning in-flight cycle")
                _ = cycle_task.cancel()
            _ = await asyncio.gather(cycle_task, shutdown_task, return_exceptions=True)

        if cycle_task.cancelled():
            return
        error = cycle_task.exception()
        if error is not None:
            self._logger.error("Monitoring cycle failed; continuing with next cycle", exc_info=error)

    async def _wait_for_shutdown(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds; return True if shutdown was requested."""
        if self._shutdown_event.is_set():
            return True
        if timeout <= 0:
            return False
        try:
            async with asyncio.timeout(timeout):
                _ = await self._shutdown_event.wait()
        except TimeoutError:
            return False
        return True
