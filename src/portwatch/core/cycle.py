"""Concurrent probe fan-out for one monitoring cycle.

This module implements the CycleRunner, which launches one probe per
enabled endpoint inside an ``asyncio.TaskGroup`` and waits for all of them.
Each probe unit converts any fault escaping the prober into an unreachable
result, so one endpoint can neither cancel nor delay its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from portwatch.types import MonitoredEndpoint, Prober, ProbeResult
from portwatch.utils.logging import get_logger, log_with_context
from portwatch.utils.sanitization import sanitize_exception

__all__ = ["CycleRunner"]


class CycleRunner:
    """Probe all enabled endpoints concurrently and collect every result."""

    def __init__(
        self,
        prober: Prober,
        *,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        self._prober: Prober = prober
        self._logger: logging.Logger = logger_obj or get_logger(__name__)

    async def run_cycle(self, endpoints: Sequence[MonitoredEndpoint]) -> tuple[ProbeResult, ...]:
        """Probe every enabled endpoint and return results in configuration order.

        Never returns early: the call completes only once every probe has
        produced a result.
        """
        enabled = [endpoint for endpoint in endpoints if endpoint.enabled]
        if not enabled:
            log_with_context(
                self._logger,
                logging.WARNING,
                "No enabled endpoints found to monitor",
            )
            return ()

        log_with_context(
            self._logger,
            logging.INFO,
            "Checking endpoints",
            extra={"endpoint_count": len(enabled)},
        )

        results: list[ProbeResult | None] = [None] * len(enabled)

        async def _probe_single(index: int, endpoint: MonitoredEndpoint) -> None:
            start = time.perf_counter()
            try:
                results[index] = await self._prober(endpoint)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                results[index] = self._fault_result(endpoint, exc, time.perf_counter() - start)

        async with asyncio.TaskGroup() as task_group:
            for index, endpoint in enumerate(enabled):
                _ = task_group.create_task(
                    _probe_single(index, endpoint),
                    name=f"probe-{endpoint.name}",
                )

        collected = tuple(result for result in results if result is not None)
        up_count = sum(1 for result in collected if result.reachable)

        log_with_context(
            self._logger,
            logging.INFO,
            "Endpoint check completed",
            extra={"up_count": up_count, "down_count": len(collected) - up_count},
        )
        return collected

    def _fault_result(
        self,
        endpoint: MonitoredEndpoint,
        exc: Exception,
        elapsed_seconds: float,
    ) -> ProbeResult:
        """Build an unreachable result for a probe that raised."""
        error_message = sanitize_exception(exc)
        log_with_context(
            self._logger,
            logging.ERROR,
            "Probe raised unexpectedly; endpoint reported as unreachable",
            extra={
                "endpoint_name": endpoint.name,
                "host": endpoint.host,
                "port": endpoint.port,
                "error_message": error_message,
            },
            exc_info=True,
        )
        return ProbeResult(
            endpoint_name=endpoint.name,
            host=endpoint.host,
            port=endpoint.port,
            reachable=False,
            checked_at=datetime.now(tz=UTC),
            latency=timedelta(seconds=elapsed_seconds),
            error_message=error_message,
        )
