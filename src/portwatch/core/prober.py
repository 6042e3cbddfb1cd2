"""TCP reachability probing.

This module performs one bounded-time TCP connection attempt against one
endpoint. Every outcome, including timeouts, refused connections, DNS
failures and unexpected faults, is folded into a :class:`ProbeResult`;
nothing except cancellation ever propagates to the caller.
"""

import asyncio
import logging
import time
from datetime import UTC, datetime, timedelta

from portwatch.types import MonitoredEndpoint, ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def _describe_os_error(exc: OSError) -> str:
    if exc.strerror:
        return exc.strerror
    description = str(exc)
    return description or type(exc).__name__


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        # The probe already succeeded; a failing close does not change that
        logger.debug("Error while closing probe connection: %s", exc)


async def probe_endpoint(
    endpoint: MonitoredEndpoint,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> ProbeResult:
    """Attempt one TCP connection to ``endpoint`` bounded by ``timeout``.

    Args:
        endpoint: Endpoint to probe
        timeout: Connect timeout in seconds (keyword-only)

    Returns:
        ProbeResult describing reachability, latency and, when unreachable,
        a descriptive error message

    Raises:
        asyncio.CancelledError: If the surrounding task is cancelled
    """
    checked_at = datetime.now(tz=UTC)
    start = time.perf_counter()
    reachable = False
    error_message: str | None = None

    logger.debug(
        "Checking endpoint",
        extra={"endpoint_name": endpoint.name, "host": endpoint.host, "port": endpoint.port},
    )

    writer: asyncio.StreamWriter | None = None

    try:
        async with asyncio.timeout(timeout):
            _reader, writer = await asyncio.open_connection(endpoint.host, endpoint.port)
        reachable = True
    except TimeoutError:
        error_message = f"Connection timeout after {int(timeout * 1000)}ms"
    except OSError as exc:
        # Refused connections, unreachable networks and DNS failures (socket.gaierror)
        error_message = _describe_os_error(exc)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        error_message = str(exc) or type(exc).__name__
        logger.exception(
            "Unexpected error while probing endpoint",
            extra={"endpoint_name": endpoint.name, "host": endpoint.host, "port": endpoint.port},
        )

    latency = timedelta(seconds=time.perf_counter() - start)

    if writer is not None:
        await _close_writer(writer)

    logger.debug(
        "Endpoint check completed",
        extra={
            "endpoint_name": endpoint.name,
            "status": "UP" if reachable else "DOWN",
            "latency_ms": round(latency.total_seconds() * 1000.0, 2),
        },
    )

    return ProbeResult(
        endpoint_name=endpoint.name,
        host=endpoint.host,
        port=endpoint.port,
        reachable=reachable,
        checked_at=checked_at,
        latency=latency,
        error_message=error_message,
    )


class TCPProber:
    """Prober capability object bound to a fixed connect timeout."""

    def __init__(self, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if timeout_seconds <= 0:
            msg = "timeout_seconds must be greater than zero"
            raise ValueError(msg)
        self._timeout_seconds: float = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    async def __call__(self, endpoint: MonitoredEndpoint) -> ProbeResult:
        return await probe_endpoint(endpoint, timeout=self._timeout_seconds)
