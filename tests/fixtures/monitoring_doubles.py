"""Test doubles shared by the monitoring unit and property tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from portwatch.types import AlertMessage, DeliveryResult, MonitoredEndpoint, ProbeResult

FIXED_TIME = datetime(2024, 5, 1, 12, 30, 45, tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class StubEndpoint:
    """Endpoint satisfying the MonitoredEndpoint Protocol."""

    name: str
    host: str = "127.0.0.1"
    port: int = 8080
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class StubPolicy:
    """Policy satisfying the DestinationPolicy Protocol."""

    enabled: bool = True
    monitor_all: bool = True
    monitored_endpoints: Sequence[str] = ()


def make_result(
    name: str = "api",
    *,
    reachable: bool = True,
    host: str = "127.0.0.1",
    port: int = 8080,
    latency_ms: float = 12.5,
    error_message: str | None = None,
    checked_at: datetime = FIXED_TIME,
) -> ProbeResult:
    """Create a ProbeResult with sensible defaults for tests."""
    if not reachable and error_message is None:
        error_message = "Connection refused"
    return ProbeResult(
        endpoint_name=name,
        host=host,
        port=port,
        reachable=reachable,
        checked_at=checked_at,
        latency=timedelta(milliseconds=latency_ms),
        error_message=error_message,
    )


class StubDestination:
    """Test double implementing the AlertDestination Protocol."""

    def __init__(
        self,
        name: str,
        *,
        policy: StubPolicy | None = None,
        delay: float = 0.0,
        fail_with: Exception | None = None,
        success: bool = True,
    ) -> None:
        self._name: str = name
        self._policy: StubPolicy = policy or StubPolicy()
        self.delay: float = delay
        self.fail_with: Exception | None = fail_with
        self.success: bool = success
        self.sent: list[AlertMessage] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def policy(self) -> StubPolicy:
        return self._policy

    async def send(self, alert: AlertMessage) -> DeliveryResult:
        self.sent.append(alert)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return DeliveryResult(
            success=self.success,
            destination_name=self._name,
            error_message=None if self.success else "rejected",
            delivery_time_ms=1.0,
            status=200 if self.success else 500,
        )


@dataclass(slots=True)
class ScriptedProber:
    """Prober returning scripted reachability per endpoint name.

    ``script`` maps endpoint names to a list of reachability values consumed
    one per call; the last value repeats once the list is exhausted.
    ``delay`` makes every probe sleep first, simulating a slow endpoint.
    """

    script: dict[str, list[bool]]
    raise_for: set[str] = field(default_factory=set)
    delay: float = 0.0
    calls: list[str] = field(default_factory=list)

    async def __call__(self, endpoint: MonitoredEndpoint) -> ProbeResult:
        self.calls.append(endpoint.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if endpoint.name in self.raise_for:
            raise RuntimeError(f"probe exploded for {endpoint.name}")
        states = self.script.get(endpoint.name, [True])
        reachable = states.pop(0) if len(states) > 1 else states[0]
        return make_result(
            endpoint.name,
            reachable=reachable,
            host=endpoint.host,
            port=endpoint.port,
            checked_at=datetime.now(tz=UTC),
        )
