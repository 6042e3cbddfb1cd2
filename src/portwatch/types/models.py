"""Data models for portwatch.

This module defines immutable dataclasses used throughout the application
for type-safe data transfer between the prober, the status store, the
destination router and the notification destinations.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


def endpoint_key(host: str, port: int) -> str:
    """Return the identity key of an endpoint (``host:port``)."""
    return f"{host}:{port}"


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Immutable outcome of one TCP reachability probe.

    Created fresh by the prober every cycle and never mutated afterwards.
    ``error_message`` is set if and only if the endpoint was unreachable.
    """

    endpoint_name: str
    host: str
    port: int
    reachable: bool
    checked_at: datetime
    latency: timedelta
    error_message: str | None = None

    @property
    def key(self) -> str:
        """Identity key used by the status store."""
        return endpoint_key(self.host, self.port)

    @property
    def latency_ms(self) -> float:
        """Probe latency in milliseconds."""
        return self.latency.total_seconds() * 1000.0


@dataclass(slots=True, frozen=True)
class TransitionEvent:
    """Comparison of an endpoint's current probe result with the previous one.

    Ephemeral: computed per cycle by the status store and never stored.
    ``previous`` is None on the first observation of an endpoint.
    """

    current: ProbeResult
    previous: ProbeResult | None = None

    @property
    def is_transition(self) -> bool:
        """True when reachability flipped between two consecutive cycles."""
        return self.previous is not None and self.previous.reachable != self.current.reachable

    @property
    def went_down(self) -> bool:
        """True when the endpoint changed from reachable to unreachable."""
        return self.previous is not None and self.previous.reachable and not self.current.reachable

    @property
    def came_up(self) -> bool:
        """True when the endpoint changed from unreachable to reachable."""
        return self.previous is not None and not self.previous.reachable and self.current.reachable


class AlertSeverity(Enum):
    """Severity of an outgoing alert."""

    HIGH = "high"
    NORMAL = "normal"


@dataclass(slots=True, frozen=True)
class AlertMessage:
    """Titled alert message ready for delivery to a destination."""

    title: str
    message: str
    priority: int
    severity: AlertSeverity
    endpoint_name: str


@dataclass(slots=True, frozen=True)
class DeliveryResult:
    """Result of an alert delivery attempt to one destination.

    Captures the outcome of sending an alert, including success status,
    HTTP status (when a response was received), timing and error details.
    """

    success: bool
    destination_name: str
    error_message: str | None
    delivery_time_ms: float
    status: int | None = None


@dataclass(slots=True)
class Response:
    """HTTP response.

    Represents an HTTP response with status code, body, and headers.
    """

    status: int
    body: Mapping[str, object]
    headers: Mapping[str, str]


@dataclass(slots=True, frozen=True)
class CycleSummary:
    """Observability record for one completed monitoring cycle."""

    cycle_id: str
    results: tuple[ProbeResult, ...]
    events: tuple[TransitionEvent, ...]
    deliveries: tuple[DeliveryResult, ...]
    duration_ms: float

    @property
    def up_count(self) -> int:
        return sum(1 for result in self.results if result.reachable)

    @property
    def down_count(self) -> int:
        return len(self.results) - self.up_count

    @property
    def transitions(self) -> tuple[TransitionEvent, ...]:
        return tuple(event for event in self.events if event.is_transition)
