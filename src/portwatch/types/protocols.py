"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish
contracts for the monitoring cycle collaborators without requiring
inheritance. The scheduler is wired from objects satisfying these
protocols, which keeps test doubles trivial.
"""

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from portwatch.types.models import AlertMessage, DeliveryResult, ProbeResult, Response


class MonitoredEndpoint(Protocol):
    """Read-only view of a configured endpoint."""

    @property
    def name(self) -> str: ...

    @property
    def host(self) -> str: ...

    @property
    def port(self) -> int: ...

    @property
    def enabled(self) -> bool: ...


class DestinationPolicy(Protocol):
    """Read-only view of a destination's endpoint filtering policy."""

    @property
    def enabled(self) -> bool: ...

    @property
    def monitor_all(self) -> bool: ...

    @property
    def monitored_endpoints(self) -> Sequence[str]: ...


@runtime_checkable
class Prober(Protocol):
    """Protocol for a single bounded-time reachability probe."""

    async def __call__(self, endpoint: MonitoredEndpoint) -> ProbeResult:
        """Probe one endpoint.

        Args:
            endpoint: Endpoint to probe

        Returns:
            Probe result; probe failures are reported in the result, not raised
        """
        ...


@runtime_checkable
class AlertDestination(Protocol):
    """Protocol for alert delivery destinations.

    Defines the interface for sending alerts to an external notification
    sink together with the filter policy deciding which endpoints it covers.
    """

    @property
    def name(self) -> str:
        """Display name used in logs and delivery results."""
        ...

    @property
    def policy(self) -> DestinationPolicy:
        """Endpoint filtering policy of this destination."""
        ...

    async def send(self, alert: AlertMessage) -> DeliveryResult:
        """Deliver an alert to the destination.

        Args:
            alert: Titled alert message

        Returns:
            Result of the delivery attempt including timing and error details
        """
        ...


class HTTPClient(Protocol):
    """Protocol for HTTP client operations.

    Defines the interface for making bounded-time HTTP requests used
    for alert delivery.
    """

    async def post(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        timeout: float,
    ) -> Response:
        """Send HTTP POST request with timeout.

        Args:
            url: Target URL for the POST request
            payload: Request body data
            timeout: Request timeout in seconds (keyword-only)

        Returns:
            HTTP response with status, body, and headers
        """
        ...
