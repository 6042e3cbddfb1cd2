"""Gotify alert destination implementation.

This module implements the AlertDestination Protocol for Gotify servers,
wiring a destination's configuration to a GotifyAPIClient. ``send`` measures
delivery time and converts every failure into an unsuccessful
DeliveryResult, so the router never sees an exception from a destination.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from portwatch.config import DestinationConfig
from portwatch.plugins.gotify.client import GotifyAPIClient, GotifyAPIError
from portwatch.types import AlertMessage, DeliveryResult, DestinationPolicy, HTTPClient
from portwatch.utils.sanitization import sanitize_exception

__all__ = ["GotifyDestination", "create_destination"]


@dataclass(slots=True)
class GotifyDestination:
    """Gotify destination implementing the AlertDestination Protocol.

    Attributes:
        config: Destination configuration including token and filter policy
        http_client: HTTP client shared by all destinations (injected)
        request_timeout: Per-request timeout in seconds
        client: Gotify API client bound to this destination
    """

    config: DestinationConfig
    http_client: HTTPClient
    request_timeout: float = 30.0
    client: GotifyAPIClient = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.client = GotifyAPIClient(
            base_url=self.config.base_url,
            token=self.config.token,
            http_client=self.http_client,
            request_timeout=self.request_timeout,
        )
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return self.config.display_name

    @property
    def policy(self) -> DestinationPolicy:
        return self.config

    async def send(self, alert: AlertMessage) -> DeliveryResult:
        """Deliver an alert to the Gotify server.

        Args:
            alert: Titled alert message

        Returns:
            Result of the delivery attempt including timing and error details
        """
        start_time = time.perf_counter()

        try:
            response = await self.client.send_message(alert)
        except GotifyAPIError as exc:
            delivery_time_ms = (time.perf_counter() - start_time) * 1000.0
            self._logger.warning(
                "Gotify rejected alert: %s (destination=%s, endpoint=%s)",
                exc,
                self.name,
                alert.endpoint_name,
            )
            return DeliveryResult(
                success=False,
                destination_name=self.name,
                error_message=str(exc),
                delivery_time_ms=delivery_time_ms,
                status=exc.status,
            )
        except TimeoutError:
            delivery_time_ms = (time.perf_counter() - start_time) * 1000.0
            error_msg = f"Gotify request timed out after {self.request_timeout:.1f}s"
            self._logger.warning("%s (destination=%s)", error_msg, self.name)
            return DeliveryResult(
                success=False,
                destination_name=self.name,
                error_message=error_msg,
                delivery_time_ms=delivery_time_ms,
            )
        except Exception as exc:
            # Transport failures (connection refused, DNS, malformed URL)
            delivery_time_ms = (time.perf_counter() - start_time) * 1000.0
            error_msg = f"Gotify delivery failed: {sanitize_exception(exc)}"
            self._logger.warning("%s (destination=%s)", error_msg, self.name)
            return DeliveryResult(
                success=False,
                destination_name=self.name,
                error_message=error_msg,
                delivery_time_ms=delivery_time_ms,
            )

        delivery_time_ms = (time.perf_counter() - start_time) * 1000.0
        self._logger.info(
            "Gotify alert delivered (destination=%s, status=%d, delivery_time=%.2fms)",
            self.name,
            response.status,
            delivery_time_ms,
        )
        return DeliveryResult(
            success=True,
            destination_name=self.name,
            error_message=None,
            delivery_time_ms=delivery_time_ms,
            status=response.status,
        )


def create_destination(
    *,
    config: DestinationConfig,
    http_client: HTTPClient,
    request_timeout: float = 30.0,
) -> GotifyDestination:
    """Factory for GotifyDestination instances.

    Example:
        >>> config = DestinationConfig(base_url="https://push.example.com", token="abc")
        >>> destination = create_destination(config=config, http_client=client)
    """
    return GotifyDestination(
        config=config,
        http_client=http_client,
        request_timeout=request_timeout,
    )
