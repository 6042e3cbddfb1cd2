"""Gotify message API client.

Gotify accepts messages at ``POST {base_url}/message`` with the application
token passed as the ``token`` query parameter and a JSON body carrying
``title``, ``message`` and ``priority``. Any 2xx status is a success.
Deliveries are attempted exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import quote

from portwatch.types import AlertMessage, HTTPClient, Response
from portwatch.utils.sanitization import sanitize_url

__all__ = [
    "GotifyAPIClient",
    "GotifyAPIError",
    "build_message_url",
    "build_payload",
]


class GotifyAPIError(RuntimeError):
    """Raised when Gotify rejects a message."""

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message)
        self.status: int = status


def build_message_url(base_url: str, token: str) -> str:
    """Return the message endpoint URL for a Gotify server.

    Examples:
        >>> build_message_url("https://push.example.com/", "abc")
        'https://push.example.com/message?token=abc'
    """
    return f"{base_url.rstrip('/')}/message?token={quote(token, safe='')}"


def build_payload(alert: AlertMessage) -> dict[str, object]:
    """Return the JSON body Gotify expects for an alert."""
    return {
        "title": alert.title,
        "message": alert.message,
        "priority": alert.priority,
    }


@dataclass(slots=True)
class GotifyAPIClient:
    """Thin wrapper posting alerts to one Gotify server."""

    base_url: str
    token: str
    http_client: HTTPClient
    request_timeout: float = 30.0
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        self._logger = logging.getLogger(__name__)

    @property
    def message_url(self) -> str:
        return build_message_url(self.base_url, self.token)

    async def send_message(self, alert: AlertMessage) -> Response:
        """POST one alert.

        Raises:
            GotifyAPIError: If Gotify answers with a non-2xx status
            TimeoutError: If the request exceeds ``request_timeout``
            aiohttp.ClientError: For connection failures
        """
        response = await self.http_client.post(
            self.message_url,
            build_payload(alert),
            timeout=self.request_timeout,
        )
        if 200 <= response.status < 300:
            self._logger.debug(
                "Gotify message accepted (status=%d, url=%s)",
                response.status,
                sanitize_url(self.message_url),
            )
            return response
        raise self._build_api_error(response)

    def _build_api_error(self, response: Response) -> GotifyAPIError:
        """Create a GotifyAPIError from a non-successful response."""
        # Gotify error bodies look like {"error": "Unauthorized", "errorDescription": "..."}
        error = response.body.get("error")
        description = response.body.get("errorDescription")
        message = f"Gotify responded with {response.status}"
        if isinstance(error, str) and error:
            message = f"{message} ({error})"
        if isinstance(description, str) and description:
            message = f"{message}: {description}"
        return GotifyAPIError(message, status=response.status)
