"""HTTP client abstraction for alert delivery.

This module provides the aiohttp-backed HTTP client used to POST alerts to
notification destinations. Each request is bounded by ``asyncio.timeout``.
Failed deliveries are never retried; callers receive the response or the
transport error and decide how to report it.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Self

import aiohttp

from portwatch.types.models import Response
from portwatch.utils.sanitization import sanitize_url


class AIOHTTPClient:
    """Async HTTP client implementing the HTTPClient Protocol using aiohttp.

    The client owns a single ``aiohttp.ClientSession`` for its lifetime,
    shared by all destinations.

    Example:
        >>> async with AIOHTTPClient() as client:
        ...     response = await client.post(
        ...         "https://alerts.example.com/message?token=abc",
        ...         {"title": "t", "message": "m", "priority": 3},
        ...         timeout=10.0,
        ...     )
    """

    def __init__(self, *, default_timeout_seconds: float = 30.0) -> None:
        """Initialize HTTP client.

        Args:
            default_timeout_seconds: Session-wide total timeout in seconds (default: 30.0)
        """
        if default_timeout_seconds <= 0:
            msg = "default_timeout_seconds must be greater than zero"
            raise ValueError(msg)

        self._default_timeout_seconds: float = default_timeout_seconds

        # aiohttp session (created in __aenter__)
        self._session: aiohttp.ClientSession | None = None

        self._logger: logging.Logger = logging.getLogger(__name__)

    async def __aenter__(self) -> Self:
        timeout = aiohttp.ClientTimeout(total=self._default_timeout_seconds)
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            json_serialize=json.dumps,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

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
            payload: Request body data (will be JSON-encoded)
            timeout: Request timeout in seconds (keyword-only)

        Returns:
            HTTP response with status, body, and headers

        Raises:
            RuntimeError: If the client is used outside its context manager
            TimeoutError: If request exceeds timeout
            ValueError: If URL is malformed
            aiohttp.ClientError: For connection issues
        """
        if self._session is None:
            msg = "HTTP client session not initialized. Use 'async with' context manager."
            raise RuntimeError(msg)

        safe_url = sanitize_url(url)
        self._logger.debug("Initiating POST request to %s", safe_url)

        try:
            async with asyncio.timeout(timeout):
                async with self._session.post(url, json=payload) as response:
                    # Non-JSON responses yield an empty body
                    body: Mapping[str, object]
                    try:
                        body = await response.json()  # pyright: ignore[reportAny]  # aiohttp returns Any
                    except (aiohttp.ContentTypeError, ValueError):
                        body = {}

                    return Response(
                        status=response.status,
                        body=body if isinstance(body, Mapping) else {"data": body},
                        headers=dict(response.headers),
                    )
        except TimeoutError:
            self._logger.warning("Request to %s timed out after %.1fs", safe_url, timeout)
            raise
        except aiohttp.InvalidURL as exc:
            self._logger.error("Invalid URL: %s", safe_url)
            raise ValueError(f"Malformed URL: {safe_url}") from exc
        except aiohttp.ClientError as exc:
            self._logger.warning("Client error for %s: %s", safe_url, exc)
            raise
