"""Unit tests for the Gotify destination plugin."""

from __future__ import annotations

from unittest.mock import AsyncMock

import aiohttp
import pytest

from portwatch.config import DestinationConfig
from portwatch.plugins.gotify import (
    GotifyAPIClient,
    GotifyDestination,
    build_message_url,
    build_payload,
    create_destination,
)
from portwatch.types import AlertDestination, AlertMessage, AlertSeverity, Response

_ALERT = AlertMessage(
    title="🔴 Server Down: api",
    message="Server 'api' is DOWN",
    priority=8,
    severity=AlertSeverity.HIGH,
    endpoint_name="api",
)


def _config(**overrides: object) -> DestinationConfig:
    data: dict[str, object] = {
        "name": "ops",
        "base_url": "https://push.example.com/",
        "token": "AbC123",
    }
    data.update(overrides)
    return DestinationConfig.model_validate(data)


def _http_client(*, status: int = 200, body: dict[str, object] | None = None) -> AsyncMock:
    client = AsyncMock()
    client.post.return_value = Response(status=status, body=body or {"id": 1}, headers={})
    return client


class TestHelpers:
    def test_build_message_url_strips_trailing_slash(self) -> None:
        assert build_message_url("https://push.example.com/", "abc") == "https://push.example.com/message?token=abc"
        assert build_message_url("http://g.local:8080", "abc") == "http://g.local:8080/message?token=abc"

    def test_build_payload_carries_title_message_and_priority(self) -> None:
        assert build_payload(_ALERT) == {
            "title": "🔴 Server Down: api",
            "message": "Server 'api' is DOWN",
            "priority": 8,
        }

    def test_client_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError, match="request_timeout"):
            _ = GotifyAPIClient(
                base_url="https://push.example.com",
                token="abc",
                http_client=_http_client(),
                request_timeout=0,
            )


class TestGotifyDestination:
    def test_satisfies_alert_destination_protocol(self) -> None:
        destination = create_destination(config=_config(), http_client=_http_client())

        assert isinstance(destination, AlertDestination)
        assert destination.name == "ops"
        assert destination.policy.monitor_all is True

    def test_name_falls_back_to_base_url(self) -> None:
        destination = GotifyDestination(config=_config(name=None), http_client=_http_client())

        assert destination.name == "https://push.example.com/"

    @pytest.mark.asyncio
    async def test_send_posts_payload_to_message_endpoint(self) -> None:
        http_client = _http_client(status=200)
        destination = GotifyDestination(config=_config(), http_client=http_client, request_timeout=7.0)

        result = await destination.send(_ALERT)

        assert result.success is True
        assert result.status == 200
        assert result.destination_name == "ops"
        assert result.delivery_time_ms >= 0
        http_client.post.assert_awaited_once_with(
            "https://push.example.com/message?token=AbC123",
            {"title": "🔴 Server Down: api", "message": "Server 'api' is DOWN", "priority": 8},
            timeout=7.0,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    async def test_any_2xx_status_is_success(self, status: int) -> None:
        destination = GotifyDestination(config=_config(), http_client=_http_client(status=status))

        result = await destination.send(_ALERT)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_non_2xx_status_returns_failure_with_details(self) -> None:
        http_client = _http_client(
            status=401,
            body={"error": "Unauthorized", "errorCode": 401, "errorDescription": "you need to provide a valid token"},
        )
        destination = GotifyDestination(config=_config(), http_client=http_client)

        result = await destination.send(_ALERT)

        assert result.success is False
        assert result.status == 401
        assert result.error_message == (
            "Gotify responded with 401 (Unauthorized): you need to provide a valid token"
        )

    @pytest.mark.asyncio
    async def test_timeout_returns_failure(self) -> None:
        http_client = _http_client()
        http_client.post.side_effect = TimeoutError()
        destination = GotifyDestination(config=_config(), http_client=http_client, request_timeout=2.0)

        result = await destination.send(_ALERT)

        assert result.success is False
        assert result.error_message == "Gotify request timed out after 2.0s"

    @pytest.mark.asyncio
    async def test_transport_error_returns_failure_without_token(self) -> None:
        http_client = _http_client()
        http_client.post.side_effect = aiohttp.ClientConnectionError(
            "Cannot connect to https://push.example.com/message?token=AbC123"
        )
        destination = GotifyDestination(config=_config(), http_client=http_client)

        result = await destination.send(_ALERT)

        assert result.success is False
        assert result.status is None
        assert result.error_message is not None
        assert "ClientConnectionError" in result.error_message
        assert "AbC123" not in result.error_message
