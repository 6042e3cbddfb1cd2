"""Tests for TCP reachability probing."""

from __future__ import annotations

import asyncio
import socket
from unittest.mock import patch

import pytest

from portwatch.core.prober import TCPProber, probe_endpoint
from tests.fixtures.monitoring_doubles import StubEndpoint


@pytest.mark.asyncio
async def test_probe_reports_listening_port_as_reachable(listening_port: int) -> None:
    endpoint = StubEndpoint("local", host="127.0.0.1", port=listening_port)

    result = await probe_endpoint(endpoint, timeout=2.0)

    assert result.reachable is True
    assert result.error_message is None
    assert result.endpoint_name == "local"
    assert result.port == listening_port
    assert result.key == f"127.0.0.1:{listening_port}"
    assert result.latency_ms >= 0
    assert result.checked_at.tzinfo is not None


@pytest.mark.asyncio
async def test_probe_reports_closed_port_as_unreachable(closed_port: int) -> None:
    endpoint = StubEndpoint("closed", host="127.0.0.1", port=closed_port)

    result = await probe_endpoint(endpoint, timeout=2.0)

    assert result.reachable is False
    assert result.error_message
    assert result.latency_ms >= 0


@pytest.mark.asyncio
async def test_probe_timeout_message_names_timeout_in_milliseconds() -> None:
    """A hanging connect is reported as a timeout within the bound."""

    async def _hang(*_args: object, **_kwargs: object) -> tuple[object, object]:
        await asyncio.sleep(10)
        raise AssertionError("unreachable")

    endpoint = StubEndpoint("slow", host="10.255.255.1", port=81)
    with patch("portwatch.core.prober.asyncio.open_connection", _hang):
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await probe_endpoint(endpoint, timeout=0.05)
        elapsed = loop.time() - started

    assert result.reachable is False
    assert result.error_message == "Connection timeout after 50ms"
    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_probe_reports_dns_failure_as_unreachable() -> None:
    async def _fail(*_args: object, **_kwargs: object) -> tuple[object, object]:
        raise socket.gaierror(-2, "Name or service not known")

    endpoint = StubEndpoint("nowhere", host="does-not-exist.invalid", port=80)
    with patch("portwatch.core.prober.asyncio.open_connection", _fail):
        result = await probe_endpoint(endpoint, timeout=1.0)

    assert result.reachable is False
    assert result.error_message == "Name or service not known"


@pytest.mark.asyncio
async def test_probe_converts_unexpected_exception_to_unreachable() -> None:
    async def _boom(*_args: object, **_kwargs: object) -> tuple[object, object]:
        raise RuntimeError("boom")

    endpoint = StubEndpoint("weird")
    with patch("portwatch.core.prober.asyncio.open_connection", _boom):
        result = await probe_endpoint(endpoint, timeout=1.0)

    assert result.reachable is False
    assert result.error_message == "boom"


@pytest.mark.asyncio
async def test_probe_propagates_cancellation() -> None:
    async def _hang(*_args: object, **_kwargs: object) -> tuple[object, object]:
        await asyncio.sleep(10)
        raise AssertionError("unreachable")

    endpoint = StubEndpoint("slow")
    with patch("portwatch.core.prober.asyncio.open_connection", _hang):
        task = asyncio.create_task(probe_endpoint(endpoint, timeout=5.0))
        await asyncio.sleep(0.01)
        _ = task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestTCPProber:
    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError, match="timeout_seconds"):
            _ = TCPProber(timeout_seconds=0)

    @pytest.mark.asyncio
    async def test_call_uses_configured_timeout(self, listening_port: int) -> None:
        prober = TCPProber(timeout_seconds=1.5)

        result = await prober(StubEndpoint("local", port=listening_port))

        assert prober.timeout_seconds == 1.5
        assert result.reachable is True
