"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest

from portwatch.utils.logging import clear_correlation_id


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Iterator[None]:
    """Keep correlation IDs from leaking between tests."""
    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo handler changes made by configure_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
async def listening_port() -> AsyncIterator[int]:
    """Start a local TCP server and yield its port."""

    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        _ = reader
        writer.close()

    server = await asyncio.start_server(_handle, host="127.0.0.1", port=0)
    port: int = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()
        await server.wait_closed()


@pytest.fixture
async def closed_port() -> int:
    """Return a local port that nothing is listening on."""
    server = await asyncio.start_server(lambda _r, _w: None, host="127.0.0.1", port=0)
    port: int = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a minimal valid configuration file and return its path."""
    path = tmp_path / "portwatch.yaml"
    _ = path.write_text(
        """
monitoring:
  check_interval_seconds: 15
  timeout_seconds: 2
  startup_delay_seconds: 0
  servers:
    - name: api
      host: 127.0.0.1
      port: 8080
    - name: db
      host: 127.0.0.1
      port: 5432
  gotify_destinations:
    - name: ops
      base_url: https://push.example.com
      application_token: abc123
""",
        encoding="utf-8",
    )
    return path
