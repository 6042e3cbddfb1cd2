"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from portwatch.__main__ import DEFAULT_CONFIG_PATH, async_main, build_scheduler, main, parse_arguments
from portwatch.config import load_main_config
from portwatch.core import SchedulerState


class TestParseArguments:
    def test_defaults(self) -> None:
        args = parse_arguments([])

        assert args.config == DEFAULT_CONFIG_PATH
        assert args.dry_run is False
        assert args.log_level is None
        assert args.no_syslog is False
        assert args.once is False

    def test_all_flags(self) -> None:
        args = parse_arguments(
            ["--config", "/etc/portwatch.yaml", "--dry-run", "--log-level", "DEBUG", "--no-syslog", "--once"]
        )

        assert args.config == Path("/etc/portwatch.yaml")
        assert args.dry_run is True
        assert args.log_level == "DEBUG"
        assert args.no_syslog is True
        assert args.once is True

    def test_rejects_unknown_log_level(self) -> None:
        with pytest.raises(SystemExit):
            _ = parse_arguments(["--log-level", "LOUD"])


def test_build_scheduler_wires_configured_components(config_file: Path) -> None:
    config = load_main_config(config_file)

    scheduler = build_scheduler(config, AsyncMock(), dry_run=True)

    assert scheduler.state is SchedulerState.IDLE
    assert len(scheduler.store) == 0


@pytest.mark.asyncio
async def test_once_mode_records_baseline_without_alerts(config_file: Path) -> None:
    await async_main(config_path=config_file, enable_syslog=False, run_once=True, dry_run=True)


def test_main_exits_with_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.argv", ["portwatch", "--config", str(tmp_path / "absent.yaml"), "--no-syslog"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1


def test_main_once_exits_cleanly(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.argv", ["portwatch", "--config", str(config_file), "--no-syslog", "--once"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 0
