"""Application entry point and CLI for portwatch.

This module implements the main entry point for the portwatch application,
providing CLI argument parsing, configuration loading, logging setup,
explicit wiring of the monitoring components and scheduler lifecycle
management with graceful shutdown handling.

Wiring:
    TCPProber -> CycleRunner
    StatusStore
    GotifyDestination (one per resolved destination) -> DestinationRouter
    CycleRunner + StatusStore + DestinationRouter -> CycleScheduler
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from portwatch.config import (
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    load_main_config,
)
from portwatch.core import (
    CycleRunner,
    CycleScheduler,
    DestinationRouter,
    StatusStore,
    TCPProber,
)
from portwatch.plugins.gotify import create_destination
from portwatch.types import HTTPClient
from portwatch.utils.http_client import AIOHTTPClient
from portwatch.utils.logging import configure_logging

__all__ = ["build_scheduler", "main", "parse_arguments"]

# Default configuration path
DEFAULT_CONFIG_PATH: Path = Path("config/portwatch.yaml")

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 1


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the portwatch application.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``)

    Returns:
        Parsed arguments namespace containing configuration options

    CLI Arguments:
        --config, -c: Path to main configuration file
        --dry-run: Enable dry-run mode (log alerts without sending)
        --log-level: Override log level from config
        --no-syslog: Disable syslog integration
        --once: Run a single monitoring cycle and exit
    """
    parser = argparse.ArgumentParser(
        prog="portwatch",
        description="Monitor TCP reachability of servers and send Gotify alerts on state changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  portwatch
  portwatch --config /path/to/config.yaml
  portwatch --dry-run --log-level DEBUG
  portwatch --no-syslog --once
        """,
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to main configuration file (default: {DEFAULT_CONFIG_PATH})",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry-run mode: log alerts without sending (overrides config)",
    )

    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )

    _ = parser.add_argument(
        "--no-syslog",
        action="store_true",
        help="Disable syslog integration (useful for development)",
    )

    _ = parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single monitoring cycle (records the baseline) and exit",
    )

    return parser.parse_args(argv)


def build_scheduler(
    config: MainConfig,
    http_client: HTTPClient,
    *,
    dry_run: bool,
) -> CycleScheduler:
    """Construct the monitoring components from validated configuration."""
    monitoring = config.monitoring

    prober = TCPProber(timeout_seconds=monitoring.timeout_seconds)
    runner = CycleRunner(prober)
    store = StatusStore()
    destinations = [
        create_destination(config=destination, http_client=http_client)
        for destination in monitoring.resolved_destinations()
    ]
    router = DestinationRouter(destinations, dry_run_enabled=dry_run)

    return CycleScheduler(
        runner,
        store,
        router,
        monitoring.servers,
        check_interval=monitoring.check_interval_seconds,
        startup_delay=monitoring.startup_delay_seconds,
    )


async def async_main(
    *,
    config_path: Path,
    dry_run: bool = False,
    log_level: str | None = None,
    enable_syslog: bool = True,
    run_once: bool = False,
) -> None:
    """Async main function implementing application lifecycle.

    Args:
        config_path: Path to main configuration file
        dry_run: Enable dry-run mode (override config setting)
        log_level: Override log level from config
        enable_syslog: Enable syslog integration
        run_once: Run a single cycle instead of the scheduler loop

    Raises:
        ConfigurationError: If configuration is invalid
        EnvironmentVariableError: If required environment variable is missing
    """
    logger = logging.getLogger(__name__)
    logger.info("Loading configuration", extra={"config_path": str(config_path)})

    config = load_main_config(config_path)

    effective_dry_run = dry_run or config.application.dry_run
    effective_log_level = log_level or config.application.log_level

    configure_logging(
        log_level=effective_log_level,
        enable_syslog=enable_syslog and config.application.syslog_enabled,
        enable_console=True,
    )

    logger = logging.getLogger(__name__)
    logger.info(
        "Portwatch starting",
        extra={
            "server_count": len(config.monitoring.enabled_servers),
            "destination_count": len(config.monitoring.resolved_destinations()),
            "dry_run": effective_dry_run,
        },
    )

    async with AIOHTTPClient() as http_client:
        scheduler = build_scheduler(config, http_client, dry_run=effective_dry_run)

        if run_once:
            summary = await scheduler.run_once()
            logger.info(
                "Single cycle finished",
                extra={"up_count": summary.up_count, "down_count": summary.down_count},
            )
            return

        shutdown_requested = False

        def request_shutdown() -> None:
            """Request graceful shutdown of the scheduler."""
            nonlocal shutdown_requested
            if not shutdown_requested:
                shutdown_requested = True
                logger.info("Shutdown signal received, requesting graceful shutdown")
                scheduler.request_shutdown()

        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, request_shutdown)

        try:
            await scheduler.start()
        except asyncio.CancelledError:
            logger.info("Scheduler task cancelled")
        except Exception as exc:
            logger.exception(
                "Scheduler failed during execution",
                extra={"error": str(exc)},
            )
            raise
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                _ = loop.remove_signal_handler(sig)

            logger.info("Portwatch shutdown complete")


def main() -> NoReturn:
    """Main entry point for the portwatch application.

    Exit Codes:
        0: Clean shutdown
        1: Configuration error or runtime error
    """
    args = parse_arguments()

    try:
        # Extract args with type annotations to avoid reportAny at argparse boundary
        config_path_arg: Path = args.config  # pyright: ignore[reportAny]  # argparse boundary
        dry_run_arg: bool = args.dry_run  # pyright: ignore[reportAny]  # argparse boundary
        log_level_arg: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
        no_syslog_arg: bool = args.no_syslog  # pyright: ignore[reportAny]  # argparse boundary
        once_arg: bool = args.once  # pyright: ignore[reportAny]  # argparse boundary

        asyncio.run(
            async_main(
                config_path=config_path_arg,
                dry_run=dry_run_arg,
                log_level=log_level_arg,
                enable_syslog=not no_syslog_arg,
                run_once=once_arg,
            )
        )

    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except EnvironmentVariableError as exc:
        print(f"Environment variable error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except RuntimeError as exc:
        print(f"Runtime error: {exc}", file=sys.stderr)
        sys.exit(EXIT_RUNTIME_ERROR)

    except KeyboardInterrupt:
        # Ctrl+C before signal handlers were installed
        print("\nShutdown complete", file=sys.stderr)
        sys.exit(EXIT_SUCCESS)

    except Exception as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        logging.exception("Unexpected error during application execution")
        sys.exit(EXIT_RUNTIME_ERROR)

    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
