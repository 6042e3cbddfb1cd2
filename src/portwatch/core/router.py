"""Destination router fanning transition alerts out to notification destinations.

This module implements the DestinationRouter, which turns a reachability
transition into a titled alert, selects the destinations whose filter policy
covers the endpoint, and delivers to all of them concurrently using
``asyncio.TaskGroup`` with a per-destination timeout. Delivery failures are
absorbed here: they are logged as warnings and reported as failed
:class:`DeliveryResult` values, never raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Iterator, Sequence
from typing import Final

from portwatch.types import (
    AlertDestination,
    AlertMessage,
    AlertSeverity,
    DeliveryResult,
    DestinationPolicy,
    TransitionEvent,
)
from portwatch.utils.formatting import format_latency, format_timestamp
from portwatch.utils.logging import get_logger, log_with_context
from portwatch.utils.sanitization import sanitize_exception

__all__ = [
    "DOWN_PRIORITY",
    "DestinationRouter",
    "UP_PRIORITY",
    "build_alert",
    "is_applicable",
]

DOWN_PRIORITY: Final[int] = 8
UP_PRIORITY: Final[int] = 3
DEFAULT_ERROR_MESSAGE: Final[str] = "Connection failed"


class DestinationDispatchError(Exception):
    """Base exception for destination dispatch failures."""

    destination_name: str
    result: DeliveryResult

    def __init__(
        self,
        destination_name: str,
        *,
        result: DeliveryResult,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(result.error_message or "Alert dispatch failure")
        self.destination_name = destination_name
        self.result = result
        if cause is not None:
            self.__cause__ = cause


class DestinationDeliveryError(DestinationDispatchError):
    """Raised when a destination reports an unsuccessful delivery."""


class DestinationExecutionError(DestinationDispatchError):
    """Raised when a destination's send crashes unexpectedly."""


class DestinationTimeoutError(DestinationDispatchError):
    """Raised when a destination exceeds its dispatch timeout."""

    timeout_seconds: float

    def __init__(
        self,
        destination_name: str,
        *,
        result: DeliveryResult,
        timeout_seconds: float,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(destination_name, result=result)


def is_applicable(policy: DestinationPolicy, endpoint_name: str) -> bool:
    """Return True when a destination's filter policy covers ``endpoint_name``.

    ``monitor_all`` covers everything. An empty allow-list is an explicit
    opt-out. Otherwise names are compared trimmed and case-insensitively.
    """
    if policy.monitor_all:
        return True
    if not policy.monitored_endpoints:
        return False
    wanted = endpoint_name.strip().casefold()
    return any(entry.strip().casefold() == wanted for entry in policy.monitored_endpoints)


def build_alert(event: TransitionEvent) -> AlertMessage | None:
    """Build the alert for a reachability transition, or None for non-transitions."""
    current = event.current
    if event.went_down:
        return AlertMessage(
            title=f"🔴 Server Down: {current.endpoint_name}",
            message=(
                f"Server '{current.endpoint_name}' is DOWN\n\n"
                f"⏰ Detected at: {format_timestamp(current.checked_at)}\n"
                f"❌ Error: {current.error_message or DEFAULT_ERROR_MESSAGE}"
            ),
            priority=DOWN_PRIORITY,
            severity=AlertSeverity.HIGH,
            endpoint_name=current.endpoint_name,
        )
    if event.came_up:
        return AlertMessage(
            title=f"🟢 Server Up: {current.endpoint_name}",
            message=(
                f"Server {current.endpoint_name} ({current.host}:{current.port}) is back UP\n\n"
                f"⏰ Restored at: {format_timestamp(current.checked_at)}\n"
                f"⚡ Response time: {format_latency(current.latency)}"
            ),
            priority=UP_PRIORITY,
            severity=AlertSeverity.NORMAL,
            endpoint_name=current.endpoint_name,
        )
    return None


class DestinationRouter:
    """Route transition alerts to every applicable destination concurrently."""

    def __init__(
        self,
        destinations: Sequence[AlertDestination],
        *,
        delivery_timeout_seconds: float = 30.0,
        logger_obj: logging.Logger | None = None,
        dry_run_enabled: bool = False,
    ) -> None:
        if delivery_timeout_seconds <= 0:
            msg = "delivery_timeout_seconds must be greater than zero"
            raise ValueError(msg)

        self._destinations: tuple[AlertDestination, ...] = tuple(destinations)
        self._delivery_timeout_seconds: float = delivery_timeout_seconds
        self._logger: logging.Logger = logger_obj or get_logger(__name__)
        self._dry_run_enabled: bool = dry_run_enabled

    @property
    def destinations(self) -> tuple[AlertDestination, ...]:
        return self._destinations

    def applicable_destinations(self, endpoint_name: str) -> tuple[AlertDestination, ...]:
        """Return enabled destinations whose policy covers the endpoint."""
        return tuple(
            destination
            for destination in self._destinations
            if destination.policy.enabled and is_applicable(destination.policy, endpoint_name)
        )

    async def route_all(self, events: Iterable[TransitionEvent]) -> tuple[DeliveryResult, ...]:
        """Route every transition of a cycle concurrently and collect all results."""
        transitions = [event for event in events if event.is_transition]
        if not transitions:
            return ()

        collected: list[tuple[DeliveryResult, ...]] = [() for _ in transitions]

        async def _route_single(index: int, event: TransitionEvent) -> None:
            collected[index] = await self.route(event)

        async with asyncio.TaskGroup() as task_group:
            for index, event in enumerate(transitions):
                _ = task_group.create_task(_route_single(index, event))

        return tuple(result for results in collected for result in results)

    async def route(self, event: TransitionEvent) -> tuple[DeliveryResult, ...]:
        """Deliver the alert for ``event`` to all applicable destinations.

        No-op for non-transitions and when no destination applies.
        """
        alert = build_alert(event)
        if alert is None:
            return ()

        destinations = self.applicable_destinations(alert.endpoint_name)
        if not destinations:
            log_with_context(
                self._logger,
                logging.INFO,
                "No destination covers endpoint; alert not sent",
                extra={"endpoint_name": alert.endpoint_name, "alert_title": alert.title},
            )
            return ()

        if self._dry_run_enabled:
            return self._handle_dry_run(alert, destinations)

        log_with_context(
            self._logger,
            logging.INFO,
            "Dispatching alert",
            extra={
                "endpoint_name": alert.endpoint_name,
                "severity": alert.severity.value,
                "destination_count": len(destinations),
            },
        )

        results: list[DeliveryResult | None] = [None] * len(destinations)
        dispatch_errors: list[DestinationDispatchError] = []

        async def _dispatch_single(index: int, destination: AlertDestination) -> None:
            start = time.perf_counter()
            result: DeliveryResult
            try:
                async with asyncio.timeout(self._delivery_timeout_seconds):
                    result = await destination.send(alert)
            except asyncio.CancelledError:
                raise
            except TimeoutError:
                result = DeliveryResult(
                    success=False,
                    destination_name=destination.name,
                    error_message=(
                        f"Alert delivery timed out after {self._delivery_timeout_seconds:.2f}s"
                    ),
                    delivery_time_ms=(time.perf_counter() - start) * 1000.0,
                )
                dispatch_errors.append(
                    DestinationTimeoutError(
                        destination.name,
                        result=result,
                        timeout_seconds=self._delivery_timeout_seconds,
                    )
                )
            except Exception as exc:
                result = DeliveryResult(
                    success=False,
                    destination_name=destination.name,
                    error_message=f"Alert dispatch failed: {sanitize_exception(exc)}",
                    delivery_time_ms=(time.perf_counter() - start) * 1000.0,
                )
                dispatch_errors.append(
                    DestinationExecutionError(destination.name, result=result, cause=exc)
                )
            else:
                if result.success:
                    log_with_context(
                        self._logger,
                        logging.INFO,
                        "Alert delivered successfully",
                        extra={
                            "destination_name": destination.name,
                            "endpoint_name": alert.endpoint_name,
                            "delivery_time_ms": result.delivery_time_ms,
                        },
                    )
                else:
                    dispatch_errors.append(DestinationDeliveryError(destination.name, result=result))
            results[index] = result

        async with asyncio.TaskGroup() as task_group:
            for index, destination in enumerate(destinations):
                _ = task_group.create_task(_dispatch_single(index, destination))

        if dispatch_errors:
            self._handle_dispatch_exception_group(dispatch_errors, alert)

        return tuple(result for result in results if result is not None)

    def _handle_dry_run(
        self,
        alert: AlertMessage,
        destinations: Sequence[AlertDestination],
    ) -> tuple[DeliveryResult, ...]:
        """Return synthetic results while logging the alert."""
        log_with_context(
            self._logger,
            logging.INFO,
            "Dry-run alert recorded",
            extra={
                "endpoint_name": alert.endpoint_name,
                "alert_title": alert.title,
                "alert_message": alert.message,
                "priority": alert.priority,
                "destinations_requested": [destination.name for destination in destinations],
            },
        )
        return tuple(
            DeliveryResult(
                success=True,
                destination_name=destination.name,
                error_message=None,
                delivery_time_ms=0.0,
            )
            for destination in destinations
        )

    def _handle_dispatch_exception_group(
        self,
        errors: list[DestinationDispatchError],
        alert: AlertMessage,
    ) -> None:
        """Log grouped destination failures using except* semantics."""
        try:
            raise ExceptionGroup("alert dispatch failures", errors)
        except* DestinationTimeoutError as group:
            for error in self._flatten_exceptions(group.exceptions, DestinationTimeoutError):
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    "Alert delivery timed out for destination",
                    extra={
                        "destination_name": error.destination_name,
                        "endpoint_name": alert.endpoint_name,
                        "timeout_seconds": error.timeout_seconds,
                        "delivery_time_ms": error.result.delivery_time_ms,
                    },
                )
        except* DestinationDispatchError as group:
            for error in self._flatten_exceptions(group.exceptions, DestinationDispatchError):
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    "Alert delivery failed",
                    extra={
                        "destination_name": error.destination_name,
                        "endpoint_name": alert.endpoint_name,
                        "status": error.result.status,
                        "error_message": error.result.error_message or "unknown error",
                        "exception_type": type(error.__cause__ or error).__name__,
                    },
                )

    def _flatten_exceptions[T: BaseException](
        self,
        exceptions: Iterable[BaseException],
        target_type: type[T],
    ) -> Iterator[T]:
        """Yield exceptions of a specific type from an exception hierarchy."""
        for exc in exceptions:
            if isinstance(exc, ExceptionGroup):
                yield from self._flatten_exceptions(exc.exceptions, target_type)
            elif isinstance(exc, target_type):
                yield exc
