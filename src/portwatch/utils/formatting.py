"""Pure formatting utilities for human-readable output.

This module provides stateless formatting functions used in alert bodies
and log messages. All functions are pure with no side effects.
"""

from datetime import UTC, datetime, timedelta

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60  # 3,600
_DAY = _HOUR * 24  # 86,400

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(timestamp: datetime) -> str:
    """Format a timestamp in UTC with second precision.

    Naive datetimes are assumed to already be in UTC.

    Args:
        timestamp: Datetime to format

    Returns:
        Timestamp string suffixed with ``UTC``

    Examples:
        >>> format_timestamp(datetime(2024, 5, 1, 12, 30, 45, 999999, tzinfo=UTC))
        '2024-05-01 12:30:45 UTC'
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(UTC)
    return f"{timestamp.strftime(TIMESTAMP_FORMAT)} UTC"


def format_latency(latency: timedelta) -> str:
    """Format a latency in milliseconds with two decimal places.

    Examples:
        >>> format_latency(timedelta(microseconds=12500))
        '12.50ms'
        >>> format_latency(timedelta(seconds=1))
        '1000.00ms'
    """
    return f"{latency.total_seconds() * 1000.0:.2f}ms"


def format_duration(seconds: float) -> str:
    """Convert seconds to human-readable duration format.

    Automatically selects appropriate time units based on magnitude.
    Shows the two most significant units for values over 1 minute.

    Args:
        seconds: Duration in seconds (must be non-negative)

    Returns:
        Human-readable duration string with adaptive granularity.
        - Days: "Xd Yh" (shows days and remaining hours)
        - Hours: "Xh Ym" (shows hours and remaining minutes)
        - Minutes: "Xm Ys" (shows minutes and remaining seconds)
        - Seconds: "Xs" (shows seconds only)

    Examples:
        >>> format_duration(45)
        '45s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
        >>> format_duration(90000)
        '1d 1h'

    Note:
        Rounds down to whole units. Zero components are omitted
        ("1h 0m" becomes "1h").
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    total_seconds = int(seconds)

    if total_seconds >= _DAY:
        days = total_seconds // _DAY
        hours = (total_seconds % _DAY) // _HOUR
        if hours > 0:
            return f"{days}d {hours}h"
        return f"{days}d"

    if total_seconds >= _HOUR:
        hours = total_seconds // _HOUR
        minutes = (total_seconds % _HOUR) // _MINUTE
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"

    if total_seconds >= _MINUTE:
        minutes = total_seconds // _MINUTE
        remaining = total_seconds % _MINUTE
        if remaining > 0:
            return f"{minutes}m {remaining}s"
        return f"{minutes}m"

    return f"{total_seconds}s"
