"""Shared utility modules for common operations.

This package provides:
- Formatting helpers for timestamps, latencies and durations
- Secret sanitization for logs and error messages
- Logging setup with correlation IDs
- The aiohttp-backed HTTP client used for alert delivery

Nothing in this package knows about a specific notification service.
"""

from portwatch.utils.formatting import (
    format_duration,
    format_latency,
    format_timestamp,
)
from portwatch.utils.sanitization import (
    REDACTED,
    sanitize_exception,
    sanitize_url,
    sanitize_value,
)

__all__ = [
    # Formatting utilities
    "format_duration",
    "format_latency",
    "format_timestamp",
    # Sanitization
    "REDACTED",
    "sanitize_exception",
    "sanitize_url",
    "sanitize_value",
]
