"""Type definitions and protocols for portwatch.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
"""

from portwatch.types.models import (
    AlertMessage,
    AlertSeverity,
    CycleSummary,
    DeliveryResult,
    ProbeResult,
    Response,
    TransitionEvent,
    endpoint_key,
)
from portwatch.types.protocols import (
    AlertDestination,
    DestinationPolicy,
    HTTPClient,
    MonitoredEndpoint,
    Prober,
)

__all__ = [
    # Data models
    "AlertMessage",
    "AlertSeverity",
    "CycleSummary",
    "DeliveryResult",
    "ProbeResult",
    "Response",
    "TransitionEvent",
    "endpoint_key",
    # Protocols
    "AlertDestination",
    "DestinationPolicy",
    "HTTPClient",
    "MonitoredEndpoint",
    "Prober",
]
