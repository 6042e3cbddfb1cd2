"""Monitoring core: probing, transition detection, alert routing and scheduling.

Nothing in this package knows about a specific notification service;
destinations are injected through the AlertDestination Protocol.
"""

from portwatch.core.cycle import CycleRunner
from portwatch.core.prober import TCPProber, probe_endpoint
from portwatch.core.router import (
    DOWN_PRIORITY,
    UP_PRIORITY,
    DestinationRouter,
    build_alert,
    is_applicable,
)
from portwatch.core.scheduler import CycleScheduler, SchedulerState
from portwatch.core.status_store import StatusStore

__all__ = [
    "CycleRunner",
    "CycleScheduler",
    "DOWN_PRIORITY",
    "DestinationRouter",
    "SchedulerState",
    "StatusStore",
    "TCPProber",
    "UP_PRIORITY",
    "build_alert",
    "is_applicable",
    "probe_endpoint",
]
