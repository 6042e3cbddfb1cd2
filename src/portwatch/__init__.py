"""Portwatch - TCP reachability monitoring with Gotify alerts.

This package periodically probes a fixed set of ``host:port`` endpoints,
detects reachability transitions between consecutive cycles and delivers
down/up alerts to independently filtered notification destinations.
"""

from portwatch.__main__ import main

__all__ = ["main"]
