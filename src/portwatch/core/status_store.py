"""Last-known reachability per endpoint and transition detection.

The StatusStore is the only state carried from one monitoring cycle to the
next. It is owned by the scheduler and touched only by the diff step of the
cycle currently running, so it needs no locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from portwatch.types import ProbeResult, TransitionEvent

__all__ = ["StatusStore"]

logger = logging.getLogger(__name__)


class StatusStore:
    """Map of endpoint key (``host:port``) to the most recent probe result."""

    def __init__(self) -> None:
        self._previous: dict[str, ProbeResult] = {}

    def __len__(self) -> int:
        return len(self._previous)

    def __contains__(self, key: object) -> bool:
        return key in self._previous

    def get(self, key: str) -> ProbeResult | None:
        """Return the stored result for ``key`` if the endpoint was seen."""
        return self._previous.get(key)

    def snapshot(self) -> Mapping[str, ProbeResult]:
        """Return a copy of the stored results for diagnostics."""
        return dict(self._previous)

    def diff_and_update(self, results: Iterable[ProbeResult]) -> tuple[TransitionEvent, ...]:
        """Compare each result with the stored one, then store it.

        The first observation of an endpoint only establishes a baseline and
        produces no event. Every later observation produces an event, flip
        or not; callers check ``is_transition`` before alerting.
        """
        events: list[TransitionEvent] = []
        for result in results:
            previous = self._previous.get(result.key)
            if previous is None:
                logger.debug(
                    "Baseline established",
                    extra={
                        "endpoint_name": result.endpoint_name,
                        "reachable": result.reachable,
                    },
                )
            else:
                events.append(TransitionEvent(current=result, previous=previous))
            self._previous[result.key] = result
        return tuple(events)
