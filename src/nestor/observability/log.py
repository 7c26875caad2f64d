"""Diagnostic event log.

A bounded history of what the engine reported: pruned providers, registry
warnings, bridge deliveries and cancellations.  The engine is
single-threaded, so the log is a plain ring buffer with no locking.
"""

from collections import Counter, deque
from typing import Any

from nestor.observability.events import DiagnosticEvent

# Event attributes naming the provider, bridge, or context an event is about.
_SUBJECT_FIELDS = ("provider_id", "bridge_id", "subject", "source", "name")


def subject_of(event: DiagnosticEvent) -> str:
    """The provider / bridge / context id ``event`` is about."""
    for name in _SUBJECT_FIELDS:
        value = getattr(event, name, None)
        if value:
            return value
    return ""


class EventLog:
    """Ring buffer of diagnostic events.

    Args:
        max_events: Oldest events are dropped beyond this many.

    """

    __slots__ = ("_events",)

    def __init__(self, max_events: int = 10_000) -> None:
        self._events: deque[DiagnosticEvent] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen or 0

    def append(self, event: DiagnosticEvent) -> None:
        self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        subject: str | None = None,
        since_ns: int = 0,
        limit: int = 100,
    ) -> list[DiagnosticEvent]:
        """Matching events, most recent first.

        Args:
            event_type: Keep only instances of this event class.
            subject: Keep only events about this provider / bridge /
                context id (exact match).
            since_ns: Keep only events stamped at or after this time.
            limit: Return at most this many.

        """
        results: list[DiagnosticEvent] = []
        for event in reversed(self._events):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if subject is not None and subject_of(event) != subject:
                continue
            if event.timestamp_ns < since_ns:
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[DiagnosticEvent]:
        """The ``n`` most recent events, oldest first."""
        return list(self._events)[-n:]

    def clear(self) -> int:
        """Drop every event and return how many there were."""
        count = len(self._events)
        self._events.clear()
        return count

    def __len__(self) -> int:
        return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Event totals, overall and per event class."""
        return {
            "total": len(self._events),
            "max_events": self.max_events,
            "by_type": dict(Counter(type(event).__name__ for event in self._events)),
        }
