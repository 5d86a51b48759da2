"""Turn contracts: events, results, refusals."""

from .event import ContentCandidate, Event, EventCategory, Severity

__all__ = [
    "ContentCandidate",
    "Event",
    "EventCategory",
    "Severity",
]
