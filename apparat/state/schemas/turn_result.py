"""
TurnResult schema: the output of an advanced turn.

Design invariants:
- world is the new authoritative state; the caller's input is untouched
- seed is recorded so the turn can be replayed exactly
- events is the de-duplicated, ordered list for this turn
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..schema import MetricName
from ..world import World
from .event import Event, Severity


class Notice(BaseModel):
    """Grouped, readable summary of one category of events."""
    headline: str  # "Career", "Regions"
    details: list[str] = Field(default_factory=list)
    severity: Severity = Severity.MINOR


class TurnResult(BaseModel):
    """
    Complete result of one AdvanceTurn.

    The caller persists world and renders events/notices; nothing here
    refers back to the world that went in.
    """
    world: World
    turn_number: int  # The turn that was processed
    seed: int
    events: list[Event] = Field(default_factory=list)
    notices: list[Notice] = Field(default_factory=list)
    metric_changes: dict[MetricName, int] = Field(default_factory=dict)

    @property
    def event_summary(self) -> list[str]:
        """Human-readable summary of events for quick display."""
        return [f"[{e.event_type}] {e.summary}" for e in self.events if e.summary]

    def events_of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.event_type == event_type]
