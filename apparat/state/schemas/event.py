"""
Event schema: individual events produced during a turn.

Events are the atoms of the turn system. Every subsystem appends them to
the turn outbox; aggregation de-duplicates and orders them, and the
result is handed back to the caller for presentation.

Events are immutable once created. A subsystem that wants to change
what happened emits another event instead.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventCategory(str, Enum):
    """Which subsystem produced an event."""
    METRIC = "metric"
    NPC = "npc"
    AMBIENT = "ambient"
    POLITICAL = "political"
    INTERNATIONAL = "international"
    REGIONAL = "regional"
    CAREER = "career"
    ECONOMIC = "economic"
    CONTENT = "content"


class Severity(str, Enum):
    """Ordered from least to most important."""
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


class Event(BaseModel):
    """
    A single immutable record of something that happened.

    consequences is structured data for presentation and audit:
        metric.summary: {"stability": -3, "treasury": 2}
        career.offer_presented: {"offer_id": "...", "slot": "economic:4"}
        region.status_changed: {"region": "north", "from": "stable", "to": "unrest"}
    """
    model_config = ConfigDict(frozen=True)

    event_id: str
    turn: int
    category: EventCategory
    event_type: str  # e.g. "faction.dominant", "career.offer_presented"
    severity: Severity = Severity.MINOR
    summary: str = ""
    consequences: dict = Field(default_factory=dict)
    # Events sharing a dedup key within one turn collapse into one
    dedup_key: str | None = None
    source: str = ""  # Subsystem name, or "content" for queued events


class ContentCandidate(BaseModel):
    """
    A candidate event produced outside the turn, by the content channel.

    Candidates wait in the world until the next turn's aggregation step
    turns them into real events.
    """
    category: EventCategory = EventCategory.CONTENT
    event_type: str
    severity: Severity = Severity.MINOR
    summary: str = ""
    consequences: dict = Field(default_factory=dict)
    dedup_key: str | None = None
