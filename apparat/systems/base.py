"""
Shared turn plumbing for subsystems.

Every subsystem gets one TurnContext per turn. It may mutate its own
slice of ctx.world, must write metrics only through ctx.ledger, and reads
other subsystems' state from ctx.snapshot, a copy taken before the first
phase ran. Events go into ctx.outbox.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Protocol, runtime_checkable

from ..config import BalanceConfig
from ..state.metrics import MetricLedger, quantize
from ..state.schema import (
    EconomyState,
    Faction,
    ForeignCountry,
    MetricName,
    NPCStatus,
    Region,
)
from ..state.schemas.event import Event, EventCategory, Severity
from ..state.schemas.turn_result import Notice

if TYPE_CHECKING:
    from ..state.world import World


# ─── Snapshot ───────────────────────────────────────────────

@dataclass(frozen=True)
class TurnSnapshot:
    """
    Read-only copy of cross-subsystem state at turn start.

    Subsystems that run later in the turn still see these values, so the
    order of phases never changes what another subsystem reads.
    """
    turn: int
    metrics: Mapping[MetricName, int]
    factions: Mapping[str, Faction]
    regions: Mapping[str, Region]
    countries: Mapping[str, ForeignCountry]
    economy: EconomyState

    @classmethod
    def capture(cls, world: "World") -> "TurnSnapshot":
        return cls(
            turn=world.turn,
            metrics=MappingProxyType(world.metrics.as_dict()),
            factions=MappingProxyType(
                {k: v.model_copy(deep=True) for k, v in world.factions.items()}
            ),
            regions=MappingProxyType(
                {k: v.model_copy(deep=True) for k, v in world.regions.items()}
            ),
            countries=MappingProxyType(
                {k: v.model_copy(deep=True) for k, v in world.countries.items()}
            ),
            economy=world.economy.model_copy(deep=True),
        )

    def metric(self, metric: MetricName) -> int:
        return self.metrics[metric]

    def faction_power(self, faction_id: str | None) -> int | None:
        if faction_id is None or faction_id not in self.factions:
            return None
        return self.factions[faction_id].power

    def mean_region_stability(self) -> int:
        if not self.regions:
            return 50
        return sum(r.stability for r in self.regions.values()) // len(self.regions)


# ─── Outbox ─────────────────────────────────────────────────

class EventOutbox:
    """
    Turn-scoped event list.

    Event ids are assigned in emission order ("12-003"), so the same turn
    replayed with the same seed produces the same ids. Work done between
    turns uses a prefix ("x12-041") so it never collides with turn events.
    """

    def __init__(self, turn: int, prefix: str = "", start: int = 0):
        self.turn = turn
        self.prefix = prefix
        self._events: list[Event] = []
        self._seq = start

    def next_id(self) -> str:
        self._seq += 1
        return f"{self.prefix}{self.turn}-{self._seq:03d}"

    def emit(
        self,
        category: EventCategory,
        event_type: str,
        summary: str,
        severity: Severity = Severity.MINOR,
        consequences: dict | None = None,
        dedup_key: str | None = None,
        source: str = "",
    ) -> Event:
        event = Event(
            event_id=self.next_id(),
            turn=self.turn,
            category=category,
            event_type=event_type,
            severity=severity,
            summary=summary,
            consequences=consequences or {},
            dedup_key=dedup_key,
            source=source or category.value,
        )
        self._events.append(event)
        return event

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    def replace(self, events: list[Event]) -> None:
        """Swap in a processed event list (aggregation only)."""
        self._events = list(events)

    def __len__(self) -> int:
        return len(self._events)


# ─── Context ────────────────────────────────────────────────

@dataclass
class RemovalRequest:
    """Ask career progression to remove an NPC and free their slot."""
    npc_id: str
    fate: NPCStatus
    reason: str = ""


@dataclass
class TurnContext:
    """Everything a subsystem may touch during one turn."""
    world: "World"
    snapshot: TurnSnapshot
    rng: random.Random
    ledger: MetricLedger
    outbox: EventOutbox
    config: BalanceConfig
    removals: list[RemovalRequest] = field(default_factory=list)
    notices: list[Notice] = field(default_factory=list)

    @property
    def turn(self) -> int:
        return self.world.turn

    def request_removal(self, npc_id: str, fate: NPCStatus, reason: str = "") -> None:
        if any(r.npc_id == npc_id for r in self.removals):
            return
        self.removals.append(RemovalRequest(npc_id=npc_id, fate=fate, reason=reason))

    def quantize(self, delta: float) -> int:
        return quantize(delta, self.config.drift.min_drift_magnitude)


@runtime_checkable
class Subsystem(Protocol):
    """One phase of the turn pipeline."""
    name: str

    def run(self, ctx: TurnContext) -> None:
        ...


def crossed_up(before: int, after: int, threshold: int) -> bool:
    """True when a value rises from below threshold to threshold or above."""
    return before < threshold <= after


def crossed_down(before: int, after: int, threshold: int) -> bool:
    """True when a value falls from above threshold to threshold or below."""
    return before > threshold >= after
