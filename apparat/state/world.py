"""
The World aggregate: every piece of simulation state in one model.

A World is what gets saved, loaded, snapshotted and advanced. The turn
orchestrator never mutates the caller's World; it works on a deep copy
and hands the copy back on success.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .memory import MemoryArena
from .schema import (
    CareerRecord,
    EconomyState,
    Faction,
    ForeignCountry,
    Law,
    MetricSet,
    NPC,
    NPCRole,
    PositionOffer,
    Region,
    generate_id,
)
from .schemas.event import ContentCandidate, Event
from .slots import VacancyTable

SCHEMA_VERSION = 1


class WorldMeta(BaseModel):
    """World metadata."""
    id: str = Field(default_factory=generate_id)
    name: str = "Untitled"
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    schema_version: int = SCHEMA_VERSION


def relationship_key(a: str, b: str) -> str:
    """Order-independent key for a pair of NPCs."""
    return "|".join(sorted((a, b)))


class World(BaseModel):
    """
    Complete simulation state.

    Ownership per turn: metrics are written only through the MetricLedger,
    career only by career progression, npcs/arena/relationships by agent
    behavior, factions/countries/regions/economy by their own subsystems.
    Laws change only through decisions; their scheduled consequences are
    applied by the political subsystem.
    """
    meta: WorldMeta = Field(default_factory=WorldMeta)
    turn: int = 1
    seed: int = 0

    metrics: MetricSet = Field(default_factory=MetricSet)
    career: CareerRecord = Field(default_factory=CareerRecord)

    npcs: dict[str, NPC] = Field(default_factory=dict)
    arena: MemoryArena = Field(default_factory=MemoryArena)
    relationships: dict[str, int] = Field(default_factory=dict)

    factions: dict[str, Faction] = Field(default_factory=dict)
    regions: dict[str, Region] = Field(default_factory=dict)
    countries: dict[str, ForeignCountry] = Field(default_factory=dict)
    economy: EconomyState = Field(default_factory=EconomyState)
    laws: dict[str, Law] = Field(default_factory=dict)

    slots: VacancyTable = Field(default_factory=VacancyTable)
    offers: list[PositionOffer] = Field(default_factory=list)

    pending_content: list[ContentCandidate] = Field(default_factory=list)
    event_log: list[Event] = Field(default_factory=list)
    decisions_this_turn: list[str] = Field(default_factory=list)

    # -------------------------------------------------------------------------
    # NPC lookups
    # -------------------------------------------------------------------------

    def get_npc(self, npc_id: str) -> NPC | None:
        return self.npcs.get(npc_id)

    def living_npcs(self) -> list[NPC]:
        """Active NPCs in id order, so iteration is deterministic."""
        return [self.npcs[k] for k in sorted(self.npcs) if self.npcs[k].is_alive]

    def npcs_with_role(self, role: NPCRole) -> list[NPC]:
        return [npc for npc in self.living_npcs() if npc.role == role]

    @property
    def patron(self) -> NPC | None:
        """The player's patron, if one is alive."""
        patrons = self.npcs_with_role(NPCRole.PATRON)
        return patrons[0] if patrons else None

    @property
    def primary_rival(self) -> NPC | None:
        rivals = self.npcs_with_role(NPCRole.RIVAL)
        return rivals[0] if rivals else None

    @property
    def patron_name(self) -> str:
        patron = self.patron
        return patron.name if patron else "The Central Committee"

    def relationship(self, a: str, b: str) -> int:
        return self.relationships.get(relationship_key(a, b), 0)

    def shift_relationship(self, a: str, b: str, delta: int) -> int:
        key = relationship_key(a, b)
        value = max(-100, min(100, self.relationships.get(key, 0) + delta))
        if value == 0:
            self.relationships.pop(key, None)
        else:
            self.relationships[key] = value
        return value

    # -------------------------------------------------------------------------
    # Offers
    # -------------------------------------------------------------------------

    def get_offer(self, offer_id: str) -> PositionOffer | None:
        for offer in self.offers:
            if offer.offer_id == offer_id:
                return offer
        return None

    def open_offers(self) -> list[PositionOffer]:
        return [o for o in self.offers if o.is_open]

    def touch(self) -> None:
        self.meta.updated_at = datetime.now()
