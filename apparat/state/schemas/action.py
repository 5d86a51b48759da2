"""
Schemas for requests made between turns and their answers.

- Decision: a content-supplied choice with declared effects
- PromotionCheck: read-only eligibility preview with per-gate requirements
- Refusal: a structured "no", returned rather than raised
- OfferResolution / DecisionResult: the new world plus what happened

Refusals never mutate state. When ok is False the returned world is the
caller's world, untouched.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..schema import FeatureCategory, LawState, MetricName, SlotKey, Track
from ..world import World
from .event import Event


class RefusalReason(str, Enum):
    """Reason codes for validation and eligibility failures."""
    # Promotion
    REMOVED = "removed"
    AT_APEX = "at_apex"
    RIVAL_THREAT_BLOCKED = "rival_threat_blocked"
    INSUFFICIENT_TENURE = "insufficient_tenure"
    INSUFFICIENT_STANDING = "insufficient_standing"
    INSUFFICIENT_PATRON_FAVOR = "insufficient_patron_favor"
    NO_TRACK = "no_track"
    NO_VACANCY = "no_vacancy"
    # Offers
    OFFER_NOT_FOUND = "offer_not_found"
    OFFER_NOT_OPEN = "offer_not_open"
    OFFER_EXPIRED = "offer_expired"
    SLOT_FILLED = "slot_filled"
    # Tracks
    TRACK_COMMITTED = "track_committed"
    SAME_TRACK = "same_track"
    INVALID_TRACK = "invalid_track"
    # Decisions and content
    DECISION_LIMIT_REACHED = "decision_limit_reached"
    DUPLICATE_DECISION = "duplicate_decision"
    INSUFFICIENT_ACCESS = "insufficient_access"
    NPC_NOT_FOUND = "npc_not_found"
    INVALID_FATE = "invalid_fate"
    INVALID_RESPONSE = "invalid_response"
    LAW_NOT_FOUND = "law_not_found"
    LAW_UNCHANGED = "law_unchanged"


class Refusal(BaseModel):
    """A structured refusal with a reason code."""
    reason: RefusalReason
    detail: str = ""


class RequirementStatus(str, Enum):
    MET = "met"
    UNMET = "unmet"


class Requirement(BaseModel):
    """
    A single promotion gate and whether it is met.

    Returned in PromotionCheck so callers can show every gate at once,
    not just the first one that failed.
    """
    label: str  # "Turns in position"
    status: RequirementStatus
    detail: str = ""  # "4 of 6"


class PromotionCheck(BaseModel):
    """Result of evaluating promotion eligibility. Never mutates."""
    eligible: bool
    target_slot: SlotKey | None = None
    target_position: int | None = None
    reason: RefusalReason | None = None
    requirements: list[Requirement] = Field(default_factory=list)

    @property
    def unmet(self) -> list[Requirement]:
        return [r for r in self.requirements if r.status == RequirementStatus.UNMET]


class Decision(BaseModel):
    """
    A decision chosen by the player from a content-supplied menu.

    The content source declares the effects; the engine caps and clamps
    them and applies them.
    """
    decision_id: str
    label: str = ""
    metric_deltas: dict[MetricName, int] = Field(default_factory=dict)
    affinity: dict[Track, int] = Field(default_factory=dict)
    disposition_deltas: dict[str, int] = Field(default_factory=dict)  # npc_id -> delta
    faction_deltas: dict[str, int] = Field(default_factory=dict)      # faction_id -> standing delta
    law_changes: dict[str, LawState] = Field(default_factory=dict)    # law_id -> new state
    required_category: FeatureCategory | None = None
    required_level: int = 0


class ChangeResult(BaseModel):
    """What a between-turn change (track choice, NPC removal) did."""
    world: World
    ok: bool
    refusal: Refusal | None = None
    events: list[Event] = Field(default_factory=list)

    @property
    def reason(self) -> RefusalReason | None:
        return self.refusal.reason if self.refusal else None


class DecisionResult(ChangeResult):
    """What applying a decision did."""
    applied: dict[MetricName, int] = Field(default_factory=dict)


class OfferResolution(ChangeResult):
    """What accepting or declining an offer did."""
    pass
