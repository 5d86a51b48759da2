"""
Pydantic models for the simulated world.

Leaf entities and enums live here; the aggregate World model that ties
them together is in world.py. Everything serializes to JSON verbatim.
"""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def generate_id() -> str:
    """Generate a short unique ID."""
    return str(uuid4())[:8]


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Track(str, Enum):
    """Career specializations. SHARED marks ranks that belong to no track."""
    PARTY = "party"
    STATE = "state"
    SECURITY = "security"
    FOREIGN = "foreign"
    ECONOMIC = "economic"
    MILITARY = "military"
    SHARED = "shared"


# Tracks a player can actually commit to
CAREER_TRACKS: tuple[Track, ...] = tuple(t for t in Track if t is not Track.SHARED)


class TrackCommitment(str, Enum):
    UNCOMMITTED = "uncommitted"
    PROVISIONAL = "provisional"
    COMMITTED = "committed"


class CareerStatus(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"


class MetricName(str, Enum):
    # National gauges
    STABILITY = "stability"
    SUPPORT = "support"
    MILITARY_LOYALTY = "military_loyalty"
    ELITE_LOYALTY = "elite_loyalty"
    TREASURY = "treasury"
    OUTPUT = "output"
    FOOD = "food"
    STANDING_ABROAD = "standing_abroad"
    # Personal gauges
    STANDING = "standing"
    PATRON_FAVOR = "patron_favor"
    RIVAL_THREAT = "rival_threat"
    NETWORK = "network"


PERSONAL_METRICS: frozenset[MetricName] = frozenset({
    MetricName.STANDING,
    MetricName.PATRON_FAVOR,
    MetricName.RIVAL_THREAT,
    MetricName.NETWORK,
})


class FeatureCategory(str, Enum):
    """Categories of gated features, each aligned with a career track."""
    GENERAL = "general"
    DIPLOMATIC = "diplomatic"
    ECONOMIC = "economic"
    INTELLIGENCE = "intelligence"
    MILITARY = "military"
    ADMINISTRATIVE = "administrative"


class NPCRole(str, Enum):
    PATRON = "patron"
    RIVAL = "rival"
    ALLY = "ally"
    SUBORDINATE = "subordinate"
    OFFICIAL = "official"
    NEUTRAL = "neutral"


class NPCStatus(str, Enum):
    ACTIVE = "active"
    PURGED = "purged"
    IMPRISONED = "imprisoned"
    RETIRED = "retired"
    DEAD = "dead"


class NeedType(str, Enum):
    """Need axes in tie-break order."""
    SECURITY = "security"
    POWER = "power"
    LOYALTY = "loyalty"
    RECOGNITION = "recognition"
    STABILITY = "stability"
    IDEOLOGY = "ideology"


class GoalType(str, Enum):
    """NPC goals in tie-break order."""
    ENSURE_SAFETY = "ensure_safety"
    SEEK_PROMOTION = "seek_promotion"
    BUILD_NETWORK = "build_network"
    GAIN_PATRON = "gain_patron"
    DESTROY_RIVAL = "destroy_rival"
    PROTECT_ALLY = "protect_ally"
    PROMOTE_IDEOLOGY = "promote_ideology"
    MAINTAIN_POSITION = "maintain_position"


class OfferType(str, Enum):
    MERIT = "merit"
    PATRONAGE = "patronage"
    VACANCY_FILL = "vacancy_fill"
    EMERGENCY = "emergency"
    GROOMING = "grooming"


class OfferStatus(str, Enum):
    PENDING = "pending"
    PRESENTED = "presented"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    WITHDRAWN = "withdrawn"


OPEN_OFFER_STATUSES: frozenset[OfferStatus] = frozenset({
    OfferStatus.PENDING,
    OfferStatus.PRESENTED,
})


class OfferResponse(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class FactionStance(str, Enum):
    ORTHODOX = "orthodox"          # Old guard, thrives on crisis
    REFORMIST = "reformist"        # Gains with prosperity
    MERITOCRATIC = "meritocratic"  # Gains with popular support
    ARISTOCRATIC = "aristocratic"  # Rides elite loyalty
    PROVINCIAL = "provincial"      # Feeds on regional discontent


class RegionStatus(str, Enum):
    """Ordered from calm to lost."""
    STABLE = "stable"
    UNREST = "unrest"
    CRISIS = "crisis"
    REBELLION = "rebellion"
    SECEDED = "seceded"


class Bloc(str, Enum):
    ALLIED = "allied"
    NON_ALIGNED = "non_aligned"
    RIVAL = "rival"
    ADVERSARY = "adversary"


class TreatyKind(str, Enum):
    TRADE = "trade"
    MUTUAL_DEFENSE = "mutual_defense"
    NON_AGGRESSION = "non_aggression"
    CULTURAL = "cultural"


class LawCategory(str, Enum):
    INSTITUTIONAL = "institutional"
    ECONOMIC = "economic"
    POLITICAL = "political"
    SOCIAL = "social"

    @property
    def difficulty(self) -> int:
        """Resistance a change to a law of this category provokes."""
        return {
            LawCategory.INSTITUTIONAL: 80,
            LawCategory.POLITICAL: 60,
            LawCategory.ECONOMIC: 50,
            LawCategory.SOCIAL: 40,
        }[self]


class LawState(str, Enum):
    DEFAULT = "default"
    MODIFIED_WEAK = "modified_weak"
    MODIFIED_STRONG = "modified_strong"
    ABOLISHED = "abolished"
    STRENGTHENED = "strengthened"


class ConsequenceType(str, Enum):
    COALITION_FORMS = "coalition_forms"
    FACTION_REBELLION = "faction_rebellion"
    POPULAR_UNREST = "popular_unrest"
    ELITE_BACKLASH = "elite_backlash"
    INTERNATIONAL_PRESSURE = "international_pressure"
    ECONOMIC_EFFECT = "economic_effect"
    MILITARY_UNREST = "military_unrest"
    REGIONAL_TENSION = "regional_tension"


# -----------------------------------------------------------------------------
# Metrics
# -----------------------------------------------------------------------------

METRIC_MIN = 0
METRIC_MAX = 100


def clamp(value: int, low: int = METRIC_MIN, high: int = METRIC_MAX) -> int:
    """Clamp an integer into [low, high]."""
    return max(low, min(high, value))


class MetricSet(BaseModel):
    """
    National and personal gauges, each an integer in [0, 100].

    Direct attribute writes are reserved for the MetricLedger; everything
    else reads through get().
    """
    stability: int = 55
    support: int = 50
    military_loyalty: int = 55
    elite_loyalty: int = 50
    treasury: int = 50
    output: int = 50
    food: int = 55
    standing_abroad: int = 45

    standing: int = 30
    patron_favor: int = 50
    rival_threat: int = 20
    network: int = 10

    def get(self, metric: MetricName) -> int:
        return getattr(self, metric.value)

    def set(self, metric: MetricName, value: int) -> None:
        setattr(self, metric.value, value)

    def as_dict(self) -> dict[MetricName, int]:
        return {m: self.get(m) for m in MetricName}


# -----------------------------------------------------------------------------
# Slots
# -----------------------------------------------------------------------------

class SlotKey(BaseModel):
    """Identity of a position: (track, rank index)."""
    model_config = ConfigDict(frozen=True)

    track: Track
    index: int

    @property
    def id(self) -> str:
        return f"{self.track.value}:{self.index}"

    @classmethod
    def parse(cls, slot_id: str) -> "SlotKey":
        track, index = slot_id.split(":")
        return cls(track=Track(track), index=int(index))

    def __str__(self) -> str:
        return self.id


# -----------------------------------------------------------------------------
# Career
# -----------------------------------------------------------------------------

class PositionRecord(BaseModel):
    """One entry in the player's career history."""
    position: int
    slot_id: str | None = None
    started_turn: int
    ended_turn: int | None = None
    reason: str = ""  # "promoted", "demoted", "transferred", "removed"


class CareerRecord(BaseModel):
    """
    The player's place in the hierarchy.

    Mutated only by career progression; decisions may add affinity.
    """
    position: int = 0
    track: Track | None = None
    commitment: TrackCommitment = TrackCommitment.UNCOMMITTED
    affinities: dict[Track, int] = Field(default_factory=dict)
    turns_in_position: int = 0
    turns_in_track: int = 0
    slot: SlotKey | None = None
    status: CareerStatus = CareerStatus.ACTIVE
    history: list[PositionRecord] = Field(default_factory=list)
    # slot id -> first turn the slot may be offered again
    offer_cooldowns: dict[str, int] = Field(default_factory=dict)
    last_patron_contact: int = 0

    @property
    def is_committed(self) -> bool:
        return self.commitment == TrackCommitment.COMMITTED

    @property
    def is_active(self) -> bool:
        return self.status == CareerStatus.ACTIVE

    def affinity(self, track: Track | None) -> int:
        if track is None:
            return 0
        return self.affinities.get(track, 0)

    def add_affinity(self, track: Track, amount: int) -> int:
        """Add affinity for a track. Affinity never goes negative."""
        new_value = max(0, self.affinities.get(track, 0) + amount)
        self.affinities[track] = new_value
        return new_value


# -----------------------------------------------------------------------------
# NPCs
# -----------------------------------------------------------------------------

class Personality(BaseModel):
    """Six traits, each 0-100."""
    ambition: int = 50
    loyalty: int = 50
    paranoia: int = 50
    competence: int = 50
    ruthlessness: int = 50
    corruption: int = 30


class NPCNeeds(BaseModel):
    """Satisfaction per need axis. Low means urgent."""
    security: int = 60
    power: int = 50
    loyalty: int = 60
    recognition: int = 50
    stability: int = 60
    ideology: int = 50

    def get(self, need: NeedType) -> int:
        return getattr(self, need.value)

    def shift(self, need: NeedType, delta: int) -> int:
        value = clamp(self.get(need) + delta)
        setattr(self, need.value, value)
        return value


class NPC(BaseModel):
    """
    A non-player character.

    Memories and goals are held in the MemoryArena keyed by this NPC's id,
    so the NPC itself stays a flat record.
    """
    id: str = Field(default_factory=generate_id)
    name: str
    title: str = ""
    role: NPCRole = NPCRole.NEUTRAL
    status: NPCStatus = NPCStatus.ACTIVE
    disposition: int = 50
    personality: Personality = Field(default_factory=Personality)
    needs: NPCNeeds = Field(default_factory=NPCNeeds)
    faction_id: str | None = None
    slot: SlotKey | None = None
    last_interaction_turn: int = 0
    removed_turn: int | None = None

    @property
    def is_alive(self) -> bool:
        """Still active in the world (not purged, imprisoned, retired or dead)."""
        return self.status == NPCStatus.ACTIVE


# -----------------------------------------------------------------------------
# Offers
# -----------------------------------------------------------------------------

class PositionOffer(BaseModel):
    """An offer of a specific slot to the player."""
    offer_id: str
    slot: SlotKey
    offer_type: OfferType
    status: OfferStatus = OfferStatus.PENDING
    has_been_presented: bool = False
    created_turn: int
    expiry_turn: int
    patron_id: str | None = None
    resolved_turn: int | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_OFFER_STATUSES


# -----------------------------------------------------------------------------
# Factions, regions, foreign countries, economy
# -----------------------------------------------------------------------------

class Faction(BaseModel):
    id: str
    name: str
    stance: FactionStance
    power: int = 50
    player_standing: int = 50
    # Set once the faction has declared the player an enemy
    hostile: bool = False


class Region(BaseModel):
    id: str
    name: str
    stability: int = 60
    loyalty: int = 60
    party_control: int = 60
    secession_progress: int = 0
    status: RegionStatus = RegionStatus.STABLE
    turns_in_status: int = 0

    @property
    def instability(self) -> int:
        return METRIC_MAX - self.stability


class Treaty(BaseModel):
    kind: TreatyKind
    signed_turn: int = 0
    expires_turn: int | None = None  # None = indefinite

    def is_active(self, turn: int) -> bool:
        return self.expires_turn is None or turn < self.expires_turn


class ForeignCountry(BaseModel):
    id: str
    name: str
    bloc: Bloc
    relationship: int = 0   # -100 (hostile) .. 100 (fraternal)
    tension: int = 20       # 0 .. 100
    treaties: list[Treaty] = Field(default_factory=list)

    def active_treaties(self, turn: int) -> list[Treaty]:
        return [t for t in self.treaties if t.is_active(turn)]


class EconomyState(BaseModel):
    """Indicators owned by the economic subsystem besides the metric gauges."""
    gdp_index: int = 100
    inflation: int = 4
    last_crisis_turn: int | None = None


# -----------------------------------------------------------------------------
# Laws
# -----------------------------------------------------------------------------

class ScheduledConsequence(BaseModel):
    """A delayed effect of changing a law, applied on trigger_turn."""
    consequence_id: str = Field(default_factory=generate_id)
    trigger_turn: int
    consequence_type: ConsequenceType
    magnitude: int = 10  # 1-100
    description: str = ""
    triggered: bool = False
    law_id: str | None = None
    metric_effects: dict[MetricName, int] = Field(default_factory=dict)

    def is_due(self, turn: int) -> bool:
        return not self.triggered and turn >= self.trigger_turn


class Law(BaseModel):
    """
    A standing rule of the state.

    Changing a law schedules consequences; the political subsystem applies
    them when they fall due.
    """
    id: str
    name: str
    description: str = ""
    category: LawCategory
    current_state: LawState = LawState.DEFAULT
    default_state: LawState = LawState.DEFAULT
    turn_enacted: int | None = None
    beneficiaries: list[str] = Field(default_factory=list)  # faction ids
    losers: list[str] = Field(default_factory=list)         # faction ids
    resistance: int = 0
    consequences: list[ScheduledConsequence] = Field(default_factory=list)

    @property
    def has_been_modified(self) -> bool:
        return self.current_state != self.default_state

    def pending_consequences(self) -> list[ScheduledConsequence]:
        return [c for c in self.consequences if not c.triggered]

    def modify(self, state: LawState, turn: int) -> None:
        self.current_state = state
        self.turn_enacted = turn
