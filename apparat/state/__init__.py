"""World state for the apparat simulation."""

from .schema import (
    CAREER_TRACKS,
    PERSONAL_METRICS,
    NPC,
    CareerRecord,
    CareerStatus,
    FeatureCategory,
    GoalType,
    Law,
    LawCategory,
    LawState,
    MetricName,
    MetricSet,
    NeedType,
    NPCRole,
    NPCStatus,
    OfferResponse,
    OfferStatus,
    OfferType,
    PositionOffer,
    ScheduledConsequence,
    SlotKey,
    Track,
    TrackCommitment,
)
from .invariants import InvariantViolation, SlotConflictError, check_world, find_violations
from .memory import MemoryArena, NPCGoal, NPCMemory
from .metrics import MetricChange, MetricLedger, quantize
from .slots import PLAYER_ID, PositionSlot, VacancyTable
from .world import World, WorldMeta
from .store import WorldStore, JsonWorldStore, MemoryWorldStore
from .content import ContentChannel
from .event_bus import BusMessage, EventBus, LifecycleEvent
from .scenario import create_world

__all__ = [
    # Schema
    "CAREER_TRACKS",
    "PERSONAL_METRICS",
    "NPC",
    "CareerRecord",
    "CareerStatus",
    "FeatureCategory",
    "GoalType",
    "Law",
    "LawCategory",
    "LawState",
    "MetricName",
    "MetricSet",
    "NeedType",
    "NPCRole",
    "NPCStatus",
    "OfferResponse",
    "OfferStatus",
    "OfferType",
    "PositionOffer",
    "ScheduledConsequence",
    "SlotKey",
    "Track",
    "TrackCommitment",
    # Invariants
    "InvariantViolation",
    "SlotConflictError",
    "check_world",
    "find_violations",
    # Agents
    "MemoryArena",
    "NPCGoal",
    "NPCMemory",
    # Metrics
    "MetricChange",
    "MetricLedger",
    "quantize",
    # Slots
    "PLAYER_ID",
    "PositionSlot",
    "VacancyTable",
    # World
    "World",
    "WorldMeta",
    "create_world",
    # Store
    "WorldStore",
    "JsonWorldStore",
    "MemoryWorldStore",
    # Content and lifecycle
    "ContentChannel",
    "BusMessage",
    "EventBus",
    "LifecycleEvent",
]
