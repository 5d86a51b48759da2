"""
Public entry points.

Every function here takes a World and leaves it alone: changes are made
to a copy, and the copy is returned only if the change went through.
Refusals come back as data with the caller's own world attached.

    result = advance_turn(world, seed=7)
    check = evaluate_promotion(result.world)
    level = resolve_access(result.world, FeatureCategory.ECONOMIC)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, TypeVar

from .config import BalanceConfig
from .rules.access import resolve_for_world
from .state.event_bus import EventBus, LifecycleEvent
from .state.invariants import check_world
from .state.scenario import create_world
from .state.schema import FeatureCategory, NPCStatus, OfferResponse, Track
from .state.schemas.action import (
    ChangeResult,
    Decision,
    DecisionResult,
    OfferResolution,
    PromotionCheck,
    Refusal,
    RefusalReason,
)
from .state.schemas.event import ContentCandidate, Event
from .state.schemas.turn_result import TurnResult
from .state.world import World
from .systems import career
from .systems.base import EventOutbox
from .systems.decisions import apply_decision as _apply_decision
from .systems.turns import TurnOrchestrator

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

__all__ = [
    "advance_turn",
    "evaluate_promotion",
    "resolve_offer",
    "resolve_access",
    "apply_decision",
    "remove_npc",
    "choose_track",
    "transfer_track",
    "enqueue_content",
    "create_world",
]


def _between_turns(
    world: World,
    config: BalanceConfig,
    change: Callable[[World, EventOutbox], Refusal | None],
) -> tuple[World, Refusal | None, list[Event]]:
    """
    Run a change on a copy of world.

    Returns (world, refusal, events). On refusal the world returned is the
    caller's own and events is empty.
    """
    working = world.model_copy(deep=True)
    issued = sum(1 for e in world.event_log if e.event_id.startswith(f"x{world.turn}-"))
    outbox = EventOutbox(world.turn, prefix="x", start=issued)
    refusal = change(working, outbox)
    if refusal is not None:
        return world, refusal, []

    check_world(working)
    events = outbox.events
    working.event_log.extend(events)
    overflow = len(working.event_log) - config.event_log_limit
    if overflow > 0:
        del working.event_log[:overflow]
    return working, None, events


def _parse(enum_cls: type[E], value: E | str, reason: RefusalReason) -> tuple[E | None, Refusal | None]:
    """Convert a caller-supplied string to enum_cls, or refuse it."""
    try:
        return enum_cls(value), None
    except ValueError:
        return None, Refusal(reason=reason, detail=str(value))


# ─── Turn ───────────────────────────────────────────────────

def advance_turn(
    world: World,
    seed: int | None = None,
    config: BalanceConfig | None = None,
    bus: EventBus | None = None,
) -> TurnResult:
    """
    Advance the world by one turn.

    The same world and seed always produce the same result.

    Raises:
        TurnRejectedError: an invariant failed; world is unchanged
    """
    return TurnOrchestrator(config, bus=bus).advance(world, seed)


# ─── Career ─────────────────────────────────────────────────

def evaluate_promotion(world: World, config: BalanceConfig | None = None) -> PromotionCheck:
    """Whether the player may be promoted now, and if not, why not."""
    return career.evaluate_promotion(world, config or BalanceConfig())


def resolve_offer(
    world: World,
    offer_id: str,
    response: OfferResponse | str,
    config: BalanceConfig | None = None,
    bus: EventBus | None = None,
) -> OfferResolution:
    """Accept or decline a pending offer."""
    config = config or BalanceConfig()
    response, refusal = _parse(OfferResponse, response, RefusalReason.INVALID_RESPONSE)
    if refusal is not None:
        return OfferResolution(world=world, ok=False, refusal=refusal)
    new_world, refusal, events = _between_turns(
        world,
        config,
        lambda w, outbox: career.resolve_offer(w, offer_id, response, config, outbox),
    )
    if bus is not None:
        bus.emit(
            LifecycleEvent.OFFER_RESOLVED,
            world_id=world.meta.id,
            turn=world.turn,
            offer_id=offer_id,
            response=response.value,
            ok=refusal is None,
        )
    return OfferResolution(world=new_world, ok=refusal is None, refusal=refusal, events=events)


def choose_track(world: World, track: Track | str, config: BalanceConfig | None = None) -> ChangeResult:
    """Pick a provisional track."""
    config = config or BalanceConfig()
    track, refusal = _parse(Track, track, RefusalReason.INVALID_TRACK)
    if refusal is not None:
        return ChangeResult(world=world, ok=False, refusal=refusal)
    new_world, refusal, events = _between_turns(
        world, config, lambda w, outbox: career.choose_track(w, track, outbox),
    )
    return ChangeResult(world=new_world, ok=refusal is None, refusal=refusal, events=events)


def transfer_track(world: World, track: Track | str, config: BalanceConfig | None = None) -> ChangeResult:
    """Explicitly move to another track, committed or not."""
    config = config or BalanceConfig()
    track, refusal = _parse(Track, track, RefusalReason.INVALID_TRACK)
    if refusal is not None:
        return ChangeResult(world=world, ok=False, refusal=refusal)
    new_world, refusal, events = _between_turns(
        world, config, lambda w, outbox: career.transfer_track(w, track, config, outbox),
    )
    return ChangeResult(world=new_world, ok=refusal is None, refusal=refusal, events=events)


def remove_npc(
    world: World,
    npc_id: str,
    fate: NPCStatus | str,
    reason: str = "",
    config: BalanceConfig | None = None,
) -> ChangeResult:
    """Remove an NPC as the result of a content event; their slot becomes vacant."""
    config = config or BalanceConfig()
    fate, refusal = _parse(NPCStatus, fate, RefusalReason.INVALID_FATE)
    if refusal is not None:
        return ChangeResult(world=world, ok=False, refusal=refusal)
    new_world, refusal, events = _between_turns(
        world, config,
        lambda w, outbox: career.remove_npc(w, npc_id, fate, outbox, reason),
    )
    return ChangeResult(world=new_world, ok=refusal is None, refusal=refusal, events=events)


# ─── Access ─────────────────────────────────────────────────

def resolve_access(world: World, category: FeatureCategory | str) -> int:
    """Access level for a feature category, resolved fresh on every call."""
    return resolve_for_world(world, FeatureCategory(category))


# ─── Decisions and content ──────────────────────────────────

def apply_decision(
    world: World,
    decision: Decision,
    config: BalanceConfig | None = None,
    bus: EventBus | None = None,
) -> DecisionResult:
    """Apply a content-supplied decision's effects, capped and clamped."""
    config = config or BalanceConfig()
    applied: dict = {}

    def change(w: World, outbox: EventOutbox) -> Refusal | None:
        refusal, landed = _apply_decision(w, decision, config, outbox)
        applied.update(landed)
        return refusal

    new_world, refusal, events = _between_turns(world, config, change)
    if bus is not None and refusal is None:
        bus.emit(
            LifecycleEvent.DECISION_APPLIED,
            world_id=world.meta.id,
            turn=world.turn,
            decision_id=decision.decision_id,
        )
    return DecisionResult(
        world=new_world,
        ok=refusal is None,
        refusal=refusal,
        applied=applied,
        events=events,
    )


def enqueue_content(world: World, candidate: ContentCandidate, bus: EventBus | None = None) -> World:
    """Queue a content candidate for the next turn's aggregation step."""
    updated = world.model_copy(deep=True)
    updated.pending_content.append(candidate)
    if bus is not None:
        bus.emit(
            LifecycleEvent.CONTENT_QUEUED,
            world_id=world.meta.id,
            turn=world.turn,
            event_type=candidate.event_type,
            pending=len(updated.pending_content),
        )
    return updated
