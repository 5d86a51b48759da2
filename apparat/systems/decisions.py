"""
Apply a player's decision between turns.

The content source says what a decision does; this module decides how
much of that actually lands. Each declared metric delta is capped (15 for
national gauges, 12 for personal ones) and then clamped by the ledger.
Everything is validated before anything is written, so a refused
decision leaves the world exactly as it was.
"""

from __future__ import annotations

import logging

from ..config import BalanceConfig
from ..rules.access import resolve_for_world
from ..rules.npc import apply_disposition_shift
from ..state.memory import NPCMemory
from ..state.metrics import MetricLedger
from ..state.schema import (
    PERSONAL_METRICS,
    ConsequenceType,
    Law,
    LawState,
    MetricName,
    NPCRole,
    ScheduledConsequence,
    clamp,
)
from ..state.schemas.action import Decision, Refusal, RefusalReason
from ..state.schemas.event import EventCategory
from ..state.world import World
from .base import EventOutbox

logger = logging.getLogger(__name__)

SOURCE = "decision"


def cap_delta(metric: MetricName, delta: int, config: BalanceConfig) -> int:
    """Limit a declared delta to the per-decision cap for its gauge type."""
    cap = (config.decisions.personal_effect_cap if metric in PERSONAL_METRICS
           else config.decisions.national_effect_cap)
    return max(-cap, min(cap, delta))


def validate_decision(world: World, decision: Decision, config: BalanceConfig) -> Refusal | None:
    """Check a decision can be applied. Never mutates."""
    if decision.decision_id in world.decisions_this_turn:
        return Refusal(reason=RefusalReason.DUPLICATE_DECISION, detail=decision.decision_id)
    if len(world.decisions_this_turn) >= config.decisions.decisions_per_turn:
        return Refusal(
            reason=RefusalReason.DECISION_LIMIT_REACHED,
            detail=f"{config.decisions.decisions_per_turn} per turn",
        )
    if decision.required_category is not None:
        level = resolve_for_world(world, decision.required_category)
        if level < decision.required_level:
            return Refusal(
                reason=RefusalReason.INSUFFICIENT_ACCESS,
                detail=f"{decision.required_category.value} {level} of {decision.required_level}",
            )
    for npc_id in decision.disposition_deltas:
        npc = world.get_npc(npc_id)
        if npc is None or not npc.is_alive:
            return Refusal(reason=RefusalReason.NPC_NOT_FOUND, detail=npc_id)
    for law_id, state in decision.law_changes.items():
        law = world.laws.get(law_id)
        if law is None:
            return Refusal(reason=RefusalReason.LAW_NOT_FOUND, detail=law_id)
        if law.current_state == state:
            return Refusal(reason=RefusalReason.LAW_UNCHANGED, detail=f"{law_id} already {state.value}")
    return None


def apply_decision(
    world: World,
    decision: Decision,
    config: BalanceConfig,
    outbox: EventOutbox,
) -> tuple[Refusal | None, dict[MetricName, int]]:
    """
    Apply a decision's effects to world.

    Returns:
        (refusal, applied) where applied maps each metric to the delta that
        actually landed. On refusal nothing was written.
    """
    refusal = validate_decision(world, decision, config)
    if refusal is not None:
        logger.info(f"Decision {decision.decision_id} refused: {refusal.reason.value}")
        return refusal, {}

    turn = world.turn
    ledger = MetricLedger(world.metrics)
    capped = {m: cap_delta(m, d, config) for m, d in decision.metric_deltas.items()}
    applied = ledger.apply_many(capped, SOURCE)

    for track, amount in decision.affinity.items():
        world.career.add_affinity(track, amount)

    for npc_id, delta in sorted(decision.disposition_deltas.items()):
        npc = world.npcs[npc_id]
        apply_disposition_shift(npc, delta)
        npc.last_interaction_turn = turn
        if npc.role == NPCRole.PATRON:
            world.career.last_patron_contact = turn
        world.arena.remember(
            npc.id,
            NPCMemory(
                kind="player_helped" if delta >= 0 else "player_wronged",
                description=decision.label or decision.decision_id,
                turn=turn,
                significant=abs(delta) >= 10,
                subject_id="player",
            ),
            config.agents.reinforcement,
        )

    for faction_id, delta in sorted(decision.faction_deltas.items()):
        faction = world.factions.get(faction_id)
        if faction is not None:
            faction.player_standing = clamp(faction.player_standing + delta)

    for law_id, state in sorted(decision.law_changes.items()):
        change_law(world, world.laws[law_id], state, config)

    world.decisions_this_turn.append(decision.decision_id)
    outbox.emit(
        EventCategory.CONTENT,
        "decision.applied",
        decision.label or f"Decision {decision.decision_id} carried out.",
        consequences={
            "decision_id": decision.decision_id,
            "applied": {m.value: d for m, d in applied.items()},
            "clamped": [c.metric.value for c in ledger.changes if c.was_clamped],
        },
        dedup_key=f"decision.applied:{decision.decision_id}",
        source=SOURCE,
    )
    return None, applied


def change_law(world: World, law: Law, state: LawState, config: BalanceConfig) -> ScheduledConsequence:
    """
    Move a law to a new state and schedule the elite backlash.

    The factions the old arrangement favoured think less of the player,
    the ones it hurt think more. The backlash lands a few turns later,
    when the political phase finds it due.
    """
    turn = world.turn
    law.modify(state, turn)
    difficulty = law.category.difficulty
    law.resistance = clamp(law.resistance + difficulty // 10)

    shift = config.decisions.law_standing_shift
    for faction_id in law.beneficiaries:
        if faction_id in world.factions:
            faction = world.factions[faction_id]
            faction.player_standing = clamp(faction.player_standing - shift)
    for faction_id in law.losers:
        if faction_id in world.factions:
            faction = world.factions[faction_id]
            faction.player_standing = clamp(faction.player_standing + shift)

    consequence = ScheduledConsequence(
        consequence_id=f"{law.id}-{turn}",
        trigger_turn=turn + config.decisions.law_backlash_delay,
        consequence_type=ConsequenceType.ELITE_BACKLASH,
        magnitude=difficulty,
        description=f"Backlash over the {law.name}.",
        law_id=law.id,
        metric_effects={MetricName.ELITE_LOYALTY: -(difficulty // 20)},
    )
    law.consequences.append(consequence)
    logger.info(f"Law {law.id} -> {law.current_state.value}, backlash due turn {consequence.trigger_turn}")
    return consequence
