"""
Agent behavior subsystem (phase 2).

Each living NPC, in id order, goes through the same loop every turn:

    fade memories → erode needs → pick and advance a goal → maybe act
    → let disposition settle

After the per-NPC loop the subsystem relaxes NPC-to-NPC relationships,
applies the standing pressure a rival and a neglected patron put on the
player, and rolls for fates. Fates are not applied here: they become
removal requests that career progression turns into vacancies.

NPC state is updated in place. Player metrics are read from the turn
snapshot and written through the ledger.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..rules.npc import (
    GOAL_RESTORES,
    action_chance,
    decay_disposition,
    fallback_goal,
    goal_for_need,
    most_urgent_need,
    need_pressure,
    progress_step,
    select_goal,
)
from ..state.memory import NPCGoal, NPCMemory
from ..state.schema import (
    NPC,
    GoalType,
    MetricName,
    NeedType,
    NPCRole,
    NPCStatus,
)
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext

logger = logging.getLogger(__name__)

# Needs below this urgency do not spawn goals of their own
GOAL_URGENCY_THRESHOLD = 30
GOAL_COMPLETION_RESTORE = 30
MAX_GOAL_EVENTS_PER_TURN = 2

RoleAction = Callable[[TurnContext, NPC, NPCGoal], None]


class AgentBehaviorSystem:
    """Phase 2: NPC needs, goals, memories and autonomous actions."""
    name = "agents"

    def __init__(self):
        # Built once; roles without an entry never act on their own
        self._role_actions: dict[NPCRole, RoleAction] = {
            NPCRole.PATRON: self._patron_action,
            NPCRole.RIVAL: self._rival_action,
            NPCRole.ALLY: self._ally_action,
            NPCRole.SUBORDINATE: self._subordinate_action,
            NPCRole.OFFICIAL: self._maneuver_action,
            NPCRole.NEUTRAL: self._maneuver_action,
        }
        self._goal_events = 0

    def run(self, ctx: TurnContext) -> None:
        self._goal_events = 0

        for npc in ctx.world.living_npcs():
            self._fade_memories(ctx, npc)
            need, urgency = self._update_needs(ctx, npc)
            goal = self._pursue_goal(ctx, npc, need, urgency)
            self._maybe_act(ctx, npc, urgency, goal)
            self._settle_disposition(ctx, npc)

        self._decay_relationships(ctx)
        self._standing_pressure(ctx)
        self._check_fates(ctx)

    # ─── Per-NPC steps ───────────────────────────────────────

    def _fade_memories(self, ctx: TurnContext, npc: NPC) -> None:
        forgotten = ctx.world.arena.fade(npc.id, ctx.config.agents.salience_decay)
        if forgotten:
            logger.debug(f"{npc.name} forgot {len(forgotten)} memories")

    def _update_needs(self, ctx: TurnContext, npc: NPC) -> tuple[NeedType, int]:
        deltas = need_pressure(
            npc,
            stability=ctx.snapshot.metric(MetricName.STABILITY),
            rival_threat=ctx.snapshot.metric(MetricName.RIVAL_THREAT),
            faction_power=ctx.snapshot.faction_power(npc.faction_id),
        )
        for need in NeedType:
            if need in deltas:
                npc.needs.shift(need, deltas[need])
        return most_urgent_need(npc)

    def _pursue_goal(
        self,
        ctx: TurnContext,
        npc: NPC,
        need: NeedType,
        urgency: int,
    ) -> NPCGoal:
        arena = ctx.world.arena
        goals = arena.goals_of(npc.id)

        if urgency >= GOAL_URGENCY_THRESHOLD:
            candidate = goal_for_need(npc, need, urgency, ctx.turn)
            if not arena.has_goal(npc.id, candidate.goal_type):
                # A real goal replaces the idle one
                for idle in [g for g in goals if g.goal_type == GoalType.MAINTAIN_POSITION]:
                    arena.drop_goal(npc.id, idle)
                arena.add_goal(npc.id, candidate)

        if not goals:
            arena.add_goal(npc.id, fallback_goal(ctx.turn))

        selected = select_goal(goals)
        for goal in goals:
            if goal is not selected:
                goal.frustration += ctx.config.agents.frustration_per_turn
        selected.frustration = 0

        if selected.goal_type == GoalType.MAINTAIN_POSITION:
            return selected

        selected.progress = min(100, selected.progress + progress_step(npc))
        if selected.is_complete:
            self._complete_goal(ctx, npc, selected)
        return selected

    def _complete_goal(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        need = GOAL_RESTORES.get(goal.goal_type)
        if need is not None:
            npc.needs.shift(need, GOAL_COMPLETION_RESTORE)
        ctx.world.arena.drop_goal(npc.id, goal)
        ctx.world.arena.remember(
            npc.id,
            NPCMemory(
                kind=f"achieved_{goal.goal_type.value}",
                description=f"Achieved {goal.goal_type.value.replace('_', ' ')}",
                turn=ctx.turn,
                significant=True,
                subject_id=goal.target_id,
            ),
            ctx.config.agents.reinforcement,
        )

        if goal.goal_type == GoalType.DESTROY_RIVAL and goal.target_id == "player":
            ctx.ledger.apply(MetricName.RIVAL_THREAT, 5, self.name)

        if self._goal_events >= MAX_GOAL_EVENTS_PER_TURN:
            return
        self._goal_events += 1
        ctx.outbox.emit(
            EventCategory.NPC,
            "npc.goal_achieved",
            f"{npc.name} has achieved a long-held aim.",
            consequences={"npc_id": npc.id, "goal": goal.goal_type.value},
            dedup_key=f"npc.goal_achieved:{npc.id}",
            source=self.name,
        )

    def _maybe_act(self, ctx: TurnContext, npc: NPC, urgency: int, goal: NPCGoal) -> None:
        agents = ctx.config.agents
        chance = action_chance(npc, urgency, agents.action_chance, agents.action_chance_cap)
        if ctx.rng.random() >= chance:
            return
        action = self._role_actions.get(npc.role)
        if action is not None:
            action(ctx, npc, goal)

    def _settle_disposition(self, ctx: TurnContext, npc: NPC) -> None:
        agents = ctx.config.agents
        if ctx.turn - npc.last_interaction_turn >= agents.neglect_turns:
            decay_disposition(npc, agents.disposition_decay)

    # ─── Role actions ────────────────────────────────────────

    def _remember(self, ctx: TurnContext, npc: NPC, kind: str, description: str,
                  subject_id: str | None = None, significant: bool = False) -> None:
        ctx.world.arena.remember(
            npc.id,
            NPCMemory(
                kind=kind,
                description=description,
                turn=ctx.turn,
                significant=significant,
                subject_id=subject_id,
            ),
            ctx.config.agents.reinforcement,
        )

    def _patron_action(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        if npc.disposition >= 60:
            applied = ctx.ledger.apply(MetricName.STANDING, 2, self.name)
            self._remember(ctx, npc, "supported_player", "Spoke up for the protégé", "player")
            ctx.outbox.emit(
                EventCategory.NPC,
                "npc.patron_support",
                f"{npc.name} puts in a good word for you.",
                consequences={"npc_id": npc.id, "standing": applied},
                dedup_key=f"npc.patron_support:{npc.id}",
                source=self.name,
            )
        elif npc.disposition < 35:
            applied = ctx.ledger.apply(MetricName.PATRON_FAVOR, -3, self.name)
            self._remember(ctx, npc, "doubted_player", "Began to doubt the protégé", "player")
            ctx.outbox.emit(
                EventCategory.NPC,
                "npc.patron_pressure",
                f"{npc.name} lets it be known that patience is running out.",
                severity=Severity.MODERATE,
                consequences={"npc_id": npc.id, "patron_favor": applied},
                dedup_key=f"npc.patron_pressure:{npc.id}",
                source=self.name,
            )

    def _rival_action(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        gain = ctx.rng.randint(2, 4)
        applied = ctx.ledger.apply(MetricName.RIVAL_THREAT, gain, self.name)
        self._remember(ctx, npc, "schemed_against", "Worked against the upstart", "player")
        patron = ctx.world.patron
        if patron is not None:
            ctx.world.shift_relationship(npc.id, patron.id, -5)
        ctx.outbox.emit(
            EventCategory.NPC,
            "npc.rival_scheme",
            f"{npc.name} is quietly building a case against you.",
            severity=Severity.MODERATE,
            consequences={"npc_id": npc.id, "rival_threat": applied},
            dedup_key=f"npc.rival_scheme:{npc.id}",
            source=self.name,
        )

    def _ally_action(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        if npc.disposition < 50:
            return
        standing = ctx.ledger.apply(MetricName.STANDING, 1, self.name)
        network = ctx.ledger.apply(MetricName.NETWORK, 1, self.name)
        self._remember(ctx, npc, "advocated_for_player", "Vouched for an ally", "player")
        ctx.outbox.emit(
            EventCategory.NPC,
            "npc.ally_advocacy",
            f"{npc.name} vouches for you in a meeting you did not attend.",
            consequences={"npc_id": npc.id, "standing": standing, "network": network},
            dedup_key=f"npc.ally_advocacy:{npc.id}",
            source=self.name,
        )

    def _subordinate_action(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        if npc.disposition >= 50:
            applied = ctx.ledger.apply(MetricName.NETWORK, 1, self.name)
            event_type = "npc.subordinate_loyal"
            summary = f"{npc.name} brings you useful gossip from below."
            consequences = {"npc_id": npc.id, "network": applied}
        else:
            applied = ctx.ledger.apply(MetricName.STANDING, -1, self.name)
            event_type = "npc.subordinate_leak"
            summary = f"Someone in your office, probably {npc.name}, is talking."
            consequences = {"npc_id": npc.id, "standing": applied}
        ctx.outbox.emit(
            EventCategory.NPC,
            event_type,
            summary,
            consequences=consequences,
            dedup_key=f"{event_type}:{npc.id}",
            source=self.name,
        )

    def _maneuver_action(self, ctx: TurnContext, npc: NPC, goal: NPCGoal) -> None:
        others = [o for o in ctx.world.living_npcs() if o.id != npc.id]
        if not others:
            return
        other = ctx.rng.choice(others)
        delta = 3 if npc.personality.loyalty >= 50 else -3
        value = ctx.world.shift_relationship(npc.id, other.id, delta)
        kind = "courted" if delta > 0 else "undermined"
        self._remember(ctx, npc, kind, f"{kind.capitalize()} {other.name}", other.id)
        ctx.outbox.emit(
            EventCategory.NPC,
            "npc.maneuver",
            f"{npc.name} has {kind} {other.name}.",
            consequences={"npc_id": npc.id, "other_id": other.id, "relationship": value},
            dedup_key=f"npc.maneuver:{npc.id}",
            source=self.name,
        )

    # ─── World-level steps ───────────────────────────────────

    def _decay_relationships(self, ctx: TurnContext) -> None:
        world = ctx.world
        decay = ctx.config.agents.relationship_decay
        for key in sorted(world.relationships):
            a, b = key.split("|")
            npc_a, npc_b = world.get_npc(a), world.get_npc(b)
            if npc_a is None or npc_b is None or not (npc_a.is_alive and npc_b.is_alive):
                del world.relationships[key]
                continue
            value = world.relationships[key]
            step = min(decay, abs(value))
            world.shift_relationship(a, b, -step if value > 0 else step)

    def _standing_pressure(self, ctx: TurnContext) -> None:
        """A living rival keeps building threat; a neglected patron cools."""
        agents = ctx.config.agents
        world = ctx.world

        if world.primary_rival is not None:
            gain = ctx.rng.randint(agents.rival_pressure_min, agents.rival_pressure_max)
            ctx.ledger.apply(MetricName.RIVAL_THREAT, gain, self.name)

        patron = world.patron
        favor = ctx.snapshot.metric(MetricName.PATRON_FAVOR)
        neglected = ctx.turn - world.career.last_patron_contact >= agents.neglect_turns
        if patron is not None and neglected and favor > agents.patron_favor_floor:
            ctx.ledger.apply(MetricName.PATRON_FAVOR, -agents.patron_favor_decay, self.name)

    def _check_fates(self, ctx: TurnContext) -> None:
        """Rare exits from the world, turned into removal requests."""
        agents = ctx.config.agents
        if ctx.turn <= agents.fate_min_turn:
            return

        rival_threat = ctx.snapshot.metric(MetricName.RIVAL_THREAT)
        stability = ctx.snapshot.metric(MetricName.STABILITY)

        for npc in ctx.world.living_npcs():
            roll = ctx.rng.random()
            if (npc.role == NPCRole.RIVAL and rival_threat < agents.rival_defeat_threat
                    and roll < agents.rival_defeat_chance):
                ctx.request_removal(npc.id, NPCStatus.PURGED, "outmaneuvered")
            elif (npc.disposition < agents.purge_disposition
                    and stability < agents.purge_stability
                    and roll < agents.purge_chance):
                ctx.request_removal(npc.id, NPCStatus.PURGED, "purged in the unrest")
            elif roll < agents.natural_exit_chance:
                fate = ctx.rng.choice((NPCStatus.RETIRED, NPCStatus.DEAD))
                ctx.request_removal(npc.id, fate, "natural causes")
