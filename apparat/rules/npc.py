"""
NPC behavior rules as pure functions.

These functions operate on NPC data without being methods on the model.
The agent subsystem composes them into a turn; keeping them separate
makes each rule testable on its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..state.memory import NPCGoal
from ..state.schema import GoalType, NeedType, NPCRole, clamp

if TYPE_CHECKING:
    from ..state.schema import NPC


NEUTRAL_DISPOSITION = 50

# Which goal answers which need
NEED_GOALS: dict[NeedType, GoalType] = {
    NeedType.SECURITY: GoalType.ENSURE_SAFETY,
    NeedType.POWER: GoalType.SEEK_PROMOTION,
    NeedType.LOYALTY: GoalType.GAIN_PATRON,
    NeedType.RECOGNITION: GoalType.BUILD_NETWORK,
    NeedType.STABILITY: GoalType.PROTECT_ALLY,
    NeedType.IDEOLOGY: GoalType.PROMOTE_IDEOLOGY,
}

# Which need a completed goal satisfies
GOAL_RESTORES: dict[GoalType, NeedType] = {
    GoalType.ENSURE_SAFETY: NeedType.SECURITY,
    GoalType.SEEK_PROMOTION: NeedType.POWER,
    GoalType.DESTROY_RIVAL: NeedType.POWER,
    GoalType.GAIN_PATRON: NeedType.LOYALTY,
    GoalType.BUILD_NETWORK: NeedType.RECOGNITION,
    GoalType.PROTECT_ALLY: NeedType.STABILITY,
    GoalType.PROMOTE_IDEOLOGY: NeedType.IDEOLOGY,
}

GOAL_ORDER: list[GoalType] = list(GoalType)


def most_urgent_need(npc: "NPC") -> tuple[NeedType, int]:
    """
    Find the lowest need axis.

    Ties go to the axis listed first in NeedType.

    Returns:
        (need, urgency) where urgency is 100 minus the need's value
    """
    need = min(NeedType, key=lambda n: (npc.needs.get(n), list(NeedType).index(n)))
    return need, 100 - npc.needs.get(need)


def need_pressure(
    npc: "NPC",
    stability: int,
    rival_threat: int,
    faction_power: int | None,
) -> dict[NeedType, int]:
    """
    How each need drifts this turn.

    Args:
        npc: The NPC whose needs erode
        stability: National stability at turn start
        rival_threat: The player's rival threat at turn start
        faction_power: Power of the NPC's faction at turn start, if any

    Returns:
        Delta per need axis (only axes that move)
    """
    deltas: dict[NeedType, int] = {}
    p = npc.personality

    security = 0
    if stability < 40:
        security -= 2
    if p.paranoia > 60:
        security -= 1
    if npc.role == NPCRole.PATRON and rival_threat > 60:
        security -= 1
    if security:
        deltas[NeedType.SECURITY] = security

    deltas[NeedType.POWER] = -2 if p.ambition > 60 else -1
    deltas[NeedType.RECOGNITION] = -1

    if faction_power is not None:
        if faction_power < 30:
            deltas[NeedType.LOYALTY] = -2
            deltas[NeedType.IDEOLOGY] = -1
        elif faction_power > 60:
            deltas[NeedType.LOYALTY] = 1

    if stability < 40:
        deltas[NeedType.STABILITY] = -2
    elif stability > 60:
        deltas[NeedType.STABILITY] = 1

    return deltas


def goal_for_need(npc: "NPC", need: NeedType, urgency: int, turn: int) -> NPCGoal:
    """
    Create the goal that answers a need.

    Ambitious rivals answer a power need by going after the player
    instead of seeking promotion.
    """
    goal_type = NEED_GOALS[need]
    target_id = None
    if need == NeedType.POWER and npc.role == NPCRole.RIVAL:
        goal_type = GoalType.DESTROY_RIVAL
        target_id = "player"
    priority = clamp(urgency + npc.personality.ambition // 5, 1, 100)
    return NPCGoal(
        goal_type=goal_type,
        priority=priority,
        created_turn=turn,
        target_id=target_id,
    )


def fallback_goal(turn: int) -> NPCGoal:
    """The goal of an NPC with nothing better to do."""
    return NPCGoal(goal_type=GoalType.MAINTAIN_POSITION, priority=1, created_turn=turn)


def select_goal(goals: list[NPCGoal]) -> NPCGoal | None:
    """
    Pick the goal to pursue this turn.

    Highest effective priority wins. Equal priority goes to the goal with
    the least progress so nothing starves, then to goal type order.
    """
    if not goals:
        return None
    return max(
        goals,
        key=lambda g: (g.effective_priority, -g.progress, -GOAL_ORDER.index(g.goal_type)),
    )


def progress_step(npc: "NPC") -> int:
    """Progress an NPC makes on its selected goal in one turn."""
    p = npc.personality
    return 5 + p.competence // 10 + p.ambition // 20


def action_chance(npc: "NPC", urgency: int, base: float, cap: float) -> float:
    """
    Probability that an NPC acts on its own this turn.

    Urgent needs and ambition make NPCs more active; rivals scale with
    ruthlessness instead of ambition.
    """
    p = npc.personality
    drive = p.ruthlessness if npc.role == NPCRole.RIVAL else p.ambition
    factor = 0.5 + drive / 100
    return min(cap, base * (1 + urgency / 100) * factor)


def apply_disposition_shift(npc: "NPC", delta: int) -> int:
    """
    Shift an NPC's disposition toward the player.

    Mutates the NPC in place and returns the new disposition.

    Args:
        npc: The NPC to modify
        delta: Points to shift (+ warmer, - colder)

    Returns:
        The new disposition, clamped to 0-100
    """
    npc.disposition = clamp(npc.disposition + delta)
    return npc.disposition


def decay_disposition(npc: "NPC", amount: int) -> int:
    """Move disposition toward neutral by up to amount. Returns the delta."""
    gap = NEUTRAL_DISPOSITION - npc.disposition
    if gap == 0:
        return 0
    step = min(amount, abs(gap)) * (1 if gap > 0 else -1)
    npc.disposition += step
    return step
