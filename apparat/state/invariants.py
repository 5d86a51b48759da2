"""
World consistency checks.

These are the fatal category of errors: if any of them fails at the end
of a turn, the turn is rejected and the caller keeps the world they had.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .schema import METRIC_MAX, METRIC_MIN, MetricName

if TYPE_CHECKING:
    from .world import World


class InvariantViolation(Exception):
    """The world reached a state that must never exist."""

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = problems or [message]
        super().__init__(message)


class SlotConflictError(InvariantViolation):
    """A compare-and-set on the vacancy table found an unexpected holder."""
    pass


def find_violations(world: "World") -> list[str]:
    """
    Check every cross-entity invariant.

    Returns a list of human-readable problems; empty means consistent.
    """
    problems: list[str] = []

    for metric in MetricName:
        value = world.metrics.get(metric)
        if not METRIC_MIN <= value <= METRIC_MAX:
            problems.append(f"Metric {metric.value}={value} outside [0, 100]")

    seen: dict[str, str] = {}
    for slot_id, slot in world.slots.slots.items():
        if slot.vacant != (slot.occupant_id is None):
            problems.append(f"Slot {slot_id} vacancy flag disagrees with occupant")
        if slot.occupant_id is None:
            continue
        if slot.occupant_id in seen:
            problems.append(
                f"{slot.occupant_id} holds both {seen[slot.occupant_id]} and {slot_id}"
            )
        seen[slot.occupant_id] = slot_id

        if slot.occupant_id == "player":
            if world.career.slot is None or world.career.slot.id != slot_id:
                problems.append(f"Slot {slot_id} held by player but career says otherwise")
            continue
        npc = world.get_npc(slot.occupant_id)
        if npc is None or not npc.is_alive:
            problems.append(f"Slot {slot_id} held by missing or removed NPC {slot.occupant_id}")
        elif npc.slot is None or npc.slot.id != slot_id:
            problems.append(f"NPC {npc.id} sits in {slot_id} but records {npc.slot}")

    for npc in world.npcs.values():
        if npc.slot is not None and world.slots.occupant(npc.slot) != npc.id:
            problems.append(f"NPC {npc.id} records slot {npc.slot} it does not hold")

    career = world.career
    if career.slot is not None and world.slots.occupant(career.slot) != "player":
        problems.append(f"Player records slot {career.slot} it does not hold")
    if not 0 <= career.position <= 8:
        problems.append(f"Career position {career.position} outside the ladder")

    offer_ids = [o.offer_id for o in world.offers]
    if len(offer_ids) != len(set(offer_ids)):
        problems.append("Duplicate offer ids")

    return problems


def check_world(world: "World") -> None:
    """Raise InvariantViolation if the world is inconsistent."""
    problems = find_violations(world)
    if problems:
        raise InvariantViolation(
            f"{len(problems)} invariant violation(s): {problems[0]}",
            problems,
        )
