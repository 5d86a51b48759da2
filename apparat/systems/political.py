"""
Political subsystem (phase 4): faction power, the player's standing
with each faction, and the delayed fallout of law changes.

A faction's stance decides which national conditions feed it. The stance
table is built once per subsystem; each entry maps the turn snapshot to
a fractional power delta.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..state.schema import Faction, FactionStance, Law, MetricName, clamp
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext, TurnSnapshot, crossed_down, crossed_up

logger = logging.getLogger(__name__)

StanceRule = Callable[[TurnSnapshot], float]

POWER_EQUILIBRIUM = 50
STANDING_NEUTRAL = 50
STANDING_BAND = 10


def _orthodox(snap: TurnSnapshot) -> float:
    stability = snap.metric(MetricName.STABILITY)
    if stability < 40:
        return 1.5
    if stability > 70:
        return -0.5
    return 0.0


def _reformist(snap: TurnSnapshot) -> float:
    return (snap.metric(MetricName.OUTPUT) - 50) / 20


def _meritocratic(snap: TurnSnapshot) -> float:
    return (snap.metric(MetricName.SUPPORT) - 50) / 20


def _aristocratic(snap: TurnSnapshot) -> float:
    return (snap.metric(MetricName.ELITE_LOYALTY) - 50) / 20


def _provincial(snap: TurnSnapshot) -> float:
    return (50 - snap.mean_region_stability()) / 15


def build_stance_table() -> dict[FactionStance, StanceRule]:
    return {
        FactionStance.ORTHODOX: _orthodox,
        FactionStance.REFORMIST: _reformist,
        FactionStance.MERITOCRATIC: _meritocratic,
        FactionStance.ARISTOCRATIC: _aristocratic,
        FactionStance.PROVINCIAL: _provincial,
    }


class PoliticalSystem:
    """Phase 4: faction drift, faction threshold events and law consequences."""
    name = "political"

    def __init__(self, stance_table: dict[FactionStance, StanceRule] | None = None):
        self._stances = stance_table or build_stance_table()

    def run(self, ctx: TurnContext) -> None:
        for faction_id in sorted(ctx.world.factions):
            faction = ctx.world.factions[faction_id]
            self._drift(ctx, faction)
            self._scan(ctx, faction)
        for law_id in sorted(ctx.world.laws):
            self._apply_due(ctx, ctx.world.laws[law_id])

    def _apply_due(self, ctx: TurnContext, law: Law) -> None:
        """Apply scheduled consequences of a law change once they fall due."""
        for consequence in law.pending_consequences():
            if not consequence.is_due(ctx.turn):
                continue
            consequence.triggered = True
            applied = ctx.ledger.apply_many(consequence.metric_effects, self.name)
            logger.info(f"Turn {ctx.turn}: {consequence.consequence_type.value} over {law.id}")
            ctx.outbox.emit(
                EventCategory.POLITICAL,
                "law.consequence",
                consequence.description or f"The {law.name} stirs trouble.",
                severity=Severity.MAJOR if consequence.magnitude >= 60 else Severity.MODERATE,
                consequences={
                    "law": law.id,
                    "type": consequence.consequence_type.value,
                    "applied": {m.value: d for m, d in applied.items()},
                },
                dedup_key=f"law.consequence:{consequence.consequence_id}",
                source=self.name,
            )

    def _drift(self, ctx: TurnContext, faction: Faction) -> None:
        pull = (POWER_EQUILIBRIUM - faction.power) / 25
        delta = ctx.quantize(self._stances[faction.stance](ctx.snapshot) + pull)
        faction.power = clamp(faction.power + delta)

        gap = STANDING_NEUTRAL - faction.player_standing
        if abs(gap) > STANDING_BAND:
            faction.player_standing += 1 if gap > 0 else -1

    def _scan(self, ctx: TurnContext, faction: Faction) -> None:
        """Emit events for thresholds crossed since turn start."""
        drift = ctx.config.drift
        before = ctx.snapshot.factions.get(faction.id)
        if before is None:
            return

        if crossed_up(before.power, faction.power, drift.faction_dominant):
            logger.info(f"Turn {ctx.turn}: {faction.name} is dominant ({faction.power})")
            ctx.outbox.emit(
                EventCategory.POLITICAL,
                "faction.dominant",
                f"The {faction.name} now dominate the Politburo.",
                severity=Severity.MAJOR,
                consequences={"faction": faction.id, "power": faction.power},
                dedup_key=f"faction.dominant:{faction.id}",
                source=self.name,
            )
        elif crossed_down(before.power, faction.power, drift.faction_collapsing):
            logger.info(f"Turn {ctx.turn}: {faction.name} is collapsing ({faction.power})")
            ctx.outbox.emit(
                EventCategory.POLITICAL,
                "faction.collapsing",
                f"The {faction.name} are losing their grip.",
                severity=Severity.MODERATE,
                consequences={"faction": faction.id, "power": faction.power},
                dedup_key=f"faction.collapsing:{faction.id}",
                source=self.name,
            )

        if faction.player_standing > drift.faction_hostile:
            faction.hostile = False
        elif not faction.hostile:
            faction.hostile = True
            logger.info(f"Turn {ctx.turn}: {faction.name} turned hostile ({faction.player_standing})")
            ctx.outbox.emit(
                EventCategory.POLITICAL,
                "faction.hostile",
                f"The {faction.name} now count you among their enemies.",
                severity=Severity.MODERATE,
                consequences={"faction": faction.id, "standing": faction.player_standing},
                dedup_key=f"faction.hostile:{faction.id}",
                source=self.name,
            )

        if faction.power >= drift.faction_dominant and faction.player_standing <= drift.faction_hostile:
            applied = ctx.ledger.apply(MetricName.ELITE_LOYALTY, -1, self.name)
            if applied:
                ctx.outbox.emit(
                    EventCategory.POLITICAL,
                    "faction.pressure",
                    f"The {faction.name} turn the elite against you.",
                    severity=Severity.MODERATE,
                    consequences={"faction": faction.id, "elite_loyalty": applied},
                    dedup_key=f"faction.pressure:{faction.id}",
                    source=self.name,
                )
