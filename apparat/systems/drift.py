"""
Metric drift and ambient events (phases 1 and 3).

Drift pulls national gauges the way a neglected country goes: very low
values keep sliding, very high values erode into complacency. Ambient
events are the small random fluctuations nobody planned.
"""

from __future__ import annotations

import logging

from ..state.schema import MetricName
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext

logger = logging.getLogger(__name__)

# Gauges that follow the spiral/complacency rule
SPIRAL_METRICS = (MetricName.STABILITY, MetricName.SUPPORT)
# Gauges that relax toward the middle when far from it
EQUILIBRIUM_METRICS = (MetricName.MILITARY_LOYALTY, MetricName.ELITE_LOYALTY)
EQUILIBRIUM = 50
EQUILIBRIUM_BAND = 25
COLLAPSE_LINE = 15
COLLAPSE_METRICS = (MetricName.STABILITY, MetricName.SUPPORT, MetricName.FOOD)


def spiral_drift(value: int) -> int:
    """
    Drift for a spiral-prone gauge.

    Below 25 it falls by 2, above 75 it falls by 1, below 35 by 1.
    """
    if value < 25:
        return -2
    if value > 75:
        return -1
    if value < 35:
        return -1
    return 0


def equilibrium_drift(value: int) -> int:
    """One step toward 50 when outside the 25-point band around it."""
    if value > EQUILIBRIUM + EQUILIBRIUM_BAND:
        return -1
    if value < EQUILIBRIUM - EQUILIBRIUM_BAND:
        return 1
    return 0


class MetricDriftSystem:
    """Phase 1: move national gauges toward their equilibria."""
    name = "metric_drift"

    def run(self, ctx: TurnContext) -> None:
        moved: dict[str, int] = {}

        for metric in SPIRAL_METRICS:
            delta = spiral_drift(ctx.snapshot.metric(metric))
            if delta:
                moved[metric.value] = ctx.ledger.apply(metric, delta, self.name)

        for metric in EQUILIBRIUM_METRICS:
            delta = equilibrium_drift(ctx.snapshot.metric(metric))
            if delta:
                moved[metric.value] = ctx.ledger.apply(metric, delta, self.name)

        if moved:
            ctx.outbox.emit(
                EventCategory.METRIC,
                "metric.drift",
                "The country drifts.",
                consequences=moved,
                dedup_key="metric.drift",
                source=self.name,
            )

        collapsing = [
            m.value for m in COLLAPSE_METRICS
            if ctx.world.metrics.get(m) < COLLAPSE_LINE
        ]
        if len(collapsing) >= 2:
            logger.info(f"Turn {ctx.turn}: national collapse warning ({collapsing})")
            ctx.outbox.emit(
                EventCategory.METRIC,
                "metric.collapse_warning",
                "Several pillars of the state are failing at once.",
                severity=Severity.CRITICAL,
                consequences={"failing": collapsing},
                dedup_key="metric.collapse_warning",
                source=self.name,
            )


class AmbientEventSystem:
    """Phase 3: small random fluctuations."""
    name = "ambient"

    def run(self, ctx: TurnContext) -> None:
        drift = ctx.config.drift
        # Both rolls always happen so the random stream stays aligned
        treasury_roll = ctx.rng.random()
        treasury_sign = ctx.rng.choice((-1, 1))
        abroad_roll = ctx.rng.random()
        abroad_sign = ctx.rng.choice((-1, 1))

        if treasury_roll < drift.ambient_treasury_chance:
            applied = ctx.ledger.apply(
                MetricName.TREASURY,
                treasury_sign * drift.ambient_treasury_delta,
                self.name,
            )
            summary = "An unexpected windfall reaches the treasury." if treasury_sign > 0 \
                else "Unplanned expenses drain the treasury."
            ctx.outbox.emit(
                EventCategory.AMBIENT,
                "ambient.treasury",
                summary,
                consequences={"treasury": applied},
                dedup_key="ambient.treasury",
                source=self.name,
            )

        if abroad_roll < drift.ambient_abroad_chance:
            applied = ctx.ledger.apply(
                MetricName.STANDING_ABROAD,
                abroad_sign * drift.ambient_abroad_delta,
                self.name,
            )
            summary = "Foreign press coverage is favorable." if abroad_sign > 0 \
                else "An embarrassing incident abroad makes the papers."
            ctx.outbox.emit(
                EventCategory.AMBIENT,
                "ambient.standing_abroad",
                summary,
                consequences={"standing_abroad": applied},
                dedup_key="ambient.standing_abroad",
                source=self.name,
            )
