"""
Economic subsystem (phase 8): treasury, output, food, GDP and inflation.

Runs after the international subsystem, so treasury movements booked by
trade treaties this turn are already in the gauges it reads. Regions and
stability come from the turn snapshot.
"""

from __future__ import annotations

import logging

from ..state.schema import MetricName, clamp
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext, crossed_down, crossed_up

logger = logging.getLogger(__name__)

GDP_MAX = 200


class EconomySystem:
    """Phase 8: economic drift and crisis events."""
    name = "economy"

    def run(self, ctx: TurnContext) -> None:
        self._drift(ctx)
        self._scan(ctx)

    def _drift(self, ctx: TurnContext) -> None:
        snap = ctx.snapshot
        econ = ctx.world.economy
        cfg = ctx.config.economy

        output = snap.metric(MetricName.OUTPUT)
        stability = snap.metric(MetricName.STABILITY)

        treasury_delta = (output - 50) / 10 - cfg.expenditure
        if econ.inflation > 10:
            treasury_delta -= 1
        ctx.ledger.apply(MetricName.TREASURY, ctx.quantize(treasury_delta), self.name)

        output_delta = (stability - 50) / 20 + (econ.gdp_index - 100) / 50
        ctx.ledger.apply(MetricName.OUTPUT, ctx.quantize(output_delta), self.name)

        food_delta = (output - 50) / 15 + (snap.mean_region_stability() - 50) / 20
        ctx.ledger.apply(MetricName.FOOD, ctx.quantize(food_delta), self.name)

        econ.gdp_index = clamp(econ.gdp_index + ctx.quantize((output - 50) / 10), 0, GDP_MAX)

        treasury = ctx.world.metrics.treasury
        if treasury < 25:
            econ.inflation = clamp(econ.inflation + 1)
        elif treasury > 60 and econ.inflation > 0:
            econ.inflation -= 1

    def _scan(self, ctx: TurnContext) -> None:
        cfg = ctx.config.economy
        snap = ctx.snapshot
        metrics = ctx.world.metrics
        econ = ctx.world.economy

        if crossed_down(snap.metric(MetricName.TREASURY), metrics.treasury, cfg.fiscal_crisis - 1):
            econ.last_crisis_turn = ctx.turn
            logger.info(f"Turn {ctx.turn}: fiscal crisis (treasury {metrics.treasury})")
            ctx.outbox.emit(
                EventCategory.ECONOMIC,
                "economy.fiscal_crisis",
                "The treasury can no longer meet its obligations.",
                severity=Severity.MAJOR,
                consequences={"treasury": metrics.treasury},
                dedup_key="economy.fiscal_crisis",
                source=self.name,
            )

        if crossed_down(snap.metric(MetricName.FOOD), metrics.food, cfg.food_shortage - 1):
            econ.last_crisis_turn = ctx.turn
            ctx.outbox.emit(
                EventCategory.ECONOMIC,
                "economy.food_shortage",
                "Queues outside the bread shops grow longer every day.",
                severity=Severity.MAJOR,
                consequences={"food": metrics.food},
                dedup_key="economy.food_shortage",
                source=self.name,
            )

        if crossed_up(snap.economy.inflation, econ.inflation, cfg.inflation_spike + 1):
            ctx.outbox.emit(
                EventCategory.ECONOMIC,
                "economy.inflation_spike",
                "Prices are climbing faster than wages.",
                severity=Severity.MODERATE,
                consequences={"inflation": econ.inflation},
                dedup_key="economy.inflation_spike",
                source=self.name,
            )
