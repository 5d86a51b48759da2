"""
International subsystem (phase 5): relations with foreign countries.

Relationships settle toward what the bloc would expect unless a treaty
holds them up. Tension with rivals and adversaries climbs while the
country looks unstable. Trade treaties pay into the treasury, which is
the international → economy link: economy runs later in the turn and
sees the money already booked.
"""

from __future__ import annotations

import logging

from ..state.schema import Bloc, ForeignCountry, MetricName, TreatyKind, clamp
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext, crossed_down, crossed_up

logger = logging.getLogger(__name__)

# Relationship each bloc settles toward without active diplomacy
BLOC_TARGETS: dict[Bloc, int] = {
    Bloc.ALLIED: 50,
    Bloc.NON_ALIGNED: 0,
    Bloc.RIVAL: -30,
    Bloc.ADVERSARY: -60,
}

# Tension each bloc relaxes toward
BLOC_BASELINE_TENSION: dict[Bloc, int] = {
    Bloc.ALLIED: 5,
    Bloc.NON_ALIGNED: 10,
    Bloc.RIVAL: 25,
    Bloc.ADVERSARY: 40,
}

HOSTILE_BLOCS = frozenset({Bloc.RIVAL, Bloc.ADVERSARY})


def step_toward(value: int, target: int, step: int = 1) -> int:
    if value < target:
        return min(target, value + step)
    if value > target:
        return max(target, value - step)
    return value


class InternationalSystem:
    """Phase 5: foreign relations drift, treaties and crises."""
    name = "international"

    def run(self, ctx: TurnContext) -> None:
        for country_id in sorted(ctx.world.countries):
            country = ctx.world.countries[country_id]
            self._expire_treaties(ctx, country)
            self._drift(ctx, country)
            self._book_trade(ctx, country)
            self._scan(ctx, country)
        self._update_standing_abroad(ctx)

    def _expire_treaties(self, ctx: TurnContext, country: ForeignCountry) -> None:
        expired = [t for t in country.treaties if not t.is_active(ctx.turn)]
        for treaty in expired:
            country.treaties.remove(treaty)
            ctx.outbox.emit(
                EventCategory.INTERNATIONAL,
                "international.treaty_expired",
                f"The {treaty.kind.value.replace('_', ' ')} treaty with {country.name} has lapsed.",
                consequences={"country": country.id, "treaty": treaty.kind.value},
                dedup_key=f"international.treaty_expired:{country.id}:{treaty.kind.value}",
                source=self.name,
            )

    def _drift(self, ctx: TurnContext, country: ForeignCountry) -> None:
        drift = ctx.config.drift

        if country.active_treaties(ctx.turn):
            country.relationship = clamp(country.relationship + 1, -100, 100)
        else:
            country.relationship = step_toward(country.relationship, BLOC_TARGETS[country.bloc])

        stability = ctx.snapshot.metric(MetricName.STABILITY)
        if stability < drift.unstable_threshold and country.bloc in HOSTILE_BLOCS:
            country.tension = clamp(country.tension + drift.unstable_tension_rise)
        else:
            country.tension = step_toward(country.tension, BLOC_BASELINE_TENSION[country.bloc])

        if country.relationship <= drift.hostile_relationship:
            country.tension = clamp(country.tension + 1)

    def _book_trade(self, ctx: TurnContext, country: ForeignCountry) -> None:
        trade = [t for t in country.active_treaties(ctx.turn) if t.kind == TreatyKind.TRADE]
        if trade:
            ctx.ledger.apply(
                MetricName.TREASURY,
                ctx.config.economy.trade_treaty_treasury * len(trade),
                self.name,
            )

    def _scan(self, ctx: TurnContext, country: ForeignCountry) -> None:
        drift = ctx.config.drift
        before = ctx.snapshot.countries.get(country.id)
        if before is None:
            return

        if crossed_up(before.tension, country.tension, drift.tension_crisis + 1):
            logger.info(f"Turn {ctx.turn}: crisis with {country.name} ({country.tension})")
            ctx.outbox.emit(
                EventCategory.INTERNATIONAL,
                "international.crisis",
                f"Tension with {country.name} has reached crisis point.",
                severity=Severity.MAJOR,
                consequences={"country": country.id, "tension": country.tension},
                dedup_key=f"international.crisis:{country.id}",
                source=self.name,
            )

        if crossed_down(before.relationship, country.relationship, drift.hostile_relationship):
            ctx.outbox.emit(
                EventCategory.INTERNATIONAL,
                "international.hostile",
                f"Relations with {country.name} have turned openly hostile.",
                severity=Severity.MODERATE,
                consequences={"country": country.id, "relationship": country.relationship},
                dedup_key=f"international.hostile:{country.id}",
                source=self.name,
            )

    def _update_standing_abroad(self, ctx: TurnContext) -> None:
        """Standing abroad follows the mean relationship, one point a turn."""
        countries = ctx.world.countries
        if not countries:
            return
        mean = sum(c.relationship for c in countries.values()) / len(countries)
        target = 50 + int(mean / 2)
        current = ctx.snapshot.metric(MetricName.STANDING_ABROAD)
        if abs(target - current) > 5:
            ctx.ledger.apply(
                MetricName.STANDING_ABROAD,
                1 if target > current else -1,
                self.name,
            )
