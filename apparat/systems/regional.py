"""
Regional subsystem (phase 6): provincial stability and secession.

Regions read the economy only through the turn snapshot. The economic
subsystem runs after this one, so a region reacts to the output the
country had when the turn began.
"""

from __future__ import annotations

import logging

from ..config import DriftConfig
from ..state.schema import METRIC_MAX, MetricName, Region, RegionStatus, clamp
from ..state.schemas.event import EventCategory, Severity
from .base import TurnContext, crossed_up

logger = logging.getLogger(__name__)

STATUS_ORDER: list[RegionStatus] = [
    RegionStatus.STABLE,
    RegionStatus.UNREST,
    RegionStatus.CRISIS,
    RegionStatus.REBELLION,
]

SECESSION_STABILITY_PENALTY = -5


def status_for(instability: int, drift: DriftConfig) -> RegionStatus:
    """The status a region's instability points to."""
    if instability >= drift.rebellion_instability:
        return RegionStatus.REBELLION
    if instability >= drift.crisis_instability:
        return RegionStatus.CRISIS
    if instability >= drift.unrest_instability:
        return RegionStatus.UNREST
    return RegionStatus.STABLE


def next_status(current: RegionStatus, target: RegionStatus) -> RegionStatus:
    """Move one step from current toward target."""
    i, j = STATUS_ORDER.index(current), STATUS_ORDER.index(target)
    if j > i:
        return STATUS_ORDER[i + 1]
    if j < i:
        return STATUS_ORDER[i - 1]
    return current


class RegionalSystem:
    """Phase 6: regional drift, status changes and secession."""
    name = "regional"

    def run(self, ctx: TurnContext) -> None:
        for region_id in sorted(ctx.world.regions):
            region = ctx.world.regions[region_id]
            if region.status == RegionStatus.SECEDED:
                continue
            self._drift(ctx, region)
            if not self._check_secession(ctx, region):
                self._advance_status(ctx, region)

    def _drift(self, ctx: TurnContext, region: Region) -> None:
        if region.loyalty < 40 and region.party_control < 40:
            region.stability = clamp(region.stability - 2)
        elif region.loyalty > 60 and region.party_control > 60:
            region.stability = clamp(region.stability + 1)

        output = ctx.snapshot.metric(MetricName.OUTPUT)
        if output < 35:
            region.loyalty = clamp(region.loyalty - 1)
        elif output > 65:
            region.loyalty = clamp(region.loyalty + 1)

        if region.stability < 30 and region.loyalty < 40:
            region.secession_progress = clamp(region.secession_progress + 3)
        elif region.stability > 60:
            region.secession_progress = clamp(region.secession_progress - 1)

    def _check_secession(self, ctx: TurnContext, region: Region) -> bool:
        """Emit secession events. Returns True if the region is gone."""
        before = ctx.snapshot.regions.get(region.id)
        if before is not None and crossed_up(
            before.secession_progress,
            region.secession_progress,
            ctx.config.drift.secession_crisis + 1,
        ):
            ctx.outbox.emit(
                EventCategory.REGIONAL,
                "region.secession_crisis",
                f"Separatists in {region.name} are openly organizing.",
                severity=Severity.MAJOR,
                consequences={"region": region.id, "progress": region.secession_progress},
                dedup_key=f"region.secession_crisis:{region.id}",
                source=self.name,
            )

        if region.secession_progress < METRIC_MAX:
            return False

        region.status = RegionStatus.SECEDED
        region.turns_in_status = 0
        applied = ctx.ledger.apply(MetricName.STABILITY, SECESSION_STABILITY_PENALTY, self.name)
        logger.info(f"Turn {ctx.turn}: {region.name} has seceded")
        ctx.outbox.emit(
            EventCategory.REGIONAL,
            "region.seceded",
            f"{region.name} has declared independence.",
            severity=Severity.CRITICAL,
            consequences={"region": region.id, "stability": applied},
            dedup_key=f"region.seceded:{region.id}",
            source=self.name,
        )
        return True

    def _advance_status(self, ctx: TurnContext, region: Region) -> None:
        target = status_for(region.instability, ctx.config.drift)
        new_status = next_status(region.status, target)
        if new_status == region.status:
            region.turns_in_status += 1
            return

        old_status = region.status
        region.status = new_status
        region.turns_in_status = 0
        worse = STATUS_ORDER.index(new_status) > STATUS_ORDER.index(old_status)
        severity = Severity.MINOR
        if worse:
            severity = Severity.MAJOR if new_status == RegionStatus.REBELLION else Severity.MODERATE
        ctx.outbox.emit(
            EventCategory.REGIONAL,
            "region.status_changed",
            f"{region.name}: {old_status.value} → {new_status.value}.",
            severity=severity,
            consequences={"region": region.id, "from": old_status.value, "to": new_status.value},
            dedup_key=f"region.status_changed:{region.id}",
            source=self.name,
        )
