"""
Tests for the drift subsystems: metric drift, ambient events, factions,
foreign relations, regions and the economy.

Each subsystem runs against a hand-built turn context so thresholds can
be set up exactly.
"""

import random

from apparat.config import BalanceConfig
from apparat.state.metrics import MetricLedger
from apparat.state.schema import (
    ConsequenceType,
    FactionStance,
    LawState,
    MetricName,
    RegionStatus,
    ScheduledConsequence,
    Treaty,
    TreatyKind,
)
from apparat.systems.base import EventOutbox, TurnContext, TurnSnapshot, crossed_down, crossed_up
from apparat.systems.drift import (
    AmbientEventSystem,
    MetricDriftSystem,
    equilibrium_drift,
    spiral_drift,
)
from apparat.systems.economy import EconomySystem
from apparat.systems.international import InternationalSystem
from apparat.systems.political import PoliticalSystem
from apparat.systems.regional import RegionalSystem, next_status, status_for


def make_ctx(world, seed=1, config=None):
    return TurnContext(
        world=world,
        snapshot=TurnSnapshot.capture(world),
        rng=random.Random(seed),
        ledger=MetricLedger(world.metrics),
        outbox=EventOutbox(world.turn),
        config=config or BalanceConfig(),
    )


def event_types(ctx):
    return [e.event_type for e in ctx.outbox.events]


class TestThresholdHelpers:
    """Test crossing detection."""

    def test_crossed_up(self):
        assert crossed_up(79, 80, 80)
        assert not crossed_up(80, 85, 80)
        assert not crossed_up(70, 79, 80)

    def test_crossed_down(self):
        assert crossed_down(16, 15, 15)
        assert not crossed_down(15, 10, 15)


class TestMetricDrift:
    """Test equilibrium drift of national gauges."""

    def test_spiral(self):
        """Low values keep falling; very high values erode."""
        assert spiral_drift(20) == -2
        assert spiral_drift(30) == -1
        assert spiral_drift(50) == 0
        assert spiral_drift(80) == -1

    def test_equilibrium(self):
        assert equilibrium_drift(80) == -1
        assert equilibrium_drift(20) == 1
        assert equilibrium_drift(60) == 0

    def test_applies_drift(self, world):
        world.metrics.stability = 80
        world.metrics.elite_loyalty = 10
        ctx = make_ctx(world)

        MetricDriftSystem().run(ctx)

        assert world.metrics.stability == 79
        assert world.metrics.elite_loyalty == 11
        assert "metric.drift" in event_types(ctx)

    def test_collapse_warning(self, world):
        """Two or more failing pillars raise a critical warning."""
        world.metrics.stability = 10
        world.metrics.support = 10
        world.metrics.food = 10
        ctx = make_ctx(world)

        MetricDriftSystem().run(ctx)

        assert "metric.collapse_warning" in event_types(ctx)

    def test_drift_never_leaves_bounds(self, world):
        world.metrics.stability = 1
        MetricDriftSystem().run(make_ctx(world))
        assert world.metrics.stability == 0


class TestAmbientEvents:
    """Test random minor fluctuations."""

    def test_always_draws_four_numbers(self, world):
        """The random stream advances the same way whether or not events fire."""
        ctx = make_ctx(world, seed=5)
        AmbientEventSystem().run(ctx)

        reference = random.Random(5)
        reference.random()
        reference.choice((-1, 1))
        reference.random()
        reference.choice((-1, 1))

        assert ctx.rng.random() == reference.random()

    def test_certain_events_fire(self, world):
        config = BalanceConfig()
        config.drift.ambient_treasury_chance = 1.0
        config.drift.ambient_abroad_chance = 1.0
        ctx = make_ctx(world, config=config)

        AmbientEventSystem().run(ctx)

        assert event_types(ctx) == ["ambient.treasury", "ambient.standing_abroad"]
        assert abs(world.metrics.treasury - 50) == 5


class TestPoliticalSystem:
    """Test faction drift and threshold events."""

    def _flat_table(self, value):
        return {stance: (lambda snap, v=value: v) for stance in FactionStance}

    def test_dominance_event(self, world):
        """A faction crossing 80 power becomes dominant."""
        world.factions["old_guard"].power = 79
        ctx = make_ctx(world)

        PoliticalSystem(stance_table=self._flat_table(5.0)).run(ctx)

        assert world.factions["old_guard"].power == 83
        assert "faction.dominant" in event_types(ctx)

    def test_collapse_event(self, world):
        world.factions["provincial_bloc"].power = 16
        ctx = make_ctx(world)

        PoliticalSystem(stance_table=self._flat_table(-5.0)).run(ctx)

        assert world.factions["provincial_bloc"].power == 12
        assert "faction.collapsing" in event_types(ctx)

    def test_power_pulls_toward_middle(self, world):
        """With no stance push, power relaxes toward 50."""
        world.factions["reformists"].power = 90
        PoliticalSystem(stance_table=self._flat_table(0.0)).run(make_ctx(world))
        assert world.factions["reformists"].power == 88

    def test_hostile_dominant_faction_costs_elite_loyalty(self, world):
        world.factions["old_guard"].power = 90
        world.factions["old_guard"].player_standing = 10
        ctx = make_ctx(world)

        PoliticalSystem().run(ctx)

        assert "faction.pressure" in event_types(ctx)
        assert world.metrics.elite_loyalty == 49

    def test_hostile_once_per_slide(self, world):
        """A faction turns hostile once, and again only after recovering."""
        old_guard = world.factions["old_guard"]
        old_guard.player_standing = 15
        ctx = make_ctx(world)

        PoliticalSystem().run(ctx)

        assert "faction.hostile" in event_types(ctx)
        assert old_guard.hostile

        ctx = make_ctx(world)
        PoliticalSystem().run(ctx)
        assert "faction.hostile" not in event_types(ctx)

        old_guard.player_standing = 30
        PoliticalSystem().run(make_ctx(world))
        assert not old_guard.hostile

    def test_orthodox_thrives_on_instability(self, world):
        """The default table feeds the old guard when stability is low."""
        world.metrics.stability = 30
        world.factions["old_guard"].power = 50

        PoliticalSystem().run(make_ctx(world))

        assert world.factions["old_guard"].power == 52


class TestInternationalSystem:
    """Test foreign relations."""

    def test_treaty_lifts_relationship(self, world):
        InternationalSystem().run(make_ctx(world))
        assert world.countries["fraternal_republic"].relationship == 46

    def test_relationship_settles_toward_bloc(self, world):
        InternationalSystem().run(make_ctx(world))
        assert world.countries["southern_union"].relationship == 4

    def test_trade_treaty_pays(self, world):
        InternationalSystem().run(make_ctx(world))
        assert world.metrics.treasury == 52

    def test_tension_crisis(self, world):
        """Instability at home pushes adversary tension over 80."""
        world.metrics.stability = 30
        world.countries["western_alliance"].tension = 80
        ctx = make_ctx(world)

        InternationalSystem().run(ctx)

        assert world.countries["western_alliance"].tension == 82
        assert "international.crisis" in event_types(ctx)

    def test_relations_turn_hostile(self, world):
        world.countries["western_alliance"].relationship = -59
        ctx = make_ctx(world)

        InternationalSystem().run(ctx)

        assert world.countries["western_alliance"].relationship == -60
        assert "international.hostile" in event_types(ctx)

    def test_treaty_expires(self, world):
        world.countries["southern_union"].treaties.append(
            Treaty(kind=TreatyKind.TRADE, expires_turn=world.turn)
        )
        ctx = make_ctx(world)

        InternationalSystem().run(ctx)

        assert world.countries["southern_union"].treaties == []
        assert "international.treaty_expired" in event_types(ctx)


class TestRegionalSystem:
    """Test regional status and secession."""

    def test_status_for(self, config):
        drift = config.drift
        assert status_for(10, drift) == RegionStatus.STABLE
        assert status_for(45, drift) == RegionStatus.UNREST
        assert status_for(65, drift) == RegionStatus.CRISIS
        assert status_for(85, drift) == RegionStatus.REBELLION

    def test_status_moves_one_step(self):
        assert next_status(RegionStatus.STABLE, RegionStatus.REBELLION) == RegionStatus.UNREST
        assert next_status(RegionStatus.CRISIS, RegionStatus.STABLE) == RegionStatus.UNREST
        assert next_status(RegionStatus.UNREST, RegionStatus.UNREST) == RegionStatus.UNREST

    def test_unstable_region_slides(self, world):
        region = world.regions["highlands"]
        region.stability = 15
        ctx = make_ctx(world)

        RegionalSystem().run(ctx)

        assert region.status == RegionStatus.UNREST
        assert "region.status_changed" in event_types(ctx)

    def test_secession_crisis_over_fifty(self, world):
        region = world.regions["eastern_marches"]
        region.stability = 20
        region.loyalty = 30
        region.secession_progress = 49
        ctx = make_ctx(world)

        RegionalSystem().run(ctx)

        assert region.secession_progress == 52
        assert "region.secession_crisis" in event_types(ctx)

    def test_secession(self, world):
        """At full progress the region leaves and national stability suffers."""
        region = world.regions["highlands"]
        region.stability = 20
        region.loyalty = 30
        region.secession_progress = 98
        ctx = make_ctx(world)

        RegionalSystem().run(ctx)

        assert region.status == RegionStatus.SECEDED
        assert world.metrics.stability == 50
        assert "region.seceded" in event_types(ctx)

    def test_seceded_region_frozen(self, world):
        region = world.regions["highlands"]
        region.status = RegionStatus.SECEDED
        region.stability = 10
        RegionalSystem().run(make_ctx(world))
        assert region.stability == 10

    def test_reads_output_from_snapshot(self, world):
        """Loyalty reacts to output as it stood at turn start."""
        world.metrics.output = 20
        ctx = make_ctx(world)
        world.metrics.output = 90

        RegionalSystem().run(ctx)

        assert world.regions["capital"].loyalty == 74


class TestEconomySystem:
    """Test economic drift and crises."""

    def test_fiscal_crisis(self, world):
        world.metrics.treasury = 15
        ctx = make_ctx(world)

        EconomySystem().run(ctx)

        assert world.metrics.treasury == 14
        assert "economy.fiscal_crisis" in event_types(ctx)
        assert world.economy.last_crisis_turn == world.turn

    def test_food_shortage(self, world):
        world.metrics.food = 20
        world.metrics.output = 20
        ctx = make_ctx(world)

        EconomySystem().run(ctx)

        assert world.metrics.food == 18
        assert "economy.food_shortage" in event_types(ctx)

    def test_sees_trade_income_booked_earlier(self, world):
        """Economy runs after international and works from the booked treasury."""
        world.metrics.treasury = 16
        ctx = make_ctx(world)

        InternationalSystem().run(ctx)
        EconomySystem().run(ctx)

        assert world.metrics.treasury == 17
        assert "economy.fiscal_crisis" not in event_types(ctx)

    def test_inflation_spike(self, world):
        """An empty treasury pushes inflation past 15."""
        world.economy.inflation = 15
        world.metrics.treasury = 20
        ctx = make_ctx(world)

        EconomySystem().run(ctx)

        assert world.economy.inflation == 16
        assert "economy.inflation_spike" in event_types(ctx)

    def test_no_spike_below_threshold(self, world):
        world.economy.inflation = 10
        world.metrics.treasury = 20
        ctx = make_ctx(world)

        EconomySystem().run(ctx)

        assert world.economy.inflation == 11
        assert "economy.inflation_spike" not in event_types(ctx)


class TestLawConsequences:
    """Test scheduled fallout of law changes."""

    def _schedule(self, world, trigger_turn):
        law = world.laws["press_control"]
        law.modify(LawState.ABOLISHED, world.turn)
        law.consequences.append(ScheduledConsequence(
            consequence_id="press_control-1",
            trigger_turn=trigger_turn,
            consequence_type=ConsequenceType.ELITE_BACKLASH,
            magnitude=60,
            law_id=law.id,
            metric_effects={MetricName.ELITE_LOYALTY: -3},
        ))
        return law

    def test_default_world_has_laws(self, world):
        assert "press_control" in world.laws
        assert all(not law.has_been_modified for law in world.laws.values())

    def test_not_applied_early(self, world):
        law = self._schedule(world, world.turn + 1)
        ctx = make_ctx(world)

        PoliticalSystem().run(ctx)

        assert "law.consequence" not in event_types(ctx)
        assert law.pending_consequences()

    def test_applied_once_through_ledger(self, world):
        law = self._schedule(world, world.turn)
        ctx = make_ctx(world)

        PoliticalSystem().run(ctx)

        assert "law.consequence" in event_types(ctx)
        assert law.pending_consequences() == []
        assert ctx.ledger.changes_from("political")[-1].metric == MetricName.ELITE_LOYALTY
        assert world.metrics.elite_loyalty == 47

        ctx = make_ctx(world)
        PoliticalSystem().run(ctx)
        assert "law.consequence" not in event_types(ctx)
