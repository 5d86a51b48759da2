"""
Tests for career progression.

Covers promotion eligibility, the offer lifecycle, track commitment and
the failure states (demotion and removal).
"""

from apparat.config import BalanceConfig
from apparat.engine import (
    advance_turn,
    choose_track,
    evaluate_promotion,
    remove_npc,
    resolve_offer,
    transfer_track,
)
from apparat.state.invariants import find_violations
from apparat.state.metrics import MetricLedger
from apparat.state.schema import (
    NPC,
    CareerStatus,
    NPCStatus,
    OfferStatus,
    OfferType,
    PositionOffer,
    SlotKey,
    Track,
    TrackCommitment,
)
from apparat.state.schemas.action import RefusalReason
from apparat.state.slots import PLAYER_ID
from apparat.systems.base import EventOutbox
from apparat.systems.career import (
    dominant_track,
    expire_offers,
    fill_stale_vacancies,
    generate_offer,
    present_offers,
)

from conftest import seat_player

ECONOMIC_3 = SlotKey(track=Track.ECONOMIC, index=3)
ECONOMIC_4 = SlotKey(track=Track.ECONOMIC, index=4)


class TestEvaluatePromotion:
    """Test promotion eligibility gates."""

    def test_scenario_a_eligible(self, scenario_a):
        """Rank 3 economic, standing 65, favor 70, 8 turns in: eligible for economic:4."""
        check = evaluate_promotion(scenario_a)

        assert check.eligible
        assert check.target_slot == ECONOMIC_4
        assert check.target_position == 4
        assert check.reason is None
        assert check.unmet == []

    def test_scenario_b_rival_blocks(self, scenario_a):
        """Same as A with rival threat 85: blocked by the rival."""
        scenario_a.metrics.rival_threat = 85

        check = evaluate_promotion(scenario_a)

        assert not check.eligible
        assert check.reason == RefusalReason.RIVAL_THREAT_BLOCKED
        assert check.reason.value == "rival_threat_blocked"

    def test_rival_gate_at_ceiling(self, scenario_a):
        """A threat of exactly 80 already blocks."""
        scenario_a.metrics.rival_threat = 80
        assert evaluate_promotion(scenario_a).reason == RefusalReason.RIVAL_THREAT_BLOCKED

    def test_rival_gate_ignores_everything_else(self, scenario_a):
        """Perfect scores elsewhere do not get past a high rival threat."""
        scenario_a.metrics.rival_threat = 95
        scenario_a.metrics.standing = 100
        scenario_a.metrics.patron_favor = 100
        scenario_a.career.turns_in_position = 50

        assert not evaluate_promotion(scenario_a).eligible

    def test_insufficient_tenure(self, scenario_a):
        scenario_a.career.turns_in_position = 5
        assert evaluate_promotion(scenario_a).reason == RefusalReason.INSUFFICIENT_TENURE

    def test_insufficient_standing(self, scenario_a):
        """Rank 4 needs standing 40."""
        scenario_a.metrics.standing = 39
        check = evaluate_promotion(scenario_a)

        assert check.reason == RefusalReason.INSUFFICIENT_STANDING
        assert [r.label for r in check.unmet] == ["Standing"]

    def test_senior_ranks_need_patron_favor(self, world):
        """Rank 5 and up require patron favor."""
        seat_player(world, SlotKey(track=Track.ECONOMIC, index=4))
        world.career.turns_in_position = 6
        world.metrics.standing = 60
        world.metrics.patron_favor = 39

        check = evaluate_promotion(world)

        assert check.reason == RefusalReason.INSUFFICIENT_PATRON_FAVOR

    def test_no_track_below_branch(self, world):
        """At rank 1 with no track there is no rank 2 chair to aim for."""
        seat_player(world, SlotKey(track=Track.SHARED, index=1))
        world.career.turns_in_position = 6

        check = evaluate_promotion(world)

        assert check.reason == RefusalReason.NO_TRACK
        assert check.target_slot is None

    def test_occupied_target_is_no_vacancy(self, world):
        """Duval holds state:5, so a state:4 player cannot rise."""
        seat_player(world, SlotKey(track=Track.STATE, index=4))
        world.career.turns_in_position = 6
        world.metrics.standing = 65
        world.metrics.patron_favor = 70

        check = evaluate_promotion(world)

        assert check.reason == RefusalReason.NO_VACANCY
        assert check.target_slot == SlotKey(track=Track.STATE, index=5)

    def test_vacancy_after_removal(self, world):
        """Removing the holder of the target chair opens the way."""
        seat_player(world, SlotKey(track=Track.STATE, index=4))
        world.career.turns_in_position = 6
        world.metrics.standing = 65
        world.metrics.patron_favor = 70

        world = remove_npc(world, "duval", NPCStatus.RETIRED).world

        assert evaluate_promotion(world).eligible

    def test_top_ranks_transcend_track(self, world):
        """From economic:6 the next chair is shared:7."""
        world = remove_npc(world, "volkov", NPCStatus.RETIRED).world
        seat_player(world, SlotKey(track=Track.ECONOMIC, index=6))
        world.career.turns_in_position = 6
        world.metrics.standing = 70
        world.metrics.patron_favor = 60

        check = evaluate_promotion(world)

        assert check.eligible
        assert check.target_slot == SlotKey(track=Track.SHARED, index=7)

    def test_apex_refused(self, world):
        seat_player(world, SlotKey(track=Track.SHARED, index=8))
        assert evaluate_promotion(world).reason == RefusalReason.AT_APEX

    def test_does_not_mutate(self, scenario_a):
        """Evaluating is read-only."""
        dumped = scenario_a.model_dump()
        evaluate_promotion(scenario_a)
        assert scenario_a.model_dump() == dumped

    def test_reports_every_gate(self, scenario_a):
        """Requirements list every gate, met or not."""
        check = evaluate_promotion(scenario_a)
        assert len(check.requirements) == 6


class TestOfferGeneration:
    """Test offer creation and presentation."""

    def test_offer_for_eligible_player(self, scenario_a, config):
        offer = generate_offer(scenario_a, config, scenario_a.turn)

        assert offer is not None
        assert offer.slot == ECONOMIC_4
        assert offer.status == OfferStatus.PENDING
        assert offer.expiry_turn == scenario_a.turn + config.career.offer_lifetime
        assert offer.patron_id == "volkov"

    def test_no_offer_when_ineligible(self, world, config):
        assert generate_offer(world, config, world.turn) is None

    def test_no_duplicate_offer(self, scenario_a, config):
        """One open offer per slot."""
        generate_offer(scenario_a, config, scenario_a.turn)
        assert generate_offer(scenario_a, config, scenario_a.turn) is None
        assert len(scenario_a.offers) == 1

    def test_offer_types(self, scenario_a, config):
        """Patron favor 70 makes a patronage offer; affinity makes it merit."""
        assert generate_offer(scenario_a, config, 1).offer_type == OfferType.PATRONAGE

        scenario_a.offers.clear()
        scenario_a.career.affinities[Track.ECONOMIC] = 30
        assert generate_offer(scenario_a, config, 1).offer_type == OfferType.MERIT

        scenario_a.offers.clear()
        scenario_a.metrics.stability = 20
        assert generate_offer(scenario_a, config, 1).offer_type == OfferType.EMERGENCY

    def test_presented_exactly_once(self, scenario_a, config):
        """A second presentation pass emits nothing."""
        offer = generate_offer(scenario_a, config, scenario_a.turn)
        outbox = EventOutbox(scenario_a.turn)

        first = present_offers(scenario_a, outbox)
        second = present_offers(scenario_a, outbox)

        assert first == [offer]
        assert second == []
        assert offer.has_been_presented
        assert offer.status == OfferStatus.PRESENTED
        assert len(outbox) == 1

    def test_turn_presents_offer_once(self, scenario_a):
        """Advancing twice yields one presentation event in total."""
        first = advance_turn(scenario_a)
        second = advance_turn(first.world)

        assert len(first.events_of_type("career.offer_presented")) == 1
        assert second.events_of_type("career.offer_presented") == []
        assert len(second.world.open_offers()) == 1


class TestOfferResolution:
    """Test accepting, declining and expiring offers."""

    def _offer(self, world, config):
        return generate_offer(world, config, world.turn)

    def test_accept_promotes(self, scenario_a, config):
        """Accepting moves the player up exactly one rank into the slot."""
        offer = self._offer(scenario_a, config)

        outcome = resolve_offer(scenario_a, offer.offer_id, "accept")
        world = outcome.world

        assert outcome.ok
        assert world.career.position == 4
        assert world.career.slot == ECONOMIC_4
        assert world.slots.occupant(ECONOMIC_4) == PLAYER_ID
        assert world.slots.is_vacant(ECONOMIC_3)
        assert world.career.turns_in_position == 0
        assert world.get_offer(offer.offer_id).status == OfferStatus.ACCEPTED
        assert find_violations(world) == []

    def test_accept_effects(self, scenario_a, config):
        """Promotion raises standing, favor and the rival's attention."""
        offer = self._offer(scenario_a, config)

        world = resolve_offer(scenario_a, offer.offer_id, "accept").world

        assert world.metrics.standing == 70
        assert world.metrics.patron_favor == 80
        assert world.metrics.rival_threat == 50
        assert world.career.affinity(Track.ECONOMIC) == 10
        assert world.career.history[-1].reason == "promoted"
        assert world.career.history[-1].position == 4

    def test_accept_leaves_input_alone(self, scenario_a, config):
        offer = self._offer(scenario_a, config)
        resolve_offer(scenario_a, offer.offer_id, "accept")
        assert scenario_a.career.position == 3
        assert scenario_a.get_offer(offer.offer_id).status == OfferStatus.PENDING

    def test_decline(self, scenario_a, config):
        """Declining costs favor and cools the slot down."""
        offer = self._offer(scenario_a, config)
        turn = scenario_a.turn

        outcome = resolve_offer(scenario_a, offer.offer_id, "decline")
        world = outcome.world

        assert outcome.ok
        assert world.get_offer(offer.offer_id).status == OfferStatus.DECLINED
        assert world.career.position == 3
        assert world.metrics.patron_favor == 55
        assert world.career.offer_cooldowns[ECONOMIC_4.id] == turn + config.career.decline_cooldown
        assert generate_offer(world, config, turn + 1) is None

    def test_offer_returns_after_cooldown(self, scenario_a, config):
        offer = self._offer(scenario_a, config)
        world = resolve_offer(scenario_a, offer.offer_id, "decline").world
        world.metrics.patron_favor = 70

        later = world.turn + config.career.decline_cooldown
        assert generate_offer(world, config, later) is not None

    def test_resolved_offer_refused(self, scenario_a, config):
        """An offer can be answered once."""
        offer = self._offer(scenario_a, config)
        world = resolve_offer(scenario_a, offer.offer_id, "decline").world

        outcome = resolve_offer(world, offer.offer_id, "accept")

        assert not outcome.ok
        assert outcome.reason == RefusalReason.OFFER_NOT_OPEN
        assert outcome.world is world
        assert outcome.events == []

    def test_unknown_offer(self, scenario_a):
        outcome = resolve_offer(scenario_a, "offer-99-party:4", "accept")
        assert outcome.reason == RefusalReason.OFFER_NOT_FOUND

    def test_unknown_response_refused(self, scenario_a, config):
        offer = self._offer(scenario_a, config)

        outcome = resolve_offer(scenario_a, offer.offer_id, "perhaps")

        assert outcome.reason == RefusalReason.INVALID_RESPONSE
        assert outcome.world is scenario_a
        assert scenario_a.get_offer(offer.offer_id).status == OfferStatus.PENDING

    def test_expired_offer_refused(self, scenario_a, config):
        offer = self._offer(scenario_a, config)
        scenario_a.turn = offer.expiry_turn

        outcome = resolve_offer(scenario_a, offer.offer_id, "accept")

        assert outcome.reason == RefusalReason.OFFER_EXPIRED

    def test_filled_slot_refused(self, scenario_a, config):
        """If someone else got the chair first, accepting is refused."""
        offer = self._offer(scenario_a, config)
        scenario_a.npcs["orlov"] = NPC(id="orlov", name="Comrade Orlov", slot=ECONOMIC_4)
        scenario_a.slots.occupy(ECONOMIC_4, "orlov", turn=scenario_a.turn)

        outcome = resolve_offer(scenario_a, offer.offer_id, "accept")

        assert outcome.reason == RefusalReason.SLOT_FILLED
        assert scenario_a.career.position == 3

    def test_expire_offers(self, scenario_a, config):
        """Offers past their expiry turn expire with a favor penalty."""
        offer = self._offer(scenario_a, config)
        ledger = MetricLedger(scenario_a.metrics)
        outbox = EventOutbox(offer.expiry_turn)

        expired = expire_offers(scenario_a, config, ledger, outbox, offer.expiry_turn)

        assert expired == [offer]
        assert offer.status == OfferStatus.EXPIRED
        assert scenario_a.metrics.patron_favor == 60
        assert outbox.events[0].event_type == "career.offer_expired"

    def test_not_expired_before_expiry_turn(self, scenario_a, config):
        offer = self._offer(scenario_a, config)
        ledger = MetricLedger(scenario_a.metrics)
        outbox = EventOutbox(offer.expiry_turn - 1)

        assert expire_offers(scenario_a, config, ledger, outbox, offer.expiry_turn - 1) == []

    def test_full_loop_through_turns(self, scenario_a):
        """Offer appears during a turn and can be accepted afterward."""
        result = advance_turn(scenario_a)
        presented = result.events_of_type("career.offer_presented")[0]

        outcome = resolve_offer(result.world, presented.consequences["offer_id"], "accept")

        assert outcome.ok
        assert outcome.world.career.position == 4
        assert outcome.events[0].event_id.startswith("x")


class TestTrackCommitment:
    """Test the track state machine."""

    def test_choose_track(self, world):
        outcome = choose_track(world, Track.ECONOMIC)

        assert outcome.ok
        assert outcome.world.career.track == Track.ECONOMIC
        assert outcome.world.career.commitment == TrackCommitment.PROVISIONAL

    def test_provisional_track_can_change(self, world):
        world = choose_track(world, Track.ECONOMIC).world
        outcome = choose_track(world, Track.FOREIGN)

        assert outcome.ok
        assert outcome.world.career.track == Track.FOREIGN

    def test_same_track_refused(self, world):
        world = choose_track(world, Track.ECONOMIC).world
        assert choose_track(world, "economic").reason == RefusalReason.SAME_TRACK

    def test_shared_is_not_a_career_track(self, world):
        assert choose_track(world, Track.SHARED).reason == RefusalReason.INVALID_TRACK

    def test_unknown_track_name_refused(self, world):
        outcome = choose_track(world, "astrology")

        assert outcome.reason == RefusalReason.INVALID_TRACK
        assert outcome.world is world
        assert transfer_track(world, "astrology").reason == RefusalReason.INVALID_TRACK

    def test_committed_track_cannot_be_chosen_away(self, scenario_a):
        """Commitment is irreversible through ordinary choice."""
        outcome = choose_track(scenario_a, Track.MILITARY)
        assert outcome.reason == RefusalReason.TRACK_COMMITTED

    def test_transfer_costs_standing(self, scenario_a, config):
        outcome = transfer_track(scenario_a, Track.MILITARY)
        world = outcome.world

        assert outcome.ok
        assert world.career.track == Track.MILITARY
        assert world.career.commitment == TrackCommitment.PROVISIONAL
        assert world.metrics.standing == 65 - config.career.transfer_standing_cost

    def test_dominant_track(self, config):
        cfg = config.career
        assert dominant_track({Track.ECONOMIC: 25}, cfg) == Track.ECONOMIC
        assert dominant_track({Track.ECONOMIC: 15, Track.STATE: 5}, cfg) == Track.ECONOMIC
        assert dominant_track({Track.ECONOMIC: 15, Track.STATE: 10}, cfg) is None
        assert dominant_track({}, cfg) is None

    def test_affinity_emerges_then_commits(self, world):
        """Strong affinity makes a track provisional, then committed."""
        world.career.affinities[Track.ECONOMIC] = 30

        first = advance_turn(world)
        second = advance_turn(first.world)

        assert first.world.career.track == Track.ECONOMIC
        assert first.world.career.commitment == TrackCommitment.PROVISIONAL
        assert first.events_of_type("career.track_emerging")
        assert second.world.career.commitment == TrackCommitment.COMMITTED

    def test_commits_after_enough_turns(self, world, config):
        world = choose_track(world, Track.PARTY).world
        for _ in range(config.career.commit_turns):
            world = advance_turn(world).world
        assert world.career.commitment == TrackCommitment.COMMITTED


class TestFailure:
    """Test demotion and removal."""

    def test_low_standing_demotes(self, world):
        """Standing below 10 after enough tenure costs a rank."""
        seat_player(world, ECONOMIC_3)
        world.career.commitment = TrackCommitment.COMMITTED
        world.career.turns_in_position = 3
        world.metrics.standing = 6

        result = advance_turn(world)

        assert result.events_of_type("career.demoted")
        assert result.world.career.position == 2
        assert result.world.career.slot == SlotKey(track=Track.ECONOMIC, index=2)
        assert result.world.slots.is_vacant(ECONOMIC_3)

    def test_lost_patron_favor_removes(self, world):
        """Patron favor below 10 ends the career."""
        world.metrics.patron_favor = 5

        result = advance_turn(world)
        after = result.world

        assert after.career.status == CareerStatus.REMOVED
        assert after.career.slot is None
        assert after.slots.is_vacant(SlotKey(track=Track.SHARED, index=0))
        assert result.events_of_type("career.removed")

    def test_collapsed_standing_removes(self, world):
        """Standing below 5 ends the career from any chair."""
        seat_player(world, ECONOMIC_3)
        world.metrics.standing = 1

        result = advance_turn(world)
        after = result.world

        assert after.career.status == CareerStatus.REMOVED
        assert after.career.slot is None
        assert after.slots.is_vacant(ECONOMIC_3)
        assert result.events_of_type("career.removed")
        assert find_violations(after) == []

    def test_removed_player_cannot_rise(self, world):
        world.metrics.patron_favor = 5
        after = advance_turn(world).world

        assert evaluate_promotion(after).reason == RefusalReason.REMOVED

    def test_custom_config_changes_gate(self, scenario_a):
        """Balance overrides flow into eligibility."""
        config = BalanceConfig()
        config.career.min_turns_in_position = 10

        check = evaluate_promotion(scenario_a, config)

        assert check.reason == RefusalReason.INSUFFICIENT_TENURE


class TestSuccession:
    """Test NPCs moving up into chairs left empty."""

    def test_waits_out_the_delay(self, world, config):
        """economic:4 has stood empty since turn 0; it is filled on turn 3."""
        world.turn = 2
        assert "economic:4" not in fill_stale_vacancies(world, config, EventOutbox(world.turn))
        assert world.slots.is_vacant(ECONOMIC_4)

        world.turn = 3
        outbox = EventOutbox(world.turn)
        filled = fill_stale_vacancies(world, config, outbox)

        assert "economic:4" in filled
        assert world.slots.occupant(ECONOMIC_4) == "lindqvist"
        assert world.npcs["lindqvist"].slot == ECONOMIC_4
        assert "npc.succession" in [e.event_type for e in outbox.events]

    def test_heir_leaves_old_chair_vacant(self, world, config):
        world.turn = 3
        fill_stale_vacancies(world, config, EventOutbox(world.turn))

        old = world.slots.get(ECONOMIC_3)
        assert old.occupant_id is None
        assert old.vacated_by == "promoted"
        assert old.vacant_since == 3
        assert find_violations(world) == []

    def test_offered_chair_left_alone(self, world, config):
        """A chair the player has been offered is not given away."""
        world.offers.append(PositionOffer(
            offer_id="held",
            slot=ECONOMIC_4,
            offer_type=OfferType.VACANCY_FILL,
            created_turn=1,
            expiry_turn=5,
        ))
        world.turn = 3

        filled = fill_stale_vacancies(world, config, EventOutbox(world.turn))

        assert "economic:4" not in filled
        assert world.slots.is_vacant(ECONOMIC_4)
        assert world.npcs["lindqvist"].slot == ECONOMIC_3
