"""
Career progression subsystem (phase 7).

Owns the player's ladder position, track commitment, position offers and
the vacancy table. Two state machines run here:

    track:    UNCOMMITTED → PROVISIONAL(track) → COMMITTED(track)
    position: HOLDING → ELIGIBLE → PROMOTED(+1)
              HOLDING → DEMOTED(-1) | REMOVED

Removing an NPC is the only way an NPC-held slot becomes vacant. Other
subsystems ask for removals through the turn context and the requests
are carried out here, so the vacancy table has a single writer.

The module-level functions mutate the World they are given. Callers that
must not disturb their input (the engine façade) hand in a copy.
"""

from __future__ import annotations

import logging

from ..config import BalanceConfig, CareerConfig
from ..state.metrics import MetricLedger
from ..state.schema import (
    CAREER_TRACKS,
    CareerStatus,
    MetricName,
    NPCRole,
    NPCStatus,
    OfferResponse,
    OfferStatus,
    OfferType,
    PositionOffer,
    PositionRecord,
    SlotKey,
    Track,
    TrackCommitment,
)
from ..state.schemas.action import (
    PromotionCheck,
    Refusal,
    RefusalReason,
    Requirement,
    RequirementStatus,
)
from ..state.schemas.event import EventCategory, Severity
from ..state.slots import PLAYER_ID
from ..state.world import World
from .base import EventOutbox, TurnContext

logger = logging.getLogger(__name__)

SOURCE = "career"

# Fates that leave a chair empty for someone else
REMOVAL_FATES = frozenset({
    NPCStatus.PURGED,
    NPCStatus.IMPRISONED,
    NPCStatus.RETIRED,
    NPCStatus.DEAD,
})


# ─── Slots and tracks ───────────────────────────────────────

def slot_track_for(index: int, track: Track | None, cfg: CareerConfig) -> Track | None:
    """
    The track a slot at this rank belongs to.

    Entry and top ranks are shared. Ranks in between belong to the
    player's track; with no track there is no slot to aim for.
    """
    if index < cfg.branch_index or index >= cfg.top_rank_index:
        return Track.SHARED
    return track


def target_slot(world: World, cfg: CareerConfig) -> SlotKey | None:
    """The slot a promotion would put the player in, if any."""
    index = world.career.position + 1
    track = slot_track_for(index, world.career.track, cfg)
    if track is None:
        return None
    return SlotKey(track=track, index=index)


def dominant_track(affinities: dict[Track, int], cfg: CareerConfig) -> Track | None:
    """
    The track the player's record points to.

    Dominant means a score of 25 or more, or 15 or more with a ten point
    lead over the next track.
    """
    scored = sorted(
        ((score, track) for track, score in affinities.items() if track in CAREER_TRACKS),
        key=lambda pair: (-pair[0], CAREER_TRACKS.index(pair[1])),
    )
    if not scored:
        return None
    top_score, top_track = scored[0]
    second = scored[1][0] if len(scored) > 1 else 0
    if top_score >= cfg.dominant_affinity:
        return top_track
    if top_score >= cfg.emerging_affinity and top_score - second >= cfg.emerging_lead:
        return top_track
    return None


# ─── Eligibility ────────────────────────────────────────────

def _requirement(label: str, met: bool, detail: str) -> Requirement:
    return Requirement(
        label=label,
        status=RequirementStatus.MET if met else RequirementStatus.UNMET,
        detail=detail,
    )


def evaluate_promotion(world: World, config: BalanceConfig) -> PromotionCheck:
    """
    Decide whether the player may be promoted. Never mutates.

    Every gate is reported in requirements; reason is the first gate that
    failed, in the order the gates are listed here.
    """
    cfg = config.career
    career = world.career
    metrics = world.metrics

    if not career.is_active:
        return PromotionCheck(eligible=False, reason=RefusalReason.REMOVED)
    if career.position >= cfg.max_position:
        return PromotionCheck(eligible=False, reason=RefusalReason.AT_APEX)

    target_index = career.position + 1
    slot = target_slot(world, cfg)
    needed_standing = cfg.required_standing[min(target_index, len(cfg.required_standing) - 1)]
    needed_favor = cfg.required_patron_favor.get(target_index)
    occupant = world.slots.occupant(slot) if slot else None

    gates: list[tuple[RefusalReason, Requirement]] = [
        (RefusalReason.RIVAL_THREAT_BLOCKED, _requirement(
            "Rival threat below ceiling",
            metrics.rival_threat < cfg.rival_threat_ceiling,
            f"{metrics.rival_threat} (ceiling {cfg.rival_threat_ceiling})",
        )),
        (RefusalReason.INSUFFICIENT_TENURE, _requirement(
            "Turns in position",
            career.turns_in_position >= cfg.min_turns_in_position,
            f"{career.turns_in_position} of {cfg.min_turns_in_position}",
        )),
        (RefusalReason.INSUFFICIENT_STANDING, _requirement(
            "Standing",
            metrics.standing >= needed_standing,
            f"{metrics.standing} of {needed_standing}",
        )),
        (RefusalReason.INSUFFICIENT_PATRON_FAVOR, _requirement(
            "Patron favor",
            needed_favor is None or metrics.patron_favor >= needed_favor,
            f"{metrics.patron_favor} of {needed_favor}" if needed_favor else "not required",
        )),
        (RefusalReason.NO_TRACK, _requirement(
            "Career track",
            slot is not None,
            career.track.value if career.track else "uncommitted",
        )),
        # Someone must fall for you to rise
        (RefusalReason.NO_VACANCY, _requirement(
            "Vacancy",
            occupant is None or occupant == PLAYER_ID,
            f"{slot} held by {occupant}" if occupant else f"{slot} vacant",
        )),
    ]

    requirements = [req for _, req in gates]
    for reason, req in gates:
        if req.status == RequirementStatus.UNMET:
            return PromotionCheck(
                eligible=False,
                target_slot=slot,
                target_position=target_index,
                reason=reason,
                requirements=requirements,
            )

    return PromotionCheck(
        eligible=True,
        target_slot=slot,
        target_position=target_index,
        requirements=requirements,
    )


# ─── Offers ─────────────────────────────────────────────────

def choose_offer_type(world: World, slot: SlotKey, cfg: CareerConfig) -> OfferType:
    """Why the offer is being made."""
    metrics = world.metrics
    if metrics.stability < cfg.emergency_stability:
        return OfferType.EMERGENCY
    if world.career.affinity(slot.track) >= cfg.merit_affinity:
        return OfferType.MERIT
    if metrics.patron_favor >= cfg.patronage_favor:
        return OfferType.PATRONAGE
    existing = world.slots.get(slot)
    if existing is not None and existing.vacated_by in {f.value for f in REMOVAL_FATES}:
        return OfferType.VACANCY_FILL
    return OfferType.GROOMING


def generate_offer(world: World, config: BalanceConfig, turn: int) -> PositionOffer | None:
    """
    Create a pending offer when the player is eligible.

    Nothing is created if an open offer for the slot exists or the slot is
    cooling down after a decline.
    """
    cfg = config.career
    check = evaluate_promotion(world, config)
    if not check.eligible or check.target_slot is None:
        return None

    slot = check.target_slot
    if any(o.slot == slot for o in world.open_offers()):
        return None
    if turn < world.career.offer_cooldowns.get(slot.id, 0):
        return None

    patron = world.patron
    offer = PositionOffer(
        offer_id=f"offer-{turn}-{slot.id}",
        slot=slot,
        offer_type=choose_offer_type(world, slot, cfg),
        created_turn=turn,
        expiry_turn=turn + cfg.offer_lifetime,
        patron_id=patron.id if patron else None,
    )
    world.offers.append(offer)
    logger.info(f"Turn {turn}: {offer.offer_type.value} offer for {slot} ({offer.offer_id})")
    return offer


def present_offers(world: World, outbox: EventOutbox) -> list[PositionOffer]:
    """
    Surface each open, unpresented offer exactly once.

    Returns the offers presented by this call; a second call presents none.
    """
    presented = []
    for offer in world.open_offers():
        if offer.has_been_presented:
            continue
        offer.has_been_presented = True
        offer.status = OfferStatus.PRESENTED
        presented.append(offer)
        outbox.emit(
            EventCategory.CAREER,
            "career.offer_presented",
            f"{world.patron_name} offers you the post at {offer.slot}.",
            severity=Severity.MAJOR,
            consequences={
                "offer_id": offer.offer_id,
                "slot": offer.slot.id,
                "offer_type": offer.offer_type.value,
                "expiry_turn": offer.expiry_turn,
            },
            dedup_key=f"career.offer_presented:{offer.offer_id}",
            source=SOURCE,
        )
    return presented


def _withdraw_open_offers(world: World, turn: int, keep: PositionOffer | None = None) -> None:
    for offer in world.open_offers():
        if offer is keep:
            continue
        offer.status = OfferStatus.WITHDRAWN
        offer.resolved_turn = turn


def expire_offers(world: World, config: BalanceConfig, ledger: MetricLedger,
                  outbox: EventOutbox, turn: int) -> list[PositionOffer]:
    """Expire open offers whose time is up, with a small favor penalty each."""
    expired = []
    for offer in world.open_offers():
        if turn < offer.expiry_turn:
            continue
        offer.status = OfferStatus.EXPIRED
        offer.resolved_turn = turn
        expired.append(offer)
        applied = ledger.apply(MetricName.PATRON_FAVOR, config.career.expiry_patron_favor, SOURCE)
        outbox.emit(
            EventCategory.CAREER,
            "career.offer_expired",
            f"The post at {offer.slot} went to someone who answered sooner.",
            severity=Severity.MODERATE,
            consequences={"offer_id": offer.offer_id, "patron_favor": applied},
            dedup_key=f"career.offer_expired:{offer.offer_id}",
            source=SOURCE,
        )
    return expired


def resolve_offer(
    world: World,
    offer_id: str,
    response: OfferResponse,
    config: BalanceConfig,
    outbox: EventOutbox,
) -> Refusal | None:
    """
    Accept or decline an offer.

    Returns a Refusal without touching the world when the offer cannot be
    resolved; None on success.
    """
    response = OfferResponse(response)
    cfg = config.career
    turn = world.turn

    if not world.career.is_active:
        return Refusal(reason=RefusalReason.REMOVED, detail="Career has ended")
    offer = world.get_offer(offer_id)
    if offer is None:
        return Refusal(reason=RefusalReason.OFFER_NOT_FOUND, detail=offer_id)
    if not offer.is_open:
        return Refusal(reason=RefusalReason.OFFER_NOT_OPEN, detail=offer.status.value)
    if turn >= offer.expiry_turn:
        return Refusal(reason=RefusalReason.OFFER_EXPIRED, detail=f"expired on turn {offer.expiry_turn}")

    ledger = MetricLedger(world.metrics)

    if response == OfferResponse.DECLINE:
        offer.status = OfferStatus.DECLINED
        offer.resolved_turn = turn
        world.career.offer_cooldowns[offer.slot.id] = turn + cfg.decline_cooldown
        applied = ledger.apply(MetricName.PATRON_FAVOR, cfg.decline_patron_favor, SOURCE)
        outbox.emit(
            EventCategory.CAREER,
            "career.offer_declined",
            f"You declined the post at {offer.slot}. {world.patron_name} will remember.",
            severity=Severity.MODERATE,
            consequences={"offer_id": offer.offer_id, "patron_favor": applied},
            dedup_key=f"career.offer_declined:{offer.offer_id}",
            source=SOURCE,
        )
        return None

    if offer.slot.index != world.career.position + 1:
        return Refusal(
            reason=RefusalReason.OFFER_NOT_OPEN,
            detail=f"offer targets rank {offer.slot.index}, player holds {world.career.position}",
        )
    occupant = world.slots.occupant(offer.slot)
    if occupant is not None and occupant != PLAYER_ID:
        return Refusal(reason=RefusalReason.SLOT_FILLED, detail=f"{offer.slot} held by {occupant}")

    offer.status = OfferStatus.ACCEPTED
    offer.resolved_turn = turn
    _withdraw_open_offers(world, turn, keep=offer)
    promote_player(world, offer.slot, config, ledger, outbox)
    return None


# ─── Player moves ───────────────────────────────────────────

def _close_history(world: World, turn: int) -> None:
    if world.career.history and world.career.history[-1].ended_turn is None:
        world.career.history[-1].ended_turn = turn


def _move_player(world: World, new_slot: SlotKey | None, turn: int, reason: str) -> None:
    """Release the player's current slot and take new_slot (if given)."""
    career = world.career
    if career.slot is not None:
        world.slots.vacate(career.slot, PLAYER_ID, turn, reason)
        career.slot = None
    if new_slot is not None:
        world.slots.occupy(new_slot, PLAYER_ID, turn)
        career.slot = new_slot


def promote_player(world: World, slot: SlotKey, config: BalanceConfig,
                   ledger: MetricLedger, outbox: EventOutbox) -> None:
    """Move the player up one rank into slot."""
    cfg = config.career
    career = world.career
    turn = world.turn

    _move_player(world, slot, turn, "promoted")
    _close_history(world, turn)
    career.position = slot.index
    career.turns_in_position = 0
    career.history.append(PositionRecord(
        position=slot.index,
        slot_id=slot.id,
        started_turn=turn,
        reason="promoted",
    ))

    if slot.track != Track.SHARED:
        if career.track != slot.track:
            career.track = slot.track
            career.turns_in_track = 0
        career.commitment = TrackCommitment.COMMITTED
        career.add_affinity(slot.track, cfg.promotion_affinity)

    applied = ledger.apply_many({
        MetricName.STANDING: cfg.accept_standing,
        MetricName.PATRON_FAVOR: cfg.accept_patron_favor,
        MetricName.RIVAL_THREAT: cfg.accept_rival_threat,
    }, SOURCE)

    logger.info(f"Turn {turn}: player promoted to {slot}")
    outbox.emit(
        EventCategory.CAREER,
        "career.promoted",
        f"You have been appointed to the post at {slot}.",
        severity=Severity.MAJOR,
        consequences={
            "position": slot.index,
            "slot": slot.id,
            **{m.value: d for m, d in applied.items()},
        },
        dedup_key="career.promoted",
        source=SOURCE,
    )
    if slot.index >= cfg.max_position:
        outbox.emit(
            EventCategory.CAREER,
            "career.apex",
            "You have reached the summit of power.",
            severity=Severity.CRITICAL,
            dedup_key="career.apex",
            source=SOURCE,
        )


def demote_player(world: World, config: BalanceConfig, outbox: EventOutbox) -> None:
    """Move the player down one rank; the lower chair is taken only if free."""
    cfg = config.career
    career = world.career
    turn = world.turn
    new_index = career.position - 1

    track = slot_track_for(new_index, career.track, cfg)
    lower = SlotKey(track=track, index=new_index) if track is not None else None
    if lower is not None and not world.slots.is_vacant(lower):
        lower = None

    _move_player(world, lower, turn, "demoted")
    _withdraw_open_offers(world, turn)
    _close_history(world, turn)
    career.position = new_index
    career.turns_in_position = 0
    career.history.append(PositionRecord(
        position=new_index,
        slot_id=lower.id if lower else None,
        started_turn=turn,
        reason="demoted",
    ))
    logger.info(f"Turn {turn}: player demoted to rank {new_index}")
    outbox.emit(
        EventCategory.CAREER,
        "career.demoted",
        "You have been moved to a lesser post.",
        severity=Severity.MAJOR,
        consequences={"position": new_index, "slot": lower.id if lower else None},
        dedup_key="career.demoted",
        source=SOURCE,
    )


def remove_player(world: World, reason: str, outbox: EventOutbox) -> None:
    """End the player's career."""
    turn = world.turn
    _move_player(world, None, turn, "removed")
    _withdraw_open_offers(world, turn)
    _close_history(world, turn)
    world.career.status = CareerStatus.REMOVED
    logger.info(f"Turn {turn}: player removed ({reason})")
    outbox.emit(
        EventCategory.CAREER,
        "career.removed",
        "You have been relieved of all duties.",
        severity=Severity.CRITICAL,
        consequences={"reason": reason},
        dedup_key="career.removed",
        source=SOURCE,
    )


def choose_track(world: World, track: Track, outbox: EventOutbox) -> Refusal | None:
    """Pick or change a provisional track. Refused once a track is committed."""
    career = world.career
    if track not in CAREER_TRACKS:
        return Refusal(reason=RefusalReason.INVALID_TRACK, detail=str(track))
    if career.is_committed:
        return Refusal(
            reason=RefusalReason.TRACK_COMMITTED,
            detail=f"committed to {career.track.value}; transfer instead",
        )
    if career.track == track:
        return Refusal(reason=RefusalReason.SAME_TRACK, detail=track.value)

    career.track = track
    career.commitment = TrackCommitment.PROVISIONAL
    career.turns_in_track = 0
    outbox.emit(
        EventCategory.CAREER,
        "career.track_chosen",
        f"You lean toward the {track.value} track.",
        consequences={"track": track.value},
        dedup_key="career.track_chosen",
        source=SOURCE,
    )
    return None


def transfer_track(world: World, track: Track, config: BalanceConfig,
                   outbox: EventOutbox) -> Refusal | None:
    """Explicitly leave the current track. Costs standing and commitment."""
    career = world.career
    if track not in CAREER_TRACKS:
        return Refusal(reason=RefusalReason.INVALID_TRACK, detail=str(track))
    if career.track == track:
        return Refusal(reason=RefusalReason.SAME_TRACK, detail=track.value)

    old = career.track
    career.track = track
    career.commitment = TrackCommitment.PROVISIONAL
    career.turns_in_track = 0
    applied = MetricLedger(world.metrics).apply(
        MetricName.STANDING, -config.career.transfer_standing_cost, SOURCE
    )
    outbox.emit(
        EventCategory.CAREER,
        "career.track_transferred",
        f"You transfer to the {track.value} track.",
        severity=Severity.MODERATE,
        consequences={"from": old.value if old else None, "to": track.value, "standing": applied},
        dedup_key="career.track_transferred",
        source=SOURCE,
    )
    return None


# ─── NPC removal and succession ─────────────────────────────

def remove_npc(world: World, npc_id: str, fate: NPCStatus, outbox: EventOutbox,
               reason: str = "") -> Refusal | None:
    """
    Take an NPC out of the world and free their slot in one step.

    Returns a Refusal if the NPC is unknown or already gone.
    """
    fate = NPCStatus(fate)
    npc = world.get_npc(npc_id)
    if npc is None or not npc.is_alive:
        return Refusal(reason=RefusalReason.NPC_NOT_FOUND, detail=npc_id)
    if fate not in REMOVAL_FATES:
        return Refusal(reason=RefusalReason.INVALID_FATE, detail=fate.value)

    turn = world.turn
    freed = None
    if npc.slot is not None:
        freed = npc.slot
        world.slots.vacate(npc.slot, npc.id, turn, fate.value)
        npc.slot = None
    npc.status = fate
    npc.removed_turn = turn
    world.arena.forget_npc(npc.id)

    important = npc.role in (NPCRole.PATRON, NPCRole.RIVAL)
    logger.info(f"Turn {turn}: {npc.name} {fate.value} ({reason or 'no reason given'})")
    outbox.emit(
        EventCategory.NPC,
        "npc.removed",
        f"{npc.name} has been {fate.value}.",
        severity=Severity.MAJOR if important else Severity.MODERATE,
        consequences={
            "npc_id": npc.id,
            "fate": fate.value,
            "role": npc.role.value,
            "vacated": freed.id if freed else None,
            "reason": reason,
        },
        dedup_key=f"npc.removed:{npc.id}",
        source=SOURCE,
    )
    return None


def fill_stale_vacancies(world: World, config: BalanceConfig, outbox: EventOutbox) -> list[str]:
    """
    Promote NPCs into chairs that have stood empty too long.

    A chair the player has an open offer for is left alone. Returns the
    ids of slots filled.
    """
    cfg = config.career
    turn = world.turn
    offered = {o.slot.id for o in world.open_offers()}
    filled = []

    for slot in world.slots.vacancies():
        key = slot.key
        if key.id in offered or key.index == 0:
            continue
        if slot.vacant_since is None or turn - slot.vacant_since < cfg.succession_delay:
            continue

        candidates = [
            npc for npc in world.living_npcs()
            if npc.slot is not None
            and npc.slot.index == key.index - 1
            and (key.track == Track.SHARED or npc.slot.track == key.track)
        ]
        if not candidates:
            continue
        heir = max(
            candidates,
            key=lambda n: (n.personality.competence + n.personality.ambition, n.id),
        )
        world.slots.vacate(heir.slot, heir.id, turn, "promoted")
        world.slots.occupy(key, heir.id, turn)
        heir.slot = key
        filled.append(key.id)
        outbox.emit(
            EventCategory.NPC,
            "npc.succession",
            f"{heir.name} fills the vacant post at {key}.",
            consequences={"npc_id": heir.id, "slot": key.id},
            dedup_key=f"npc.succession:{key.id}",
            source=SOURCE,
        )
    return filled


# ─── Phase ──────────────────────────────────────────────────

class CareerSystem:
    """Phase 7: removals, offers, tenure, track commitment, succession."""
    name = SOURCE

    def run(self, ctx: TurnContext) -> None:
        world = ctx.world

        for request in ctx.removals:
            remove_npc(world, request.npc_id, request.fate, ctx.outbox, request.reason)
        ctx.removals.clear()

        if world.career.is_active:
            expire_offers(world, ctx.config, ctx.ledger, ctx.outbox, ctx.turn)
            self._hold_position(ctx)
            self._update_track(ctx)
            if not self._check_failure(ctx):
                generate_offer(world, ctx.config, ctx.turn)

        fill_stale_vacancies(world, ctx.config, ctx.outbox)

    def _hold_position(self, ctx: TurnContext) -> None:
        career = ctx.world.career
        career.turns_in_position += 1
        if career.track is not None:
            career.turns_in_track += 1
        if career.slot is not None and career.slot.track != Track.SHARED:
            career.add_affinity(career.slot.track, ctx.config.career.holding_affinity_per_turn)

    def _update_track(self, ctx: TurnContext) -> None:
        cfg = ctx.config.career
        career = ctx.world.career

        if career.commitment == TrackCommitment.UNCOMMITTED:
            emerging = dominant_track(career.affinities, cfg)
            if emerging is not None:
                career.track = emerging
                career.commitment = TrackCommitment.PROVISIONAL
                career.turns_in_track = 0
                ctx.outbox.emit(
                    EventCategory.CAREER,
                    "career.track_emerging",
                    f"Your record marks you for the {emerging.value} track.",
                    consequences={"track": emerging.value},
                    dedup_key="career.track_emerging",
                    source=SOURCE,
                )
            return

        if career.commitment == TrackCommitment.PROVISIONAL and career.track is not None:
            if (career.turns_in_track >= cfg.commit_turns
                    or career.affinity(career.track) >= cfg.dominant_affinity):
                career.commitment = TrackCommitment.COMMITTED
                ctx.outbox.emit(
                    EventCategory.CAREER,
                    "career.track_committed",
                    f"Your future now lies in the {career.track.value} track.",
                    severity=Severity.MODERATE,
                    consequences={"track": career.track.value},
                    dedup_key="career.track_committed",
                    source=SOURCE,
                )

    def _check_failure(self, ctx: TurnContext) -> bool:
        """Demote or remove a failing player. Returns True if either happened."""
        cfg = ctx.config.career
        world = ctx.world
        metrics = world.metrics

        if metrics.standing < cfg.removal_standing:
            remove_player(world, "standing collapsed", ctx.outbox)
            return True
        if metrics.patron_favor < cfg.removal_patron_favor:
            remove_player(world, "abandoned by patron", ctx.outbox)
            return True
        if (metrics.standing < cfg.demotion_standing
                and world.career.position > 0
                and world.career.turns_in_position >= cfg.min_turns_in_position // 2):
            demote_player(world, ctx.config, ctx.outbox)
            return True
        return False
