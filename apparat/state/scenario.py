"""
Default fictional world.

Builds a complete starting World: a ladder of slots, a cast of NPCs in
some of them, five factions, six regions, five foreign countries and a
handful of laws. The
player starts at the bottom rung with a patron near the top and a rival
one step ahead.
"""

from __future__ import annotations

import logging

from ..config import BalanceConfig
from .memory import MemoryArena
from .schema import (
    CAREER_TRACKS,
    NPC,
    Bloc,
    Faction,
    FactionStance,
    ForeignCountry,
    Law,
    LawCategory,
    NPCRole,
    Personality,
    PositionRecord,
    Region,
    SlotKey,
    Track,
    Treaty,
    TreatyKind,
)
from .slots import PLAYER_ID, VacancyTable
from .world import World, WorldMeta

logger = logging.getLogger(__name__)


RANK_TITLES = [
    "Junior Instructor",
    "Instructor",
    "Sector Head",
    "Deputy Department Head",
    "Department Head",
    "Deputy Minister",
    "Minister",
    "Politburo Candidate",
    "General Secretary",
]

FACTIONS = [
    ("old_guard", "Old Guard", FactionStance.ORTHODOX, 60),
    ("reformists", "Reformists", FactionStance.REFORMIST, 45),
    ("youth_league", "Youth League", FactionStance.MERITOCRATIC, 40),
    ("princelings", "Princelings", FactionStance.ARISTOCRATIC, 50),
    ("provincial_bloc", "Provincial Bloc", FactionStance.PROVINCIAL, 35),
]

REGIONS = [
    ("capital", "Capital District", 75, 75, 85),
    ("northern_steppe", "Northern Steppe", 55, 50, 60),
    ("eastern_marches", "Eastern Marches", 45, 40, 45),
    ("southern_coast", "Southern Coast", 65, 60, 65),
    ("western_reach", "Western Reach", 60, 55, 55),
    ("highlands", "Highlands", 50, 45, 40),
]

COUNTRIES = [
    ("fraternal_republic", "Fraternal Republic", Bloc.ALLIED, 45, 5, [TreatyKind.MUTUAL_DEFENSE]),
    ("northern_federation", "Northern Federation", Bloc.RIVAL, -25, 30, []),
    ("western_alliance", "Western Alliance", Bloc.ADVERSARY, -55, 45, []),
    ("southern_union", "Southern Union", Bloc.NON_ALIGNED, 5, 10, []),
    ("island_kingdom", "Island Kingdom", Bloc.NON_ALIGNED, 10, 10, [TreatyKind.TRADE]),
]

# id, name, category, beneficiaries, losers
LAWS = [
    ("term_limits", "Term Limits for the General Secretary", LawCategory.INSTITUTIONAL,
     ["youth_league"], []),
    ("collective_leadership", "Collective Leadership Principle", LawCategory.INSTITUTIONAL,
     ["youth_league", "princelings"], []),
    ("press_control", "State Media Guidelines", LawCategory.POLITICAL,
     ["old_guard", "youth_league"], []),
    ("enterprise_quotas", "Production Quota System", LawCategory.ECONOMIC,
     ["reformists"], []),
    ("private_plots", "Collective Farm Private Plots", LawCategory.ECONOMIC,
     [], ["old_guard"]),
    ("internal_passport", "Internal Passport System", LawCategory.SOCIAL,
     ["old_guard"], []),
]

# id, name, role, faction, slot, disposition, personality
CAST = [
    ("marchenko", "Comrade Marchenko", NPCRole.OFFICIAL, "old_guard", (Track.SHARED, 8), 50,
     Personality(ambition=40, loyalty=60, paranoia=80, competence=55, ruthlessness=70)),
    ("volkov", "Comrade Volkov", NPCRole.PATRON, "old_guard", (Track.SHARED, 7), 65,
     Personality(ambition=60, loyalty=70, paranoia=50, competence=65, ruthlessness=50)),
    ("kessler", "Comrade Kessler", NPCRole.RIVAL, "princelings", (Track.SECURITY, 2), 25,
     Personality(ambition=85, loyalty=30, paranoia=60, competence=60, ruthlessness=75)),
    ("petrova", "Comrade Petrova", NPCRole.ALLY, "reformists", (Track.STATE, 2), 60,
     Personality(ambition=50, loyalty=75, paranoia=30, competence=70, ruthlessness=25)),
    ("radic", "Comrade Radić", NPCRole.OFFICIAL, "old_guard", (Track.PARTY, 3), 50,
     Personality(ambition=55, loyalty=60, paranoia=55, competence=50, ruthlessness=45)),
    ("lindqvist", "Comrade Lindqvist", NPCRole.OFFICIAL, "reformists", (Track.ECONOMIC, 3), 55,
     Personality(ambition=45, loyalty=55, paranoia=35, competence=75, ruthlessness=30)),
    ("okafor", "Comrade Okafor", NPCRole.OFFICIAL, "princelings", (Track.MILITARY, 4), 45,
     Personality(ambition=60, loyalty=65, paranoia=50, competence=60, ruthlessness=60)),
    ("sato", "Comrade Sato", NPCRole.NEUTRAL, "youth_league", (Track.FOREIGN, 4), 50,
     Personality(ambition=50, loyalty=50, paranoia=40, competence=70, ruthlessness=35)),
    ("duval", "Comrade Duval", NPCRole.NEUTRAL, "provincial_bloc", (Track.STATE, 5), 50,
     Personality(ambition=35, loyalty=50, paranoia=45, competence=55, ruthlessness=40)),
    ("moreau", "Comrade Moreau", NPCRole.OFFICIAL, "youth_league", (Track.ECONOMIC, 5), 50,
     Personality(ambition=65, loyalty=45, paranoia=40, competence=65, ruthlessness=50)),
    ("halloran", "Comrade Halloran", NPCRole.OFFICIAL, "old_guard", (Track.SECURITY, 5), 40,
     Personality(ambition=55, loyalty=60, paranoia=85, competence=60, ruthlessness=80)),
    ("brandt", "Comrade Brandt", NPCRole.SUBORDINATE, "youth_league", None, 55,
     Personality(ambition=40, loyalty=60, paranoia=30, competence=55, ruthlessness=30)),
    ("ivashko", "Comrade Ivashko", NPCRole.SUBORDINATE, "provincial_bloc", None, 45,
     Personality(ambition=55, loyalty=40, paranoia=50, competence=45, ruthlessness=50)),
]

INITIAL_RELATIONSHIPS = {
    ("volkov", "kessler"): -20,
    ("petrova", "kessler"): -10,
    ("volkov", "marchenko"): 30,
    ("halloran", "kessler"): 15,
}


def slot_title(key: SlotKey) -> str:
    title = RANK_TITLES[key.index]
    if key.track == Track.SHARED:
        return title
    return f"{title} ({key.track.value})"


def build_ladder(config: BalanceConfig) -> VacancyTable:
    """Every slot on the ladder, all vacant."""
    cfg = config.career
    table = VacancyTable()
    for index in range(cfg.max_position + 1):
        if index < cfg.branch_index or index >= cfg.top_rank_index:
            tracks = [Track.SHARED]
        else:
            tracks = list(CAREER_TRACKS)
        for track in tracks:
            key = SlotKey(track=track, index=index)
            table.ensure(key, title=slot_title(key), turn=0)
    return table


def create_world(
    name: str = "The Republic",
    seed: int = 0,
    config: BalanceConfig | None = None,
) -> World:
    """
    Build the default starting world.

    Args:
        name: Display name for the save
        seed: Base seed; per-turn seeds are derived from it
        config: Balance config (arena capacities, ladder shape)
    """
    config = config or BalanceConfig()
    slots = build_ladder(config)

    world = World(
        meta=WorldMeta(name=name),
        seed=seed,
        slots=slots,
        arena=MemoryArena(
            memory_capacity=config.agents.memory_capacity,
            goal_capacity=config.agents.goal_capacity,
        ),
    )

    for fid, fname, stance, power in FACTIONS:
        world.factions[fid] = Faction(id=fid, name=fname, stance=stance, power=power)

    for rid, rname, stability, loyalty, control in REGIONS:
        world.regions[rid] = Region(
            id=rid, name=rname, stability=stability, loyalty=loyalty, party_control=control,
        )

    for cid, cname, bloc, relationship, tension, treaties in COUNTRIES:
        world.countries[cid] = ForeignCountry(
            id=cid,
            name=cname,
            bloc=bloc,
            relationship=relationship,
            tension=tension,
            treaties=[Treaty(kind=kind) for kind in treaties],
        )

    for lid, lname, category, beneficiaries, losers in LAWS:
        world.laws[lid] = Law(
            id=lid, name=lname, category=category,
            beneficiaries=list(beneficiaries), losers=list(losers),
        )

    for npc_id, npc_name, role, faction, slot, disposition, personality in CAST:
        npc = NPC(
            id=npc_id,
            name=npc_name,
            role=role,
            faction_id=faction,
            disposition=disposition,
            personality=personality,
        )
        if slot is not None:
            key = SlotKey(track=slot[0], index=slot[1])
            world.slots.occupy(key, npc.id, turn=0)
            npc.slot = key
            npc.title = slot_title(key)
        world.npcs[npc.id] = npc

    for (a, b), value in INITIAL_RELATIONSHIPS.items():
        world.shift_relationship(a, b, value)

    start = SlotKey(track=Track.SHARED, index=0)
    world.slots.occupy(start, PLAYER_ID, turn=0)
    world.career.slot = start
    world.career.history.append(
        PositionRecord(position=0, slot_id=start.id, started_turn=world.turn, reason="appointed")
    )

    logger.info(f"Created world {world.meta.id} ({name}, seed {seed})")
    return world
