"""
Pytest fixtures for apparat tests.

Provides a seeded default world, balance config and helpers to set the
player up in a particular chair.
"""

import pytest
from pathlib import Path

# Add the project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from apparat.config import BalanceConfig
from apparat.state import MemoryWorldStore
from apparat.state.scenario import create_world
from apparat.state.schema import SlotKey, Track, TrackCommitment
from apparat.state.slots import PLAYER_ID


def seat_player(world, key: SlotKey, turn: int = 0):
    """
    Move the player into key, evicting any NPC there to no chair.

    Position follows the slot's rank; track follows the slot's track.
    """
    holder = world.slots.occupant(key)
    if holder is not None and holder != PLAYER_ID:
        world.slots.vacate(key, holder, turn, "reassigned")
        world.npcs[holder].slot = None
    if world.career.slot is not None:
        world.slots.vacate(world.career.slot, PLAYER_ID, turn, "moved")
    world.slots.occupy(key, PLAYER_ID, turn)
    world.career.slot = key
    world.career.position = key.index
    if key.track != Track.SHARED:
        world.career.track = key.track
    return world


def make_scenario_a(world):
    """
    Player at economic:3, committed, eight turns in, standing 65,
    patron favor 70, rival threat 40; economic:4 is vacant.
    """
    seat_player(world, SlotKey(track=Track.ECONOMIC, index=3))
    world.career.commitment = TrackCommitment.COMMITTED
    world.career.turns_in_position = 8
    world.metrics.standing = 65
    world.metrics.patron_favor = 70
    world.metrics.rival_threat = 40
    return world


@pytest.fixture
def config():
    """Default balance config."""
    return BalanceConfig()


@pytest.fixture
def world():
    """Fresh default world with a fixed seed."""
    return create_world("Test Republic", seed=7)


@pytest.fixture
def scenario_a(world):
    """World where the player is eligible for economic:4."""
    return make_scenario_a(world)


@pytest.fixture
def memory_store():
    """In-memory world store for testing."""
    return MemoryWorldStore()
