"""
Game rules as pure functions.

Separates logic from data models for easier testing.
"""

from .access import AccessRequirement, resolve, resolve_for_world, track_bonus
from .npc import (
    apply_disposition_shift,
    decay_disposition,
    most_urgent_need,
    select_goal,
)

__all__ = [
    "AccessRequirement",
    "resolve",
    "resolve_for_world",
    "track_bonus",
    "apply_disposition_shift",
    "decay_disposition",
    "most_urgent_need",
    "select_goal",
]
