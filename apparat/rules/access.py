"""
Access resolution as pure functions.

A feature's access level is the player's rank, raised when the player's
track lines up with the feature's category and again when the player has
built real affinity for that line of work. Nothing is cached: callers
re-resolve every time, so a promotion or track change shows up at once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from ..state.schema import FeatureCategory, Track

if TYPE_CHECKING:
    from ..state.world import World


MAX_ACCESS_LEVEL = 8
ALIGNED_BONUS = 2
ADJACENT_BONUS = 1
AFFINITY_BONUS = 1
AFFINITY_BONUS_THRESHOLD = 25

# category -> (aligned track, adjacent tracks)
CATEGORY_ALIGNMENT: dict[FeatureCategory, tuple[Track | None, tuple[Track, ...]]] = {
    FeatureCategory.GENERAL: (None, ()),
    FeatureCategory.DIPLOMATIC: (Track.FOREIGN, (Track.SECURITY,)),
    FeatureCategory.ECONOMIC: (Track.ECONOMIC, (Track.STATE,)),
    FeatureCategory.INTELLIGENCE: (Track.SECURITY, (Track.FOREIGN,)),
    FeatureCategory.MILITARY: (Track.MILITARY, (Track.SECURITY,)),
    FeatureCategory.ADMINISTRATIVE: (Track.PARTY, (Track.STATE,)),
}


def aligned_track(category: FeatureCategory) -> Track | None:
    """The track a category belongs to, or None for general features."""
    return CATEGORY_ALIGNMENT[category][0]


def track_bonus(track: Track | None, category: FeatureCategory) -> int:
    """
    Bonus from the player's track for a category.

    Returns:
        2 for the aligned track, 1 for an adjacent track, else 0
    """
    if track is None:
        return 0
    aligned, adjacent = CATEGORY_ALIGNMENT[category]
    if track == aligned:
        return ALIGNED_BONUS
    if track in adjacent:
        return ADJACENT_BONUS
    return 0


def resolve(
    position: int,
    track: Track | None,
    affinities: dict[Track, int],
    category: FeatureCategory,
) -> int:
    """
    Resolve the access level for a feature category.

    Args:
        position: The player's rank index (0-8)
        track: The player's committed or provisional track, if any
        affinities: Affinity score per track
        category: The feature category being accessed

    Returns:
        Access level, capped at 8
    """
    category = FeatureCategory(category)
    level = position + track_bonus(track, category)

    aligned = aligned_track(category)
    if aligned is not None and affinities.get(aligned, 0) >= AFFINITY_BONUS_THRESHOLD:
        level += AFFINITY_BONUS

    return min(level, MAX_ACCESS_LEVEL)


def resolve_for_world(world: "World", category: FeatureCategory) -> int:
    """Resolve access from the world's current career record."""
    career = world.career
    return resolve(career.position, career.track, career.affinities, category)


class AccessRequirement(BaseModel):
    """A minimum access level in a category."""
    category: FeatureCategory
    min_level: int

    def is_granted(self, world: "World") -> bool:
        return resolve_for_world(world, self.category) >= self.min_level
