"""
Vacancy table: which slot is held by whom.

Each (track, index) slot has at most one occupant. A slot is vacant iff
it has no occupant, and every occupancy change goes through occupy() or
vacate(), which compare the expected current holder before writing.
A mismatch means two writers disagreed about the table, which is an
invariant violation and aborts the turn.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from .invariants import SlotConflictError
from .schema import SlotKey

logger = logging.getLogger(__name__)

PLAYER_ID = "player"


class PositionSlot(BaseModel):
    """A single chair in the hierarchy."""
    key: SlotKey
    title: str = ""
    occupant_id: str | None = None
    vacant: bool = True
    vacant_since: int | None = None
    vacated_by: str | None = None  # Fate of the last holder: "purged", "promoted", ...


class VacancyTable(BaseModel):
    """Typed table of slots keyed by slot id ("economic:4")."""
    slots: dict[str, PositionSlot] = Field(default_factory=dict)

    def get(self, key: SlotKey) -> PositionSlot | None:
        return self.slots.get(key.id)

    def ensure(self, key: SlotKey, title: str = "", turn: int = 0) -> PositionSlot:
        """Get a slot, creating it vacant if the table has never seen it."""
        slot = self.slots.get(key.id)
        if slot is None:
            slot = PositionSlot(key=key, title=title, vacant_since=turn)
            self.slots[key.id] = slot
        return slot

    def is_vacant(self, key: SlotKey) -> bool:
        """A slot the table has never recorded has no occupant, so it is vacant."""
        slot = self.slots.get(key.id)
        return slot is None or slot.occupant_id is None

    def occupant(self, key: SlotKey) -> str | None:
        slot = self.slots.get(key.id)
        return slot.occupant_id if slot else None

    def slot_of(self, occupant_id: str) -> PositionSlot | None:
        """Find the slot held by an occupant, if any."""
        for slot in self.slots.values():
            if slot.occupant_id == occupant_id:
                return slot
        return None

    def vacancies(self) -> list[PositionSlot]:
        """All vacant slots in id order."""
        return [self.slots[k] for k in sorted(self.slots) if self.slots[k].vacant]

    def occupy(self, key: SlotKey, occupant_id: str, turn: int) -> PositionSlot:
        """
        Seat an occupant in a vacant slot.

        Raises:
            SlotConflictError: the slot is already held, or the occupant
                already holds another slot.
        """
        slot = self.ensure(key, turn=turn)
        if slot.occupant_id is not None:
            raise SlotConflictError(
                f"Slot {key} expected vacant, held by {slot.occupant_id}"
            )
        held = self.slot_of(occupant_id)
        if held is not None:
            raise SlotConflictError(
                f"{occupant_id} already holds {held.key}, cannot also take {key}"
            )
        slot.occupant_id = occupant_id
        slot.vacant = False
        slot.vacant_since = None
        slot.vacated_by = None
        logger.debug(f"{occupant_id} takes {key} on turn {turn}")
        return slot

    def vacate(
        self,
        key: SlotKey,
        expected_occupant: str,
        turn: int,
        reason: str = "",
    ) -> PositionSlot:
        """
        Clear a slot and set its vacancy flag in one step.

        Raises:
            SlotConflictError: the slot is not held by expected_occupant.
        """
        slot = self.slots.get(key.id)
        if slot is None or slot.occupant_id != expected_occupant:
            found = slot.occupant_id if slot else None
            raise SlotConflictError(
                f"Slot {key} expected held by {expected_occupant}, found {found}"
            )
        slot.occupant_id = None
        slot.vacant = True
        slot.vacant_since = turn
        slot.vacated_by = reason or None
        logger.debug(f"{expected_occupant} leaves {key} on turn {turn} ({reason})")
        return slot
