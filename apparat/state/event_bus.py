"""
Lifecycle notifications for observers of the engine.

Presentation layers and content generators subscribe here to learn when a
turn starts, finishes or is rejected, and when an offer or decision is
resolved between turns. The bus is passed in to whoever needs it; there
is no process-wide instance.

Usage:
    bus = EventBus()
    bus.on(LifecycleEvent.TURN_COMPLETED, refresh_view)
    orchestrator = TurnOrchestrator(bus=bus)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class LifecycleEvent(Enum):
    """Engine lifecycle moments that can be observed."""

    TURN_STARTED = "turn.started"
    PHASE_COMPLETED = "turn.phase_completed"
    TURN_COMPLETED = "turn.completed"
    TURN_REJECTED = "turn.rejected"

    OFFER_RESOLVED = "offer.resolved"
    DECISION_APPLIED = "decision.applied"
    CONTENT_QUEUED = "content.queued"

    WORLD_LOADED = "world.loaded"
    WORLD_SAVED = "world.saved"


@dataclass
class BusMessage:
    """
    Payload delivered to bus listeners.

    Attributes:
        type: The lifecycle moment
        data: Moment-specific payload
        world_id: ID of the world this concerns
        turn: Turn number when emitted
        timestamp: When it was emitted
    """

    type: LifecycleEvent
    data: dict = field(default_factory=dict)
    world_id: str = ""
    turn: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


Listener = Callable[[BusMessage], None]


class EventBus:
    """
    Synchronous observer bus.

    Listeners are called immediately on emit(), in subscription order.
    A failing listener is logged and skipped; it never fails the turn.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[LifecycleEvent, list[Listener]] = {}
        self._history: list[BusMessage] = []
        self._history_limit = history_limit

    def on(self, event_type: LifecycleEvent, listener: Listener) -> None:
        """Subscribe to a lifecycle moment."""
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event_type: LifecycleEvent, listener: Listener) -> None:
        """Unsubscribe from a lifecycle moment."""
        if listener in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(listener)

    def emit(
        self,
        event_type: LifecycleEvent,
        world_id: str = "",
        turn: int = 0,
        **data,
    ) -> BusMessage:
        """
        Deliver a message to all subscribers.

        Returns:
            The emitted message (for chaining/testing)
        """
        message = BusMessage(type=event_type, data=data, world_id=world_id, turn=turn)

        self._history.append(message)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(message)
            except Exception:
                logger.exception(f"Listener for {event_type.value} failed")

        return message

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def get_history(self, event_type: LifecycleEvent | None = None) -> list[BusMessage]:
        """Recent messages, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [m for m in self._history if m.type == event_type]

    def listener_count(self, event_type: LifecycleEvent) -> int:
        return len(self._listeners.get(event_type, []))
