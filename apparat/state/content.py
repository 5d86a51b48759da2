"""
Content channel: candidate events produced outside the turn.

Producers (a narrative generator, a scripted scenario) may run on other
threads and submit candidates whenever they finish. The turn never waits
for them. Between turns the caller flushes whatever has arrived into the
world, and the next turn's aggregation step turns it into events.

Usage:
    channel = ContentChannel()
    channel.submit(ContentCandidate(event_type="rumor.spread", summary="..."))
    world = channel.flush_into(world)
    result = advance_turn(world)
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from .schemas.event import ContentCandidate
from .world import World

logger = logging.getLogger(__name__)


class ContentChannel:
    """Thread-safe queue of content candidates."""

    def __init__(self, max_pending: int = 50):
        self._queue: deque[ContentCandidate] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    def submit(self, candidate: ContentCandidate) -> None:
        """Queue a candidate. The oldest is dropped once the queue is full."""
        with self._lock:
            if len(self._queue) == self._queue.maxlen:
                logger.warning(f"Content queue full; dropping {self._queue[0].event_type}")
            self._queue.append(candidate)

    def drain(self) -> list[ContentCandidate]:
        """Take everything queued so far."""
        with self._lock:
            items = list(self._queue)
            self._queue.clear()
        return items

    def flush_into(self, world: World) -> World:
        """Return a copy of world with all queued candidates pending."""
        items = self.drain()
        updated = world.model_copy(deep=True)
        updated.pending_content.extend(items)
        return updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
