"""
World storage abstraction.

Separates persistence from simulation logic. Worlds are saved and loaded
verbatim: what load() returns advances exactly like what save() was given.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from .event_bus import EventBus, LifecycleEvent
from .world import World

logger = logging.getLogger(__name__)


@runtime_checkable
class WorldStore(Protocol):
    """
    Storage interface for worlds.

    Implementations:
    - JsonWorldStore: File-based persistence
    - MemoryWorldStore: In-memory storage (testing)
    """

    def save(self, world: World) -> None:
        """Persist a world."""
        ...

    def load(self, world_id: str) -> World | None:
        """Load a world by ID. Returns None if not found."""
        ...

    def delete(self, world_id: str) -> bool:
        """Delete a world. Returns True if deleted."""
        ...

    def list_all(self) -> list[dict]:
        """List all worlds with metadata."""
        ...

    def exists(self, world_id: str) -> bool:
        """Check if a world exists."""
        ...


class JsonWorldStore:
    """
    File-based world storage using JSON.

    Features:
    - Automatic backup on save
    - Partial ID matching on load
    """

    def __init__(self, saves_dir: Path | str = "saves", bus: EventBus | None = None):
        self.saves_dir = Path(saves_dir)
        self.saves_dir.mkdir(parents=True, exist_ok=True)
        self.bus = bus

    def _path(self, world_id: str) -> Path:
        return self.saves_dir / f"{world_id}.json"

    def save(self, world: World) -> None:
        """Save world to JSON file, keeping the previous save as .bak."""
        world.touch()
        path = self._path(world.meta.id)

        if path.exists():
            path.with_suffix(".json.bak").write_text(path.read_text())

        path.write_text(world.model_dump_json(indent=2))
        if self.bus is not None:
            self.bus.emit(LifecycleEvent.WORLD_SAVED, world_id=world.meta.id, turn=world.turn, path=str(path))

    def load(self, world_id: str) -> World | None:
        """Load world by full ID or unique prefix."""
        path = self._path(world_id)

        if not path.exists():
            for f in sorted(self.saves_dir.glob("*.json")):
                if f.name.startswith("."):
                    continue
                if f.stem.startswith(world_id):
                    path = f
                    break

        if not path.exists():
            return None

        try:
            world = World.model_validate_json(path.read_text())
        except (ValidationError, json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load world from {path}: {e}")
            return None
        if self.bus is not None:
            self.bus.emit(LifecycleEvent.WORLD_LOADED, world_id=world.meta.id, turn=world.turn, path=str(path))
        return world

    def delete(self, world_id: str) -> bool:
        path = self._path(world_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_all(self) -> list[dict]:
        """List all saved worlds, most recently updated first."""
        worlds = []
        for f in sorted(
            self.saves_dir.glob("*.json"),
            key=lambda x: x.stat().st_mtime,
            reverse=True,
        ):
            if f.name.startswith("."):
                continue
            try:
                data = json.loads(f.read_text())
                meta = data.get("meta")
                if not isinstance(meta, dict):
                    continue
                worlds.append({
                    "id": meta.get("id", f.stem),
                    "name": meta.get("name", "Unnamed"),
                    "turn": data.get("turn", 1),
                    "updated_at": datetime.fromisoformat(meta.get("updated_at", "2000-01-01")),
                })
            except (json.JSONDecodeError, ValueError):
                continue
        return worlds

    def exists(self, world_id: str) -> bool:
        return self._path(world_id).exists()


class MemoryWorldStore:
    """
    In-memory world storage for testing.

    Stores copies, so later changes to a saved world do not leak in.
    """

    def __init__(self, bus: EventBus | None = None):
        self.worlds: dict[str, World] = {}
        self.bus = bus

    def save(self, world: World) -> None:
        world.touch()
        self.worlds[world.meta.id] = world.model_copy(deep=True)
        if self.bus is not None:
            self.bus.emit(LifecycleEvent.WORLD_SAVED, world_id=world.meta.id, turn=world.turn)

    def load(self, world_id: str) -> World | None:
        found = self.worlds.get(world_id)
        if found is None:
            found = next((w for wid, w in self.worlds.items() if wid.startswith(world_id)), None)
        if found is None:
            return None
        if self.bus is not None:
            self.bus.emit(LifecycleEvent.WORLD_LOADED, world_id=found.meta.id, turn=found.turn)
        return found.model_copy(deep=True)

    def delete(self, world_id: str) -> bool:
        if world_id in self.worlds:
            del self.worlds[world_id]
            return True
        return False

    def list_all(self) -> list[dict]:
        worlds = [
            {
                "id": w.meta.id,
                "name": w.meta.name,
                "turn": w.turn,
                "updated_at": w.meta.updated_at,
            }
            for w in self.worlds.values()
        ]
        worlds.sort(key=lambda x: x["updated_at"], reverse=True)
        return worlds

    def exists(self, world_id: str) -> bool:
        return world_id in self.worlds

    def clear(self) -> None:
        """Clear all worlds (test utility)."""
        self.worlds.clear()
