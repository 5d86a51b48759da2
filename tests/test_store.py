"""
Tests for world persistence and balance config files.
"""

from apparat.config import BalanceConfig, get_config_path, load_config, save_config
from apparat.engine import advance_turn
from apparat.state import JsonWorldStore, MemoryWorldStore
from apparat.state.event_bus import EventBus, LifecycleEvent


class TestJsonWorldStore:
    """Test file-based persistence."""

    def test_save_and_load(self, tmp_path, world):
        store = JsonWorldStore(tmp_path)
        store.save(world)

        loaded = store.load(world.meta.id)

        assert loaded is not None
        assert loaded.meta.name == "Test Republic"
        assert loaded.npcs["halloran"].slot.id == "security:5"
        assert loaded.metrics == world.metrics

    def test_loaded_world_advances_identically(self, tmp_path, world):
        """A save/load cycle does not change what the next turn does."""
        store = JsonWorldStore(tmp_path)
        world = advance_turn(world).world
        store.save(world)
        loaded = store.load(world.meta.id)

        direct = advance_turn(world, seed=3)
        reloaded = advance_turn(loaded, seed=3)

        assert direct.world.metrics == reloaded.world.metrics
        assert [e.event_id for e in direct.events] == [e.event_id for e in reloaded.events]

    def test_load_by_prefix(self, tmp_path, world):
        store = JsonWorldStore(tmp_path)
        store.save(world)
        assert store.load(world.meta.id[:4]).meta.id == world.meta.id

    def test_backup_on_resave(self, tmp_path, world):
        store = JsonWorldStore(tmp_path)
        store.save(world)
        store.save(world)
        assert (tmp_path / f"{world.meta.id}.json.bak").exists()

    def test_missing_returns_none(self, tmp_path):
        assert JsonWorldStore(tmp_path).load("nothing") is None

    def test_corrupt_file_returns_none(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        assert JsonWorldStore(tmp_path).load("broken") is None

    def test_save_and_load_announced(self, tmp_path, world):
        bus = EventBus()
        store = JsonWorldStore(tmp_path, bus=bus)

        store.save(world)
        store.load(world.meta.id)
        store.load("nothing")

        assert [m.world_id for m in bus.get_history(LifecycleEvent.WORLD_SAVED)] == [world.meta.id]
        assert len(bus.get_history(LifecycleEvent.WORLD_LOADED)) == 1

    def test_list_and_delete(self, tmp_path, world):
        store = JsonWorldStore(tmp_path)
        store.save(world)

        listed = store.list_all()
        assert [w["id"] for w in listed] == [world.meta.id]
        assert listed[0]["turn"] == 1

        assert store.delete(world.meta.id)
        assert not store.exists(world.meta.id)
        assert not store.delete(world.meta.id)


class TestMemoryWorldStore:
    """Test the in-memory store."""

    def test_stores_copies(self, memory_store, world):
        memory_store.save(world)
        world.metrics.support = 1

        assert memory_store.load(world.meta.id).metrics.support == 50

    def test_announces_on_bus(self, world):
        bus = EventBus()
        store = MemoryWorldStore(bus=bus)

        store.save(world)
        loaded = store.load(world.meta.id[:6])

        assert loaded.meta.id == world.meta.id
        [message] = bus.get_history(LifecycleEvent.WORLD_LOADED)
        assert message.world_id == world.meta.id
        assert len(bus.get_history(LifecycleEvent.WORLD_SAVED)) == 1

    def test_prefix_and_clear(self, memory_store, world):
        memory_store.save(world)
        assert memory_store.load(world.meta.id[:6]) is not None

        memory_store.clear()
        assert memory_store.list_all() == []


class TestBalanceConfig:
    """Test balance override files."""

    def test_defaults_without_file(self, tmp_path):
        assert load_config(tmp_path) == BalanceConfig()

    def test_round_trip(self, tmp_path):
        config = BalanceConfig()
        config.career.min_turns_in_position = 4

        assert save_config(config, tmp_path)
        assert load_config(tmp_path).career.min_turns_in_position == 4

    def test_partial_override(self, tmp_path):
        """Keys missing from the file keep their defaults."""
        get_config_path(tmp_path).write_text('{"decisions": {"decisions_per_turn": 3}}')

        config = load_config(tmp_path)

        assert config.decisions.decisions_per_turn == 3
        assert config.decisions.national_effect_cap == 15
        assert config.career.min_turns_in_position == 6

    def test_unreadable_file_falls_back(self, tmp_path):
        get_config_path(tmp_path).write_text("[1, 2")
        assert load_config(tmp_path) == BalanceConfig()
