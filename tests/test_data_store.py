# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for the file-based universe store and checkpoint throttle.

Validates:
  1. Universes are written as <id>.json files in the store directory
  2. Loaded universes match what was saved
  3. Checkpoints of one universe are rate limited, unless forced
  4. Missing universes and unsafe ids are rejected
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.rosters import load_league
from data.store import CheckpointThrottle, UniverseNotFoundError, UniverseStore
from league import TICK_MS, Sim, Universe
from models import UniverseOrigin
from snapshot import MalformedSnapshotError, dumps


NOW = datetime(2024, 4, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_universe():
    players, teams = load_league()
    sim = Sim.from_rosters(21, 34, players, teams, now=NOW)
    return Universe(origin=UniverseOrigin(season=2, day=10), sim=sim)


@pytest.fixture
def store(tmp_path):
    return UniverseStore(tmp_path / "universes", throttle=CheckpointThrottle(interval_ms=60_000))


# ===========================================================================
# Throttle
# ===========================================================================

class TestCheckpointThrottle:
    def test_first_checkpoint_allowed(self):
        assert CheckpointThrottle(interval_ms=1000).should_checkpoint("u1", NOW)

    def test_recent_checkpoint_blocks(self):
        throttle = CheckpointThrottle(interval_ms=60_000)
        throttle.mark("u1", NOW)
        assert not throttle.should_checkpoint("u1", NOW + timedelta(seconds=30))
        assert throttle.should_checkpoint("u1", NOW + timedelta(seconds=60))

    def test_universes_are_independent(self):
        throttle = CheckpointThrottle(interval_ms=60_000)
        throttle.mark("u1", NOW)
        assert throttle.should_checkpoint("u2", NOW)
        assert throttle.last_checkpoint("u1") == NOW
        assert throttle.last_checkpoint("u2") is None

    def test_default_interval_from_environment(self, monkeypatch):
        monkeypatch.setenv("BLASEBOX_CHECKPOINT_INTERVAL_MS", "1500")
        assert CheckpointThrottle().interval_ms == 1500


# ===========================================================================
# Store
# ===========================================================================

class TestUniverseStore:
    def test_create_writes_file(self, store):
        universe_id = store.create(make_universe(), now=NOW)
        path = store.root_dir / f"{universe_id}.json"
        assert path.exists()
        assert store.exists(universe_id)
        assert store.list_ids() == [universe_id]
        assert not list(store.root_dir.glob("*.tmp"))

    def test_load_matches_saved(self, store):
        universe = make_universe()
        universe.sim.run_to_time(NOW + timedelta(milliseconds=TICK_MS * 300))
        universe_id = store.create(universe, now=NOW)
        loaded = store.load(universe_id)
        assert dumps(loaded) == dumps(universe)
        assert loaded.origin == UniverseOrigin(season=2, day=10)

    def test_save_is_throttled(self, store):
        universe = make_universe()
        universe_id = store.create(universe, now=NOW)
        universe.sim.run_to_time(NOW + timedelta(milliseconds=TICK_MS * 10))

        assert store.save(universe_id, universe, now=NOW + timedelta(seconds=10)) is False
        assert store.load(universe_id).sim.state.tick == 0

        assert store.save(universe_id, universe, now=NOW + timedelta(seconds=61)) is True
        assert store.load(universe_id).sim.state.tick == 10

    def test_force_save_bypasses_throttle(self, store):
        universe = make_universe()
        universe_id = store.create(universe, now=NOW)
        universe.sim.run_to_time(NOW + timedelta(milliseconds=TICK_MS * 3))
        assert store.save(universe_id, universe, now=NOW, force=True) is True
        assert store.load(universe_id).sim.state.tick == 3

    def test_new_store_respects_recent_write(self, tmp_path):
        first = UniverseStore(tmp_path, throttle=CheckpointThrottle(interval_ms=60_000))
        universe_id = first.create(make_universe())

        second = UniverseStore(tmp_path, throttle=CheckpointThrottle(interval_ms=60_000))
        universe = second.load(universe_id)
        assert second.save(universe_id, universe) is False

    def test_missing_universe(self, store):
        with pytest.raises(UniverseNotFoundError) as exc_info:
            store.load("does-not-exist")
        assert isinstance(exc_info.value, FileNotFoundError)
        assert exc_info.value.universe_id == "does-not-exist"

    def test_corrupt_file(self, store):
        store.root_dir.mkdir(parents=True)
        (store.root_dir / "broken.json").write_text("{\"origin\": ")
        with pytest.raises(MalformedSnapshotError):
            store.load("broken")

    @pytest.mark.parametrize("bad_id", ["", "../escape", "a/b", "a\\b", ".hidden"])
    def test_unsafe_ids_rejected(self, store, bad_id):
        with pytest.raises(ValueError):
            store.load(bad_id)

    def test_list_ids_empty_before_first_write(self, store):
        assert store.list_ids() == []

    def test_default_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BLASEBOX_DATA_DIR", str(tmp_path / "env-dir"))
        assert UniverseStore().root_dir == tmp_path / "env-dir"
