# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for snapshot serialization.

A restored league must continue exactly as the saved one would have, and
every malformed payload must be rejected with MalformedSnapshotError.
"""

import copy
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from league import TICK_MS, Sim, Universe
from models import UniverseOrigin
from rng import Rng
from snapshot import (
    MalformedSnapshotError,
    dumps,
    loads,
    sim_from_dict,
    sim_to_dict,
    universe_from_dict,
    universe_to_dict,
)
from data.rosters import load_league


START = datetime(2024, 4, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_sim(seed0=11, seed1=13):
    players, teams = load_league()
    return Sim.from_rosters(seed0, seed1, players, teams, now=START)


def advance(sim, ticks):
    sim.run_to_time(sim.state.time + timedelta(milliseconds=TICK_MS * ticks))


@pytest.fixture
def midgame_payload():
    sim = make_sim()
    advance(sim, 250)
    return sim_to_dict(sim)


# ===========================================================================
# Round trips
# ===========================================================================

def test_snapshot_shape(midgame_payload):
    assert set(midgame_payload) == {"rng", "players", "teams", "state"}
    assert set(midgame_payload["state"]) == {"day", "games", "records", "tick", "time"}
    assert isinstance(midgame_payload["rng"]["s0"], str)
    assert midgame_payload["state"]["tick"] == 250
    assert midgame_payload["state"]["time"] == int(START.timestamp() * 1000) + 250 * TICK_MS
    assert midgame_payload["teams"]["harbor"]["fullName"] == "Harbor Herons"


def test_snapshot_is_json_ready(midgame_payload):
    assert json.loads(json.dumps(midgame_payload)) == midgame_payload


def test_restored_sim_continues_identically():
    original = make_sim()
    advance(original, 400)
    restored = sim_from_dict(json.loads(json.dumps(sim_to_dict(original))))

    advance(original, 1500)
    advance(restored, 1500)
    assert sim_to_dict(restored) == sim_to_dict(original)


def test_restored_rng_state(midgame_payload):
    sim = sim_from_dict(midgame_payload)
    assert sim.rng.to_dict() == midgame_payload["rng"]
    assert sim.rng.next() == Rng.from_dict(midgame_payload["rng"]).next()


def test_lead_first_runners_accepted(midgame_payload):
    midgame_payload["state"]["games"][0]["runners"] = [
        {"name": "Lead", "base": 3}, {"name": "Trail", "base": 1},
    ]
    sim = sim_from_dict(midgame_payload)
    assert [r.base for r in sim.state.games[0].runners] == [3, 1]


def test_restore_rebuilds_lookups(midgame_payload):
    sim = sim_from_dict(midgame_payload)
    assert sim.players["harbor-01"].name == "Ada Ashby"
    assert sim.teams["mesa"].nickname == "Lanterns"
    assert sim.state.time == START + timedelta(milliseconds=TICK_MS * 250)


def test_extra_roster_attributes_survive(midgame_payload):
    sim = sim_from_dict(midgame_payload)
    assert sim.teams["harbor"].model_dump(by_alias=True)["location"] == "Harbor"
    assert sim_to_dict(sim)["teams"] == midgame_payload["teams"]


def test_universe_text_is_stable():
    sim = make_sim()
    advance(sim, 123)
    universe = Universe(origin=UniverseOrigin(season=11, day=40), sim=sim)
    text = dumps(universe)
    assert dumps(loads(text)) == text


def test_universe_origin_round_trip():
    universe = Universe(origin=UniverseOrigin(season=3, day=7, offset=2), sim=make_sim())
    restored = universe_from_dict(universe_to_dict(universe))
    assert restored.origin == universe.origin


# ===========================================================================
# Malformed snapshots
# ===========================================================================

class TestMalformed:
    def test_non_numeric_rng_word(self, midgame_payload):
        midgame_payload["rng"]["s0"] = "12abc"
        with pytest.raises(MalformedSnapshotError) as exc_info:
            sim_from_dict(midgame_payload)
        assert any(d.startswith("rng.s0") for d in exc_info.value.details)

    def test_oversized_rng_word(self, midgame_payload):
        midgame_payload["rng"]["s1"] = str(2**64)
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_missing_rng(self, midgame_payload):
        del midgame_payload["rng"]
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_dangling_lineup_player(self, midgame_payload):
        del midgame_payload["players"]["quarry-03"]
        with pytest.raises(MalformedSnapshotError, match="quarry-03"):
            sim_from_dict(midgame_payload)

    def test_game_with_unknown_team(self, midgame_payload):
        midgame_payload["state"]["games"][0]["home_team_id"] = "atlantis"
        with pytest.raises(MalformedSnapshotError, match="atlantis"):
            sim_from_dict(midgame_payload)

    def test_mismatched_player_key(self, midgame_payload):
        player = midgame_payload["players"].pop("mesa-05")
        midgame_payload["players"]["mesa-5"] = player
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_out_of_range_count(self, midgame_payload):
        midgame_payload["state"]["games"][0]["balls"] = 4
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_unknown_phase(self, midgame_payload):
        midgame_payload["state"]["games"][1]["phase"] = "SEVENTH_INNING_STRETCH"
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_runners_sharing_a_base(self, midgame_payload):
        midgame_payload["state"]["games"][0]["runners"] = [
            {"name": "Lead", "base": 2}, {"name": "Trail", "base": 2},
        ]
        with pytest.raises(MalformedSnapshotError) as exc_info:
            sim_from_dict(midgame_payload)
        assert any("runners" in d for d in exc_info.value.details)

    def test_runners_trailing_first(self, midgame_payload):
        midgame_payload["state"]["games"][0]["runners"] = [
            {"name": "Trail", "base": 1}, {"name": "Lead", "base": 3},
        ]
        with pytest.raises(MalformedSnapshotError):
            sim_from_dict(midgame_payload)

    def test_invalid_json(self):
        with pytest.raises(MalformedSnapshotError, match="Invalid JSON"):
            loads("{not json")

    def test_non_object_json(self):
        with pytest.raises(MalformedSnapshotError, match="list"):
            loads("[1, 2, 3]")

    def test_universe_missing_origin(self, midgame_payload):
        with pytest.raises(MalformedSnapshotError):
            universe_from_dict({"sim": copy.deepcopy(midgame_payload)})
