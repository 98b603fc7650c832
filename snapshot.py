# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Snapshot serialization for sims and universes.

Converts a running :class:`league.Sim` to a plain, JSON-ready dict and back.
The representation holds everything needed to resume with bit-identical
behaviour:

    {
      "rng": {"s0": "<decimal>", "s1": "<decimal>"},
      "players": {"<id>": {...}},
      "teams": {"<id>": {...}},
      "state": {
        "day": 4, "tick": 812, "time": <epoch ms>,
        "games": [{...}, ...],
        "records": {"<team id>": {"wins": 2, "losses": 2}}
      }
    }

Restoration validates the payload with the Pydantic snapshot models and
checks every roster reference. Any problem raises
:class:`MalformedSnapshotError`; no partial recovery is attempted.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ValidationError

from league import (
    RecordBook,
    RosterIntegrityError,
    Sim,
    SimState,
    TeamRecord,
    Universe,
    from_epoch_ms,
    to_epoch_ms,
    validate_rosters,
)
from models import RawSim, RawUniverse
from rng import Rng
from simulation import game_state_from_raw, game_state_to_dict


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class MalformedSnapshotError(Exception):
    """Raised when a persisted snapshot cannot be restored."""

    def __init__(self, message: str, details: list[str] | None = None):
        self.details = details or []
        super().__init__(message)


# ---------------------------------------------------------------------------
# Sim <-> dict
# ---------------------------------------------------------------------------

def sim_to_dict(sim: Sim) -> dict:
    """Capture the full state of ``sim``."""
    return {
        "rng": sim.rng.to_dict(),
        "players": {pid: p.model_dump(by_alias=True) for pid, p in sim.players.items()},
        "teams": {tid: t.model_dump(by_alias=True) for tid, t in sim.teams.items()},
        "state": {
            "day": sim.state.day,
            "games": [game_state_to_dict(g) for g in sim.state.games],
            "records": sim.state.records.to_dict(),
            "tick": sim.state.tick,
            "time": to_epoch_ms(sim.state.time),
        },
    }


def _validate(model: type[BaseModel], payload: Any, what: str) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        details = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        raise MalformedSnapshotError(
            f"Invalid {what} snapshot ({len(details)} error(s))", details=details,
        ) from exc


def _sim_from_raw(raw: RawSim) -> Sim:
    players = dict(raw.players)
    teams = dict(raw.teams)

    try:
        validate_rosters(players, teams)
    except RosterIntegrityError as exc:
        raise MalformedSnapshotError(f"Dangling roster reference: {exc}") from exc

    for pid, player in players.items():
        if player.id != pid:
            raise MalformedSnapshotError(f"Player keyed {pid!r} has id {player.id!r}")
    for tid, team in teams.items():
        if team.id != tid:
            raise MalformedSnapshotError(f"Team keyed {tid!r} has id {team.id!r}")

    for i, game in enumerate(raw.state.games):
        for team_id in (game.home_team_id, game.away_team_id):
            if team_id not in teams:
                raise MalformedSnapshotError(
                    f"Game {i} references unknown team {team_id!r}",
                    details=[f"state.games.{i}: {team_id}"],
                )

    state = SimState(
        day=raw.state.day,
        games=[game_state_from_raw(g) for g in raw.state.games],
        records=RecordBook({
            team_id: TeamRecord(wins=rec.wins, losses=rec.losses)
            for team_id, rec in raw.state.records.items()
        }),
        tick=raw.state.tick,
        time=from_epoch_ms(raw.state.time),
    )
    rng = Rng.from_dict(raw.rng.model_dump())
    return Sim(rng, players, teams, state)


def sim_from_dict(payload: dict[str, Any]) -> Sim:
    """Rebuild a :class:`Sim` from :func:`sim_to_dict` output.

    Raises:
        MalformedSnapshotError: On missing fields, invalid RNG words or
            dangling roster references.
    """
    return _sim_from_raw(_validate(RawSim, payload, "sim"))


# ---------------------------------------------------------------------------
# Universe <-> dict
# ---------------------------------------------------------------------------

def universe_to_dict(universe: Universe) -> dict:
    return {
        "origin": universe.origin.model_dump(),
        "sim": sim_to_dict(universe.sim),
    }


def universe_from_dict(payload: dict[str, Any]) -> Universe:
    raw = _validate(RawUniverse, payload, "universe")
    return Universe(origin=raw.origin, sim=_sim_from_raw(raw.sim))


# ---------------------------------------------------------------------------
# JSON text
# ---------------------------------------------------------------------------

def dumps(universe: Universe) -> str:
    return json.dumps(universe_to_dict(universe), separators=(",", ":"))


def loads(text: str) -> Universe:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedSnapshotError(f"Invalid JSON snapshot: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedSnapshotError(
            f"Snapshot must be a JSON object, got {type(payload).__name__}"
        )
    return universe_from_dict(payload)
