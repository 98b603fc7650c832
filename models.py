# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the league simulation.

Roster records arrive from the roster supplier and snapshot records cross
the persistence boundary; both are validated with these Pydantic models.
The live simulation works on plain dataclasses (see ``simulation.py`` and
``league.py``) and converts at the edges.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class GamePhase(str, Enum):
    """Step of a game's state machine. Read as "what happens next"."""
    NOT_STARTED = "NOT_STARTED"
    START_GAME = "START_GAME"
    START_HALF_INNING = "START_HALF_INNING"
    BATTER_UP = "BATTER_UP"
    PITCH = "PITCH"
    GAME_OVER = "GAME_OVER"


# ---------------------------------------------------------------------------
# Roster records
# ---------------------------------------------------------------------------

class Player(BaseModel):
    """A player as delivered by the roster supplier.

    Only ``id`` and ``name`` are read by the simulation; every other
    attribute is carried through untouched.
    """
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str


class Team(BaseModel):
    """A team with its batting lineup and pitching rotation (player ids)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = ""
    full_name: str = Field(alias="fullName")
    nickname: str
    lineup: list[str] = Field(default_factory=list)
    rotation: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Snapshot records
# ---------------------------------------------------------------------------

class RawRng(BaseModel):
    """RNG words as decimal strings."""
    s0: str
    s1: str

    @field_validator("s0", "s1")
    @classmethod
    def validate_word(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError(f"expected a decimal unsigned integer, got {v!r}")
        if int(v) >= 2**64:
            raise ValueError(f"{v} does not fit in 64 bits")
        return v


class RawRunner(BaseModel):
    name: str
    base: int = Field(ge=1, le=3)


class RawGameState(BaseModel):
    home_team_id: str
    away_team_id: str
    phase: GamePhase = GamePhase.NOT_STARTED
    inning: int = Field(default=-1, ge=-1)
    top: bool = False
    home_score: int = Field(default=0, ge=0)
    away_score: int = Field(default=0, ge=0)
    home_batter_index: int = Field(default=-1, ge=-1)
    away_batter_index: int = Field(default=-1, ge=-1)
    balls: int = Field(default=0, ge=0, le=3)
    strikes: int = Field(default=0, ge=0, le=2)
    outs: int = Field(default=0, ge=0, le=2)
    runners: list[RawRunner] = Field(default_factory=list)
    last_update: str = ""
    finished: bool = False

    @field_validator("runners")
    @classmethod
    def validate_runner_order(cls, v: list[RawRunner]) -> list[RawRunner]:
        bases = [r.base for r in v]
        if any(ahead <= behind for ahead, behind in zip(bases, bases[1:])):
            raise ValueError(f"runners must be listed lead runner first on distinct bases, got {bases}")
        return v


class RawRecord(BaseModel):
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)


class RawSimState(BaseModel):
    day: int = Field(ge=0)
    games: list[RawGameState]
    records: dict[str, RawRecord] = Field(default_factory=dict)
    tick: int = Field(ge=0)
    time: int = Field(description="Absolute simulated time, epoch milliseconds")


class RawSim(BaseModel):
    rng: RawRng
    players: dict[str, Player]
    teams: dict[str, Team]
    state: RawSimState


class UniverseOrigin(BaseModel):
    """Where in real league history the rosters were taken from."""
    season: int = Field(ge=0)
    day: int = Field(ge=0)
    offset: int = 0


class RawUniverse(BaseModel):
    origin: UniverseOrigin
    sim: RawSim


class League(BaseModel):
    """A roster file: every player and team of one league."""
    players: list[Player]
    teams: list[Team]
