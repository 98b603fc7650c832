# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""League orchestration: matchup scheduling and the tick loop.

A :class:`Sim` owns the shared RNG, the rosters, and every game of the
current day. ``run_to_time`` catches the league up to a target time one
fixed tick at a time; within a tick the games are advanced strictly in list
order because they all draw from the same RNG stream.

Days only roll over as a whole: once every game of the day has reached
``GAME_OVER`` the record book is updated and the next day's games are
created. Pairings are re-shuffled every third day, giving 3-day series.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence, TypeVar

from models import GamePhase, Player, Team, UniverseOrigin
from rng import Rng
from simulation import GameState, GameStateMachine, starting_game_state

logger = logging.getLogger(__name__)

TICK_MS = 5 * 1000
SERIES_LENGTH = 3

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RosterIntegrityError(Exception):
    """Raised when a roster cannot support a league.

    Covers lineup/rotation ids with no matching player and teams with an
    empty lineup or rotation.
    """

    def __init__(self, message: str, team_id: str | None = None,
                 player_id: str | None = None):
        self.team_id = team_id
        self.player_id = player_id
        super().__init__(message)


class SchedulingError(ValueError):
    """Raised when teams cannot be paired into matchups."""


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def floor_to_tick(moment: datetime) -> datetime:
    """Snap a time down to the nearest tick boundary."""
    ms = to_epoch_ms(moment)
    return from_epoch_ms(ms // TICK_MS * TICK_MS)


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

def shuffle(items: Sequence[T], rng: Rng) -> list[T]:
    """Fisher-Yates shuffle of a copy of ``items`` driven by ``rng``."""
    result = list(items)
    current = len(result)
    while current != 0:
        pick = math.floor(rng.next() * current)
        current -= 1
        result[current], result[pick] = result[pick], result[current]
    return result


def pairwise(items: Sequence[T]) -> list[tuple[T, T]]:
    """Group consecutive items into ``(home, away)`` pairs."""
    if len(items) % 2:
        raise SchedulingError(f"Cannot pair an odd number of teams ({len(items)})")
    return [(items[i], items[i + 1]) for i in range(0, len(items), 2)]


def new_matchups(rng: Rng, teams: Iterable[Team]) -> list[GameState]:
    """Shuffle the league and start one game per pairing."""
    team_list = list(teams)
    if len(team_list) % 2:
        raise SchedulingError(f"Cannot pair an odd number of teams ({len(team_list)})")
    return [
        starting_game_state(home.id, away.id)
        for home, away in pairwise(shuffle(team_list, rng))
    ]


def restart_matchups(games: Iterable[GameState]) -> list[GameState]:
    """Fresh games for the same pairings (next day of a series)."""
    return [starting_game_state(g.home_team_id, g.away_team_id) for g in games]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class TeamRecord:
    wins: int = 0
    losses: int = 0

    def to_dict(self) -> dict:
        return {"wins": self.wins, "losses": self.losses}


class RecordBook:
    """Win/loss tally per team id for the lifetime of a universe."""

    def __init__(self, records: dict[str, TeamRecord] | None = None):
        self._records: dict[str, TeamRecord] = dict(records or {})

    @classmethod
    def for_teams(cls, team_ids: Iterable[str]) -> RecordBook:
        return cls({team_id: TeamRecord() for team_id in team_ids})

    def get(self, team_id: str) -> TeamRecord:
        if team_id not in self._records:
            self._records[team_id] = TeamRecord()
        return self._records[team_id]

    def record_game(self, game: GameState) -> None:
        # Ties go to the away team
        if game.home_score > game.away_score:
            winner, loser = game.home_team_id, game.away_team_id
        else:
            winner, loser = game.away_team_id, game.home_team_id
        self.get(winner).wins += 1
        self.get(loser).losses += 1

    def to_dict(self) -> dict:
        return {team_id: rec.to_dict() for team_id, rec in self._records.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordBook):
            return NotImplemented
        return self._records == other._records


# ---------------------------------------------------------------------------
# Sim
# ---------------------------------------------------------------------------

@dataclass
class SimState:
    day: int
    games: list[GameState]
    records: RecordBook
    tick: int = 0
    time: datetime = field(default_factory=lambda: floor_to_tick(datetime.now(timezone.utc)))


def validate_rosters(players: dict[str, Player], teams: dict[str, Team]) -> None:
    """Check that every lineup and rotation slot resolves to a player."""
    for team in teams.values():
        if not team.lineup:
            raise RosterIntegrityError(f"Team {team.id!r} has an empty lineup", team_id=team.id)
        if not team.rotation:
            raise RosterIntegrityError(f"Team {team.id!r} has an empty rotation", team_id=team.id)
        for player_id in [*team.lineup, *team.rotation]:
            if player_id not in players:
                raise RosterIntegrityError(
                    f"Team {team.id!r} lists unknown player {player_id!r}",
                    team_id=team.id, player_id=player_id,
                )


class Sim:
    """Drives every game of a league forward in simulated time."""

    def __init__(self, rng: Rng, players: dict[str, Player],
                 teams: dict[str, Team], state: SimState):
        self.rng = rng
        self.players = players
        self.teams = teams
        self.state = state
        self.machine = GameStateMachine(rng, players, teams)

    @classmethod
    def from_rosters(cls, seed0: int, seed1: int, players: Iterable[Player],
                     teams: Iterable[Team], now: datetime | None = None) -> Sim:
        """Start a new league on day 0.

        Raises:
            RosterIntegrityError: If a lineup or rotation cannot be resolved.
            SchedulingError: If the team count is odd.
        """
        rng = Rng(seed0, seed1)
        player_map = {p.id: p for p in players}
        team_map = {t.id: t for t in teams}
        validate_rosters(player_map, team_map)

        if now is None:
            now = datetime.now(timezone.utc)
        state = SimState(
            day=0,
            games=new_matchups(rng, team_map.values()),
            records=RecordBook.for_teams(team_map),
            tick=0,
            time=floor_to_tick(now),
        )
        logger.info("Created league with %d teams and %d games per day",
                    len(team_map), len(state.games))
        return cls(rng, player_map, team_map, state)

    def run_to_time(self, goal_time: datetime) -> int:
        """Tick until simulated time reaches ``goal_time``.

        Returns the number of ticks run. Pass the value of
        :meth:`next_tick_time` (or "now") to catch up.
        """
        if goal_time.tzinfo is None:
            goal_time = goal_time.replace(tzinfo=timezone.utc)
        step = timedelta(milliseconds=TICK_MS)
        ticks = 0
        while self.state.time < goal_time:
            self._tick()
            self.state.tick += 1
            self.state.time = self.state.time + step
            ticks += 1
        logger.debug("Ran %d tick(s)", ticks)
        return ticks

    def next_tick_time(self) -> datetime:
        return self.state.time + timedelta(milliseconds=TICK_MS)

    def _tick(self) -> None:
        state = self.state
        for game in state.games:
            if not game.finished:
                self.machine.tick(game, state.day)

        if all(game.phase == GamePhase.GAME_OVER for game in state.games):
            for game in state.games:
                state.records.record_game(game)
            state.day += 1
            if state.day % SERIES_LENGTH == 0:
                state.games = new_matchups(self.rng, self.teams.values())
            else:
                state.games = restart_matchups(state.games)
            logger.info("Day %d complete, starting day %d", state.day - 1, state.day)

    def pairings(self) -> list[tuple[str, str]]:
        return [(g.home_team_id, g.away_team_id) for g in self.state.games]


@dataclass
class Universe:
    """A league plus where in history its rosters came from."""
    origin: UniverseOrigin
    sim: Sim
