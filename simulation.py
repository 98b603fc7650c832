# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Pitch-by-pitch game state machine.

Advances one game by exactly one phase transition per call. All randomness
comes from the shared :class:`rng.Rng`, and the draws inside a pitch are
consumed in a fixed order. That order is part of the persisted-state
contract: changing it (or skipping a draw) desynchronises every saved
universe.

Phases run ``NOT_STARTED -> START_GAME -> START_HALF_INNING -> BATTER_UP
<-> PITCH -> GAME_OVER``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from models import GamePhase, Player, RawGameState, Team
from rng import Rng


START_TICK = 1000
STANDARD_TICK = 5000
SCORE_TICK = STANDARD_TICK * 2

# Pitch probabilities
STEAL_ATTEMPT = 0.05
STEAL_CAUGHT = 0.5
IN_STRIKE_ZONE = 0.5
SWING_IN_ZONE = 0.6
SWING_OUT_OF_ZONE = 0.4
CONTACT_IN_ZONE = 0.5
CONTACT_OUT_OF_ZONE = 0.2
FAIR = 0.8
CAUGHT = 0.6
FLY = 0.1
GROUNDOUT_ADVANCE = 0.1
HOME_RUN = 0.1
TRIPLE = 0.15
DOUBLE = 0.4


class UnknownPlayerError(Exception):
    """Raised when a lineup or rotation id has no player during a tick.

    Rosters are validated when a league is built, so this indicates a
    logic fault rather than bad input.
    """

    def __init__(self, player_id: str, team_id: str | None = None):
        self.player_id = player_id
        self.team_id = team_id
        where = f" (team {team_id})" if team_id else ""
        super().__init__(f"Unknown player {player_id!r}{where}")


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

@dataclass
class Runner:
    name: str
    base: int  # 1-3; 4 means scored and is removed in the same tick

    def __repr__(self) -> str:
        return f"Runner({self.name}@{self.base}B)"


@dataclass
class GameState:
    """Mutable state of one matchup. Runners are kept lead runner first."""
    home_team_id: str
    away_team_id: str
    phase: GamePhase = GamePhase.NOT_STARTED
    inning: int = -1
    top: bool = False
    home_score: int = 0
    away_score: int = 0
    home_batter_index: int = -1
    away_batter_index: int = -1
    balls: int = 0
    strikes: int = 0
    outs: int = 0
    runners: list[Runner] = field(default_factory=list)
    last_update: str = ""
    finished: bool = False

    def add_runs(self, runs: int) -> None:
        if self.top:
            self.away_score += runs
        else:
            self.home_score += runs

    def situation_display(self) -> str:
        if self.phase in (GamePhase.NOT_STARTED, GamePhase.START_GAME):
            return "Pregame"
        if self.phase == GamePhase.GAME_OVER:
            return "Final"
        half_str = "Top" if self.top else "Bot"
        return f"{half_str} {self.inning + 1}, {self.balls}-{self.strikes}, {self.outs} out"


def starting_game_state(home_team_id: str, away_team_id: str) -> GameState:
    """Build a fresh game for a matchup."""
    return GameState(home_team_id=home_team_id, away_team_id=away_team_id)


def game_state_to_dict(state: GameState) -> dict:
    """Serialize one game for JSON persistence."""
    return {
        "home_team_id": state.home_team_id,
        "away_team_id": state.away_team_id,
        "phase": state.phase.value,
        "inning": state.inning,
        "top": state.top,
        "home_score": state.home_score,
        "away_score": state.away_score,
        "home_batter_index": state.home_batter_index,
        "away_batter_index": state.away_batter_index,
        "balls": state.balls,
        "strikes": state.strikes,
        "outs": state.outs,
        "runners": [{"name": r.name, "base": r.base} for r in state.runners],
        "last_update": state.last_update,
        "finished": state.finished,
    }


def game_state_from_raw(raw: RawGameState) -> GameState:
    return GameState(
        home_team_id=raw.home_team_id,
        away_team_id=raw.away_team_id,
        phase=raw.phase,
        inning=raw.inning,
        top=raw.top,
        home_score=raw.home_score,
        away_score=raw.away_score,
        home_batter_index=raw.home_batter_index,
        away_batter_index=raw.away_batter_index,
        balls=raw.balls,
        strikes=raw.strikes,
        outs=raw.outs,
        runners=[Runner(name=r.name, base=r.base) for r in raw.runners],
        last_update=raw.last_update,
        finished=raw.finished,
    )


# ---------------------------------------------------------------------------
# Narration helpers
# ---------------------------------------------------------------------------

def base_to_string(base: int) -> str:
    return {1: "first", 2: "second", 3: "third", 4: "fourth"}.get(base, "")


def describe_home_run(runs: int) -> str:
    if runs == 1:
        return "solo"
    return f"{runs}-run"


# ---------------------------------------------------------------------------
# Baserunning
# ---------------------------------------------------------------------------

def push_runners(runners: list[Runner]) -> None:
    """Force runners ahead after the batter takes first base.

    Walks from the trailing runner toward the lead runner; anyone standing
    on or behind the base of the runner behind them moves up one past it.
    """
    for i in range(len(runners) - 2, -1, -1):
        behind = runners[i + 1].base
        if runners[i].base <= behind:
            runners[i].base = behind + 1


def maybe_advance(rng: Rng, runners: list[Runner], threshold: float) -> None:
    """Give each unblocked runner a chance to take an extra base.

    Evaluated lead runner first so a runner only moves into a base the
    runner ahead has left. Blocked runners consume no draw.
    """
    ahead: int | None = None
    for runner in runners:
        if (ahead is None or ahead > runner.base + 1) and rng.next() < threshold:
            runner.base += 1
        ahead = runner.base


def process_outs_and_scores(state: GameState) -> int:
    """Close out the half-inning on three outs, otherwise score runners.

    Returns the number of runs scored.
    """
    if state.outs >= 3:
        state.outs = 0
        state.balls = 0
        state.strikes = 0
        state.runners = []
        late = state.inning >= 8
        away_done_home_leads = late and state.top and state.home_score > state.away_score
        home_done_decided = late and not state.top and state.home_score != state.away_score
        if away_done_home_leads or home_done_decided:
            state.phase = GamePhase.GAME_OVER
        else:
            state.phase = GamePhase.START_HALF_INNING
        return 0

    num_scores = sum(1 for r in state.runners if r.base >= 4)
    if num_scores:
        state.runners = [r for r in state.runners if r.base < 4]
        state.add_runs(num_scores)
        if num_scores == 1:
            state.last_update += " 1 scores."
        else:
            state.last_update += f" {num_scores} score."
    return num_scores


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class GameStateMachine:
    """Advances games one transition at a time against a fixed roster."""

    def __init__(self, rng: Rng, players: dict[str, Player],
                 teams: dict[str, Team]):
        self.rng = rng
        self.players = players
        self.teams = teams

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------

    def team(self, team_id: str) -> Team:
        team = self.teams.get(team_id)
        if team is None:
            raise KeyError(f"Unknown team {team_id!r}")
        return team

    def find_player(self, player_id: str, team_id: str | None = None) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise UnknownPlayerError(player_id, team_id)
        return player

    def batter_for(self, team: Team, index: int) -> Player:
        return self.find_player(team.lineup[index % len(team.lineup)], team.id)

    def pitcher_for(self, team: Team, day: int) -> Player:
        return self.find_player(team.rotation[day % len(team.rotation)], team.id)

    def choose_fielder(self, team: Team) -> Player:
        index = math.floor(self.rng.next() * len(team.lineup))
        return self.find_player(team.lineup[index], team.id)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------

    def tick(self, state: GameState, day: int) -> int | None:
        """Advance ``state`` by one transition.

        Returns a delay hint in milliseconds (doubled when a run scored), or
        ``None`` once the game is over and should no longer be scheduled.
        """
        home = self.team(state.home_team_id)
        away = self.team(state.away_team_id)

        # Everyone on the field must resolve, whatever the phase
        self.pitcher_for(home, day)
        self.pitcher_for(away, day)
        home_batter = self.batter_for(home, state.home_batter_index)
        away_batter = self.batter_for(away, state.away_batter_index)

        phase = state.phase
        if phase == GamePhase.NOT_STARTED:
            state.last_update = "Let's go"
            state.home_score = 0
            state.away_score = 0
            state.phase = GamePhase.START_GAME
            return START_TICK

        if phase == GamePhase.START_GAME:
            # Bottom of the 0th, so the first half-inning flips to the top of the 1st
            state.inning = -1
            state.top = False
            state.home_batter_index = -1
            state.away_batter_index = -1
            state.last_update = "Play Ball!"
            state.phase = GamePhase.START_HALF_INNING
            return STANDARD_TICK

        if phase == GamePhase.START_HALF_INNING:
            if state.top:
                state.top = False
                state.last_update = f"Bottom of {state.inning + 1}, {home.full_name} batting."
            else:
                state.top = True
                state.inning += 1
                state.last_update = f"Top of {state.inning + 1}, {away.full_name} batting."
            state.phase = GamePhase.BATTER_UP
            return STANDARD_TICK

        if phase == GamePhase.BATTER_UP:
            if state.top:
                state.away_batter_index += 1
                batter = self.batter_for(away, state.away_batter_index)
                state.last_update = f"{batter.name} batting for the {away.nickname}."
            else:
                state.home_batter_index += 1
                batter = self.batter_for(home, state.home_batter_index)
                state.last_update = f"{batter.name} batting for the {home.nickname}."
            state.phase = GamePhase.PITCH
            return STANDARD_TICK

        if phase == GamePhase.PITCH:
            batter = away_batter if state.top else home_batter
            fielding = home if state.top else away
            return self._pitch(state, batter, fielding)

        if phase == GamePhase.GAME_OVER:
            state.last_update = "Game over."
            state.finished = True
            return None

        raise ValueError(f"Unhandled game phase {phase!r}")

    def _pitch(self, state: GameState, batter: Player, fielding: Team) -> int:
        rng = self.rng

        # Only the lead runner ever tries to steal
        if state.runners and rng.next() < STEAL_ATTEMPT:
            return self._steal(state)

        in_zone = rng.next() < IN_STRIKE_ZONE
        swings = rng.next() < (SWING_IN_ZONE if in_zone else SWING_OUT_OF_ZONE)
        if not swings:
            if in_zone:
                state.strikes += 1
                state.last_update = f"Strike, looking. {state.balls}-{state.strikes}"
            else:
                state.balls += 1
                state.last_update = f"Ball. {state.balls}-{state.strikes}"
        else:
            contact = rng.next() < (CONTACT_IN_ZONE if in_zone else CONTACT_OUT_OF_ZONE)
            if not contact:
                state.strikes += 1
                state.last_update = f"Strike, swinging. {state.balls}-{state.strikes}"
            elif rng.next() < FAIR:
                self._ball_in_play(state, batter, fielding)
            else:
                # A foul never makes the third strike
                if state.strikes < 2:
                    state.strikes += 1
                state.last_update = f"Foul Ball. {state.balls}-{state.strikes}"

        if state.balls >= 4:
            state.balls = 0
            state.strikes = 0
            state.runners.append(Runner(name=batter.name, base=1))
            push_runners(state.runners)
            state.last_update = f"{batter.name} draws a walk."
            state.phase = GamePhase.BATTER_UP

        if state.strikes >= 3:
            state.outs += 1
            state.balls = 0
            state.strikes = 0

        num_scores = process_outs_and_scores(state)
        return SCORE_TICK if num_scores > 0 else STANDARD_TICK

    def _steal(self, state: GameState) -> int:
        lead = state.runners[0]
        if self.rng.next() < STEAL_CAUGHT:
            state.last_update = (
                f"{lead.name} gets caught stealing {base_to_string(lead.base + 1)} base."
            )
            state.outs += 1
            state.runners.pop(0)
            process_outs_and_scores(state)
            return STANDARD_TICK

        lead.base += 1
        if lead.base >= 4:
            state.add_runs(1)
            state.last_update = f"{lead.name} steals home!"
            state.runners.pop(0)
            return SCORE_TICK
        state.last_update = f"{lead.name} steals {base_to_string(lead.base)} base!"
        return STANDARD_TICK

    def _ball_in_play(self, state: GameState, batter: Player, fielding: Team) -> None:
        rng = self.rng
        # Everything from here gets the batter off the plate
        state.phase = GamePhase.BATTER_UP
        state.balls = 0
        state.strikes = 0

        if rng.next() < CAUGHT:
            if rng.next() < FLY:
                state.outs += 1
                fielder = self.choose_fielder(fielding)
                state.last_update = f"{batter.name} hit a flyout to {fielder.name}."
            else:
                state.outs += 1
                fielder = self.choose_fielder(fielding)
                state.last_update = f"{batter.name} hit a ground out to {fielder.name}."
                maybe_advance(rng, state.runners, GROUNDOUT_ADVANCE)
            return

        if rng.next() < HOME_RUN:
            runs = len(state.runners) + 1
            state.add_runs(runs)
            state.runners = []
            state.last_update = f"{batter.name} hits a {describe_home_run(runs)} home run!"
            return

        triple = rng.next() < TRIPLE
        double = not triple and rng.next() < DOUBLE
        if triple:
            self._hit(state, batter, 3, "Triple")
        elif double:
            self._hit(state, batter, 2, "Double")
        else:
            self._hit(state, batter, 1, "Single")

    def _hit(self, state: GameState, batter: Player, bases: int, hit_type: str) -> None:
        for runner in state.runners:
            runner.base += bases
        state.runners.append(Runner(name=batter.name, base=bases))
        state.last_update = f"{batter.name} hits a {hit_type}!"
