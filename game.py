# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "pydantic>=2.0",
# ]
# ///
"""League simulation -- main entry point.

Run with:  uv run game.py --new                     # create a universe from the sample league
           uv run game.py --new --seed0 1 --seed1 2  # fixed seeds
           uv run game.py --universe <id>           # catch up to now and checkpoint
           uv run game.py --universe <id> --ticks 40 # advance 40 ticks instead
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

import config
from data.rosters import load_league
from data.store import UniverseNotFoundError, UniverseStore
from league import TICK_MS, RosterIntegrityError, SchedulingError, Sim, Universe
from models import UniverseOrigin
from simulation import GameState
from snapshot import MalformedSnapshotError

logger = logging.getLogger(__name__)


def format_game_line(sim: Sim, game: GameState) -> str:
    """One status line for a game: teams, score, situation, last play."""
    home = sim.teams[game.home_team_id]
    away = sim.teams[game.away_team_id]
    return (
        f"{away.nickname} @ {home.nickname}  "
        f"{game.away_score}-{game.home_score}  "
        f"{game.situation_display()}: {game.last_update}"
    )


def print_league(sim: Sim) -> None:
    state = sim.state
    print(f"Day {state.day + 1}, tick {state.tick}")
    for game in state.games:
        print("  " + format_game_line(sim, game))


def create_universe(args: argparse.Namespace, store: UniverseStore) -> int:
    try:
        players, teams = load_league(args.rosters)
    except (OSError, ValidationError) as e:
        print(f"Error loading rosters: {e}", file=sys.stderr)
        return 1

    seed0 = args.seed0 if args.seed0 is not None else random.getrandbits(64)
    seed1 = args.seed1 if args.seed1 is not None else random.getrandbits(64)
    try:
        sim = Sim.from_rosters(seed0, seed1, players, teams)
    except (RosterIntegrityError, SchedulingError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    universe = Universe(
        origin=UniverseOrigin(season=args.season, day=args.day),
        sim=sim,
    )
    universe_id = store.create(universe)
    print(f"Created universe {universe_id} (seeds {seed0}, {seed1})")
    if not args.quiet:
        print_league(sim)
    return 0


def advance_universe(args: argparse.Namespace, store: UniverseStore) -> int:
    try:
        universe = store.load(args.universe)
    except (UniverseNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except MalformedSnapshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        for detail in e.details:
            print(f"  {detail}", file=sys.stderr)
        return 1

    sim = universe.sim
    if args.ticks is not None:
        goal = sim.state.time + timedelta(milliseconds=TICK_MS * args.ticks)
    else:
        goal = datetime.now(timezone.utc)
    ticks = sim.run_to_time(goal)
    logger.info("Advanced universe %s by %d tick(s)", args.universe, ticks)

    if not args.quiet:
        print_league(sim)

    saved = store.save(args.universe, universe, force=args.force_save)
    if not saved and not args.quiet:
        print("Checkpoint skipped (saved too recently); use --force-save to override.")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run an endless simulated baseball league."
    )
    parser.add_argument(
        "--new", action="store_true",
        help="Create a new universe from a roster file.",
    )
    parser.add_argument(
        "--universe", metavar="ID",
        help="Universe id to load and advance.",
    )
    parser.add_argument("--seed0", type=int, default=None, help="First RNG seed word.")
    parser.add_argument("--seed1", type=int, default=None, help="Second RNG seed word.")
    parser.add_argument(
        "--rosters", default=None,
        help="Roster JSON file (default: bundled sample league).",
    )
    parser.add_argument("--season", type=int, default=0, help="Origin season of the rosters.")
    parser.add_argument("--day", type=int, default=0, help="Origin day of the rosters.")
    parser.add_argument(
        "--ticks", type=int, default=None, metavar="N",
        help="Advance N ticks instead of catching up to the wall clock.",
    )
    parser.add_argument(
        "--data-dir", default=None,
        help="Universe store directory (default: $BLASEBOX_DATA_DIR).",
    )
    parser.add_argument(
        "--force-save", action="store_true",
        help="Write the checkpoint even if the last one is recent.",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress league output.")
    args = parser.parse_args()

    config.configure_logging()

    if args.new == bool(args.universe):
        parser.error("pass exactly one of --new or --universe")
    if args.ticks is not None and args.ticks < 0:
        parser.error("--ticks must be non-negative")

    store = UniverseStore(args.data_dir)
    if args.new:
        return create_universe(args, store)
    return advance_universe(args, store)


if __name__ == "__main__":
    sys.exit(main())
