# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Roster loading.

Reads a league roster document of the form::

    {
      "players": [{"id": "...", "name": "...", ...}, ...],
      "teams": [{"id": "...", "fullName": "...", "nickname": "...",
                 "lineup": [...], "rotation": [...], ...}, ...]
    }

Team order in the file is the order the scheduler shuffles from, so the
same file and seeds always give the same league.
"""

from __future__ import annotations

import json
from pathlib import Path

from models import League, Player, Team

_LEAGUE_PATH = Path(__file__).resolve().parent / "sample_league.json"


def load_league(path: str | Path | None = None) -> tuple[list[Player], list[Team]]:
    """Load players and teams from a roster file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the document does not match the schema.
    """
    p = Path(path) if path is not None else _LEAGUE_PATH
    with open(p) as f:
        league = League.model_validate(json.load(f))
    return league.players, league.teams
