# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""File-based universe store.

Persists universe snapshots as JSON files in a store directory, one file
per universe id. Checkpoint writes are rate limited per universe by an
injected :class:`CheckpointThrottle` so a caller can save after every
catch-up without hammering the disk.

Usage::

    from data.store import UniverseStore

    store = UniverseStore()                      # uses the configured dir
    store = UniverseStore("/tmp/universes")      # custom directory

    universe_id = store.create(universe)         # always written
    store.save(universe_id, universe)            # skipped if too recent
    universe = store.load(universe_id)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

import config
from league import Universe, to_epoch_ms
from snapshot import dumps, loads

logger = logging.getLogger(__name__)


class UniverseNotFoundError(FileNotFoundError):
    """Raised when no snapshot exists for a universe id."""

    def __init__(self, universe_id: str):
        self.universe_id = universe_id
        super().__init__(f"Universe not found: {universe_id}")


# ---------------------------------------------------------------------------
# Checkpoint throttle
# ---------------------------------------------------------------------------

class CheckpointThrottle:
    """Remembers the last checkpoint time of each universe.

    Args:
        interval_ms: Minimum milliseconds between two checkpoints of the
            same universe. Defaults to the configured interval.
    """

    def __init__(self, interval_ms: int | None = None) -> None:
        if interval_ms is None:
            interval_ms = config.get_checkpoint_interval_ms()
        self.interval_ms = interval_ms
        self._last: dict[str, datetime] = {}

    def should_checkpoint(self, universe_id: str, now: datetime) -> bool:
        last = self._last.get(universe_id)
        if last is None:
            return True
        return to_epoch_ms(now) - to_epoch_ms(last) >= self.interval_ms

    def mark(self, universe_id: str, now: datetime) -> None:
        self._last[universe_id] = now

    def last_checkpoint(self, universe_id: str) -> datetime | None:
        return self._last.get(universe_id)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class UniverseStore:
    """Directory of universe snapshots.

    Args:
        root_dir: Directory holding ``<universe id>.json`` files. Created on
            first write. Defaults to the configured data directory.
        throttle: Checkpoint throttle shared by every save through this
            store. Defaults to a fresh throttle with the configured interval.
    """

    def __init__(self, root_dir: str | Path | None = None,
                 throttle: CheckpointThrottle | None = None) -> None:
        self._root = Path(root_dir) if root_dir is not None else config.get_data_dir()
        self.throttle = throttle or CheckpointThrottle()

    @property
    def root_dir(self) -> Path:
        return self._root

    def create(self, universe: Universe, now: datetime | None = None) -> str:
        """Write a new universe and return its id."""
        universe_id = uuid.uuid4().hex
        now = now or datetime.now(timezone.utc)
        self._write(universe_id, universe)
        self.throttle.mark(universe_id, now)
        logger.info("Created universe %s", universe_id)
        return universe_id

    def save(self, universe_id: str, universe: Universe,
             now: datetime | None = None, force: bool = False) -> bool:
        """Checkpoint a universe.

        Returns:
            ``True`` if the snapshot was written, ``False`` if the last
            checkpoint is too recent.
        """
        now = now or datetime.now(timezone.utc)
        if not force and not self.throttle.should_checkpoint(universe_id, now):
            last = self.throttle.last_checkpoint(universe_id)
            logger.info(
                "Last checkpoint of %s was only %.1f seconds ago; skipping",
                universe_id, (to_epoch_ms(now) - to_epoch_ms(last)) / 1000,
            )
            return False
        self._write(universe_id, universe)
        self.throttle.mark(universe_id, now)
        logger.info("Saved universe %s at tick %d", universe_id, universe.sim.state.tick)
        return True

    def load(self, universe_id: str) -> Universe:
        """Read a universe back.

        Raises:
            UniverseNotFoundError: If no snapshot exists.
            snapshot.MalformedSnapshotError: If the snapshot is invalid.
        """
        path = self._path_for(universe_id)
        if not path.exists():
            raise UniverseNotFoundError(universe_id)
        with open(path) as f:
            universe = loads(f.read())
        # A store opened by a new process still honours the last write
        if self.throttle.last_checkpoint(universe_id) is None:
            written = datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
            self.throttle.mark(universe_id, written)
        return universe

    def exists(self, universe_id: str) -> bool:
        return self._path_for(universe_id).exists()

    def list_ids(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.stem for p in self._root.glob("*.json"))

    # -- helpers -----------------------------------------------------------

    def _write(self, universe_id: str, universe: Universe) -> Path:
        path = self._path_for(universe_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            f.write(dumps(universe))
        tmp_path.replace(path)  # atomic rename
        return path

    def _path_for(self, universe_id: str) -> Path:
        if not universe_id or "/" in universe_id or "\\" in universe_id or universe_id.startswith("."):
            raise ValueError(f"Invalid universe id: {universe_id!r}")
        return self._root / f"{universe_id}.json"
