"""Centralized configuration for environment variables."""

import logging
import os
from pathlib import Path

DATA_DIR_ENV = "BLASEBOX_DATA_DIR"
CHECKPOINT_INTERVAL_ENV = "BLASEBOX_CHECKPOINT_INTERVAL_MS"
LOG_LEVEL_ENV = "BLASEBOX_LOG_LEVEL"

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data" / "universes"
DEFAULT_CHECKPOINT_INTERVAL_MS = 60 * 1000
DEFAULT_LOG_LEVEL = "WARNING"


def get_data_dir() -> Path:
    """Return the directory universes are stored in."""
    value = os.environ.get(DATA_DIR_ENV, "")
    return Path(value) if value else DEFAULT_DATA_DIR


def get_checkpoint_interval_ms() -> int:
    """Return the minimum time between checkpoints of one universe."""
    value = os.environ.get(CHECKPOINT_INTERVAL_ENV, "")
    try:
        return max(0, int(value))
    except ValueError:
        return DEFAULT_CHECKPOINT_INTERVAL_MS


def get_log_level() -> str:
    """Return the configured logging level name, or the default."""
    level = os.environ.get(LOG_LEVEL_ENV, "").upper()
    if level and isinstance(logging.getLevelName(level), int):
        return level
    return DEFAULT_LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for command-line runs."""
    logging.basicConfig(
        level=level or get_log_level(),
        format="%(levelname)s: %(message)s",
    )
