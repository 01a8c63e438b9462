"""Application configuration.

Settings come from environment variables (a ``.env`` file is loaded by the
entry point) and fall back to defaults rooted at ``~/.habit-tracker``.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .store.base import InitializationError

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".habit-tracker"
BACKENDS = ("sqlite", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_data_dir() -> Path:
    """Return ``~/.habit-tracker``.

    Raises:
        InitializationError: If the home directory cannot be resolved.
    """
    try:
        return Path.home() / DATA_DIR_NAME
    except (RuntimeError, KeyError) as e:
        raise InitializationError(f"Cannot resolve home directory: {e}") from e


@dataclass
class HabitsConfig:
    """Configuration for the habit tracker.

    Attributes:
        data_dir: Directory holding the database, document and logs.
        backend: ``sqlite`` (default) or ``json``.
        log_level: Level for the diagnostic log file.
        activity_log_max_mb: Size at which the activity log rotates.
    """

    data_dir: Path | None = None
    backend: str = "sqlite"
    log_level: str = "INFO"
    activity_log_max_mb: float = 5.0

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.data_dir is None:
            self.data_dir = default_data_dir()
        try:
            self.data_dir = Path(self.data_dir).expanduser()
        except RuntimeError as e:
            raise InitializationError(f"Cannot expand data directory {self.data_dir}: {e}") from e

        self.backend = self.backend.lower()
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(BACKENDS)}")

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.activity_log_max_mb <= 0:
            raise ValueError("activity_log_max_mb must be positive")

    @property
    def db_path(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / "habits.db"

    @property
    def json_path(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / "habits.json"

    @property
    def log_path(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / "app.log"

    @property
    def activity_dir(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / "logs"


def load_config(env: Mapping[str, str] | None = None) -> HabitsConfig:
    """Build a HabitsConfig from environment variables.

    Recognized variables: ``HABITS_DATA_DIR``, ``HABITS_BACKEND``,
    ``HABITS_LOG_LEVEL`` and ``HABITS_ACTIVITY_LOG_MAX_MB``. Invalid values
    are logged and replaced by their defaults.

    Args:
        env: Mapping to read from. Uses ``os.environ`` if None.

    Returns:
        HabitsConfig instance with loaded values.
    """
    env = os.environ if env is None else env

    data_dir_value = env.get("HABITS_DATA_DIR", "").strip()
    data_dir = Path(data_dir_value) if data_dir_value else None

    backend = env.get("HABITS_BACKEND", "sqlite").strip().lower()
    if backend not in BACKENDS:
        logger.warning("Unknown HABITS_BACKEND %r, using sqlite", backend)
        backend = "sqlite"

    log_level = env.get("HABITS_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        logger.warning("Unknown HABITS_LOG_LEVEL %r, using INFO", log_level)
        log_level = "INFO"

    max_mb = 5.0
    raw_max_mb = env.get("HABITS_ACTIVITY_LOG_MAX_MB")
    if raw_max_mb:
        try:
            max_mb = float(raw_max_mb)
        except ValueError:
            logger.warning("Invalid HABITS_ACTIVITY_LOG_MAX_MB %r, using 5", raw_max_mb)
        if max_mb <= 0:
            logger.warning("HABITS_ACTIVITY_LOG_MAX_MB must be positive, using 5")
            max_mb = 5.0

    return HabitsConfig(
        data_dir=data_dir,
        backend=backend,
        log_level=log_level,
        activity_log_max_mb=max_mb,
    )
