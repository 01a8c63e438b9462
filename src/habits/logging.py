"""Diagnostic logging setup and the JSONL activity log."""

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_path: Path, level: str = "INFO", verbose: bool = False) -> None:
    """Send the ``habits`` loggers to a file.

    The terminal belongs to the UI, so nothing is written to stderr.

    Args:
        log_path: File to append log records to. Parent dirs are created.
        level: Level name used unless ``verbose`` is set.
        verbose: Log at DEBUG.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("habits")
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else level.upper())
    root.propagate = False


@dataclass
class ActivityEntry:
    """A single activity log entry."""

    timestamp: str
    event: str
    habit_id: str | None = None
    date: str | None = None
    completed: bool | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {}}


class ActivityLog:
    """Append-only JSONL record of store mutations."""

    def __init__(
        self,
        log_dir: str | Path,
        filename: str = "activity.jsonl",
        max_size_mb: float = 5.0,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: ActivityEntry) -> None:
        with self._lock:
            self._rotate_if_needed()
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log(
        self,
        event: str,
        *,
        habit_id: str | None = None,
        date: str | None = None,
        completed: bool | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        self._write(
            ActivityEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                event=event,
                habit_id=habit_id,
                date=date,
                completed=completed,
                error=error,
                extra=extra,
            )
        )
