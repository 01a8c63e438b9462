"""Single-document JSON storage for habits.

The whole collection lives in memory and in one JSON file. Each mutation
builds a new collection, writes it to a temporary file next to the
document, fsyncs it and renames it into place. The in-memory collection
is swapped only after the rename succeeds.
"""

import contextlib
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from ..logging import ActivityLog
from ..model import Habit
from .base import (
    HabitStore,
    IdentityConflictError,
    InitializationError,
    NotFoundError,
    StoreIOError,
)

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1


def _habit_to_dict(habit: Habit) -> dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "created_at": habit.created_at.isoformat(),
        "completions": dict(sorted(habit.completions.items())),
    }


def _habit_from_dict(data: dict[str, Any]) -> Habit:
    return Habit(
        id=str(data["id"]),
        name=str(data["name"]),
        created_at=datetime.fromisoformat(data["created_at"]),
        completions={str(k): bool(v) for k, v in (data.get("completions") or {}).items()},
    )


class JSONHabitStore(HabitStore):
    """Habit storage backed by a single JSON document."""

    def __init__(self, path: Path, activity: ActivityLog | None = None) -> None:
        """Initialize the store with a document path.

        Args:
            path: Path to the JSON document.
            activity: Optional activity log receiving one entry per mutation.
        """
        super().__init__(activity)
        self.path = path
        self._habits: dict[str, Habit] | None = None

    def open(self) -> None:
        """Load the document, creating an empty one if it does not exist."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(
                f"Cannot create data directory {self.path.parent}: {e}"
            ) from e

        if not self.path.exists():
            try:
                self._write_document({})
            except StoreIOError as e:
                raise InitializationError(str(e)) from e
            self._habits = {}
            logger.info("Created habit document at %s", self.path)
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            habits = [_habit_from_dict(item) for item in data.get("habits", [])]
        except (OSError, json.JSONDecodeError) as e:
            raise InitializationError(f"Cannot read {self.path}: {e}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InitializationError(f"Malformed habit document {self.path}: {e}") from e

        self._habits = {}
        for habit in habits:
            if habit.id in self._habits:
                raise InitializationError(f"Duplicate habit id {habit.id} in {self.path}")
            self._habits[habit.id] = habit
        logger.info("Loaded %d habit(s) from %s", len(self._habits), self.path)

    def close(self) -> None:
        self._habits = None

    def _current(self) -> dict[str, Habit]:
        if self._habits is None:
            raise StoreIOError(f"Habit document {self.path} is not open")
        return self._habits

    def _write_document(self, habits: dict[str, Habit]) -> None:
        """Atomically replace the document with ``habits``."""
        data = {
            "version": DOCUMENT_VERSION,
            "habits": [_habit_to_dict(h) for h in habits.values()],
        }
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            raise StoreIOError(f"Cannot write {self.path}: {e}") from e

    def _commit(self, habits: dict[str, Habit]) -> None:
        self._write_document(habits)
        self._habits = habits

    def _insert(self, habit: Habit) -> None:
        current = self._current()
        if habit.id in current:
            raise IdentityConflictError(f"Habit {habit.id} already exists")
        self._commit({**current, habit.id: habit})

    def _remove(self, habit_id: str) -> bool:
        current = self._current()
        if habit_id not in current:
            return False
        self._commit({k: v for k, v in current.items() if k != habit_id})
        return True

    def _replace(self, habit: Habit) -> None:
        current = self._current()
        existing = current.get(habit.id)
        if existing is None:
            raise NotFoundError(f"Habit {habit.id} not found")
        habit.created_at = existing.created_at
        self._commit({**current, habit.id: habit})

    def _upsert_completion(self, habit_id: str, day: str, completed: bool) -> None:
        current = self._current()
        existing = current.get(habit_id)
        if existing is None:
            raise NotFoundError(f"Habit {habit_id} not found")
        updated = existing.copy()
        updated.completions[day] = completed
        self._commit({**current, habit_id: updated})

    def _load_all(self) -> list[Habit]:
        return [habit.copy() for habit in self._current().values()]
