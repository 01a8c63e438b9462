"""Storage contract shared by every habit backend.

A store owns the authoritative habit collection. Callers only ever receive
copies, and every mutation either lands completely on the durable medium or
leaves it untouched.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Iterator

from ..logging import ActivityLog
from ..model import Habit, format_day

logger = logging.getLogger(__name__)


class HabitStoreError(Exception):
    """Base class for store failures."""

    pass


class InitializationError(HabitStoreError):
    """Raised when the data directory or backing store cannot be opened."""

    pass


class IdentityConflictError(HabitStoreError):
    """Raised when adding a habit whose id already exists."""

    pass


class NotFoundError(HabitStoreError):
    """Raised when operating on a habit id that does not exist."""

    pass


class StoreIOError(HabitStoreError):
    """Raised when reading or writing the backing medium fails."""

    pass


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Waiting writers block new readers, so a steady stream of reads cannot
    starve a mutation. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


def _validate(habit: Habit) -> None:
    if not habit.name or not habit.name.strip():
        raise ValueError("Habit name must not be empty")
    for day in habit.completions:
        if format_day(day) != day:
            raise ValueError(f"Completion date must be YYYY-MM-DD, got {day!r}")


def _sort_key(habit: Habit) -> tuple[Any, str]:
    return (habit.created_at, habit.id)


class HabitStore(ABC):
    """Base class for habit stores.

    Subclasses implement the primitive operations against their medium;
    this class wraps them with locking, validation and activity logging.
    Primitives are always called with the appropriate lock held.

    Example:
        store = SQLiteHabitStore(Path("~/.habit-tracker/habits.db").expanduser())
        store.open()

        habit = Habit.create("Read")
        store.add_habit(habit)
        store.update_completion(habit.id, "2024-01-01", True)

        for habit in store.get_habits():
            print(habit.name, habit.completion_rate())
    """

    def __init__(self, activity: ActivityLog | None = None) -> None:
        self.activity = activity
        self._lock = ReadWriteLock()

    @abstractmethod
    def open(self) -> None:
        """Create the data location and backing store if needed.

        Raises:
            InitializationError: If either cannot be created or opened.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release any handles held on the backing store."""
        ...

    @abstractmethod
    def _insert(self, habit: Habit) -> None:
        """Persist a new habit. Raises IdentityConflictError on duplicate id."""
        ...

    @abstractmethod
    def _remove(self, habit_id: str) -> bool:
        """Remove a habit and its completions. Returns whether it existed."""
        ...

    @abstractmethod
    def _replace(self, habit: Habit) -> None:
        """Overwrite name and completions. Raises NotFoundError if absent."""
        ...

    @abstractmethod
    def _upsert_completion(self, habit_id: str, day: str, completed: bool) -> None:
        """Insert or overwrite one day's record. Raises NotFoundError if absent."""
        ...

    @abstractmethod
    def _load_all(self) -> list[Habit]:
        """Read every habit with its completions. Raises StoreIOError."""
        ...

    def add_habit(self, habit: Habit) -> None:
        """Persist a brand-new habit.

        Args:
            habit: The habit to store, with any completions it already has.

        Raises:
            IdentityConflictError: If a habit with the same id exists.
            StoreIOError: If the write fails.
        """
        _validate(habit)
        self._write("habit_added", lambda: self._insert(habit.copy()),
                    habit_id=habit.id, name=habit.name)

    def delete_habit(self, habit_id: str) -> None:
        """Remove a habit and all its completions. Unknown ids are a no-op."""
        removed = False

        def remove() -> None:
            nonlocal removed
            removed = self._remove(habit_id)

        self._write("habit_deleted", remove, habit_id=habit_id)
        if not removed:
            logger.debug("Delete of unknown habit %s ignored", habit_id)

    def update_habit(self, habit: Habit) -> None:
        """Replace the stored name and completion set of an existing habit.

        Raises:
            NotFoundError: If no habit has this id.
            StoreIOError: If the write fails.
        """
        _validate(habit)
        self._write("habit_updated", lambda: self._replace(habit.copy()),
                    habit_id=habit.id, name=habit.name)

    def update_completion(self, habit_id: str, day: date | str, completed: bool) -> None:
        """Record whether a habit was completed on a given day.

        Overwrites the existing record for that day or creates one.

        Args:
            habit_id: Id of an existing habit.
            day: Calendar day, as a date or an ISO ``YYYY-MM-DD`` string.
            completed: The flag to store.

        Raises:
            ValueError: If ``day`` is not a valid date.
            NotFoundError: If no habit has this id.
            StoreIOError: If the write fails.
        """
        key = format_day(day)
        self._write(
            "completion_updated",
            lambda: self._upsert_completion(habit_id, key, bool(completed)),
            habit_id=habit_id,
            date=key,
            completed=bool(completed),
        )

    def get_habits(self) -> list[Habit]:
        """Return every habit, oldest first, ties broken by id.

        Each habit carries its full completion mapping (possibly empty).
        A failed read is logged and yields an empty list instead of
        raising, so the UI can keep running.
        """
        try:
            with self._lock.read():
                habits = self._load_all()
            return sorted(habits, key=_sort_key)
        except Exception as e:
            logger.error("Failed to read habits: %s", e)
            self._record("store_error", error=str(e), operation="get_habits")
            return []

    def _write(self, event: str, operation: Callable[[], None], **fields: Any) -> None:
        try:
            with self._lock.write():
                operation()
        except StoreIOError as e:
            logger.error("%s failed: %s", event, e)
            self._record("store_error", error=str(e), operation=event, **fields)
            raise
        logger.debug("%s %s", event, fields)
        self._record(event, **fields)

    def _record(self, event: str, **fields: Any) -> None:
        if self.activity is None:
            return
        try:
            self.activity.log(event, **fields)
        except OSError as e:
            logger.warning("Cannot write activity log: %s", e)

    def __enter__(self) -> "HabitStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
