"""Habit storage backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..logging import ActivityLog
from .base import (
    HabitStore,
    HabitStoreError,
    IdentityConflictError,
    InitializationError,
    NotFoundError,
    ReadWriteLock,
    StoreIOError,
)
from .json_file import JSONHabitStore
from .sqlite import SQLiteHabitStore

if TYPE_CHECKING:
    from ..config import HabitsConfig


def open_store(config: HabitsConfig, activity: ActivityLog | None = None) -> HabitStore:
    """Create and open the store selected by ``config.backend``.

    Raises:
        InitializationError: If the backing store cannot be opened.
    """
    store: HabitStore
    if config.backend == "json":
        store = JSONHabitStore(config.json_path, activity=activity)
    else:
        store = SQLiteHabitStore(config.db_path, activity=activity)
    store.open()
    return store


__all__ = [
    "HabitStore",
    "HabitStoreError",
    "IdentityConflictError",
    "InitializationError",
    "JSONHabitStore",
    "NotFoundError",
    "ReadWriteLock",
    "SQLiteHabitStore",
    "StoreIOError",
    "open_store",
]
