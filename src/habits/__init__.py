"""Terminal habit tracker with durable local storage."""

from .model import Habit, format_day, local_today
from .store import (
    HabitStore,
    HabitStoreError,
    IdentityConflictError,
    InitializationError,
    JSONHabitStore,
    NotFoundError,
    SQLiteHabitStore,
    StoreIOError,
    open_store,
)

__version__ = "0.1.0"

__all__ = [
    "Habit",
    "HabitStore",
    "HabitStoreError",
    "IdentityConflictError",
    "InitializationError",
    "JSONHabitStore",
    "NotFoundError",
    "SQLiteHabitStore",
    "StoreIOError",
    "format_day",
    "local_today",
    "open_store",
]
