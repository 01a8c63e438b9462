"""SQLite storage for habits and their completions."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

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

SCHEMA = """
CREATE TABLE IF NOT EXISTS habits (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS completions (
    habit_id        TEXT NOT NULL,
    completed_date  TEXT NOT NULL,
    is_completed    INTEGER NOT NULL,
    PRIMARY KEY (habit_id, completed_date),
    FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE CASCADE
);
"""


class SQLiteHabitStore(HabitStore):
    """Persistent habit storage in a local SQLite database.

    All threads share one connection; the store lock keeps writers apart
    from readers. Every mutation runs inside a single ``BEGIN IMMEDIATE``
    transaction and is rolled back as a unit if any statement fails.
    """

    def __init__(self, db_path: Path, activity: ActivityLog | None = None) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
            activity: Optional activity log receiving one entry per mutation.
        """
        super().__init__(activity)
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the store's database connection."""
        with self._conn_lock:
            if self._conn is None:
                conn = sqlite3.connect(
                    self.db_path, isolation_level=None, check_same_thread=False
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                self._conn = conn
            return self._conn

    def open(self) -> None:
        """Create the data directory and the habits/completions tables."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(
                f"Cannot create data directory {self.db_path.parent}: {e}"
            ) from e

        try:
            self._get_connection().executescript(SCHEMA)
        except sqlite3.Error as e:
            self.close()
            raise InitializationError(f"Cannot open database {self.db_path}: {e}") from e
        logger.info("Opened habit database at %s", self.db_path)

    def close(self) -> None:
        """Close the database connection. A later call reconnects."""
        with self._conn_lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block in one write transaction, translating sqlite errors."""
        try:
            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StoreIOError(f"Cannot start transaction on {self.db_path}: {e}") from e

        try:
            yield conn
        except BaseException as e:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error as rollback_error:
                logger.error("Rollback failed: %s", rollback_error)
            if isinstance(e, sqlite3.Error):
                raise StoreIOError(f"Write to {self.db_path} failed: {e}") from e
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise StoreIOError(f"Commit to {self.db_path} failed: {e}") from e

    @staticmethod
    def _exists(conn: sqlite3.Connection, habit_id: str) -> bool:
        row = conn.execute("SELECT 1 FROM habits WHERE id = ?", (habit_id,)).fetchone()
        return row is not None

    @staticmethod
    def _write_completions(conn: sqlite3.Connection, habit: Habit) -> None:
        conn.executemany(
            """
            INSERT INTO completions (habit_id, completed_date, is_completed)
            VALUES (?, ?, ?)
            """,
            [(habit.id, day, int(done)) for day, done in habit.completions.items()],
        )

    def _insert(self, habit: Habit) -> None:
        with self._transaction() as conn:
            if self._exists(conn, habit.id):
                raise IdentityConflictError(f"Habit {habit.id} already exists")
            conn.execute(
                "INSERT INTO habits (id, name, created_at) VALUES (?, ?, ?)",
                (habit.id, habit.name, habit.created_at.isoformat()),
            )
            self._write_completions(conn, habit)

    def _remove(self, habit_id: str) -> bool:
        with self._transaction() as conn:
            conn.execute("DELETE FROM completions WHERE habit_id = ?", (habit_id,))
            cursor = conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))
            return cursor.rowcount > 0

    def _replace(self, habit: Habit) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE habits SET name = ? WHERE id = ?", (habit.name, habit.id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Habit {habit.id} not found")
            conn.execute("DELETE FROM completions WHERE habit_id = ?", (habit.id,))
            self._write_completions(conn, habit)

    def _upsert_completion(self, habit_id: str, day: str, completed: bool) -> None:
        with self._transaction() as conn:
            if not self._exists(conn, habit_id):
                raise NotFoundError(f"Habit {habit_id} not found")
            conn.execute(
                """
                INSERT INTO completions (habit_id, completed_date, is_completed)
                VALUES (?, ?, ?)
                ON CONFLICT(habit_id, completed_date) DO UPDATE SET
                    is_completed = excluded.is_completed
                """,
                (habit_id, day, int(completed)),
            )

    def _load_all(self) -> list[Habit]:
        try:
            rows = self._get_connection().execute(
                """
                SELECT h.id, h.name, h.created_at, c.completed_date, c.is_completed
                FROM habits h
                LEFT JOIN completions c ON c.habit_id = h.id
                ORDER BY h.created_at, h.id, c.completed_date
                """
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreIOError(f"Cannot read habits from {self.db_path}: {e}") from e

        habits: dict[str, Habit] = {}
        for row in rows:
            habit = habits.get(row["id"])
            if habit is None:
                habit = Habit(
                    id=row["id"],
                    name=row["name"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                habits[habit.id] = habit
            if row["completed_date"] is not None:
                habit.completions[row["completed_date"]] = bool(row["is_completed"])
        return list(habits.values())
