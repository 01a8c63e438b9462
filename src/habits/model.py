"""Data model for habits and their daily completions."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable

DateProvider = Callable[[], date]


def local_today() -> date:
    """Return the current calendar day in the system's local timezone."""
    return date.today()


def format_day(day: date | str) -> str:
    """Normalize a day to its ISO ``YYYY-MM-DD`` key.

    Args:
        day: A date, or a string already in ISO format.

    Returns:
        The ISO date string.

    Raises:
        ValueError: If a string is not a valid ISO calendar date.
    """
    if isinstance(day, datetime):
        return day.date().isoformat()
    if isinstance(day, date):
        return day.isoformat()
    return date.fromisoformat(day).isoformat()


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Habit name must not be empty")
    return cleaned


@dataclass
class Habit:
    """A named habit with a per-day completion history.

    Attributes:
        id: Opaque unique identifier, never changes after creation.
        name: Display name.
        created_at: Creation timestamp, used for default ordering.
        completions: ISO date -> completed flag. One entry per day at most.
    """

    id: str
    name: str
    created_at: datetime
    completions: dict[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Stored and compared as naive local time.
        if self.created_at.tzinfo is not None:
            self.created_at = self.created_at.astimezone().replace(tzinfo=None)

    @classmethod
    def create(cls, name: str, now: datetime | None = None) -> "Habit":
        """Build a brand-new habit with a fresh id and no completions."""
        return cls(
            id=uuid.uuid4().hex,
            name=_clean_name(name),
            created_at=now or datetime.now(),
        )

    def rename(self, name: str) -> None:
        self.name = _clean_name(name)

    def toggle_today(self, today: DateProvider = local_today) -> bool:
        """Flip today's completion flag.

        A day with no record becomes completed; the first toggle is always
        an affirmative completion.

        Args:
            today: Provider of the current calendar day.

        Returns:
            The new flag for today.
        """
        key = format_day(today())
        self.completions[key] = not self.completions.get(key, False)
        return self.completions[key]

    def is_completed_today(self, today: DateProvider = local_today) -> bool:
        """Whether today is recorded as completed. Never creates a record."""
        return self.completions.get(format_day(today()), False)

    def completion_rate(self) -> float:
        """Percentage (0-100) of recorded days marked completed.

        Only recorded days count, so a single completed record yields 100.
        """
        if not self.completions:
            return 0.0
        completed = sum(1 for done in self.completions.values() if done)
        return completed / len(self.completions) * 100

    def copy(self) -> "Habit":
        return Habit(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            completions=dict(self.completions),
        )
