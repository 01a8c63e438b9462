"""Interactive terminal view for the habit tracker.

UI layer only: it keeps a cursor and a copy of the last habit list read
from the store, and sends every change back through the store.
"""

import logging
from typing import Callable

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, Label, Static

from .model import DateProvider, Habit, local_today
from .store import HabitStore, HabitStoreError

logger = logging.getLogger(__name__)

CHECK_MARK = "✓"


def format_habit_line(habit: Habit, selected: bool, today: DateProvider = local_today) -> str:
    """Format one row, e.g. ``> [✓] Read (66.67%)``."""
    cursor = ">" if selected else " "
    checked = CHECK_MARK if habit.is_completed_today(today) else " "
    return f"{cursor} [{checked}] {habit.name} ({habit.completion_rate():.2f}%)"


def render_habit_list(
    habits: list[Habit], cursor: int, today: DateProvider = local_today
) -> Text:
    """Render the habit list as plain text so names are never parsed as markup."""
    if not habits:
        return Text("No habits yet. Press 'a' to add one.", style="dim")

    text = Text()
    for index, habit in enumerate(habits):
        selected = index == cursor
        line = format_habit_line(habit, selected, today)
        text.append(line + "\n", style="bold reverse" if selected else "")
    return text


class HabitNameModal(ModalScreen[str]):
    """Modal asking for a habit name."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, prompt: str, value: str = "") -> None:
        super().__init__()
        self.prompt = prompt
        self.initial_value = value

    def compose(self) -> ComposeResult:
        yield Container(
            Label(self.prompt, id="name-label"),
            Input(value=self.initial_value, placeholder="Habit name", id="name-input"),
            Label("Press Enter to save, Escape to cancel", id="name-hint"),
            id="name-dialog",
        )

    def on_mount(self) -> None:
        self.query_one("#name-input", Input).focus()

    @on(Input.Submitted)
    def on_submit(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss("")


class HabitsApp(App):
    """Main habit tracker TUI."""

    TITLE = "Habit Tracker"

    CSS = """
    #habit-list {
        padding: 1 2;
        height: 1fr;
    }

    HabitNameModal {
        align: center middle;
    }

    #name-dialog {
        width: 60;
        height: auto;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }

    #name-hint {
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
        Binding("space,enter", "toggle", "Toggle"),
        Binding("a", "add", "Add"),
        Binding("e", "rename", "Rename"),
        Binding("d", "delete", "Delete"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, store: HabitStore, today: DateProvider = local_today) -> None:
        super().__init__()
        self.store = store
        self.today = today
        self.habits: list[Habit] = []
        self.cursor = 0

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="habit-list")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_habits()

    @property
    def selected(self) -> Habit | None:
        if not self.habits:
            return None
        return self.habits[self.cursor]

    def refresh_habits(self, select_id: str | None = None) -> None:
        """Re-read the store and redraw, keeping the cursor in range."""
        self.habits = self.store.get_habits()
        if select_id is not None:
            for index, habit in enumerate(self.habits):
                if habit.id == select_id:
                    self.cursor = index
                    break
        self.cursor = max(0, min(self.cursor, len(self.habits) - 1))
        self._redraw()

    def _redraw(self) -> None:
        self.query_one("#habit-list", Static).update(
            render_habit_list(self.habits, self.cursor, self.today)
        )

    def _apply(self, operation: Callable[[], None], failure: str, select_id: str | None = None) -> bool:
        """Run a store mutation, keeping the current view if it fails."""
        try:
            operation()
        except HabitStoreError as e:
            logger.error("%s: %s", failure, e)
            self.notify(f"{failure}: {e}", severity="error")
            return False
        self.refresh_habits(select_id=select_id)
        return True

    def action_cursor_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1
            self._redraw()

    def action_cursor_down(self) -> None:
        if self.cursor < len(self.habits) - 1:
            self.cursor += 1
            self._redraw()

    def action_toggle(self) -> None:
        if self.selected is None:
            return
        habit = self.selected.copy()
        day = self.today()
        completed = habit.toggle_today(lambda: day)
        self._apply(
            lambda: self.store.update_completion(habit.id, day, completed),
            "Could not update habit",
        )

    def action_add(self) -> None:
        self.push_screen(HabitNameModal("New habit name:"), self._add_habit)

    def _add_habit(self, name: str | None) -> None:
        if not name or not name.strip():
            return
        habit = Habit.create(name)
        self._apply(lambda: self.store.add_habit(habit), "Could not add habit", select_id=habit.id)

    def action_rename(self) -> None:
        if self.selected is None:
            return
        self.push_screen(
            HabitNameModal("Rename habit:", value=self.selected.name), self._rename_habit
        )

    def _rename_habit(self, name: str | None) -> None:
        if self.selected is None or not name or not name.strip():
            return
        habit = self.selected.copy()
        habit.rename(name)
        self._apply(lambda: self.store.update_habit(habit), "Could not rename habit")

    def action_delete(self) -> None:
        if self.selected is None:
            return
        habit_id = self.selected.id
        self._apply(lambda: self.store.delete_habit(habit_id), "Could not delete habit")
