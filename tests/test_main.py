"""Tests for the command-line entry point."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from habits.main import create_parser, main
from habits.model import Habit
from habits.store import SQLiteHabitStore


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path: Path):
    """Run from an empty directory with no habit settings in the environment."""
    monkeypatch.chdir(tmp_path)
    for name in ("HABITS_DATA_DIR", "HABITS_BACKEND", "HABITS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    logger = logging.getLogger("habits")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestParser:
    """Tests for create_parser."""

    def test_defaults(self):
        args = create_parser().parse_args([])
        assert args.verbose is False
        assert args.data_dir is None
        assert args.backend is None
        assert args.list is False

    def test_flags(self):
        args = create_parser().parse_args(["-v", "--backend", "json", "--data-dir", "/x"])
        assert args.verbose is True
        assert args.backend == "json"
        assert args.data_dir == "/x"

    def test_rejects_unknown_backend(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--backend", "redis"])


class TestMain:
    """Tests for main."""

    def test_list_empty(self, tmp_path: Path, capsys):
        data_dir = tmp_path / "data"
        assert main(["--data-dir", str(data_dir), "--list"]) == 0
        assert "No habits yet." in capsys.readouterr().out
        assert (data_dir / "habits.db").exists()
        assert (data_dir / "app.log").exists()

    def test_list_shows_habits(self, tmp_path: Path, capsys):
        data_dir = tmp_path / "data"
        with SQLiteHabitStore(data_dir / "habits.db") as store:
            store.open()
            habit = Habit.create("Read")
            habit.completions.update({"2000-01-01": True, "2000-01-02": False})
            store.add_habit(habit)

        assert main(["--data-dir", str(data_dir), "--list"]) == 0
        assert "[ ] Read (50.00%)" in capsys.readouterr().out

    def test_json_backend(self, tmp_path: Path):
        data_dir = tmp_path / "data"
        assert main(["--data-dir", str(data_dir), "--backend", "json", "--list"]) == 0
        assert (data_dir / "habits.json").exists()

    def test_environment_data_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("HABITS_DATA_DIR", str(tmp_path / "env-data"))
        assert main(["--list"]) == 0
        assert (tmp_path / "env-data" / "habits.db").exists()

    def test_dotenv_file_is_loaded(self, tmp_path: Path):
        """Settings in a .env file in the working directory are picked up."""
        (tmp_path / ".env").write_text(f"HABITS_DATA_DIR={tmp_path / 'dotenv-data'}\n")
        with patch.dict(os.environ):
            assert main(["--list"]) == 0
        assert (tmp_path / "dotenv-data" / "habits.db").exists()

    def test_initialization_failure(self, tmp_path: Path, capsys):
        """An unusable data directory exits with 1 and a message on stderr."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        assert main(["--data-dir", str(blocker / "data"), "--list"]) == 1
        assert "Error initializing storage" in capsys.readouterr().err

    def test_unknown_user_data_dir(self, capsys):
        """A data directory under an unknown user's home is an initialization error."""
        assert main(["--data-dir", "~no-such-user-for-habits/data", "--list"]) == 1
        assert "Error initializing storage" in capsys.readouterr().err

    def test_corrupt_database(self, tmp_path: Path, capsys):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "habits.db").write_bytes(b"garbage" * 500)
        assert main(["--data-dir", str(data_dir), "--list"]) == 1
        assert "Error initializing storage" in capsys.readouterr().err

    def test_runs_app(self, tmp_path: Path):
        """Without --list the TUI is started on the opened store."""
        with patch("habits.app.HabitsApp.run") as run:
            assert main(["--data-dir", str(tmp_path / "data")]) == 0
        run.assert_called_once()
