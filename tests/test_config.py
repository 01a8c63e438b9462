"""Tests for configuration loading."""

from pathlib import Path

import pytest

from habits.config import HabitsConfig, default_data_dir, load_config
from habits.store import InitializationError


class TestHabitsConfig:
    """Tests for the HabitsConfig dataclass."""

    def test_defaults(self, monkeypatch, tmp_path: Path):
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        config = HabitsConfig()
        assert config.data_dir == tmp_path / ".habit-tracker"
        assert config.backend == "sqlite"
        assert config.log_level == "INFO"

    def test_derived_paths(self, tmp_path: Path):
        config = HabitsConfig(data_dir=tmp_path)
        assert config.db_path == tmp_path / "habits.db"
        assert config.json_path == tmp_path / "habits.json"
        assert config.log_path == tmp_path / "app.log"
        assert config.activity_dir == tmp_path / "logs"

    def test_expands_user(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = HabitsConfig(data_dir=Path("~/habits"))
        assert config.data_dir == tmp_path / "habits"

    def test_unknown_user_in_data_dir(self):
        with pytest.raises(InitializationError):
            HabitsConfig(data_dir=Path("~no-such-user-for-habits/data"))

    def test_backend_normalized(self, tmp_path: Path):
        assert HabitsConfig(data_dir=tmp_path, backend="JSON").backend == "json"

    def test_invalid_backend(self, tmp_path: Path):
        with pytest.raises(ValueError, match="backend"):
            HabitsConfig(data_dir=tmp_path, backend="postgres")

    def test_invalid_log_level(self, tmp_path: Path):
        with pytest.raises(ValueError, match="log_level"):
            HabitsConfig(data_dir=tmp_path, log_level="LOUD")

    def test_invalid_activity_size(self, tmp_path: Path):
        with pytest.raises(ValueError):
            HabitsConfig(data_dir=tmp_path, activity_log_max_mb=0)


class TestDefaultDataDir:
    """Tests for default_data_dir."""

    def test_unresolvable_home(self, monkeypatch):
        def no_home(cls):
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr(Path, "home", classmethod(no_home))
        with pytest.raises(InitializationError):
            default_data_dir()


class TestLoadConfig:
    """Tests for load_config."""

    def test_reads_environment(self, tmp_path: Path):
        config = load_config(
            {
                "HABITS_DATA_DIR": str(tmp_path),
                "HABITS_BACKEND": "json",
                "HABITS_LOG_LEVEL": "debug",
                "HABITS_ACTIVITY_LOG_MAX_MB": "1.5",
            }
        )
        assert config.data_dir == tmp_path
        assert config.backend == "json"
        assert config.log_level == "DEBUG"
        assert config.activity_log_max_mb == 1.5

    def test_uses_os_environ(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HABITS_DATA_DIR", str(tmp_path))
        assert load_config().data_dir == tmp_path

    def test_invalid_values_fall_back(self, tmp_path: Path):
        config = load_config(
            {
                "HABITS_DATA_DIR": str(tmp_path),
                "HABITS_BACKEND": "mongo",
                "HABITS_LOG_LEVEL": "chatty",
                "HABITS_ACTIVITY_LOG_MAX_MB": "lots",
            }
        )
        assert config.backend == "sqlite"
        assert config.log_level == "INFO"
        assert config.activity_log_max_mb == 5.0

    def test_negative_size_falls_back(self, tmp_path: Path):
        config = load_config(
            {"HABITS_DATA_DIR": str(tmp_path), "HABITS_ACTIVITY_LOG_MAX_MB": "-2"}
        )
        assert config.activity_log_max_mb == 5.0

    def test_blank_data_dir_uses_default(self, monkeypatch, tmp_path: Path):
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert load_config({"HABITS_DATA_DIR": "  "}).data_dir == tmp_path / ".habit-tracker"
