"""Habit tracker entry point."""

import argparse
import logging
import sys

from dotenv import find_dotenv, load_dotenv

from .config import BACKENDS, HabitsConfig, load_config
from .logging import ActivityLog, configure_logging
from .model import Habit, local_today
from .store import HabitStore, InitializationError, open_store

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="habits",
        description="Track daily habits in the terminal.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Write debug logs to app.log"
    )
    parser.add_argument(
        "--data-dir", help="Directory for habit data (default: ~/.habit-tracker)"
    )
    parser.add_argument("--backend", choices=BACKENDS, help="Storage backend")
    parser.add_argument(
        "--list", action="store_true", help="Print habits and exit without the TUI"
    )
    return parser


def _build_config(args: argparse.Namespace) -> HabitsConfig:
    """Load config from the environment, then apply CLI overrides."""
    config = load_config()
    return HabitsConfig(
        data_dir=args.data_dir or config.data_dir,
        backend=args.backend or config.backend,
        log_level=config.log_level,
        activity_log_max_mb=config.activity_log_max_mb,
    )


def print_habits(store: HabitStore) -> None:
    """Print one line per habit: today's status, name and completion rate."""
    habits = store.get_habits()
    if not habits:
        print("No habits yet.")
        return
    for habit in habits:
        print(_format_habit(habit))


def _format_habit(habit: Habit) -> str:
    checked = "x" if habit.is_completed_today(local_today) else " "
    return f"[{checked}] {habit.name} ({habit.completion_rate():.2f}%)"


def main(argv: list[str] | None = None) -> int:
    """Run the habit tracker. Returns the process exit code."""
    load_dotenv(find_dotenv(usecwd=True))
    args = create_parser().parse_args(argv)

    try:
        config = _build_config(args)
        configure_logging(config.log_path, config.log_level, verbose=args.verbose)
        activity = ActivityLog(config.activity_dir, max_size_mb=config.activity_log_max_mb)
        store = open_store(config, activity=activity)
    except (InitializationError, OSError) as e:
        print(f"Error initializing storage: {e}", file=sys.stderr)
        return 1

    logger.info("Starting habit tracker with %s backend", config.backend)
    with store:
        if args.list:
            print_habits(store)
            return 0

        from .app import HabitsApp

        HabitsApp(store).run()
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
