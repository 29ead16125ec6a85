from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable

from ._util import _dt_from_iso, _fmt_date, _fmt_datetime, _now_local, round_half_up
from .errors import TrackerError
from .models import Habit
from .paths import describe_source, resolve_data_path
from .reminder import REMINDER_INTERVAL, ReminderTicker, Session
from .storage import HabitStore
from .tracker import FILTERS, Tracker

BANNER = "=" * 50
BAR_CELLS = 10

EXIT_INTERRUPTED = 130

Ask = Callable[[str], str]


# -------------------------
# Formatting helpers
# -------------------------

def _progress_bar(pct: int, cells: int = BAR_CELLS) -> str:
    filled = max(0, min(cells, round_half_up(pct * cells / 100)))
    return "█" * filled + "░" * (cells - filled)


def _fmt_created(ts: str) -> str:
    dt = _dt_from_iso(ts)
    return _fmt_date(dt) if dt else "unknown-date"


# -------------------------
# Print blocks
# -------------------------

def _print_habit_block(pos: int, habit: Habit) -> None:
    done, pct = habit.progress()
    print(f"{pos}. [{habit.status()}] {habit.name}")
    print(f"   Created  : {_fmt_created(habit.created_at)}")
    print(f"   Progress : {done}/{habit.target_frequency} ({pct}%)")
    print(f"   {_progress_bar(pct)} {pct}%")
    print()


def _print_habits(habits: list[Habit]) -> None:
    if not habits:
        print("(no habits)")
        return
    for i, h in enumerate(habits, start=1):
        _print_habit_block(i, h)


def _print_profile(tracker: Tracker) -> None:
    tracker.refresh_stats()
    p = tracker.profile
    print(BANNER)
    print("USER PROFILE")
    print(BANNER)
    print(f"Name               : {p.name}")
    print(f"Days joined        : {p.days_joined()}")
    print(f"Member since       : {_fmt_created(p.join_date)}")
    print(f"Habits             : {p.total_habits}")
    print(f"Completed this week: {p.completed_this_week}")
    print(BANNER)


def _print_stats(tracker: Tracker) -> None:
    s = tracker.stats()
    print(BANNER)
    print("STATISTICS")
    print(BANNER)
    print(f"Total habits    : {s.total}")
    print(f"Active          : {s.active}")
    print(f"Done            : {s.done}")
    print(f"Average progress: {s.avg_progress}%")
    print(BANNER)


def _print_traversals(tracker: Tracker) -> None:
    print("=== WHILE LOOP DEMO ===")
    for name in tracker.names_while():
        print(name)
    print("=== FOR LOOP DEMO ===")
    for name in tracker.names_for():
        print(name)


def _print_menu() -> None:
    print()
    print(BANNER)
    print("HABIT TRACKER - MAIN MENU")
    print(_fmt_datetime(_now_local()))
    print(BANNER)
    print("1. Show profile")
    print("2. List all habits")
    print("3. List active habits")
    print("4. List done habits")
    print("5. Add a habit")
    print("6. Mark a habit complete")
    print("7. Delete a habit")
    print("8. Show statistics")
    print("9. Loop demo (while/for)")
    print("0. Exit")
    print(BANNER)


# -------------------------
# Menu actions
# -------------------------

def _menu_add(tracker: Tracker, ask: Ask) -> None:
    name = ask("Habit name: ")
    freq = ask("Weekly target (1-7): ")
    habit = tracker.add_habit(name, freq)
    print(f'✓ Added "{habit.name}" ({habit.target_frequency}x per week).')


def _menu_complete(tracker: Tracker, ask: Ask) -> None:
    _print_habits(tracker.list_habits("all"))
    idx = ask("Number of the habit you completed (1..N): ")
    if not idx:
        print("Cancelled.")
        return
    tracker.complete_habit(idx)
    print("✓ Marked complete.")
    _print_habits(tracker.list_habits("done"))


def _menu_delete(tracker: Tracker, ask: Ask) -> None:
    _print_habits(tracker.list_habits("all"))
    idx = ask("Number of the habit to delete (1..N): ")
    if not idx:
        print("Cancelled.")
        return
    sure = ask("Really delete? (y/N): ")
    if sure.lower() != "y":
        print("Cancelled.")
        return
    name = tracker.delete_habit(idx)
    print(f'✓ Deleted "{name}".')


MENU_ACTIONS: dict[str, Callable[[Tracker, Ask], None]] = {
    "1": lambda t, ask: _print_profile(t),
    "2": lambda t, ask: _print_habits(t.list_habits("all")),
    "3": lambda t, ask: _print_habits(t.list_habits("active")),
    "4": lambda t, ask: _print_habits(t.list_habits("done")),
    "5": _menu_add,
    "6": _menu_complete,
    "7": _menu_delete,
    "8": lambda t, ask: _print_stats(t),
    "9": lambda t, ask: _print_traversals(t),
}


def _shutdown(session: Session, ticker: ReminderTicker | None) -> None:
    session.shutting_down = True
    if ticker is not None:
        ticker.stop()


def run_menu(
    tracker: Tracker,
    session: Session,
    ticker: ReminderTicker | None = None,
    reader: Callable[[str], str] | None = None,
) -> int:
    """
    Interactive loop. Returns the process exit status:
    0 for menu exit or end of input, 130 for Ctrl-C.
    """

    def ask(prompt: str) -> str:
        return session.ask(prompt, reader)

    try:
        if ticker is not None:
            ticker.start()
        while True:
            _print_menu()
            choice = ask("Choose [0-9]: ")
            if choice == "0":
                _shutdown(session, ticker)
                print("Exiting...")
                return 0

            action = MENU_ACTIONS.get(choice)
            if action is None:
                print("Invalid choice.")
                continue
            try:
                action(tracker, ask)
            except TrackerError as e:
                print(f"[ERROR] {e}")
    except KeyboardInterrupt:
        print("\nClosing the app...")
        _shutdown(session, ticker)
        return EXIT_INTERRUPTED
    except EOFError:
        print()
        _shutdown(session, ticker)
        return 0


# -------------------------
# Commands
# -------------------------

def _open_tracker(args: argparse.Namespace) -> Tracker:
    tracker = Tracker(HabitStore(args.data_path))
    tracker.load()
    if args.name:
        tracker.profile.name = args.name
    return tracker


def cmd_menu(args: argparse.Namespace) -> None:
    tracker = _open_tracker(args)
    session = Session()
    ticker = None if args.no_reminders else ReminderTicker(tracker, session, args.reminder_interval)

    print(BANNER)
    print("HABIT TRACKER CLI")
    print(f"Now: {_fmt_datetime(_now_local())}")
    print(BANNER)

    code = run_menu(tracker, session, ticker)
    if code:
        raise SystemExit(code)


def cmd_list(args: argparse.Namespace) -> None:
    tracker = _open_tracker(args)
    _print_habits(tracker.list_habits(args.filter))


def cmd_stats(args: argparse.Namespace) -> None:
    _print_stats(_open_tracker(args))


def cmd_profile(args: argparse.Namespace) -> None:
    _print_profile(_open_tracker(args))


def cmd_add(args: argparse.Namespace) -> None:
    tracker = _open_tracker(args)
    habit = tracker.add_habit(args.habit, args.target)
    print(f'✓ Added "{habit.name}" ({habit.target_frequency}x per week).')


def cmd_done(args: argparse.Namespace) -> None:
    tracker = _open_tracker(args)
    habit = tracker.complete_habit(args.index)
    done, pct = habit.progress()
    print(f'✓ Marked "{habit.name}" complete: {done}/{habit.target_frequency} ({pct}%)')


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {describe_source(args.data, args.profile)}")


def cmd_reset(args: argparse.Namespace) -> None:
    if not args.yes:
        raise SystemExit("Refusing to reset without --yes (this deletes all habits).")
    tracker = _open_tracker(args)
    before = len(tracker.habits)
    tracker.clear()
    print(f"🧹 Reset: deleted {before} habits and {args.data_path}.")


def main(argv=None) -> None:
    p = argparse.ArgumentParser(prog="habits", description="Weekly habit tracker")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--name", default=None, help="Display name stored in the profile")
    p.add_argument("--reminder-interval", type=float, default=REMINDER_INTERVAL,
                   help=f"Seconds between reminders (default {REMINDER_INTERVAL:g})")
    p.add_argument("--no-reminders", action="store_true", help="Disable the periodic reminder")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    sub = p.add_subparsers(dest="cmd")
    sub.add_parser("menu", help="Interactive menu (default)").set_defaults(func=cmd_menu)
    sub.add_parser("stats", help="Show aggregate stats").set_defaults(func=cmd_stats)
    sub.add_parser("profile", help="Show the user profile").set_defaults(func=cmd_profile)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)

    ls = sub.add_parser("list", help="List habits")
    ls.add_argument("--filter", choices=list(FILTERS), default="all")
    ls.set_defaults(func=cmd_list)

    add = sub.add_parser("add", help="Add a habit")
    add.add_argument("habit", help="Habit name")
    add.add_argument("--target", required=True, help="Completions per week (1-7)")
    add.set_defaults(func=cmd_add)

    done = sub.add_parser("done", help="Mark a habit complete for today")
    done.add_argument("index", help="Habit number as shown by `habits list`")
    done.set_defaults(func=cmd_done)

    reset = sub.add_parser("reset", help="Delete ALL habits and the data file (requires --yes)")
    reset.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    reset.set_defaults(func=cmd_reset)

    args = p.parse_args(argv)
    if args.reminder_interval <= 0:
        p.error("--reminder-interval must be positive")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    args.data_path = resolve_data_path(args.data, args.profile)
    func = getattr(args, "func", cmd_menu)

    try:
        func(args)
    except TrackerError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
