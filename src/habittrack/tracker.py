from __future__ import annotations

import logging
from typing import Any, NamedTuple

from ._util import DAYS_IN_WEEK, round_half_up
from .errors import HabitIndexError, PersistenceWriteError, ValidationError
from .models import Habit, Profile
from .storage import HabitStore

log = logging.getLogger(__name__)

FILTERS = ("all", "active", "done")


class HabitStats(NamedTuple):
    total: int
    active: int
    done: int
    avg_progress: int


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        n = float(str(value).strip())
    except ValueError:
        return None
    if not n.is_integer():
        return None
    return int(n)


class Tracker:
    """
    Owns the habit list and profile, and is the only writer of the data file.

    Every mutation persists the whole document before returning. If the write
    fails the in-memory change is undone and PersistenceWriteError propagates,
    so memory never drifts from what is on disk.
    """

    def __init__(self, store: HabitStore, profile: Profile | None = None) -> None:
        self.store = store
        self.profile = profile or Profile()
        self.habits: list[Habit] = []
        self._reminder_index = 0

    # -------------------------
    # Persistence
    # -------------------------

    def load(self) -> None:
        state = self.store.load()
        if state is None:
            self.refresh_stats()
            return
        if state.profile_name is not None:
            self.profile.name = state.profile_name
        if state.join_date is not None:
            self.profile.join_date = state.join_date
        self.habits = state.habits
        log.debug("loaded %d habits from %s", len(self.habits), self.store.path)
        self.refresh_stats()

    def save(self) -> None:
        self.store.save(self.profile, self.habits)

    def clear(self) -> None:
        self.store.clear()
        self.habits = []
        self.refresh_stats()

    def refresh_stats(self) -> None:
        self.profile.update_stats(self.habits)

    # -------------------------
    # CRUD
    # -------------------------

    def add_habit(self, name: str, freq: Any) -> Habit:
        clean = (name or "").strip()
        n = _as_int(freq)
        if not clean or n is None or not 1 <= n <= DAYS_IN_WEEK:
            raise ValidationError(f"Name and weekly target must be valid (1-{DAYS_IN_WEEK}).")

        habit = Habit(name=clean, target_frequency=n)
        self.habits.append(habit)
        try:
            self.save()
        except PersistenceWriteError:
            self.habits.pop()
            raise
        self.refresh_stats()
        self._reminder_index = 0
        return habit

    def complete_habit(self, index: Any) -> Habit:
        habit = self._habit_at(index)
        if not habit.mark_complete():
            return habit
        try:
            self.save()
        except PersistenceWriteError:
            habit.completions.pop()
            raise
        self.refresh_stats()
        return habit

    def delete_habit(self, index: Any) -> str:
        habit = self._habit_at(index)
        pos = next(i for i, h in enumerate(self.habits) if h is habit)
        del self.habits[pos]
        try:
            self.save()
        except PersistenceWriteError:
            self.habits.insert(pos, habit)
            raise
        self.refresh_stats()
        return habit.name or "(deleted)"

    def _habit_at(self, index: Any) -> Habit:
        # indices follow the full listing the user last saw, not storage order
        shown = self.list_habits("all")
        i = _as_int(index)
        if i is None or not 1 <= i <= len(shown):
            raise HabitIndexError("Invalid habit number.")
        return shown[i - 1]

    # -------------------------
    # Queries
    # -------------------------

    def list_habits(self, which: str = "all") -> list[Habit]:
        if which not in FILTERS:
            raise ValidationError(f"Unknown filter {which!r} (expected one of {', '.join(FILTERS)}).")

        rows = [(h.is_completed_this_week(), h) for h in self.habits]
        if which == "active":
            rows = [r for r in rows if not r[0]]
        elif which == "done":
            rows = [r for r in rows if r[0]]

        # stable: equal keys keep insertion order
        rows.sort(key=lambda r: (r[0], r[1].created_dt()))
        return [h for _, h in rows]

    def stats(self) -> HabitStats:
        total = len(self.habits)
        done = sum(1 for h in self.habits if h.is_completed_this_week())
        if total == 0:
            avg = 0
        else:
            avg = round_half_up(sum(h.progress().pct for h in self.habits) / total)
        return HabitStats(total=total, active=total - done, done=done, avg_progress=avg)

    def names_while(self) -> list[str]:
        names = []
        i = 0
        while i < len(self.habits):
            names.append(self.habits[i].name)
            i += 1
        return names

    def names_for(self) -> list[str]:
        return [h.name for h in self.habits]

    # -------------------------
    # Reminder rotation
    # -------------------------

    def next_reminder(self) -> Habit | None:
        active = [h for h in list(self.habits) if not h.is_completed_this_week()]
        if not active:
            return None
        target = active[self._reminder_index % len(active)]
        self._reminder_index += 1
        return target
