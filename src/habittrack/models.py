from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, NamedTuple

from ._util import (
    DAYS_IN_WEEK,
    _date_from_iso,
    _dt_from_iso,
    _now_iso,
    _now_local,
    _today,
    round_half_up,
    week_window,
)
from .errors import ValidationError

DEFAULT_HABIT_NAME = "Unnamed Habit"
DEFAULT_TARGET = DAYS_IN_WEEK
DEFAULT_PROFILE_NAME = "Friend"

STATUS_DONE = "Done"
STATUS_ACTIVE = "Active"


def _new_id() -> str:
    return uuid.uuid4().hex


class Progress(NamedTuple):
    done: int
    pct: int


@dataclass
class Habit:
    name: str
    target_frequency: int = DEFAULT_TARGET
    completions: list[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_now_iso)

    def mark_complete(self, today: date | None = None) -> bool:
        day = (today or _today()).isoformat()
        if day in self.completions:
            return False
        self.completions.append(day)
        return True

    def this_week_completions(self, today: date | None = None) -> int:
        start, end = week_window(today)
        count = 0
        for raw in self.completions:
            d = _date_from_iso(raw)
            if d and start <= d < end:
                count += 1
        return count

    def is_completed_this_week(self, today: date | None = None) -> bool:
        return self.this_week_completions(today) >= self.target_frequency

    def progress(self, today: date | None = None) -> Progress:
        done = self.this_week_completions(today)
        pct = min(100, round_half_up(done / self.target_frequency * 100))
        return Progress(done, pct)

    def status(self, today: date | None = None) -> str:
        return STATUS_DONE if self.is_completed_this_week(today) else STATUS_ACTIVE

    def created_dt(self) -> datetime:
        return _dt_from_iso(self.created_at) or _now_local()

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "targetFrequency": self.target_frequency,
            "completions": list(self.completions),
            "createdAt": self.created_at,
        }


class HabitParseResult(NamedTuple):
    habit: Habit
    defaults: list[str]

    @property
    def clean(self) -> bool:
        return not self.defaults


def _coerce_target(raw: Any) -> tuple[int, bool]:
    """Returns (target, adjusted). Non-numeric falls back to the daily target."""
    if raw is None or isinstance(raw, bool):
        return DEFAULT_TARGET, True
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_TARGET, True
    if math.isnan(n):
        return DEFAULT_TARGET, True
    n = min(max(n, 1), DAYS_IN_WEEK)
    target = round_half_up(n)
    return target, target != raw


def _coerce_completions(raw: Any) -> tuple[list[str], bool]:
    if not isinstance(raw, list):
        return [], True
    seen: set[str] = set()
    out: list[str] = []
    for item in raw:
        d = _date_from_iso(item) if isinstance(item, str) else None
        if d is None:
            continue
        day = d.isoformat()
        if day in seen:
            continue
        seen.add(day)
        out.append(day)
    return out, out != raw


def parse_habit(record: Any) -> HabitParseResult:
    """
    Build a Habit from an untrusted persisted record.

    Missing or unusable fields get defaults instead of failing:
      - id          -> fresh id
      - name        -> "Unnamed Habit"
      - targetFrequency -> coerced, rounded and clamped to 1..7 (non-numeric -> 7)
      - completions -> invalid dates dropped, duplicates collapsed
      - createdAt   -> now
    Every field that needed a default is listed in the result's `defaults`.
    Only a record that is not a mapping at all is rejected.
    """
    if not isinstance(record, dict):
        raise ValidationError(f"habit record must be an object, got {type(record).__name__}")

    defaults: list[str] = []

    hid = record.get("id")
    if isinstance(hid, (int, float)) and not isinstance(hid, bool):
        hid = str(hid)
    if not isinstance(hid, str) or not hid.strip():
        hid = _new_id()
        defaults.append("id")

    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_HABIT_NAME
        defaults.append("name")

    target, adjusted = _coerce_target(record.get("targetFrequency"))
    if adjusted:
        defaults.append("targetFrequency")

    completions, cleaned = _coerce_completions(record.get("completions"))
    if cleaned:
        defaults.append("completions")

    created_at = record.get("createdAt")
    if not isinstance(created_at, str) or _dt_from_iso(created_at) is None:
        created_at = _now_iso()
        defaults.append("createdAt")

    habit = Habit(
        name=name,
        target_frequency=target,
        completions=completions,
        id=hid,
        created_at=created_at,
    )
    return HabitParseResult(habit, defaults)


@dataclass
class Profile:
    name: str = DEFAULT_PROFILE_NAME
    join_date: str = field(default_factory=_now_iso)
    total_habits: int = 0
    completed_this_week: int = 0

    def update_stats(self, habits: list[Habit], today: date | None = None) -> None:
        self.total_habits = len(habits)
        self.completed_this_week = sum(h.this_week_completions(today) for h in habits)

    def days_joined(self, now: datetime | None = None) -> int:
        joined = _dt_from_iso(self.join_date)
        current = now or _now_local()
        if joined is None:
            return 0
        days = (current - joined).total_seconds() / 86400
        return math.ceil(days)

    def to_record(self) -> dict[str, Any]:
        return {"name": self.name, "joinDate": self.join_date}
