"""Shared low-level time and number helpers."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

DAYS_IN_WEEK = 7


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _now_iso() -> str:
    return _now_local().isoformat(timespec="seconds")


def _today() -> date:
    return _now_local().date()


def _dt_from_iso(ts: str) -> datetime | None:
    # accepts the "...Z" stamps older data files carry
    try:
        dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_now_local().tzinfo)
    return dt.astimezone()


def _date_from_iso(value: str) -> date | None:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def week_window(today: date | None = None) -> tuple[date, date]:
    """Monday of the current week (inclusive) and the following Monday (exclusive)."""
    d = today or _today()
    start = d - timedelta(days=d.weekday())
    return start, start + timedelta(days=DAYS_IN_WEEK)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _fmt_date(dt: datetime) -> str:
    return dt.strftime("%A, %d %B %Y")


def _fmt_datetime(dt: datetime) -> str:
    return dt.strftime("%A, %d %B %Y %H:%M:%S")
