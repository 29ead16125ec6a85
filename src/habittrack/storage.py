from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import (
    PersistenceCorruptError,
    PersistenceWriteError,
    ValidationError,
)
from .models import Habit, Profile, parse_habit

log = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def load_json(path: Path) -> dict[str, Any] | None:
    """
    Read-only load:
    - missing/empty -> None (no prior data)
    - unreadable -> PersistenceCorruptError
    - corrupt -> backs up raw text, then PersistenceCorruptError
    - non-object JSON -> PersistenceCorruptError
    The file itself is never rewritten here; the next save replaces it.
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        txt = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceCorruptError(f"could not read {path}: {e}") from e
    if not txt:
        return None

    try:
        data = json.loads(txt)
    except json.JSONDecodeError as e:
        backup = path.with_name(f"{path.stem}.corrupt-{int(time.time())}.json")
        try:
            backup.write_text(txt, encoding="utf-8")
        except OSError:
            log.warning("could not back up corrupt data file to %s", backup)
        raise PersistenceCorruptError(f"{path} is not valid JSON ({e.msg}, line {e.lineno})") from e

    if not isinstance(data, dict):
        raise PersistenceCorruptError(f"{path} does not hold a JSON object")
    return data


def save_json(path: Path, data: Any) -> None:
    """
    Atomic-ish save:
    - write to temp file in same directory
    - flush + fsync
    - os.replace to target
    - chmod 0600 best-effort
    Any OS failure surfaces as PersistenceWriteError and leaves the target untouched.
    """
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")

    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        _ensure_parent(path)
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise PersistenceWriteError(f"could not save {path}: {e}") from e

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


@dataclass
class StoredState:
    profile_name: str | None = None
    join_date: str | None = None
    habits: list[Habit] = field(default_factory=list)


class HabitStore:
    """Whole-document JSON persistence for the profile and habit list."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def save(self, profile: Profile, habits: list[Habit]) -> None:
        save_json(
            self.path,
            {
                "profile": profile.to_record(),
                "habits": [h.to_record() for h in habits],
            },
        )

    def load(self) -> StoredState | None:
        try:
            data = load_json(self.path)
        except PersistenceCorruptError as e:
            log.warning("%s; starting with empty data (the next change overwrites the file)", e)
            return None
        if data is None:
            return None

        state = StoredState()
        profile = data.get("profile")
        if isinstance(profile, dict):
            name = profile.get("name")
            if isinstance(name, str) and name.strip():
                state.profile_name = name
            join = profile.get("joinDate")
            if isinstance(join, str) and join.strip():
                state.join_date = join

        records = data.get("habits")
        if not isinstance(records, list):
            records = []
        for i, rec in enumerate(records):
            try:
                result = parse_habit(rec)
            except ValidationError as e:
                log.warning("skipping habit #%d in %s: %s", i + 1, self.path, e)
                continue
            if result.defaults:
                log.debug(
                    "habit #%d (%s): defaults applied to %s",
                    i + 1,
                    result.habit.name,
                    ", ".join(result.defaults),
                )
            state.habits.append(result.habit)
        return state

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceWriteError(f"could not delete {self.path}: {e}") from e
