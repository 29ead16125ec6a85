"""Tests for storage.load_json, storage.save_json and HabitStore."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from habittrack.errors import PersistenceCorruptError, PersistenceWriteError
from habittrack.models import Habit, Profile
from habittrack.storage import HabitStore, load_json, save_json


@pytest.fixture()
def tmp_json(tmp_path: Path) -> Path:
    return tmp_path / "habits-data.json"


@pytest.fixture()
def store(tmp_json: Path) -> HabitStore:
    return HabitStore(tmp_json)


# ---- save_json ----


def test_save_writes_pretty_json(tmp_json):
    save_json(tmp_json, {"a": 1, "b": [1, 2, 3]})
    txt = tmp_json.read_text(encoding="utf-8")
    assert json.loads(txt) == {"a": 1, "b": [1, 2, 3]}
    assert '\n  "a": 1' in txt


def test_save_creates_parent_dirs(tmp_path):
    deep = tmp_path / "a" / "b" / "c" / "data.json"
    save_json(deep, {"x": 1})
    assert deep.exists()


def test_save_is_atomic_no_tmp_left(tmp_json):
    save_json(tmp_json, {"x": 1})
    tmp = tmp_json.with_name(tmp_json.name + ".tmp")
    assert not tmp.exists()


def test_save_sets_permissions(tmp_json):
    save_json(tmp_json, {})
    mode = oct(os.stat(tmp_json).st_mode & 0o777)
    assert mode == "0o600"


def test_save_failure_raises_write_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("i am a file", encoding="utf-8")
    with pytest.raises(PersistenceWriteError):
        save_json(blocker / "data.json", {"x": 1})


def test_save_failure_keeps_previous_contents(tmp_json, monkeypatch):
    save_json(tmp_json, {"old": True})

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(PersistenceWriteError):
        save_json(tmp_json, {"old": False})
    assert json.loads(tmp_json.read_text()) == {"old": True}
    assert not tmp_json.with_name(tmp_json.name + ".tmp").exists()


# ---- load_json ----


def test_load_missing_returns_none(tmp_json):
    assert load_json(tmp_json) is None
    assert not tmp_json.exists()


def test_load_empty_file_returns_none(tmp_json):
    tmp_json.write_text("  \n", encoding="utf-8")
    assert load_json(tmp_json) is None


def test_load_corrupt_raises_and_backs_up(tmp_json):
    tmp_json.write_text("not valid json {{{{", encoding="utf-8")
    with pytest.raises(PersistenceCorruptError):
        load_json(tmp_json)
    backups = list(tmp_json.parent.glob("*.corrupt-*.json"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "not valid json {{{{"
    # the data file is left for the next save to overwrite
    assert tmp_json.read_text(encoding="utf-8") == "not valid json {{{{"


def test_load_non_dict_json_raises(tmp_json):
    tmp_json.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(PersistenceCorruptError):
        load_json(tmp_json)


# ---- HabitStore ----


def test_store_roundtrip(store):
    profile = Profile(name="Sam", join_date="2026-10-01T09:00:00+07:00")
    habits = [
        Habit(name="Read", target_frequency=3, completions=["2026-10-19", "2026-10-20"]),
        Habit(name="Run", target_frequency=5),
    ]
    store.save(profile, habits)

    state = store.load()
    assert state.profile_name == "Sam"
    assert state.join_date == "2026-10-01T09:00:00+07:00"
    assert [h.to_record() for h in state.habits] == [h.to_record() for h in habits]


def test_store_writes_documented_layout(store, tmp_json):
    store.save(Profile(name="Sam"), [Habit(name="Read", target_frequency=3)])
    data = json.loads(tmp_json.read_text())
    assert set(data) == {"profile", "habits"}
    assert set(data["profile"]) == {"name", "joinDate"}
    assert set(data["habits"][0]) == {"id", "name", "targetFrequency", "completions", "createdAt"}


def test_store_missing_file_is_no_prior_data(store, caplog):
    with caplog.at_level(logging.WARNING):
        assert store.load() is None
    assert not caplog.records


def test_store_corrupt_file_warns(store, tmp_json, caplog):
    tmp_json.write_text("{oops", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="habittrack.storage"):
        assert store.load() is None
    assert any("not valid JSON" in r.getMessage() for r in caplog.records)


def test_store_tolerates_partial_records(store, tmp_json, caplog):
    tmp_json.write_text(
        json.dumps(
            {
                "habits": [
                    {"name": "Read", "targetFrequency": "99"},
                    "garbage",
                    {"completions": "nope"},
                ]
            }
        ),
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING, logger="habittrack.storage"):
        state = store.load()
    assert state.profile_name is None
    assert state.join_date is None
    assert [h.name for h in state.habits] == ["Read", "Unnamed Habit"]
    assert state.habits[0].target_frequency == 7
    assert state.habits[1].completions == []
    assert any("skipping habit #2" in r.getMessage() for r in caplog.records)


def test_store_clear_deletes_file(store, tmp_json):
    store.save(Profile(), [])
    store.clear()
    assert not tmp_json.exists()
    store.clear()  # already gone
