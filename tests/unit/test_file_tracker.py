from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from indicator_sync.db.tracker_store import JsonTrackerStore
from indicator_sync.models.source_file import FileInfo, FileRecord
from indicator_sync.services.file_tracker import classify, commit, prune, prune_store

T1 = datetime(2025, 6, 1, 8, 0, tzinfo=UTC)
T2 = datetime(2025, 6, 2, 8, 0, tzinfo=UTC)
NOW = datetime(2025, 7, 15, 12, 0, tzinfo=UTC)


def test_unchanged_and_changed_by_size():
    known = {"a.xlsx": FileRecord("a.xlsx", 100, T1, T1)}
    same = classify([FileInfo("a.xlsx", 100, T1)], known)
    assert [f.name for f in same.unchanged] == ["a.xlsx"]
    assert same.new_or_changed == []

    grown = classify([FileInfo("a.xlsx", 150, T1)], known)
    assert [f.name for f in grown.new_or_changed] == ["a.xlsx"]
    assert grown.unchanged == []


def test_changed_by_modified_time_and_new_names():
    known = {"a.xlsx": FileRecord("a.xlsx", 100, T1, T1)}
    result = classify([FileInfo("a.xlsx", 100, T2), FileInfo("b.xlsx", 5, T1)], known)
    assert [f.name for f in result.new_or_changed] == ["a.xlsx", "b.xlsx"]


def test_classify_is_idempotent():
    known = {"a.xlsx": FileRecord("a.xlsx", 100, T1, T1)}
    listing = [FileInfo("a.xlsx", 100, T1), FileInfo("c.csv", 1, T2)]
    assert classify(listing, known) == classify(listing, known)


def test_commit_then_unchanged(tmp_path: Path):
    store = JsonTrackerStore(tmp_path / "state.json")
    info = FileInfo("a.xlsx", 100, T1)
    record = commit(store, info, NOW)
    assert record == FileRecord("a.xlsx", 100, T1, NOW)
    result = classify([info], store.load())
    assert [f.name for f in result.unchanged] == ["a.xlsx"]


def test_prune_by_horizon():
    known = {
        "old.xlsx": FileRecord("old.xlsx", 1, T1, NOW - timedelta(days=31)),
        "recent.xlsx": FileRecord("recent.xlsx", 1, T1, NOW - timedelta(days=29)),
        "never.xlsx": FileRecord("never.xlsx", 1, T1, None),
    }
    result = prune(known, NOW)
    assert result.removed == ["old.xlsx"]
    assert set(result.kept) == {"recent.xlsx", "never.xlsx"}


def test_prune_custom_horizon():
    known = {"a.xlsx": FileRecord("a.xlsx", 1, T1, NOW - timedelta(days=2))}
    assert prune(known, NOW, timedelta(days=1)).removed == ["a.xlsx"]


def test_prune_store_applies_removal(tmp_path: Path):
    store = JsonTrackerStore(tmp_path / "state.json")
    store.put(FileRecord("old.xlsx", 1, T1, NOW - timedelta(days=40)))
    store.put(FileRecord("new.xlsx", 1, T1, NOW))
    result = prune_store(store, NOW)
    assert result.removed == ["old.xlsx"]
    assert list(store.load()) == ["new.xlsx"]
