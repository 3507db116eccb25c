"""Tests for backporter-store implementations."""

from __future__ import annotations

import json

import pytest

from backporter_store.json_file import JsonFileStore
from backporter_store.memory import MemoryStore
from backporter_store.models import HistoryRecord
from backporter_store.noop import NoOpStore


def _make_record(original="a" * 40, backport="b" * 40, branch="release-1.0", pr_number=None, message="fix: thing"):
    return HistoryRecord(
        original_sha=original,
        backport_sha=backport,
        target_branch=branch,
        message=message,
        pr_number=pr_number,
    )


# ---------------------------------------------------------------------------
# HistoryRecord
# ---------------------------------------------------------------------------


class TestHistoryRecord:
    def test_timestamp_defaults_to_utc_iso(self):
        record = _make_record()
        assert record.timestamp.endswith("+00:00")

    def test_with_pr_number_returns_copy(self):
        record = _make_record()
        updated = record.with_pr_number(42)
        assert updated.pr_number == 42
        assert record.pr_number is None
        assert updated.timestamp == record.timestamp

    def test_from_dict_tolerates_missing_fields(self):
        record = HistoryRecord.from_dict({"original_sha": "abc", "pr_number": 0})
        assert record.original_sha == "abc"
        assert record.pr_number is None
        assert record.message == ""

    def test_dict_roundtrip(self):
        record = _make_record(pr_number=7)
        assert HistoryRecord.from_dict(record.to_dict()) == record


# ---------------------------------------------------------------------------
# NoOpStore
# ---------------------------------------------------------------------------


class TestNoOpStore:
    def test_append_does_not_raise(self):
        NoOpStore().append(_make_record())  # must not raise

    def test_list_records_returns_empty(self):
        store = NoOpStore()
        store.append(_make_record())
        assert store.list_records() == []

    def test_attach_pr_number_finds_nothing(self):
        store = NoOpStore()
        store.append(_make_record())
        assert store.attach_pr_number("a" * 40, 1) is False


# ---------------------------------------------------------------------------
# MemoryStore
# ---------------------------------------------------------------------------


class TestMemoryStore:
    def test_append_and_list_in_order(self):
        store = MemoryStore()
        store.append(_make_record(branch="release-1.0"))
        store.append(_make_record(branch="release-2.0"))
        assert [r.target_branch for r in store.list_records()] == ["release-1.0", "release-2.0"]

    def test_list_records_is_a_copy(self):
        store = MemoryStore()
        store.append(_make_record())
        store.list_records().clear()
        assert len(store.list_records()) == 1

    def test_find_by_original_sha(self):
        store = MemoryStore()
        store.append(_make_record(original="1" * 40))
        store.append(_make_record(original="2" * 40))
        assert len(store.find_by_original_sha("1" * 40)) == 1
        assert store.find_by_original_sha("3" * 40) == []

    def test_find_by_pr_number(self):
        store = MemoryStore()
        store.append(_make_record(pr_number=5))
        store.append(_make_record(pr_number=6))
        store.append(_make_record())
        assert [r.pr_number for r in store.find_by_pr_number(5)] == [5]

    def test_attach_pr_number_updates_latest_match_only(self):
        store = MemoryStore()
        store.append(_make_record(branch="release-1.0"))
        store.append(_make_record(branch="release-2.0"))

        assert store.attach_pr_number("a" * 40, 9) is True

        records = store.list_records()
        assert records[0].pr_number is None
        assert records[1].pr_number == 9

    def test_attach_pr_number_unknown_sha(self):
        store = MemoryStore()
        store.append(_make_record())
        assert store.attach_pr_number("f" * 40, 9) is False

    def test_clear(self):
        store = MemoryStore([_make_record()])
        store.clear()
        assert store.list_records() == []


# ---------------------------------------------------------------------------
# JsonFileStore
# ---------------------------------------------------------------------------


class TestJsonFileStore:
    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "history.json")
        assert store.list_records() == []
        assert not (tmp_path / "history.json").exists()

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("")
        assert JsonFileStore(path).list_records() == []

    def test_append_persists_and_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "cache" / "backporter" / "history.json"
        store = JsonFileStore(path)
        store.append(_make_record(pr_number=3))

        data = json.loads(path.read_text())
        assert len(data) == 1
        assert data[0]["original_sha"] == "a" * 40
        assert data[0]["pr_number"] == 3

    def test_file_is_indented(self, tmp_path):
        path = tmp_path / "history.json"
        JsonFileStore(path).append(_make_record())
        assert '\n  {\n    "original_sha"' in path.read_text()

    def test_reload_sees_previous_records(self, tmp_path):
        path = tmp_path / "history.json"
        first = JsonFileStore(path)
        first.append(_make_record(branch="release-1.0"))
        first.append(_make_record(branch="release-2.0"))

        second = JsonFileStore(path)
        assert [r.target_branch for r in second.list_records()] == ["release-1.0", "release-2.0"]

    def test_attach_pr_number_is_persisted(self, tmp_path):
        path = tmp_path / "history.json"
        store = JsonFileStore(path)
        store.append(_make_record())
        store.attach_pr_number("a" * 40, 12)

        assert JsonFileStore(path).list_records()[0].pr_number == 12

    def test_clear_persists_empty_array(self, tmp_path):
        path = tmp_path / "history.json"
        store = JsonFileStore(path)
        store.append(_make_record())
        store.clear()
        assert json.loads(path.read_text()) == []

    def test_non_array_file_raises(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"original_sha": "abc"}')
        with pytest.raises(ValueError):
            JsonFileStore(path)

    def test_path_property(self, tmp_path):
        path = tmp_path / "history.json"
        assert JsonFileStore(str(path)).path == path
