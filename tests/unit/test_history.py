"""Tests for the JSON history store."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from src.core.errors import HistoryError
from src.core.schemas import HistoryEntry, JobType, RunStats
from src.storage.history import HistoryStore


def _entry(inserted: int = 10) -> HistoryEntry:
    return HistoryEntry(
        date=datetime(2026, 1, 2, 3, 4, 5),
        job_type=JobType.PEOPLE,
        filters={"q_keywords": "engineer"},
        stats=RunStats(expected=100, processed=100, inserted=inserted, pages_fetched=1),
    )


class TestHistoryStore:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = HistoryStore(tmp_path / "history.json")
        assert store.get("abc") is None
        assert store.all() == {}

    def test_put_then_get(self, tmp_path: Path) -> None:
        store = HistoryStore(tmp_path / "nested" / "history.json")
        store.put("abc", _entry())
        got = store.get("abc")
        assert got is not None
        assert got.stats.inserted == 10
        assert got.job_type is JobType.PEOPLE

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        HistoryStore(path).put("abc", _entry())
        assert HistoryStore(path).get("abc") is not None

    def test_overwrite(self, tmp_path: Path) -> None:
        store = HistoryStore(tmp_path / "history.json")
        store.put("abc", _entry(inserted=1))
        store.put("abc", _entry(inserted=2))
        assert store.get("abc").stats.inserted == 2  # type: ignore[union-attr]
        assert len(store.all()) == 1

    def test_file_is_plain_json_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        HistoryStore(path).put("abc", _entry())
        raw = json.loads(path.read_text())
        assert set(raw) == {"abc"}
        assert raw["abc"]["stats"]["pages_fetched"] == 1
        assert raw["abc"]["job_type"] == "people"

    def test_clear(self, tmp_path: Path) -> None:
        store = HistoryStore(tmp_path / "history.json")
        store.put("a", _entry())
        store.put("b", _entry())
        assert store.clear() == 2
        assert store.all() == {}

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_text("not-json{{{")
        with pytest.raises(HistoryError, match="Cannot read history file"):
            HistoryStore(path).get("abc")

    def test_non_object_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_text("[]")
        with pytest.raises(HistoryError, match="not a JSON object"):
            HistoryStore(path).all()

    def test_empty_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "history.json"
        path.write_text("")
        assert HistoryStore(path).all() == {}
