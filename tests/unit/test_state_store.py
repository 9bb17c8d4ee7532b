"""Unit tests for state stores and the run lock."""

import json
from datetime import datetime, timezone

import pytest

from authorscout.core.crawl.models import Author, RunRecord
from authorscout.core.crawl.state import CrawlSnapshot
from authorscout.core.crawl.state_store import (
    InMemoryStateStore,
    JsonFileStateStore,
    RunLock,
)
from authorscout.utils.exceptions import CrawlInProgressError, StateError


@pytest.fixture
def snapshot() -> CrawlSnapshot:
    return CrawlSnapshot(
        seen_slugs=["a-post"],
        processed_urls=["https://hackernoon.com/a-post"],
        authors={
            "jdoe": Author(
                handle="jdoe",
                name="Jane Doe",
                profile_url="https://hackernoon.com/u/jdoe",
                matched_keywords={"maker"},
            )
        },
    )


def _record(new: int = 1) -> RunRecord:
    return RunRecord(
        finished_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        new_authors=new,
        total_authors=3,
        articles_processed=10,
    )


class TestInMemoryStateStore:
    def test_empty_load(self):
        assert InMemoryStateStore().load() is None

    def test_save_copies(self, snapshot):
        store = InMemoryStateStore()
        store.save(snapshot)
        snapshot.seen_slugs.append("later")

        assert store.load().seen_slugs == ["a-post"]

    def test_clear(self, snapshot):
        store = InMemoryStateStore(snapshot)
        store.record_run(_record())

        store.clear()

        assert store.load() is None
        assert store.history() == []


class TestJsonFileStateStore:
    def test_missing_file_loads_nothing(self, tmp_path):
        store = JsonFileStateStore(tmp_path / "state.json")

        assert store.load() is None
        assert store.history() == []

    def test_round_trip(self, tmp_path, snapshot):
        store = JsonFileStateStore(tmp_path / "nested" / "state.json")

        store.save(snapshot)
        loaded = store.load()

        assert loaded == snapshot
        data = json.loads((tmp_path / "nested" / "state.json").read_text())
        assert "saved_at" in data
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_history_survives_saves(self, tmp_path, snapshot):
        store = JsonFileStateStore(tmp_path / "state.json")

        store.record_run(_record(1))
        store.save(snapshot)
        store.record_run(_record(2))

        assert [r.new_authors for r in store.history()] == [1, 2]
        assert store.load() == snapshot

    def test_clear_removes_file(self, tmp_path, snapshot):
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        store.save(snapshot)

        store.clear()

        assert not path.exists()
        assert store.load() is None

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateError, match="Cannot read"):
            JsonFileStateStore(path).load()

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(StateError, match="not a JSON object"):
            JsonFileStateStore(path).load()

    def test_invalid_state_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"state": {"seen_slugs": 5}}))

        with pytest.raises(StateError, match="Invalid crawl state"):
            JsonFileStateStore(path).load()


class TestRunLock:
    def test_second_holder_rejected(self, tmp_path):
        path = tmp_path / "state.lock"

        with RunLock(path):
            assert path.exists()
            with pytest.raises(CrawlInProgressError):
                RunLock(path).acquire()

        assert not path.exists()

    def test_released_on_error(self, tmp_path):
        path = tmp_path / "state.lock"

        with pytest.raises(RuntimeError):
            with RunLock(path):
                raise RuntimeError("crawl failed")

        assert not path.exists()

    def test_release_without_acquire_keeps_foreign_lock(self, tmp_path):
        path = tmp_path / "state.lock"
        path.write_text("123")

        RunLock(path).release()

        assert path.exists()
