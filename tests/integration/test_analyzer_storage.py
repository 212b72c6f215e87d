import json
from typing import List

import pytest

from core.analyzers import base as base_module
from core.analyzers.base import DAY_MS, AnalyzerResult, BaseAnalyzer, StorageSettings
from core.exceptions import InsufficientDiskSpaceError, StorageError


class EchoAnalyzer(BaseAnalyzer[AnalyzerResult]):
    name = "echo"
    result_type = AnalyzerResult

    def analyze(self, threads) -> List[AnalyzerResult]:
        return []


def make_results(count: int, timestamp: int, padding: int = 0) -> List[AnalyzerResult]:
    return [
        AnalyzerResult(timestamp=timestamp, thread_id=1000 + i, post_id=2000 + i, metadata={"text": "x" * padding})
        for i in range(count)
    ]


def read_primary(analyzer: BaseAnalyzer) -> dict:
    return json.loads(analyzer.storage.primary_path.read_text(encoding="utf-8"))


def test_round_trip_without_chunking(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    results = make_results(5, clock())

    analyzer.write_results(results)

    assert analyzer.load_results() == results
    primary = read_primary(analyzer)
    assert primary["chunked"] is False
    assert primary["chunks"] == []
    assert primary["lastUpdated"] == clock()
    assert analyzer.storage.chunks_on_disk() == []


def test_oversized_results_are_split_into_chunks(tmp_path, small_settings, clock):
    """60 KB of results against a 50 KB ceiling."""
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    results = make_results(100, clock(), padding=550)
    serialized = len(json.dumps([r.to_dict() for r in results]).encode("utf-8"))
    assert serialized > small_settings.chunk_threshold_bytes

    analyzer.write_results(results)

    primary = read_primary(analyzer)
    assert primary["results"] == []
    assert primary["chunked"] is True
    assert len(primary["chunks"]) >= 2
    assert sorted(primary["chunks"]) == analyzer.storage.chunks_on_disk()
    assert analyzer.load_results() == results


def test_rewrite_removes_superseded_chunks(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    analyzer.write_results(make_results(100, clock(), padding=550))
    assert analyzer.storage.chunks_on_disk()

    clock.advance(1000)
    small = make_results(3, clock())
    analyzer.write_results(small)

    assert analyzer.storage.chunks_on_disk() == []
    assert analyzer.load_results() == small


def test_chunk_cap_rotates_out_oldest_results(tmp_path, clock):
    settings = StorageSettings(min_free_bytes=0, chunk_threshold_bytes=1024, max_chunk_files=3)
    analyzer = EchoAnalyzer(tmp_path, settings, clock)
    results = make_results(50, clock(), padding=200)

    stored = analyzer.write_results(results)

    assert len(analyzer.storage.chunks_on_disk()) == 3
    assert 0 < len(stored) < len(results)
    assert stored == results[-len(stored):]
    assert analyzer.load_results() == stored


def test_chunked_store_expires_results_across_saves(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    analyzer.save_results(make_results(100, clock(), padding=550))
    assert read_primary(analyzer)["chunked"] is True

    clock.advance(4 * DAY_MS)
    fresh = [AnalyzerResult(timestamp=clock(), thread_id=1, post_id=2)]
    analyzer.save_results(fresh)
    analyzer.purge_old_results()

    cutoff = clock() - 3 * DAY_MS
    assert [r for r in analyzer.load_results() if r.timestamp < cutoff] == []
    assert analyzer.load_results() == fresh
    assert analyzer.storage.chunks_on_disk() == []


def test_purge_trims_partly_expired_chunks(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    old = make_results(40, clock(), padding=550)
    clock.advance(2 * DAY_MS)
    recent = make_results(60, clock(), padding=550)
    analyzer.write_results(old + recent)
    chunks_before = analyzer.storage.chunks_on_disk()

    clock.advance(2 * DAY_MS)
    removed = analyzer.purge_old_results()

    assert removed == 40
    assert analyzer.load_results() == recent
    assert set(analyzer.storage.chunks_on_disk()) <= set(chunks_before)
    assert sorted(read_primary(analyzer)["chunks"]) == analyzer.storage.chunks_on_disk()


def test_failed_chunk_write_keeps_previous_result_set(tmp_path, small_settings, clock, monkeypatch):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    original = make_results(100, clock(), padding=550)
    analyzer.write_results(original)

    clock.advance(1000)
    real_write = base_module.write_json_atomic
    calls = []

    def failing_write(path, data, **kwargs):
        calls.append(path)
        if len(calls) == 2:
            raise StorageError(str(path), "write")
        return real_write(path, data, **kwargs)

    monkeypatch.setattr(base_module, "write_json_atomic", failing_write)
    with pytest.raises(StorageError):
        analyzer.write_results(make_results(100, clock(), padding=550))
    monkeypatch.undo()

    assert analyzer.load_results() == original


def test_save_results_merges_and_filters_invalid(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    first = make_results(2, clock())
    analyzer.save_results(first)

    invalid = AnalyzerResult(timestamp=clock(), thread_id=0, post_id=5)
    merged = analyzer.save_results([invalid] + make_results(1, clock() + 1))

    assert len(merged) == 3
    assert all(r.is_valid() for r in analyzer.load_results())


def test_purge_is_idempotent(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    old = make_results(3, clock() - 4 * DAY_MS)
    fresh = [AnalyzerResult(timestamp=clock(), thread_id=1, post_id=2)]
    analyzer.write_results(old + fresh)

    assert analyzer.purge_old_results() == 3
    snapshot = analyzer.storage.primary_path.read_bytes()

    assert analyzer.purge_old_results() == 0
    assert analyzer.storage.primary_path.read_bytes() == snapshot
    assert analyzer.load_results() == fresh


def test_purge_deletes_expired_chunks(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    analyzer.write_results(make_results(100, clock(), padding=550))

    clock.advance(4 * DAY_MS)
    removed = analyzer.purge_old_results()

    assert removed == 100
    assert analyzer.storage.chunks_on_disk() == []
    assert read_primary(analyzer)["chunked"] is False
    assert analyzer.load_results() == []


def test_corrupt_chunk_is_skipped(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)
    results = make_results(100, clock(), padding=550)
    analyzer.write_results(results)

    chunks = analyzer.storage.chunks_on_disk()
    analyzer.storage.chunk_path(chunks[0]).write_text("{not json", encoding="utf-8")

    loaded = analyzer.load_results()
    assert 0 < len(loaded) < len(results)


def test_insufficient_disk_space_aborts_write(tmp_path, clock):
    settings = StorageSettings(min_free_bytes=10 ** 18)
    analyzer = EchoAnalyzer(tmp_path, settings, clock)

    with pytest.raises(InsufficientDiskSpaceError):
        analyzer.write_results(make_results(1, clock()))

    assert not analyzer.storage.primary_path.exists()


def test_missing_store_loads_empty(tmp_path, small_settings, clock):
    analyzer = EchoAnalyzer(tmp_path, small_settings, clock)

    assert analyzer.load_results() == []
    assert analyzer.last_updated() == 0
    assert analyzer.purge_old_results() == 0
