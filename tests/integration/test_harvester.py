import pytest

from core.analyzers import build_default_registry
from core.config import BoardConfig
from core.exceptions import StorageError
from core.harvester import Harvester, select_candidates
from core.storage.thread_store import ThreadStore


def build_catalog(thread_factory):
    """
    Forty eligible threads plus one sticky and one closed.

    Threads 11-30 carry the most replies and threads 21-40 are the newest,
    so the candidate set is threads 11-40.
    """
    catalog = []
    for no in range(1, 41):
        replies = 100 + no if 11 <= no <= 30 else no % 10
        catalog.append(thread_factory(no, replies=replies))
    catalog.append(thread_factory(41, replies=999, sticky=True))
    catalog.append(thread_factory(42, replies=998, closed=True))
    return catalog


def test_select_candidates_unions_busiest_and_newest(thread_factory):
    candidates = select_candidates(build_catalog(thread_factory), top_by_replies=20, top_by_newest=20)

    assert candidates == list(range(40, 10, -1))
    assert 41 not in candidates
    assert 42 not in candidates


@pytest.mark.asyncio
async def test_harvest_fetches_stores_and_analyzes(tmp_path, small_settings, clock,
                                                   thread_factory, fake_board_client_factory):
    """Test a full pass where two candidates were pruned before fetching."""
    catalog = build_catalog(thread_factory)
    threads = {no: thread_factory(no, reply_count=2, reply_texts=["first", "&gt;&gt;%d" % (no + 1)])
               for no in range(11, 41)}
    threads[15] = None
    threads[33] = None

    client = fake_board_client_factory(catalog, threads)
    store = ThreadStore(tmp_path / "threads")
    registry = build_default_registry(tmp_path / "analysis", small_settings, ["first"], clock)
    harvester = Harvester(lambda: client, store, registry, BoardConfig(), media_dir=tmp_path / "media")

    report = await harvester.harvest()

    assert report.catalog_size == 42
    assert report.candidates == 30
    assert report.pruned == 2
    assert report.fetched == 28
    assert report.failed == 0
    assert store.count() == 28
    assert client.entered and client.exited
    assert client.delays == 29
    assert len(client.media_requests) == 28
    assert report.analyzed["reply"] == 10
    assert report.analyzed["terms"] == 1
    assert report.analysis_error is None
    assert registry.get_latest("terms")["results"][0]["count"] == 28


@pytest.mark.asyncio
async def test_harvest_without_media_dir_skips_downloads(tmp_path, small_settings, clock,
                                                         thread_factory, fake_board_client_factory):
    catalog = [thread_factory(1, replies=5)]
    client = fake_board_client_factory(catalog, {1: thread_factory(1, reply_count=1)})
    registry = build_default_registry(tmp_path / "analysis", small_settings, ["reply"], clock)
    harvester = Harvester(lambda: client, ThreadStore(tmp_path / "threads"), registry, BoardConfig())

    report = await harvester.harvest()

    assert report.fetched == 1
    assert client.media_requests == []
    assert client.delays == 0


@pytest.mark.asyncio
async def test_harvest_with_empty_catalog(tmp_path, small_settings, clock, fake_board_client_factory):
    client = fake_board_client_factory([], {})
    registry = build_default_registry(tmp_path / "analysis", small_settings, ["x"], clock)
    harvester = Harvester(lambda: client, ThreadStore(tmp_path / "threads"), registry, BoardConfig())

    report = await harvester.harvest()

    assert report.fetched == 0
    assert report.analyzed == {}
    assert client.fetched == []


class FailingThreadStore(ThreadStore):
    """Thread store whose disk rejects one thread."""

    def __init__(self, directory, failing_no):
        super().__init__(directory)
        self.failing_no = failing_no

    def save(self, thread):
        if thread.no == self.failing_no:
            raise StorageError(str(self.path_for(thread.no)), "write")
        return super().save(thread)


@pytest.mark.asyncio
async def test_failed_thread_save_does_not_abort_harvest(tmp_path, small_settings, clock,
                                                        thread_factory, fake_board_client_factory):
    catalog = [thread_factory(no, replies=5) for no in (1, 2, 3)]
    threads = {no: thread_factory(no, reply_count=1, reply_texts=["alpha"]) for no in (1, 2, 3)}
    client = fake_board_client_factory(catalog, threads)
    store = FailingThreadStore(tmp_path / "threads", failing_no=2)
    registry = build_default_registry(tmp_path / "analysis", small_settings, ["alpha"], clock)
    harvester = Harvester(lambda: client, store, registry, BoardConfig())

    report = await harvester.harvest()

    assert report.failed == 1
    assert report.fetched == 2
    assert store.count() == 2
    assert registry.get_latest("terms")["results"][0]["count"] == 2
    assert set(report.purged) == set(registry.names())
