import os
import time

from core.models.thread import MediaDescriptor, Post, Thread
from core.storage.thread_store import ThreadStore


def test_save_and_load_round_trip(tmp_path, thread_factory):
    store = ThreadStore(tmp_path)
    thread = thread_factory(123, reply_count=3, sub="Subject")
    thread.media = MediaDescriptor(tim=1700000000123, ext=".jpg", filename="pic", fsize=2048, md5="abc", w=640, h=480)
    thread.posts[0].country = "FI"
    thread.posts[0].country_name = "Finland"

    path = store.save(thread)

    assert path.name == "123.json"
    assert store.load(123) == thread
    assert store.load(999) is None


def test_from_board_posts_splits_root_and_replies():
    raw = [
        {"no": 10, "resto": 0, "time": 1, "sub": "Hello", "com": "root", "sticky": 1},
        {"no": 11, "resto": 10, "time": 2, "com": "first", "id": "abc"},
        {"no": 12, "resto": 10, "time": 3},
    ]

    thread = Thread.from_board_posts(raw)

    assert thread.no == 10
    assert thread.sticky is True
    assert thread.replies == 2
    assert [p.no for p in thread.posts] == [11, 12]
    assert thread.posts[0].poster_id == "abc"
    assert thread.root_post() == Post(no=10, resto=0, time=1, com="root")


def test_load_all_skips_corrupt_files(tmp_path, thread_factory):
    store = ThreadStore(tmp_path)
    store.save(thread_factory(1))
    store.save(thread_factory(2))
    (tmp_path / "3.json").write_text("{truncated", encoding="utf-8")
    (tmp_path / "4.json").write_text('{"missing": "no"}', encoding="utf-8")

    threads = store.load_all()

    assert sorted(t.no for t in threads) == [1, 2]


def test_load_all_missing_directory(tmp_path):
    assert ThreadStore(tmp_path / "absent").load_all() == []


def test_purge_older_than_uses_modification_time(tmp_path, thread_factory):
    store = ThreadStore(tmp_path)
    old_path = store.save(thread_factory(1))
    store.save(thread_factory(2))
    two_days_ago = time.time() - 2 * 24 * 60 * 60
    os.utime(old_path, (two_days_ago, two_days_ago))

    assert store.purge_older_than(1) == 1
    assert store.count() == 1
    assert store.load(2) is not None
    assert store.purge_older_than(1) == 0
