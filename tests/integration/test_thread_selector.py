import random

import pytest

from core.exceptions import SelectionError
from core.summarization.thread_selector import select_threads


def build_pool(thread_factory, sizes):
    return [thread_factory(10_000 + i * 1000, reply_count=size) for i, size in enumerate(sizes)]


def test_selects_twelve_without_duplicates(thread_factory):
    """Test a pool that fills every band."""
    sizes = [420, 410, 400] + [250] * 4 + [150] * 4 + [60] * 5 + [10] * 3
    pool = build_pool(thread_factory, sizes)

    selection = select_threads(pool, random.Random(3))

    picked = [t.no for t in selection.threads]
    assert len(picked) == 12
    assert len(set(picked)) == 12
    assert [t.post_count for t in selection.top_by_posts] == [420, 410, 400]
    assert all(200 <= t.post_count < 300 for t in selection.medium_high)
    assert all(100 <= t.post_count < 200 for t in selection.medium)
    assert all(t.post_count >= 50 for t in selection.low)
    assert len(selection.medium_high) == len(selection.medium) == len(selection.low) == 3
    assert selection.backfill == []
    assert selection.require() == selection.threads


def test_backfills_from_remaining_threads(thread_factory):
    sizes = [420, 410, 400] + [250] * 2 + [60] * 10
    pool = build_pool(thread_factory, sizes)

    selection = select_threads(pool, random.Random(5))

    picked = [t.no for t in selection.threads]
    assert len(picked) == 12
    assert len(set(picked)) == 12
    assert len(selection.medium_high) == 2
    assert selection.medium == []
    assert len(selection.backfill) == 4


def test_shortfall_is_reported(thread_factory):
    pool = build_pool(thread_factory, [60] * 5 + [10] * 3)

    selection = select_threads(pool, random.Random(1))

    assert len(selection) == 5
    assert selection.shortfall() == 7
    with pytest.raises(SelectionError):
        selection.require()


def test_seeded_selection_is_reproducible(thread_factory):
    pool = build_pool(thread_factory, [420, 410, 400] + [250] * 6 + [150] * 6 + [60] * 6)

    first = [t.no for t in select_threads(pool, random.Random(42)).threads]
    second = [t.no for t in select_threads(pool, random.Random(42)).threads]

    assert first == second
