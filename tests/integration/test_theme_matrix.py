import json

import pytest

from core.exceptions import LLMError, LLMResponseError
from core.models.summary import ArticleAnalysis, TrendPoint
from core.summarization.theme_matrix import (
    HOUR_MS,
    ThemeMatrixAnalyzer,
    calculate_statistics,
    prune_trends,
)


def article(thread_id: int, percentage: float, analyzed: int = 10, flagged: int = 1) -> ArticleAnalysis:
    return ArticleAnalysis(
        thread_id=thread_id, headline="H", article="A", analyzed_comments=analyzed,
        flagged_comments=flagged, percentage=percentage, total_posts=20, analyzed_posts=analyzed,
    )


def test_calculate_statistics():
    stats = calculate_statistics([article(1, 10.0), article(2, 20.0), article(3, 60.0, flagged=6)])

    assert stats.mean == pytest.approx(30.0)
    assert stats.median == pytest.approx(20.0)
    assert stats.total_analyzed == 30
    assert stats.total_flagged == 8


def test_calculate_statistics_empty():
    assert calculate_statistics([]).to_dict() == {
        "mean": 0.0, "median": 0.0, "totalAnalyzed": 0, "totalAntisemitic": 0,
    }


def test_prune_trends_applies_window_and_hourly_cap(clock):
    now = clock()
    hour_start = (now // HOUR_MS) * HOUR_MS
    points = [TrendPoint(hour_start + i * 1000, float(i), 12) for i in range(5)]
    points.append(TrendPoint(now - 49 * HOUR_MS, 99.0, 12))
    points.append(TrendPoint(now - 2 * HOUR_MS, 1.0, 12))

    kept = prune_trends(points, now)

    assert [p.percentage for p in kept] == [1.0, 2.0, 3.0, 4.0]
    assert [p.timestamp for p in kept] == sorted(p.timestamp for p in kept)


def test_prune_trends_caps_total(clock):
    now = clock()
    points = [TrendPoint(now - i * 10 * 60 * 1000, 1.0, 1) for i in range(280)]

    kept = prune_trends(points, now)

    assert len(kept) <= 144
    assert kept[-1].timestamp == now


def test_update_trends_respects_interval(tmp_path, clock, fake_llm_factory):
    analyzer = ThemeMatrixAnalyzer(fake_llm_factory(), tmp_path / "trends.json", clock)
    articles = [article(1, 10.0), article(2, 30.0)]

    first = analyzer.update_trends(articles)
    clock.advance(30 * 60 * 1000)
    second = analyzer.update_trends(articles)
    clock.advance(30 * 60 * 1000)
    third = analyzer.update_trends(articles)

    assert len(first) == 1
    assert first[0].percentage == pytest.approx(20.0)
    assert first[0].thread_count == 2
    assert len(second) == 1
    assert len(third) == 2
    stored = json.loads((tmp_path / "trends.json").read_text(encoding="utf-8"))
    assert [p["timestamp"] for p in stored] == [t.timestamp for t in third]


@pytest.mark.asyncio
async def test_theme_failure_yields_empty_list(tmp_path, clock, fake_llm_factory):
    def responder(system, user, purpose):
        raise LLMError("fake-model", 3)

    analyzer = ThemeMatrixAnalyzer(fake_llm_factory(responder), tmp_path / "trends.json", clock)

    assert await analyzer.generate_themes([article(1, 5.0)]) == []


@pytest.mark.asyncio
async def test_unusable_response_degrades_to_no_themes(tmp_path, clock, fake_llm_factory):
    def responder(system, user, purpose):
        raise LLMResponseError("fake-model", "response has no message content")

    analyzer = ThemeMatrixAnalyzer(fake_llm_factory(responder), tmp_path / "trends.json", clock)

    matrix = await analyzer.analyze([article(1, 10.0), article(2, 30.0)])

    assert matrix.themes == []
    assert matrix.statistics.mean == pytest.approx(20.0)
    assert len(matrix.trends) == 1


@pytest.mark.asyncio
async def test_unparseable_themes_yield_empty_list(tmp_path, clock, fake_llm_factory):
    llm = fake_llm_factory(lambda system, user, purpose: "Themes are hard to pin down today.")
    analyzer = ThemeMatrixAnalyzer(llm, tmp_path / "trends.json", clock)

    assert await analyzer.generate_themes([article(1, 5.0)]) == []


@pytest.mark.asyncio
async def test_analyze_combines_statistics_themes_and_trends(tmp_path, clock, fake_llm_factory):
    llm = fake_llm_factory()
    analyzer = ThemeMatrixAnalyzer(llm, tmp_path / "trends.json", clock)

    matrix = await analyzer.analyze([article(1, 10.0), article(2, 30.0)])

    assert matrix.statistics.mean == pytest.approx(20.0)
    assert [t.name for t in matrix.themes] == ["Theme A"]
    assert matrix.themes[0].keywords == ["a", "b", "c"]
    assert len(matrix.trends) == 1
    assert matrix.generated_at == clock()
    assert llm.purposes() == ["matrix themes"]
