#!/usr/bin/env python3
"""
Flagged-content matrix: batch statistics, dominant themes and a rolling
trend series.
"""

import asyncio
import logging
import statistics
from pathlib import Path
from typing import Callable, Dict, List, Union

from core.exceptions import LLMError, StorageError
from core.models.summary import (
    ArticleAnalysis, MatrixStatistics, Theme, ThemeMatrix, TrendPoint, now_ms
)
from core.storage.atomic import read_json, write_json_atomic
from core.summarization.prompts import MatrixPrompts, EXTRACTION_TEMPERATURE, THEME_COUNT
from core.text_sanitizer import parse_llm_json

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
HOURS_TO_KEEP = 48
MAX_TRENDS_PER_HOUR = 3
MAX_STORED_TRENDS = HOURS_TO_KEEP * MAX_TRENDS_PER_HOUR
TREND_INTERVAL_MS = HOUR_MS


def calculate_statistics(articles: List[ArticleAnalysis]) -> MatrixStatistics:
    if not articles:
        return MatrixStatistics()
    percentages = [a.percentage for a in articles]
    return MatrixStatistics(
        mean=statistics.mean(percentages),
        median=statistics.median(percentages),
        total_analyzed=sum(a.analyzed_comments for a in articles),
        total_flagged=sum(a.flagged_comments for a in articles)
    )


def prune_trends(trends: List[TrendPoint], now: int) -> List[TrendPoint]:
    """
    Apply the trend retention policy.

    Keeps points from the last 48 hours, at most three per hour bucket
    (the newest), and at most 144 overall. Result is oldest first.
    """
    cutoff = now - HOURS_TO_KEEP * HOUR_MS
    by_hour: Dict[int, List[TrendPoint]] = {}
    for point in trends:
        if point.timestamp > cutoff:
            by_hour.setdefault(point.timestamp // HOUR_MS, []).append(point)

    kept = []
    for bucket in by_hour.values():
        bucket.sort(key=lambda p: p.timestamp, reverse=True)
        kept.extend(bucket[:MAX_TRENDS_PER_HOUR])

    kept.sort(key=lambda p: p.timestamp)
    return kept[-MAX_STORED_TRENDS:]


class ThemeMatrixAnalyzer:
    """Builds the ThemeMatrix section of the summary."""

    def __init__(self, llm, trends_path: Union[str, Path], clock: Callable[[], int] = now_ms):
        self.llm = llm
        self.trends_path = Path(trends_path)
        self.clock = clock

    async def generate_themes(self, articles: List[ArticleAnalysis]) -> List[Theme]:
        """Ask for the dominant themes; any failure yields an empty list."""
        logger.info(f"Generating themes from {len(articles)} articles")
        try:
            response = await self.llm.complete(
                MatrixPrompts.SYSTEM_PROMPT,
                MatrixPrompts.user_prompt(articles),
                temperature=EXTRACTION_TEMPERATURE,
                purpose="matrix themes"
            )
            data = parse_llm_json(response)
            themes = [Theme.from_dict(t) for t in data.get('themes', [])]
        except (LLMError, ValueError, AttributeError, TypeError) as e:
            logger.error(f"Theme generation failed: {e}")
            return []

        if not themes:
            logger.warning("No themes found in response")
        return themes[:THEME_COUNT]

    def load_trends(self) -> List[TrendPoint]:
        raw = read_json(self.trends_path, default=[])
        points = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                points.append(TrendPoint.from_dict(entry))
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Dropping malformed trend point: {entry!r}")
        return points

    def update_trends(self, articles: List[ArticleAnalysis]) -> List[TrendPoint]:
        """
        Append a trend point when the last one is at least an hour old,
        then prune and persist the series. Any failure yields an empty list.
        """
        now = self.clock()
        try:
            trends = self.load_trends()
            if articles and (not trends or now - trends[-1].timestamp >= TREND_INTERVAL_MS):
                trends.append(TrendPoint(
                    timestamp=now,
                    percentage=statistics.mean(a.percentage for a in articles),
                    thread_count=len(articles)
                ))
            else:
                logger.debug("Latest trend point is recent, not adding another")
            trends = prune_trends(trends, now)
            write_json_atomic(self.trends_path, [t.to_dict() for t in trends])
        except StorageError as e:
            logger.error(f"Trend update failed: {e}")
            return []
        return trends

    async def analyze(self, articles: List[ArticleAnalysis]) -> ThemeMatrix:
        logger.info("Generating theme matrix")
        themes, trends = await asyncio.gather(
            self.generate_themes(articles),
            asyncio.to_thread(self.update_trends, articles)
        )
        return ThemeMatrix(
            statistics=calculate_statistics(articles),
            themes=themes,
            trends=trends,
            generated_at=self.clock()
        )
