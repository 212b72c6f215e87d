#!/usr/bin/env python3
"""
Cross-thread overview: one narrative from the opening posts plus general
themes and sentiments from the generated articles.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Union

from core.models.summary import ArticleAnalysis, OverviewAnalysis, Sentiment, Theme, now_ms
from core.models.thread import Thread
from core.storage.atomic import write_json_atomic
from core.summarization.prompts import (
    OverviewPrompts, EXTRACTION_TEMPERATURE, OVERVIEW_TEMPERATURE, THEME_COUNT
)
from core.text_sanitizer import parse_llm_json, post_text

logger = logging.getLogger(__name__)


def _json_list(response: str, key: str) -> List[dict]:
    data = parse_llm_json(response)
    if not isinstance(data, dict) or not isinstance(data.get(key), list):
        raise ValueError(f"Expected a JSON object with a '{key}' list")
    return data[key]


class OverviewGenerator:
    """Produces and persists the standalone big-picture snapshot."""

    def __init__(self, llm, output_path: Union[str, Path], clock: Callable[[], int] = now_ms):
        self.llm = llm
        self.output_path = Path(output_path)
        self.clock = clock

    async def generate_overview(self, threads: List[Thread]) -> str:
        root_texts = [text for text in (post_text(t.com) for t in threads) if text]
        response = await self.llm.complete(
            OverviewPrompts.OVERVIEW_SYSTEM_PROMPT,
            OverviewPrompts.overview_prompt(root_texts),
            temperature=OVERVIEW_TEMPERATURE,
            purpose="overview"
        )
        return response.strip()

    async def generate_themes(self, articles: List[ArticleAnalysis]) -> List[Theme]:
        response = await self.llm.complete(
            OverviewPrompts.THEMES_SYSTEM_PROMPT,
            OverviewPrompts.themes_prompt(articles),
            temperature=EXTRACTION_TEMPERATURE,
            purpose="overview themes"
        )
        return [Theme.from_dict(t) for t in _json_list(response, "themes")][:THEME_COUNT]

    async def generate_sentiments(self, articles: List[ArticleAnalysis]) -> List[Sentiment]:
        response = await self.llm.complete(
            OverviewPrompts.SENTIMENTS_SYSTEM_PROMPT,
            OverviewPrompts.sentiments_prompt(articles),
            temperature=EXTRACTION_TEMPERATURE,
            purpose="overview sentiments"
        )
        return [Sentiment.from_dict(s) for s in _json_list(response, "sentiments")][:THEME_COUNT]

    async def analyze(self, threads: List[Thread], articles: List[ArticleAnalysis]) -> OverviewAnalysis:
        """
        Run the three requests concurrently and save the result.

        Raises:
            LLMError: If any request fails
            ValueError: If a theme or sentiment answer is not valid JSON
            StorageError: If the snapshot cannot be written
        """
        logger.info(f"Generating overview from {len(threads)} threads and {len(articles)} articles")
        article, themes, sentiments = await asyncio.gather(
            self.generate_overview(threads),
            self.generate_themes(articles),
            self.generate_sentiments(articles)
        )

        analysis = OverviewAnalysis(
            article=article,
            themes=themes,
            sentiments=sentiments,
            generated_at=self.clock()
        )
        write_json_atomic(self.output_path, analysis.to_dict())
        logger.info(f"Saved overview to {self.output_path}")
        return analysis
