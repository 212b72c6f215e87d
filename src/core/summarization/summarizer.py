#!/usr/bin/env python3
"""
Summarization run orchestration.

Selects threads from the store, generates per-thread articles, runs the
theme matrix and overview side by side, and writes the combined summary
snapshot.
"""

import asyncio
import random
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from core.exceptions import LLMError, SummarizationError
from core.models.summary import Summary, now_ms
from core.models.thread import Thread
from core.storage.atomic import read_json, write_json_atomic
from core.storage.thread_store import ThreadStore
from core.summarization.article_generator import ArticleGenerator
from core.summarization.overview import OverviewGenerator
from core.summarization.theme_matrix import ThemeMatrixAnalyzer
from core.summarization.thread_selector import select_threads

logger = logging.getLogger(__name__)


class SummaryStore:
    """Reads and writes the latest combined summary snapshot."""

    def __init__(self, summary_path: Union[str, Path]):
        self.summary_path = Path(summary_path)

    def save(self, summary: Summary) -> int:
        return write_json_atomic(self.summary_path, summary.to_dict())

    def load_latest(self) -> Optional[Summary]:
        data = read_json(self.summary_path)
        if not data:
            return None
        return Summary.from_dict(data)


class Summarizer:
    """Runs article generation, then matrix and overview, then saves."""

    def __init__(self,
                 thread_store: ThreadStore,
                 article_generator: ArticleGenerator,
                 matrix_analyzer: ThemeMatrixAnalyzer,
                 overview_generator: OverviewGenerator,
                 summary_store: SummaryStore,
                 required_threads: int = 12,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], int] = now_ms):
        self.thread_store = thread_store
        self.article_generator = article_generator
        self.matrix_analyzer = matrix_analyzer
        self.overview_generator = overview_generator
        self.summary_store = summary_store
        self.required_threads = required_threads
        self.rng = rng or random.Random()
        self.clock = clock

    def select(self) -> List[Thread]:
        """
        Pick threads from the store for this run.

        Raises:
            SelectionError: If fewer than the required number qualify
        """
        pool = self.thread_store.load_all()
        selection = select_threads(pool, rng=self.rng, target=self.required_threads)
        return selection.require(self.required_threads)

    async def summarize(self, threads: List[Thread]) -> Summary:
        """
        Build and persist a summary for the given threads.

        Raises:
            SummarizationError: If no articles were produced or the overview failed
            StorageError: If the summary snapshot cannot be written
        """
        logger.info(f"Starting analysis of {len(threads)} threads")
        batch = await self.article_generator.generate(threads)
        if not batch.articles:
            raise SummarizationError('articles', 'no thread produced an article')

        try:
            matrix, overview = await asyncio.gather(
                self.matrix_analyzer.analyze(batch.articles),
                self.overview_generator.analyze(threads, batch.articles)
            )
        except (LLMError, ValueError) as e:
            raise SummarizationError('overview', str(e)) from e

        summary = Summary(batch=batch, matrix=matrix, overview=overview, generated_at=self.clock())
        size = self.summary_store.save(summary)
        logger.info(
            f"Summary saved ({size} bytes): {len(batch.articles)} threads, "
            f"{batch.total_analyzed_posts} posts, average {batch.average_percentage:.2f}%"
        )
        return summary

    async def run(self) -> Summary:
        """Select threads from the store and summarize them."""
        threads = await asyncio.to_thread(self.select)
        return await self.summarize(threads)
