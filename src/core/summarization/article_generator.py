#!/usr/bin/env python3
"""
Per-thread article generation with resumable progress.

Each thread gets a headline and article written from a random sample of
its replies, plus a flagged-content percentage from batched
classification requests. Completed articles are checkpointed after every
thread so an interrupted run resumes where it stopped.
"""

import re
import math
import random
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from core.exceptions import LLMError, StorageError
from core.models.summary import ArticleAnalysis, ArticleBatch, now_ms
from core.models.thread import Post, Thread
from core.storage.atomic import read_json, write_json_atomic
from core.summarization.prompts import (
    ArticlePrompts, ClassificationPrompts, CLASSIFICATION_TEMPERATURE
)
from core.text_sanitizer import post_text

logger = logging.getLogger(__name__)

COUNT_RE = re.compile(r'(\d+)\s*/\s*(\d+)')
HEADLINE_RE = re.compile(r'HEADLINE:\s*(.+?)(?:\n|$)', re.IGNORECASE)
ARTICLE_RE = re.compile(r'ARTICLE:\s*(.+)', re.IGNORECASE | re.DOTALL)

UNTITLED = 'Untitled Thread'
NO_CONTENT = 'No content available'


def parse_count(response: str) -> Optional[Tuple[int, int]]:
    """Parse an ``X/Y`` classification answer, None if absent."""
    match = COUNT_RE.search(response or '')
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_article(response: str) -> Tuple[str, str]:
    """Split a ``HEADLINE:`` / ``ARTICLE:`` response into its two parts."""
    response = response or ''
    headline_match = HEADLINE_RE.search(response)
    article_match = ARTICLE_RE.search(response)

    headline = headline_match.group(1).replace('**', '').strip() if headline_match else ''
    article = article_match.group(1).replace('**', '').strip() if article_match else ''

    if not headline or not article:
        logger.warning("Article response is missing a headline or body")
    return headline or UNTITLED, article or NO_CONTENT


class ArticleGenerator:
    """Writes one ArticleAnalysis per thread, checkpointing as it goes."""

    def __init__(self,
                 llm,
                 progress_path: Union[str, Path],
                 analysis_percentage: int = 30,
                 batch_size: int = 20,
                 temperature: float = 0.7,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], int] = now_ms):
        """
        Args:
            llm: Completion client exposing ``complete(system, user, temperature, ...)``
            progress_path: Checkpoint file location
            analysis_percentage: Share of each thread's replies to sample
            batch_size: Comments per classification request
            temperature: Sampling temperature for article writing
            rng: Random source for post sampling
            clock: Epoch-millisecond clock
        """
        self.llm = llm
        self.progress_path = Path(progress_path)
        self.analysis_percentage = analysis_percentage
        self.batch_size = batch_size
        self.temperature = temperature
        self.rng = rng or random.Random()
        self.clock = clock

    def sample_posts(self, thread: Thread) -> List[Post]:
        if not thread.posts:
            return []
        count = math.ceil(len(thread.posts) * self.analysis_percentage / 100)
        return self.rng.sample(thread.posts, min(count, len(thread.posts)))

    async def classify(self, comments: List[str], thread_id: int = 0) -> Tuple[int, int]:
        """
        Count flagged comments across fixed-size sub-batches.

        A failed sub-batch is logged and left out of both totals. When the
        declared analyzed count disagrees with what was sent, the sent size
        is used instead.

        Returns:
            (flagged, analyzed) totals
        """
        flagged_total = 0
        analyzed_total = 0

        for start in range(0, len(comments), self.batch_size):
            batch = comments[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            try:
                response = await self.llm.complete(
                    ClassificationPrompts.SYSTEM_PROMPT,
                    ClassificationPrompts.user_prompt(batch),
                    temperature=CLASSIFICATION_TEMPERATURE,
                    purpose=f"classify thread {thread_id} batch {batch_number}"
                )
            except LLMError as e:
                logger.error(f"Classification batch {batch_number} for thread {thread_id} failed: {e}")
                continue

            parsed = parse_count(response)
            if parsed is None:
                logger.warning(f"Unparseable classification answer for thread {thread_id}: {response[:80]!r}")
                flagged, declared = 0, len(batch)
            else:
                flagged, declared = parsed

            if declared != len(batch):
                logger.warning(f"Batch size mismatch: expected {len(batch)}, got {declared}")
            flagged_total += min(flagged, len(batch))
            analyzed_total += len(batch)

        return flagged_total, analyzed_total

    async def write_article(self, comments: List[str], thread_id: int = 0) -> Tuple[str, str]:
        response = await self.llm.complete(
            ArticlePrompts.SYSTEM_PROMPT,
            ArticlePrompts.user_prompt(comments),
            temperature=self.temperature,
            purpose=f"article for thread {thread_id}"
        )
        headline, article = parse_article(response)
        logger.debug(f"Thread {thread_id}: headline {len(headline.split())} words, "
                     f"article {len(article.split())} words")
        return headline, article

    async def analyze_thread(self, thread: Thread) -> ArticleAnalysis:
        sampled = self.sample_posts(thread)
        comments = [text for text in (post_text(p.com) for p in sampled) if text]

        headline, article = await self.write_article(comments, thread.no)
        flagged, analyzed = await self.classify(comments, thread.no)
        percentage = (flagged / analyzed * 100) if analyzed else 0.0

        logger.info(f"Thread {thread.no}: {len(comments)} comments, {analyzed} classified, {flagged} flagged")
        return ArticleAnalysis(
            thread_id=thread.no,
            headline=headline,
            article=article,
            analyzed_comments=analyzed,
            flagged_comments=flagged,
            percentage=percentage,
            total_posts=thread.post_count,
            analyzed_posts=len(sampled),
            generated_at=self.clock()
        )

    def load_progress(self) -> List[ArticleAnalysis]:
        try:
            data = read_json(self.progress_path, default={})
        except StorageError as e:
            logger.warning(f"Ignoring unreadable progress file: {e}")
            return []
        if not isinstance(data, dict):
            return []

        articles = []
        for entry in data.get('articles', []):
            try:
                articles.append(ArticleAnalysis.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed checkpoint entry: {e}")
        return articles

    def save_progress(self, articles: List[ArticleAnalysis]) -> None:
        payload = {
            'articles': [a.to_dict() for a in articles],
            'completedThreadIds': [a.thread_id for a in articles],
            'timestamp': self.clock(),
        }
        try:
            write_json_atomic(self.progress_path, payload)
        except StorageError as e:
            logger.warning(f"Failed to save progress: {e}")

    def clear_progress(self) -> None:
        try:
            self.progress_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove progress file {self.progress_path}: {e}")

    async def generate(self,
                       threads: List[Thread],
                       on_progress: Optional[Callable[[int], None]] = None) -> ArticleBatch:
        """
        Produce articles for every thread not already checkpointed.

        Args:
            threads: Threads to summarize
            on_progress: Called with each completed thread id

        Returns:
            Batch holding resumed and newly generated articles
        """
        articles = self.load_progress()
        completed = {a.thread_id for a in articles}
        remaining = [t for t in threads if t.no not in completed]

        if articles:
            logger.info(f"Resuming from previous progress: {len(articles)} articles already processed")

        for index, thread in enumerate(remaining, 1):
            try:
                analysis = await self.analyze_thread(thread)
            except Exception as e:
                logger.error(f"Failed to analyze thread {thread.no}: {e}", exc_info=True)
                continue

            articles.append(analysis)
            self.save_progress(articles)
            logger.info(f"Progress: {index}/{len(remaining)} - completed thread {thread.no}")
            if on_progress:
                on_progress(thread.no)

        self.clear_progress()
        batch = ArticleBatch(articles=articles, generated_at=self.clock())
        logger.info(
            f"Generated {len(batch.articles)} articles over {batch.total_analyzed_posts} sampled posts, "
            f"average {batch.average_percentage:.2f}%"
        )
        return batch
