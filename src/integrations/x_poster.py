#!/usr/bin/env python3
"""
X (Twitter) poster for generated thread articles.

Posts the least-busy unposted article from the latest summary and keeps a
ledger of posted thread ids so nothing goes out twice.
"""

import time
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests
from requests_oauthlib import OAuth1

from core.config import PosterConfig
from core.exceptions import PostingError
from core.models.summary import ArticleAnalysis, now_ms
from core.storage.atomic import read_json, write_json_atomic

logger = logging.getLogger(__name__)

USER_AGENT = 'board-digest-bot/1.0'


def format_post(article: ArticleAnalysis, config: PosterConfig) -> str:
    """
    Build post text: article body, thread URL, then suffix.

    The URL always counts as ``url_length`` characters, so the body is cut
    (with a trailing ellipsis) to whatever budget is left.
    """
    thread_url = f"{config.thread_url_base}{article.thread_id}"
    budget = config.max_length - (len(config.suffix) + config.url_length + 1)

    text = article.article.strip()
    if len(text) > budget:
        text = text[:budget - 3].rstrip() + '...'
    return f"{text} {thread_url}{config.suffix}"


def select_next(articles: List[ArticleAnalysis], posted_ids: set) -> Optional[ArticleAnalysis]:
    """Unposted article with the fewest posts, or None."""
    unposted = [a for a in articles if a.thread_id not in posted_ids]
    if not unposted:
        return None
    return min(unposted, key=lambda a: a.total_posts)


class XPoster:
    """Posts articles to the X v2 API with OAuth1 user credentials."""

    def __init__(self,
                 config: PosterConfig,
                 posted_path: Union[str, Path],
                 summary_store,
                 session: Optional[requests.Session] = None,
                 timeout: int = 30,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], int] = now_ms):
        self.config = config
        self.posted_path = Path(posted_path)
        self.summary_store = summary_store
        self.session = session or requests.Session()
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._last_post_ms = 0

    @property
    def is_configured(self) -> bool:
        c = self.config
        return all([c.consumer_key, c.consumer_secret, c.access_token, c.access_token_secret])

    @property
    def min_spacing_ms(self) -> float:
        return self.config.window_seconds * 1000 / self.config.posts_per_window

    def load_posted(self) -> List[Dict[str, Any]]:
        data = read_json(self.posted_path, default=[])
        return data if isinstance(data, list) else []

    def record_posted(self, thread_id: int, tweet_id: str) -> Dict[str, Any]:
        entry = {'threadId': thread_id, 'timestamp': self._clock(), 'tweetId': tweet_id}
        ledger = self.load_posted()
        ledger.append(entry)
        write_json_atomic(self.posted_path, ledger)
        return entry

    def next_article(self) -> Optional[ArticleAnalysis]:
        summary = self.summary_store.load_latest()
        if summary is None:
            logger.info("No summary available to post from")
            return None
        posted_ids = {entry.get('threadId') for entry in self.load_posted()}
        return select_next(summary.batch.articles, posted_ids)

    def preview(self) -> Optional[str]:
        """Text the next post would carry, without sending it."""
        article = self.next_article()
        return format_post(article, self.config) if article else None

    def _wait_for_slot(self) -> None:
        elapsed = self._clock() - self._last_post_ms
        if self._last_post_ms and elapsed < self.min_spacing_ms:
            delay = (self.min_spacing_ms - elapsed) / 1000
            logger.debug(f"Waiting {delay:.1f}s before next post")
            self._sleep(delay)

    def send(self, text: str, thread_id: int) -> str:
        """
        Send one post.

        Returns:
            The id X assigned to the post

        Raises:
            PostingError: On missing credentials, transport failure or a non-2xx reply
        """
        if not self.is_configured:
            raise PostingError(thread_id, detail="X credentials are not configured")

        self._wait_for_slot()
        auth = OAuth1(
            self.config.consumer_key,
            client_secret=self.config.consumer_secret,
            resource_owner_key=self.config.access_token,
            resource_owner_secret=self.config.access_token_secret
        )
        try:
            response = self.session.post(
                self.config.api_url,
                json={'text': text},
                auth=auth,
                timeout=self.timeout,
                headers={'User-Agent': USER_AGENT}
            )
        except requests.RequestException as e:
            raise PostingError(thread_id, detail=str(e)) from e

        if not response.ok:
            logger.error(f"X API returned {response.status_code}: {response.text}")
            raise PostingError(thread_id, response.status_code, response.text[:200])

        try:
            tweet_id = str(response.json()['data']['id'])
        except (ValueError, KeyError, TypeError) as e:
            raise PostingError(thread_id, response.status_code, "response has no post id") from e

        self._last_post_ms = self._clock()
        return tweet_id

    def post_next(self) -> Optional[Dict[str, Any]]:
        """
        Post the next article and record it in the ledger.

        Returns:
            Ledger entry for the new post, or None if nothing is left to post
        """
        article = self.next_article()
        if article is None:
            logger.info("No unposted articles available")
            return None

        text = format_post(article, self.config)
        tweet_id = self.send(text, article.thread_id)
        entry = self.record_posted(article.thread_id, tweet_id)
        logger.info(f"Posted thread {article.thread_id} as {tweet_id}")
        return entry
