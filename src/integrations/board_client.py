#!/usr/bin/env python3
"""
Board API client.

Async client for the board's read-only JSON API: catalog listing, full
thread bodies and lead media download. HTTP 429 responses trigger a
long randomized backoff and a retry of the same request; 404 on a
thread means it was pruned and is reported as None.
"""

import json
import asyncio
import random
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import aiohttp

from core.config import BoardConfig, VIDEO_EXTENSIONS
from core.exceptions import BoardError, BoardRateLimitError
from core.models.thread import Thread

logger = logging.getLogger(__name__)

USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36',
]


class BoardClient:
    """Board API client used as an async context manager."""
    
    def __init__(self,
                 config: Optional[BoardConfig] = None,
                 rng: Optional[random.Random] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        """
        Initialize board client.
        
        Args:
            config: Board settings, defaults when omitted
            rng: Source of randomness for user agents and backoff
            sleep: Coroutine used for backoff waits
        """
        self.config = config or BoardConfig()
        self.rng = rng or random.Random()
        self._sleep = sleep
        self._session: Optional[aiohttp.ClientSession] = None
    
    async def __aenter__(self):
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
        )
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None
    
    @property
    def api_url(self) -> str:
        return f"{self.config.api_base}/{self.config.board}"
    
    @property
    def media_url(self) -> str:
        return f"{self.config.media_base}/{self.config.board}"
    
    def _headers(self) -> dict:
        return {'User-Agent': self.rng.choice(USER_AGENTS)}
    
    async def courtesy_delay(self) -> None:
        """Randomized pause between consecutive board requests."""
        low, high = self.config.courtesy_delay
        await self._sleep(self.rng.uniform(low, high))
    
    async def _get(self, url: str, not_found_ok: bool = False) -> Tuple[int, Optional[bytes]]:
        """
        GET ``url`` with rate-limit backoff.
        
        Returns:
            (status, body); body is None for a tolerated 404
            
        Raises:
            BoardRateLimitError: If 429 persists past the retry budget
            BoardError: On any other HTTP or transport failure
        """
        if not self._session:
            raise RuntimeError("BoardClient must be used as async context manager")
        
        attempts = 0
        while True:
            attempts += 1
            try:
                logger.debug(f"Fetching {url}")
                async with self._session.get(url, headers=self._headers()) as response:
                    if response.status == 429:
                        if attempts > self.config.max_rate_limit_retries:
                            raise BoardRateLimitError(url, attempts)
                        low, high = self.config.rate_limit_backoff
                        wait = self.rng.uniform(low, high)
                        logger.warning(f"Rate limited on {url}, waiting {wait:.0f}s (attempt {attempts})")
                        await self._sleep(wait)
                        continue
                    if response.status == 404 and not_found_ok:
                        return 404, None
                    if response.status >= 400:
                        raise BoardError(url, status=response.status)
                    return response.status, await response.read()
            except asyncio.TimeoutError as e:
                raise BoardError(url, original_error=e) from e
            except aiohttp.ClientError as e:
                raise BoardError(url, original_error=e) from e
    
    async def _get_json(self, url: str, not_found_ok: bool = False) -> Optional[Any]:
        status, body = await self._get(url, not_found_ok=not_found_ok)
        if body is None:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise BoardError(url, status=status, original_error=e) from e
    
    async def get_catalog(self) -> List[Thread]:
        """
        Fetch the catalog and flatten its pages.
        
        Returns:
            Thread stubs (root post fields, reply counts, no replies)
        """
        pages = await self._get_json(f"{self.api_url}/catalog.json")
        stubs = []
        for page in pages or []:
            for entry in page.get('threads', []):
                entry = {k: v for k, v in entry.items() if k != 'last_replies'}
                stubs.append(Thread.from_dict(entry))
        logger.info(f"Catalog lists {len(stubs)} threads")
        return stubs
    
    async def get_thread(self, thread_no: int) -> Optional[Thread]:
        """
        Fetch a full thread.
        
        Returns:
            The thread, or None if the board no longer has it
        """
        data = await self._get_json(f"{self.api_url}/thread/{thread_no}.json", not_found_ok=True)
        if data is None:
            logger.info(f"Thread {thread_no} not found (pruned)")
            return None
        try:
            return Thread.from_board_posts(data.get('posts', []))
        except (KeyError, TypeError, ValueError) as e:
            raise BoardError(f"{self.api_url}/thread/{thread_no}.json", original_error=e) from e
    
    async def download_media(self, thread: Thread, dest_dir: Path) -> Optional[Path]:
        """
        Save the thread's lead image as ``<thread no><ext>``.
        
        Video files and threads without media are skipped.
        
        Returns:
            Path written, or None when skipped
        """
        media = thread.media
        if not media:
            return None
        if media.ext.lower() in VIDEO_EXTENSIONS:
            logger.debug(f"Skipping video file for thread {thread.no} ({media.ext})")
            return None
        
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / f"{thread.no}{media.ext}"
        
        _, body = await self._get(f"{self.media_url}/{media.tim}{media.ext}")
        tmp = target.with_name(target.name + '.part')
        try:
            tmp.write_bytes(body or b'')
            tmp.replace(target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug(f"Downloaded media for thread {thread.no}")
        return target
