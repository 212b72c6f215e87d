#!/usr/bin/env python3
"""
Thread harvester.

Picks candidate threads from the catalog (most replied-to plus newest),
fetches them one at a time with a courtesy delay, stores each snapshot,
then runs the analyzers once over the whole batch and applies retention.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core.analyzers.registry import AnalyzerRegistry
from core.config import BoardConfig
from core.exceptions import AnalysisBatchError, BoardError, StorageError
from core.models.thread import Thread
from core.storage.thread_store import ThreadStore

logger = logging.getLogger(__name__)


@dataclass
class HarvestReport:
    """Counters from one harvest run."""
    catalog_size: int = 0
    candidates: int = 0
    fetched: int = 0
    pruned: int = 0
    failed: int = 0
    media_saved: int = 0
    analyzed: Dict[str, int] = field(default_factory=dict)
    purged: Dict[str, int] = field(default_factory=dict)
    threads_removed: int = 0
    analysis_error: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'catalog_size': self.catalog_size,
            'candidates': self.candidates,
            'fetched': self.fetched,
            'pruned': self.pruned,
            'failed': self.failed,
            'media_saved': self.media_saved,
            'analyzed': dict(self.analyzed),
            'purged': dict(self.purged),
            'threads_removed': self.threads_removed,
            'analysis_error': self.analysis_error,
        }


def select_candidates(catalog: List[Thread], top_by_replies: int, top_by_newest: int) -> List[int]:
    """
    Union of the most replied-to and the newest threads.
    
    Sticky and closed threads are excluded.
    
    Returns:
        Thread numbers, newest first, without duplicates
    """
    eligible = [t for t in catalog if not t.sticky and not t.closed]
    by_replies = sorted(eligible, key=lambda t: t.replies, reverse=True)[:top_by_replies]
    by_newest = sorted(eligible, key=lambda t: t.no, reverse=True)[:top_by_newest]
    return sorted({t.no for t in by_replies} | {t.no for t in by_newest}, reverse=True)


class Harvester:
    """Fetches, stores and analyzes a batch of threads."""
    
    def __init__(self,
                 client_factory: Callable[[], Any],
                 thread_store: ThreadStore,
                 registry: AnalyzerRegistry,
                 config: Optional[BoardConfig] = None,
                 media_dir: Optional[Path] = None):
        """
        Initialize harvester.
        
        Args:
            client_factory: Returns a BoardClient-like async context manager
            thread_store: Destination for thread snapshots
            registry: Analyzers run over the harvested batch
            config: Board settings
            media_dir: Where lead media is saved; media is skipped if None
        """
        self.client_factory = client_factory
        self.thread_store = thread_store
        self.registry = registry
        self.config = config or BoardConfig()
        self.media_dir = media_dir
    
    async def harvest(self) -> HarvestReport:
        """Run one full harvest."""
        report = HarvestReport()
        batch: List[Thread] = []
        
        async with self.client_factory() as client:
            catalog = await client.get_catalog()
            report.catalog_size = len(catalog)
            candidates = select_candidates(catalog, self.config.top_by_replies, self.config.top_by_newest)
            report.candidates = len(candidates)
            logger.info(f"Selected {len(candidates)} of {len(catalog)} catalog threads")
            
            for index, thread_no in enumerate(candidates):
                if index:
                    await client.courtesy_delay()
                
                try:
                    thread = await client.get_thread(thread_no)
                except BoardError as e:
                    report.failed += 1
                    logger.error(f"Failed to fetch thread {thread_no}: {e}")
                    continue
                
                if thread is None:
                    report.pruned += 1
                    continue
                
                try:
                    self.thread_store.save(thread)
                except StorageError as e:
                    report.failed += 1
                    logger.error(f"Failed to store thread {thread_no}: {e}")
                    continue
                batch.append(thread)
                report.fetched += 1
                
                if self.media_dir is not None and self.config.download_media:
                    if await self._download_media(client, thread):
                        report.media_saved += 1
        
        logger.info(
            f"Fetched {report.fetched} threads ({report.pruned} pruned, {report.failed} failed)"
        )
        
        if batch:
            try:
                report.analyzed = await asyncio.to_thread(self.registry.analyze_threads, batch)
            except AnalysisBatchError as e:
                report.analysis_error = e.message
                logger.error(f"Analysis failed for the whole batch: {e}")
        
        try:
            report.purged = await asyncio.to_thread(self.registry.purge_old_results)
        except AnalysisBatchError as e:
            logger.error(f"Retention purge failed for every analyzer: {e}")
        
        report.threads_removed = self.thread_store.purge_older_than(self.config.thread_retention_days)
        return report
    
    async def _download_media(self, client, thread: Thread) -> bool:
        """Best-effort lead media download."""
        try:
            return await client.download_media(thread, self.media_dir) is not None
        except (BoardError, OSError) as e:
            logger.warning(f"Media download failed for thread {thread.no}: {e}")
            return False
