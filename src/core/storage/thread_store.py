#!/usr/bin/env python3
"""
Thread snapshot store.

One ``<thread no>.json`` file per thread. Each harvest overwrites the
snapshot in place; the retention sweep removes snapshots whose file
modification time is older than the retention window.
"""

import time
import logging
from pathlib import Path
from typing import List, Optional, Union

from core.models.thread import Thread
from core.exceptions import StorageError
from .atomic import write_json_atomic, read_json

logger = logging.getLogger(__name__)


class ThreadStore:
    """Reads and writes thread snapshots under a single directory."""
    
    def __init__(self, threads_dir: Union[str, Path]):
        self.threads_dir = Path(threads_dir)
    
    def path_for(self, thread_no: int) -> Path:
        return self.threads_dir / f"{thread_no}.json"
    
    def save(self, thread: Thread) -> Path:
        """Write the full thread snapshot atomically."""
        path = self.path_for(thread.no)
        write_json_atomic(path, thread.to_dict())
        logger.debug(f"Saved thread {thread.no} ({len(thread.posts)} replies)")
        return path
    
    def load(self, thread_no: int) -> Optional[Thread]:
        data = read_json(self.path_for(thread_no))
        return Thread.from_dict(data) if data else None
    
    def load_all(self, directory: Optional[Union[str, Path]] = None) -> List[Thread]:
        """
        Load every stored thread.
        
        Files that cannot be read or parsed are logged and skipped so a
        single corrupt snapshot never fails the whole load.
        
        Args:
            directory: Directory to read, defaults to the store's own
            
        Returns:
            Threads in file-name order
        """
        directory = Path(directory) if directory else self.threads_dir
        if not directory.exists():
            logger.info(f"Thread directory {directory} does not exist yet")
            return []
        
        threads: List[Thread] = []
        skipped = 0
        for path in sorted(directory.glob('*.json')):
            try:
                data = read_json(path)
                threads.append(Thread.from_dict(data))
            except (StorageError, KeyError, TypeError, ValueError) as e:
                skipped += 1
                logger.warning(f"Skipping unreadable thread file {path.name}: {e}")
        
        if skipped:
            logger.warning(f"Skipped {skipped} unreadable thread files in {directory}")
        logger.info(f"Loaded {len(threads)} threads from {directory}")
        return threads
    
    def purge_older_than(self, days: float) -> int:
        """
        Delete thread snapshots last written more than ``days`` ago.
        
        Returns:
            Number of files removed
        """
        if not self.threads_dir.exists():
            return 0
        
        cutoff = time.time() - days * 24 * 60 * 60
        removed = 0
        for path in self.threads_dir.glob('*.json'):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Failed to remove old thread file {path.name}: {e}")
        
        if removed:
            logger.info(f"Removed {removed} thread files older than {days} days")
        return removed
    
    def count(self) -> int:
        if not self.threads_dir.exists():
            return 0
        return sum(1 for _ in self.threads_dir.glob('*.json'))
