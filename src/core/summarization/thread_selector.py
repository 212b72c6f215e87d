#!/usr/bin/env python3
"""
Stratified thread selection.

Picks a fixed-size set of threads for LLM analysis: the three busiest,
then up to three at random from each of the 200-299, 100-199 and 50+
post bands, backfilling from unpicked 50+ threads when a band runs short.
"""

import random
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from core.exceptions import SelectionError
from core.models.thread import Thread

logger = logging.getLogger(__name__)

TOP_COUNT = 3
PER_BAND = 3
TARGET_TOTAL = 12
MIN_POSTS = 50


@dataclass
class ThreadSelection:
    top_by_posts: List[Thread] = field(default_factory=list)
    medium_high: List[Thread] = field(default_factory=list)
    medium: List[Thread] = field(default_factory=list)
    low: List[Thread] = field(default_factory=list)
    backfill: List[Thread] = field(default_factory=list)
    
    @property
    def threads(self) -> List[Thread]:
        return self.top_by_posts + self.medium_high + self.medium + self.low + self.backfill
    
    def __len__(self) -> int:
        return len(self.threads)
    
    def shortfall(self, required: int = TARGET_TOTAL) -> int:
        return max(0, required - len(self))
    
    def require(self, required: int = TARGET_TOTAL) -> List[Thread]:
        """
        Return the selected threads, or raise if there are too few.
        
        Raises:
            SelectionError: If fewer than ``required`` threads were selected
        """
        if len(self) < required:
            raise SelectionError(len(self), required)
        return self.threads


def select_threads(threads: List[Thread],
                   rng: Optional[random.Random] = None,
                   target: int = TARGET_TOTAL) -> ThreadSelection:
    """
    Select threads for summarization.
    
    Args:
        threads: Harvested pool
        rng: Random source, seed it for reproducible picks
        target: Desired selection size
        
    Returns:
        Selection grouped by band; may be short, check ``shortfall``
    """
    rng = rng or random.Random()
    ranked = sorted(threads, key=lambda t: t.post_count, reverse=True)
    chosen: Set[int] = set()
    
    def take(candidates: List[Thread], count: int) -> List[Thread]:
        pool = [t for t in candidates if t.no not in chosen]
        picked = rng.sample(pool, min(count, len(pool)))
        chosen.update(t.no for t in picked)
        return picked
    
    selection = ThreadSelection()
    selection.top_by_posts = ranked[:TOP_COUNT]
    chosen.update(t.no for t in selection.top_by_posts)
    
    selection.medium_high = take([t for t in ranked if 200 <= t.post_count < 300], PER_BAND)
    selection.medium = take([t for t in ranked if 100 <= t.post_count < 200], PER_BAND)
    selection.low = take([t for t in ranked if t.post_count >= MIN_POSTS], PER_BAND)
    
    missing = target - len(selection)
    if missing > 0:
        logger.warning(f"Only {len(selection)} threads matched the bands, backfilling {missing}")
        selection.backfill = take([t for t in ranked if t.post_count >= MIN_POSTS], missing)
    
    logger.info(
        f"Selected {len(selection)} of {len(threads)} threads: "
        f"top={len(selection.top_by_posts)} 200-299={len(selection.medium_high)} "
        f"100-199={len(selection.medium)} 50+={len(selection.low)} backfill={len(selection.backfill)}"
    )
    if selection.shortfall(target):
        logger.warning(f"Selection is {selection.shortfall(target)} threads short of {target}")
    return selection
