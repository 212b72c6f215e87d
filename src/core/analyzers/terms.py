#!/usr/bin/env python3
"""
Tracked-term frequency analyzer.

Counts whole-word, case-insensitive occurrences of a fixed vocabulary
and compares each term's count with the previous run.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from core.models.thread import Thread
from core.text_sanitizer import post_text
from .base import AnalyzerResult, BaseAnalyzer


def percent_change(previous: int, current: int) -> float:
    """
    Change from ``previous`` to ``current`` in percent.
    
    A term that appears for the first time counts as +100%.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


@dataclass
class TermResult(AnalyzerResult):
    term: str = ''
    count: int = 0
    previous_count: int = 0
    percent_change: float = 0.0
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'term': self.term,
            'count': self.count,
            'previousCount': self.previous_count,
            'percentChange': self.percent_change,
        })
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TermResult':
        return cls(
            **cls.base_kwargs(data),
            term=data['term'],
            count=int(data.get('count', 0)),
            previous_count=int(data.get('previousCount', 0)),
            percent_change=float(data.get('percentChange', 0.0))
        )


class TermAnalyzer(BaseAnalyzer[TermResult]):
    """Tracks term frequencies run over run."""
    
    name = 'terms'
    result_type = TermResult
    
    def __init__(self, *args, terms: Sequence[str] = (), **kwargs):
        super().__init__(*args, **kwargs)
        if not terms:
            raise ValueError("TermAnalyzer needs at least one tracked term")
        self.terms = [t.lower() for t in terms]
        self._patterns: List[Tuple[str, Pattern]] = [
            (term, re.compile(rf'\b{re.escape(term)}\b', re.IGNORECASE)) for term in self.terms
        ]
    
    def count_terms(self, text: str) -> Dict[str, int]:
        counts = {}
        for term, pattern in self._patterns:
            found = len(pattern.findall(text))
            if found:
                counts[term] = found
        return counts
    
    def previous_counts(self) -> Dict[str, int]:
        """Counts from the most recent stored run, keyed by term."""
        stored = self.load_results()
        if not stored:
            return {}
        latest = max(r.timestamp for r in stored)
        return {r.term: r.count for r in stored if r.timestamp == latest}
    
    def analyze(self, threads: List[Thread]) -> List[TermResult]:
        timestamp = self.now()
        totals = {term: 0 for term in self.terms}
        first_seen: Dict[str, Tuple[int, int]] = {}
        posts_scanned = 0
        posts_with_terms = 0
        
        for thread in threads:
            for post in thread.all_posts():
                text = post_text(post.com)
                if not text:
                    continue
                posts_scanned += 1
                counts = self.count_terms(text)
                if counts:
                    posts_with_terms += 1
                for term, found in counts.items():
                    totals[term] += found
                    first_seen.setdefault(term, (thread.no, post.no))
        
        previous = self.previous_counts()
        fallback: Optional[Tuple[int, int]] = (threads[0].no, threads[0].no) if threads else None
        metadata = {
            'postsScanned': posts_scanned,
            'postsWithTerms': posts_with_terms,
            'totalOccurrences': sum(totals.values()),
        }
        
        results = []
        for term in self.terms:
            thread_id, post_id = first_seen.get(term) or fallback or (0, 0)
            prev = previous.get(term, 0)
            results.append(TermResult(
                timestamp=timestamp,
                thread_id=thread_id,
                post_id=post_id,
                term=term,
                count=totals[term],
                previous_count=prev,
                percent_change=percent_change(prev, totals[term]),
                metadata=dict(metadata)
            ))
        
        self.logger.info(
            f"Scanned {posts_scanned} posts, {posts_with_terms} contained tracked terms "
            f"({metadata['totalOccurrences']} occurrences)"
        )
        return results
