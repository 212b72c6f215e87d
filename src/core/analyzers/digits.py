#!/usr/bin/env python3
"""
Digit-run ("GET") analyzer.

Finds posts whose number ends in a run of two or more identical digits
and that other posts "checked" by mentioning both a checking keyword and
the post number. Results form a leaderboard ranked by run length, then
by how often the post was checked.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.models.thread import Post, Thread
from core.text_sanitizer import post_text
from .base import AnalyzerResult, BaseAnalyzer

CHECK_KEYWORDS = ('checked', 'get', 'digits', 'dubs', 'trips', 'quads', 'quints')

GET_TYPES = {
    2: 'dubs',
    3: 'trips',
    4: 'quads',
    5: 'quints',
    6: 'sexts',
    7: 'septs',
    8: 'octs',
}
SPECIAL_GET = 'special'

MIN_RUN = 2
MAX_RESULTS = 25


def trailing_run(post_no: int) -> Optional[Tuple[str, int]]:
    """
    Longest run of identical trailing digits.
    
    Returns:
        (digits, length) for runs of at least two digits, otherwise None
    """
    digits = str(post_no)
    last = digits[-1]
    length = len(digits) - len(digits.rstrip(last))
    if length < MIN_RUN:
        return None
    return digits[-length:], length


def get_type(digit_count: int) -> str:
    """Taxonomy label for a run length; nine or more is special."""
    return GET_TYPES.get(digit_count, SPECIAL_GET if digit_count > 8 else '')


def score(digit_count: int, check_count: int) -> int:
    return 2 ** digit_count * 1000 + check_count


@dataclass
class GetResult(AnalyzerResult):
    get_type: str = ''
    repeating_digits: str = ''
    digit_count: int = 0
    check_count: int = 0
    thread_subject: str = ''
    is_op: bool = False
    checking_post_ids: List[int] = field(default_factory=list)
    
    @property
    def score(self) -> int:
        return score(self.digit_count, self.check_count)
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'getType': self.get_type,
            'repeatingDigits': self.repeating_digits,
            'digitCount': self.digit_count,
            'checkCount': self.check_count,
            'score': self.score,
            'threadSubject': self.thread_subject,
            'isOp': self.is_op,
            'checkingPostIds': list(self.checking_post_ids),
        })
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GetResult':
        return cls(
            **cls.base_kwargs(data),
            get_type=data.get('getType', ''),
            repeating_digits=str(data.get('repeatingDigits', '')),
            digit_count=int(data.get('digitCount', 0)),
            check_count=int(data.get('checkCount', 0)),
            thread_subject=data.get('threadSubject', ''),
            is_op=bool(data.get('isOp', False)),
            checking_post_ids=[int(n) for n in data.get('checkingPostIds', [])]
        )


class GetAnalyzer(BaseAnalyzer[GetResult]):
    """Tracks checked GETs across every thread in the batch."""
    
    name = 'get'
    result_type = GetResult
    
    def _checking_posts(self, threads: List[Thread]) -> List[Tuple[int, Post, str]]:
        """Every reply whose text contains a checking keyword, lowercased."""
        candidates = []
        for thread in threads:
            for post in thread.posts:
                text = post_text(post.com).lower()
                if text and any(k in text for k in CHECK_KEYWORDS):
                    candidates.append((thread.no, post, text))
        return candidates
    
    def analyze(self, threads: List[Thread]) -> List[GetResult]:
        checkers = self._checking_posts(threads)
        timestamp = self.now()
        results: List[GetResult] = []
        
        for thread in threads:
            for post in thread.all_posts():
                run = trailing_run(post.no)
                if not run:
                    continue
                
                number = str(post.no)
                checks = [
                    (thread_no, checker) for thread_no, checker, text in checkers
                    if checker.no != post.no and number in text
                ]
                if not checks:
                    continue
                
                digits, count = run
                results.append(GetResult(
                    timestamp=timestamp,
                    thread_id=thread.no,
                    post_id=post.no,
                    get_type=get_type(count),
                    repeating_digits=digits,
                    digit_count=count,
                    check_count=len(checks),
                    thread_subject=thread.subject,
                    is_op=post.no == thread.no,
                    checking_post_ids=[c.no for _, c in checks],
                    metadata={
                        'postNo': post.no,
                        'checkCount': len(checks),
                        'crossThreadChecks': any(t != thread.no for t, _ in checks),
                    }
                ))
        
        results.sort(key=lambda r: r.score, reverse=True)
        self.logger.info(f"Found {len(results)} checked GETs")
        return results
    
    def merge_results(self, existing: List[GetResult], new: List[GetResult]) -> List[GetResult]:
        """Keep the higher check count per post, then the top entries by score."""
        best: Dict[int, GetResult] = {}
        for result in existing + new:
            current = best.get(result.post_id)
            if current is None or result.check_count > current.check_count:
                best[result.post_id] = result
        merged = sorted(best.values(), key=lambda r: (r.score, r.timestamp), reverse=True)
        return merged[:MAX_RESULTS]
