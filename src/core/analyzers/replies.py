#!/usr/bin/env python3
"""
Reply-graph analyzer.

Counts, per non-root post, how many distinct posts replied to it either
through the ``resto`` field or through a quote link (``>>123`` or
``#p123``) in the body. Keeps a bounded leaderboard of the most
replied-to posts across runs.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

from core.models.thread import Thread
from core.text_sanitizer import post_text, unescape_markup
from .base import AnalyzerResult, BaseAnalyzer

MAX_RESULTS = 10

QUOTE_RE = re.compile(r'(?:>>|#p)(\d+)\b')


@dataclass
class ReplyResult(AnalyzerResult):
    reply_count: int = 0
    thread_subject: str = ''
    source_text: str = ''
    reply_ids: List[int] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'replyCount': self.reply_count,
            'threadSubject': self.thread_subject,
            'sourceText': self.source_text,
            'replyIds': list(self.reply_ids),
        })
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReplyResult':
        return cls(
            **cls.base_kwargs(data),
            reply_count=int(data.get('replyCount', 0)),
            thread_subject=data.get('threadSubject', ''),
            source_text=data.get('sourceText', ''),
            reply_ids=[int(n) for n in data.get('replyIds', [])]
        )


class ReplyAnalyzer(BaseAnalyzer[ReplyResult]):
    """Tracks the most replied-to posts."""
    
    name = 'reply'
    result_type = ReplyResult
    
    def analyze(self, threads: List[Thread]) -> List[ReplyResult]:
        timestamp = self.now()
        results: List[ReplyResult] = []
        
        for thread in threads:
            posts = {p.no: p for p in thread.posts}
            repliers: Dict[int, Set[int]] = {}
            
            for post in thread.posts:
                targets = set()
                if post.resto and post.resto != thread.no:
                    targets.add(post.resto)
                targets.update(int(n) for n in QUOTE_RE.findall(unescape_markup(post.com)))
                
                for target in targets:
                    # Root post and posts outside this thread are not ranked
                    if target == thread.no or target == post.no or target not in posts:
                        continue
                    repliers.setdefault(target, set()).add(post.no)
            
            subject = thread.sub or f"Thread #{thread.no}"
            for target, reply_ids in repliers.items():
                results.append(ReplyResult(
                    timestamp=timestamp,
                    thread_id=thread.no,
                    post_id=target,
                    reply_count=len(reply_ids),
                    thread_subject=subject,
                    source_text=post_text(posts[target].com)[:500],
                    reply_ids=sorted(reply_ids),
                    metadata={'replyCount': len(reply_ids), 'threadSubject': subject}
                ))
        
        results.sort(key=lambda r: r.reply_count, reverse=True)
        top = results[:MAX_RESULTS]
        self.logger.info(
            f"Found {len(results)} replied-to posts, top has {top[0].reply_count if top else 0} replies"
        )
        return top
    
    def merge_results(self, existing: List[ReplyResult], new: List[ReplyResult]) -> List[ReplyResult]:
        """Latest count per post wins unless the stored one is higher; keep the top entries."""
        best: Dict[int, ReplyResult] = {}
        for result in existing + new:
            current = best.get(result.post_id)
            if current is None or result.reply_count >= current.reply_count:
                best[result.post_id] = result
        merged = sorted(best.values(), key=lambda r: r.reply_count, reverse=True)
        return merged[:MAX_RESULTS]
