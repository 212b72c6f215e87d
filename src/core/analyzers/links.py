#!/usr/bin/env python3
"""
Link and domain analyzer.

Extracts URLs from reply bodies, tallies domains and keeps a shuffled
sample of link-bearing posts. Links in root posts and video-hosting
links are counted as excluded rather than tallied.
"""

import re
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from core.models.thread import Thread
from core.text_sanitizer import post_text, unescape_markup
from .base import AnalyzerResult, BaseAnalyzer

MAX_TOP_DOMAINS = 10
MAX_RANDOM_LINKS = 10

URL_RE = re.compile(r'(https?://[^\s<]+[^<.,:;"\')\]\s])')
EXCLUDED_DOMAINS = ('youtube.com', 'youtu.be')


def extract_links(com: Optional[str]) -> List[str]:
    return URL_RE.findall(unescape_markup(com))


def domain_of(url: str) -> str:
    """Hostname without a leading ``www.``; the raw URL if it cannot be parsed."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if not host:
        return url
    return host[4:] if host.startswith('www.') else host


def categorize(domain: str) -> str:
    if 'news' in domain or domain.endswith('.news'):
        return 'news'
    if 'imgur' in domain or 'image' in domain:
        return 'image'
    if 'twitter' in domain or 'facebook' in domain:
        return 'social'
    if 'archive' in domain:
        return 'archive'
    if 'wiki' in domain or 'docs' in domain:
        return 'reference'
    return 'other'


@dataclass
class LinkResult(AnalyzerResult):
    top_domains: List[Dict[str, Any]] = field(default_factory=list)
    random_links: List[Dict[str, Any]] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'topDomains': list(self.top_domains),
            'randomLinks': list(self.random_links),
        })
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LinkResult':
        return cls(
            **cls.base_kwargs(data),
            top_domains=list(data.get('topDomains', [])),
            random_links=list(data.get('randomLinks', []))
        )


class LinkAnalyzer(BaseAnalyzer[LinkResult]):
    """Tracks the most common domains and samples link posts."""
    
    name = 'link'
    result_type = LinkResult
    
    def __init__(self, *args, rng: Optional[random.Random] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.rng = rng or random.Random()
    
    def analyze(self, threads: List[Thread]) -> List[LinkResult]:
        timestamp = self.now()
        domains: Dict[str, Dict[str, Any]] = {}
        link_posts: List[Dict[str, Any]] = []
        total_links = 0
        excluded_video = 0
        excluded_op = 0
        
        for thread in threads:
            op_links = extract_links(thread.com)
            excluded_op += len(op_links)
            total_links += len(op_links)
            
            for post in thread.posts:
                for url in extract_links(post.com):
                    total_links += 1
                    domain = domain_of(url)
                    if domain in EXCLUDED_DOMAINS:
                        excluded_video += 1
                        continue
                    
                    stats = domains.setdefault(domain, {'domain': domain, 'count': 0, 'lastSeen': 0})
                    stats['count'] += 1
                    stats['lastSeen'] = timestamp
                    
                    link_posts.append({
                        'threadId': thread.no,
                        'postId': post.no,
                        'timestamp': post.time * 1000,
                        'text': post_text(post.com)[:500],
                        'link': {'url': url, 'domain': domain, 'category': categorize(domain)},
                    })
        
        top_domains = sorted(domains.values(), key=lambda d: d['count'], reverse=True)[:MAX_TOP_DOMAINS]
        self.rng.shuffle(link_posts)
        sample = link_posts[:MAX_RANDOM_LINKS]
        
        self.logger.info(f"Found {len(domains)} domains, sampled {len(sample)} link posts")
        return [LinkResult(
            timestamp=timestamp,
            thread_id=sample[0]['threadId'] if sample else 0,
            post_id=sample[0]['postId'] if sample else 0,
            top_domains=top_domains,
            random_links=sample,
            metadata={
                'totalLinksFound': total_links,
                'uniqueDomains': len(domains),
                'excludedYoutubeLinks': excluded_video,
                'excludedOpLinks': excluded_op,
            }
        )]
