#!/usr/bin/env python3
"""
Geographic participation analyzer.

Counts posts and distinct poster ids per country flag over one batch.
Each run is a point-in-time snapshot: stored history is replaced, not
merged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from core.models.thread import Thread
from .base import AnalyzerResult, BaseAnalyzer

MAX_COUNTRIES = 5
ANONYMOUS_POSTER = 'anon'


@dataclass
class GeoResult(AnalyzerResult):
    total_unique_countries: int = 0
    most_common_countries: List[Dict[str, Any]] = field(default_factory=list)
    rarest_countries: List[Dict[str, Any]] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'totalUniqueCountries': self.total_unique_countries,
            'mostCommonCountries': list(self.most_common_countries),
            'rarestCountries': list(self.rarest_countries),
        })
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeoResult':
        return cls(
            **cls.base_kwargs(data),
            total_unique_countries=int(data.get('totalUniqueCountries', 0)),
            most_common_countries=list(data.get('mostCommonCountries', [])),
            rarest_countries=list(data.get('rarestCountries', []))
        )


class GeoAnalyzer(BaseAnalyzer[GeoResult]):
    """Tracks country statistics across the batch."""
    
    name = 'geo'
    result_type = GeoResult
    
    def analyze(self, threads: List[Thread]) -> List[GeoResult]:
        timestamp = self.now()
        countries: Dict[str, Dict[str, Any]] = {}
        posters: Dict[str, Set[str]] = {}
        total_posts = 0
        with_location = 0
        first_located: Optional[Tuple[int, int]] = None
        
        for thread in threads:
            for post in thread.all_posts():
                total_posts += 1
                if not (post.country and post.country_name):
                    continue
                
                with_location += 1
                if first_located is None:
                    first_located = (thread.no, post.no)
                
                stats = countries.setdefault(post.country, {
                    'code': post.country,
                    'name': post.country_name,
                    'postCount': 0,
                    'uniquePosters': 0,
                    'lastSeen': timestamp,
                })
                seen = posters.setdefault(post.country, set())
                seen.add(post.poster_id or ANONYMOUS_POSTER)
                stats['postCount'] += 1
                stats['uniquePosters'] = len(seen)
        
        ranked = sorted(countries.values(), key=lambda c: (-c['postCount'], c['code']))
        rarest = sorted(countries.values(), key=lambda c: (c['postCount'], c['code']))
        
        if first_located is None and threads:
            first_located = (threads[0].no, threads[0].no)
        thread_id, post_id = first_located or (0, 0)
        
        self.logger.info(f"Found {len(countries)} countries in {with_location} of {total_posts} posts")
        return [GeoResult(
            timestamp=timestamp,
            thread_id=thread_id,
            post_id=post_id,
            total_unique_countries=len(countries),
            most_common_countries=ranked[:MAX_COUNTRIES],
            rarest_countries=rarest[:MAX_COUNTRIES],
            metadata={
                'totalPostsAnalyzed': total_posts,
                'postsWithLocation': with_location,
            }
        )]
    
    def merge_results(self, existing: List[GeoResult], new: List[GeoResult]) -> List[GeoResult]:
        """Snapshot semantics: the newest run replaces what was stored."""
        return new if new else existing
