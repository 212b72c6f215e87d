#!/usr/bin/env python3
"""
Summarization data models.

Articles, batch statistics, theme matrix, trend points and overview
analysis. Serialized field names are camelCase to match the files read
by the dashboard; timestamps are epoch milliseconds.
"""

import time
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class ArticleAnalysis:
    """Generated article and classification statistics for one thread."""
    thread_id: int
    headline: str
    article: str
    analyzed_comments: int
    flagged_comments: int
    percentage: float
    total_posts: int
    analyzed_posts: int
    generated_at: int = field(default_factory=now_ms)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'threadId': self.thread_id,
            'headline': self.headline,
            'article': self.article,
            'antisemiticStats': {
                'analyzedComments': self.analyzed_comments,
                'antisemiticComments': self.flagged_comments,
                'percentage': self.percentage,
            },
            'metadata': {
                'totalPosts': self.total_posts,
                'analyzedPosts': self.analyzed_posts,
                'generatedAt': self.generated_at,
            },
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArticleAnalysis':
        stats = data.get('antisemiticStats', {})
        metadata = data.get('metadata', {})
        return cls(
            thread_id=int(data['threadId']),
            headline=data.get('headline', ''),
            article=data.get('article', ''),
            analyzed_comments=int(stats.get('analyzedComments', 0)),
            flagged_comments=int(stats.get('antisemiticComments', 0)),
            percentage=float(stats.get('percentage', 0.0)),
            total_posts=int(metadata.get('totalPosts', 0)),
            analyzed_posts=int(metadata.get('analyzedPosts', 0)),
            generated_at=int(metadata.get('generatedAt', 0))
        )


@dataclass
class ArticleBatch:
    """All articles from one summarization run plus aggregate statistics."""
    articles: List[ArticleAnalysis]
    generated_at: int = field(default_factory=now_ms)
    
    @property
    def total_analyzed_posts(self) -> int:
        return sum(a.analyzed_posts for a in self.articles)
    
    @property
    def average_percentage(self) -> float:
        # Articles whose classification produced nothing don't count
        scored = [a.percentage for a in self.articles if a.analyzed_comments > 0]
        if not scored:
            return 0.0
        return sum(scored) / len(scored)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'articles': [a.to_dict() for a in self.articles],
            'batchStats': {
                'totalThreads': len(self.articles),
                'totalAnalyzedPosts': self.total_analyzed_posts,
                'averageAntisemiticPercentage': self.average_percentage,
                'generatedAt': self.generated_at,
            },
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArticleBatch':
        return cls(
            articles=[ArticleAnalysis.from_dict(a) for a in data.get('articles', [])],
            generated_at=int(data.get('batchStats', {}).get('generatedAt', 0))
        )


@dataclass
class MatrixStatistics:
    mean: float = 0.0
    median: float = 0.0
    total_analyzed: int = 0
    total_flagged: int = 0
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'mean': self.mean,
            'median': self.median,
            'totalAnalyzed': self.total_analyzed,
            'totalAntisemitic': self.total_flagged,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatrixStatistics':
        return cls(
            mean=float(data.get('mean', 0.0)),
            median=float(data.get('median', 0.0)),
            total_analyzed=int(data.get('totalAnalyzed', 0)),
            total_flagged=int(data.get('totalAntisemitic', 0))
        )


@dataclass
class Theme:
    """A named theme with frequency (percent of content) and keywords."""
    name: str
    frequency: float = 0.0
    keywords: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'frequency': self.frequency,
            'keywords': list(self.keywords),
            'examples': list(self.examples),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Theme':
        return cls(
            name=str(data.get('name', '')),
            frequency=float(data.get('frequency', 0.0) or 0.0),
            keywords=[str(k) for k in data.get('keywords', [])],
            examples=[str(e) for e in data.get('examples', [])]
        )


@dataclass
class Sentiment:
    """A named sentiment with intensity on a 0-100 scale."""
    name: str
    intensity: float = 0.0
    keywords: List[str] = field(default_factory=list)
    
    def __post_init__(self):
        self.intensity = max(0.0, min(100.0, self.intensity))
    
    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'intensity': self.intensity, 'keywords': list(self.keywords)}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sentiment':
        return cls(
            name=str(data.get('name', '')),
            intensity=float(data.get('intensity', 0.0) or 0.0),
            keywords=[str(k) for k in data.get('keywords', [])]
        )


@dataclass
class TrendPoint:
    timestamp: int
    percentage: float
    thread_count: int
    
    def to_dict(self) -> Dict[str, Any]:
        return {'timestamp': self.timestamp, 'percentage': self.percentage, 'threadCount': self.thread_count}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrendPoint':
        return cls(
            timestamp=int(data['timestamp']),
            percentage=float(data.get('percentage', 0.0)),
            thread_count=int(data.get('threadCount', 0))
        )


@dataclass
class ThemeMatrix:
    statistics: MatrixStatistics
    themes: List[Theme]
    trends: List[TrendPoint]
    generated_at: int = field(default_factory=now_ms)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'statistics': self.statistics.to_dict(),
            'themes': [t.to_dict() for t in self.themes],
            'trends': [t.to_dict() for t in self.trends],
            'generatedAt': self.generated_at,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ThemeMatrix':
        return cls(
            statistics=MatrixStatistics.from_dict(data.get('statistics', {})),
            themes=[Theme.from_dict(t) for t in data.get('themes', [])],
            trends=[TrendPoint.from_dict(t) for t in data.get('trends', [])],
            generated_at=int(data.get('generatedAt', 0))
        )


@dataclass
class OverviewAnalysis:
    """Cross-thread narrative plus general themes and sentiments."""
    article: str
    themes: List[Theme]
    sentiments: List[Sentiment]
    generated_at: int = field(default_factory=now_ms)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'overview': {'article': self.article, 'generatedAt': self.generated_at},
            'themes': [t.to_dict() for t in self.themes],
            'sentiments': [s.to_dict() for s in self.sentiments],
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OverviewAnalysis':
        overview = data.get('overview', {})
        return cls(
            article=overview.get('article', ''),
            themes=[Theme.from_dict(t) for t in data.get('themes', [])],
            sentiments=[Sentiment.from_dict(s) for s in data.get('sentiments', [])],
            generated_at=int(overview.get('generatedAt', 0))
        )


@dataclass
class Summary:
    """Combined snapshot written once per summarization run."""
    batch: ArticleBatch
    matrix: ThemeMatrix
    overview: OverviewAnalysis
    generated_at: int = field(default_factory=now_ms)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'articles': self.batch.to_dict(),
            'antisemitismMatrix': self.matrix.to_dict(),
            'bigPicture': self.overview.to_dict(),
            'generatedAt': self.generated_at,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Summary':
        return cls(
            batch=ArticleBatch.from_dict(data.get('articles', {})),
            matrix=ThemeMatrix.from_dict(data.get('antisemitismMatrix', {})),
            overview=OverviewAnalysis.from_dict(data.get('bigPicture', {})),
            generated_at=int(data.get('generatedAt', 0))
        )
