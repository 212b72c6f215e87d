#!/usr/bin/env python3
"""
Core data models for the thread pipeline.

Contains all data structures used throughout the application.
"""

from .thread import Thread, Post, MediaDescriptor
from .summary import (
    ArticleAnalysis, ArticleBatch, MatrixStatistics, Theme, Sentiment,
    TrendPoint, ThemeMatrix, OverviewAnalysis, Summary, now_ms,
)

__all__ = [
    'Thread', 'Post', 'MediaDescriptor',
    'ArticleAnalysis', 'ArticleBatch', 'MatrixStatistics', 'Theme', 'Sentiment',
    'TrendPoint', 'ThemeMatrix', 'OverviewAnalysis', 'Summary', 'now_ms',
]
