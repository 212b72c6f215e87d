"""
Thread summarization: selection, per-thread articles, theme matrix and
overview.
"""

from .thread_selector import ThreadSelection, select_threads
from .article_generator import ArticleGenerator
from .theme_matrix import ThemeMatrixAnalyzer
from .overview import OverviewGenerator
from .summarizer import Summarizer, SummaryStore

__all__ = [
    'ThreadSelection',
    'select_threads',
    'ArticleGenerator',
    'ThemeMatrixAnalyzer',
    'OverviewGenerator',
    'Summarizer',
    'SummaryStore',
]
