#!/usr/bin/env python3
"""
Pluggable analyzers run over every harvested batch.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence

from .base import AnalyzerResult, BaseAnalyzer, StorageDescriptor, StorageSettings
from .registry import AnalyzerRegistry
from .digits import GetAnalyzer, GetResult
from .replies import ReplyAnalyzer, ReplyResult
from .links import LinkAnalyzer, LinkResult
from .geo import GeoAnalyzer, GeoResult
from .terms import TermAnalyzer, TermResult


def build_default_registry(analysis_dir: Path,
                           settings: StorageSettings,
                           tracked_terms: Sequence[str],
                           clock: Optional[Callable[[], int]] = None) -> AnalyzerRegistry:
    """Registry with all five analyzers sharing one storage policy."""
    registry = AnalyzerRegistry()
    registry.register(GetAnalyzer(analysis_dir, settings, clock))
    registry.register(ReplyAnalyzer(analysis_dir, settings, clock))
    registry.register(LinkAnalyzer(analysis_dir, settings, clock))
    registry.register(GeoAnalyzer(analysis_dir, settings, clock))
    registry.register(TermAnalyzer(analysis_dir, settings, clock, terms=tracked_terms))
    return registry


__all__ = [
    'AnalyzerResult', 'BaseAnalyzer', 'StorageDescriptor', 'StorageSettings',
    'AnalyzerRegistry', 'build_default_registry',
    'GetAnalyzer', 'GetResult', 'ReplyAnalyzer', 'ReplyResult',
    'LinkAnalyzer', 'LinkResult', 'GeoAnalyzer', 'GeoResult',
    'TermAnalyzer', 'TermResult',
]
