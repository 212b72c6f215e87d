#!/usr/bin/env python3
"""
Analyzer registry.

Holds named analyzers and runs them over a harvested batch. One failing
analyzer is logged and skipped; the batch only fails when every
analyzer fails.
"""

import logging
from typing import Any, Dict, List, Optional

from core.exceptions import AnalysisBatchError, AnalyzerRegistrationError, StorageError
from core.models.thread import Thread

logger = logging.getLogger(__name__)

REQUIRED_METHODS = ('analyze', 'save_results', 'load_results', 'purge_old_results')


class AnalyzerRegistry:
    """Ordered collection of analyzers keyed by name."""
    
    def __init__(self):
        """Initialize empty registry."""
        self._analyzers: Dict[str, Any] = {}
    
    def register(self, analyzer) -> None:
        """
        Register an analyzer instance.
        
        Raises:
            AnalyzerRegistrationError: If the name is missing or taken, or a
                required method is missing
        """
        name = getattr(analyzer, 'name', None)
        if not name:
            raise AnalyzerRegistrationError(repr(analyzer), "analyzer has no name")
        if name in self._analyzers:
            raise AnalyzerRegistrationError(name, "name already registered")
        
        missing = [m for m in REQUIRED_METHODS if not callable(getattr(analyzer, m, None))]
        if missing:
            raise AnalyzerRegistrationError(name, f"missing methods: {', '.join(missing)}")
        
        self._analyzers[name] = analyzer
        logger.info(f"Registered analyzer: {name}")
    
    def get(self, name: str):
        return self._analyzers.get(name)
    
    def names(self) -> List[str]:
        return list(self._analyzers.keys())
    
    def __len__(self) -> int:
        return len(self._analyzers)
    
    def __contains__(self, name: str) -> bool:
        return name in self._analyzers
    
    def initialize(self) -> List[str]:
        """
        Load stored results for every analyzer once.
        
        Analyzers whose load fails are removed from the registry.
        
        Returns:
            Names of the analyzers that were dropped
        """
        dropped = []
        for name, analyzer in list(self._analyzers.items()):
            try:
                results = analyzer.load_results()
                logger.debug(f"Analyzer {name} loaded {len(results)} stored results")
            except Exception as e:
                logger.error(f"Dropping analyzer {name}, failed to load results: {e}", exc_info=True)
                del self._analyzers[name]
                dropped.append(name)
        
        logger.info(f"Initialized {len(self._analyzers)} analyzers"
                    + (f", dropped {len(dropped)}" if dropped else ""))
        return dropped
    
    def analyze_threads(self, threads: List[Thread]) -> Dict[str, int]:
        """
        Run each analyzer's analyze then save_results, one after another.
        
        Args:
            threads: Harvested batch
            
        Returns:
            Mapping of analyzer name to number of results produced
            
        Raises:
            AnalysisBatchError: If every registered analyzer failed
        """
        produced: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        
        logger.info(f"Running {len(self._analyzers)} analyzers on {len(threads)} threads")
        for name, analyzer in self._analyzers.items():
            try:
                results = analyzer.analyze(threads)
                analyzer.save_results(results)
                produced[name] = len(results)
                logger.info(f"Analyzer {name} produced {len(results)} results")
            except Exception as e:
                logger.error(f"Analyzer {name} failed: {e}", exc_info=True)
                errors[name] = str(e)
        
        self._check_batch('analyze', errors)
        return produced
    
    def purge_old_results(self) -> Dict[str, int]:
        """
        Apply retention to every analyzer.
        
        Raises:
            AnalysisBatchError: If every registered analyzer failed
        """
        removed: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        
        for name, analyzer in self._analyzers.items():
            try:
                removed[name] = analyzer.purge_old_results()
            except Exception as e:
                logger.error(f"Purge failed for analyzer {name}: {e}", exc_info=True)
                errors[name] = str(e)
        
        self._check_batch('purge', errors)
        return removed
    
    def _check_batch(self, operation: str, errors: Dict[str, str]) -> None:
        if not errors:
            return
        if len(errors) == len(self._analyzers):
            raise AnalysisBatchError(operation, errors)
        logger.warning(
            f"{operation} finished with {len(errors)} of {len(self._analyzers)} analyzers failing: "
            f"{', '.join(errors)}"
        )
    
    def get_latest(self, name: str) -> Dict[str, Any]:
        """
        Stored results for one analyzer, for read-only consumers.
        
        Returns an explicit error payload instead of raising when the
        analyzer is unknown or has nothing stored.
        """
        analyzer: Optional[Any] = self._analyzers.get(name)
        if analyzer is None:
            return {'name': name, 'error': f"Unknown analyzer '{name}'"}
        
        try:
            results = analyzer.load_results()
        except StorageError as e:
            logger.error(f"Cannot read results for {name}: {e}")
            return {'name': name, 'error': 'Invalid data format'}
        if not results:
            return {'name': name, 'error': 'No results available'}
        
        return {
            'name': name,
            'lastUpdated': analyzer.last_updated(),
            'results': [r.to_dict() for r in results],
        }
