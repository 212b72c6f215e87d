#!/usr/bin/env python3
"""
Dependency Injection Container

Single place where the pipeline's services are built from configuration.
Supports singleton and factory registrations; tests swap services with
``register_instance``.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a service as factory (new instance each time)."""
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register an existing instance as singleton."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        # Reentrant: singleton factories resolve their own dependencies
        with self._lock:
            factory = self._factories[service_name]
            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            logger.debug(f"Created new instance for '{service_name}'")
            return factory()

    def has(self, service_name: str) -> bool:
        """Check if service is registered."""
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()

    def reset_singleton(self, service_name: str) -> None:
        """Reset a singleton instance (will be recreated on next get())."""
        with self._lock:
            if self._singletons.pop(service_name, None) is not None:
                logger.debug(f"Reset singleton '{service_name}'")


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    def create_config():
        from core.config import get_config
        return get_config()

    def create_thread_store():
        from core.storage.thread_store import ThreadStore
        return ThreadStore(container.get('config').paths.threads_dir)

    def create_analyzer_registry():
        from core.analyzers import build_default_registry, StorageSettings
        config = container.get('config')
        registry = build_default_registry(
            config.paths.analysis_dir,
            StorageSettings.from_config(config.analyzers),
            config.analyzers.tracked_terms
        )
        registry.initialize()
        return registry

    def create_board_client_factory():
        from integrations.board_client import BoardClient
        config = container.get('config')
        return lambda: BoardClient(config.board)

    def create_harvester():
        from core.harvester import Harvester
        config = container.get('config')
        return Harvester(
            client_factory=container.get('board_client_factory'),
            thread_store=container.get('thread_store'),
            registry=container.get('analyzer_registry'),
            config=config.board,
            media_dir=config.paths.media_dir
        )

    def create_llm_client():
        from integrations.llm_client import LLMClient
        from core.llm_logger import LLMLogger
        config = container.get('config')
        if not config.has_llm():
            raise ValueError("LLM API key not configured")
        llm_logger = LLMLogger(config.llm.debug_log_path) if config.llm.debug_log_path else None
        return LLMClient(config.llm, llm_logger=llm_logger)

    def create_summary_store():
        from core.summarization import SummaryStore
        return SummaryStore(container.get('config').paths.summary_file)

    def create_summarizer():
        from core.summarization import (
            ArticleGenerator, OverviewGenerator, Summarizer, ThemeMatrixAnalyzer
        )
        config = container.get('config')
        llm = container.get('llm_client')
        return Summarizer(
            thread_store=container.get('thread_store'),
            article_generator=ArticleGenerator(
                llm,
                config.paths.progress_file,
                analysis_percentage=config.summarizer.analysis_percentage,
                batch_size=config.summarizer.classification_batch_size,
                temperature=config.llm.temperature
            ),
            matrix_analyzer=ThemeMatrixAnalyzer(llm, config.paths.trends_file),
            overview_generator=OverviewGenerator(llm, config.paths.big_picture_file),
            summary_store=container.get('summary_store'),
            required_threads=config.summarizer.required_threads
        )

    def create_poster():
        from integrations.x_poster import XPoster
        config = container.get('config')
        return XPoster(config.poster, config.paths.posted_file, container.get('summary_store'))

    def create_scheduler():
        from core.scheduler import Scheduler
        config = container.get('config')
        poster = container.get('poster')

        async def summarize():
            return await container.get('summarizer').run()

        def post():
            if not poster.is_configured:
                logger.info("X credentials not configured, skipping post")
                return None
            return poster.post_next()

        return Scheduler.from_config(
            config.scheduler,
            harvest=container.get('harvester').harvest,
            summarize=summarize,
            post=post
        )

    # Register services
    container.register_singleton('config', create_config)
    container.register_singleton('thread_store', create_thread_store)
    container.register_singleton('analyzer_registry', create_analyzer_registry)
    container.register_singleton('board_client_factory', create_board_client_factory)
    container.register_singleton('summary_store', create_summary_store)
    container.register_singleton('poster', create_poster)
    container.register_singleton('scheduler', create_scheduler)

    # Non-singletons
    container.register_factory('harvester', create_harvester)
    container.register_factory('llm_client', create_llm_client)
    container.register_factory('summarizer', create_summarizer)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def get_thread_store():
    return get_container().get('thread_store')


def get_analyzer_registry():
    return get_container().get('analyzer_registry')


def get_summary_store():
    return get_container().get('summary_store')


def create_harvester():
    """Create new harvester instance."""
    return get_container().get('harvester')


def create_summarizer():
    """Create new summarizer instance (requires an LLM key)."""
    return get_container().get('summarizer')


def get_poster():
    return get_container().get('poster')


def get_scheduler():
    return get_container().get('scheduler')
