#!/usr/bin/env python3
"""
Base class for CLI commands.

Commands resolve their services from the container and share exit-code
mapping for pipeline errors.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, List, Optional
from argparse import Namespace

from core.container import get_container
from core.exceptions import (
    ConfigurationError, InsufficientDiskSpaceError, PipelineError, SelectionError
)

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Gives commands access to pipeline services through the dependency
    injection container and shares error-to-exit-code handling.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def thread_store(self):
        return self._container.get('thread_store')

    @property
    def analyzer_registry(self):
        return self._container.get('analyzer_registry')

    @property
    def summary_store(self):
        return self._container.get('summary_store')

    @property
    def poster(self):
        return self._container.get('poster')

    @property
    def scheduler(self):
        return self._container.get('scheduler')

    def create_harvester(self):
        return self._container.get('harvester')

    def create_summarizer(self):
        """Create new summarizer instance (raises ValueError without an LLM key)."""
        return self._container.get('summarizer')

    def run_async(self, awaitable: Awaitable[Any]) -> Any:
        """Run a coroutine to completion from synchronous command code."""
        return asyncio.run(awaitable)

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """List public methods that act as subcommands."""
        skipped = {'execute', 'get_available_subcommands', 'handle_error', 'validate_args',
                   'run_async', 'create_harvester', 'create_summarizer'}
        methods = []
        for attr_name in dir(type(self)):
            if attr_name.startswith('_') or attr_name in skipped:
                continue
            if callable(getattr(type(self), attr_name)):
                methods.append(attr_name)
        return methods

    def handle_error(self, error: BaseException, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130

        # Expected pipeline failures don't need a traceback
        self.logger.error(error_msg, exc_info=not isinstance(error, PipelineError))

        if isinstance(error, InsufficientDiskSpaceError):
            return 28
        elif isinstance(error, SelectionError):
            return 3
        elif isinstance(error, FileNotFoundError):
            return 2
        elif isinstance(error, PermissionError):
            return 13
        elif isinstance(error, (ValueError, ConfigurationError)):
            return 22
        else:
            return 1

    def validate_args(self, args: Namespace, required_args: Optional[List[str]] = None) -> bool:
        """
        Validate that required arguments are present.

        Returns:
            True if valid, False otherwise
        """
        if not required_args:
            return True

        missing = [name for name in required_args if getattr(args, name, None) is None]
        if missing:
            self.logger.error(f"Missing required arguments: {', '.join(missing)}")
            return False
        return True
