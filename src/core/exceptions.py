#!/usr/bin/env python3
"""
Standardized exception hierarchy for the thread pipeline.

Provides specific exception types for the board, storage, analyzer,
LLM, selection, summarization and posting stages, each carrying a
machine-readable code and context for logging.
"""

from typing import Optional, Dict, Any


class PipelineError(Exception):
    """Base exception for all pipeline errors."""
    
    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.
        
        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Board-related exceptions
class BoardError(PipelineError):
    """Board API request failed."""
    
    def __init__(self, url: str, status: Optional[int] = None, original_error: Optional[Exception] = None):
        message = f"Board request failed for {url}"
        if status is not None:
            message += f" (HTTP {status})"
        context = {
            'url': url,
            'status': status,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class BoardRateLimitError(BoardError):
    """Board kept answering 429 after every backoff attempt."""
    
    def __init__(self, url: str, attempts: int):
        super().__init__(url, status=429)
        self.message = f"Rate limited by board for {url} after {attempts} attempts"
        self.args = (self.message,)
        self.context['attempts'] = attempts


# Storage-related exceptions
class StorageError(PipelineError):
    """Reading or writing a persisted file failed."""
    
    def __init__(self, path: str, operation: str, original_error: Optional[Exception] = None):
        message = f"Storage {operation} failed for {path}"
        context = {
            'path': path,
            'operation': operation,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class InsufficientDiskSpaceError(StorageError):
    """Free disk space is below the configured floor."""
    
    def __init__(self, path: str, free_bytes: int, required_bytes: int):
        super().__init__(path, 'write')
        self.message = (
            f"Insufficient disk space at {path}: "
            f"{free_bytes} bytes free, {required_bytes} required"
        )
        self.args = (self.message,)
        self.context.update({'free_bytes': free_bytes, 'required_bytes': required_bytes})


# Analyzer-related exceptions
class AnalyzerError(PipelineError):
    """Base exception for analyzer framework errors."""
    pass


class AnalyzerRegistrationError(AnalyzerError):
    """Analyzer could not be registered."""
    
    def __init__(self, analyzer_name: str, issue: str):
        message = f"Cannot register analyzer '{analyzer_name}': {issue}"
        context = {'analyzer_name': analyzer_name, 'issue': issue}
        super().__init__(message, context=context)


class AnalysisBatchError(AnalyzerError):
    """Every analyzer in a batch operation failed."""
    
    def __init__(self, operation: str, errors: Dict[str, str]):
        message = f"All {len(errors)} analyzers failed during {operation}"
        context = {'operation': operation, 'errors': errors}
        super().__init__(message, context=context)


# LLM-related exceptions
class LLMError(PipelineError):
    """LLM completion failed after all attempts."""
    
    def __init__(self, model: str, attempts: int, original_error: Optional[Exception] = None):
        message = f"LLM completion failed for {model} after {attempts} attempts"
        context = {
            'model': model,
            'attempts': attempts,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class LLMResponseError(LLMError):
    """LLM returned a response that cannot be used."""
    
    def __init__(self, model: str, issue: str, attempts: int = 1):
        super().__init__(model, attempts)
        self.message = f"Unusable LLM response from {model}: {issue}"
        self.args = (self.message,)
        self.context['issue'] = issue


# Selection and summarization exceptions
class SelectionError(PipelineError):
    """Thread selection produced fewer threads than required."""
    
    def __init__(self, selected: int, required: int):
        message = f"Selected {selected} threads, {required} required"
        context = {'selected': selected, 'required': required}
        super().__init__(message, context=context)


class SummarizationError(PipelineError):
    """Summarization run could not produce a summary."""
    
    def __init__(self, stage: str, issue: str):
        message = f"Summarization failed at {stage}: {issue}"
        context = {'stage': stage, 'issue': issue}
        super().__init__(message, context=context)


# Posting-related exceptions
class PostingError(PipelineError):
    """Posting to X failed."""
    
    def __init__(self, thread_id: int, status: Optional[int] = None, detail: str = ""):
        message = f"Failed to post thread {thread_id}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        context = {'thread_id': thread_id, 'status': status, 'detail': detail}
        super().__init__(message, context=context)


# Configuration-related exceptions
class ConfigurationError(PipelineError):
    """Configuration is invalid or missing."""
    
    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)
