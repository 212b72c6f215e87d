#!/usr/bin/env python3
"""
LLM completion client.

Thin async wrapper over an OpenAI-compatible chat completions endpoint
(DeepSeek by default). Retries are an explicit bounded loop: each attempt
returns a tagged outcome, retryable outcomes back off exponentially, and
fatal outcomes propagate at once.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import openai
from openai import AsyncOpenAI

from core.config import LLMConfig
from core.exceptions import LLMError, LLMResponseError
from core.llm_logger import LLMLogger

logger = logging.getLogger(__name__)


class AttemptStatus(Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    """Result of a single completion attempt."""
    status: AttemptStatus
    text: Optional[str] = None
    error: Optional[Exception] = None
    usage: Optional[Dict[str, int]] = None


def classify_error(error: Exception) -> AttemptStatus:
    """Rate limits, 5xx and transport errors are retryable; everything else is fatal."""
    if isinstance(error, openai.RateLimitError):
        return AttemptStatus.RETRYABLE
    if isinstance(error, openai.APIStatusError):
        return AttemptStatus.RETRYABLE if error.status_code >= 500 else AttemptStatus.FATAL
    if isinstance(error, openai.APIConnectionError):
        # Includes APITimeoutError
        return AttemptStatus.RETRYABLE
    return AttemptStatus.FATAL


class LLMClient:
    """Client for chat completions with bounded retry."""
    
    def __init__(self,
                 config: LLMConfig,
                 client: Optional[Any] = None,
                 llm_logger: Optional[LLMLogger] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        """
        Initialize LLM client.
        
        Args:
            config: LLM settings
            client: Pre-built AsyncOpenAI-compatible client, built from config if None
            llm_logger: Optional debug log for prompts and responses
            sleep: Coroutine used for backoff waits
        """
        self.config = config
        if client is None:
            if not config.api_key:
                raise ValueError("LLM API key not provided (set DEEPSEEK_API_KEY)")
            # Retries are handled here, not by the SDK
            client = AsyncOpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=0
            )
        self.client = client
        self.model = config.model
        self.llm_logger = llm_logger
        self._sleep = sleep
    
    async def complete(self,
                       system_prompt: str,
                       user_prompt: str,
                       temperature: Optional[float] = None,
                       max_tokens: Optional[int] = None,
                       purpose: str = "completion") -> str:
        """
        Run a chat completion.
        
        Args:
            system_prompt: System message
            user_prompt: User message
            temperature: Sampling temperature, config default if None
            max_tokens: Response cap, config default if None
            purpose: Label used in logs
            
        Returns:
            Response text
            
        Raises:
            LLMResponseError: If the response has no usable content
            LLMError: If a fatal error occurs or all attempts fail
        """
        temperature = self.config.temperature if temperature is None else temperature
        max_tokens = max_tokens or self.config.max_tokens
        delay = self.config.initial_backoff
        last_error: Optional[Exception] = None
        
        for attempt in range(1, self.config.max_attempts + 1):
            logger.debug(f"LLM call for {purpose} (attempt {attempt}, {len(user_prompt)} chars)")
            outcome = await self._attempt(system_prompt, user_prompt, temperature, max_tokens)
            
            if outcome.status is AttemptStatus.SUCCESS:
                if self.llm_logger:
                    self.llm_logger.log_llm_interaction(
                        system_prompt, user_prompt, outcome.text, outcome.usage, purpose, attempt
                    )
                return outcome.text
            
            last_error = outcome.error
            if self.llm_logger:
                self.llm_logger.log_failure(purpose, attempt, last_error)
            
            if outcome.status is AttemptStatus.FATAL:
                logger.error(f"Non-retryable LLM error for {purpose}: {last_error}")
                if isinstance(last_error, LLMResponseError):
                    raise last_error
                raise LLMError(self.model, attempt, last_error) from last_error
            
            if attempt < self.config.max_attempts:
                logger.warning(
                    f"LLM call for {purpose} failed ({last_error.__class__.__name__}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                delay *= 2
        
        logger.error(f"LLM call for {purpose} failed after {self.config.max_attempts} attempts")
        raise LLMError(self.model, self.config.max_attempts, last_error) from last_error
    
    async def _attempt(self,
                       system_prompt: str,
                       user_prompt: str,
                       temperature: float,
                       max_tokens: int) -> AttemptOutcome:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens
            )
        except openai.OpenAIError as e:
            return AttemptOutcome(classify_error(e), error=e)
        
        choices = getattr(response, 'choices', None) or []
        content = choices[0].message.content if choices else None
        if not content:
            return AttemptOutcome(
                AttemptStatus.FATAL,
                error=LLMResponseError(self.model, "response has no message content")
            )
        
        usage = getattr(response, 'usage', None)
        usage_dict = None
        if usage is not None:
            usage_dict = {
                'prompt_tokens': usage.prompt_tokens,
                'completion_tokens': usage.completion_tokens,
                'total_tokens': usage.total_tokens,
            }
        return AttemptOutcome(AttemptStatus.SUCCESS, text=content, usage=usage_dict)
