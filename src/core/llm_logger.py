#!/usr/bin/env python3
"""
LLM Interaction Logger

Appends every LLM prompt/response pair to a plain-text debug file so a
summarization run can be inspected after the fact.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class LLMLogger:
    """Writes LLM interactions to a debug file, one section per call."""
    
    def __init__(self, log_file_path: Union[str, Path], fresh: bool = True):
        """
        Initialize the LLM logger.
        
        Args:
            log_file_path: Debug log location
            fresh: Truncate the file instead of appending to a previous run
        """
        self.log_file_path = Path(log_file_path)
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        if fresh:
            self._write(f"=== LLM DEBUG LOG - {datetime.now().isoformat()} ===\n\n", mode='w')
    
    def _write(self, text: str, mode: str = 'a') -> None:
        try:
            with open(self.log_file_path, mode, encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Failed to write LLM log file: {e}")
    
    def _write_section(self, title: str, content: str) -> None:
        self._write(f"\n{'=' * 80}\n{title}\n{'=' * 80}\n{content}\n")
    
    def log_llm_interaction(self,
                            system_prompt: str,
                            user_prompt: str,
                            response: str,
                            token_usage: Optional[Dict[str, int]] = None,
                            purpose: str = "completion",
                            attempt: int = 1) -> None:
        """Log one completed LLM call."""
        usage = token_usage or {}
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Purpose: {purpose} (attempt {attempt})\n"
        content += (
            f"Token Usage: {usage.get('prompt_tokens', 0)} prompt + "
            f"{usage.get('completion_tokens', 0)} completion = {usage.get('total_tokens', 0)} total\n\n"
        )
        content += f"SYSTEM PROMPT:\n{system_prompt}\n\n"
        content += f"USER PROMPT:\n{user_prompt}\n\n"
        content += f"LLM RESPONSE:\n{response}\n"
        self._write_section(f"LLM INTERACTION ({purpose})", content)
    
    def log_failure(self, purpose: str, attempt: int, error: Exception) -> None:
        """Log a failed attempt."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Purpose: {purpose} (attempt {attempt})\n"
        content += f"Error: {error.__class__.__name__}: {error}\n"
        self._write_section(f"LLM FAILURE ({purpose})", content)
