#!/usr/bin/env python3
"""
Environment variable loader with .env file support.

Loads KEY=VALUE pairs from a .env file at the project root without
overriding variables already present in the process environment.
"""

import os
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def load_env_file(env_file_path: str = ".env") -> int:
    """
    Load environment variables from .env file if it exists.
    
    Args:
        env_file_path: Path to .env file, relative to the project root
        
    Returns:
        Number of variables that were set
    """
    project_root = Path(__file__).parent.parent.parent
    env_path = Path(env_file_path)
    if not env_path.is_absolute():
        env_path = project_root / env_path
    
    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return 0
    
    try:
        lines = env_path.read_text(encoding='utf-8').splitlines()
    except OSError as e:
        logger.error(f"Error reading .env file {env_path}: {e}")
        return 0
    
    loaded_count = 0
    for line_num, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        
        if line.startswith('export '):
            line = line[len('export '):]
        
        if '=' not in line:
            logger.warning(f"Invalid .env format at line {line_num}: {line}")
            continue
        
        key, value = line.split('=', 1)
        key = key.strip()
        value = _strip_quotes(value.strip())
        
        # Process environment wins over the file
        if key in os.environ:
            logger.debug(f"Skipped {key} (already in environment)")
            continue
        
        os.environ[key] = value
        loaded_count += 1
        logger.debug(f"Loaded {key} from .env")
    
    logger.info(f"Loaded {loaded_count} variables from {env_path}")
    return loaded_count


def get_env_var(key: str, default: str = None, required: bool = False) -> str:
    """
    Get environment variable with optional default and required validation.
    
    Raises:
        ValueError: If required variable is missing
    """
    value = os.environ.get(key, default)
    
    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set")
    
    return value


# Auto-load .env file when module is imported
load_env_file()
