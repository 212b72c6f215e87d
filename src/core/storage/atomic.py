#!/usr/bin/env python3
"""
Atomic JSON file helpers.

Every write goes to a sibling ``.tmp`` file which is fsynced and then
renamed over the target, so readers see either the old or the new file.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from core.exceptions import StorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def write_json_atomic(path: PathLike, data: Any, indent: Optional[int] = 2) -> int:
    """
    Serialize ``data`` to ``path`` via temp file and rename.
    
    Args:
        path: Destination file
        data: JSON-serializable object
        indent: JSON indentation, None for compact output
        
    Returns:
        Number of bytes written
        
    Raises:
        StorageError: If the write or rename fails; the temp file is removed
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    payload = json.dumps(data, ensure_ascii=False, indent=indent).encode('utf-8')
    
    try:
        with tmp_path.open('wb') as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning(f"Could not remove temp file {tmp_path}: {cleanup_error}")
        raise StorageError(str(path), 'write', e) from e
    
    return len(payload)


def read_json(path: PathLike, default: Any = None) -> Any:
    """
    Load JSON from ``path``.
    
    Returns ``default`` when the file does not exist.
    
    Raises:
        StorageError: If the file exists but cannot be read or parsed
    """
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as handle:
            return json.load(handle)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as e:
        raise StorageError(str(path), 'read', e) from e
