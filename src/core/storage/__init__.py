#!/usr/bin/env python3
"""
File-backed storage for thread snapshots and JSON state files.
"""

from .atomic import write_json_atomic, read_json
from .thread_store import ThreadStore

__all__ = ['write_json_atomic', 'read_json', 'ThreadStore']
