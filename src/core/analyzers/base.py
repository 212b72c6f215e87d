#!/usr/bin/env python3
"""
Analyzer base class and chunked result storage.

Each analyzer owns one directory holding a primary ``results.json`` and,
when the serialized result set is larger than the chunk threshold, a
bounded number of ``chunk-<timestamp>-<index>.json`` files. Chunks are
only ever replaced whole or trimmed by the retention purge.
The primary file lists the chunk files that belong to the current
result set; the union of primary results and listed chunks is the
authoritative result set.
"""

import json
import math
import shutil
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from core.exceptions import InsufficientDiskSpaceError, StorageError
from core.models.summary import now_ms
from core.models.thread import Thread
from core.storage.atomic import read_json, write_json_atomic

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class AnalyzerResult:
    """Fields shared by every analyzer result. Zero means unset."""
    timestamp: int = 0
    thread_id: int = 0
    post_id: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    
    def is_valid(self) -> bool:
        return bool(self.timestamp and self.thread_id and self.post_id)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'threadId': self.thread_id,
            'postId': self.post_id,
            'metadata': dict(self.metadata),
        }
    
    @classmethod
    def base_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'timestamp': int(data.get('timestamp') or 0),
            'thread_id': int(data.get('threadId') or 0),
            'post_id': int(data.get('postId') or 0),
            'metadata': dict(data.get('metadata') or {}),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalyzerResult':
        return cls(**cls.base_kwargs(data))


T = TypeVar('T', bound=AnalyzerResult)


@dataclass
class StorageSettings:
    """Limits applied to every analyzer store."""
    min_free_bytes: int = 100 * 1024 * 1024
    chunk_threshold_bytes: int = 50 * 1024 * 1024
    max_chunk_files: int = 10
    retention_days: float = 3
    
    @classmethod
    def from_config(cls, analyzer_config) -> 'StorageSettings':
        return cls(
            min_free_bytes=analyzer_config.min_free_bytes,
            chunk_threshold_bytes=analyzer_config.chunk_threshold_bytes,
            max_chunk_files=analyzer_config.max_chunk_files,
            retention_days=analyzer_config.retention_days
        )


@dataclass
class StorageDescriptor:
    """Primary file, chunk naming and rotation policy for one analyzer."""
    directory: Path
    settings: StorageSettings
    primary_name: str = 'results.json'
    chunk_prefix: str = 'chunk-'
    
    @property
    def primary_path(self) -> Path:
        return self.directory / self.primary_name
    
    def chunk_path(self, name: str) -> Path:
        return self.directory / name
    
    def chunk_name(self, chunk_timestamp: int, index: int) -> str:
        return f"{self.chunk_prefix}{chunk_timestamp:013d}-{index:03d}.json"
    
    def chunks_on_disk(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(
            p.name for p in self.directory.glob(f"{self.chunk_prefix}*.json")
        )


class BaseAnalyzer(ABC, Generic[T]):
    """
    Base class for all analyzers.
    
    Subclasses set ``name`` and ``result_type`` and implement ``analyze``.
    ``merge_results`` decides how a new run combines with stored history;
    the default appends.
    """
    
    name: str = ""
    result_type: Type[T] = AnalyzerResult
    
    def __init__(self,
                 analysis_dir: Path,
                 settings: Optional[StorageSettings] = None,
                 clock: Optional[Callable[[], int]] = None):
        """
        Initialize analyzer storage.
        
        Args:
            analysis_dir: Parent directory; results live in ``<analysis_dir>/<name>``
            settings: Storage limits, defaults when omitted
            clock: Returns epoch milliseconds, defaults to wall clock
        """
        if not self.name:
            raise ValueError(f"{self.__class__.__name__} must define a name")
        self.storage = StorageDescriptor(
            directory=Path(analysis_dir) / self.name,
            settings=settings or StorageSettings()
        )
        self.now = clock or now_ms
        self.logger = logging.getLogger(f"{__name__}.{self.name}")
    
    @abstractmethod
    def analyze(self, threads: List[Thread]) -> List[T]:
        """Compute results for one harvested batch."""
        pass
    
    def merge_results(self, existing: List[T], new: List[T]) -> List[T]:
        """Combine stored history with a new run's results."""
        return existing + new
    
    def save_results(self, results: List[T]) -> List[T]:
        """
        Merge ``results`` into stored history and persist the outcome.
        
        Results older than the retention window are dropped before writing.
        """
        valid = self.filter_valid(results)
        merged = self.merge_results(self.load_results(), valid)
        cutoff = self.retention_cutoff()
        kept = [r for r in merged if r.timestamp >= cutoff]
        if len(kept) < len(merged):
            self.logger.info(f"Dropped {len(merged) - len(kept)} results past retention while saving")
        return self.write_results(kept)
    
    def retention_cutoff(self) -> int:
        return self.now() - int(self.storage.settings.retention_days * DAY_MS)
    
    # Validation
    
    def filter_valid(self, results: List[T]) -> List[T]:
        valid = [r for r in results if r.is_valid()]
        dropped = len(results) - len(valid)
        if dropped:
            self.logger.warning(f"Filtered out {dropped} invalid results (missing timestamp, thread or post id)")
        return valid
    
    # Disk space
    
    def check_disk_space(self) -> None:
        """
        Raise if free space is below the configured floor.
        
        Platforms that cannot report free space are treated as having enough.
        """
        directory = self.storage.directory
        directory.mkdir(parents=True, exist_ok=True)
        try:
            free = shutil.disk_usage(directory).free
        except (OSError, NotImplementedError) as e:
            self.logger.debug(f"Free space unavailable for {directory}, assuming enough: {e}")
            return
        
        required = self.storage.settings.min_free_bytes
        if free < required:
            raise InsufficientDiskSpaceError(str(directory), free, required)
    
    # Writing
    
    def write_results(self, results: List[T]) -> List[T]:
        """
        Persist ``results`` as the complete result set.
        
        Small sets rewrite the primary file. Sets whose serialized size
        exceeds the chunk threshold are split into slices of roughly the
        threshold size; when that takes more slices than the chunk cap, the
        oldest slices are rotated out. Kept slices go to new chunk files and
        the primary file is rewritten with an empty result list, the
        ``chunked`` marker and the list of chunk files. Chunk files that are
        no longer listed are deleted only after the primary file is replaced.
        
        Returns:
            The results actually stored
        """
        valid = self.filter_valid(results)
        self.check_disk_space()
        
        payload = [r.to_dict() for r in valid]
        size = len(json.dumps(payload, ensure_ascii=False).encode('utf-8'))
        settings = self.storage.settings
        timestamp = self.now()
        
        if size > settings.chunk_threshold_bytes and payload:
            slice_count = min(math.ceil(size / settings.chunk_threshold_bytes), len(payload))
            slices = self._split(payload, slice_count)
            if len(slices) > settings.max_chunk_files:
                rotated = slices[:-settings.max_chunk_files]
                slices = slices[-settings.max_chunk_files:]
                dropped = sum(len(s) for s in rotated)
                valid = valid[dropped:]
                self.logger.info(f"Rotated out {len(rotated)} oldest chunks ({dropped} results) over the chunk cap")
            chunk_names = self._write_chunks(slices, timestamp)
            primary = {
                'lastUpdated': timestamp,
                'results': [],
                'chunked': True,
                'chunks': chunk_names,
            }
            self.logger.info(
                f"Results are {size / 1024 / 1024:.1f} MB, split into {len(chunk_names)} chunk files"
            )
        else:
            chunk_names = []
            primary = {
                'lastUpdated': timestamp,
                'results': payload,
                'chunked': False,
                'chunks': [],
            }
        
        write_json_atomic(self.storage.primary_path, primary)
        self._delete_chunks(set(self.storage.chunks_on_disk()) - set(chunk_names))
        self.logger.debug(f"Saved {len(valid)} results")
        return valid
    
    @staticmethod
    def _split(payload: List[Dict[str, Any]], count: int) -> List[List[Dict[str, Any]]]:
        size, extra = divmod(len(payload), count)
        slices = []
        start = 0
        for index in range(count):
            end = start + size + (1 if index < extra else 0)
            slices.append(payload[start:end])
            start = end
        return slices
    
    def _write_chunks(self, slices: List[List[Dict[str, Any]]], timestamp: int) -> List[str]:
        written: List[str] = []
        for index, results in enumerate(slices):
            name = self.storage.chunk_name(timestamp, index)
            write_json_atomic(
                self.storage.chunk_path(name),
                {'chunkTimestamp': timestamp, 'index': index, 'results': results},
                indent=None
            )
            written.append(name)
        return written
    
    def _delete_chunks(self, names) -> None:
        for name in sorted(names):
            try:
                self.storage.chunk_path(name).unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.warning(f"Could not delete chunk file {name}: {e}")
    
    # Reading
    
    def _read_primary(self) -> Dict[str, Any]:
        data = read_json(self.storage.primary_path)
        if data is None:
            return {'lastUpdated': 0, 'results': [], 'chunked': False, 'chunks': []}
        if not isinstance(data, dict):
            raise StorageError(str(self.storage.primary_path), 'read')
        return data
    
    def _chunk_names(self, primary: Dict[str, Any]) -> List[str]:
        listed = primary.get('chunks')
        if listed is None:
            # Files written without a chunk list: fall back to what is on disk
            return self.storage.chunks_on_disk() if primary.get('chunked') else []
        return sorted(listed)
    
    def _read_chunk(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            data = read_json(self.storage.chunk_path(name))
        except StorageError as e:
            self.logger.warning(f"Skipping unreadable chunk file {name}: {e}")
            return None
        if data is None:
            self.logger.warning(f"Chunk file {name} is listed but missing")
        return data
    
    def _parse(self, raw_results: List[Dict[str, Any]]) -> List[T]:
        parsed: List[T] = []
        skipped = 0
        for raw in raw_results:
            try:
                parsed.append(self.result_type.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                skipped += 1
        if skipped:
            self.logger.warning(f"Skipped {skipped} malformed stored results")
        return parsed
    
    def load_results(self) -> List[T]:
        """Primary results followed by chunk contents in file-name order."""
        primary = self._read_primary()
        raw = list(primary.get('results') or [])
        for name in self._chunk_names(primary):
            chunk = self._read_chunk(name)
            if chunk:
                raw.extend(chunk.get('results') or [])
        return self._parse(raw)
    
    def last_updated(self) -> int:
        return int(self._read_primary().get('lastUpdated') or 0)
    
    # Retention
    
    def purge_old_results(self) -> int:
        """
        Drop results older than the retention window.
        
        Every result is judged by its own timestamp, wherever it is stored.
        Chunk files left with no results are deleted, partly expired chunk
        files are rewritten with the survivors. Nothing is written when
        nothing changes.
        
        Returns:
            Number of results removed
        """
        cutoff = self.retention_cutoff()
        primary = self._read_primary()
        
        primary_results = self._parse(primary.get('results') or [])
        kept = [r for r in primary_results if r.timestamp >= cutoff]
        removed = len(primary_results) - len(kept)
        
        chunk_names = self._chunk_names(primary)
        remaining_chunks: List[str] = []
        emptied: List[str] = []
        for name in chunk_names:
            chunk = self._read_chunk(name)
            if chunk is None:
                continue
            chunk_results = self._parse(chunk.get('results') or [])
            survivors = [r for r in chunk_results if r.timestamp >= cutoff]
            removed += len(chunk_results) - len(survivors)
            if not survivors:
                emptied.append(name)
                continue
            if len(survivors) < len(chunk_results):
                write_json_atomic(
                    self.storage.chunk_path(name),
                    dict(chunk, results=[r.to_dict() for r in survivors]),
                    indent=None
                )
            remaining_chunks.append(name)
        
        if removed == 0 and remaining_chunks == chunk_names:
            self.logger.debug("Nothing to purge")
            return 0
        
        write_json_atomic(self.storage.primary_path, {
            'lastUpdated': primary.get('lastUpdated') or self.now(),
            'results': [r.to_dict() for r in kept],
            'chunked': bool(remaining_chunks),
            'chunks': remaining_chunks,
        })
        self._delete_chunks(emptied)
        self.logger.info(f"Purged {removed} results older than {self.storage.settings.retention_days} days")
        return removed
