#!/usr/bin/env python3
"""
Data command endpoints for stored threads, analyzer results and summaries.
"""

import json
import logging
from argparse import Namespace
from datetime import datetime, timezone

from core.storage.atomic import read_json
from .base import BaseCommand

logger = logging.getLogger(__name__)


def _format_ms(timestamp_ms: int) -> str:
    if not timestamp_ms:
        return "never"
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime('%Y-%m-%d %H:%M UTC')


class DataCommand(BaseCommand):
    """Handle data management operations."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute data subcommand."""
        try:
            if subcommand == "stats":
                return self.stats(args)
            elif subcommand == "cleanup":
                return self.cleanup(args)
            elif subcommand == "results":
                return self.results(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"data {subcommand}")

    def stats(self, args: Namespace) -> int:
        """Show storage statistics."""
        paths = self.config.paths
        registry = self.analyzer_registry

        print(f"\n=== Data Storage Statistics ===")
        print(f"Data directory: {paths.data_dir}")
        print(f"Stored threads: {self.thread_store.count()}")

        print(f"\nAnalyzers:")
        for name in registry.names():
            analyzer = registry.get(name)
            results = analyzer.load_results()
            chunks = len(analyzer.storage.chunks_on_disk())
            print(f"  {name}: {len(results)} results, {chunks} chunk files, "
                  f"updated {_format_ms(analyzer.last_updated())}")

        summary = self.summary_store.load_latest()
        if summary is None:
            print(f"\nSummary: none yet")
        else:
            print(f"\nSummary: {len(summary.batch.articles)} articles, "
                  f"generated {_format_ms(summary.generated_at)}")

        posted = read_json(paths.posted_file, default=[])
        print(f"Posted to X: {len(posted) if isinstance(posted, list) else 0}")
        return 0

    def cleanup(self, args: Namespace) -> int:
        """Apply retention to threads and analyzer results."""
        days = getattr(args, 'days', None)
        if days is None:
            days = self.config.board.thread_retention_days

        print(f"Removing thread snapshots older than {days} day(s)...")
        removed_threads = self.thread_store.purge_older_than(days)
        removed_results = self.analyzer_registry.purge_old_results()

        print(f"Thread files removed: {removed_threads}")
        for name, count in removed_results.items():
            print(f"  {name}: {count} expired results removed")
        return 0

    def results(self, args: Namespace) -> int:
        """Print stored results for one analyzer as JSON."""
        if not self.validate_args(args, ['analyzer']):
            return 1

        payload = self.analyzer_registry.get_latest(args.analyzer)
        limit = getattr(args, 'limit', None)
        if limit and 'results' in payload:
            payload['results'] = payload['results'][:limit]

        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 1 if 'error' in payload and payload['error'].startswith('Unknown') else 0
