#!/usr/bin/env python3
"""
Harvest command: fetch board threads, store them and run the analyzers.
"""

import logging
from argparse import Namespace

from .base import BaseCommand

logger = logging.getLogger(__name__)


class HarvestCommand(BaseCommand):
    """Fetch, store and analyze a batch of board threads."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute harvest subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"harvest {subcommand}")

    def run(self, args: Namespace) -> int:
        """Run one harvest pass."""
        harvester = self.create_harvester()
        if getattr(args, 'no_media', False):
            harvester.media_dir = None

        report = self.run_async(harvester.harvest())

        print(f"\n=== Harvest Complete ===")
        print(f"Catalog threads: {report.catalog_size}")
        print(f"Candidates: {report.candidates}")
        print(f"Fetched: {report.fetched} (pruned {report.pruned}, failed {report.failed})")
        print(f"Lead images saved: {report.media_saved}")
        for name, count in report.analyzed.items():
            print(f"  {name}: {count} results")
        if report.threads_removed:
            print(f"Expired thread files removed: {report.threads_removed}")

        if report.analysis_error:
            print(f"Analysis failed: {report.analysis_error}")
            return 1
        return 0
