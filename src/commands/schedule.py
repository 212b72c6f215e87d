#!/usr/bin/env python3
"""
Schedule command: run harvest, summarize and post on their cadences.
"""

import logging
from argparse import Namespace

from .base import BaseCommand

logger = logging.getLogger(__name__)


class ScheduleCommand(BaseCommand):
    """Run the recurring job scheduler until interrupted."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute schedule subcommand."""
        try:
            if subcommand == "start":
                return self.start(args)
            elif subcommand == "next":
                return self.next(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"schedule {subcommand}")

    def start(self, args: Namespace) -> int:
        """Start the scheduler and block until SIGINT/SIGTERM."""
        scheduler = self.scheduler
        if getattr(args, 'run_now', False):
            scheduler.config.run_on_start = True

        async def main():
            scheduler.install_signal_handlers()
            await scheduler.run_forever()

        self.run_async(main())
        self.logger.info("Scheduler exited")
        return 0

    def next(self, args: Namespace) -> int:
        """Show when each job will next run."""
        scheduler = self.scheduler
        print(f"\n=== Next Runs ({scheduler.config.timezone}) ===")
        for name, job in scheduler.jobs.items():
            print(f"{name}: {scheduler.next_run(job).strftime('%Y-%m-%d %H:%M %Z')}")
        return 0
