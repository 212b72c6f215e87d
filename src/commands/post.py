#!/usr/bin/env python3
"""
Post command: publish the next generated article to X.
"""

import logging
from argparse import Namespace

from .base import BaseCommand

logger = logging.getLogger(__name__)


class PostCommand(BaseCommand):
    """Post generated articles to X."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute post subcommand."""
        try:
            if subcommand == "next":
                return self.next(args)
            elif subcommand == "preview":
                return self.preview(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"post {subcommand}")

    def next(self, args: Namespace) -> int:
        """Post the unposted article with the fewest posts."""
        if not self.config.has_poster():
            self.logger.error("X credentials are not configured")
            return 22

        entry = self.poster.post_next()
        if entry is None:
            print("No unposted articles available")
            return 0

        print(f"Posted thread {entry['threadId']} as {entry['tweetId']}")
        return 0

    def preview(self, args: Namespace) -> int:
        """Show what the next post would say."""
        text = self.poster.preview()
        if text is None:
            print("No unposted articles available")
            return 0

        print(f"\n{text}\n")
        print(f"({len(text)} characters)")
        return 0
