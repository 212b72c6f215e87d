#!/usr/bin/env python3
"""
Summarize command: select threads, generate articles and build the summary.
"""

import logging
from argparse import Namespace

from .base import BaseCommand

logger = logging.getLogger(__name__)


class SummarizeCommand(BaseCommand):
    """Generate articles, theme matrix and overview for stored threads."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute summarize subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            elif subcommand == "show":
                return self.show(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"summarize {subcommand}")

    def run(self, args: Namespace) -> int:
        """Run one summarization pass."""
        if not self.config.has_llm():
            self.logger.error("DEEPSEEK_API_KEY (or OPENAI_API_KEY) is not set")
            return 22

        summary = self.run_async(self.create_summarizer().run())
        self._print_summary(summary)
        return 0

    def show(self, args: Namespace) -> int:
        """Print the latest stored summary."""
        summary = self.summary_store.load_latest()
        if summary is None:
            print("No summary available yet")
            return 0
        self._print_summary(summary)
        return 0

    def _print_summary(self, summary) -> None:
        batch = summary.batch
        stats = summary.matrix.statistics
        print(f"\n=== Summary ({len(batch.articles)} threads) ===")
        print(f"Posts sampled: {batch.total_analyzed_posts}")
        print(f"Flagged: mean {stats.mean:.2f}%, median {stats.median:.2f}% "
              f"({stats.total_flagged}/{stats.total_analyzed} comments)")

        for article in batch.articles:
            print(f"\n[{article.thread_id}] {article.headline} ({article.percentage:.1f}%)")

        if summary.matrix.themes:
            print("\nThemes: " + ", ".join(t.name for t in summary.matrix.themes))
        if summary.overview.sentiments:
            print("Sentiments: " + ", ".join(
                f"{s.name} ({s.intensity:.0f})" for s in summary.overview.sentiments
            ))
