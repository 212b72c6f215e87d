#!/usr/bin/env python3
"""
CLI Router for the board digest pipeline.

Routes ``<command> <subcommand>`` invocations to command classes.
"""

import argparse
import logging
import sys
from typing import Optional, List

# Load environment variables first
import core.env_loader  # Auto-loads .env file

from commands import get_command, COMMANDS

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for pipeline commands.

    Command structure:
    - python run.py harvest run
    - python run.py summarize run
    - python run.py post next
    - python run.py schedule start
    - python run.py data results geo
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Board thread harvester, analyzer and summarizer",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )
        parser.add_argument('--verbose', action='store_true', help='Debug logging')

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_harvest_parser(subparsers)
        self._add_summarize_parser(subparsers)
        self._add_post_parser(subparsers)
        self._add_schedule_parser(subparsers)
        self._add_data_parser(subparsers)

        return parser

    def _add_harvest_parser(self, subparsers):
        """Add harvest command parser."""
        harvest_parser = subparsers.add_parser('harvest', help='Fetch, store and analyze board threads')
        harvest_subparsers = harvest_parser.add_subparsers(
            dest='subcommand',
            help='Harvest operations',
            metavar='{run}'
        )

        run_parser = harvest_subparsers.add_parser('run', help='Run one harvest pass')
        run_parser.add_argument('--no-media', action='store_true', help='Skip lead image downloads')

    def _add_summarize_parser(self, subparsers):
        """Add summarize command parser."""
        summarize_parser = subparsers.add_parser('summarize', help='LLM summaries of harvested threads')
        summarize_subparsers = summarize_parser.add_subparsers(
            dest='subcommand',
            help='Summarize operations',
            metavar='{run,show}'
        )

        summarize_subparsers.add_parser('run', help='Select threads and build a new summary')
        summarize_subparsers.add_parser('show', help='Print the latest summary')

    def _add_post_parser(self, subparsers):
        """Add post command parser."""
        post_parser = subparsers.add_parser('post', help='Publish generated articles to X')
        post_subparsers = post_parser.add_subparsers(
            dest='subcommand',
            help='Post operations',
            metavar='{next,preview}'
        )

        post_subparsers.add_parser('next', help='Post the next unposted article')
        post_subparsers.add_parser('preview', help='Show the next post without sending it')

    def _add_schedule_parser(self, subparsers):
        """Add schedule command parser."""
        schedule_parser = subparsers.add_parser('schedule', help='Recurring job scheduler')
        schedule_subparsers = schedule_parser.add_subparsers(
            dest='subcommand',
            help='Schedule operations',
            metavar='{start,next}'
        )

        start_parser = schedule_subparsers.add_parser('start', help='Run jobs until interrupted')
        start_parser.add_argument('--run-now', action='store_true', help='Run every job once at startup')
        schedule_subparsers.add_parser('next', help='Show next run times')

    def _add_data_parser(self, subparsers):
        """Add data command parser."""
        data_parser = subparsers.add_parser('data', help='Data management operations')
        data_subparsers = data_parser.add_subparsers(
            dest='subcommand',
            help='Data operations',
            metavar='{stats,cleanup,results}'
        )

        data_subparsers.add_parser('stats', help='Show data storage statistics')

        cleanup_parser = data_subparsers.add_parser('cleanup', help='Apply retention to threads and results')
        cleanup_parser.add_argument('--days', type=float, default=None,
                                    help='Remove thread files older than N days (default: THREAD_RETENTION_DAYS)')

        results_parser = data_subparsers.add_parser('results', help='Print stored analyzer results')
        results_parser.add_argument('analyzer', choices=['get', 'reply', 'link', 'geo', 'terms'],
                                    help='Analyzer name')
        results_parser.add_argument('--limit', type=int, default=None, help='Show at most N results')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  python run.py harvest run
  python run.py summarize run
  python run.py post preview
  python run.py schedule start --run-now
  python run.py data results geo
  python run.py data cleanup --days 2
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)
            if parsed_args.verbose:
                root = logging.getLogger()
                root.setLevel(logging.DEBUG)
                for handler in root.handlers:
                    handler.setLevel(logging.DEBUG)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])  # Show help
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Applies LOG_LEVEL/VERBOSE_LOGGING from the environment
    try:
        from core.config import get_config_manager
        get_config_manager().update_logging()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 22

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
