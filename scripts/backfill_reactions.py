"""Backfill market reactions for past occurrences.

Runs strictly sequentially with a pause between occurrences to respect
the market-data rate limits. Occurrences that already have a rich
reaction record are skipped, so the job can be interrupted and rerun.

Usage:
    # Every past occurrence
    python scripts/backfill_reactions.py

    # A date range, one release type
    python scripts/backfill_reactions.py --start 2024-01-01 --end 2024-12-31 --event cpi

    # Rebuild even rich records
    python scripts/backfill_reactions.py --start 2024-11-01 --force

Exit status:
    0 success, 1 completed with errors, 2 fatal (missing API key, database)
"""

import argparse
import sys

from src.pipelines.events.jobs import EXIT_FATAL, run_backfill_reactions
from src.schedule.event_types import EVENT_TYPES
from src.shared.utils import parse_date, setup_logger


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Backfill market reactions around macro releases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--start",
        type=str,
        help="First occurrence date (YYYY-MM-DD). Default: no lower bound",
        metavar="DATE",
    )

    parser.add_argument(
        "--end",
        type=str,
        help="Last occurrence date (YYYY-MM-DD). Default: no upper bound",
        metavar="DATE",
    )

    parser.add_argument(
        "--event",
        choices=list(EVENT_TYPES),
        help="Release type to backfill. Default: all",
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild records even when a rich one is stored",
    )

    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL. Default: built from DB_* settings",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args()


def main() -> int:
    """Main backfill script."""
    args = parse_args()
    logger = setup_logger("backfill_reactions", level="DEBUG" if args.verbose else "INFO")

    try:
        start = parse_date(args.start) if args.start else None
        end = parse_date(args.end) if args.end else None
    except ValueError:
        logger.error("Invalid date format. Use YYYY-MM-DD")
        return EXIT_FATAL
    return run_backfill_reactions(
        start=start,
        end=end,
        event_key=args.event,
        force=args.force,
        database_url=args.database_url,
        logger=logger,
    )


if __name__ == "__main__":
    sys.exit(main())
