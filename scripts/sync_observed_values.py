"""Synchronize published values from FRED onto stored occurrences.

For each release type, fetches the latest observations, derives the
reported metric (YoY for CPI/PPI, monthly change for NFP, level for
unemployment and the policy rate) and writes it as the occurrence's
actual value. Matched past occurrences get their market reaction
backfilled in the same pass unless --no-backfill is given.

Usage:
    # All release types
    python scripts/sync_observed_values.py

    # A single release type, without the market backfill
    python scripts/sync_observed_values.py --event cpi --no-backfill

Exit status:
    0 success, 1 completed with errors, 2 fatal (missing API key, database)
"""

import argparse
import sys

from src.pipelines.events.jobs import ALL_EVENTS, run_sync_observed_values
from src.schedule.event_types import EVENT_TYPES
from src.shared.utils import setup_logger


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Sync published macro values onto occurrences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--event",
        choices=[*EVENT_TYPES, ALL_EVENTS],
        default=ALL_EVENTS,
        help="Release type to sync. Default: all",
    )

    parser.add_argument(
        "--no-backfill",
        action="store_true",
        help="Do not compute market reactions for matched occurrences",
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
    """Main sync script."""
    args = parse_args()
    logger = setup_logger("sync_observed_values", level="DEBUG" if args.verbose else "INFO")
    return run_sync_observed_values(
        event=args.event,
        backfill=not args.no_backfill,
        database_url=args.database_url,
        logger=logger,
    )


if __name__ == "__main__":
    sys.exit(main())
