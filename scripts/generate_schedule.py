"""Generate and persist the release schedule.

Creates one occurrence per release for CPI, PPI, NFP, unemployment and
FOMC over the requested years. Existing occurrences keep their recorded
values; rerunning is safe.

Usage:
    # Current year only
    python scripts/generate_schedule.py

    # A range of years
    python scripts/generate_schedule.py --start 2024 --end 2026

    # Use exact DST transition dates instead of the April-October rule
    python scripts/generate_schedule.py --start 2025 --exact-dst

Exit status:
    0 success, 2 fatal (bad range, years beyond the FOMC list, database)
"""

import argparse
import sys
from datetime import datetime, timezone

from src.pipelines.events.jobs import run_generate_schedule
from src.shared.utils import setup_logger


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    current_year = datetime.now(timezone.utc).year
    parser = argparse.ArgumentParser(
        description="Generate the macro release schedule",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--start",
        type=int,
        default=current_year,
        help="First year to generate. Default: current year",
        metavar="YEAR",
    )

    parser.add_argument(
        "--end",
        type=int,
        help="Last year to generate. Default: same as --start",
        metavar="YEAR",
    )

    parser.add_argument(
        "--exact-dst",
        action="store_true",
        help="Resolve US/Eastern offsets from the tz database",
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
    """Main schedule script."""
    args = parse_args()
    logger = setup_logger("generate_schedule", level="DEBUG" if args.verbose else "INFO")
    return run_generate_schedule(
        args.start,
        args.end if args.end is not None else args.start,
        database_url=args.database_url,
        exact_dst=args.exact_dst,
        logger=logger,
    )


if __name__ == "__main__":
    sys.exit(main())
