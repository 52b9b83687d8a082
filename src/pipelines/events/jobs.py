"""Batch job runners for the event pipelines.

Each runner returns a process exit status:
    0  completed without errors
    1  completed, but N occurrences / series failed (N is logged)
    2  fatal failure before completion (configuration, coverage or database)

The ``scripts/`` wrappers only parse arguments and call these.
"""

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from src.ingestion.collectors.fred_collector import FREDCollector
from src.ingestion.collectors.market_collector import MarketCollector
from src.pipelines.events.observed_values import ObservedValueSynchronizer
from src.pipelines.events.reaction_backfill import ReactionBackfillEngine
from src.schedule.event_types import EVENT_TYPES
from src.schedule.generator import ScheduleGenerator
from src.shared.config import Config
from src.shared.db.storage import EventStore
from src.shared.utils import setup_logger

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_FATAL = 2

ALL_EVENTS = "all"


def _finish(logger: logging.Logger, job: str, errors: list[str]) -> int:
    if errors:
        for error in errors:
            logger.error("  - %s", error)
        logger.warning("%s completed with %d errors", job, len(errors))
        return EXIT_ERRORS
    logger.info("%s completed without errors", job)
    return EXIT_OK


def run_generate_schedule(
    start_year: int,
    end_year: int,
    store: EventStore | None = None,
    database_url: str | None = None,
    exact_dst: bool = False,
    logger: logging.Logger | None = None,
) -> int:
    """Generate occurrences for every event type and persist them."""
    logger = logger or setup_logger("generate_schedule")
    try:
        occurrences = ScheduleGenerator(EVENT_TYPES, exact_dst=exact_dst).generate_full_schedule(
            start_year, end_year
        )
        store = store or EventStore.from_url(database_url or Config().database_url)
        counts = store.save_schedule(occurrences)
    except (ValueError, SQLAlchemyError) as e:
        logger.error("Schedule generation aborted: %s", e)
        return EXIT_FATAL

    logger.info(
        "Generated %d occurrences for %d-%d (%d new)",
        len(occurrences),
        start_year,
        end_year,
        counts["inserted"],
    )
    return EXIT_OK


def run_sync_observed_values(
    event: str = ALL_EVENTS,
    backfill: bool = True,
    store: EventStore | None = None,
    database_url: str | None = None,
    fred_collector: FREDCollector | None = None,
    market_collector: MarketCollector | None = None,
    logger: logging.Logger | None = None,
) -> int:
    """Synchronize published values for one event type or all of them."""
    logger = logger or setup_logger("sync_observed_values")
    try:
        keys = list(EVENT_TYPES) if event == ALL_EVENTS else [EVENT_TYPES[event].key]
        if fred_collector is None:
            Config.validate()
            fred_collector = FREDCollector()

        if backfill and market_collector is None:
            Config.validate_market()
            market_collector = MarketCollector()
        store = store or EventStore.from_url(database_url or Config().database_url)

        engine = ReactionBackfillEngine(store, market_collector) if backfill else None

        synchronizer = ObservedValueSynchronizer(store, fred_collector, backfill_engine=engine)
        report = synchronizer.sync_all(keys)
    except KeyError:
        logger.error("Unknown event type: %s", event)
        return EXIT_FATAL
    except (ValueError, SQLAlchemyError) as e:
        logger.error("Sync aborted: %s", e)
        return EXIT_FATAL

    logger.info("Updated %d occurrences across %d series", report.updated_count, len(report.results))
    return _finish(logger, "Sync", report.errors)


def run_backfill_reactions(
    start: date | None = None,
    end: date | None = None,
    event_key: str | None = None,
    force: bool = False,
    store: EventStore | None = None,
    database_url: str | None = None,
    collector: MarketCollector | None = None,
    logger: logging.Logger | None = None,
) -> int:
    """Backfill reactions for past occurrences (all of them without a range)."""
    logger = logger or setup_logger("backfill_reactions")
    try:
        if start and end and start > end:
            raise ValueError(f"start ({start}) must not be after end ({end})")
        if collector is None:
            Config.validate_market()
            collector = MarketCollector()
        store = store or EventStore.from_url(database_url or Config().database_url)

        engine = ReactionBackfillEngine(store, collector)
        report = engine.backfill_past(start=start, end=end, event_key=event_key, force=force)
    except (ValueError, SQLAlchemyError) as e:
        logger.error("Backfill aborted: %s", e)
        return EXIT_FATAL

    logger.info(
        "Backfill summary: %d updated, %d skipped, %d failed",
        report.updated,
        report.skipped,
        report.failed,
    )
    return _finish(logger, "Backfill", report.errors)
