"""Market Reaction Backfill Engine.

For each past occurrence, pulls the daily market series around the release
date, merges them, computes event-relative statistics and stores one
``ReactionRecord`` keyed ``"{event_key}-{YYYY-MM-DD}"``.

Window:
    [D0 - 3 days, D0 + 8 days), clamped to the current time. The upper
    bound leaves room for the D+7 candle.

Idempotency:
    A stored record is skipped when it is rich (every price point has both
    funding rate and open interest) and was built after the window closed.
    A record taken on release day lacks its D+1..D+7 rows, so it is rebuilt
    on the next run, as is anything not rich. Rebuilds replace the record
    wholesale. Records are serialized canonically, so rebuilding from the
    same upstream data gives byte-identical payloads.

Failure policy:
    - no candles (or the candle request fails): the occurrence fails, any
      previous record stays untouched
    - funding / open interest failure: logged, the fields stay None
    - the run continues with the next occurrence in both cases

Bulk runs are strictly sequential with ``occurrence_delay`` seconds between
occurrences that reached the provider; individual calls are additionally
throttled by the collector.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time, timedelta, timezone
from enum import Enum
from pathlib import Path

from src.ingestion.collectors.market_collector import MarketCollector
from src.ingestion.preprocessors.price_merger import merge_price_series
from src.shared.config import Config
from src.shared.db.storage import EventStore
from src.shared.exceptions import FetchError
from src.shared.schemas import Direction, Occurrence, PricePoint, ReactionRecord, ReactionStats
from src.shared.utils import date_key, setup_logger, utc_now

WINDOW_BEFORE = timedelta(days=3)
WINDOW_AFTER = timedelta(days=8)
DIRECTION_THRESHOLD = 0.5  # percent
EXCURSION_DAYS = 7


class BackfillStatus(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class BackfillResult:
    key: str
    status: BackfillStatus
    record: ReactionRecord | None = None
    error: str | None = None
    reason: str | None = None


@dataclass
class BackfillReport:
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    results: list[BackfillResult] = field(default_factory=list)

    def add(self, result: BackfillResult) -> None:
        self.results.append(result)
        if result.status is BackfillStatus.UPDATED:
            self.updated += 1
        elif result.status is BackfillStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.errors.append(result.error or f"{result.key}: failed")


def _change(numerator: float, denominator: float | None) -> float | None:
    if not denominator:
        return None
    return numerator / denominator * 100


def _pct(numerator: float, denominator: float | None) -> float | None:
    value = _change(numerator, denominator)
    return None if value is None else round(value, 2)


def compute_stats(series: list[PricePoint], d0: str) -> ReactionStats | None:
    """Event-relative statistics around the D0 row.

    Returns are in percent, rounded to 2 decimals, measured from the D0
    close except ``d0_return`` (D0 open to close). A horizon whose row is
    missing is ``None``. Returns None when there is no D0 row at all.
    """
    by_date = {point.date: point for point in series}
    base = by_date.get(d0)
    if base is None:
        return None

    d0_day = date.fromisoformat(d0)

    def horizon(days: int) -> float | None:
        row = by_date.get((d0_day + timedelta(days=days)).isoformat())
        return None if row is None else _pct(row.close - base.close, base.close)

    # direction is classified on the unrounded move
    next_day = by_date.get((d0_day + timedelta(days=1)).isoformat())
    d1_change = None if next_day is None else _change(next_day.close - base.close, base.close)
    if d1_change is not None and d1_change > DIRECTION_THRESHOLD:
        direction = Direction.UP
    elif d1_change is not None and d1_change < -DIRECTION_THRESHOLD:
        direction = Direction.DOWN
    else:
        direction = Direction.CHOP

    last_day = (d0_day + timedelta(days=EXCURSION_DAYS)).isoformat()
    excursion = [point for point in series if d0 <= point.date <= last_day]

    return ReactionStats(
        d0_return=None if base.open is None else _pct(base.close - base.open, base.open),
        d1_return=horizon(1),
        d3_return=horizon(3),
        d7_return=horizon(7),
        max_drawdown=_pct(min(p.low for p in excursion) - base.close, base.close),
        max_upside=_pct(max(p.high for p in excursion) - base.close, base.close),
        range=_pct(base.high - base.low, base.close),
        direction=direction.value,
    )


class ReactionBackfillEngine:
    """Build and cache market reaction records for occurrences."""

    def __init__(
        self,
        store: EventStore,
        collector: MarketCollector,
        occurrence_delay: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        log_file: Path | None = None,
    ) -> None:
        """
        Args:
            store: Occurrence / reaction store.
            collector: Market data collector.
            occurrence_delay: Seconds between occurrences in bulk runs
                (default Config.OCCURRENCE_DELAY).
            clock: Returns the current UTC time; the window never extends past it.
            log_file: Optional path for file-based logging.
        """
        self.store = store
        self.collector = collector
        self.occurrence_delay = (
            Config.OCCURRENCE_DELAY if occurrence_delay is None else occurrence_delay
        )
        self._clock = clock
        self.logger = setup_logger(
            self.__class__.__name__,
            log_file or Config.LOGS_DIR / "pipelines" / "reaction_backfill.log",
        )

    # ------------------------------------------------------------------
    # Single occurrence
    # ------------------------------------------------------------------

    def window(self, occurrence: Occurrence) -> tuple[datetime, datetime]:
        """Fetch window for an occurrence, as UTC midnights clamped to now."""
        midnight = datetime.combine(occurrence.occurrence_date, dt_time(0), tzinfo=timezone.utc)
        return midnight - WINDOW_BEFORE, min(midnight + WINDOW_AFTER, self._clock())

    @staticmethod
    def window_closed(record: ReactionRecord, occurrence: Occurrence) -> bool:
        """True when ``record`` was built from the full, unclamped window."""
        if record.window_end is None:
            return False
        midnight = datetime.combine(occurrence.occurrence_date, dt_time(0), tzinfo=timezone.utc)
        return datetime.fromisoformat(record.window_end) >= midnight + WINDOW_AFTER

    def backfill(self, occurrence: Occurrence, force: bool = False) -> BackfillResult:
        """Compute and store the reaction for one occurrence.

        Args:
            occurrence: A past occurrence.
            force: Rebuild even if the stored record is rich.
        """
        key = occurrence.reaction_key
        d0 = date_key(occurrence.scheduled_at)

        if occurrence.scheduled_at > self._clock():
            return BackfillResult(key, BackfillStatus.SKIPPED, reason="not yet released")

        existing = self.store.get_reaction(key)
        if existing is not None and existing.is_rich and not force:
            if self.window_closed(existing, occurrence):
                self.logger.info("Skipping %s: rich record already stored", key)
                return BackfillResult(key, BackfillStatus.SKIPPED, record=existing, reason="rich")
            self.logger.info("Rebuilding %s: stored window ended at %s", key, existing.window_end)

        start, end = self.window(occurrence)
        label = f"{occurrence.event_key.upper()} {d0}"

        try:
            candles = self.collector.fetch_candles(start, end)
        except FetchError as e:
            self.logger.error("%s: candle fetch failed: %s", label, e)
            return BackfillResult(key, BackfillStatus.FAILED, error=f"{label}: {e}")
        if not candles:
            self.logger.error("%s: no candles returned for %s..%s", label, start.date(), end.date())
            return BackfillResult(key, BackfillStatus.FAILED, error=f"{label}: no price data")

        funding = self._fetch_secondary(self.collector.fetch_funding, "funding rate", start, end, label)
        open_interest = self._fetch_secondary(
            self.collector.fetch_open_interest, "open interest", start, end, label
        )

        series = merge_price_series(candles, funding, open_interest)
        stats = compute_stats(series, d0)
        if stats is None:
            self.logger.error("%s: no candle for the release day", label)
            return BackfillResult(key, BackfillStatus.FAILED, error=f"{label}: no D0 candle")

        record = ReactionRecord(
            event_key=occurrence.event_key,
            occurrence_date=d0,
            stats=stats,
            price_series=tuple(series),
            window_end=end.isoformat(),
        )
        self.store.put_reaction(key, record)

        occurrence.market_reaction = record.summary()
        self.store.upsert_occurrence(occurrence)

        self.logger.info(
            "Stored %s: %d days, d1=%s, direction=%s, rich=%s",
            key,
            len(series),
            stats.d1_return,
            stats.direction,
            record.is_rich,
        )
        return BackfillResult(key, BackfillStatus.UPDATED, record=record)

    def _fetch_secondary(
        self, fetch, name: str, start: datetime, end: datetime, label: str
    ) -> list | None:
        try:
            return fetch(start, end)
        except FetchError as e:
            self.logger.warning("%s: %s unavailable, continuing without it: %s", label, name, e)
            return None

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def backfill_many(self, occurrences: Iterable[Occurrence], force: bool = False) -> BackfillReport:
        """Backfill occurrences one after another.

        Each occurrence is an independent unit: a failure is recorded and the
        loop moves on.
        """
        report = BackfillReport()
        pending = list(occurrences)
        for index, occurrence in enumerate(pending):
            result = self.backfill(occurrence, force=force)
            report.add(result)

            hit_provider = result.status is not BackfillStatus.SKIPPED
            if hit_provider and index < len(pending) - 1 and self.occurrence_delay > 0:
                time.sleep(self.occurrence_delay)

        self.logger.info(
            "Backfill finished: %d updated, %d skipped, %d failed",
            report.updated,
            report.skipped,
            report.failed,
        )
        return report

    def backfill_past(
        self,
        start: date | None = None,
        end: date | None = None,
        event_key: str | None = None,
        force: bool = False,
    ) -> BackfillReport:
        """Backfill every stored occurrence already released in the range."""
        now = self._clock()
        occurrences = [
            occ
            for occ in self.store.list_occurrences(event_key, start=start, end=end)
            if occ.scheduled_at <= now
        ]
        self.logger.info(
            "Backfilling %d past occurrences (event=%s, %s..%s)",
            len(occurrences),
            event_key or "all",
            start or "-",
            end or "-",
        )
        return self.backfill_many(occurrences, force=force)
