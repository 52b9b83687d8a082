"""Observed-Value Synchronizer.

Pulls the published values behind each release type from FRED, derives the
metric the release reports (YoY %, MoM change or level) and writes it as
``actual`` onto the matching stored occurrence.

Matching rules:
    Data releases: an observation matches the occurrence whose reference
    period (the month named in its notes, e.g. "Oct 2024 CPI") is nearest,
    within 45 days. The release day is never used for labelled occurrences:
    a first-Friday release on the 1st shares its date with the next month's
    observation. Occurrences without a label fall back to a same-day match.
    Policy rate: the target rate takes effect the day after the meeting, so
    an observation matches the meeting whose effective date is closest,
    within 7 days.
    Pairs are assigned greedily by distance; each observation and each
    occurrence is used at most once per pass.

Every series is synchronized independently. A failing series is logged and
reported as ``"<KEY> sync error: <message>"`` while the others continue.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from src.ingestion.collectors.fred_collector import FREDCollector
from src.ingestion.preprocessors.observation_transforms import derive_metric
from src.pipelines.events.reaction_backfill import ReactionBackfillEngine
from src.schedule.event_types import EVENT_TYPES, EventTypeDefinition, FixedDatesRule
from src.shared.config import Config
from src.shared.db.storage import EventStore
from src.shared.exceptions import ConfigurationError
from src.shared.schemas import EventKey, ObservedValue, Occurrence
from src.shared.utils import setup_logger

REFERENCE_TOLERANCE = timedelta(days=45)
POLICY_TOLERANCE = timedelta(days=7)
POLICY_EFFECTIVE_LAG = timedelta(days=1)


@dataclass
class SyncResult:
    event_key: str
    updated_count: int = 0
    matched_count: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncReport:
    results: list[SyncResult] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(r.updated_count for r in self.results)

    @property
    def errors(self) -> list[str]:
        return [error for r in self.results for error in r.errors]


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _assign(candidates: list[tuple]) -> list[tuple[ObservedValue, Occurrence]]:
    """Greedy one-to-one assignment over ``(rank, obs_idx, occ_idx, obs, occ)``."""
    used_obs: set[int] = set()
    used_occ: set[int] = set()
    pairs = []
    for _, obs_idx, occ_idx, obs, occ in sorted(candidates, key=lambda c: (c[0], c[1], c[2])):
        if obs_idx in used_obs or occ_idx in used_occ:
            continue
        used_obs.add(obs_idx)
        used_occ.add(occ_idx)
        pairs.append((obs, occ))
    return pairs


def match_by_reference_period(
    observations: Iterable[ObservedValue],
    occurrences: Iterable[Occurrence],
    tolerance: timedelta = REFERENCE_TOLERANCE,
) -> list[tuple[ObservedValue, Occurrence]]:
    """Pair observations with occurrences by reference period.

    An occurrence whose notes name no reference month can only take the
    observation dated on its release day.
    """
    observations = [obs for obs in observations if obs.available]
    occurrences = list(occurrences)

    candidates = []
    for i, obs in enumerate(observations):
        for j, occ in enumerate(occurrences):
            period = occ.reference_period
            if period is None:
                if occ.occurrence_date == obs.date:
                    candidates.append(((1, 0), i, j, obs, occ))
                continue
            distance = abs(obs.date - period)
            if distance <= tolerance:
                candidates.append(((0, distance.days), i, j, obs, occ))
    return _assign(candidates)


def match_by_effective_date(
    observations: Iterable[ObservedValue],
    occurrences: Iterable[Occurrence],
    tolerance: timedelta = POLICY_TOLERANCE,
) -> list[tuple[ObservedValue, Occurrence]]:
    """Pair rate observations with the meeting whose effective date is closest."""
    observations = [obs for obs in observations if obs.available]
    occurrences = list(occurrences)

    candidates = []
    for i, obs in enumerate(observations):
        for j, occ in enumerate(occurrences):
            distance = abs(obs.date - (occ.occurrence_date + POLICY_EFFECTIVE_LAG))
            if distance <= tolerance:
                candidates.append(((distance.days,), i, j, obs, occ))
    return _assign(candidates)


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


class ObservedValueSynchronizer:
    """Reconcile stored occurrences with published FRED values."""

    def __init__(
        self,
        store: EventStore,
        collector: FREDCollector,
        definitions: Mapping[str, EventTypeDefinition] = EVENT_TYPES,
        backfill_engine: ReactionBackfillEngine | None = None,
        lookback: int | None = None,
        log_file: Path | None = None,
    ) -> None:
        """
        Args:
            store: Occurrence / reaction store.
            collector: FRED collector.
            definitions: Event definitions (series id and metric per key).
            backfill_engine: When given, matched past occurrences get their
                market reaction computed in the same pass.
            lookback: Observations fetched per series (default Config.FRED_LOOKBACK).
            log_file: Optional path for file-based logging.
        """
        self.store = store
        self.collector = collector
        self.definitions = definitions
        self.backfill_engine = backfill_engine
        self.lookback = lookback or Config.FRED_LOOKBACK
        self.logger = setup_logger(
            self.__class__.__name__,
            log_file or Config.LOGS_DIR / "pipelines" / "observed_values.log",
        )

    def sync(self, event_key: str) -> SyncResult:
        """Synchronize one release type.

        Raises:
            ValueError: If the event key is unknown.
            ConfigurationError: Configuration problems are never absorbed.
        """
        key = EventKey(event_key).value
        definition = self.definitions[key]
        result = SyncResult(event_key=key)

        try:
            occurrences = self.store.list_occurrences(key)
            policy = isinstance(definition.rule, FixedDatesRule)

            if policy and occurrences:
                # daily series: fetch everything since the oldest stored meeting
                observations = self.collector.get_observations(
                    definition.series_id,
                    observation_start=occurrences[0].occurrence_date - POLICY_TOLERANCE,
                )
            else:
                observations = self.collector.get_observations(
                    definition.series_id, limit=self.lookback
                )
            derived = derive_metric(definition.metric, observations)

            if policy:
                pairs = match_by_effective_date(derived, occurrences)
            else:
                pairs = match_by_reference_period(derived, occurrences)
            result.matched_count = len(pairs)

            to_backfill = []
            for obs, occ in sorted(pairs, key=lambda p: p[1].scheduled_at):
                if occ.actual != obs.value:
                    self.logger.info(
                        "%s %s (%s): actual %s -> %s",
                        key.upper(),
                        occ.occurrence_date,
                        occ.notes,
                        occ.actual,
                        obs.value,
                    )
                    occ.actual = obs.value
                    self.store.upsert_occurrence(occ)
                    result.updated_count += 1
                    to_backfill.append(occ)
                elif occ.market_reaction is None or occ.market_reaction.get("d7") is None:
                    # no reaction yet, or one taken before D+7 closed
                    to_backfill.append(occ)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error("%s sync failed: %s", key.upper(), e)
            result.errors.append(f"{key.upper()} sync error: {e}")
            return result

        if self.backfill_engine is not None and to_backfill:
            report = self.backfill_engine.backfill_many(to_backfill)
            result.errors.extend(f"{key.upper()} backfill error: {e}" for e in report.errors)

        self.logger.info(
            "%s: %d matched, %d updated, %d errors",
            key.upper(),
            result.matched_count,
            result.updated_count,
            len(result.errors),
        )
        return result

    def sync_all(self, event_keys: Iterable[str] | None = None) -> SyncReport:
        """Synchronize several release types independently (default: all)."""
        report = SyncReport()
        for key in event_keys or self.definitions:
            report.results.append(self.sync(key))
        return report
