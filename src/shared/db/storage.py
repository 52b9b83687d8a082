"""
Occurrence / reaction store backed by SQLAlchemy.

This is the only persistence surface the event pipelines see:

    list_occurrences(event_key)      -> [Occurrence]
    upsert_occurrence(occurrence)    -> Occurrence
    get_reaction(key)                -> ReactionRecord | None
    put_reaction(key, record)        -> None

Each call runs in its own transaction, so a killed job never leaves a
half-written occurrence or reaction behind.

Example:

    from src.shared.db.storage import EventStore

    store = EventStore.from_url("sqlite:///data/macro_reactions.db")
    for occ in store.list_occurrences("cpi"):
        print(occ.notes, occ.actual)
"""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from src.shared.schemas import EventKey, Occurrence, ReactionRecord
from src.shared.utils import parse_date, setup_logger

from .engine import create_db_engine, init_db
from .models import MacroOccurrence, MarketReaction
from .session import get_db, get_session_factory


def _to_occurrence(row: MacroOccurrence) -> Occurrence:
    return Occurrence(
        id=row.id,
        event_key=row.event_key,
        scheduled_at=row.occurs_at,
        notes=row.notes,
        forecast=row.forecast,
        actual=row.actual,
        market_reaction=row.market_reaction,
    )


class EventStore:
    """Read/write access to occurrences and reaction records."""

    def __init__(
        self,
        session_factory: sessionmaker | None = None,
        log_file: Path | None = None,
    ) -> None:
        self._session_factory = session_factory or get_session_factory()
        self.logger = setup_logger(self.__class__.__name__, log_file)

    @classmethod
    def from_url(cls, url: str | None = None, log_file: Path | None = None) -> "EventStore":
        """Build a store on a fresh engine, creating tables if needed."""
        engine = create_db_engine(url)
        init_db(engine)
        return cls(get_session_factory(engine), log_file=log_file)

    # ------------------------------------------------------------------
    # Occurrences
    # ------------------------------------------------------------------

    def list_occurrences(
        self,
        event_key: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Occurrence]:
        """List occurrences ordered by release instant.

        Args:
            event_key: Restrict to one release type (all types if None).
            start: Inclusive lower bound on the occurrence date.
            end: Inclusive upper bound on the occurrence date.
        """
        stmt = select(MacroOccurrence).order_by(MacroOccurrence.occurs_at)
        if event_key is not None:
            stmt = stmt.where(MacroOccurrence.event_key == EventKey(event_key).value)
        if start is not None:
            stmt = stmt.where(MacroOccurrence.occurrence_date >= start)
        if end is not None:
            stmt = stmt.where(MacroOccurrence.occurrence_date <= end)

        with get_db(self._session_factory) as db:
            return [_to_occurrence(row) for row in db.scalars(stmt)]

    def upsert_occurrence(self, occurrence: Occurrence) -> Occurrence:
        """Insert or update the occurrence for its (event_key, date) pair."""
        with get_db(self._session_factory) as db:
            row = self._find_occurrence(db, occurrence.event_key, occurrence.occurrence_date)
            if row is None:
                row = MacroOccurrence(
                    event_key=occurrence.event_key,
                    occurrence_date=occurrence.occurrence_date,
                )
                db.add(row)
            row.occurs_at = occurrence.scheduled_at
            row.notes = occurrence.notes
            row.forecast = occurrence.forecast
            row.actual = occurrence.actual
            row.market_reaction = occurrence.market_reaction
            db.flush()
            occurrence.id = row.id
        return occurrence

    def save_schedule(self, occurrences: Iterable[Occurrence]) -> dict[str, int]:
        """Persist generated occurrences without losing recorded values.

        Existing rows keep their actual, forecast, market reaction and notes;
        only the release instant is refreshed.

        Returns:
            ``{"inserted": n, "existing": m}``
        """
        counts = {"inserted": 0, "existing": 0}
        with get_db(self._session_factory) as db:
            for occ in occurrences:
                row = self._find_occurrence(db, occ.event_key, occ.occurrence_date)
                if row is None:
                    db.add(
                        MacroOccurrence(
                            event_key=occ.event_key,
                            occurs_at=occ.scheduled_at,
                            occurrence_date=occ.occurrence_date,
                            notes=occ.notes,
                            forecast=occ.forecast,
                            actual=occ.actual,
                        )
                    )
                    db.flush()
                    counts["inserted"] += 1
                else:
                    row.occurs_at = occ.scheduled_at
                    row.notes = row.notes or occ.notes
                    counts["existing"] += 1

        self.logger.info(
            "Schedule saved: %d inserted, %d already present",
            counts["inserted"],
            counts["existing"],
        )
        return counts

    @staticmethod
    def _find_occurrence(db, event_key: str, occurrence_date: date) -> MacroOccurrence | None:
        stmt = select(MacroOccurrence).where(
            MacroOccurrence.event_key == event_key,
            MacroOccurrence.occurrence_date == occurrence_date,
        )
        return db.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------

    def get_reaction(self, key: str) -> ReactionRecord | None:
        with get_db(self._session_factory) as db:
            row = db.get(MarketReaction, key)
            if row is None:
                return None
            return ReactionRecord.from_json(row.payload)

    def put_reaction(self, key: str, record: ReactionRecord) -> None:
        """Replace the reaction stored under ``key`` wholesale."""
        if key != record.key:
            raise ValueError(f"Reaction key mismatch: {key!r} != {record.key!r}")

        with get_db(self._session_factory) as db:
            row = db.get(MarketReaction, key)
            if row is None:
                row = MarketReaction(key=key)
                db.add(row)
            row.event_key = record.event_key
            row.occurrence_date = parse_date(record.occurrence_date)
            row.payload = record.to_json()
            row.rich = record.is_rich
            row.updated_at = datetime.now(timezone.utc)

    def list_reactions(self, event_key: str) -> list[ReactionRecord]:
        stmt = (
            select(MarketReaction)
            .where(MarketReaction.event_key == EventKey(event_key).value)
            .order_by(MarketReaction.occurrence_date)
        )
        with get_db(self._session_factory) as db:
            return [ReactionRecord.from_json(row.payload) for row in db.scalars(stmt)]
