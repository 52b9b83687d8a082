from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    Column,
    Date,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .base import Base


class MacroOccurrence(Base):
    __tablename__ = "macro_occurrences"

    id = Column(Integer, primary_key=True)
    event_key = Column(String(10), nullable=False)
    occurs_at = Column(TIMESTAMP(timezone=True), nullable=False)
    occurrence_date = Column(Date, nullable=False)
    forecast = Column(Float)
    actual = Column(Float)
    notes = Column(String(100))
    market_reaction = Column(JSON)

    __table_args__ = (
        UniqueConstraint("event_key", "occurrence_date"),
        Index("idx_macro_occurrences_time", "occurs_at"),
    )


class MarketReaction(Base):
    __tablename__ = "market_reactions"

    key = Column(String(32), primary_key=True)
    event_key = Column(String(10), nullable=False)
    occurrence_date = Column(Date, nullable=False)
    payload = Column(Text, nullable=False)
    rich = Column(Boolean, nullable=False, default=False)
    updated_at = Column(TIMESTAMP(timezone=True))

    __table_args__ = (Index("idx_market_reactions_event", "event_key", "occurrence_date"),)
