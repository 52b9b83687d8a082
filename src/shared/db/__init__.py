"""Database engine, session factory, ORM models, and the event store."""

from .base import Base
from .engine import create_db_engine, get_engine, init_db
from .models import MacroOccurrence, MarketReaction
from .session import get_db, get_session_factory
from .storage import EventStore

__all__ = [
    # ORM infrastructure
    "Base",
    "create_db_engine",
    "get_engine",
    "init_db",
    "get_session_factory",
    "get_db",
    # ORM models
    "MacroOccurrence",
    "MarketReaction",
    # Store
    "EventStore",
]
