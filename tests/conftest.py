"""
Root pytest configuration.

Shared fixtures: an in-memory SQLite event store and a fixed clock. No test
touches the network.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from src.shared.db.engine import init_db
from src.shared.db.session import get_session_factory
from src.shared.db.storage import EventStore
from tests.helpers import NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return EventStore(get_session_factory(engine))


@pytest.fixture
def clock():
    return lambda: NOW
