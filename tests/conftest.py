"""
Shared fixtures: an in-memory SQLite store and a factory for help request records.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from helpconnect.models import HelpRequest
from helpconnect.write_service.db.session import Base
from helpconnect.write_service.db.store import RequestStore


def make_record(**overrides):
    """A valid help request record (what a change event carries in "new")."""
    record = {
        "id": "req-1",
        "user_id": "owner-1",
        "title": "Groceries for this week",
        "description": "I can't get to the store after my surgery.",
        "category": "Shopping",
        "urgency_level": "medium",
        "location": "4100 Lindell Blvd, St. Louis, MO",
        "geo_location": "POINT(-90.2455 38.6399)",
        "location_hidden": False,
        "status": "open",
        "created_at": "2026-10-01T12:00:00+00:00",
        "updated_at": "2026-10-01T12:00:00+00:00",
    }
    record.update(overrides)
    return record


def make_request(**overrides):
    return HelpRequest(**make_record(**overrides))


@pytest.fixture
def session_factory():
    """Sessions on a temporary database in memory (deleted when the engine goes away)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return RequestStore(session_factory=session_factory, retry_delay=0)
