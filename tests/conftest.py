"""
Shared test fixtures.

The database is a single-connection in-memory SQLite engine built from the
same tables as production.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from src.common.settings import Settings
from src.flies.records import Fly
from src.hosted import FlyRepository, metadata


def create_memory_engine():
    """SQLite engine shared across threads, with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = create_memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return FlyRepository(engine)


@pytest.fixture
def test_settings():
    return Settings(
        database_url="sqlite://",
        supabase_url="https://project.example.com",
        supabase_anon_key="anon",
        openai_api_key="sk-test",
        google_api_key="g-test",
        google_search_engine_id="cx-test",
        batch_size=1,
        batch_delay_seconds=0,
    )


@pytest.fixture
def adams(repository):
    return repository.create(Fly(name="Adams"))
