"""
Hosted Database Tables

SQLAlchemy Core definitions for the tables the service reads and writes in
the hosted Postgres database.

Tables:
- `flies`: fly pattern catalog (surrogate UUID key, unique name)
- `seasonal_fly_patterns`: legacy per-pattern condition rows keyed by fly name
- `waitlist`: app waitlist sign-ups
- `data_deletion_requests`: end-user data deletion requests

List columns are Postgres text[] arrays. They fall back to JSON on SQLite so
the same tables can back local tests.
"""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.engine import Engine

from src.common.settings import Settings, get_settings

metadata = MetaData()


def _text_list():
    return ARRAY(Text).with_variant(JSON(none_as_null=True), "sqlite")


def _uuid_key():
    return UUID(as_uuid=False).with_variant(String(36), "sqlite")


def _new_id() -> str:
    return str(uuid.uuid4())


flies = Table(
    "flies",
    metadata,
    Column("id", _uuid_key(), primary_key=True, default=_new_id),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text),
    Column("image_url", Text),
    Column("categories", _text_list()),
    Column("season", _text_list()),
    Column("water_type", _text_list()),
    Column("target_species", _text_list()),
    Column("weather_conditions", _text_list()),
    Column("temp_min", Float),
    Column("temp_max", Float),
    Column("season_start", Integer),
    Column("season_end", Integer),
    Column("depth", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)

seasonal_fly_patterns = Table(
    "seasonal_fly_patterns",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fly_name", Text, nullable=False),
    Column("month", Text),
    Column("time_of_day", Text),
    Column("water_temperature", Text),
    Column("water_level", Text),
    Column("water_clarity", Text),
    Column("weather_condition", Text),
)

waitlist = Table(
    "waitlist",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text),
    Column("email", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)

data_deletion_requests = Table(
    "data_deletion_requests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text, nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)


def get_db_engine(settings: Settings = None) -> Engine:
    """Get database engine."""
    settings = settings or get_settings()
    if not settings.database_url:
        raise ValueError("DATABASE_URL not configured")
    return create_engine(settings.database_url, pool_pre_ping=True)

