"""
Table Repositories

Read/write access to the hosted tables. Every write is a single statement in
its own transaction; there is no optimistic concurrency check, so concurrent
admin edits to the same fly resolve as last-writer-wins.

Key convention: `flies.id` (UUID) is the primary key for reads and updates.
`flies.name` is a unique secondary key, used only where the admin works by
name (upload-by-name, bulk-import dedupe).
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import insert, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from src.flies.records import Fly

from .database import data_deletion_requests, flies, seasonal_fly_patterns, waitlist

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

FLY_COLUMNS = {column.name for column in flies.columns}


class FlyNotFoundError(LookupError):
    """No fly with the requested key."""


class DuplicateFlyError(ValueError):
    """A fly with this name already exists."""


class ImportResult(BaseModel):
    """Outcome of a bulk name import."""
    added: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.added:
            return "All flies already exist in the database."
        return (
            f"Successfully added {len(self.added)} new flies. "
            f"{len(self.skipped)} were already in the database."
        )


class SeasonalPattern(BaseModel):
    """Legacy condition row attached to a fly by name."""
    month: str = ""
    time_of_day: str = ""
    water_temperature: str = ""
    water_level: str = ""
    water_clarity: str = ""
    weather_condition: str = ""


class WaitlistEntry(BaseModel):
    """Waitlist sign-up."""
    name: Optional[str] = None
    email: str = Field(..., pattern=EMAIL_PATTERN)


class DeletionRequest(BaseModel):
    """Data deletion request. Moving to 'processed' happens outside this service."""
    email: str = Field(..., pattern=EMAIL_PATTERN)
    status: str = "pending"


def parse_import_names(text: str) -> List[str]:
    """One name per line, trimmed, blank lines dropped."""
    return [line.strip() for line in (text or '').split('\n') if line.strip()]


def _row_to_fly(row) -> Fly:
    # Stored rows are taken as-is; validation happens when they are patched
    values = dict(row._mapping)
    values['id'] = str(values['id'])
    return Fly.model_construct(**values)


class FlyRepository:
    """Access to the `flies` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_flies(self, incomplete_only: bool = True) -> List[Fly]:
        """
        List flies ordered by name.

        Args:
            incomplete_only: Only flies missing description, categories or season
        """
        query = select(flies).order_by(flies.c.name)
        if incomplete_only:
            query = query.where(or_(
                flies.c.description.is_(None),
                flies.c.categories.is_(None),
                flies.c.season.is_(None),
            ))

        with self.engine.connect() as conn:
            return [_row_to_fly(row) for row in conn.execute(query)]

    def get(self, fly_id: str) -> Fly:
        """Fetch one fly by id. Raises FlyNotFoundError."""
        with self.engine.connect() as conn:
            row = conn.execute(select(flies).where(flies.c.id == fly_id)).fetchone()
        if row is None:
            raise FlyNotFoundError(f"No fly with id {fly_id}")
        return _row_to_fly(row)

    def get_many(self, fly_ids: Iterable[str]) -> List[Fly]:
        """Fetch flies by id, ordered by name. Unknown ids are skipped."""
        ids = list(fly_ids)
        if not ids:
            return []
        query = select(flies).where(flies.c.id.in_(ids)).order_by(flies.c.name)
        with self.engine.connect() as conn:
            return [_row_to_fly(row) for row in conn.execute(query)]

    def get_by_name(self, name: str) -> Optional[Fly]:
        """Exact name lookup."""
        with self.engine.connect() as conn:
            row = conn.execute(select(flies).where(flies.c.name == name)).fetchone()
        return _row_to_fly(row) if row is not None else None

    def search_by_name(self, fragment: str) -> List[Fly]:
        """Case-insensitive substring match on name, ordered by name."""
        query = (
            select(flies)
            .where(flies.c.name.ilike(f"%{fragment}%"))
            .order_by(flies.c.name)
        )
        with self.engine.connect() as conn:
            return [_row_to_fly(row) for row in conn.execute(query)]

    def create(self, fly: Fly) -> Fly:
        """
        Insert a new fly.

        Raises:
            DuplicateFlyError: If the name is already taken
        """
        fly_id = str(uuid.uuid4())
        row = {k: v for k, v in fly.to_row().items() if v is not None}

        try:
            with self.engine.begin() as conn:
                conn.execute(insert(flies).values(id=fly_id, **row))
        except IntegrityError as e:
            raise DuplicateFlyError(f"A fly named '{fly.name}' already exists") from e

        logger.info(f"Created fly '{fly.name}' ({fly_id})")
        return self.get(fly_id)

    def update(self, fly_id: str, fields: Dict[str, Any]) -> None:
        """
        Update columns of one fly by id. Last writer wins.

        Raises:
            FlyNotFoundError: If no row has this id
            ValueError: If fields name unknown columns
        """
        invalid = (set(fields) - FLY_COLUMNS) | ({'id', 'created_at'} & set(fields))
        if invalid:
            raise ValueError(f"Cannot update columns: {sorted(invalid)}")
        if not fields:
            return

        with self.engine.begin() as conn:
            result = conn.execute(update(flies).where(flies.c.id == fly_id).values(**fields))

        if result.rowcount == 0:
            raise FlyNotFoundError(f"No fly with id {fly_id}")
        logger.debug(f"Updated fly {fly_id}: {sorted(fields)}")

    def import_names(self, names: Iterable[str]) -> ImportResult:
        """
        Insert name-only stubs for names not already in the catalog.

        Matching is case-insensitive against existing names and against
        earlier names in the same import.
        """
        with self.engine.connect() as conn:
            existing = {name.lower() for name in conn.execute(select(flies.c.name)).scalars()}

        result = ImportResult()
        for name in names:
            key = name.lower()
            if key in existing:
                result.skipped.append(name)
                continue
            existing.add(key)
            result.added.append(name)

        if result.added:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(flies),
                    [{'id': str(uuid.uuid4()), 'name': name} for name in result.added]
                )

        logger.info(f"Imported {len(result.added)} flies, skipped {len(result.skipped)}")
        return result

    def set_image_by_name(self, name: str, image_url: str) -> Fly:
        """Attach an image to the fly with this name, creating the fly if needed."""
        existing = self.get_by_name(name)
        if existing is not None:
            self.update(existing.id, {'image_url': image_url})
            return self.get(existing.id)
        return self.create(Fly(name=name, image_url=image_url))


class SeasonalPatternRepository:
    """Access to the legacy `seasonal_fly_patterns` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def add_patterns(self, fly_name: str, patterns: List[SeasonalPattern]) -> int:
        if not patterns:
            return 0
        with self.engine.begin() as conn:
            conn.execute(
                insert(seasonal_fly_patterns),
                [{'fly_name': fly_name, **pattern.model_dump()} for pattern in patterns]
            )
        return len(patterns)

    def list_patterns(self, fly_name: str) -> List[SeasonalPattern]:
        query = select(seasonal_fly_patterns).where(seasonal_fly_patterns.c.fly_name == fly_name)
        with self.engine.connect() as conn:
            return [
                SeasonalPattern(**{k: v or '' for k, v in row._mapping.items() if k in SeasonalPattern.model_fields})
                for row in conn.execute(query)
            ]


class SignupRepository:
    """Public sign-up tables: waitlist and data deletion requests."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def add_waitlist_entry(self, entry: WaitlistEntry) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(waitlist).values(name=entry.name or None, email=entry.email))
        logger.info("Added waitlist entry")

    def add_deletion_request(self, request: DeletionRequest) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(data_deletion_requests).values(email=request.email, status=request.status))
        logger.info("Recorded data deletion request")
