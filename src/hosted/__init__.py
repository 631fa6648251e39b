"""
Hosted Backend Module

Access to the hosted backend: Postgres tables, the fly image bucket, and
admin session auth.
"""

from .auth import AdminUser, AuthClient, AuthError
from .database import get_db_engine, metadata
from .repository import (
    DeletionRequest,
    DuplicateFlyError,
    FlyNotFoundError,
    FlyRepository,
    ImportResult,
    SeasonalPattern,
    SeasonalPatternRepository,
    SignupRepository,
    WaitlistEntry,
    parse_import_names,
)
from .storage import ImageStorage, StorageError, make_object_name

__all__ = [
    "AdminUser",
    "AuthClient",
    "AuthError",
    "get_db_engine",
    "metadata",
    "DeletionRequest",
    "DuplicateFlyError",
    "FlyNotFoundError",
    "FlyRepository",
    "ImportResult",
    "SeasonalPattern",
    "SeasonalPatternRepository",
    "SignupRepository",
    "WaitlistEntry",
    "parse_import_names",
    "ImageStorage",
    "StorageError",
    "make_object_name",
]
