"""Back-office API module - FastAPI application and schemas."""

from .main import app
from .schemas import (
    FlyResponse,
    ClassificationResponse,
    BatchStatusResponse,
    HealthResponse,
    VocabularyResponse,
)

__all__ = [
    'app',
    'FlyResponse',
    'ClassificationResponse',
    'BatchStatusResponse',
    'HealthResponse',
    'VocabularyResponse',
]
