"""
API Request/Response Schemas

Pydantic models for all API endpoints. These define the contract between
the back-office API and its clients (admin screens, marketing site forms).

Design Principles:
- Every write endpoint answers with a human-readable `message`
- Failures come back as `detail` text starting with "Error", which the
  screens use to pick error styling
- Temperatures are Celsius, months are 1-12
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from src.flies.records import (
    ClassificationPatch,
    ConditionsPatch,
    DepthPatch,
    DescriptionPatch,
    Fly,
    FlyPatch,
    ImagePatch,
    SeasonRangePatch,
    TemperaturePatch,
)
from src.hosted.repository import EMAIL_PATTERN, SeasonalPattern


# ============================================================================
# Shared
# ============================================================================

class MessageResponse(BaseModel):
    """Outcome of a write."""

    message: str = Field(..., description="Message shown in the screen's message area")


class FlyResponse(BaseModel):
    """A fly record as returned to the admin screens."""

    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    categories: Optional[List[str]] = None
    season: Optional[List[str]] = None
    water_type: Optional[List[str]] = None
    target_species: Optional[List[str]] = None
    weather_conditions: Optional[List[str]] = None
    temp_min: Optional[float] = Field(None, description="Celsius")
    temp_max: Optional[float] = Field(None, description="Celsius")
    season_start: Optional[int] = None
    season_end: Optional[int] = None
    depth: Optional[str] = None
    incomplete: bool = Field(..., description="Missing description, categories or season")
    created_at: Optional[datetime] = None

    @classmethod
    def from_fly(cls, fly: Fly) -> "FlyResponse":
        return cls(**fly.model_dump(), incomplete=fly.is_incomplete)


class FlySavedResponse(MessageResponse):
    fly: FlyResponse


# ============================================================================
# Public forms
# ============================================================================

class WaitlistRequest(BaseModel):
    name: Optional[str] = Field(None, description="Optional display name")
    email: str = Field(..., pattern=EMAIL_PATTERN)


class DeletionRequestBody(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)


# ============================================================================
# Fly catalog
# ============================================================================

class FlyListResponse(BaseModel):
    flies: List[FlyResponse]
    count: int
    show_all: bool = Field(..., description="False when only incomplete flies are listed")


class FlyCreateRequest(BaseModel):
    """Admin create form."""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    categories: Optional[List[str]] = None
    season: Optional[List[str]] = None
    water_type: Optional[List[str]] = None
    target_species: Optional[List[str]] = None
    weather_conditions: Optional[List[str]] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    season_start: Optional[int] = None
    season_end: Optional[int] = None
    depth: Optional[str] = None
    patterns: List[SeasonalPattern] = Field(default_factory=list, description="Legacy seasonal condition rows")

    def fly_fields(self) -> dict:
        return self.model_dump(exclude={'patterns'})


class FlyUpdateRequest(BaseModel):
    """Partial edit of a fly. Fields are grouped into patches for validation."""

    description: Optional[str] = None
    categories: Optional[List[str]] = None
    season: Optional[List[str]] = None
    water_type: Optional[List[str]] = None
    target_species: Optional[List[str]] = None
    weather_conditions: Optional[List[str]] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    season_start: Optional[int] = None
    season_end: Optional[int] = None
    depth: Optional[str] = None
    image_url: Optional[str] = None

    def to_patches(self) -> List[FlyPatch]:
        """One patch per field group that has at least one field set."""
        sent = self.model_dump(exclude_unset=True)
        patches = []
        for patch_type in (
            DescriptionPatch,
            ClassificationPatch,
            ConditionsPatch,
            TemperaturePatch,
            SeasonRangePatch,
            DepthPatch,
            ImagePatch,
        ):
            group = {k: v for k, v in sent.items() if k in patch_type.model_fields}
            if group:
                patches.append(patch_type(**group))
        return patches


class BulkImportRequest(BaseModel):
    names_text: str = Field(..., description="Fly names, one per line")


class ImportResponse(MessageResponse):
    added: List[str]
    skipped: List[str]


# ============================================================================
# Images
# ============================================================================

class ImageResultResponse(BaseModel):
    link: str
    title: str = ""
    thumbnail_link: Optional[str] = None


class ImageSearchResponse(BaseModel):
    fly_id: Optional[str] = Field(None, description="Fly the results are for")
    fly_name: Optional[str] = None
    results: List[ImageResultResponse] = Field(default_factory=list)
    message: str = ""


class ImageSelectionRequest(BaseModel):
    image_url: str = Field(..., min_length=1, description="Search result to store for the fly")


# ============================================================================
# AI classification
# ============================================================================

class SuggestionRequest(BaseModel):
    """AI assist for a fly that may not be saved yet."""

    name: str = Field(..., min_length=1, description="Fly pattern name")


class ClassificationResponse(BaseModel):
    fly_id: Optional[str] = Field(None, description="Unset for suggestions by name")
    description: str
    categories: List[str]
    season: List[str]
    water_type: List[str]
    weather_conditions: List[str]
    target_species: List[str]
    temp_min: float
    temp_max: float
    depth: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list, description="Labels the completion left out")
    saved: bool = False
    message: str = ""


class BatchRequest(BaseModel):
    fly_ids: List[str] = Field(..., min_length=1)


class BatchStatusResponse(BaseModel):
    job_id: str
    total: int
    processed: int = Field(..., description="Flies attempted, including failures")
    failed: int
    succeeded: int
    finished: bool
    message: str
    messages: List[str]
    started_at: datetime
    finished_at: Optional[datetime] = None


# ============================================================================
# System
# ============================================================================

class HealthResponse(BaseModel):
    """API health status."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall status")
    version: str = Field(..., description="API version")
    database: Literal["connected", "disconnected"] = Field(..., description="Database status")
    message: Optional[str] = Field(None, description="Additional status info")


class VocabularyResponse(BaseModel):
    """Controlled vocabularies the admin screens offer."""

    seasons: List[str]
    water_types: List[str]
    depths: List[str]
    categories: List[str]
    weather_conditions: List[str]


class SessionResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(..., description="Message beginning with 'Error'")


ERROR_RESPONSES: Dict[int, dict] = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}
