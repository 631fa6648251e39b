"""
Fly Records

Immutable fly record plus typed patches, one per field group the admin
screens edit together. Applying a patch returns a new record and re-runs all
record validation, so an invalid edit is rejected at the moment it is made
rather than at submission.

Validation rules:
- name is required
- temp_min <= temp_max (Celsius) when both are set
- season_start / season_end are months 1-12
- depth, when set, is one of the configured fishing depths
- season, water_type and weather_conditions only hold configured values
  (categories and target_species are open)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from .vocabulary import get_vocabulary

# Record fields restricted to a fixed vocabulary
VOCABULARY_FIELDS = {
    'season': 'seasons',
    'water_type': 'water_types',
    'weather_conditions': 'weather_conditions',
}


class FlyValidationError(ValueError):
    """A fly record or patch broke a record invariant."""


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = '.'.join(str(part) for part in error.get('loc', ()))
    message = error.get('msg', 'invalid value').removeprefix('Value error, ')
    return f"{location}: {message}" if location else message


class Fly(BaseModel):
    """A fly pattern in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Surrogate key (UUID string)")
    name: str = Field(..., min_length=1, description="Pattern name, unique")
    description: Optional[str] = None
    image_url: Optional[str] = None

    categories: Optional[List[str]] = None
    season: Optional[List[str]] = None
    water_type: Optional[List[str]] = None
    target_species: Optional[List[str]] = None
    weather_conditions: Optional[List[str]] = None

    temp_min: Optional[float] = Field(None, description="Minimum effective temperature (Celsius)")
    temp_max: Optional[float] = Field(None, description="Maximum effective temperature (Celsius)")
    season_start: Optional[int] = Field(None, ge=1, le=12, description="First active month")
    season_end: Optional[int] = Field(None, ge=1, le=12, description="Last active month")
    depth: Optional[str] = None

    created_at: Optional[datetime] = None

    @field_validator('name')
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator('depth')
    @classmethod
    def _known_depth(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in get_vocabulary().depths:
            raise ValueError(f"depth must be one of {get_vocabulary().depths}")
        return value

    @field_validator('season', 'water_type', 'weather_conditions')
    @classmethod
    def _known_tags(cls, value: Optional[List[str]], info: ValidationInfo) -> Optional[List[str]]:
        if value is None:
            return value
        allowed = getattr(get_vocabulary(), VOCABULARY_FIELDS[info.field_name])
        unknown = [tag for tag in value if tag not in allowed]
        if unknown:
            raise ValueError(f"unknown {info.field_name} values {unknown}; allowed: {allowed}")
        return value

    @model_validator(mode='after')
    def _temperature_order(self) -> 'Fly':
        if self.temp_min is not None and self.temp_max is not None and self.temp_min > self.temp_max:
            raise ValueError(
                f"Minimum temperature ({self.temp_min}) cannot be greater than maximum ({self.temp_max})"
            )
        return self

    @property
    def is_incomplete(self) -> bool:
        """Still waiting on classification (no description, categories or season)."""
        return self.description is None or self.categories is None or self.season is None

    def to_row(self) -> Dict[str, Any]:
        """Column values for persistence, without the key."""
        return self.model_dump(exclude={'id'})


def build_fly(**fields: Any) -> Fly:
    """Construct a Fly, raising FlyValidationError with a readable message."""
    try:
        return Fly(**fields)
    except ValidationError as e:
        raise FlyValidationError(_first_error(e)) from e


# ============================================================================
# Field-group patches
# ============================================================================

class _Patch(BaseModel):
    """Base for field-group patches. Only fields explicitly set are applied."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DescriptionPatch(_Patch):
    description: Optional[str] = None


class ClassificationPatch(_Patch):
    categories: Optional[List[str]] = None
    season: Optional[List[str]] = None
    water_type: Optional[List[str]] = None
    target_species: Optional[List[str]] = None


class ConditionsPatch(_Patch):
    weather_conditions: Optional[List[str]] = None


class TemperaturePatch(_Patch):
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None


class SeasonRangePatch(_Patch):
    season_start: Optional[int] = None
    season_end: Optional[int] = None


class DepthPatch(_Patch):
    depth: Optional[str] = None


class ImagePatch(_Patch):
    image_url: Optional[str] = None


FlyPatch = Union[
    DescriptionPatch,
    ClassificationPatch,
    ConditionsPatch,
    TemperaturePatch,
    SeasonRangePatch,
    DepthPatch,
    ImagePatch,
]


def apply_patch(fly: Fly, patch: FlyPatch) -> Fly:
    """
    Apply a field-group patch and re-validate the whole record.

    Args:
        fly: Current record
        patch: Changes for one field group

    Returns:
        New Fly with the changes applied (the input is untouched)

    Raises:
        FlyValidationError: If the patched record breaks an invariant

    Examples:
        >>> fly = build_fly(name='Adams', temp_min=8, temp_max=18)
        >>> apply_patch(fly, TemperaturePatch(temp_max=20)).temp_max
        20.0
    """
    merged = {**fly.model_dump(), **patch.changes()}
    try:
        return Fly.model_validate(merged)
    except ValidationError as e:
        raise FlyValidationError(_first_error(e)) from e


def apply_patches(fly: Fly, patches: List[FlyPatch]) -> Fly:
    """Apply patches in order; the first invalid one stops the chain."""
    for patch in patches:
        fly = apply_patch(fly, patch)
    return fly


def patched_fields(fly: Fly, patches: List[FlyPatch]) -> Dict[str, Any]:
    """Validated column changes for a set of patches, ready to persist."""
    updated = apply_patches(fly, patches)
    keys = set()
    for patch in patches:
        keys.update(patch.changes())
    return {key: getattr(updated, key) for key in sorted(keys)}
