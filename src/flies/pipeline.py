"""
Fly Classification Pipeline

Fills a fly's metadata from the completion service:

    description prompt -> completion -> details prompt -> completion
        -> parse -> map to vocabularies -> expand tags -> persist

Steps for one fly run strictly in order. Parse misses never fail the
pipeline; completion and persistence errors propagate to the caller.
"""

import logging
import re
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field

from .expansion import expand_water_types, expand_weather_conditions
from .parser import FIELD_LABELS, ParsedDetails, extract_field, parse_details
from .prompts import build_description_prompt, build_details_prompt
from .records import Fly, build_fly
from .season import DEFAULT_SEASON_END, DEFAULT_SEASON_START
from .vocabulary import (
    Vocabulary,
    filter_water_types,
    get_vocabulary,
    join_phrases,
    map_categories,
    map_depth,
    map_seasons,
    map_weather_conditions,
)

logger = logging.getLogger(__name__)


class Completer(Protocol):
    def complete(self, prompt: str) -> str: ...


class FlyUpdater(Protocol):
    def update(self, fly_id: str, fields: dict) -> None: ...


class FlyClassification(BaseModel):
    """Normalized metadata for one fly, ready to persist."""

    description: str
    categories: List[str] = Field(default_factory=list)
    season: List[str] = Field(default_factory=list)
    water_type: List[str] = Field(default_factory=list)
    weather_conditions: List[str] = Field(default_factory=list)
    target_species: List[str] = Field(default_factory=list)
    temp_min: float
    temp_max: float
    depth: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list)

    def to_fields(self) -> dict:
        """Column values, without parse diagnostics."""
        return self.model_dump(exclude={'missing_fields'})


def split_species(tokens: List[str], raw: Optional[str] = None) -> List[str]:
    """
    Target species are free text and often multi-word ("Brown Trout"), so
    the raw answer is split on list separators when it has any; otherwise
    the word tokens are used as they are.
    """
    if raw and re.search(r"[,;]", raw):
        parts = re.split(r"[,;]|\band\b", raw)
        species = [p.strip().strip('[]"\'. ') for p in parts]
        return [s for s in species if s]
    return list(tokens)


def normalize_details(
    description: str,
    parsed: ParsedDetails,
    species_text: Optional[str] = None,
    vocabulary: Optional[Vocabulary] = None
) -> FlyClassification:
    """
    Map parsed tokens onto the vocabularies and apply tag expansion.

    Args:
        description: Description answer
        parsed: Tokens from parse_details
        species_text: Raw "Target Species" line, if present
        vocabulary: Vocabulary to map against (defaults to configured one)

    Returns:
        FlyClassification with canonical tags
    """
    vocabulary = vocabulary or get_vocabulary()

    categories = map_categories(join_phrases(parsed.categories, vocabulary.categories), vocabulary)
    water = filter_water_types(join_phrases(parsed.water_type, vocabulary.water_types), vocabulary)
    weather = map_weather_conditions(
        join_phrases(parsed.weather_conditions, vocabulary.weather_conditions), vocabulary
    )

    temp_min, temp_max = parsed.temp_min, parsed.temp_max
    if temp_min > temp_max:
        temp_min, temp_max = temp_max, temp_min

    return FlyClassification(
        description=description,
        categories=categories,
        season=map_seasons(parsed.season, vocabulary),
        water_type=expand_water_types(water, vocabulary),
        weather_conditions=expand_weather_conditions(weather, vocabulary),
        target_species=split_species(parsed.target_species, species_text),
        temp_min=temp_min,
        temp_max=temp_max,
        depth=map_depth(parsed.depth, vocabulary),
        missing_fields=parsed.missing_fields,
    )


def classify_fly(fly_name: str, completer: Completer, vocabulary: Optional[Vocabulary] = None) -> FlyClassification:
    """
    Ask the completion service about a fly and normalize the answer.

    Args:
        fly_name: Pattern name
        completer: Anything with complete(prompt) -> str
        vocabulary: Vocabulary to use (defaults to configured one)

    Returns:
        FlyClassification (not persisted)
    """
    vocabulary = vocabulary or get_vocabulary()

    description = completer.complete(build_description_prompt(fly_name))
    answer = completer.complete(build_details_prompt(fly_name, description, vocabulary))

    parsed = parse_details(answer)
    species_text = extract_field(answer, FIELD_LABELS['target_species'])

    classification = normalize_details(
        description,
        parsed,
        species_text=species_text,
        vocabulary=vocabulary,
    )
    logger.info(
        f"Classified '{fly_name}': {len(classification.categories)} categories, "
        f"{len(classification.weather_conditions)} weather conditions"
    )
    return classification


def classification_fields(fly: Fly, classification: FlyClassification) -> dict:
    """
    Columns to write for a classified fly.

    The season range keeps the fly's existing months and falls back to
    March-September when it has none. The merged record is validated before
    anything is returned.
    """
    fields = classification.to_fields()
    fields['season_start'] = fly.season_start or DEFAULT_SEASON_START
    fields['season_end'] = fly.season_end or DEFAULT_SEASON_END

    build_fly(**{**fly.model_dump(), **fields})
    return fields


def enrich_fly(fly: Fly, completer: Completer, repository: FlyUpdater) -> FlyClassification:
    """
    Classify one fly and write the result by id.

    Raises:
        Whatever the completion client or repository raise; the batch runner
        isolates these per fly.
    """
    classification = classify_fly(fly.name, completer)
    repository.update(fly.id, classification_fields(fly, classification))
    logger.info(f"Saved classification for '{fly.name}' ({fly.id})")
    return classification
