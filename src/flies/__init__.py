"""
Fly metadata module.

Records, controlled vocabularies, and the classification pipeline
(prompts -> parsing -> vocabulary mapping -> tag expansion -> persistence).
"""

from .batch import BatchJobRegistry, BatchProgress, BatchRunner, split_groups
from .expansion import expand_tags, expand_water_types, expand_weather_conditions
from .parser import ParsedDetails, extract_field, parse_details, parse_temperature_range, tokenize
from .pipeline import FlyClassification, classification_fields, classify_fly, enrich_fly, normalize_details
from .prompts import build_description_prompt, build_details_prompt
from .records import (
    ClassificationPatch,
    ConditionsPatch,
    DepthPatch,
    DescriptionPatch,
    Fly,
    FlyValidationError,
    ImagePatch,
    SeasonRangePatch,
    TemperaturePatch,
    apply_patch,
    apply_patches,
    build_fly,
    patched_fields,
)
from .season import active_months, describe_season_range, is_active_in_month
from .vocabulary import (
    Vocabulary,
    filter_water_types,
    get_vocabulary,
    load_vocabulary_config,
    map_seasons,
    map_weather_conditions,
)

__all__ = [
    'BatchJobRegistry',
    'BatchProgress',
    'BatchRunner',
    'split_groups',
    'expand_tags',
    'expand_water_types',
    'expand_weather_conditions',
    'ParsedDetails',
    'extract_field',
    'parse_details',
    'parse_temperature_range',
    'tokenize',
    'FlyClassification',
    'classification_fields',
    'classify_fly',
    'enrich_fly',
    'normalize_details',
    'build_description_prompt',
    'build_details_prompt',
    'ClassificationPatch',
    'ConditionsPatch',
    'DepthPatch',
    'DescriptionPatch',
    'Fly',
    'FlyValidationError',
    'ImagePatch',
    'SeasonRangePatch',
    'TemperaturePatch',
    'apply_patch',
    'apply_patches',
    'build_fly',
    'patched_fields',
    'active_months',
    'describe_season_range',
    'is_active_in_month',
    'Vocabulary',
    'filter_water_types',
    'get_vocabulary',
    'load_vocabulary_config',
    'map_seasons',
    'map_weather_conditions',
]
