"""
Completion Response Parser

Pulls labelled fields ("Season: Spring, Summer") out of free-text completions.

Parsing fails open: a missing or garbled field becomes an empty list (or the
fallback temperature range), never an exception. Tokens are not validated
here; the vocabulary mapper drops anything it doesn't recognize.

Note: because misses are silent, malformed model output is only visible in
the logs (a warning per missing field).
"""

import logging
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Celsius, used per side when the range can't be read
FALLBACK_TEMP_MIN = 0.0
FALLBACK_TEMP_MAX = 30.0

FIELD_LABELS = {
    'categories': 'Categories',
    'season': 'Season',
    'water_type': 'Water Types',
    'weather_conditions': 'Weather Conditions',
    'target_species': 'Target Species',
    'temperature_range': 'Temperature Range',
    'depth': 'Fishing Depth',
}

# A quoted segment or a run of non-space characters
TOKEN_PATTERN = re.compile(r"[\"'][^\"']+[\"']|\S+")
NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

QUOTE_CHARS = "\"'"
LIST_PUNCTUATION = ",;[]"


class ParsedDetails(BaseModel):
    """Raw tokens per labelled field, before vocabulary mapping."""

    categories: List[str] = Field(default_factory=list)
    season: List[str] = Field(default_factory=list)
    water_type: List[str] = Field(default_factory=list)
    weather_conditions: List[str] = Field(default_factory=list)
    target_species: List[str] = Field(default_factory=list)
    temp_min: float = FALLBACK_TEMP_MIN
    temp_max: float = FALLBACK_TEMP_MAX
    depth: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list, description="Labels not found in the text")


def extract_field(text: str, label: str) -> Optional[str]:
    """
    Content of the first "Label: ..." line, up to end of line.

    Examples:
        >>> extract_field("Season: Spring Summer\\nDepth: Deep", "Season")
        'Spring Summer'
        >>> extract_field("nothing here", "Season") is None
        True
    """
    match = re.search(rf"{re.escape(label)}: (.*?)(?:\n|$)", text)
    if not match:
        return None
    return match.group(1)


def clean_token(token: str) -> str:
    """Strip quotes and list punctuation around a token."""
    token = token.strip()
    token = token.strip(LIST_PUNCTUATION).strip()
    token = token.replace('"', '').replace("'", '')
    return token.strip(LIST_PUNCTUATION).strip()


def tokenize(content: Optional[str]) -> List[str]:
    """
    Split field content into quoted segments or whitespace words.

    Examples:
        >>> tokenize('"Salt Water", Lakes, Rivers')
        ['Salt Water', 'Lakes', 'Rivers']
        >>> tokenize(None)
        []
    """
    if not content:
        return []

    tokens = []
    for raw in TOKEN_PATTERN.findall(content):
        token = clean_token(raw)
        if token:
            tokens.append(token)
    return tokens


def parse_temperature_range(content: Optional[str]) -> Tuple[float, float]:
    """
    Read "min-max" from a temperature answer.

    Each side falls back independently (0 / 30 Celsius) when it can't be read.

    Examples:
        >>> parse_temperature_range('10-18°C')
        (10.0, 18.0)
        >>> parse_temperature_range(None)
        (0.0, 30.0)
    """
    if not content:
        return FALLBACK_TEMP_MIN, FALLBACK_TEMP_MAX

    parts = content.split('-')
    values = []
    for part in parts[:2]:
        number = NUMBER_PATTERN.search(part)
        values.append(float(number.group(0)) if number else None)

    temp_min = values[0] if values and values[0] is not None else FALLBACK_TEMP_MIN
    temp_max = values[1] if len(values) > 1 and values[1] is not None else FALLBACK_TEMP_MAX
    return temp_min, temp_max


def parse_details(text: str) -> ParsedDetails:
    """
    Parse a classification completion into raw field tokens.

    Args:
        text: Completion text in the "Label: content" format the details
              prompt asks for

    Returns:
        ParsedDetails with defaults for every field that wasn't found
    """
    contents = {key: extract_field(text or '', label) for key, label in FIELD_LABELS.items()}

    missing = [FIELD_LABELS[key] for key, value in contents.items() if value is None]
    if missing:
        logger.warning(f"Completion missing fields: {', '.join(missing)}")

    temp_min, temp_max = parse_temperature_range(contents['temperature_range'])
    depth = contents['depth'].strip() if contents['depth'] else None

    return ParsedDetails(
        categories=tokenize(contents['categories']),
        season=tokenize(contents['season']),
        water_type=tokenize(contents['water_type']),
        weather_conditions=tokenize(contents['weather_conditions']),
        target_species=tokenize(contents['target_species']),
        temp_min=temp_min,
        temp_max=temp_max,
        depth=depth or None,
        missing_fields=missing,
    )
