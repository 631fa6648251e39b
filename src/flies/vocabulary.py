"""
Controlled Vocabulary Mapper

Snaps free-text tokens coming back from the completion service onto the
controlled vocabularies the app filters on (weather, seasons, water types,
fishing depth).

Design Principles:
- Config-driven (vocabularies and heuristics live in config/vocabulary.yaml)
- Drop what can't be recognized rather than let noise into the catalog
- Deterministic: same tokens in, same canonical tags out
- Already-canonical input passes through unchanged

Mapping rules:
- Weather: exact match, then bare-word aliases ("Sunny"), then ordered
  substring heuristics, most specific first ("light freezing" before "freezing")
- Seasons: substring containment, with synonyms ("autumn" -> Fall)
- Water types: exact allow-list only
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

from src.common.settings import CONFIG_DIR


class ExpansionRule(BaseModel):
    """Add tags when any trigger tag is present."""

    if_any: List[str] = Field(..., min_length=1)
    add: List[str] = Field(..., min_length=1)


class Vocabulary(BaseModel):
    """Loaded vocabulary configuration."""

    seasons: List[str]
    season_synonyms: Dict[str, str] = Field(default_factory=dict)
    water_types: List[str]
    depths: List[str]
    categories: List[str]
    weather_conditions: List[str]
    weather_aliases: Dict[str, str] = Field(default_factory=dict)
    weather_heuristics: List[Tuple[str, str]]
    expansion: Dict[str, List[ExpansionRule]] = Field(default_factory=dict)


def load_vocabulary_config(path: Optional[Path] = None) -> Vocabulary:
    """
    Load vocabulary configuration from YAML file.

    Args:
        path: Config file (defaults to config/vocabulary.yaml)

    Returns:
        Validated Vocabulary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If a mapping target is not part of its vocabulary
    """
    config_path = path or CONFIG_DIR / "vocabulary.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Vocabulary config not found: {config_path}")

    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f)

    vocabulary = Vocabulary(**raw)
    _check_targets(vocabulary)
    return vocabulary


def _check_targets(vocabulary: Vocabulary) -> None:
    """Every alias, heuristic and expansion must land inside its vocabulary."""
    weather = set(vocabulary.weather_conditions)

    bad = [t for t in vocabulary.weather_aliases.values() if t not in weather]
    bad += [t for _, t in vocabulary.weather_heuristics if t not in weather]
    bad += [t for t in vocabulary.season_synonyms.values() if t not in vocabulary.seasons]

    axes = {
        'weather_conditions': weather,
        'water_types': set(vocabulary.water_types),
    }
    for axis, rules in vocabulary.expansion.items():
        if axis not in axes:
            raise ValueError(f"Unknown expansion axis: {axis}")
        for rule in rules:
            bad += [t for t in rule.if_any + rule.add if t not in axes[axis]]

    if bad:
        raise ValueError(f"Vocabulary config references unknown values: {sorted(set(bad))}")


@lru_cache(maxsize=1)
def get_vocabulary() -> Vocabulary:
    """Default vocabulary, loaded once."""
    return load_vocabulary_config()


def _unique(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def join_phrases(tokens: Iterable[str], phrases: Iterable[str], max_words: int = 3) -> List[str]:
    """
    Re-join word tokens that spell a multi-word vocabulary value.

    Word tokenization splits "Salt Water" into "Salt" and "Water". Runs of
    up to max_words tokens are matched greedily, longest first and case
    insensitively, against the phrases; matches come back in canonical form.
    Other tokens pass through untouched.

    Examples:
        >>> join_phrases(['Salt', 'water', 'Lakes'], ['Lakes', 'Salt Water'])
        ['Salt Water', 'Lakes']
    """
    tokens = list(tokens)
    canonical = {p.lower(): p for p in phrases if ' ' in p}

    joined = []
    i = 0
    while i < len(tokens):
        for n in range(min(max_words, len(tokens) - i), 1, -1):
            candidate = ' '.join(tokens[i:i + n]).lower()
            if candidate in canonical:
                joined.append(canonical[candidate])
                i += n
                break
        else:
            joined.append(tokens[i])
            i += 1
    return joined


def map_categories(tokens: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """Keep tokens naming a known fly category (case-insensitive), in canonical form."""
    vocabulary = vocabulary or get_vocabulary()
    canonical = {c.lower(): c for c in vocabulary.categories}
    return _unique(canonical[t.lower()] for t in tokens if t.lower() in canonical)


def map_weather_condition(token: str, vocabulary: Optional[Vocabulary] = None) -> Optional[str]:
    """
    Map a single weather token onto the canonical vocabulary.

    Args:
        token: Free-text token (quotes already stripped)
        vocabulary: Vocabulary to map against (defaults to configured one)

    Returns:
        Canonical weather condition, or None if unrecognized

    Examples:
        >>> map_weather_condition('Partly Cloudy')
        'Partly Cloudy'
        >>> map_weather_condition('Sunny')
        'Clear, Sunny'
        >>> map_weather_condition('overcast') is None
        True
    """
    vocabulary = vocabulary or get_vocabulary()

    if token in vocabulary.weather_conditions:
        return token

    normalized = token.strip().lower()
    if normalized in vocabulary.weather_aliases:
        return vocabulary.weather_aliases[normalized]

    for needle, canonical in vocabulary.weather_heuristics:
        if needle in normalized:
            return canonical

    return None


def map_weather_conditions(tokens: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """Map weather tokens, dropping unrecognized ones. Order of first hit is kept."""
    mapped = (map_weather_condition(t, vocabulary) for t in tokens)
    return _unique(m for m in mapped if m is not None)


def map_seasons(tokens: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """
    Map season tokens by substring containment.

    A single token can yield several seasons ("spring-summer").
    Output follows the vocabulary order.

    Examples:
        >>> map_seasons(['Autumn', 'early spring'])
        ['Spring', 'Fall']
    """
    vocabulary = vocabulary or get_vocabulary()

    found = set()
    for token in tokens:
        normalized = token.lower().strip()
        for season in vocabulary.seasons:
            if season.lower() in normalized:
                found.add(season)
        for synonym, season in vocabulary.season_synonyms.items():
            if synonym in normalized:
                found.add(season)

    return [s for s in vocabulary.seasons if s in found]


def filter_water_types(tokens: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """Keep only tokens that are exactly a canonical water type."""
    vocabulary = vocabulary or get_vocabulary()
    return _unique(t for t in tokens if t in vocabulary.water_types)


def map_depth(content: Optional[str], vocabulary: Optional[Vocabulary] = None) -> Optional[str]:
    """
    Pick the fishing depth named in a free-text answer.

    Longer names are checked first so "Subsurface" is not read as "Surface".
    """
    if not content:
        return None
    vocabulary = vocabulary or get_vocabulary()

    normalized = content.lower()
    for depth in sorted(vocabulary.depths, key=len, reverse=True):
        if depth.lower() in normalized:
            return depth
    return None


def vocabulary_summary(vocabulary: Optional[Vocabulary] = None) -> Dict[str, Any]:
    """Vocabularies as plain lists, for API metadata."""
    vocabulary = vocabulary or get_vocabulary()
    return {
        'seasons': list(vocabulary.seasons),
        'water_types': list(vocabulary.water_types),
        'depths': list(vocabulary.depths),
        'categories': list(vocabulary.categories),
        'weather_conditions': list(vocabulary.weather_conditions),
    }
