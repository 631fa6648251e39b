"""
Tag Expansion

Broadens a record's normalized tags with hand-coded implication rules, e.g. a
fly that works in streams also works in rivers, a fly that works in heavy rain
also works in light rain.

Rules are applied in a single pass: each rule looks only at the tags the
record came in with. A tag added by one rule never triggers another rule in
the same pass, so {"Heavy Rain"} gains "Light Rain" and "Rain" but not
"Drizzle".

Every code path (single-fly edit, batch, scripts) goes through expand_tags.
"""

from typing import Iterable, List, Optional

from .vocabulary import Vocabulary, get_vocabulary


def expand_tags(axis: str, tags: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """
    Apply one pass of the expansion rules for an axis.

    Args:
        axis: 'water_types' or 'weather_conditions'
        tags: Normalized input tags
        vocabulary: Vocabulary holding the rules (defaults to configured one)

    Returns:
        Input tags (original order) followed by added tags in rule order

    Examples:
        >>> expand_tags('weather_conditions', ['Heavy Rain'])
        ['Heavy Rain', 'Light Rain', 'Rain']
        >>> expand_tags('water_types', ['Streams'])
        ['Streams', 'Rivers', 'Lakes']
    """
    vocabulary = vocabulary or get_vocabulary()
    original = list(tags)
    present = set(original)

    expanded = []
    for tag in original:
        if tag not in expanded:
            expanded.append(tag)

    for rule in vocabulary.expansion.get(axis, []):
        # Triggers are checked against the input only
        if not present.intersection(rule.if_any):
            continue
        for tag in rule.add:
            if tag not in expanded:
                expanded.append(tag)

    return expanded


def expand_water_types(tags: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    """Streams <-> Rivers, either implies Lakes. Salt Water is never added."""
    return expand_tags('water_types', tags, vocabulary)


def expand_weather_conditions(tags: Iterable[str], vocabulary: Optional[Vocabulary] = None) -> List[str]:
    return expand_tags('weather_conditions', tags, vocabulary)
