"""
Prompt Builder

Natural-language prompts for the completion service. The first prompt asks
for a short description of a fly pattern; the second is seeded with that
description and asks for labelled classification fields, each listing the
values it may use.
"""

from typing import Optional

from .vocabulary import Vocabulary, get_vocabulary

DEPTH_HINTS = {
    'Surface': 'for dry flies and terrestrials',
    'Film': 'for emergers and spent flies',
    'Subsurface': 'for wet flies and shallow nymphs',
    'Mid-Column': 'for nymphs and streamers',
    'Deep': 'for heavy nymphs and deep streamers',
}


def build_description_prompt(fly_name: str) -> str:
    """Prompt for a 2-3 sentence description of the pattern."""
    return (
        f'Given the following fly fishing pattern: "{fly_name}", provide a detailed '
        f"description of the fly pattern, its history, and how it's typically tied "
        f"(2-3 sentences)."
    )


def build_details_prompt(fly_name: str, description: str, vocabulary: Optional[Vocabulary] = None) -> str:
    """
    Prompt for the labelled classification fields.

    Args:
        fly_name: Name of the fly pattern
        description: Description returned for the first prompt
        vocabulary: Allowed values to embed (defaults to configured one)

    Returns:
        Prompt text. The answer is expected one field per line, e.g.
        "Water Types: Rivers, Streams".
    """
    vocabulary = vocabulary or get_vocabulary()

    categories = ', '.join(vocabulary.categories)
    seasons = ', '.join(vocabulary.seasons)
    water_types = ', '.join(vocabulary.water_types)
    weather = ', '.join(vocabulary.weather_conditions)
    depths = '\n'.join(
        f"- {depth} ({DEPTH_HINTS[depth]})" if depth in DEPTH_HINTS else f"- {depth}"
        for depth in vocabulary.depths
    )

    return f"""Using this description of the {fly_name}:
"{description}"

Provide specific details in this exact format:
Categories: [list all applicable fly types from these options: {categories}]
Season: [list applicable seasons from ONLY these options: {seasons}. Most flies work in multiple seasons, so list all that apply]
Water Types: [IMPORTANT: Most flies work effectively across multiple water types. List ALL water types where this fly pattern could reasonably be effective from these options: {water_types}. For example:
- If it works in Streams, it usually works in Rivers too
- Most freshwater patterns work in both Rivers and Lakes
- Only include Salt Water for specific saltwater patterns
Please be comprehensive in listing all applicable water types.]
Weather Conditions: [IMPORTANT: List at least 3-4 weather conditions when this fly is most effective. Most flies work in various weather conditions. Use ONLY these exact terms and be comprehensive: {weather}. For example:
- If it works in Cloudy conditions, it likely works in Mostly Cloudy and Partly Cloudy too
- Many dry flies work well in Clear, Sunny, and Partly Cloudy conditions
- Many nymphs work across multiple weather conditions including cloudy and light rain]
Target Species: [list specific fish species this fly is designed to catch]
Temperature Range: [specific min-max in Celsius when this fly is most effective]
Fishing Depth: [specify one of these options:
{depths}]"""
