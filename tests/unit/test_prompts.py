"""
Unit tests for the prompt builder.
"""

from src.flies.prompts import build_description_prompt, build_details_prompt
from src.flies.vocabulary import get_vocabulary


def test_description_prompt_names_the_fly():
    prompt = build_description_prompt("Royal Wulff")

    assert '"Royal Wulff"' in prompt
    assert "2-3 sentences" in prompt


class TestDetailsPrompt:

    def setup_method(self):
        self.prompt = build_details_prompt("Royal Wulff", "A bushy attractor dry fly.")

    def test_seeded_with_description(self):
        assert '"A bushy attractor dry fly."' in self.prompt
        assert self.prompt.startswith("Using this description of the Royal Wulff:")

    def test_asks_for_every_label(self):
        for label in ("Categories:", "Season:", "Water Types:", "Weather Conditions:",
                      "Target Species:", "Temperature Range:", "Fishing Depth:"):
            assert label in self.prompt

    def test_lists_vocabulary_values(self):
        vocabulary = get_vocabulary()

        assert ", ".join(vocabulary.weather_conditions) in self.prompt
        assert ", ".join(vocabulary.water_types) in self.prompt
        assert "- Subsurface (for wet flies and shallow nymphs)" in self.prompt

    def test_asks_for_celsius(self):
        assert "Celsius" in self.prompt
