"""
Unit tests for the classification pipeline.
"""

import pytest

from src.completion import CompletionError
from src.flies.parser import ParsedDetails
from src.flies.pipeline import (
    classification_fields,
    classify_fly,
    enrich_fly,
    normalize_details,
    split_species,
)
from src.flies.records import FlyValidationError, build_fly
from tests.fakes import FakeCompleter


class RecordingUpdater:
    def __init__(self):
        self.updates = []

    def update(self, fly_id, fields):
        self.updates.append((fly_id, fields))


class TestNormalizeDetails:
    """Test mapping parsed tokens onto the vocabularies."""

    def test_multi_word_values_rejoined(self):
        parsed = ParsedDetails(
            categories=["Dry", "Fly"],
            water_type=["Salt", "Water"],
            weather_conditions=["Heavy", "Rain"],
        )
        result = normalize_details("desc", parsed)

        assert result.categories == ["Dry Fly"]
        assert result.water_type == ["Salt Water"]
        assert result.weather_conditions == ["Heavy Rain", "Light Rain", "Rain"]

    def test_swaps_reversed_temperatures(self):
        result = normalize_details("desc", ParsedDetails(temp_min=20, temp_max=10))
        assert (result.temp_min, result.temp_max) == (10, 20)

    def test_unrecognized_weather_dropped(self):
        result = normalize_details("desc", ParsedDetails(weather_conditions=["overcast", "windy"]))
        assert result.weather_conditions == []


class TestSplitSpecies:

    def test_split_on_commas(self):
        assert split_species(["Brown", "Trout,", "Bass"], "Brown Trout, Smallmouth Bass") == [
            "Brown Trout", "Smallmouth Bass"
        ]

    def test_no_separators_uses_tokens(self):
        assert split_species(["Trout"], "Trout") == ["Trout"]


class TestClassifyFly:

    def test_end_to_end_classification(self):
        completer = FakeCompleter()

        result = classify_fly("Adams", completer)

        assert len(completer.prompts) == 2
        assert "A classic dry fly." in completer.prompts[1]
        assert result.description == "A classic dry fly."
        assert result.categories == ["Dry Fly", "Terrestrial"]
        assert result.season == ["Spring", "Summer", "Fall"]
        assert result.water_type == ["Rivers", "Streams", "Lakes"]
        assert "Clear, Sunny" in result.weather_conditions
        assert "Mostly Clear" in result.weather_conditions
        assert "Drizzle" not in result.weather_conditions
        assert result.target_species == ["Brown Trout", "Rainbow Trout"]
        assert (result.temp_min, result.temp_max) == (10.0, 18.0)
        assert result.depth == "Surface"

    def test_garbled_answer_uses_fallbacks(self):
        result = classify_fly("Adams", FakeCompleter(details="No idea."))

        assert result.categories == []
        assert (result.temp_min, result.temp_max) == (0.0, 30.0)
        assert result.depth is None
        assert "Season" in result.missing_fields

    def test_species_read_from_labelled_line(self):
        """Multi-word species survive when the answer lists them with separators."""
        details = "Categories: Streamer\nTarget Species: Smallmouth Bass; Largemouth Bass"

        result = classify_fly("Clouser Minnow", FakeCompleter(details=details))

        assert result.target_species == ["Smallmouth Bass", "Largemouth Bass"]

    def test_missing_species_line(self):
        result = classify_fly("Clouser Minnow", FakeCompleter(details="Categories: Streamer"))
        assert result.target_species == []

    def test_completion_error_propagates(self):
        with pytest.raises(CompletionError):
            classify_fly("Adams", FakeCompleter(fail_for=["Adams"]))


class TestEnrichFly:

    def test_writes_by_id_with_default_season_range(self):
        fly = build_fly(id="fly-1", name="Adams")
        updater = RecordingUpdater()

        enrich_fly(fly, FakeCompleter(), updater)

        fly_id, fields = updater.updates[0]
        assert fly_id == "fly-1"
        assert (fields["season_start"], fields["season_end"]) == (3, 9)
        assert "missing_fields" not in fields

    def test_keeps_existing_season_range(self):
        fly = build_fly(id="fly-1", name="Adams", season_start=11, season_end=2)
        updater = RecordingUpdater()

        enrich_fly(fly, FakeCompleter(), updater)

        assert updater.updates[0][1]["season_start"] == 11

    def test_failure_writes_nothing(self):
        updater = RecordingUpdater()
        with pytest.raises(CompletionError):
            enrich_fly(build_fly(id="fly-1", name="Adams"), FakeCompleter(fail_for=["Adams"]), updater)
        assert updater.updates == []


def test_classification_fields_validates_merged_record():
    fly = build_fly(id="fly-1", name="Adams")
    classification = classify_fly("Adams", FakeCompleter())
    bad = classification.model_copy(update={"depth": "Bottom"})

    with pytest.raises(FlyValidationError):
        classification_fields(fly, bad)
