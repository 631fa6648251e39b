"""
Unit tests for fly records and field-group patches.
"""

import pytest

from src.flies.records import (
    ClassificationPatch,
    DepthPatch,
    DescriptionPatch,
    FlyValidationError,
    SeasonRangePatch,
    TemperaturePatch,
    apply_patch,
    apply_patches,
    build_fly,
    patched_fields,
)


class TestBuildFly:
    """Test record validation."""

    def test_minimal_fly(self):
        fly = build_fly(name="  Adams ")
        assert fly.name == "Adams"
        assert fly.is_incomplete is True

    def test_blank_name_rejected(self):
        with pytest.raises(FlyValidationError):
            build_fly(name="   ")

    def test_min_above_max_rejected(self):
        """temp_min > temp_max is refused with a readable message."""
        with pytest.raises(FlyValidationError, match="cannot be greater"):
            build_fly(name="Adams", temp_min=20, temp_max=10)

    def test_equal_temperatures_allowed(self):
        assert build_fly(name="Adams", temp_min=12, temp_max=12).temp_min == 12.0

    def test_month_out_of_range(self):
        with pytest.raises(FlyValidationError, match="season_start"):
            build_fly(name="Adams", season_start=13)

    def test_unknown_depth(self):
        with pytest.raises(FlyValidationError, match="depth"):
            build_fly(name="Adams", depth="Bottom")

    def test_complete_fly(self):
        fly = build_fly(name="Adams", description="Dry fly", categories=["Dry Fly"], season=["Summer"])
        assert fly.is_incomplete is False

    def test_empty_lists_count_as_present(self):
        fly = build_fly(name="Adams", description="", categories=[], season=[])
        assert fly.is_incomplete is False

    def test_unknown_season_rejected(self):
        """Seasons, water types and weather are closed vocabularies."""
        with pytest.raises(FlyValidationError, match="season"):
            build_fly(name="Adams", season=["Summertime"])

    def test_unknown_water_type_rejected(self):
        with pytest.raises(FlyValidationError, match="water_type"):
            build_fly(name="Adams", water_type=["Rivers", "Ocean"])

    def test_unknown_weather_rejected(self):
        with pytest.raises(FlyValidationError, match="weather_conditions"):
            build_fly(name="Adams", weather_conditions=["sunny-ish"])

    def test_canonical_tags_accepted(self):
        fly = build_fly(
            name="Adams",
            season=["Fall"],
            water_type=["Salt Water"],
            weather_conditions=["Clear, Sunny", "Light Freezing Rain"],
        )
        assert fly.water_type == ["Salt Water"]

    def test_open_fields_not_restricted(self):
        fly = build_fly(name="Adams", categories=["Popper"], target_species=["Tarpon"])
        assert fly.categories == ["Popper"]


class TestApplyPatch:
    """Test field-group patches."""

    def setup_method(self):
        self.fly = build_fly(name="Adams", temp_min=8, temp_max=18)

    def test_patch_returns_new_record(self):
        patched = apply_patch(self.fly, TemperaturePatch(temp_max=22))

        assert patched.temp_max == 22.0
        assert self.fly.temp_max == 18.0

    def test_invalid_patch_rejected_immediately(self):
        """Raising min above the stored max fails on the patch itself."""
        with pytest.raises(FlyValidationError):
            apply_patch(self.fly, TemperaturePatch(temp_min=25))

    def test_only_set_fields_applied(self):
        patched = apply_patch(self.fly, ClassificationPatch(categories=["Nymph"]))
        assert patched.categories == ["Nymph"]
        assert patched.season is None

    def test_explicit_none_clears(self):
        patched = apply_patch(self.fly, DescriptionPatch(description=None))
        assert patched.description is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            DepthPatch(dept="Deep")

    def test_chain_stops_at_first_invalid(self):
        with pytest.raises(FlyValidationError):
            apply_patches(self.fly, [SeasonRangePatch(season_start=11, season_end=2), DepthPatch(depth="Bottom")])


def test_patched_fields_only_touched_columns():
    fly = build_fly(name="Adams", temp_min=8, temp_max=18)

    fields = patched_fields(fly, [TemperaturePatch(temp_min=5), DepthPatch(depth="Surface")])

    assert fields == {"depth": "Surface", "temp_min": 5.0}
