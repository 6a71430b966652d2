"""Tests for animal type resolution."""

import warnings

import pytest

from emep_mms.core.errors import InvalidAnimalType, ResolutionWarning
from emep_mms.livestock.types import (
    alternate_keys,
    animal_candidates,
    guess_main_animal_type,
    lookup_animal_entry,
    resolve_animal_type,
    subtypes_of,
)

CONVERSIONS = {
    "dairy_cattle": ["dairy_cattle_tied", "dairy_cattle"],
    "birds": ["laying_hens", "broilers"],
    "sheeps": ["ewes"],
}


class TestResolveAnimalType:
    """Tests for mapping subtypes to categories."""

    def test_subtype_maps_to_category(self):
        assert resolve_animal_type("dairy_cattle_tied", CONVERSIONS) == "dairy_cattle"
        assert resolve_animal_type("laying_hens", CONVERSIONS) == "birds"

    def test_category_returned_unchanged(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert resolve_animal_type("birds", CONVERSIONS) == "birds"

    def test_plural_alternate_key(self):
        """'sheep' resolves against a table that stores 'sheeps'."""
        assert resolve_animal_type("sheep", CONVERSIONS) == "sheeps"

    def test_unknown_warns_in_lookup_mode(self):
        with pytest.warns(ResolutionWarning, match="unknown_animal"):
            assert resolve_animal_type("unknown_animal", CONVERSIONS) == "unknown_animal"

    def test_unknown_raises_in_strict_mode(self):
        with pytest.raises(InvalidAnimalType) as exc_info:
            resolve_animal_type("unknown_animal", CONVERSIONS, strict=True)
        assert exc_info.value.animal_type == "unknown_animal"
        assert "dairy_cattle" in exc_info.value.known

    @pytest.mark.parametrize("bad", [None, "", "   ", 42, ["dairy_cattle"]])
    def test_non_string_always_raises(self, bad):
        with pytest.raises(InvalidAnimalType):
            resolve_animal_type(bad, CONVERSIONS)

    def test_missing_conversion_table(self):
        with pytest.warns(ResolutionWarning):
            assert resolve_animal_type("pigs", None) == "pigs"

    def test_single_subtype_is_not_substring_matched(self):
        conversions = {"sows": "sows_with_piglets", "pigs": ["fattening_pigs"]}
        assert resolve_animal_type("pig", conversions, strict=True) == "pigs"
        assert resolve_animal_type("sows_with_piglets", conversions, strict=True) == "sows"


class TestSubtypesOf:
    def test_list(self):
        assert subtypes_of(["ewes", "rams"]) == ["ewes", "rams"]

    def test_scalar(self):
        assert subtypes_of("sows_with_piglets") == ["sows_with_piglets"]

    def test_empty(self):
        assert subtypes_of(None) == []


class TestAlternateKeys:
    def test_singular_to_plural(self):
        assert alternate_keys("sheep") == ["sheeps"]

    def test_plural_to_singular(self):
        assert alternate_keys("goats") == ["goat"]


class TestGuessMainAnimalType:
    """Tests for the substring heuristic."""

    def test_cattle(self):
        assert guess_main_animal_type("organic_dairy_cows") == "cattle"
        assert guess_main_animal_type("beef_cattle_extensive") == "cattle"

    def test_pigs(self):
        assert guess_main_animal_type("free_range_pigs") == "pigs"

    def test_poultry(self):
        assert guess_main_animal_type("organic_laying_hens") == "birds"
        assert guess_main_animal_type("Turkey") == "birds"

    def test_no_match(self):
        assert guess_main_animal_type("alpaca") is None


class TestLookupAnimalEntry:
    """Tests for table lookup with category and plural fallback."""

    def test_candidate_order(self):
        candidates = list(animal_candidates("laying_hens", "birds"))
        assert candidates == ["laying_hens", "laying_hen", "birds", "bird"]

    def test_exact_entry_preferred(self):
        table = {"laying_hens": 1, "birds": 2}
        assert lookup_animal_entry(table, "laying_hens", "birds") == 1

    def test_category_fallback(self):
        assert lookup_animal_entry({"birds": 2}, "laying_hens", "birds") == 2

    def test_plural_fallback(self):
        assert lookup_animal_entry({"sheeps": 3}, "ewes", "sheep") == 3

    def test_heuristic_only_when_requested(self):
        table = {"cattle": 4}
        assert lookup_animal_entry(table, "organic_dairy_cows", "organic_dairy_cows") is None
        assert lookup_animal_entry(table, "organic_dairy_cows", "organic_dairy_cows", heuristic=True) == 4

    def test_empty_table(self):
        assert lookup_animal_entry(None, "pigs") is None
