"""Tests for scenario input defaulting and validation."""

from dataclasses import FrozenInstanceError

import pytest

from emep_mms.core.errors import InvalidAnimalType, ValidationFailure
from emep_mms.livestock.user_input import (
    build_input,
    default_parameters,
    fill_defaults,
    load_input_yaml,
    normalize_params,
    validate,
    validation_message_string,
)


class TestBuildInput:
    """Tests for constructing input records."""

    def test_valid_record(self, dairy_params, store):
        record, valid, messages = build_input(dairy_params, store)
        assert valid
        assert messages == []
        assert record.is_valid
        assert record.animal_category == "dairy_cattle"
        assert record.fraction_tan == 0.6

    def test_record_is_immutable(self, dairy_params, store):
        record, _, _ = build_input(dairy_params, store)
        with pytest.raises(FrozenInstanceError):
            record.animal_number = 200

    def test_application_methods_are_read_only(self, dairy_params, store):
        dairy_params["application_methods"] = {"slurry": {"broadcast": 0.5}}
        record, _, _ = build_input(dairy_params, store)
        with pytest.raises(TypeError):
            record.application_methods["slurry"]["broadcast"] = 1.0
        assert record.method_shares("slurry") == {"broadcast": 0.5}
        assert record.method_shares("solid") is None

    def test_unresolvable_type_raises(self, dairy_params, store):
        dairy_params["animal_type"] = "unknown_animal"
        with pytest.raises(InvalidAnimalType):
            build_input(dairy_params, store)

    def test_missing_type_raises(self, dairy_params, store):
        del dairy_params["animal_type"]
        with pytest.raises(InvalidAnimalType):
            build_input(dairy_params, store)

    def test_subtype_resolves_category(self, dairy_params, store):
        dairy_params["animal_type"] = "dairy_cattle_tied"
        record, valid, _ = build_input(dairy_params, store)
        assert valid
        assert record.animal_type == "dairy_cattle_tied"
        assert record.animal_category == "dairy_cattle"

    def test_slurry_crust_defaults_false(self, dairy_params, store):
        del dairy_params["slurry_crust"]
        record, _, _ = build_input(dairy_params, store)
        assert record.slurry_crust is False

    def test_unknown_parameter_reported(self, dairy_params, store):
        dairy_params["colour"] = "brown"
        _, valid, messages = build_input(dairy_params, store)
        assert not valid
        assert messages == ["Unknown parameter: colour"]


class TestNormalizeParams:
    def test_aliases(self):
        normalized, unknown = normalize_params({"fraction_TAN": 0.6, "animal_no": 10, "f_man_usage": {}})
        assert normalized == {"fraction_tan": 0.6, "animal_number": 10, "application_methods": {}}
        assert unknown == []


class TestFillDefaults:
    """Tests for defaults from the excretion and straw tables."""

    def test_explicit_value_wins(self, store):
        filled = fill_defaults({"animal_type": "dairy_cattle", "excretion_coefficient": 120}, store, "dairy_cattle")
        assert filled["excretion_coefficient"] == 120
        assert filled["fraction_tan"] == 0.6

    def test_category_defaults_for_subtype(self, store):
        filled = fill_defaults({"animal_type": "dairy_cattle_tied"}, store, "dairy_cattle")
        assert filled["excretion_coefficient"] == 105
        assert filled["fraction_housing"] == 0.75
        assert filled["bedding_amount"] == 5

    def test_subtype_entry_then_category(self, store):
        """laying_hens has its own Nex but takes TAN share from birds."""
        filled = fill_defaults({"animal_type": "laying_hens"}, store, "birds")
        assert filled["excretion_coefficient"] == 0.75
        assert filled["fraction_tan"] == 0.7

    def test_plural_straw_key(self, store):
        filled = fill_defaults({"animal_type": "ewes"}, store, "sheep")
        assert filled["bedding_amount"] == 20

    def test_absent_everywhere_stays_none(self, store):
        filled = fill_defaults({"animal_type": "ewes"}, store, "sheep")
        assert filled["excretion_coefficient"] is None

    def test_does_not_mutate_input(self, store):
        params = {"animal_type": "dairy_cattle"}
        fill_defaults(params, store, "dairy_cattle")
        assert params == {"animal_type": "dairy_cattle"}


class TestValidate:
    """Tests for input validation rules."""

    def _record(self, params, store):
        record, _, _ = build_input(params, store)
        return record

    def test_all_violations_reported_at_once(self, dairy_params, store):
        dairy_params.update(
            animal_number=0,
            fraction_grazing=1.5,
            fraction_TAN=-0.1,
            fraction_manure_slurry=0.5,
            fraction_biogas_slurry=0.5,
        )
        _, valid, messages = build_input(dairy_params, store)
        assert not valid
        text = "\n".join(messages)
        assert "animal_number must be greater than 0" in text
        assert "fraction_grazing must be between 0 and 1" in text
        assert "fraction_tan must be between 0 and 1" in text
        assert "Sum of fraction_grazing, fraction_yards and fraction_housing must equal 1" in text
        assert "Sum of fraction_manure_slurry and fraction_manure_solid must equal 1" in text
        assert "Sum of fraction_storage_slurry and fraction_biogas_slurry must not exceed 1" in text

    def test_allocation_within_tolerance(self, dairy_params, store):
        dairy_params["fraction_housing"] = 0.7505
        _, valid, _ = build_input(dairy_params, store)
        assert valid

    def test_allocation_outside_tolerance(self, dairy_params, store):
        dairy_params["fraction_housing"] = 0.76
        _, valid, messages = build_input(dairy_params, store)
        assert not valid
        assert any("must equal 1" in m for m in messages)

    def test_solid_usage_limit(self, dairy_params, store):
        dairy_params["fraction_biogas_solid"] = 0.2
        _, valid, messages = build_input(dairy_params, store)
        assert not valid
        assert any("fraction_storage_solid and fraction_biogas_solid" in m for m in messages)

    def test_non_numeric_animal_number(self, dairy_params, store):
        dairy_params["animal_number"] = "many"
        _, _, messages = build_input(dairy_params, store)
        assert "animal_number must be numeric" in messages

    def test_missing_required_fraction(self, dairy_params, store):
        del dairy_params["fraction_storage_slurry"]
        _, _, messages = build_input(dairy_params, store)
        assert "fraction_storage_slurry must be provided" in messages

    def test_bedding_required_for_solid(self, dairy_params, store):
        dairy_params["animal_type"] = "laying_hens"
        dairy_params.pop("bedding_amount")
        dairy_params.pop("excretion_coefficient")
        _, _, messages = build_input(dairy_params, store)
        assert "bedding_amount must be provided when fraction_manure_solid > 0" in messages

    def test_bedding_not_required_without_solid(self, dairy_params, store):
        dairy_params.update(animal_type="laying_hens", fraction_manure_slurry=1.0, fraction_manure_solid=0.0)
        dairy_params.pop("bedding_amount")
        _, valid, _ = build_input(dairy_params, store)
        assert valid

    def test_application_method_shares(self, dairy_params, store):
        dairy_params["application_methods"] = {
            "slurry": {"broadcast": 0.7, "injection": 0.5},
            "solid": {"broadcast": -0.1},
            "liquid": {"broadcast": 1.0},
        }
        _, _, messages = build_input(dairy_params, store)
        assert any("application method shares for slurry must not exceed 1" in m for m in messages)
        assert "application_methods.solid.broadcast must be a number >= 0" in messages
        assert any("unknown manure type 'liquid'" in m for m in messages)

    def test_validate_is_pure(self, dairy_params, store):
        record = self._record(dairy_params, store)
        assert validate(record) == validate(record) == []


class TestValidationMessageString:
    def test_no_messages(self):
        assert validation_message_string([]) == "All input parameters are valid."

    def test_messages_joined(self):
        text = validation_message_string(["a is wrong", "b is wrong"])
        assert text == "- a is wrong\n- b is wrong"


class TestScenarioFiles:
    """Tests for YAML scenario loading."""

    def test_load_input_yaml(self, tmp_path, store):
        path = tmp_path / "scenario.yaml"
        path.write_text(
            "input:\n"
            "  animal_type: dairy_cattle_tied\n"
            "  animal_no: 100\n"
            "  fraction_manure_slurry: 1.0\n"
            "  fraction_manure_solid: 0.0\n"
            "  fraction_storage_slurry: 1.0\n"
            "  fraction_biogas_slurry: 0.0\n"
            "  fraction_storage_solid: 1.0\n"
            "  fraction_biogas_solid: 0.0\n"
            "  application_methods:\n"
            "    slurry:\n"
            "      trailing_hose: 1.0\n"
        )
        record, valid, messages = load_input_yaml(path, store)
        assert valid, messages
        assert record.animal_number == 100
        assert record.excretion_coefficient == 105
        assert record.method_shares("slurry") == {"trailing_hose": 1.0}

    def test_non_mapping_file(self, tmp_path, store):
        path = tmp_path / "scenario.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValidationFailure):
            load_input_yaml(path, store)

    def test_missing_file(self, tmp_path, store):
        with pytest.raises(ValidationFailure) as exc_info:
            load_input_yaml(tmp_path / "absent.yaml", store)
        assert "Cannot read scenario file" in exc_info.value.messages[0]

    def test_malformed_yaml(self, tmp_path, store):
        path = tmp_path / "scenario.yaml"
        path.write_text("animal_type: [dairy_cattle\n")
        with pytest.raises(ValidationFailure) as exc_info:
            load_input_yaml(path, store)
        assert "not valid YAML" in exc_info.value.messages[0]


class TestDefaultParameters:
    def test_bundled_dairy_defaults(self, bundled_store):
        defaults = default_parameters("dairy_cattle_tied", bundled_store)
        assert defaults["animal_category"] == "dairy_cattle"
        assert defaults["excretion_coefficient"] == 105
        assert defaults["bedding_amount"] == 1500

    def test_bundled_sheep_bedding(self, bundled_store):
        assert default_parameters("ewes", bundled_store)["bedding_amount"] == 20
