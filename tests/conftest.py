"""Shared test fixtures."""

import sys
from pathlib import Path

import pytest

# Add src/ to path so tests can import emep_mms
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from emep_mms.core.config import BUNDLED_DATA_DIR, GlobalParameters  # noqa: E402
from emep_mms.data.tables import DictConfigStore, YamlConfigStore  # noqa: E402


@pytest.fixture
def tables():
    """Small reference tables with round emission factors."""
    return {
        "livestock_class_conversion": {
            "dairy_cattle": ["dairy_cattle_tied", "dairy_cattle"],
            "cattle": ["beef_cattle"],
            "birds": ["laying_hens", "broilers"],
            "sheep": ["ewes"],
        },
        "livestock_excretion": {
            "dairy_cattle": {
                "Nex_kg_head": 105,
                "TAN_proportion": 0.6,
                "fraction_grazing": 0.2,
                "fraction_yards": 0.05,
                "fraction_housing": 0.75,
            },
            "birds": {
                "Nex_kg_head": 0.8,
                "TAN_proportion": 0.7,
                "fraction_grazing": 0.0,
                "fraction_yards": 0.0,
                "fraction_housing": 1.0,
            },
            "laying_hens": {"Nex_kg_head": 0.75},
        },
        "straw_litter": {
            "dairy_cattle": {"straw_kg_per_AAP_per_year": 5},
            "sheeps": {"straw_kg_per_AAP_per_year": 20},
        },
        "MMS_NH3_EF": {
            "dairy_cattle": {
                "yards": 0.3,
                "grazing": 0.1,
                "slurry": {
                    "housing": 0.2,
                    "storage": 0.1,
                    "application": {"broadcast": 0.5, "trailing_hose": 0.3},
                },
                "solid": {
                    "housing": 0.1,
                    "storage": 0.2,
                    "application": 0.6,
                },
            },
        },
        "storage_N2O_EF": {
            "dairy_cattle": {
                "slurry_with_crust": {"EF": 0.01},
                "slurry_without_crust": {"EF": 0.0},
                "solid_manure_heaps": {"EF": 0.02},
            },
        },
        "storage_OTHERS_EF": {
            "slurry": {"NO": 0.001, "N2": 0.003},
            "solid": {"NO": 0.01, "N2": 0.1},
        },
        "digestate_NH3_EF": {"digestate": 0.05},
        "global_parameters": {"f_imm": 0.0067, "f_min": 0.1, "f_min_digester": 0.0067},
    }


@pytest.fixture
def store(tables):
    """In-memory config store over the small tables."""
    return DictConfigStore(tables)


@pytest.fixture
def bundled_store():
    """Config store over the reference tables shipped with the package."""
    return YamlConfigStore(BUNDLED_DATA_DIR)


@pytest.fixture
def parameters():
    """Default global parameters, independent of environment settings."""
    return GlobalParameters()


@pytest.fixture
def dairy_params():
    """Valid dairy scenario (100 cows, slurry and solid manure)."""
    return {
        "animal_type": "dairy_cattle",
        "animal_number": 100,
        "excretion_coefficient": 105,
        "fraction_grazing": 0.2,
        "fraction_yards": 0.05,
        "fraction_housing": 0.75,
        "fraction_TAN": 0.6,
        "fraction_manure_slurry": 0.7,
        "fraction_manure_solid": 0.3,
        "bedding_amount": 5,
        "fraction_storage_slurry": 0.8,
        "fraction_biogas_slurry": 0.1,
        "fraction_storage_solid": 1.0,
        "fraction_biogas_solid": 0.0,
        "slurry_crust": False,
    }
