"""Nitrogen emissions inventory for livestock manure management.

This package follows the nitrogen excreted by a herd through grazing,
yards, housing, storage, anaerobic digestion and field application, and
reports the NH3, N2O, NO and N2 lost along the way.

Subpackages:
- emep_mms.core: Settings, global parameters, errors and units
- emep_mms.data: Reference tables (Config Store)
- emep_mms.livestock: Animal type resolution and scenario input
- emep_mms.emissions: Emission factor resolution
- emep_mms.inventory: Stage formulas, inventory engine and CLI
"""

# Re-export common items for convenience
from emep_mms.core import (
    EFNotFound,
    GlobalParameters,
    InvalidAnimalType,
    MassBalanceViolation,
    settings,
)
from emep_mms.data import DictConfigStore, YamlConfigStore
from emep_mms.emissions import Gas, compile_emission_factors
from emep_mms.inventory import InventoryEngine, run_inventory
from emep_mms.livestock import InputRecord, build_input, resolve_animal_type

__all__ = [
    "settings",
    "GlobalParameters",
    "DictConfigStore",
    "YamlConfigStore",
    "InputRecord",
    "build_input",
    "resolve_animal_type",
    "Gas",
    "compile_emission_factors",
    "InventoryEngine",
    "run_inventory",
    "EFNotFound",
    "InvalidAnimalType",
    "MassBalanceViolation",
]

__version__ = "0.1.0"
