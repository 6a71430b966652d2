"""
Emission factor resolution for the manure management chain.

Each gas has its own reference table with its own shape:

- NH3: animal type -> manure type -> stage (housing/storage/application),
  plus single "yards" and "grazing" values per animal type. Application
  factors may be given per spreading method.
- N2O: animal type -> slurry_with_crust / slurry_without_crust /
  solid_manure_heaps. Crust only matters for cattle and pigs.
- NO, N2: manure type -> gas, shared by all animal types.
- Digestate NH3: a single factor for all digested manure.

``compile_emission_factors`` turns these into one EmissionFactors table
keyed by (stage, gas, manure type). A factor that cannot be found is left
out of the table and raises EFNotFound when the engine asks for it.

References:
-----------
[1] EMEP/EEA air pollutant emission inventory guidebook 2019,
    3.B Manure management, Tables 3.9 (NH3) and 3.10 (N2O, NO, N2).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from emep_mms.core.errors import EFNotFound
from emep_mms.data.tables import CONVERSION_TABLE, DIGESTATE_TABLE, N2O_TABLE, NH3_TABLE, OTHERS_TABLE, ConfigStore
from emep_mms.livestock.types import lookup_animal_entry, resolve_animal_type

logger = logging.getLogger(__name__)

# Animal categories whose slurry N2O factor depends on a surface crust
CRUST_SENSITIVE_TYPES = frozenset({"cattle", "dairy_cattle", "pigs"})

# Method key used when a table gives one application factor for all methods
DEFAULT_METHOD = "default"

# Reference spreading method when no method shares are given
REFERENCE_METHOD = "broadcast"

N2O_SLURRY_WITH_CRUST = "slurry_with_crust"
N2O_SLURRY_WITHOUT_CRUST = "slurry_without_crust"
N2O_SOLID = "solid_manure_heaps"


class Gas(Enum):
    """Nitrogen gases tracked by the inventory."""

    NH3 = "NH3"
    N2O = "N2O"
    NO = "NO"
    N2 = "N2"


class Stage(Enum):
    """Manure management stages that emit."""

    GRAZING = "grazing"
    YARDS = "yards"
    HOUSING = "housing"
    STORAGE = "storage"
    DIGESTATE = "digestate"
    APPLICATION = "application"


class ManureType(Enum):
    SLURRY = "slurry"
    SOLID = "solid"


# Table key aliases per gas for the NO/N2 table
_OTHER_GAS_KEYS = {
    Gas.NO: ("NO", "NOx"),
    Gas.N2: ("N2",),
}


# =============================================================================
# Compiled Factors
# =============================================================================


@dataclass(frozen=True)
class EmissionFactors:
    """Resolved emission factors for one animal type and crust setting."""

    animal_type: str
    animal_category: str
    slurry_crust: bool
    factors: Mapping[tuple[Stage, Gas, ManureType | None], float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    application_factors: Mapping[ManureType, Mapping[str, float]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def get(self, stage: Stage, gas: Gas, manure_type: ManureType | None = None) -> float:
        """Look up a factor.

        Raises:
            EFNotFound: If the factor was not found in the reference tables
        """
        key = (stage, gas, manure_type)
        if key not in self.factors:
            raise EFNotFound(self.animal_type, stage.value, gas.value, manure_type.value if manure_type else None)
        return self.factors[key]

    def application(self, manure_type: ManureType, method: str) -> float:
        """NH3 factor for spreading ``manure_type`` with ``method``.

        Falls back to the method-independent factor when the table has one.
        """
        methods = self.application_factors.get(manure_type, {})
        if method in methods:
            return methods[method]
        if DEFAULT_METHOD in methods:
            logger.info("No %s factor for %s %s, using default", method, self.animal_type, manure_type.value)
            return methods[DEFAULT_METHOD]
        raise EFNotFound(self.animal_type, Stage.APPLICATION.value, Gas.NH3.value, manure_type.value, method)

    def reference_method(self, manure_type: ManureType) -> str:
        """Method used when a scenario gives no application method shares."""
        methods = self.application_factors.get(manure_type, {})
        if DEFAULT_METHOD in methods:
            return DEFAULT_METHOD
        if REFERENCE_METHOD in methods:
            return REFERENCE_METHOD
        raise EFNotFound(self.animal_type, Stage.APPLICATION.value, Gas.NH3.value, manure_type.value)

    def as_dict(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Nested stage -> gas -> manure type -> factor view."""
        nested: dict[str, dict[str, dict[str, Any]]] = {}
        for (stage, gas, manure_type), value in self.factors.items():
            manure_key = manure_type.value if manure_type else "all"
            nested.setdefault(stage.value, {}).setdefault(gas.value, {})[manure_key] = value
        for manure_type, methods in self.application_factors.items():
            nested.setdefault(Stage.APPLICATION.value, {}).setdefault(Gas.NH3.value, {})[manure_type.value] = dict(
                methods
            )
        return nested


# =============================================================================
# Per-Gas Resolvers
# =============================================================================


def _as_factor(value: Any) -> float | None:
    """Accept a bare number or an ``{EF: number}`` mapping."""
    if isinstance(value, Mapping):
        value = value.get("EF")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _animal_entry(store: ConfigStore, table: str, animal_type: str, category: str) -> Mapping[str, Any] | None:
    entry = lookup_animal_entry(store.table(table), animal_type, category, heuristic=True)
    return entry if isinstance(entry, Mapping) else None


def resolve_nh3(
    store: ConfigStore,
    animal_type: str,
    category: str,
    stage: Stage,
    manure_type: ManureType | None = None,
) -> float | dict[str, float]:
    """NH3-N factor for a stage (and manure type for housing/storage/application).

    Application factors are returned as method -> factor; a single table
    value is returned under the ``default`` method.
    """
    manure_key = manure_type.value if manure_type else None
    missing = EFNotFound(animal_type, stage.value, Gas.NH3.value, manure_key)
    entry = _animal_entry(store, NH3_TABLE, animal_type, category)
    if entry is None:
        raise missing

    if stage in (Stage.GRAZING, Stage.YARDS):
        value = _as_factor(entry.get(stage.value))
        if value is None:
            raise missing
        return value

    manure_entry = entry.get(manure_key) if manure_key else None
    if not isinstance(manure_entry, Mapping):
        raise missing
    raw = manure_entry.get(stage.value)

    if stage is Stage.APPLICATION and isinstance(raw, Mapping) and "EF" not in raw:
        methods = {method: _as_factor(value) for method, value in raw.items()}
        methods = {method: value for method, value in methods.items() if value is not None}
        if not methods:
            raise missing
        return methods

    value = _as_factor(raw)
    if value is None:
        raise missing
    if stage is Stage.APPLICATION:
        return {DEFAULT_METHOD: value}
    return value


def resolve_n2o(
    store: ConfigStore,
    animal_type: str,
    category: str,
    manure_type: ManureType,
    slurry_crust: bool,
) -> float:
    """N2O-N storage factor.

    Slurry from cattle and pigs uses the "with crust" factor when a crust is
    present and the table has one; every other case uses "without crust".
    Solid manure always uses the heaps factor.
    """
    missing = EFNotFound(animal_type, Stage.STORAGE.value, Gas.N2O.value, manure_type.value)
    entry = _animal_entry(store, N2O_TABLE, animal_type, category)
    if entry is None:
        raise missing

    if manure_type is ManureType.SOLID:
        value = _as_factor(entry.get(N2O_SOLID))
    else:
        value = None
        crust_sensitive = bool({animal_type, category} & CRUST_SENSITIVE_TYPES)
        if crust_sensitive and slurry_crust:
            value = _as_factor(entry.get(N2O_SLURRY_WITH_CRUST))
            if value is None:
                logger.info("No crust N2O factor for %s, using slurry without crust", animal_type)
        if value is None:
            value = _as_factor(entry.get(N2O_SLURRY_WITHOUT_CRUST))

    if value is None:
        raise missing
    return value


def resolve_other(store: ConfigStore, animal_type: str, gas: Gas, manure_type: ManureType) -> float:
    """NO-N or N2-N storage factor (same for all animal types)."""
    table = store.table(OTHERS_TABLE) or {}
    entry = table.get(manure_type.value)
    if not isinstance(entry, Mapping):
        entry = table.get("default")
    if isinstance(entry, Mapping):
        for key in _OTHER_GAS_KEYS[gas]:
            value = _as_factor(entry.get(key))
            if value is not None:
                return value
    raise EFNotFound(animal_type, Stage.STORAGE.value, gas.value, manure_type.value)


def resolve_digestate(store: ConfigStore, animal_type: str) -> float:
    """NH3-N factor for digestate, applied to all digested N."""
    table = store.table(DIGESTATE_TABLE)
    value = _as_factor(table)
    if value is None and isinstance(table, Mapping):
        for key in ("digestate", ManureType.SLURRY.value):
            value = _as_factor(table.get(key))
            if value is not None:
                break
    if value is None:
        raise EFNotFound(animal_type, Stage.DIGESTATE.value, Gas.NH3.value)
    return value


# =============================================================================
# Compilation
# =============================================================================


def compile_emission_factors(
    animal_type: str,
    slurry_crust: bool,
    store: ConfigStore,
    category: str | None = None,
) -> EmissionFactors:
    """Resolve every factor an inventory run can need.

    Args:
        animal_type: Animal type as given in the scenario
        slurry_crust: Whether stored slurry has a surface crust
        store: Config store with the emission factor tables
        category: Canonical category (resolved from the conversion table if omitted)

    Returns:
        EmissionFactors; factors missing from the tables are absent
    """
    if category is None:
        category = resolve_animal_type(animal_type, store.table(CONVERSION_TABLE))

    factors: dict[tuple[Stage, Gas, ManureType | None], float] = {}
    application: dict[ManureType, Mapping[str, float]] = {}

    def collect(key: tuple[Stage, Gas, ManureType | None], resolver, *args) -> None:
        try:
            factors[key] = resolver(*args)
        except EFNotFound as e:
            logger.debug("%s", e)

    for stage in (Stage.GRAZING, Stage.YARDS):
        collect((stage, Gas.NH3, None), resolve_nh3, store, animal_type, category, stage)

    for manure_type in ManureType:
        for stage in (Stage.HOUSING, Stage.STORAGE):
            collect((stage, Gas.NH3, manure_type), resolve_nh3, store, animal_type, category, stage, manure_type)
        collect(
            (Stage.STORAGE, Gas.N2O, manure_type),
            resolve_n2o, store, animal_type, category, manure_type, slurry_crust,
        )
        for gas in (Gas.NO, Gas.N2):
            collect((Stage.STORAGE, gas, manure_type), resolve_other, store, animal_type, gas, manure_type)
        try:
            application[manure_type] = MappingProxyType(
                resolve_nh3(store, animal_type, category, Stage.APPLICATION, manure_type)
            )
        except EFNotFound as e:
            logger.debug("%s", e)

    collect((Stage.DIGESTATE, Gas.NH3, None), resolve_digestate, store, animal_type)

    logger.debug("Compiled %d emission factors for %s (crust=%s)", len(factors), animal_type, slurry_crust)
    return EmissionFactors(
        animal_type=animal_type,
        animal_category=category,
        slurry_crust=slurry_crust,
        factors=MappingProxyType(factors),
        application_factors=MappingProxyType(application),
    )
