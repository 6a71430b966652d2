"""Scenario input: defaulting and validation.

An InputRecord describes one herd: how many animals, how much N they
excrete, where the excreta end up (grazing, yards, housing), how housed
manure splits into slurry and solid, and how each manure type is stored,
digested and spread.

Building a record is a three step pipeline of pure functions:

1. ``normalize_params`` - map legacy parameter names to field names
2. ``fill_defaults`` - take missing values from the excretion and straw tables
3. ``validate`` - collect every rule violation as a message

An unresolvable animal type raises InvalidAnimalType immediately. Any other
violation is only reported; the engine refuses to run a record with messages.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from emep_mms.core.errors import ValidationFailure
from emep_mms.data.tables import CONVERSION_TABLE, EXCRETION_TABLE, STRAW_TABLE, ConfigStore, default_store
from emep_mms.livestock.types import animal_candidates, resolve_animal_type

logger = logging.getLogger(__name__)

# Tolerance for fractions that must sum to exactly one
SUM_TOLERANCE = 1e-3

# Slack for fractions that must not exceed one (floating point noise only)
LIMIT_EPSILON = 1e-9

MANURE_TYPES = ("slurry", "solid")

ALLOCATION_FIELDS = ("fraction_grazing", "fraction_yards", "fraction_housing")
MANURE_FIELDS = ("fraction_manure_slurry", "fraction_manure_solid")
USAGE_FIELDS = {
    "slurry": ("fraction_storage_slurry", "fraction_biogas_slurry"),
    "solid": ("fraction_storage_solid", "fraction_biogas_solid"),
}
FRACTION_FIELDS = (
    *ALLOCATION_FIELDS,
    "fraction_tan",
    *MANURE_FIELDS,
    *USAGE_FIELDS["slurry"],
    *USAGE_FIELDS["solid"],
)

# Record field -> key in the livestock_excretion table
EXCRETION_DEFAULTS = {
    "excretion_coefficient": "Nex_kg_head",
    "fraction_tan": "TAN_proportion",
    "fraction_grazing": "fraction_grazing",
    "fraction_yards": "fraction_yards",
    "fraction_housing": "fraction_housing",
}

# Record field -> key in the straw_litter table
STRAW_DEFAULTS = {
    "bedding_amount": "straw_kg_per_AAP_per_year",
}

# Parameter names used by older scenario files
PARAM_ALIASES = {
    "fraction_TAN": "fraction_tan",
    "animal_no": "animal_number",
    "fraction_yard": "fraction_yards",
    "f_man_usage": "application_methods",
}


# =============================================================================
# Input Record
# =============================================================================


@dataclass(frozen=True)
class InputRecord:
    """Immutable scenario parameters for one herd.

    Fractions are shares of the upstream pool (0-1). ``application_methods``
    maps manure type ("slurry"/"solid") to method name -> share of the
    applied manure spread with that method.
    """

    animal_type: str
    animal_category: str
    animal_number: float | None = None
    excretion_coefficient: float | None = None
    fraction_grazing: float | None = None
    fraction_yards: float | None = None
    fraction_housing: float | None = None
    fraction_tan: float | None = None
    fraction_manure_slurry: float | None = None
    fraction_manure_solid: float | None = None
    bedding_amount: float | None = None
    fraction_storage_slurry: float | None = None
    fraction_biogas_slurry: float | None = None
    fraction_storage_solid: float | None = None
    fraction_biogas_solid: float | None = None
    slurry_crust: bool = False
    application_methods: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    validation_messages: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.validation_messages

    def fraction_manure(self, manure_type: str) -> float:
        return getattr(self, f"fraction_manure_{manure_type}")

    def usage_fractions(self, manure_type: str) -> tuple[float, float]:
        """(storage, biogas) fractions for a manure type."""
        storage_field, biogas_field = USAGE_FIELDS[manure_type]
        return getattr(self, storage_field), getattr(self, biogas_field)

    def method_shares(self, manure_type: str) -> dict[str, float] | None:
        """Application method shares for a manure type (None if not given)."""
        shares = self.application_methods.get(manure_type)
        return None if shares is None else dict(shares)

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view, suitable for JSON output."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["application_methods"] = {
            manure_type: dict(shares) for manure_type, shares in self.application_methods.items()
        }
        data["validation_messages"] = list(self.validation_messages)
        return data


# =============================================================================
# Defaults and Validation
# =============================================================================


def normalize_params(params: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Rename aliased parameters and separate out unknown ones.

    Returns:
        Tuple of (normalized params, unknown parameter names)
    """
    known = {f.name for f in fields(InputRecord)} - {"animal_category", "validation_messages"}
    normalized: dict[str, Any] = {}
    unknown: list[str] = []
    for key, value in params.items():
        name = PARAM_ALIASES.get(key, key)
        if name in known:
            normalized[name] = value
        else:
            unknown.append(key)
    return normalized, unknown


def _table_default(table: Mapping[str, Any] | None, key: str, animal_type: str, category: str) -> Any | None:
    if not table:
        return None
    for candidate in animal_candidates(animal_type, category):
        entry = table.get(candidate)
        if isinstance(entry, Mapping) and entry.get(key) is not None:
            return entry[key]
    return None


def fill_defaults(params: Mapping[str, Any], store: ConfigStore, category: str) -> dict[str, Any]:
    """Fill missing numeric parameters from the reference tables.

    Each field takes the first value found among: the explicit parameter,
    the table entry for ``animal_type``, the entry for ``category``. Fields
    with no value anywhere stay None.

    Args:
        params: Normalized parameters (must include animal_type)
        store: Config store holding the excretion and straw tables
        category: Canonical category of the animal type

    Returns:
        New dict with defaults applied
    """
    filled = dict(params)
    animal_type = filled["animal_type"]
    for table_name, mapping in ((EXCRETION_TABLE, EXCRETION_DEFAULTS), (STRAW_TABLE, STRAW_DEFAULTS)):
        table = store.table(table_name)
        for field_name, key in mapping.items():
            if filled.get(field_name) is not None:
                continue
            value = _table_default(table, key, animal_type, category)
            if value is not None:
                logger.debug("Default %s=%s for %s from %s", field_name, value, animal_type, table_name)
            filled[field_name] = value
    return filled


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _validate_methods(application_methods: Any) -> list[str]:
    if not isinstance(application_methods, Mapping):
        return ["application_methods must map manure type to method shares"]

    messages = []
    for manure_type, shares in application_methods.items():
        if manure_type not in MANURE_TYPES:
            messages.append(f"application_methods: unknown manure type {manure_type!r} (use slurry or solid)")
            continue
        if not isinstance(shares, Mapping):
            messages.append(f"application_methods.{manure_type} must map method name to share")
            continue
        total = 0.0
        for method, share in shares.items():
            if not _is_number(share) or share < 0:
                messages.append(f"application_methods.{manure_type}.{method} must be a number >= 0")
            else:
                total += share
        if total > 1 + LIMIT_EPSILON:
            messages.append(f"Sum of application method shares for {manure_type} must not exceed 1 (got {total:.4g})")
    return messages


def validate(record: InputRecord) -> list[str]:
    """Check every input rule and report all violations.

    Rules are independent: a single call reports every broken rule.

    Returns:
        List of human-readable messages (empty when the record is valid)
    """
    messages: list[str] = []

    # Herd size and excretion
    for name in ("animal_number", "excretion_coefficient"):
        value = getattr(record, name)
        if value is None:
            messages.append(f"{name} must be provided")
        elif not _is_number(value):
            messages.append(f"{name} must be numeric")
        elif value <= 0:
            messages.append(f"{name} must be greater than 0")

    # Individual fractions
    for name in FRACTION_FIELDS:
        value = getattr(record, name)
        if value is None:
            messages.append(f"{name} must be provided")
        elif not _is_number(value):
            messages.append(f"{name} must be numeric")
        elif not 0 <= value <= 1:
            messages.append(f"{name} must be between 0 and 1 (got {value})")

    # Fractions that must add up to one
    for group, label in ((ALLOCATION_FIELDS, "fraction_grazing, fraction_yards and fraction_housing"),
                         (MANURE_FIELDS, "fraction_manure_slurry and fraction_manure_solid")):
        values = [getattr(record, name) for name in group]
        if all(_is_number(v) for v in values):
            total = sum(values)
            if abs(total - 1) > SUM_TOLERANCE:
                messages.append(f"Sum of {label} must equal 1 (got {total:.4g})")

    # Storage and biogas draw from the same pool
    for manure_type, (storage_field, biogas_field) in USAGE_FIELDS.items():
        storage, biogas = getattr(record, storage_field), getattr(record, biogas_field)
        if _is_number(storage) and _is_number(biogas) and storage + biogas > 1 + LIMIT_EPSILON:
            messages.append(f"Sum of {storage_field} and {biogas_field} must not exceed 1 (got {storage + biogas:.4g})")

    # Bedding is needed whenever solid manure is produced
    if _is_number(record.fraction_manure_solid) and record.fraction_manure_solid > 0:
        if record.bedding_amount is None:
            messages.append("bedding_amount must be provided when fraction_manure_solid > 0")
        elif not _is_number(record.bedding_amount) or record.bedding_amount < 0:
            messages.append("bedding_amount must be a number >= 0")

    if not isinstance(record.slurry_crust, bool):
        messages.append("slurry_crust must be true or false")

    messages.extend(_validate_methods(record.application_methods))
    return messages


def validation_message_string(messages: list[str] | tuple[str, ...]) -> str:
    """Join validation messages into a readable block."""
    if not messages:
        return "All input parameters are valid."
    return "\n".join(f"- {message}" for message in messages)


# =============================================================================
# Construction
# =============================================================================


def _freeze_methods(value: Any) -> Any:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        return value
    return MappingProxyType({
        manure_type: MappingProxyType(dict(shares)) if isinstance(shares, Mapping) else shares
        for manure_type, shares in value.items()
    })


def build_input(
    params: Mapping[str, Any],
    store: ConfigStore | None = None,
) -> tuple[InputRecord, bool, list[str]]:
    """Build a defaulted and validated InputRecord.

    Args:
        params: Scenario parameters (aliases such as ``fraction_TAN`` accepted)
        store: Config store for conversions and defaults (bundled tables by default)

    Returns:
        Tuple of (record, is_valid, messages)

    Raises:
        InvalidAnimalType: If animal_type is missing or not a known category/subtype
    """
    store = store or default_store()
    normalized, unknown = normalize_params(params)

    category = resolve_animal_type(normalized.get("animal_type"), store.table(CONVERSION_TABLE), strict=True)
    filled = fill_defaults(normalized, store, category)
    filled["application_methods"] = _freeze_methods(filled.get("application_methods"))
    if filled.get("slurry_crust") is None:
        filled["slurry_crust"] = False

    record = InputRecord(animal_category=category, **filled)
    messages = [f"Unknown parameter: {name}" for name in unknown]
    messages.extend(validate(record))
    record = replace(record, validation_messages=tuple(messages))

    if messages:
        logger.info("Input for %s has %d validation message(s)", record.animal_type, len(messages))
    return record, not messages, messages


def read_scenario(path: Path | str) -> dict[str, Any]:
    """Read scenario parameters from a YAML file.

    The file holds a mapping of parameters, optionally nested under an
    ``input`` key.

    Raises:
        ValidationFailure: If the file cannot be read, is not valid YAML or
            does not hold a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ValidationFailure([f"Cannot read scenario file {path}: {e.strerror or e}"]) from e
    except yaml.YAMLError as e:
        raise ValidationFailure([f"Scenario file {path} is not valid YAML: {e}"]) from e
    if isinstance(data, Mapping) and isinstance(data.get("input"), Mapping):
        data = data["input"]
    if not isinstance(data, Mapping):
        raise ValidationFailure([f"Scenario file {path} must contain a mapping of parameters"])
    return dict(data)


def load_input_yaml(
    path: Path | str,
    store: ConfigStore | None = None,
) -> tuple[InputRecord, bool, list[str]]:
    """Build an InputRecord from a YAML scenario file."""
    return build_input(read_scenario(path), store)


def default_parameters(animal_type: str, store: ConfigStore | None = None) -> dict[str, Any]:
    """Table defaults that would apply to an animal type."""
    store = store or default_store()
    category = resolve_animal_type(animal_type, store.table(CONVERSION_TABLE), strict=True)
    filled = fill_defaults({"animal_type": animal_type}, store, category)
    filled["animal_category"] = category
    return {name: value for name, value in filled.items() if value is not None}
