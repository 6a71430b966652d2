"""Livestock scenario input.

This module provides:
- Animal type resolution against the conversion table (types.py)
- Input record defaulting and validation (user_input.py)
"""

from emep_mms.livestock.types import (
    alternate_keys,
    animal_candidates,
    guess_main_animal_type,
    lookup_animal_entry,
    resolve_animal_type,
    subtypes_of,
)
from emep_mms.livestock.user_input import (
    MANURE_TYPES,
    InputRecord,
    build_input,
    default_parameters,
    fill_defaults,
    load_input_yaml,
    normalize_params,
    read_scenario,
    validate,
    validation_message_string,
)

__all__ = [
    # types
    "resolve_animal_type",
    "alternate_keys",
    "animal_candidates",
    "guess_main_animal_type",
    "lookup_animal_entry",
    "subtypes_of",
    # user_input
    "InputRecord",
    "MANURE_TYPES",
    "build_input",
    "default_parameters",
    "fill_defaults",
    "load_input_yaml",
    "normalize_params",
    "read_scenario",
    "validate",
    "validation_message_string",
]
