"""Emission factor tables and their resolution per animal type."""

from emep_mms.emissions.factors import (
    CRUST_SENSITIVE_TYPES,
    DEFAULT_METHOD,
    REFERENCE_METHOD,
    EmissionFactors,
    Gas,
    ManureType,
    Stage,
    compile_emission_factors,
    resolve_digestate,
    resolve_n2o,
    resolve_nh3,
    resolve_other,
)

__all__ = [
    "Gas",
    "Stage",
    "ManureType",
    "EmissionFactors",
    "compile_emission_factors",
    "resolve_nh3",
    "resolve_n2o",
    "resolve_other",
    "resolve_digestate",
    "CRUST_SENSITIVE_TYPES",
    "DEFAULT_METHOD",
    "REFERENCE_METHOD",
]
