"""Core module - configuration, errors and unit conversion."""

from emep_mms.core import units
from emep_mms.core.config import (
    DEFAULT_F_BEDDING_N,
    DEFAULT_F_IMM,
    DEFAULT_F_MIN,
    DEFAULT_F_MIN_DIGESTER,
    GlobalParameters,
    Settings,
    resolve_global_parameters,
    settings,
)
from emep_mms.core.errors import (
    EFNotFound,
    InvalidAnimalType,
    InvalidInputError,
    MassBalanceViolation,
    MMSError,
    ResolutionWarning,
    TableFormatError,
    ValidationFailure,
)
from emep_mms.core.logging_config import setup_logging
from emep_mms.core.units import format_mass, kg_to_tonnes, n_to_compound

__all__ = [
    "units",
    "settings",
    "Settings",
    "setup_logging",
    # Global parameters
    "GlobalParameters",
    "resolve_global_parameters",
    "DEFAULT_F_IMM",
    "DEFAULT_F_MIN",
    "DEFAULT_F_MIN_DIGESTER",
    "DEFAULT_F_BEDDING_N",
    # Errors
    "MMSError",
    "InvalidAnimalType",
    "ValidationFailure",
    "InvalidInputError",
    "EFNotFound",
    "MassBalanceViolation",
    "ResolutionWarning",
    "TableFormatError",
    # Unit conversion helpers
    "n_to_compound",
    "kg_to_tonnes",
    "format_mass",
]
