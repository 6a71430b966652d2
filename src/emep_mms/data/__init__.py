"""Reference tables: emission factors, excretion and bedding defaults."""

from emep_mms.data.tables import (
    CONVERSION_TABLE,
    DIGESTATE_TABLE,
    EXCRETION_TABLE,
    GLOBAL_PARAMETERS_TABLE,
    N2O_TABLE,
    NH3_TABLE,
    OTHERS_TABLE,
    STRAW_TABLE,
    ConfigStore,
    DictConfigStore,
    YamlConfigStore,
    default_store,
)

__all__ = [
    "ConfigStore",
    "DictConfigStore",
    "YamlConfigStore",
    "default_store",
    # Table names
    "CONVERSION_TABLE",
    "EXCRETION_TABLE",
    "STRAW_TABLE",
    "NH3_TABLE",
    "N2O_TABLE",
    "OTHERS_TABLE",
    "DIGESTATE_TABLE",
    "GLOBAL_PARAMETERS_TABLE",
]
