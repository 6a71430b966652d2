"""Reference table access (Config Store).

The inventory only ever asks the store for ``get(table, *key_path)`` and gets
back the value or ``None``. Two stores are provided:

- YamlConfigStore: one YAML file per table, parsed lazily and cached
- DictConfigStore: in-memory tables, used for tests and embedding

Bundled tables live in ``emep_mms/data/extdata``. Each YAML file holds a
single root key, e.g. ``MMS_NH3_EF.yaml`` starts with ``MMS_NH3_EF:``.
"""

import logging
import threading
import warnings
from abc import ABC, abstractmethod
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from emep_mms.core.config import settings
from emep_mms.core.errors import TableFormatError

logger = logging.getLogger(__name__)

# =============================================================================
# Table Registry
# =============================================================================

CONVERSION_TABLE = "livestock_class_conversion"
EXCRETION_TABLE = "livestock_excretion"
STRAW_TABLE = "straw_litter"
NH3_TABLE = "MMS_NH3_EF"
N2O_TABLE = "storage_N2O_EF"
OTHERS_TABLE = "storage_OTHERS_EF"
DIGESTATE_TABLE = "digestate_NH3_EF"
GLOBAL_PARAMETERS_TABLE = "global_parameters"

# Table name -> YAML file name
TABLE_FILES = {
    CONVERSION_TABLE: "livestock_class_conversion.yaml",
    EXCRETION_TABLE: "livestock_excretion.yaml",
    STRAW_TABLE: "straw_litter.yaml",
    NH3_TABLE: "MMS_NH3_EF.yaml",
    N2O_TABLE: "storage_N2O_EF.yaml",
    OTHERS_TABLE: "storage_OTHERS_EF.yaml",
    DIGESTATE_TABLE: "digestate_NH3_EF.yaml",
    GLOBAL_PARAMETERS_TABLE: "global_parameters.yaml",
}

# Root key inside the YAML document, where it differs from the table name
ROOT_KEYS = {
    CONVERSION_TABLE: "livestock_conversions",
    EXCRETION_TABLE: "livestock",
    STRAW_TABLE: "livestock_categories",
}

# Older table names still found in circulated data files
LEGACY_TABLE_NAMES = {
    DIGESTATE_TABLE: "digestate_NH#_EF",
}


def check_keys(document: Any, source: str, key_path: str = "") -> None:
    """Raise TableFormatError for any mapping key that is not a string.

    YAML 1.1 reads unquoted ``NO``, ``yes`` or ``on`` as booleans, which
    would make the entry unreachable by name.
    """
    if not isinstance(document, Mapping):
        return
    for key, value in document.items():
        if not isinstance(key, str):
            raise TableFormatError(source, key_path, key)
        check_keys(value, source, f"{key_path}.{key}" if key_path else key)


# =============================================================================
# Stores
# =============================================================================


class ConfigStore(ABC):
    """Read-only lookup of reference tables by name and key path."""

    @abstractmethod
    def _load_table(self, name: str) -> Any | None:
        """Return the raw table ``name``, or None if absent."""

    def table(self, name: str) -> Any | None:
        """Return a whole table, or None if the store does not have it."""
        data = self._load_table(name)
        if data is None and name in LEGACY_TABLE_NAMES:
            legacy = LEGACY_TABLE_NAMES[name]
            data = self._load_table(legacy)
            if data is not None:
                warnings.warn(
                    f"Table key {legacy!r} is deprecated, rename it to {name!r}",
                    DeprecationWarning,
                    stacklevel=3,
                )
        return data

    def get(self, name: str, *keys: str) -> Any | None:
        """Walk ``keys`` into table ``name``.

        Args:
            name: Table name (e.g. "MMS_NH3_EF")
            *keys: Nested keys to follow

        Returns:
            The value found, or None when the table or any key is missing
        """
        value = self.table(name)
        for key in keys:
            if not isinstance(value, Mapping) or key not in value:
                return None
            value = value[key]
        return value

    def has_table(self, name: str) -> bool:
        return self.table(name) is not None


class DictConfigStore(ConfigStore):
    """Config store over in-memory tables.

    Tables are given without their YAML root key::

        DictConfigStore({"MMS_NH3_EF": {"dairy_cattle": {...}}})
    """

    def __init__(self, tables: Mapping[str, Any]):
        self._tables = dict(tables)

    def _load_table(self, name: str) -> Any | None:
        return self._tables.get(name)

    def __repr__(self) -> str:
        return f"DictConfigStore(tables={sorted(self._tables)!r})"


class YamlConfigStore(ConfigStore):
    """Config store reading one YAML file per table from ``data_dir``."""

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else settings.data_dir
        self._documents: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _file_for(self, name: str) -> str:
        for table, legacy in LEGACY_TABLE_NAMES.items():
            if name == legacy:
                return TABLE_FILES[table]
        return TABLE_FILES.get(name, f"{name}.yaml")

    def _document(self, filename: str) -> Any:
        with self._lock:
            if filename not in self._documents:
                path = self.data_dir / filename
                if not path.exists():
                    logger.warning("Reference table not found: %s", path)
                    self._documents[filename] = None
                else:
                    logger.debug("Loading reference table %s", path)
                    with open(path, encoding="utf-8") as f:
                        document = yaml.safe_load(f)
                    check_keys(document, str(path))
                    self._documents[filename] = document
            return self._documents[filename]

    def _load_table(self, name: str) -> Any | None:
        document = self._document(self._file_for(name))
        if not isinstance(document, Mapping):
            return None
        return document.get(ROOT_KEYS.get(name, name))

    def __repr__(self) -> str:
        return f"YamlConfigStore(data_dir={str(self.data_dir)!r})"


@lru_cache
def default_store() -> YamlConfigStore:
    """Shared store over the configured data directory."""
    return YamlConfigStore(settings.data_dir)
