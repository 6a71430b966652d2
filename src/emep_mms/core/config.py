from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file sits next to pyproject.toml (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> emep_mms -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None

# Reference tables shipped with the package
BUNDLED_DATA_DIR = Path(__file__).parent.parent / "data" / "extdata"

# Methodology defaults (EMEP/EEA Guidebook, 3.B Manure management)
DEFAULT_F_IMM = 0.0067  # kg TAN immobilized per kg straw bedding
DEFAULT_F_MIN = 0.1  # fraction of organic N mineralized during slurry storage
DEFAULT_F_MIN_DIGESTER = 0.0067  # fraction of organic N mineralized in the digester
DEFAULT_F_BEDDING_N = 0.04  # kg N per kg straw bedding


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EMEP_MMS_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directory holding the YAML reference tables
    # Defaults to the tables bundled with the package
    data_dir: Path = BUNDLED_DATA_DIR

    # Global parameter overrides (take precedence over the global_parameters table)
    f_imm: float | None = None
    f_min: float | None = None
    f_min_digester: float | None = None
    f_bedding_n: float | None = None

    # Verify non-negative flows and allocation sums on every run
    consistency_check: bool = False

    # Log level used by the CLI
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"


settings = Settings()


@dataclass(frozen=True)
class GlobalParameters:
    """Process parameters shared by every animal type.

    Attributes:
        f_imm: TAN immobilized per kg of bedding straw
        f_min: Organic N mineralized to TAN during slurry storage
        f_min_digester: Organic N mineralized to TAN in the biogas digester
        f_bedding_n: N content of bedding straw (kg N / kg straw)
    """

    f_imm: float = DEFAULT_F_IMM
    f_min: float = DEFAULT_F_MIN
    f_min_digester: float = DEFAULT_F_MIN_DIGESTER
    f_bedding_n: float = DEFAULT_F_BEDDING_N

    def with_overrides(self, **overrides: float | None) -> "GlobalParameters":
        """Return a copy with every non-None override applied."""
        changes = {name: value for name, value in overrides.items() if value is not None}
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise TypeError(f"Unknown global parameter(s): {', '.join(sorted(unknown))}")
        return replace(self, **{name: float(value) for name, value in changes.items()})


def resolve_global_parameters(
    store: Any = None,
    overrides: dict[str, float | None] | None = None,
    config: Settings | None = None,
) -> GlobalParameters:
    """Resolve global parameters from defaults, table, environment and caller.

    Later sources win: built-in defaults, then the ``global_parameters``
    reference table, then ``EMEP_MMS_*`` settings, then ``overrides``.

    Args:
        store: Config store to read the ``global_parameters`` table from
        overrides: Explicit per-run values
        config: Settings instance (defaults to the module-level settings)

    Returns:
        Resolved GlobalParameters
    """
    config = config or settings
    params = GlobalParameters()

    if store is not None:
        table = store.get("global_parameters") or {}
        params = params.with_overrides(
            **{name: table.get(name) for name in ("f_imm", "f_min", "f_min_digester", "f_bedding_n")}
        )

    params = params.with_overrides(
        f_imm=config.f_imm,
        f_min=config.f_min,
        f_min_digester=config.f_min_digester,
        f_bedding_n=config.f_bedding_n,
    )

    if overrides:
        params = params.with_overrides(**overrides)
    return params
