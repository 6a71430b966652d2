"""Manure N flow inventory.

This module provides:
- Stage formulas for excretion, housing, storage, digestate and application (stages.py)
- The stage-by-stage inventory engine and result types (engine.py)
- Command-line interface (cli.py)
"""

from emep_mms.inventory import stages
from emep_mms.inventory.engine import (
    InventoryEngine,
    InventoryResult,
    TotalFlows,
    run_inventory,
)
from emep_mms.inventory.stages import (
    direct_application,
    ex_housing_solid_n,
    ex_housing_solid_tan,
)

__all__ = [
    "stages",
    # engine
    "InventoryEngine",
    "InventoryResult",
    "TotalFlows",
    "run_inventory",
    # stages
    "direct_application",
    "ex_housing_solid_n",
    "ex_housing_solid_tan",
]
