"""Unit conversion utilities using pint.

All inventory flows are stored as kg of nitrogen per year:
- NH3-N, N2O-N, NO-N and N2-N are nitrogen masses, not compound masses
- TAN and total N are nitrogen masses

Reporting conversions:
- N-basis to compound mass uses molar mass ratios (NH3 17/14, N2O 44/28, NO 30/14)
- kg to tonnes for summary output
"""

import pint

# Create a unit registry (lazily initialized)
_ureg: pint.UnitRegistry | None = None

# Molar masses (g/mol) rounded as in the inventory methodology
MOLAR_MASS = {
    "N": 14,
    "NH3": 17,
    "N2O": 44,
    "NO": 30,
    "N2": 28,
}

# Nitrogen atoms per molecule
N_ATOMS = {
    "NH3": 1,
    "N2O": 2,
    "NO": 1,
    "N2": 2,
}


def get_ureg() -> pint.UnitRegistry:
    """Get the pint unit registry (lazily initialized)."""
    global _ureg
    if _ureg is None:
        _ureg = pint.UnitRegistry()
    return _ureg


# =============================================================================
# Nitrogen to Compound Mass
# =============================================================================


def compound_factor(gas: str) -> float:
    """Mass of compound per unit mass of its nitrogen.

    Args:
        gas: Compound formula ("NH3", "N2O", "NO" or "N2")

    Returns:
        Dimensionless conversion factor, e.g. 17/14 for NH3
    """
    if gas not in N_ATOMS:
        raise ValueError(f"No molar mass for gas {gas!r}")
    ureg = get_ureg()
    compound = ureg.Quantity(MOLAR_MASS[gas], "g/mol")
    nitrogen = ureg.Quantity(MOLAR_MASS["N"] * N_ATOMS[gas], "g/mol")
    return (compound / nitrogen).to("dimensionless").magnitude


def n_to_compound(value_kg_n: float, gas: str) -> float:
    """Convert a nitrogen-basis emission to compound mass.

    Args:
        value_kg_n: Emission in kg N (e.g. kg NH3-N)
        gas: Compound formula

    Returns:
        Emission in kg of the compound (e.g. kg NH3)
    """
    ureg = get_ureg()
    quantity = ureg.Quantity(value_kg_n, "kg") * compound_factor(gas)
    return quantity.to("kg").magnitude


# =============================================================================
# Reporting
# =============================================================================


def kg_to_tonnes(value_kg: float) -> float:
    """Convert kilograms to metric tonnes."""
    ureg = get_ureg()
    return ureg.Quantity(value_kg, "kg").to("metric_ton").magnitude


def format_mass(value_kg: float, decimals: int = 1) -> str:
    """Format a mass for display, switching to tonnes above 10 t.

    Args:
        value_kg: Mass in kg
        decimals: Number of decimal places

    Returns:
        Formatted string like "525.0 kg" or "10.50 t"
    """
    if abs(value_kg) >= 10_000:
        return f"{kg_to_tonnes(value_kg):,.2f} t"
    return f"{value_kg:,.{decimals}f} kg"
