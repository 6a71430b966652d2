"""
Nitrogen flow formulas for each manure management stage.

All quantities are kg N per year. "TAN" is total ammoniacal nitrogen, the
part of excreted N that can volatilize as NH3; "N" is total nitrogen. The
functions are plain arithmetic over upstream flows and are chained by
the inventory engine in pathway order:

    excretion -> grazing | yards | housing -> slurry | solid
              -> storage | biogas | direct application -> field -> soil

References:
-----------
[1] EMEP/EEA air pollutant emission inventory guidebook 2019,
    3.B Manure management, Tier 2 methodology (steps 1-15).
"""

import logging
from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)

# Slack for usage fractions that must not exceed one
LIMIT_EPSILON = 1e-9


# -----------------------------------------------------------------------------
# Excretion and Allocation
# -----------------------------------------------------------------------------


def excretion_total(animal_number: float, excretion_coefficient: float) -> float:
    """Annual N excreted by the herd (kg N/year)."""
    return animal_number * excretion_coefficient


def allocate(total: float, fraction: float) -> float:
    """Share of a pool going to one pathway (grazing, yards or housing)."""
    if not 0 <= fraction <= 1:
        raise ValueError(f"Allocation fraction must be between 0 and 1, got {fraction}")
    return total * fraction


def tan_share(n: float, fraction_tan: float) -> float:
    """TAN part of an N pool."""
    return n * fraction_tan


# -----------------------------------------------------------------------------
# Grazing, Yards and Housing
# -----------------------------------------------------------------------------


def nh3_emission(tan: float, ef: float) -> float:
    """NH3-N emitted from a TAN pool (EF as proportion of TAN)."""
    return tan * ef


def housing_deposit(housing_value: float, fraction_manure: float) -> float:
    """Housing N or TAN deposited as one manure type (slurry or solid)."""
    return housing_value * fraction_manure


def ex_housing_solid_tan(
    housing_solid_tan: float,
    housing_solid_nh3: float,
    animal_no: float,
    f_man_solid: float,
    bedding_amount: float,
    f_imm: float,
) -> float:
    """TAN leaving the house in solid manure, after immobilization in bedding.

    Straw bedding immobilizes ``f_imm`` kg TAN per kg straw. The result is
    never negative.

    Args:
        housing_solid_tan: TAN deposited as solid manure
        housing_solid_nh3: NH3-N emitted from solid manure in housing
        animal_no: Number of animals
        f_man_solid: Fraction of housing manure handled as solid
        bedding_amount: Straw per animal per year (kg)
        f_imm: TAN immobilized per kg straw

    Returns:
        Solid manure TAN after bedding (kg N/year)
    """
    immobilized = animal_no * f_man_solid * bedding_amount * f_imm
    return max(0.0, housing_solid_tan - (housing_solid_nh3 + immobilized))


def ex_housing_solid_n(
    housing_solid_n: float,
    housing_solid_nh3: float,
    animal_no: float,
    f_man_solid: float,
    bedding_amount: float,
    f_bedding_n: float,
) -> float:
    """Total N leaving the house in solid manure, including straw N.

    Not clamped: straw adds organic N while housing NH3 is lost.
    """
    bedding_n = animal_no * bedding_amount * f_bedding_n * f_man_solid
    return housing_solid_n + bedding_n - housing_solid_nh3


# -----------------------------------------------------------------------------
# Storage and Biogas Inflow
# -----------------------------------------------------------------------------


def slurry_inflow(
    housing_slurry: float,
    housing_slurry_nh3: float,
    yards: float,
    yards_nh3: float,
    fraction: float,
) -> float:
    """Slurry N or TAN sent to storage (or to biogas).

    Yard excreta are collected with the slurry. Storage and biogas are
    parallel shares of the same post-emission pool.
    """
    return ((housing_slurry - housing_slurry_nh3) + (yards - yards_nh3)) * fraction


def solid_inflow(solid_after_bedding: float, fraction: float) -> float:
    """Solid manure N or TAN sent to storage (or to biogas)."""
    return solid_after_bedding * fraction


def mineralize(tan: float, n: float, f_min: float) -> float:
    """Slurry TAN after mineralization of organic N during storage."""
    return tan + (n - tan) * f_min


# -----------------------------------------------------------------------------
# Storage Emissions
# -----------------------------------------------------------------------------


def storage_emissions(tan: float, factors: Mapping[str, float]) -> dict[str, float]:
    """Storage emissions per gas from a TAN pool.

    Args:
        tan: TAN in storage (mineralized TAN for slurry)
        factors: Gas name -> EF (proportion of TAN)

    Returns:
        Dict of gas name -> kg N, plus "total"
    """
    emissions = {gas: tan * ef for gas, ef in factors.items()}
    emissions["total"] = sum(emissions.values())
    return emissions


# -----------------------------------------------------------------------------
# Digestate
# -----------------------------------------------------------------------------


def digestate_tan(biogas_tan: float, biogas_n: float, f_min_digester: float, ef_digestate: float) -> float:
    """TAN in digestate: biogas TAN plus digester mineralization, less NH3 loss."""
    return biogas_tan + f_min_digester * (biogas_n - biogas_tan) - ef_digestate * biogas_n


def digestate_n(biogas_n: float, ef_digestate: float) -> float:
    """N in digestate output."""
    return biogas_n * ef_digestate


def digestate_nh3(biogas_n: float, ef_digestate: float) -> float:
    """NH3-N lost from digestate."""
    return biogas_n * ef_digestate


# -----------------------------------------------------------------------------
# Field Application
# -----------------------------------------------------------------------------


def direct_application(outflow: float, usage_fractions: tuple[float, float]) -> float:
    """Manure spread directly, bypassing storage and biogas.

    Args:
        outflow: Storage outflow for the manure type
        usage_fractions: (storage, biogas) fractions

    Returns:
        Directly applied N or TAN; 0 when neither storage nor biogas is used

    Raises:
        ValueError: If the fractions sum to more than 1
    """
    used = sum(usage_fractions)
    if used > 1 + LIMIT_EPSILON:
        raise ValueError(f"Storage and biogas fractions sum to {used}, more than 1")
    if used == 0:
        logger.warning("Storage and biogas fractions are both 0, direct application set to 0")
        return 0.0
    return outflow * (1 - used) / used


def applied_amount(direct: float, stored: float, storage_emission: float, digestate: float = 0.0) -> float:
    """N or TAN reaching the field for one manure type."""
    return direct + stored + digestate - storage_emission


def application_by_method(
    tan_applied: float,
    shares: Mapping[str, float],
    ef_for: Callable[[str], float],
) -> dict[str, dict[str, float]]:
    """Split applied TAN across spreading methods.

    Args:
        tan_applied: TAN reaching the field
        shares: Method name -> share of the applied manure
        ef_for: Returns the NH3 factor for a method

    Returns:
        Method -> {share, ef, nh3_n, tan_after}; methods with zero share are skipped
    """
    methods = {}
    for method, share in shares.items():
        if share <= 0:
            continue
        ef = ef_for(method)
        methods[method] = {
            "share": share,
            "ef": ef,
            "nh3_n": tan_applied * share * ef,
            "tan_after": tan_applied * share * (1 - ef),
        }
    return methods


def net_to_soil(applied: float, emitted: float) -> float:
    """N or TAN left in the soil after emissions."""
    return applied - emitted
