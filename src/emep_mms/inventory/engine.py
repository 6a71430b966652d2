"""Nitrogen mass-balance inventory for one herd.

The engine walks the manure pathway in a fixed order:

    Excretion -> Allocation -> Housing deposit -> Housing emission
    -> Bedding -> Storage -> Mineralization -> Storage emission
    -> Biogas / direct split -> Digestate -> Field application
    -> Net to soil -> Totals

Every stage computes new flows from upstream ones; nothing is updated in
place. Any error aborts the whole run. With consistency checking enabled,
a negative flow or allocations that do not add up to total excretion raise
MassBalanceViolation.
"""

import logging
import threading
from collections.abc import Mapping
from typing import TypedDict

from emep_mms.core.config import GlobalParameters, resolve_global_parameters, settings
from emep_mms.core.errors import InvalidInputError, MassBalanceViolation
from emep_mms.core.units import n_to_compound
from emep_mms.data.tables import ConfigStore, default_store
from emep_mms.emissions.factors import EmissionFactors, Gas, ManureType, Stage, compile_emission_factors
from emep_mms.inventory import stages
from emep_mms.livestock.user_input import InputRecord

logger = logging.getLogger(__name__)

# Negative flows above this are treated as rounding noise
NEGATIVE_TOLERANCE = 1e-9

# Relative tolerance for allocation sums
ALLOCATION_TOLERANCE = 1e-6

STORAGE_GASES = (Gas.NH3, Gas.N2O, Gas.NO, Gas.N2)

# =============================================================================
# Result Types
# =============================================================================


class ExcretionFlows(TypedDict):
    n: float
    tan: float
    grazing_n: float
    grazing_tan: float
    yards_n: float
    yards_tan: float
    housing_n: float
    housing_tan: float


class PathwayFlows(TypedDict):
    """Grazing or yard excreta and their NH3 loss."""

    n: float
    tan: float
    nh3_n: float
    net_n: float
    net_tan: float


class HousingManureFlows(TypedDict, total=False):
    n: float
    tan: float
    nh3_n: float
    # Solid manure only: what leaves the house after bedding
    n_after_bedding: float
    tan_after_bedding: float


class HousingFlows(TypedDict):
    slurry: HousingManureFlows
    solid: HousingManureFlows
    nh3_n: float


class StorageManureFlows(TypedDict):
    n: float
    tan: float
    tan_mineralized: float
    nh3_n: float
    n2o_n: float
    no_n: float
    n2_n: float
    total_n_loss: float
    tan_after: float
    n_after: float


class StorageFlows(TypedDict):
    slurry: StorageManureFlows
    solid: StorageManureFlows
    nh3_n: float
    n2o_n: float
    no_n: float
    n2_n: float


class ManureAmount(TypedDict):
    n: float
    tan: float


class BiogasFlows(TypedDict):
    slurry: ManureAmount
    solid: ManureAmount
    n: float
    tan: float


class DigestateFlows(TypedDict):
    n: float
    tan: float
    nh3_n: float


class DirectApplicationFlows(TypedDict):
    slurry: ManureAmount
    solid: ManureAmount


class MethodFlows(TypedDict):
    share: float
    ef: float
    nh3_n: float
    tan_after: float


class ApplicationManureFlows(TypedDict):
    n: float
    tan: float
    nh3_n: float
    tan_after: float
    net_n: float
    net_tan: float
    methods: dict[str, MethodFlows]


class ApplicationFlows(TypedDict):
    slurry: ApplicationManureFlows
    solid: ApplicationManureFlows
    nh3_n: float


class TotalFlows(TypedDict):
    """Emissions over all stages, as N and as compound mass."""

    nh3_n: float
    n2o_n: float
    no_n: float
    n2_n: float
    nh3: float
    n2o: float
    no: float


class InventoryResult(TypedDict):
    animal_type: str
    animal_category: str
    excretion: ExcretionFlows
    grazing: PathwayFlows
    yards: PathwayFlows
    housing: HousingFlows
    storage: StorageFlows
    biogas: BiogasFlows
    digestate: DigestateFlows
    direct_application: DirectApplicationFlows
    application: ApplicationFlows
    total: TotalFlows


# =============================================================================
# Engine
# =============================================================================


class InventoryEngine:
    """Runs the manure N flow calculation for input records.

    Args:
        store: Config store with the emission factor tables
        parameters: Global parameters (resolved from store and settings if omitted)
        check: Enable mass balance checks (defaults to settings.consistency_check)
    """

    def __init__(
        self,
        store: ConfigStore | None = None,
        parameters: GlobalParameters | None = None,
        check: bool | None = None,
    ):
        self.store = store or default_store()
        self.parameters = parameters or resolve_global_parameters(self.store)
        self.check = settings.consistency_check if check is None else check
        self._factors: dict[tuple[str, bool], EmissionFactors] = {}
        self._lock = threading.Lock()

    def emission_factors(self, record: InputRecord) -> EmissionFactors:
        """Compiled factors for the record's animal type and crust setting."""
        key = (record.animal_type, record.slurry_crust)
        with self._lock:
            if key not in self._factors:
                self._factors[key] = compile_emission_factors(
                    record.animal_type, record.slurry_crust, self.store, category=record.animal_category
                )
            return self._factors[key]

    # -------------------------------------------------------------------------
    # Consistency checks
    # -------------------------------------------------------------------------

    def _checked(self, stage: str, flows: Mapping, path: str = "") -> None:
        if not self.check:
            return
        for name, value in flows.items():
            flow = f"{path}{name}"
            if isinstance(value, Mapping):
                self._checked(stage, value, f"{flow}.")
            elif isinstance(value, float | int) and value < -NEGATIVE_TOLERANCE:
                raise MassBalanceViolation(stage, flow, value)

    def _check_allocation(self, excretion: ExcretionFlows) -> None:
        if not self.check:
            return
        allocated = excretion["grazing_n"] + excretion["yards_n"] + excretion["housing_n"]
        if abs(allocated - excretion["n"]) > ALLOCATION_TOLERANCE * max(1.0, abs(excretion["n"])):
            raise MassBalanceViolation(
                "allocation", "grazing_n + yards_n + housing_n", allocated, f"total excretion is {excretion['n']}"
            )

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _excretion(self, record: InputRecord) -> ExcretionFlows:
        n_total = stages.excretion_total(record.animal_number, record.excretion_coefficient)
        flows = {"n": n_total, "tan": stages.tan_share(n_total, record.fraction_tan)}
        for pathway in ("grazing", "yards", "housing"):
            n = stages.allocate(n_total, getattr(record, f"fraction_{pathway}"))
            flows[f"{pathway}_n"] = n
            flows[f"{pathway}_tan"] = stages.tan_share(n, record.fraction_tan)
        return ExcretionFlows(**flows)

    def _pathway(self, n: float, tan: float, ef: float) -> PathwayFlows:
        nh3 = stages.nh3_emission(tan, ef)
        return PathwayFlows(
            n=n,
            tan=tan,
            nh3_n=nh3,
            net_n=stages.net_to_soil(n, nh3),
            net_tan=stages.net_to_soil(tan, nh3),
        )

    def _housing(self, record: InputRecord, excretion: ExcretionFlows, factors: EmissionFactors) -> HousingFlows:
        flows = {}
        for manure_type in ManureType:
            fraction = record.fraction_manure(manure_type.value)
            tan = stages.housing_deposit(excretion["housing_tan"], fraction)
            flows[manure_type.value] = HousingManureFlows(
                n=stages.housing_deposit(excretion["housing_n"], fraction),
                tan=tan,
                nh3_n=stages.nh3_emission(tan, factors.get(Stage.HOUSING, Gas.NH3, manure_type)),
            )

        deposited = flows["solid"]
        bedding = record.bedding_amount or 0.0
        solid = HousingManureFlows(
            **deposited,
            tan_after_bedding=stages.ex_housing_solid_tan(
                deposited["tan"], deposited["nh3_n"], record.animal_number,
                record.fraction_manure_solid, bedding, self.parameters.f_imm,
            ),
            n_after_bedding=stages.ex_housing_solid_n(
                deposited["n"], deposited["nh3_n"], record.animal_number,
                record.fraction_manure_solid, bedding, self.parameters.f_bedding_n,
            ),
        )
        return HousingFlows(
            slurry=flows["slurry"],
            solid=solid,
            nh3_n=flows["slurry"]["nh3_n"] + solid["nh3_n"],
        )

    def _inflow(self, manure_type: ManureType, fraction: float, housing: HousingFlows, yards: PathwayFlows) -> ManureAmount:
        """Slurry or solid N/TAN drawn into storage or biogas by ``fraction``."""
        if manure_type is ManureType.SLURRY:
            slurry = housing["slurry"]
            return ManureAmount(
                n=stages.slurry_inflow(slurry["n"], slurry["nh3_n"], yards["n"], yards["nh3_n"], fraction),
                tan=stages.slurry_inflow(slurry["tan"], slurry["nh3_n"], yards["tan"], yards["nh3_n"], fraction),
            )
        solid = housing["solid"]
        return ManureAmount(
            n=stages.solid_inflow(solid["n_after_bedding"], fraction),
            tan=stages.solid_inflow(solid["tan_after_bedding"], fraction),
        )

    def _storage(
        self, record: InputRecord, housing: HousingFlows, yards: PathwayFlows, factors: EmissionFactors
    ) -> StorageFlows:
        flows = {}
        for manure_type in ManureType:
            storage_fraction, _ = record.usage_fractions(manure_type.value)
            inflow = self._inflow(manure_type, storage_fraction, housing, yards)

            tan = inflow["tan"]
            if manure_type is ManureType.SLURRY:
                tan = stages.mineralize(inflow["tan"], inflow["n"], self.parameters.f_min)

            emissions = stages.storage_emissions(
                tan, {gas.value: factors.get(Stage.STORAGE, gas, manure_type) for gas in STORAGE_GASES}
            )
            flows[manure_type.value] = StorageManureFlows(
                n=inflow["n"],
                tan=inflow["tan"],
                tan_mineralized=tan,
                nh3_n=emissions["NH3"],
                n2o_n=emissions["N2O"],
                no_n=emissions["NO"],
                n2_n=emissions["N2"],
                total_n_loss=emissions["total"],
                tan_after=tan - emissions["total"],
                n_after=inflow["n"] - emissions["total"],
            )

        return StorageFlows(
            slurry=flows["slurry"],
            solid=flows["solid"],
            **{key: flows["slurry"][key] + flows["solid"][key] for key in ("nh3_n", "n2o_n", "no_n", "n2_n")},
        )

    def _biogas(self, record: InputRecord, housing: HousingFlows, yards: PathwayFlows) -> BiogasFlows:
        flows = {}
        for manure_type in ManureType:
            _, biogas_fraction = record.usage_fractions(manure_type.value)
            flows[manure_type.value] = self._inflow(manure_type, biogas_fraction, housing, yards)
        return BiogasFlows(
            slurry=flows["slurry"],
            solid=flows["solid"],
            n=flows["slurry"]["n"] + flows["solid"]["n"],
            tan=flows["slurry"]["tan"] + flows["solid"]["tan"],
        )

    def _digestate(self, biogas: BiogasFlows, factors: EmissionFactors) -> DigestateFlows:
        ef = factors.get(Stage.DIGESTATE, Gas.NH3)
        return DigestateFlows(
            n=stages.digestate_n(biogas["n"], ef),
            tan=stages.digestate_tan(biogas["tan"], biogas["n"], self.parameters.f_min_digester, ef),
            nh3_n=stages.digestate_nh3(biogas["n"], ef),
        )

    def _direct_application(self, record: InputRecord, storage: StorageFlows) -> DirectApplicationFlows:
        flows = {}
        for manure_type in ManureType:
            usage = record.usage_fractions(manure_type.value)
            stored = storage[manure_type.value]
            flows[manure_type.value] = ManureAmount(
                n=stages.direct_application(stored["n"], usage),
                tan=stages.direct_application(stored["tan"], usage),
            )
        return DirectApplicationFlows(slurry=flows["slurry"], solid=flows["solid"])

    def _application(
        self,
        record: InputRecord,
        storage: StorageFlows,
        direct: DirectApplicationFlows,
        digestate: DigestateFlows,
        factors: EmissionFactors,
    ) -> ApplicationFlows:
        flows = {}
        for manure_type in ManureType:
            stored = storage[manure_type.value]
            applied_digestate = digestate if manure_type is ManureType.SLURRY else {"n": 0.0, "tan": 0.0}
            n = stages.applied_amount(
                direct[manure_type.value]["n"], stored["n"], stored["total_n_loss"], applied_digestate["n"]
            )
            tan = stages.applied_amount(
                direct[manure_type.value]["tan"], stored["tan"], stored["total_n_loss"], applied_digestate["tan"]
            )

            shares = record.method_shares(manure_type.value)
            if shares is None:
                shares = {factors.reference_method(manure_type): 1.0}
            methods = stages.application_by_method(
                tan, shares, lambda method, m=manure_type: factors.application(m, method)
            )
            nh3 = sum(method["nh3_n"] for method in methods.values())
            flows[manure_type.value] = ApplicationManureFlows(
                n=n,
                tan=tan,
                nh3_n=nh3,
                tan_after=sum(method["tan_after"] for method in methods.values()),
                net_n=stages.net_to_soil(n, nh3),
                net_tan=stages.net_to_soil(tan, nh3),
                methods=methods,
            )
        return ApplicationFlows(
            slurry=flows["slurry"],
            solid=flows["solid"],
            nh3_n=flows["slurry"]["nh3_n"] + flows["solid"]["nh3_n"],
        )

    def _totals(
        self,
        grazing: PathwayFlows,
        yards: PathwayFlows,
        housing: HousingFlows,
        storage: StorageFlows,
        digestate: DigestateFlows,
        application: ApplicationFlows,
    ) -> TotalFlows:
        nh3_n = (
            grazing["nh3_n"]
            + yards["nh3_n"]
            + housing["nh3_n"]
            + storage["nh3_n"]
            + digestate["nh3_n"]
            + application["nh3_n"]
        )
        return TotalFlows(
            nh3_n=nh3_n,
            n2o_n=storage["n2o_n"],
            no_n=storage["no_n"],
            n2_n=storage["n2_n"],
            nh3=n_to_compound(nh3_n, "NH3"),
            n2o=n_to_compound(storage["n2o_n"], "N2O"),
            no=n_to_compound(storage["no_n"], "NO"),
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, record: InputRecord) -> InventoryResult:
        """Compute the full N flow inventory for a record.

        Raises:
            InvalidInputError: If the record carries validation messages
            EFNotFound: If a required emission factor is missing
            MassBalanceViolation: If checks are enabled and a flow is inconsistent
        """
        if not record.is_valid:
            raise InvalidInputError(record.validation_messages)

        factors = self.emission_factors(record)
        logger.debug("Running inventory for %s (%s)", record.animal_type, record.animal_category)

        excretion = self._excretion(record)
        self._checked("excretion", excretion)
        self._check_allocation(excretion)

        grazing = self._pathway(
            excretion["grazing_n"], excretion["grazing_tan"], factors.get(Stage.GRAZING, Gas.NH3)
        )
        yards = self._pathway(excretion["yards_n"], excretion["yards_tan"], factors.get(Stage.YARDS, Gas.NH3))
        self._checked("grazing", grazing)
        self._checked("yards", yards)

        housing = self._housing(record, excretion, factors)
        self._checked("housing", housing)

        storage = self._storage(record, housing, yards, factors)
        self._checked("storage", storage)

        biogas = self._biogas(record, housing, yards)
        self._checked("biogas", biogas)

        digestate = self._digestate(biogas, factors)
        self._checked("digestate", digestate)

        direct = self._direct_application(record, storage)
        self._checked("direct_application", direct)

        application = self._application(record, storage, direct, digestate, factors)
        self._checked("application", application)

        total = self._totals(grazing, yards, housing, storage, digestate, application)
        logger.debug("Total NH3-N for %s: %.3f kg", record.animal_type, total["nh3_n"])

        return InventoryResult(
            animal_type=record.animal_type,
            animal_category=record.animal_category,
            excretion=excretion,
            grazing=grazing,
            yards=yards,
            housing=housing,
            storage=storage,
            biogas=biogas,
            digestate=digestate,
            direct_application=direct,
            application=application,
            total=total,
        )


def run_inventory(
    record: InputRecord,
    store: ConfigStore | None = None,
    parameters: GlobalParameters | None = None,
    check: bool | None = None,
) -> InventoryResult:
    """Run the inventory for one record with a fresh engine."""
    return InventoryEngine(store=store, parameters=parameters, check=check).run(record)
