"""Tests for the stage flow formulas."""

import pytest

from emep_mms.inventory.stages import (
    allocate,
    applied_amount,
    application_by_method,
    digestate_n,
    digestate_nh3,
    digestate_tan,
    direct_application,
    ex_housing_solid_n,
    ex_housing_solid_tan,
    excretion_total,
    housing_deposit,
    mineralize,
    net_to_soil,
    slurry_inflow,
    solid_inflow,
    storage_emissions,
    tan_share,
)


class TestExcretion:
    """Tests for excretion and allocation."""

    def test_example_herd(self):
        total = excretion_total(100, 105)
        assert total == 10500
        assert allocate(total, 0.2) == pytest.approx(2100)
        assert allocate(total, 0.05) == pytest.approx(525)
        housing = allocate(total, 0.75)
        assert housing == pytest.approx(7875)
        assert tan_share(housing, 0.6) == pytest.approx(4725)

    def test_allocation_fraction_out_of_range(self):
        with pytest.raises(ValueError):
            allocate(100, 1.2)


class TestBedding:
    """Tests for solid manure bedding adjustments."""

    def test_tan_after_immobilization(self):
        result = ex_housing_solid_tan(
            housing_solid_tan=1000,
            housing_solid_nh3=100,
            animal_no=100,
            f_man_solid=0.3,
            bedding_amount=5,
            f_imm=0.0067,
        )
        assert result == pytest.approx(898.995)

    def test_tan_clamped_at_zero(self):
        result = ex_housing_solid_tan(
            housing_solid_tan=50,
            housing_solid_nh3=100,
            animal_no=100,
            f_man_solid=0.3,
            bedding_amount=5,
            f_imm=0.0067,
        )
        assert result == 0.0

    @pytest.mark.parametrize("tan", [0, 1, 10, 100, 1000])
    @pytest.mark.parametrize("bedding", [0, 5, 1500])
    def test_tan_never_negative(self, tan, bedding):
        assert ex_housing_solid_tan(tan, tan * 0.5, 100, 0.3, bedding, 0.0067) >= 0

    def test_n_adds_straw_and_is_not_clamped(self):
        assert ex_housing_solid_n(1000, 100, 100, 0.3, 5, 0.04) == pytest.approx(1000 + 6 - 100)
        assert ex_housing_solid_n(50, 100, 100, 0.3, 0, 0.04) == pytest.approx(-50)


class TestStorage:
    """Tests for storage inflow, mineralization and emissions."""

    def test_housing_deposit(self):
        assert housing_deposit(4725, 0.7) == pytest.approx(3307.5)

    def test_slurry_inflow_includes_yards(self):
        assert slurry_inflow(3307.5, 661.5, 315, 94.5, 0.8) == pytest.approx(2293.2)

    def test_solid_inflow(self):
        assert solid_inflow(1000, 0.5) == 500

    def test_mineralize(self):
        assert mineralize(2293.2, 4225.2, 0.1) == pytest.approx(2486.4)

    def test_storage_emissions_total(self):
        emissions = storage_emissions(1000, {"NH3": 0.2, "N2O": 0.01, "NO": 0.001, "N2": 0.1})
        assert emissions["NH3"] == pytest.approx(200)
        assert emissions["N2O"] == pytest.approx(10)
        assert emissions["total"] == pytest.approx(311)


class TestDigestate:
    def test_digestate_flows(self):
        assert digestate_tan(286.65, 528.15, 0.0067, 0.05) == pytest.approx(261.86055)
        assert digestate_n(528.15, 0.05) == pytest.approx(26.4075)
        assert digestate_nh3(528.15, 0.05) == pytest.approx(26.4075)


class TestFieldApplication:
    """Tests for direct application and spreading methods."""

    def test_direct_application(self):
        assert direct_application(900, (0.8, 0.1)) == pytest.approx(100)

    def test_direct_application_zero_usage(self):
        assert direct_application(0, (0.0, 0.0)) == 0.0
        assert direct_application(100, (0.0, 0.0)) == 0.0

    def test_direct_application_full_usage(self):
        assert direct_application(500, (1.0, 0.0)) == 0.0

    def test_direct_application_over_one(self):
        with pytest.raises(ValueError):
            direct_application(100, (0.8, 0.3))

    def test_applied_amount(self):
        assert applied_amount(100, 1000, 50) == 1050
        assert applied_amount(100, 1000, 50, digestate=20) == 1070

    def test_methods(self):
        efs = {"broadcast": 0.5, "injection": 0.1}
        methods = application_by_method(1000, {"broadcast": 0.4, "injection": 0.6}, efs.__getitem__)
        assert methods["broadcast"]["nh3_n"] == pytest.approx(200)
        assert methods["broadcast"]["tan_after"] == pytest.approx(200)
        assert methods["injection"]["nh3_n"] == pytest.approx(60)
        assert methods["injection"]["tan_after"] == pytest.approx(540)

    def test_zero_share_skipped(self):
        def ef_for(method):
            raise AssertionError(f"factor looked up for {method}")

        assert application_by_method(1000, {"injection": 0.0}, ef_for) == {}

    def test_net_to_soil(self):
        assert net_to_soil(1000, 250) == 750
