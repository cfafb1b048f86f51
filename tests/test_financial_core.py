from __future__ import annotations

import pytest

from services.financial_core import (
    PROJECTION_YEARS,
    ROI_NOT_REACHED,
    TCO_YEAR,
    FinancialInputs,
    _AnnualEnergy,
    _solar_fraction_pct,
    calculate_financials,
)
from services.sizing_core import calculate_system_size
from utils.constants import DEFAULT_CONSTANTS, Constants
from utils.load_profiles import LoadItem, default_appliances


@pytest.fixture
def household_size():
    return calculate_system_size(default_appliances("residential"), 4, "unknown", DEFAULT_CONSTANTS)


def test_capex_breakdown_for_single_phase(household_size):
    model = calculate_financials(household_size, {"outageHoursPerDay": 4}, DEFAULT_CONSTANTS)

    assert model.panel_cost == 3 * 15_000
    assert model.battery_cost == 180_000
    assert model.inverter_cost == 85_000
    assert model.installation_cost == 50_000
    assert model.capex_solar == 360_000
    assert model.capex_diesel == 650_000


def test_three_phase_uses_three_phase_inverter_price():
    size = calculate_system_size(default_appliances("residential"), 4, "3-phase", DEFAULT_CONSTANTS)
    model = calculate_financials(size, 4, DEFAULT_CONSTANTS)

    assert model.inverter_cost == DEFAULT_CONSTANTS.cost_unit_inverter_3ph
    assert model.capex_solar == 45_000 + 180_000 + 240_000 + 50_000


def test_comparison_walk_starts_at_capex_and_never_decreases(household_size):
    model = calculate_financials(household_size, 4, DEFAULT_CONSTANTS)
    data = model.comparison_data

    assert len(data) == PROJECTION_YEARS + 1
    assert [entry.year for entry in data] == list(range(8))
    assert data[0].solar == model.capex_solar
    assert data[0].diesel == model.capex_diesel
    for previous, current in zip(data, data[1:]):
        assert current.solar >= previous.solar
        assert current.diesel >= previous.diesel


def test_diesel_year_costs_follow_fuel_and_grid_escalation(household_size):
    model = calculate_financials(household_size, 4, DEFAULT_CONSTANTS)

    grid_kwh = 4.36 * 365 * (1 - 4 / 24)
    fuel = 3.5 * 4 * 365 * 100
    maintenance = 4 * 365 * 50
    expected_year3 = grid_kwh * 3 * 1.12**2 + fuel * 1.15**2 + maintenance

    assert model.comparison_data[1].diesel_yearly == pytest.approx(grid_kwh * 3 + fuel + maintenance)
    assert model.analysis.year3_total_diesel == pytest.approx(expected_year3)


def test_oversized_array_covers_all_grid_energy(household_size):
    model = calculate_financials(household_size, 4, DEFAULT_CONSTANTS)

    assert model.analysis.solar_fraction == 100
    assert model.comparison_data[1].solar_yearly == pytest.approx(5_000)
    assert model.analysis.year3_total_solar == pytest.approx(5_000)
    assert model.analysis.annual_bill_savings == pytest.approx(4.36 * 365 * (20 / 24) * 3)
    assert model.roi_years == 1


def test_undersized_array_bills_residual_grid_energy():
    size = calculate_system_size([LoadItem("Chiller", 2000, 1, 24)], 4, "unknown", DEFAULT_CONSTANTS)
    # Force a small array so residual grid energy remains.
    constants = Constants.from_mapping({"PEAK_SUN_HOURS": 1.0})
    model = calculate_financials(size, 4, constants)

    assert 0 <= model.analysis.solar_fraction < 100
    assert model.comparison_data[1].solar_yearly > constants.maintenance_annual_solar


def test_tco_five_year_matches_cumulative_walk(household_size):
    model = calculate_financials(household_size, 4, DEFAULT_CONSTANTS)

    assert model.comparison_data[TCO_YEAR].year == 5
    assert model.analysis.tco_5year_solar == pytest.approx(model.comparison_data[5].solar)
    assert model.analysis.tco_5year_diesel == pytest.approx(model.comparison_data[5].diesel)


def test_roi_not_reached_when_generator_is_cheap(household_size):
    constants = Constants.from_mapping({"GEN_CAPEX": 1, "GEN_FUEL_CONSUMPTION_LPH": 0.01})
    model = calculate_financials(household_size, 1, constants)

    assert model.roi_years == ROI_NOT_REACHED


def test_zero_load_reports_full_solar_fraction():
    size = calculate_system_size([], 4, "unknown", DEFAULT_CONSTANTS)
    model = calculate_financials(size, 4, DEFAULT_CONSTANTS)

    assert model.analysis.solar_fraction == 100


def test_outage_longer_than_a_day_is_clamped(household_size):
    clamped = calculate_financials(household_size, 30, DEFAULT_CONSTANTS)
    full_day = calculate_financials(household_size, 24, DEFAULT_CONSTANTS)

    assert clamped.to_dict() == full_day.to_dict()


def test_inputs_accept_mapping_instance_and_number(household_size):
    from_mapping = calculate_financials(household_size, {"outage_hours_per_day": 6}, DEFAULT_CONSTANTS)
    from_instance = calculate_financials(household_size, FinancialInputs(6), DEFAULT_CONSTANTS)
    from_number = calculate_financials(household_size, 6.0, DEFAULT_CONSTANTS)

    assert from_mapping == from_instance == from_number


def test_json_shape_rounds_money(household_size):
    payload = calculate_financials(household_size, 4, DEFAULT_CONSTANTS).to_dict()

    assert payload["roiYears"] == 1
    assert set(payload["comparisonData"][0]) == {"year", "Solar", "Diesel", "SolarYearly", "DieselYearly"}
    assert all(isinstance(value, int) for value in payload["analysis"].values())


def test_comparison_frame_is_indexed_by_year(household_size):
    frame = calculate_financials(household_size, 4, DEFAULT_CONSTANTS).comparison_frame()

    assert list(frame.index) == list(range(8))
    assert frame.loc[0, "Solar"] == 360_000


def test_solar_fraction_rounds_half_up():
    # 1 of 8 kWh met by solar is exactly 12.5%.
    energy = _AnnualEnergy(load_kwh=8.0, grid_kwh_diesel_path=6.0, grid_kwh_solar_path=7.0, solar_gen_kwh=1.0)

    assert _solar_fraction_pct(energy) == 13


def test_json_money_rounds_half_up(household_size):
    constants = Constants.from_mapping({"COST_INSTALLATION_FLAT": 50_000.5})
    payload = calculate_financials(household_size, 4, constants).to_dict()

    assert payload["installationCost"] == 50_001
    assert payload["capexSolar"] == 360_001
