"""Seven-year cost comparison between a sized solar system and a diesel generator.

The diesel baseline is a single fixed-capacity generator (``GEN_CAPEX``) that
only covers the daily outage window; the rest of the load is billed at the
grid tariff. The solar path pays for residual grid energy not covered by the
annual PV harvest plus a flat maintenance fee. Grid tariff and fuel escalate
by compound inflation; maintenance fees do not.

The annual harvest here (``pv_kw * peak_sun_hours * efficiency * 365``) is
independent of the hourly simulator and of the optimality
checks, which use their own yield heuristics.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

import pandas as pd

from services.sizing_core import SystemSize
from utils.constants import Constants
from utils.economics import round_half_up

logger = logging.getLogger(__name__)

PROJECTION_YEARS = 7
ROI_NOT_REACHED = "7+"
TCO_YEAR = 5
HOURS_PER_DAY = 24.0
DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class FinancialInputs:
    outage_hours_per_day: float

    @classmethod
    def from_value(cls, value: Union["FinancialInputs", Mapping[str, Any], float]) -> "FinancialInputs":
        """Accept an instance, a ``{"outageHoursPerDay": h}`` mapping or a bare number."""

        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            if "outageHoursPerDay" in value:
                return cls(float(value["outageHoursPerDay"]))
            return cls(float(value["outage_hours_per_day"]))
        return cls(float(value))


@dataclass(frozen=True)
class YearComparison:
    """Cumulative cost of ownership for both paths at the end of ``year``."""

    year: int
    solar: float
    diesel: float
    solar_yearly: float
    diesel_yearly: float

    def to_dict(self) -> Dict[str, int]:
        return {
            "year": self.year,
            "Solar": round_half_up(self.solar),
            "Diesel": round_half_up(self.diesel),
            "SolarYearly": round_half_up(self.solar_yearly),
            "DieselYearly": round_half_up(self.diesel_yearly),
        }


@dataclass(frozen=True)
class FinancialAnalysis:
    year3_total_diesel: float
    year3_total_solar: float
    annual_bill_savings: float
    solar_fraction: int
    tco_5year_solar: float
    tco_5year_diesel: float

    def to_dict(self) -> Dict[str, int]:
        return {
            "year3TotalDiesel": round_half_up(self.year3_total_diesel),
            "year3TotalSolar": round_half_up(self.year3_total_solar),
            "annualBillSavings": round_half_up(self.annual_bill_savings),
            "solarFraction": self.solar_fraction,
            "tco5YearSolar": round_half_up(self.tco_5year_solar),
            "tco5YearDiesel": round_half_up(self.tco_5year_diesel),
        }


@dataclass(frozen=True)
class FinancialModel:
    capex_solar: float
    capex_diesel: float
    panel_cost: float
    battery_cost: float
    inverter_cost: float
    installation_cost: float
    roi_years: Union[int, str]
    comparison_data: List[YearComparison]
    analysis: FinancialAnalysis

    def to_dict(self) -> Dict[str, Any]:
        """JSON form with money rounded to whole currency units."""

        return {
            "capexSolar": round_half_up(self.capex_solar),
            "capexDiesel": round_half_up(self.capex_diesel),
            "panelCost": round_half_up(self.panel_cost),
            "batteryCost": round_half_up(self.battery_cost),
            "inverterCost": round_half_up(self.inverter_cost),
            "installationCost": round_half_up(self.installation_cost),
            "roiYears": self.roi_years,
            "comparisonData": [entry.to_dict() for entry in self.comparison_data],
            "analysis": self.analysis.to_dict(),
        }

    def comparison_frame(self) -> pd.DataFrame:
        """Return the cumulative cost walk as a year-indexed DataFrame."""

        rows = [entry.to_dict() for entry in self.comparison_data]
        return pd.DataFrame(rows).set_index("year")


@dataclass(frozen=True)
class _AnnualEnergy:
    load_kwh: float
    grid_kwh_diesel_path: float
    grid_kwh_solar_path: float
    solar_gen_kwh: float


def _annual_energy(system_size: SystemSize, outage_hours: float, constants: Constants) -> _AnnualEnergy:
    annual_load_kwh = system_size.total_daily_energy_wh / 1000.0 * DAYS_PER_YEAR
    annual_outage_kwh = (outage_hours / HOURS_PER_DAY) * annual_load_kwh
    annual_solar_gen_kwh = (
        system_size.recommended.pv_kw
        * constants.peak_sun_hours
        * constants.system_efficiency
        * DAYS_PER_YEAR
    )
    return _AnnualEnergy(
        load_kwh=annual_load_kwh,
        grid_kwh_diesel_path=annual_load_kwh - annual_outage_kwh,
        grid_kwh_solar_path=max(0.0, annual_load_kwh - annual_solar_gen_kwh),
        solar_gen_kwh=annual_solar_gen_kwh,
    )


def _escalator(rate: float, year: int) -> float:
    """Compound multiplier for ``year`` (1-indexed, year 1 is the base price)."""

    return (1.0 + rate) ** (year - 1)


def _diesel_yearly_cost(energy: _AnnualEnergy, outage_hours: float, year: int, constants: Constants) -> float:
    grid_cost = energy.grid_kwh_diesel_path * constants.grid_price_per_kwh * _escalator(
        constants.grid_inflation_rate, year
    )
    annual_fuel_cost = (
        constants.gen_fuel_consumption_lph
        * outage_hours
        * DAYS_PER_YEAR
        * constants.fuel_price_per_liter
        * _escalator(constants.inflation_rate, year)
    )
    annual_maintenance = outage_hours * DAYS_PER_YEAR * constants.gen_maintenance_cost_per_hour
    return grid_cost + annual_fuel_cost + annual_maintenance


def _solar_yearly_cost(energy: _AnnualEnergy, year: int, constants: Constants) -> float:
    grid_cost = energy.grid_kwh_solar_path * constants.grid_price_per_kwh * _escalator(
        constants.grid_inflation_rate, year
    )
    return constants.maintenance_annual_solar + grid_cost


def _solar_fraction_pct(energy: _AnnualEnergy) -> int:
    """Share of annual load met without grid import, as a whole percent in [0, 100]."""

    if energy.load_kwh <= 0:
        return 100
    fraction = (energy.load_kwh - energy.grid_kwh_solar_path) / energy.load_kwh * 100.0
    return int(min(100, max(0, round_half_up(fraction))))


def calculate_financials(
    system_size: SystemSize,
    inputs: Union[FinancialInputs, Mapping[str, Any], float],
    constants: Constants,
) -> FinancialModel:
    """Project CAPEX, the 7-year cumulative cost walk, ROI year and summary metrics."""

    outage_hours = FinancialInputs.from_value(inputs).outage_hours_per_day
    if outage_hours > HOURS_PER_DAY:
        logger.warning("Outage of %.1f h/day exceeds a day; clamping to 24 h", outage_hours)
        outage_hours = HOURS_PER_DAY
    outage_hours = max(0.0, outage_hours)

    rec = system_size.recommended
    units = rec.units
    unit_inverter_cost = (
        constants.cost_unit_inverter_3ph if rec.is_3phase else constants.cost_unit_inverter
    )
    panel_cost = units.panels * constants.cost_unit_pv_panel
    battery_cost = units.batteries * constants.cost_unit_battery
    inverter_cost = units.inverters * unit_inverter_cost
    installation_cost = constants.cost_installation_flat
    capex_solar = panel_cost + battery_cost + inverter_cost + installation_cost
    capex_diesel = constants.gen_capex

    energy = _annual_energy(system_size, outage_hours, constants)

    cumulative_solar = capex_solar
    cumulative_diesel = capex_diesel
    comparison: List[YearComparison] = [
        YearComparison(year=0, solar=capex_solar, diesel=capex_diesel, solar_yearly=0.0, diesel_yearly=0.0)
    ]
    for year in range(1, PROJECTION_YEARS + 1):
        yearly_diesel = _diesel_yearly_cost(energy, outage_hours, year, constants)
        yearly_solar = _solar_yearly_cost(energy, year, constants)
        cumulative_diesel += yearly_diesel
        cumulative_solar += yearly_solar
        comparison.append(
            YearComparison(
                year=year,
                solar=cumulative_solar,
                diesel=cumulative_diesel,
                solar_yearly=yearly_solar,
                diesel_yearly=yearly_diesel,
            )
        )

    roi_years: Union[int, str] = next(
        (entry.year for entry in comparison[1:] if entry.solar < entry.diesel),
        ROI_NOT_REACHED,
    )

    tco_year = comparison[TCO_YEAR]
    analysis = FinancialAnalysis(
        year3_total_diesel=_diesel_yearly_cost(energy, outage_hours, 3, constants),
        year3_total_solar=_solar_yearly_cost(energy, 3, constants),
        annual_bill_savings=(energy.grid_kwh_diesel_path - energy.grid_kwh_solar_path)
        * constants.grid_price_per_kwh,
        solar_fraction=_solar_fraction_pct(energy),
        tco_5year_solar=tco_year.solar,
        tco_5year_diesel=tco_year.diesel,
    )

    logger.debug(
        "CAPEX solar %.0f vs diesel %.0f; annual load %.0f kWh, PV harvest %.0f kWh; ROI %s",
        capex_solar,
        capex_diesel,
        energy.load_kwh,
        energy.solar_gen_kwh,
        roi_years,
    )

    return FinancialModel(
        capex_solar=capex_solar,
        capex_diesel=capex_diesel,
        panel_cost=panel_cost,
        battery_cost=battery_cost,
        inverter_cost=inverter_cost,
        installation_cost=installation_cost,
        roi_years=roi_years,
        comparison_data=comparison,
        analysis=analysis,
    )


__all__ = [
    "FinancialAnalysis",
    "FinancialInputs",
    "FinancialModel",
    "PROJECTION_YEARS",
    "ROI_NOT_REACHED",
    "YearComparison",
    "calculate_financials",
]
