"""Synthetic 24-hour energy balance for charting a sized system.

This is a shaping heuristic rather than a calibrated model: solar output is a
Gaussian bell centred on 13:00 and the load follows one of three fixed
templates. The battery starts the day half full, may swing between empty and
full, and any surplus it cannot absorb is counted as grid export (or
curtailment). Bookkeeping is done in whole watt-hours so every recorded hour
satisfies ``solar - load == battery_flow + grid_export - grid_import``.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import numpy as np
import pandas as pd

from services.sizing_core import SystemSize
from utils.economics import round_half_up
from utils.load_profiles import (
    DEFAULT_FOOD_SERVICE_KEYWORDS,
    LOAD_SHAPE_NOTES,
    LoadItem,
    LoadShape,
    UserType,
    normalized_template,
    select_load_shape,
)

logger = logging.getLogger(__name__)

HOURS = 24
SOLAR_PEAK_HOUR = 13.0
SOLAR_SPREAD_HOURS = 2.5
SOLAR_DERATE = 0.85
INITIAL_SOC_FRACTION = 0.5


@dataclass(frozen=True)
class HourlyEnergyPoint:
    hour: str
    solar: int
    load: int
    battery_state: int  # percent of capacity
    battery_flow: int  # positive while charging
    grid_import: int
    grid_export: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "solar": self.solar,
            "load": self.load,
            "batteryState": self.battery_state,
            "batteryFlow": self.battery_flow,
            "gridImport": self.grid_import,
            "gridExport": self.grid_export,
        }


@dataclass(frozen=True)
class HourlyEnergyResult:
    data: List[HourlyEnergyPoint]
    note: str
    load_shape: LoadShape

    @property
    def daily_generation_kwh(self) -> float:
        return sum(point.solar for point in self.data) / 1000.0

    @property
    def excess_energy_kwh(self) -> float:
        """Solar energy above the hourly load, summed over the day."""

        return sum(max(0, point.solar - point.load) for point in self.data) / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {"data": [point.to_dict() for point in self.data], "note": self.note}

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(point) for point in self.data])


def solar_curve_wh(pv_kw: float) -> np.ndarray:
    """Hourly PV output (Wh) for a clear day, peaking at 13:00."""

    hours = np.arange(HOURS, dtype=float)
    intensity = np.exp(-0.5 * ((hours - SOLAR_PEAK_HOUR) / SOLAR_SPREAD_HOURS) ** 2)
    return pv_kw * 1000.0 * SOLAR_DERATE * intensity


def calculate_hourly_energy(
    system_size: SystemSize,
    total_daily_energy_wh: float,
    user_type: UserType | str | None = UserType.RESIDENTIAL,
    appliances: Iterable[LoadItem | Mapping[str, Any]] = (),
    *,
    food_service_keywords: Sequence[str] = DEFAULT_FOOD_SERVICE_KEYWORDS,
) -> HourlyEnergyResult:
    """Simulate one day of solar, load, battery and grid flows for ``system_size``."""

    shape = select_load_shape(user_type, list(appliances), food_service_keywords)
    solar_wh = np.floor(solar_curve_wh(system_size.recommended.pv_kw) + 0.5).astype(int)
    load_wh = np.floor(normalized_template(shape) * total_daily_energy_wh + 0.5).astype(int)

    capacity_wh = system_size.recommended.battery_kwh * 1000.0
    soc_wh = capacity_wh * INITIAL_SOC_FRACTION
    points: List[HourlyEnergyPoint] = []

    for hour in range(HOURS):
        solar = int(solar_wh[hour])
        load = int(load_wh[hour])
        net = solar - load
        grid_import = 0
        grid_export = 0

        if net > 0:
            charge = round_half_up(min(net, capacity_wh - soc_wh))
            battery_flow = charge
            grid_export = net - charge
        else:
            deficit = -net
            discharge = round_half_up(min(deficit, soc_wh))
            battery_flow = -discharge
            grid_import = deficit - discharge

        soc_wh = min(capacity_wh, max(0.0, soc_wh + battery_flow))
        battery_state = round_half_up(soc_wh / capacity_wh * 100) if capacity_wh > 0 else 0

        points.append(
            HourlyEnergyPoint(
                hour=f"{hour}:00",
                solar=solar,
                load=load,
                battery_state=battery_state,
                battery_flow=battery_flow,
                grid_import=grid_import,
                grid_export=grid_export,
            )
        )

    logger.debug(
        "Hourly simulation (%s): %.1f kWh solar vs %.1f kWh load",
        shape.value,
        solar_wh.sum() / 1000.0,
        load_wh.sum() / 1000.0,
    )
    return HourlyEnergyResult(data=points, note=LOAD_SHAPE_NOTES[shape], load_shape=shape)


__all__ = [
    "HourlyEnergyPoint",
    "HourlyEnergyResult",
    "calculate_hourly_energy",
    "solar_curve_wh",
]
