"""Convert an appliance load profile into discrete PV, battery and inverter hardware.

The sizer is pure: it reads a :class:`~utils.constants.Constants` snapshot and
never mutates it. Inputs are assumed to be validated by the caller
(non-negative watts, quantities and hours); no runtime checks are made and no
numeric input raises.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping

from utils.constants import Constants
from utils.load_profiles import LoadItem

logger = logging.getLogger(__name__)

MIN_PANELS = 3
BATTERY_STEP_KWH = 5.0
# Units above this count get the lower coincidence factor.
COINCIDENCE_UNIT_THRESHOLD = 3
COINCIDENCE_FACTOR_SMALL = 0.85
COINCIDENCE_FACTOR_LARGE = 0.7


class Phase(str, Enum):
    SINGLE = "1-phase"
    THREE = "3-phase"
    UNKNOWN = "unknown"

    @property
    def is_three_phase(self) -> bool:
        return self is Phase.THREE

    @classmethod
    def from_value(cls, value: "Phase | str | None") -> "Phase":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "1-phase": cls.SINGLE,
            "single": cls.SINGLE,
            "single-phase": cls.SINGLE,
            "3-phase": cls.THREE,
            "three": cls.THREE,
            "three-phase": cls.THREE,
            "unknown": cls.UNKNOWN,
            "": cls.UNKNOWN,
        }
        if text not in aliases:
            logger.warning("Unknown phase %r; defaulting to single-phase sizing", value)
            return cls.UNKNOWN
        return aliases[text]


@dataclass(frozen=True)
class UnitCounts:
    panels: int
    batteries: int
    inverters: int


@dataclass(frozen=True)
class RecommendedSystem:
    pv_kw: float
    battery_kwh: float
    inverter_kw: float
    is_3phase: bool
    units: UnitCounts


@dataclass(frozen=True)
class SystemSize:
    total_daily_energy_wh: float
    peak_power_w: float
    recommended: RecommendedSystem

    def to_dict(self) -> Dict[str, Any]:
        rec = self.recommended
        return {
            "totalDailyEnergyWh": self.total_daily_energy_wh,
            "peakPowerW": self.peak_power_w,
            "recommended": {
                "pvKw": rec.pv_kw,
                "batteryKwh": rec.battery_kwh,
                "inverterKw": rec.inverter_kw,
                "is3Phase": rec.is_3phase,
                "units": asdict(rec.units),
            },
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SystemSize":
        rec = payload["recommended"]
        units = rec["units"]
        return cls(
            total_daily_energy_wh=float(payload["totalDailyEnergyWh"]),
            peak_power_w=float(payload["peakPowerW"]),
            recommended=RecommendedSystem(
                pv_kw=float(rec["pvKw"]),
                battery_kwh=float(rec["batteryKwh"]),
                inverter_kw=float(rec["inverterKw"]),
                is_3phase=bool(rec.get("is3Phase", False)),
                units=UnitCounts(
                    panels=int(units["panels"]),
                    batteries=int(units["batteries"]),
                    inverters=int(units["inverters"]),
                ),
            ),
        )


def _ceil_div(value: float, step: float) -> int:
    """Return ceil(value / step), ignoring float noise such as 2.0000000000000004."""

    return math.ceil(round(value / step, 9))


def coincidence_factor(unit_count: int) -> float:
    """Step-wise diversity factor for the number of appliance units on the profile."""

    if unit_count > COINCIDENCE_UNIT_THRESHOLD:
        return COINCIDENCE_FACTOR_LARGE
    return COINCIDENCE_FACTOR_SMALL


def inverter_module_kw(phase: Phase | str | None, constants: Constants) -> float:
    if Phase.from_value(phase).is_three_phase:
        return constants.spec_inverter_kw_3ph
    return constants.spec_inverter_kw


def calculate_system_size(
    load_items: Iterable[LoadItem],
    outage_hours: float,
    phase: Phase | str | None,
    constants: Constants,
) -> SystemSize:
    """Size a backup system for ``load_items`` covering ``outage_hours`` of outage.

    Peak demand is the connected load scaled by a coincidence factor, but never
    below the single largest appliance. PV is sized to replace the daily energy
    budget, the battery to carry the peak through the outage, and the inverter to
    the peak plus an oversize margin. Every component is rounded up to whole
    hardware modules with a non-zero floor, so an empty profile still yields the
    minimum kit.
    """

    items = list(load_items)
    resolved_phase = Phase.from_value(phase)

    total_daily_energy_wh = sum(item.daily_energy_wh for item in items)
    raw_peak_power_w = sum(item.connected_watts for item in items)
    appliance_count = sum(item.quantity for item in items)
    factor = coincidence_factor(appliance_count)
    max_single_load_w = max((item.watts for item in items), default=0.0)
    peak_power_w = max(raw_peak_power_w * factor, max_single_load_w)

    required_pv_kw = (total_daily_energy_wh / 1000.0) / (
        constants.peak_sun_hours * constants.system_efficiency
    )
    required_battery_kwh = (peak_power_w / 1000.0 * outage_hours) / constants.depth_of_discharge
    required_inverter_kw = peak_power_w / 1000.0 * constants.inverter_oversize_factor

    panels = max(MIN_PANELS, _ceil_div(required_pv_kw * 1000.0, constants.spec_pv_wattage))
    pv_kw = round(panels * constants.spec_pv_wattage / 1000.0, 3)

    battery_kwh = max(BATTERY_STEP_KWH, _ceil_div(required_battery_kwh, BATTERY_STEP_KWH) * BATTERY_STEP_KWH)
    batteries = _ceil_div(battery_kwh, constants.spec_battery_kwh)

    module_kw = inverter_module_kw(resolved_phase, constants)
    inverters = max(1, _ceil_div(required_inverter_kw, module_kw))
    inverter_kw = inverters * module_kw

    logger.debug(
        "Sized %d units: %.0f Wh/day, raw peak %.0f W x %.2f -> %.0f W; "
        "required PV %.2f kW, battery %.2f kWh, inverter %.2f kW",
        appliance_count,
        total_daily_energy_wh,
        raw_peak_power_w,
        factor,
        peak_power_w,
        required_pv_kw,
        required_battery_kwh,
        required_inverter_kw,
    )

    return SystemSize(
        total_daily_energy_wh=total_daily_energy_wh,
        peak_power_w=peak_power_w,
        recommended=RecommendedSystem(
            pv_kw=pv_kw,
            battery_kwh=battery_kwh,
            inverter_kw=inverter_kw,
            is_3phase=resolved_phase.is_three_phase,
            units=UnitCounts(panels=panels, batteries=batteries, inverters=inverters),
        ),
    )


__all__ = [
    "BATTERY_STEP_KWH",
    "MIN_PANELS",
    "Phase",
    "RecommendedSystem",
    "SystemSize",
    "UnitCounts",
    "calculate_system_size",
    "coincidence_factor",
    "inverter_module_kw",
]
