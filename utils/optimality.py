"""Rule-based advisories on battery runway, recharge speed and inverter headroom."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from services.sizing_core import SystemSize

# Usable share of nameplate battery energy assumed by the advisories.
USABLE_BATTERY_FRACTION = 0.9
# Runway below this share of the requested outage triggers a warning.
RUNWAY_TOLERANCE = 0.8
# Rule-of-thumb daily yield: 5.5 sun hours at 85% derate, independent of the
# constants snapshot used by the financial projection.
ADVISORY_SUN_HOURS = 5.5
ADVISORY_DERATE = 0.85
MIN_INVERTER_HEADROOM = 0.2
SURPLUS_GENERATION_RATIO = 1.5


class Severity(str, Enum):
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class OptimalityWarning:
    severity: Severity
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.severity.value, "severity": self.severity.value, "message": self.message}


def _fmt(value: float) -> str:
    return f"{value:g}"


def check_optimality(system_size: "SystemSize", outage_hours: float) -> List[OptimalityWarning]:
    """Evaluate each sizing rule independently and return the resulting notes.

    A profile with zero peak load is treated as having unlimited runway and
    inverter headroom rather than dividing by zero.
    """

    rec = system_size.recommended
    notes: List[OptimalityWarning] = []

    usable_battery_kwh = rec.battery_kwh * USABLE_BATTERY_FRACTION
    peak_load_kw = system_size.peak_power_w / 1000.0
    duration_at_peak_h = usable_battery_kwh / peak_load_kw if peak_load_kw > 0 else math.inf

    if duration_at_peak_h < outage_hours * RUNWAY_TOLERANCE:
        notes.append(
            OptimalityWarning(
                Severity.WARNING,
                f"Battery size ({_fmt(rec.battery_kwh)} kWh) might be tight for {_fmt(outage_hours)} hours "
                "if running all appliances at once. Consider reducing load or increasing duration.",
            )
        )
    else:
        notes.append(
            OptimalityWarning(
                Severity.SUCCESS,
                f"Battery provides excellent backup for {_fmt(outage_hours)} hours.",
            )
        )

    daily_gen_kwh = rec.pv_kw * ADVISORY_SUN_HOURS * ADVISORY_DERATE
    if daily_gen_kwh < usable_battery_kwh:
        notes.append(
            OptimalityWarning(
                Severity.WARNING,
                f"Solar Array ({_fmt(rec.pv_kw)} kW) may struggle to fully recharge the battery "
                "in one day after a full drain.",
            )
        )
    else:
        notes.append(
            OptimalityWarning(
                Severity.SUCCESS,
                "Solar Array is optimally sized to recharge the battery quickly.",
            )
        )

    if peak_load_kw > 0:
        headroom = (rec.inverter_kw - peak_load_kw) / peak_load_kw
        if headroom < MIN_INVERTER_HEADROOM:
            notes.append(
                OptimalityWarning(
                    Severity.WARNING,
                    f"Inverter ({_fmt(rec.inverter_kw)} kW) is running close to capacity. "
                    "Avoid adding more heavy appliances.",
                )
            )

    if daily_gen_kwh > system_size.total_daily_energy_wh / 1000.0 * SURPLUS_GENERATION_RATIO:
        notes.append(
            OptimalityWarning(
                Severity.INFO,
                "System generates significantly more energy than daily use. "
                "You will reduce your grid bill to near zero.",
            )
        )

    return notes


__all__ = ["OptimalityWarning", "Severity", "check_optimality"]
