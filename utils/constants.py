"""Unit catalog and tariff assumptions shared by every sizing routine.

Values are expressed in ETB for money, W/kW/kWh for hardware and fractions for
ratios. The dataclass is frozen so a snapshot can be passed around safely; an
admin surface produces a new snapshot with :meth:`Constants.from_mapping`
instead of mutating the defaults.
"""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

CONSTANTS_PATH_ENV = "CRS_CONSTANTS_PATH"

# Fractions that must stay within (0, 1].
_RATIO_FIELDS = ("system_efficiency", "depth_of_discharge")
# Escalators may legitimately be zero.
_RATE_FIELDS = ("grid_inflation_rate", "inflation_rate")


@dataclass(frozen=True)
class Constants:
    # Solar
    system_efficiency: float = 0.85
    depth_of_discharge: float = 0.90  # lithium-ion
    peak_sun_hours: float = 5.5  # Ethiopian average
    inverter_oversize_factor: float = 1.1

    # Hardware module specifications
    spec_pv_wattage: float = 550.0
    spec_battery_kwh: float = 5.0
    spec_inverter_kw: float = 5.0
    spec_inverter_kw_3ph: float = 15.0

    # Unit costs (ETB)
    cost_unit_pv_panel: float = 15_000.0
    cost_unit_battery: float = 180_000.0
    cost_unit_inverter: float = 85_000.0
    cost_unit_inverter_3ph: float = 240_000.0
    cost_installation_flat: float = 50_000.0
    maintenance_annual_solar: float = 5_000.0

    # Grid
    grid_price_per_kwh: float = 3.0
    grid_inflation_rate: float = 0.12

    # Diesel generator baseline (10 kVA silent set)
    gen_capex: float = 650_000.0
    gen_fuel_consumption_lph: float = 3.5
    gen_maintenance_cost_per_hour: float = 50.0
    fuel_price_per_liter: float = 100.0
    inflation_rate: float = 0.15  # fuel

    def validate(self) -> "Constants":
        """Raise ValueError when any parameter is out of range; return self otherwise."""

        for f in fields(self):
            value = getattr(self, f.name)
            key = f.name.upper()
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be numeric")
            if not math.isfinite(value):
                raise ValueError(f"{key} must be a finite number")
            if f.name in _RATE_FIELDS:
                if value < 0:
                    raise ValueError(f"{key} must be non-negative")
                continue
            if value <= 0:
                raise ValueError(f"{key} must be positive")
            if f.name in _RATIO_FIELDS and value > 1:
                raise ValueError(f"{key} must lie in (0, 1]")
        return self

    def to_dict(self) -> Dict[str, float]:
        """Return the admin-facing mapping keyed by UPPER_CASE parameter names."""

        return {name.upper(): value for name, value in asdict(self).items()}

    @classmethod
    def from_mapping(
        cls,
        overrides: Mapping[str, Any],
        base: Optional["Constants"] = None,
    ) -> "Constants":
        """Merge ``overrides`` onto ``base`` (defaults when omitted) and validate.

        Keys may be UPPER_CASE (as stored by the admin panel) or snake_case.
        Unknown keys raise ``ValueError`` so typos do not silently fall back to
        defaults.
        """

        known = {f.name for f in fields(cls)}
        updates: Dict[str, float] = {}
        for key, value in overrides.items():
            name = str(key).lower()
            if name not in known:
                raise ValueError(f"Unknown constant: {key}")
            try:
                updates[name] = float(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{name.upper()} must be numeric") from exc

        return replace(base or DEFAULT_CONSTANTS, **updates).validate()


DEFAULT_CONSTANTS = Constants()


def load_constants(path: str | os.PathLike[str] | None = None) -> Constants:
    """Return a constants snapshot, applying JSON overrides when available.

    The lookup order is the explicit ``path`` → ``CRS_CONSTANTS_PATH`` environment
    variable → built-in defaults.
    """

    source = path or os.environ.get(CONSTANTS_PATH_ENV)
    if not source:
        logger.info("Using built-in default constants")
        return DEFAULT_CONSTANTS

    override_path = Path(source).expanduser()
    with override_path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError(f"{override_path} must contain a JSON object of constants")

    logger.info("Loaded %d constant override(s) from %s", len(payload), override_path)
    return Constants.from_mapping(payload)


__all__ = [
    "CONSTANTS_PATH_ENV",
    "Constants",
    "DEFAULT_CONSTANTS",
    "load_constants",
]
