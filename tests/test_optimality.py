from __future__ import annotations

from services.sizing_core import RecommendedSystem, SystemSize, UnitCounts
from utils.optimality import Severity, check_optimality


def _system(
    pv_kw: float = 1.65,
    battery_kwh: float = 5.0,
    inverter_kw: float = 5.0,
    peak_w: float = 203.0,
    total_wh: float = 4360.0,
) -> SystemSize:
    return SystemSize(
        total_daily_energy_wh=total_wh,
        peak_power_w=peak_w,
        recommended=RecommendedSystem(
            pv_kw=pv_kw,
            battery_kwh=battery_kwh,
            inverter_kw=inverter_kw,
            is_3phase=False,
            units=UnitCounts(panels=3, batteries=1, inverters=1),
        ),
    )


def test_short_runway_warns_about_battery():
    notes = check_optimality(_system(peak_w=3000.0), 4)

    assert notes[0].severity is Severity.WARNING
    assert "Battery size (5 kWh) might be tight for 4 hours" in notes[0].message


def test_household_system_is_healthy_with_surplus_note():
    notes = check_optimality(_system(), 4)

    assert [note.severity for note in notes] == [Severity.SUCCESS, Severity.SUCCESS, Severity.INFO]
    assert notes[0].message == "Battery provides excellent backup for 4 hours."


def test_small_array_cannot_recharge_large_bank():
    notes = check_optimality(_system(battery_kwh=20.0), 4)

    assert any("may struggle to fully recharge" in note.message for note in notes)


def test_inverter_near_capacity_warns():
    notes = check_optimality(_system(battery_kwh=50.0, peak_w=4500.0), 2)

    assert any(
        note.severity is Severity.WARNING and "close to capacity" in note.message for note in notes
    )


def test_zero_peak_is_treated_as_unlimited_runway():
    notes = check_optimality(_system(peak_w=0.0, total_wh=0.0), 24)

    assert notes[0].severity is Severity.SUCCESS
    assert not any("close to capacity" in note.message for note in notes)


def test_to_dict_exposes_type_and_message():
    payload = check_optimality(_system(peak_w=3000.0), 4)[0].to_dict()

    assert payload["type"] == "warning"
    assert payload["severity"] == "warning"
    assert payload["message"].startswith("Battery size")
