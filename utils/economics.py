"""Unit-cost and financing helpers shared by the API and the cost projections.

``calculate_landed_cost`` turns an imported equipment quote into an ETB unit
price and ``apply_landed_costs`` folds those prices into a new constants
snapshot. The exchange rate is an input here; fetching it is left to callers.
``compute_loan_payment`` quotes an amortizing loan for the system CAPEX.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Mapping

from utils.constants import Constants

logger = logging.getLogger(__name__)

# Equipment catalogue entries mapped to the constants they price.
EQUIPMENT_COST_FIELDS: Dict[str, str] = {
    "pv_panel": "cost_unit_pv_panel",
    "battery_unit": "cost_unit_battery",
    "inverter_1ph_5kw": "cost_unit_inverter",
    "inverter_3ph_15kw": "cost_unit_inverter_3ph",
}


@dataclass
class EquipmentImportCost:
    """Import quote for one equipment type.

    USD amounts are converted at the supplied exchange rate; inland transport
    and port handling are already in ETB. Percentages are expressed as
    percent (e.g., 10 = 10%).
    """

    equipment_type: str
    import_usd: float
    shipping_usd: float
    customs_duty_percent: float
    inland_transport_etb: float
    margin_percent: float
    port_handling_etb: float = 0.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "EquipmentImportCost":
        return cls(
            equipment_type=str(payload["equipment_type"]),
            import_usd=float(payload["import_usd"]),
            shipping_usd=float(payload["shipping_usd"]),
            customs_duty_percent=float(payload["customs_duty_percent"]),
            inland_transport_etb=float(payload["inland_transport_etb"]),
            margin_percent=float(payload["margin_percent"]),
            port_handling_etb=float(payload.get("port_handling_etb") or 0.0),
        )


@dataclass
class LoanQuote:
    """Amortized financing terms for a given CAPEX."""

    loan_amount: float
    down_payment: float
    monthly_payment: float
    total_interest: float
    total_payment: float
    number_of_payments: int


def _ensure_non_negative_finite(value: float, name: str) -> None:
    """Raise ValueError when a numeric value is negative or non-finite."""

    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going up (2.5 -> 3, -2.5 -> -2)."""

    return int(math.floor(value + 0.5))


def calculate_landed_cost(equipment: EquipmentImportCost, exchange_rate: float) -> int:
    """Return the ETB unit price after freight, duty, local handling and margin.

    Duty is charged on the converted import value only; the margin is applied
    on top of the full landed base.
    """

    _ensure_non_negative_finite(exchange_rate, "exchange_rate")
    for name in (
        "import_usd",
        "shipping_usd",
        "customs_duty_percent",
        "inland_transport_etb",
        "margin_percent",
        "port_handling_etb",
    ):
        _ensure_non_negative_finite(float(getattr(equipment, name)), name)

    import_etb = equipment.import_usd * exchange_rate
    shipping_etb = equipment.shipping_usd * exchange_rate
    duty_etb = import_etb * (equipment.customs_duty_percent / 100.0)
    base_landed = (
        import_etb
        + shipping_etb
        + duty_etb
        + equipment.inland_transport_etb
        + equipment.port_handling_etb
    )
    return round_half_up(base_landed * (1.0 + equipment.margin_percent / 100.0))


def apply_landed_costs(
    constants: Constants,
    equipment: Iterable[EquipmentImportCost],
    exchange_rate: float,
) -> Constants:
    """Return a copy of ``constants`` with unit costs repriced from import quotes."""

    updates: Dict[str, float] = {}
    for item in equipment:
        field_name = EQUIPMENT_COST_FIELDS.get(item.equipment_type)
        if field_name is None:
            logger.warning("Skipping unmapped equipment type %r", item.equipment_type)
            continue
        updates[field_name] = float(calculate_landed_cost(item, exchange_rate))

    logger.info("Repriced %d unit cost(s) at %.2f ETB/USD", len(updates), exchange_rate)
    return replace(constants, **updates).validate()


def compute_loan_payment(
    total_capex: float,
    down_payment_pct: float = 20.0,
    term_years: int = 3,
    annual_interest_pct: float = 16.5,
) -> LoanQuote:
    """Quote a fixed monthly payment using the annuity (PMT) formula.

    ``P * r(1+r)^n / ((1+r)^n - 1)`` with ``r`` the monthly rate and ``n`` the
    number of monthly payments. A zero rate falls back to straight-line
    repayment; a fully paid-down CAPEX yields no loan at all.
    """

    _ensure_non_negative_finite(total_capex, "total_capex")
    _ensure_non_negative_finite(down_payment_pct, "down_payment_pct")
    _ensure_non_negative_finite(annual_interest_pct, "annual_interest_pct")
    if term_years <= 0:
        raise ValueError("term_years must be positive")

    down_payment = total_capex * (down_payment_pct / 100.0)
    loan_amount = total_capex - down_payment
    number_of_payments = int(term_years * 12)

    if loan_amount <= 0:
        return LoanQuote(
            loan_amount=0.0,
            down_payment=down_payment,
            monthly_payment=0.0,
            total_interest=0.0,
            total_payment=down_payment,
            number_of_payments=number_of_payments,
        )

    monthly_rate = (annual_interest_pct / 100.0) / 12.0
    if monthly_rate == 0:
        monthly_payment = loan_amount / number_of_payments
    else:
        growth = (1.0 + monthly_rate) ** number_of_payments
        monthly_payment = loan_amount * (monthly_rate * growth) / (growth - 1.0)

    total_loan_cost = monthly_payment * number_of_payments
    return LoanQuote(
        loan_amount=loan_amount,
        down_payment=down_payment,
        monthly_payment=monthly_payment,
        total_interest=total_loan_cost - loan_amount,
        total_payment=total_loan_cost + down_payment,
        number_of_payments=number_of_payments,
    )


__all__ = [
    "EQUIPMENT_COST_FIELDS",
    "EquipmentImportCost",
    "LoanQuote",
    "apply_landed_costs",
    "calculate_landed_cost",
    "compute_loan_payment",
    "round_half_up",
    "_ensure_non_negative_finite",
]
