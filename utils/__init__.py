"""Shared configuration, load-profile and advisory helpers for the sizer."""

from utils.constants import DEFAULT_CONSTANTS, Constants, load_constants
from utils.economics import apply_landed_costs, calculate_landed_cost, compute_loan_payment
from utils.load_profiles import LoadItem, UserType, default_appliances, load_presets
from utils.optimality import OptimalityWarning, check_optimality

__all__ = [
    "DEFAULT_CONSTANTS",
    "Constants",
    "LoadItem",
    "OptimalityWarning",
    "UserType",
    "apply_landed_costs",
    "calculate_landed_cost",
    "check_optimality",
    "compute_loan_payment",
    "default_appliances",
    "load_constants",
    "load_presets",
]
