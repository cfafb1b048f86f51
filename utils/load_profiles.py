"""Appliance load items, daily load-shape templates and starter presets."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadItem:
    """One appliance line in a load profile.

    Callers validate inputs before sizing: ``watts`` > 0, ``quantity`` >= 1 and
    ``hours`` within 0-24. The ``name`` is a label only, except for the
    food-service heuristic used when shaping the hourly load curve.
    """

    name: str
    watts: float
    quantity: int = 1
    hours: float = 0.0

    @property
    def connected_watts(self) -> float:
        return self.watts * self.quantity

    @property
    def daily_energy_wh(self) -> float:
        return self.watts * self.quantity * self.hours

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LoadItem":
        """Build an item from JSON, accepting ``wattage``/``dailyHours`` aliases."""

        watts = payload.get("watts", payload.get("wattage"))
        hours = payload.get("hours", payload.get("dailyHours", 0.0))
        if watts is None:
            raise ValueError("Load item requires 'watts'")
        return cls(
            name=str(payload.get("name", "")),
            watts=float(watts),
            quantity=int(payload.get("quantity", 1)),
            hours=float(hours),
        )


class UserType(str, Enum):
    RESIDENTIAL = "residential"
    SME = "sme"
    COMMERCIAL = "commercial"

    @property
    def is_commercial(self) -> bool:
        return self is not UserType.RESIDENTIAL

    @classmethod
    def from_value(cls, value: "UserType | str | None") -> "UserType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        logger.warning("Unknown user type %r; treating as residential", value)
        return cls.RESIDENTIAL


class LoadShape(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL_HOURS = "commercial_hours"
    FOOD_SERVICE = "food_service"


# Hour-of-day weights (0..23). Each template is renormalized before use, so the
# raw values only need the right shape.
_RAW_TEMPLATES: Dict[LoadShape, Tuple[float, ...]] = {
    # Morning and evening humps.
    LoadShape.RESIDENTIAL: (
        0.02, 0.02, 0.02, 0.02, 0.02, 0.04,
        0.08, 0.10, 0.06, 0.04, 0.03, 0.03,
        0.03, 0.03, 0.03, 0.04, 0.05, 0.08,
        0.10, 0.10, 0.08, 0.06, 0.04, 0.03,
    ),
    # Office plateau from 09:00 to 17:00.
    LoadShape.COMMERCIAL_HOURS: (
        0.01, 0.01, 0.01, 0.01, 0.01, 0.01,
        0.02, 0.03, 0.05, 0.09, 0.09, 0.09,
        0.09, 0.09, 0.09, 0.09, 0.09, 0.05,
        0.03, 0.02, 0.01, 0.01, 0.01, 0.01,
    ),
    # Breakfast, lunch and dinner service peaks.
    LoadShape.FOOD_SERVICE: (
        0.01, 0.01, 0.01, 0.01, 0.01, 0.02,
        0.05, 0.09, 0.08, 0.05, 0.04, 0.06,
        0.09, 0.08, 0.04, 0.03, 0.04, 0.06,
        0.09, 0.08, 0.05, 0.03, 0.02, 0.01,
    ),
}

LOAD_SHAPE_NOTES: Dict[LoadShape, str] = {
    LoadShape.RESIDENTIAL: (
        "Residential profile assumed: morning and evening usage peaks with low daytime demand."
    ),
    LoadShape.COMMERCIAL_HOURS: (
        "Business-hours profile assumed: steady demand from 09:00 to 17:00 with light overnight load."
    ),
    LoadShape.FOOD_SERVICE: (
        "Coffee shop / restaurant profile detected: breakfast, lunch and dinner service peaks."
    ),
}

# Case-insensitive substrings that mark a commercial load list as food service.
# Best-effort only; callers can pass their own allowlist.
DEFAULT_FOOD_SERVICE_KEYWORDS: Tuple[str, ...] = (
    "espresso",
    "grinder",
    "roaster",
    "restaurant",
    "cafe",
    "café",
    "bakery",
    "fryer",
    "commercial oven",
    "coffee shop",
)


def normalized_template(shape: LoadShape) -> np.ndarray:
    """Return the 24-hour weights for ``shape`` scaled to sum to 1.0."""

    weights = np.asarray(_RAW_TEMPLATES[shape], dtype=float)
    return weights / weights.sum()


def is_food_service(
    appliances: Iterable[LoadItem | Mapping[str, Any]],
    keywords: Sequence[str] = DEFAULT_FOOD_SERVICE_KEYWORDS,
) -> bool:
    lowered = [k.lower() for k in keywords if k]
    for item in appliances:
        name = item.get("name", "") if isinstance(item, Mapping) else item.name
        name = str(name or "").lower()
        if any(keyword in name for keyword in lowered):
            return True
    return False


def select_load_shape(
    user_type: UserType | str | None,
    appliances: Iterable[LoadItem | Mapping[str, Any]],
    keywords: Sequence[str] = DEFAULT_FOOD_SERVICE_KEYWORDS,
) -> LoadShape:
    """Classify the caller's profile into one of the hourly load templates."""

    resolved = UserType.from_value(user_type)
    if not resolved.is_commercial:
        return LoadShape.RESIDENTIAL
    if is_food_service(appliances, keywords):
        return LoadShape.FOOD_SERVICE
    return LoadShape.COMMERCIAL_HOURS


def _items(rows: Sequence[Tuple[str, float, int, float]]) -> List[LoadItem]:
    return [LoadItem(name, watts, quantity, hours) for name, watts, quantity, hours in rows]


LOAD_PRESETS: Dict[UserType, Dict[str, List[LoadItem]]] = {
    UserType.RESIDENTIAL: {
        "Small Apartment": _items(
            [
                ("LED Bulbs (Pack)", 40, 1, 5),
                ("WiFi Router", 10, 1, 24),
                ("Refrigerator", 150, 1, 24),
                ("LCD TV", 100, 1, 4),
            ]
        ),
        "3-Bedroom Villa": _items(
            [
                ("LED Bulbs (Pack)", 100, 1, 6),
                ("WiFi Router", 15, 1, 24),
                ("Refrigerator", 200, 1, 24),
                ("LCD TV", 150, 2, 4),
                ("Water Pump", 750, 1, 1),
            ]
        ),
    },
    UserType.SME: {
        "Small Office": _items(
            [
                ("Office Lighting", 200, 1, 9),
                ("WiFi / Network", 30, 1, 24),
                ("Laptop", 65, 4, 8),
                ("Printer / Copier", 300, 1, 1),
            ]
        ),
        "Retail Shop": _items(
            [
                ("Office Lighting", 300, 1, 10),
                ("POS Terminal", 50, 1, 10),
                ("Security Camera System", 40, 1, 24),
            ]
        ),
    },
}


@dataclass(frozen=True)
class ApplianceCategory:
    """A group of pickable appliances with typical wattage and daily hours."""

    id: str
    label: str
    description: str
    items: Tuple[LoadItem, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "items": [item.to_dict() for item in self.items],
        }


APPLIANCE_CATEGORIES: Dict[UserType, Tuple[ApplianceCategory, ...]] = {
    UserType.RESIDENTIAL: (
        ApplianceCategory(
            "essential",
            "Essential Loads",
            "Critical for daily living",
            tuple(
                _items(
                    [
                        ("LED Bulbs (Pack)", 50, 1, 6),
                        ("Refrigerator", 150, 1, 24),
                        ("WiFi Router", 15, 1, 24),
                        ("LCD TV", 100, 1, 4),
                        ("Phone Chargers", 20, 1, 4),
                    ]
                )
            ),
        ),
        ApplianceCategory(
            "comfort",
            "Comfort & Kitchen",
            "Lifestyle & Convenience",
            tuple(
                _items(
                    [
                        ("Air Conditioner", 1500, 1, 6),
                        ("Washing Machine", 500, 1, 1),
                        ("Water Pump", 750, 1, 0.5),
                        ("Microwave", 1200, 1, 0.3),
                        ("Electric Kettle", 2000, 1, 0.2),
                        ("Iron", 1500, 1, 0.3),
                        ("Electric Cooker", 3000, 1, 1),
                    ]
                )
            ),
        ),
    ),
    UserType.SME: (
        ApplianceCategory(
            "core",
            "Core Operations",
            "Basic office functionality",
            tuple(
                _items(
                    [
                        ("Office Lighting", 150, 1, 9),
                        ("Desktop PC", 250, 1, 9),
                        ("Laptop", 65, 1, 8),
                        ("WiFi / Network", 30, 1, 24),
                        ("Printer / Copier", 400, 1, 1),
                    ]
                )
            ),
        ),
        ApplianceCategory(
            "critical",
            "Critical Systems",
            "High dependency infrastructure",
            tuple(
                _items(
                    [
                        ("Server Rack (Small)", 800, 1, 24),
                        ("Security Camera System", 60, 1, 24),
                        ("POS Terminal", 50, 1, 10),
                        ("Medical Fridge", 200, 1, 24),
                    ]
                )
            ),
        ),
    ),
}


def appliance_categories(user_type: UserType | str | None) -> Tuple[ApplianceCategory, ...]:
    """Return the appliance picker groups for ``user_type``; commercial shares the SME list."""

    resolved = UserType.from_value(user_type)
    return APPLIANCE_CATEGORIES[UserType.RESIDENTIAL if not resolved.is_commercial else UserType.SME]


def default_appliances(user_type: UserType | str | None) -> List[LoadItem]:
    """Return the starter load list shown to a new visitor of ``user_type``."""

    if not UserType.from_value(user_type).is_commercial:
        return _items(
            [
                ("LED Bulbs (Pack)", 50, 1, 4),
                ("Refrigerator", 150, 1, 24),
                ("WiFi Router", 10, 1, 24),
                ("TV (LED)", 80, 1, 4),
            ]
        )
    return _items(
        [
            ("Desktop Computer", 200, 2, 8),
            ("Printer", 300, 1, 1),
            ("WiFi Router", 15, 1, 24),
            ("Office Lighting", 100, 1, 8),
            ("Coffee Machine", 1000, 1, 0.5),
        ]
    )


def load_presets(user_type: UserType | str | None) -> Dict[str, List[LoadItem]]:
    resolved = UserType.from_value(user_type)
    key = UserType.RESIDENTIAL if not resolved.is_commercial else UserType.SME
    return {label: list(items) for label, items in LOAD_PRESETS[key].items()}


__all__ = [
    "APPLIANCE_CATEGORIES",
    "ApplianceCategory",
    "DEFAULT_FOOD_SERVICE_KEYWORDS",
    "LOAD_PRESETS",
    "LOAD_SHAPE_NOTES",
    "LoadItem",
    "LoadShape",
    "UserType",
    "appliance_categories",
    "default_appliances",
    "is_food_service",
    "load_presets",
    "normalized_template",
    "select_load_shape",
]
