from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from services.financial_core import FinancialInputs, calculate_financials
from services.hourly_energy import calculate_hourly_energy
from services.sizing_core import Phase, SystemSize, calculate_system_size
from utils.constants import Constants, load_constants
from utils.economics import (
    EQUIPMENT_COST_FIELDS,
    EquipmentImportCost,
    apply_landed_costs,
    calculate_landed_cost,
    compute_loan_payment,
)
from utils.load_profiles import (
    DEFAULT_FOOD_SERVICE_KEYWORDS,
    LoadItem,
    UserType,
    appliance_categories,
    default_appliances,
    load_presets,
)
from utils.optimality import check_optimality

logger = logging.getLogger(__name__)


class LoadItemPayload(BaseModel):
    name: str = ""
    watts: float = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    hours: float = Field(default=0.0, ge=0, le=24)

    def to_item(self) -> LoadItem:
        return LoadItem(name=self.name, watts=self.watts, quantity=self.quantity, hours=self.hours)


class SizeRequest(BaseModel):
    load_items: List[LoadItemPayload] = Field(default_factory=list)
    outage_hours: float = Field(default=4.0, gt=0)
    phase: str = Phase.UNKNOWN.value
    constants: Dict[str, float] = Field(default_factory=dict)

    @field_validator("phase")
    @classmethod
    def _validate_phase(cls, value: str) -> str:
        return Phase.from_value(value).value


class SystemSizeRequest(BaseModel):
    """Base for requests that reuse a system size returned by ``/size``."""

    model_config = ConfigDict(extra="forbid")

    system_size: Dict[str, Any]

    def build_system_size(self) -> SystemSize:
        try:
            return SystemSize.from_dict(self.system_size)
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid system_size: {exc}") from exc


class FinancialRequest(SystemSizeRequest):
    outage_hours_per_day: float = Field(default=4.0, ge=0)
    constants: Dict[str, float] = Field(default_factory=dict)


class HourlyRequest(SystemSizeRequest):
    total_daily_energy_wh: Optional[float] = Field(default=None, ge=0)
    user_type: str = UserType.RESIDENTIAL.value
    appliances: List[LoadItemPayload] = Field(default_factory=list)
    food_service_keywords: Optional[List[str]] = None


class OptimalityRequest(SystemSizeRequest):
    outage_hours: float = Field(default=4.0, gt=0)


class CalculateRequest(SizeRequest):
    user_type: str = UserType.RESIDENTIAL.value
    food_service_keywords: Optional[List[str]] = None


class EquipmentPayload(BaseModel):
    equipment_type: str
    import_usd: float = Field(ge=0)
    shipping_usd: float = Field(default=0.0, ge=0)
    customs_duty_percent: float = Field(default=0.0, ge=0)
    inland_transport_etb: float = Field(default=0.0, ge=0)
    port_handling_etb: float = Field(default=0.0, ge=0)
    margin_percent: float = Field(default=0.0, ge=0)

    def to_equipment(self) -> EquipmentImportCost:
        return EquipmentImportCost(**self.model_dump())


class LandedCostRequest(BaseModel):
    exchange_rate: float = Field(gt=0)
    equipment: List[EquipmentPayload]
    constants: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_equipment(self) -> "LandedCostRequest":
        if not self.equipment:
            raise ValueError("Provide at least one equipment row in 'equipment'.")
        return self


class LoanRequest(BaseModel):
    total_capex: float = Field(ge=0)
    down_payment_pct: float = Field(default=20.0, ge=0, le=100)
    term_years: int = Field(default=3, ge=1)
    annual_interest_pct: float = Field(default=16.5, ge=0)


@lru_cache(maxsize=1)
def _base_constants() -> Constants:
    return load_constants()


def _resolve_constants(overrides: Optional[Dict[str, float]] = None) -> Constants:
    """Merge request overrides onto the configured snapshot.

    Out-of-range or unknown constants map to HTTP 400. An unreadable or
    malformed override file is a server fault and maps to HTTP 500.
    """

    try:
        base = _base_constants()
        if not overrides:
            return base
        return Constants.from_mapping(overrides, base=base)
    except (OSError, json.JSONDecodeError) as exc:
        logger.exception("Could not load the constants override file")
        raise HTTPException(status_code=500, detail="Calculation failed") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _keywords(values: Optional[List[str]]) -> tuple[str, ...]:
    return tuple(values) if values is not None else DEFAULT_FOOD_SERVICE_KEYWORDS


app = FastAPI(
    title="CRS Backup Power Sizer API",
    description="Solar, battery and inverter sizing with a diesel cost comparison.",
    version="0.1.0",
)


_default_cors_origins = [
    # Vite dev/preview servers
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
]
_allowed_origins_env = os.getenv("CRS_CORS_ORIGINS", "")
_allowed_origins = [
    origin.strip()
    for origin in _allowed_origins_env.split(",")
    if origin.strip()
] or _default_cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> Dict[str, str]:
    """Simple liveness probe for container orchestrators."""
    return {"status": "ok"}


@app.get("/constants")
def constants() -> Dict[str, float]:
    """Return the active constants snapshot keyed by UPPER_CASE names."""

    return _resolve_constants().to_dict()


@app.get("/presets")
def presets(user_type: str = UserType.RESIDENTIAL.value) -> Dict[str, Any]:
    """Starter appliance list, appliance picker groups and named presets for a visitor type."""

    return {
        "default": [item.to_dict() for item in default_appliances(user_type)],
        "categories": [category.to_dict() for category in appliance_categories(user_type)],
        "presets": {
            label: [item.to_dict() for item in items]
            for label, items in load_presets(user_type).items()
        },
    }


@app.post("/size")
def size(request: SizeRequest) -> Dict[str, Any]:
    """Size PV, battery and inverter hardware for a load list."""

    cfg = _resolve_constants(request.constants)
    items = [payload.to_item() for payload in request.load_items]
    return calculate_system_size(items, request.outage_hours, request.phase, cfg).to_dict()


@app.post("/financials")
def financials(request: FinancialRequest) -> Dict[str, Any]:
    """Project CAPEX and the seven-year solar vs diesel cost walk."""

    cfg = _resolve_constants(request.constants)
    system_size = request.build_system_size()
    model = calculate_financials(system_size, FinancialInputs(request.outage_hours_per_day), cfg)
    return model.to_dict()


@app.post("/hourly")
def hourly(request: HourlyRequest) -> Dict[str, Any]:
    """Return the synthetic 24-hour energy balance for a sized system."""

    system_size = request.build_system_size()
    total_wh = (
        request.total_daily_energy_wh
        if request.total_daily_energy_wh is not None
        else system_size.total_daily_energy_wh
    )
    result = calculate_hourly_energy(
        system_size,
        total_wh,
        request.user_type,
        [payload.to_item() for payload in request.appliances],
        food_service_keywords=_keywords(request.food_service_keywords),
    )
    return result.to_dict()


@app.post("/optimality")
def optimality(request: OptimalityRequest) -> Dict[str, Any]:
    """Return sizing advisories for a system and outage duration."""

    system_size = request.build_system_size()
    notes = check_optimality(system_size, request.outage_hours)
    return {"warnings": [note.to_dict() for note in notes]}


@app.post("/calculate")
def calculate(request: CalculateRequest) -> Dict[str, Any]:
    """Run sizing, financials, the hourly balance and advisories in one pass."""

    cfg = _resolve_constants(request.constants)
    items = [payload.to_item() for payload in request.load_items]
    try:
        system_size = calculate_system_size(items, request.outage_hours, request.phase, cfg)
        model = calculate_financials(system_size, FinancialInputs(request.outage_hours), cfg)
        hourly_result = calculate_hourly_energy(
            system_size,
            system_size.total_daily_energy_wh,
            request.user_type,
            items,
            food_service_keywords=_keywords(request.food_service_keywords),
        )
        notes = check_optimality(system_size, request.outage_hours)
    except Exception as exc:
        logger.exception("Calculation failed for %d load item(s)", len(items))
        raise HTTPException(status_code=500, detail="Calculation failed") from exc

    return {
        "system_size": system_size.to_dict(),
        "financials": model.to_dict(),
        "hourly": hourly_result.to_dict(),
        "warnings": [note.to_dict() for note in notes],
    }


@app.post("/landed-costs")
def landed_costs(request: LandedCostRequest) -> Dict[str, Any]:
    """Price imported equipment in ETB and return the repriced constants."""

    base = _resolve_constants(request.constants)
    equipment = [payload.to_equipment() for payload in request.equipment]
    try:
        rows = [
            {
                "equipment_type": item.equipment_type,
                "landed_cost_etb": calculate_landed_cost(item, request.exchange_rate),
                "constant": EQUIPMENT_COST_FIELDS[item.equipment_type].upper()
                if item.equipment_type in EQUIPMENT_COST_FIELDS
                else None,
            }
            for item in equipment
        ]
        repriced = apply_landed_costs(base, equipment, request.exchange_rate)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {"rows": rows, "constants": repriced.to_dict()}


@app.post("/loan")
def loan(request: LoanRequest) -> Dict[str, Any]:
    """Quote monthly financing for a system CAPEX."""

    try:
        quote = compute_loan_payment(
            request.total_capex,
            down_payment_pct=request.down_payment_pct,
            term_years=request.term_years,
            annual_interest_pct=request.annual_interest_pct,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return asdict(quote)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=False)
