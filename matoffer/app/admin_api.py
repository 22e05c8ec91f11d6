from __future__ import annotations

import os
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from matoffer.app.pricing.dimensions import m2_from_dimensions
from matoffer.shared.normalize.text import normalize_dimensions
from matoffer.store import catalog_store


class MatPriceIn(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: Literal["poslovni", "ergonomski", "zunanji", "design"]
    m2: Optional[float] = None
    dimensions: str = ""

    price_week_1: float = Field(0.0, ge=0)
    price_week_2: float = Field(0.0, ge=0)
    price_week_3: float = Field(0.0, ge=0)
    price_week_4: float = Field(0.0, ge=0)
    price_purchase: float = Field(0.0, ge=0)

    active: bool = True


class MatPriceOut(BaseModel):
    code: str
    name: str
    category: str
    m2: float
    dimensions: str
    prices: Dict[str, float]
    purchase_price: float
    is_active: bool


class OptibrushPriceIn(BaseModel):
    has_edge: bool
    has_drainage: bool
    is_standard: bool
    is_large: bool
    color_count: Literal["1", "2-3"]
    price_per_m2: float = Field(..., gt=0)


class CustomM2PriceIn(BaseModel):
    size_category: Literal["small", "large"]
    frequency: Literal["1", "2", "3", "4"]
    price_per_m2: float = Field(..., gt=0)


class BulkIncreaseIn(BaseModel):
    category: Literal["poslovni", "ergonomski", "zunanji", "design", "optibrush", "custom_m2"]
    percentage: float = Field(..., gt=-100, le=100)
    price_type: Literal["rental", "purchase", "all"] = "all"


router = APIRouter(prefix="/api/admin", tags=["admin"])


def require_admin(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")):
    admin_key = os.getenv("ADMIN_API_KEY")
    if admin_key and x_admin_key != admin_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _refresh_pricing() -> None:
    from matoffer.main import refresh_pricing

    refresh_pricing()


def _mat_price_to_out(data: Dict[str, object]) -> MatPriceOut:
    return MatPriceOut(
        code=str(data.get("code")),
        name=str(data.get("name")),
        category=str(data.get("category")),
        m2=float(data.get("m2") or 0.0),
        dimensions=str(data.get("dimensions") or ""),
        prices={str(k): float(v) for k, v in (data.get("prices") or {}).items()},
        purchase_price=float(data.get("purchase_price") or 0.0),
        is_active=bool(data.get("is_active", True)),
    )


@router.get("/prices", response_model=List[MatPriceOut])
def list_prices(
    category: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    _: None = Depends(require_admin),
):
    rows = catalog_store.list_mat_prices(category=category, include_inactive=include_inactive)
    return [_mat_price_to_out(row) for row in rows]


@router.post("/prices", response_model=MatPriceOut)
def create_or_update_price(price: MatPriceIn, _: None = Depends(require_admin)):
    payload = price.model_dump()
    payload["dimensions"] = normalize_dimensions(price.dimensions) or price.dimensions
    if price.m2 is None and payload["dimensions"]:
        payload["m2"] = m2_from_dimensions(payload["dimensions"])
    try:
        stored = catalog_store.upsert_mat_price(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    _refresh_pricing()
    return _mat_price_to_out(stored)


@router.delete("/prices/{code}", response_model=Dict[str, bool])
def delete_price(code: str, _: None = Depends(require_admin)):
    deleted = catalog_store.delete_mat_price(code)
    if not deleted:
        raise HTTPException(status_code=404, detail="Price not found")
    _refresh_pricing()
    return {"deleted": True}


@router.post("/prices/bulk-increase", response_model=Dict[str, object])
def bulk_increase(payload: BulkIncreaseIn, _: None = Depends(require_admin)):
    touched = catalog_store.bulk_price_increase(payload.category, payload.percentage, payload.price_type)
    _refresh_pricing()
    return {"category": payload.category, "updated": touched}


@router.get("/settings", response_model=Dict[str, float])
def get_settings(_: None = Depends(require_admin)):
    return catalog_store.get_price_settings()


@router.put("/settings", response_model=Dict[str, float])
def update_settings(values: Dict[str, float] = Body(...), _: None = Depends(require_admin)):
    for key, value in values.items():
        if value <= 0:
            raise HTTPException(status_code=400, detail=f"{key} must be positive")
        catalog_store.set_price_setting(key, value)
    _refresh_pricing()
    return catalog_store.get_price_settings()


@router.get("/optibrush", response_model=List[Dict[str, object]])
def list_optibrush(_: None = Depends(require_admin)):
    return catalog_store.list_optibrush_prices()


@router.put("/optibrush", response_model=Dict[str, object])
def update_optibrush(tier: OptibrushPriceIn, _: None = Depends(require_admin)):
    stored = catalog_store.upsert_optibrush_price(tier.model_dump())
    _refresh_pricing()
    return stored


@router.get("/custom-m2", response_model=List[Dict[str, object]])
def list_custom_m2(_: None = Depends(require_admin)):
    return catalog_store.list_custom_m2_prices()


@router.put("/custom-m2", response_model=Dict[str, object])
def update_custom_m2(rate: CustomM2PriceIn, _: None = Depends(require_admin)):
    stored = catalog_store.upsert_custom_m2_price(rate.size_category, rate.frequency, rate.price_per_m2)
    _refresh_pricing()
    return stored


@router.post("/seed", response_model=Dict[str, int])
def seed(overwrite: bool = Query(False), _: None = Depends(require_admin)):
    counts = catalog_store.seed_defaults(overwrite=overwrite)
    _refresh_pricing()
    return counts
