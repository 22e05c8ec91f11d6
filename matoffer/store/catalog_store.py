from __future__ import annotations

from datetime import datetime, timezone
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Session, SQLModel, UniqueConstraint, create_engine, select

from matoffer.app.utils import round_money
from matoffer.store import price_list

logger = logging.getLogger("matoffer.store")

DEFAULT_DB_URL = "sqlite:///matoffer/var/matoffer.db"
CATEGORIES = ("poslovni", "ergonomski", "zunanji", "design")
BULK_CATEGORIES = CATEGORIES + ("optibrush", "custom_m2")
PRICE_TYPES = ("rental", "purchase", "all")

SETTING_DESCRIPTIONS = {
    "special_shape_multiplier": "Posebne oblike (design/po meri)",
    "design_purchase_price_per_m2": "Odkup design cena na m²",
    "optibrush_special_shape_multiplier": "Posebne oblike (Optibrush)",
}

_engine = None
_engine_url = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatPrice(SQLModel, table=True):
    __tablename__ = "mat_prices"
    __table_args__ = (UniqueConstraint("code", name="uq_mat_price_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True)
    name: str
    category: str = Field(index=True)
    m2: float = Field(default=0.0)
    dimensions: str = Field(default="")

    # Rental price per replacement frequency (weeks)
    price_week_1: float = Field(default=0.0)
    price_week_2: float = Field(default=0.0)
    price_week_3: float = Field(default=0.0)
    price_week_4: float = Field(default=0.0)
    price_purchase: float = Field(default=0.0)

    is_active: bool = Field(default=True, index=True)
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True), index=True)


class OptibrushPrice(SQLModel, table=True):
    __tablename__ = "optibrush_prices"
    __table_args__ = (
        UniqueConstraint("has_edge", "has_drainage", "is_standard", "is_large", "color_count", name="uq_optibrush_tier"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    has_edge: bool
    has_drainage: bool
    is_standard: bool
    is_large: bool
    color_count: str
    price_per_m2: float
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class CustomM2Price(SQLModel, table=True):
    __tablename__ = "custom_m2_prices"
    __table_args__ = (UniqueConstraint("size_category", "frequency", name="uq_custom_m2"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    size_category: str  # small (<= 2 m²) | large
    frequency: str
    price_per_m2: float
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class PriceSetting(SQLModel, table=True):
    __tablename__ = "price_settings"
    __table_args__ = (UniqueConstraint("key", name="uq_price_setting_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True)
    value: float
    description: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


def current_db_url() -> str:
    return os.getenv("DB_URL") or os.getenv("MATOFFER_DB_URL") or DEFAULT_DB_URL


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///"):
        return
    filename = url.replace("sqlite:///", "", 1)
    if filename == ":memory:":
        return
    Path(filename).parent.mkdir(parents=True, exist_ok=True)


def _get_engine():
    global _engine, _engine_url
    url = current_db_url()
    if _engine is None or _engine_url != url:
        _ensure_sqlite_dir(url)
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, echo=False, connect_args=connect_args)
        _engine_url = url
    return _engine


def _session() -> Session:
    return Session(_get_engine())


def init_db() -> None:
    SQLModel.metadata.create_all(_get_engine())


def _mat_price_out(row: MatPrice) -> Dict[str, object]:
    data = row.model_dump(exclude={"id"})
    data["prices"] = {freq: getattr(row, f"price_week_{freq}") for freq in price_list.FREQUENCIES}
    data["purchase_price"] = row.price_purchase
    return data


# ---------- mat prices ----------


def upsert_mat_price(row: Dict[str, object]) -> Dict[str, object]:
    """Insert or update one catalog row keyed by ``code``.

    Accepts either ``price_week_1..4``/``price_purchase`` columns or the
    ``prices``/``purchase_price`` shape of the built-in list.
    """
    code = str(row.get("code") or "").strip()
    name = str(row.get("name") or "").strip()
    if not code or not name:
        raise ValueError("Mat price must contain non-empty 'code' and 'name'.")
    category = str(row.get("category") or "").strip()
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category '{category}' for {code}.")

    prices = row.get("prices") if isinstance(row.get("prices"), dict) else {}
    week_prices = {}
    for freq in price_list.FREQUENCIES:
        value = row.get(f"price_week_{freq}", prices.get(freq))
        week_prices[freq] = float(value) if value not in (None, "") else 0.0
    purchase = row.get("price_purchase", row.get("purchase_price"))
    purchase_val = float(purchase) if purchase not in (None, "") else 0.0
    if any(v < 0 for v in week_prices.values()) or purchase_val < 0:
        raise ValueError(f"Prices for {code} must not be negative.")

    is_active_raw = row.get("is_active", row.get("active"))
    is_active = bool(is_active_raw) if is_active_raw is not None else True

    with _session() as session:
        stmt = select(MatPrice).where(MatPrice.code == code)
        record = session.exec(stmt).one_or_none()
        if record is None:
            record = MatPrice(code=code, name=name, category=category)
            session.add(record)
        record.name = name
        record.category = category
        record.m2 = float(row.get("m2") or 0.0)
        record.dimensions = str(row.get("dimensions") or "")
        record.price_week_1 = week_prices["1"]
        record.price_week_2 = week_prices["2"]
        record.price_week_3 = week_prices["3"]
        record.price_week_4 = week_prices["4"]
        record.price_purchase = purchase_val
        record.is_active = is_active
        record.updated_at = _utcnow()
        session.commit()
        session.refresh(record)
        return _mat_price_out(record)


def list_mat_prices(category: Optional[str] = None, include_inactive: bool = False) -> List[Dict[str, object]]:
    with _session() as session:
        stmt = select(MatPrice)
        if category:
            stmt = stmt.where(MatPrice.category == category)
        if not include_inactive:
            stmt = stmt.where(MatPrice.is_active.is_(True))
        stmt = stmt.order_by(MatPrice.category, MatPrice.code)
        return [_mat_price_out(row) for row in session.exec(stmt).all()]


def get_mat_price(code: str) -> Optional[Dict[str, object]]:
    with _session() as session:
        record = session.exec(select(MatPrice).where(MatPrice.code == code)).one_or_none()
        return _mat_price_out(record) if record is not None else None


def delete_mat_price(code: str) -> bool:
    with _session() as session:
        record = session.exec(select(MatPrice).where(MatPrice.code == code)).one_or_none()
        if record is None:
            return False
        record.is_active = False
        record.updated_at = _utcnow()
        session.add(record)
        session.commit()
        return True


# ---------- Optibrush tiers ----------


def upsert_optibrush_price(row: Dict[str, object]) -> Dict[str, object]:
    color = str(row.get("color_count") or "1")
    if color not in ("1", "2-3"):
        raise ValueError(f"color_count must be '1' or '2-3', got '{color}'.")
    price = float(row.get("price_per_m2") or 0.0)
    if price <= 0:
        raise ValueError("price_per_m2 must be positive.")
    key = {
        "has_edge": bool(row.get("has_edge")),
        "has_drainage": bool(row.get("has_drainage")),
        "is_standard": bool(row.get("is_standard")),
        "is_large": bool(row.get("is_large")),
    }
    with _session() as session:
        stmt = select(OptibrushPrice).where(
            OptibrushPrice.has_edge == key["has_edge"],
            OptibrushPrice.has_drainage == key["has_drainage"],
            OptibrushPrice.is_standard == key["is_standard"],
            OptibrushPrice.is_large == key["is_large"],
            OptibrushPrice.color_count == color,
        )
        record = session.exec(stmt).one_or_none()
        if record is None:
            record = OptibrushPrice(color_count=color, price_per_m2=price, **key)
            session.add(record)
        record.price_per_m2 = price
        record.updated_at = _utcnow()
        session.commit()
        session.refresh(record)
        return record.model_dump(exclude={"id"})


def list_optibrush_prices() -> List[Dict[str, object]]:
    with _session() as session:
        return [row.model_dump(exclude={"id"}) for row in session.exec(select(OptibrushPrice)).all()]


# ---------- custom m² rates ----------


def upsert_custom_m2_price(size_category: str, frequency: str, price_per_m2: float) -> Dict[str, object]:
    if size_category not in ("small", "large"):
        raise ValueError(f"size_category must be 'small' or 'large', got '{size_category}'.")
    frequency = str(frequency)
    if frequency not in price_list.FREQUENCIES:
        raise ValueError(f"Unknown frequency '{frequency}'.")
    with _session() as session:
        stmt = select(CustomM2Price).where(
            CustomM2Price.size_category == size_category, CustomM2Price.frequency == frequency
        )
        record = session.exec(stmt).one_or_none()
        if record is None:
            record = CustomM2Price(size_category=size_category, frequency=frequency, price_per_m2=float(price_per_m2))
            session.add(record)
        record.price_per_m2 = float(price_per_m2)
        record.updated_at = _utcnow()
        session.commit()
        session.refresh(record)
        return record.model_dump(exclude={"id"})


def list_custom_m2_prices() -> List[Dict[str, object]]:
    with _session() as session:
        return [row.model_dump(exclude={"id"}) for row in session.exec(select(CustomM2Price)).all()]


# ---------- settings ----------


def get_price_settings() -> Dict[str, float]:
    with _session() as session:
        return {row.key: row.value for row in session.exec(select(PriceSetting)).all()}


def set_price_setting(key: str, value: float, description: Optional[str] = None) -> Dict[str, object]:
    key = (key or "").strip()
    if not key:
        raise ValueError("Setting key must be non-empty.")
    with _session() as session:
        record = session.exec(select(PriceSetting).where(PriceSetting.key == key)).one_or_none()
        if record is None:
            record = PriceSetting(key=key, value=float(value))
            session.add(record)
        record.value = float(value)
        record.description = description or record.description or SETTING_DESCRIPTIONS.get(key)
        record.updated_at = _utcnow()
        session.commit()
        session.refresh(record)
        return record.model_dump(exclude={"id"})


# ---------- bulk operations ----------


def _raise(value: float, multiplier: float) -> float:
    return round_money(value * multiplier)


def bulk_price_increase(category: str, percentage: float, price_type: str = "all") -> int:
    """Raise prices of one category by ``percentage`` percent; returns the number of rows touched."""
    if category not in BULK_CATEGORIES:
        raise ValueError(f"Unknown category '{category}'.")
    if price_type not in PRICE_TYPES:
        raise ValueError(f"Unknown price type '{price_type}'.")
    multiplier = 1 + float(percentage) / 100
    now = _utcnow()
    touched = 0
    with _session() as session:
        if category == "optibrush":
            for record in session.exec(select(OptibrushPrice)).all():
                record.price_per_m2 = _raise(record.price_per_m2, multiplier)
                record.updated_at = now
                session.add(record)
                touched += 1
        elif category == "custom_m2":
            for record in session.exec(select(CustomM2Price)).all():
                record.price_per_m2 = _raise(record.price_per_m2, multiplier)
                record.updated_at = now
                session.add(record)
                touched += 1
        else:
            for record in session.exec(select(MatPrice).where(MatPrice.category == category)).all():
                if price_type in ("rental", "all"):
                    for freq in price_list.FREQUENCIES:
                        attr = f"price_week_{freq}"
                        setattr(record, attr, _raise(getattr(record, attr), multiplier))
                if price_type in ("purchase", "all"):
                    record.price_purchase = _raise(record.price_purchase, multiplier)
                record.updated_at = now
                session.add(record)
                touched += 1
        session.commit()
    logger.info("bulk increase %s/%s by %s%% touched %d row(s)", category, price_type, percentage, touched)
    return touched


def _optibrush_seed_rows() -> Iterable[Dict[str, object]]:
    from matoffer.app.pricing.optibrush import BUILTIN_TIERS

    for (has_edge, has_drainage, is_standard, is_large, color), price in BUILTIN_TIERS.items():
        yield {
            "has_edge": has_edge,
            "has_drainage": has_drainage,
            "is_standard": is_standard,
            "is_large": is_large,
            "color_count": color,
            "price_per_m2": price,
        }


def seed_defaults(overwrite: bool = False) -> Dict[str, int]:
    """Fill empty tables from the built-in price list; ``overwrite`` re-applies it everywhere."""
    counts = {"mat_prices": 0, "optibrush_prices": 0, "custom_m2_prices": 0, "price_settings": 0}
    if overwrite or not list_mat_prices(include_inactive=True):
        for row in price_list.PRICE_LIST:
            upsert_mat_price(row)
            counts["mat_prices"] += 1
    if overwrite or not list_optibrush_prices():
        for row in _optibrush_seed_rows():
            upsert_optibrush_price(row)
            counts["optibrush_prices"] += 1
    if overwrite or not list_custom_m2_prices():
        for size, rates in price_list.CUSTOM_M2_PRICES.items():
            for freq, value in rates.items():
                upsert_custom_m2_price(size, freq, value)
                counts["custom_m2_prices"] += 1
    existing = get_price_settings()
    defaults = {
        "special_shape_multiplier": price_list.SPECIAL_SHAPE_MULTIPLIER,
        "design_purchase_price_per_m2": price_list.DESIGN_PURCHASE_PRICE_PER_M2,
        "optibrush_special_shape_multiplier": price_list.OPTIBRUSH_SPECIAL_SHAPE_MULTIPLIER,
    }
    for key, value in defaults.items():
        if overwrite or key not in existing:
            set_price_setting(key, value)
            counts["price_settings"] += 1
    return counts
