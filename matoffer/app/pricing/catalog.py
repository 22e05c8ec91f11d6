from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from matoffer.app.utils import to_float
from matoffer.shared.normalize.text import normalize_code, normalize_dimensions
from matoffer.store import price_list

logger = logging.getLogger("matoffer.catalog")

TierKey = Tuple[bool, bool, bool, bool, str]


@dataclass(frozen=True)
class CatalogEntry:
    code: str
    name: str
    category: str
    dimensions: str
    m2: float
    prices: Dict[str, float]
    purchase_price: float

    def rental_price(self, frequency: str) -> float:
        return float(self.prices.get(str(frequency)) or 0.0)

    @property
    def replacement_cost(self) -> float:
        return self.purchase_price

    def to_dict(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "dimensions": self.dimensions,
            "m2": self.m2,
            "prices": dict(self.prices),
            "purchase_price": self.purchase_price,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "CatalogEntry":
        prices = data.get("prices")
        if not isinstance(prices, Mapping):
            prices = {freq: data.get(f"price_week_{freq}") for freq in price_list.FREQUENCIES}
        purchase = data.get("purchase_price", data.get("price_purchase"))
        return cls(
            code=str(data.get("code") or ""),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or ""),
            dimensions=str(data.get("dimensions") or ""),
            m2=to_float(data.get("m2")),
            prices={str(k): to_float(v) for k, v in prices.items()},
            purchase_price=to_float(purchase),
        )


class PriceCatalog:
    """Code -> price lookup over a snapshot of catalog rows.

    Lookups never raise; an unknown code yields ``None`` and callers keep
    whatever price the item already had.
    """

    def __init__(self, entries: Iterable[CatalogEntry]):
        self._entries: List[CatalogEntry] = list(entries)
        self._by_code: Dict[str, CatalogEntry] = {normalize_code(e.code): e for e in self._entries}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[CatalogEntry]:
        return list(self._entries)

    @classmethod
    def builtin(cls) -> "PriceCatalog":
        return cls(CatalogEntry.from_mapping(row) for row in price_list.PRICE_LIST)

    @classmethod
    def from_store(cls) -> "PriceCatalog":
        from matoffer.store import catalog_store

        rows = catalog_store.list_mat_prices()
        if not rows:
            logger.warning("mat_prices table is empty, using built-in price list")
            return cls.builtin()
        return cls(CatalogEntry.from_mapping(row) for row in rows)

    def lookup(self, code: Optional[str]) -> Optional[CatalogEntry]:
        key = normalize_code(code)
        if not key:
            return None
        exact = self._by_code.get(key)
        if exact is not None:
            return exact
        for norm, entry in self._by_code.items():
            if norm.startswith(key) or key.startswith(norm):
                return entry
        logger.debug("catalog miss for code %s", code)
        return None

    def rental_price(self, code: Optional[str], frequency: str) -> float:
        entry = self.lookup(code)
        return entry.rental_price(frequency) if entry else 0.0

    def purchase_price(self, code: Optional[str]) -> float:
        entry = self.lookup(code)
        return entry.purchase_price if entry else 0.0

    def replacement_cost(self, code: Optional[str]) -> float:
        return self.purchase_price(code)

    def find_by_dimensions(self, size: Optional[str], category: Optional[str] = None) -> Optional[CatalogEntry]:
        wanted = normalize_dimensions(size)
        if not wanted:
            return None
        for entry in self._entries:
            if category and entry.category != category:
                continue
            if normalize_dimensions(entry.dimensions) == wanted:
                return entry
        return None

    def standard_types(self) -> List[CatalogEntry]:
        return [e for e in self._entries if e.category != "design"]

    def design_sizes(self) -> List[CatalogEntry]:
        return [e for e in self._entries if e.category == "design"]


@dataclass
class PricingSettings:
    special_shape_multiplier: float = price_list.SPECIAL_SHAPE_MULTIPLIER
    purchase_price_per_m2: float = price_list.DESIGN_PURCHASE_PRICE_PER_M2
    optibrush_special_shape_multiplier: float = price_list.OPTIBRUSH_SPECIAL_SHAPE_MULTIPLIER
    custom_m2_rates: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {size: dict(rates) for size, rates in price_list.CUSTOM_M2_PRICES.items()}
    )
    optibrush_tier_table: Optional[Dict[TierKey, float]] = None

    def custom_rate(self, m2: float, frequency: str) -> float:
        size = "small" if m2 <= price_list.SMALL_AREA_LIMIT_M2 else "large"
        rates = self.custom_m2_rates.get(size) or price_list.CUSTOM_M2_PRICES[size]
        rate = rates.get(str(frequency))
        if rate is None:
            rate = price_list.CUSTOM_M2_PRICES[size].get(str(frequency), 0.0)
        return float(rate)

    def apply_overrides(self, values: Mapping[str, object]) -> "PricingSettings":
        """Merge a flat settings mapping (DB rows or YAML) into this instance."""
        if "special_shape_multiplier" in values:
            self.special_shape_multiplier = to_float(values["special_shape_multiplier"], self.special_shape_multiplier)
        for key in ("purchase_price_per_m2", "design_purchase_price_per_m2"):
            if key in values:
                self.purchase_price_per_m2 = to_float(values[key], self.purchase_price_per_m2)
        if "optibrush_special_shape_multiplier" in values:
            self.optibrush_special_shape_multiplier = to_float(
                values["optibrush_special_shape_multiplier"], self.optibrush_special_shape_multiplier
            )
        rates = values.get("custom_m2_rates")
        if isinstance(rates, Mapping):
            for size, by_freq in rates.items():
                if size not in ("small", "large") or not isinstance(by_freq, Mapping):
                    continue
                for freq, value in by_freq.items():
                    self.custom_m2_rates.setdefault(size, {})[str(freq)] = to_float(value)
        tiers = values.get("optibrush_tiers")
        if isinstance(tiers, list):
            self.optibrush_tier_table = tier_table_from_rows(tiers)
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "PricingSettings":
        settings = cls()
        if not path.exists():
            logger.warning("pricing settings file %s not found, using defaults", path)
            return settings
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: expected a mapping at top level")
        return settings.apply_overrides(data)

    @classmethod
    def from_store(cls) -> "PricingSettings":
        from matoffer.store import catalog_store

        settings = cls().apply_overrides(catalog_store.get_price_settings())
        rates: Dict[str, Dict[str, float]] = {}
        for row in catalog_store.list_custom_m2_prices():
            rates.setdefault(str(row["size_category"]), {})[str(row["frequency"])] = float(row["price_per_m2"])
        if rates:
            settings.apply_overrides({"custom_m2_rates": rates})
        tier_rows = catalog_store.list_optibrush_prices()
        if tier_rows:
            settings.optibrush_tier_table = tier_table_from_rows(tier_rows)
        return settings


def tier_table_from_rows(rows: Iterable[Mapping[str, object]]) -> Dict[TierKey, float]:
    table: Dict[TierKey, float] = {}
    for row in rows:
        key = (
            bool(row.get("has_edge")),
            bool(row.get("has_drainage")),
            bool(row.get("is_standard")),
            bool(row.get("is_large")),
            str(row.get("color_count") or "1"),
        )
        table[key] = to_float(row.get("price_per_m2"))
    return table
