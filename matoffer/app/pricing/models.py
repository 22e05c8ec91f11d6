from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from matoffer.app.pricing.discount import DiscountedPrice
from matoffer.app.pricing.optibrush import OptibrushConfig
from matoffer.app.pricing.seasonal import SeasonalSchedule

ITEM_TYPES = ("standard", "design", "custom", "optibrush")
PURPOSES = ("najem", "nakup")
OFFER_TYPES = ("najem", "nakup", "primerjava", "dodatna")
FREQUENCIES = ("1", "2", "3", "4")

RENTAL = "najem"
PURCHASE = "nakup"

STEP_TYPE = "type"
STEP_ITEMS_NAKUP = "items-nakup"
STEP_ITEMS_NAJEM = "items-najem"
STEP_PREVIEW = "preview"

DEFAULT_FREQUENCY = "2"
DEFAULT_ITEM_NAME = "Predpražnik"


def _new_id() -> str:
    return uuid4().hex[:12]


@dataclass
class OfferItem:
    item_type: str = "standard"
    purpose: Optional[str] = None
    code: str = ""
    name: str = DEFAULT_ITEM_NAME
    size: str = ""
    m2: float = 0.0
    quantity: Optional[int] = 1
    pricing: DiscountedPrice = field(default_factory=DiscountedPrice)
    replacement_cost: Optional[float] = None
    customized: bool = False
    special_shape: bool = False
    schedule: Optional[SeasonalSchedule] = None
    optibrush: Optional[OptibrushConfig] = None
    optibrush_price_per_m2: Optional[float] = None
    frequency_override: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @property
    def price_per_unit(self) -> float:
        return self.pricing.price

    @property
    def original_price(self) -> float:
        return self.pricing.base_price

    @property
    def discount(self) -> int:
        return self.pricing.discount

    @property
    def seasonal(self) -> bool:
        return self.schedule is not None

    def is_purchase(self, in_purchase_list: bool = False) -> bool:
        return in_purchase_list or self.purpose == PURCHASE

    def is_complete(self) -> bool:
        if self.item_type == "optibrush":
            configured = self.optibrush is not None and self.optibrush.has_dimensions
        else:
            configured = bool(self.code)
        return configured and self.price_per_unit > 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "item_type": self.item_type,
            "purpose": self.purpose,
            "code": self.code,
            "name": self.name,
            "size": self.size,
            "m2": self.m2,
            "quantity": self.quantity,
            "price_per_unit": self.price_per_unit,
            "original_price": self.original_price,
            "discount": self.discount,
            "replacement_cost": self.replacement_cost,
            "customized": self.customized,
            "special_shape": self.special_shape,
            "seasonal": self.seasonal,
            "frequency_override": self.frequency_override,
            "complete": self.is_complete(),
        }
        if self.schedule is not None:
            data["schedule"] = self.schedule.to_dict()
        if self.optibrush is not None:
            data["optibrush"] = {
                "has_edge": self.optibrush.has_edge,
                "color_count": self.optibrush.color_count,
                "has_drainage": self.optibrush.has_drainage,
                "special_shape": self.optibrush.special_shape,
                "width_cm": self.optibrush.width_cm,
                "height_cm": self.optibrush.height_cm,
                "price_per_m2": self.optibrush_price_per_m2,
            }
        return data


@dataclass
class Offer:
    offer_type: str = RENTAL
    offer_frequency: str = DEFAULT_FREQUENCY
    rental_items: List[OfferItem] = field(default_factory=list)
    purchase_items: List[OfferItem] = field(default_factory=list)
    step: str = STEP_TYPE
    id: str = field(default_factory=_new_id)

    def all_items(self) -> List[OfferItem]:
        return list(self.rental_items) + list(self.purchase_items)

    def find(self, item_id: str) -> Optional[OfferItem]:
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None

    def in_purchase_list(self, item: OfferItem) -> bool:
        return any(existing is item for existing in self.purchase_items)
