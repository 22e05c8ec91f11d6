from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.pricing.dimensions import DimensionPricer, m2_from_dimensions, parse_dimensions
from matoffer.app.pricing.discount import DiscountedPrice
from matoffer.app.pricing.models import (
    DEFAULT_ITEM_NAME,
    FREQUENCIES,
    ITEM_TYPES,
    OFFER_TYPES,
    PURCHASE,
    PURPOSES,
    RENTAL,
    STEP_ITEMS_NAJEM,
    STEP_ITEMS_NAKUP,
    STEP_PREVIEW,
    STEP_TYPE,
    Offer,
    OfferItem,
)
from matoffer.app.pricing.optibrush import OptibrushConfig, OptibrushPricer, OptibrushRecalculator
from matoffer.app.pricing.seasonal import PERIODS, SeasonalScheduler
from matoffer.app.pricing.totals import offer_summaries, partition
from matoffer.app.utils import round_money, to_float, to_int

CUSTOM_CODE = "CUSTOM"
CUSTOM_ITEM_NAME = "Predpražnik po meri"
OPTIBRUSH_ITEM_NAME = "Optibrush predpražnik"

# Legal step sequence per offer type; "back" walks the same tuple in reverse.
TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "najem": (STEP_TYPE, STEP_ITEMS_NAJEM, STEP_PREVIEW),
    "nakup": (STEP_TYPE, STEP_ITEMS_NAKUP, STEP_PREVIEW),
    "primerjava": (STEP_TYPE, STEP_ITEMS_NAKUP, STEP_ITEMS_NAJEM, STEP_PREVIEW),
    "dodatna": (STEP_TYPE, STEP_ITEMS_NAKUP, STEP_ITEMS_NAJEM, STEP_PREVIEW),
}

SUBJECT_BASE = "Ponudba za predpražnike"
SUBJECTS = {
    "najem": "Ponudba za najem predpražnikov",
    "nakup": "Ponudba za nakup predpražnikov",
    "primerjava": "Ponudba za nakup in najem predpražnikov",
    "both": "Ponudba za najem in nakup predpražnikov",
}

_OPTIBRUSH_FIELDS = ("has_edge", "color_count", "has_drainage", "special_shape", "width_cm", "height_cm")


class OfferWizard:
    """Owns one offer session and every edit made to it.

    All item operations are silent on bad input: an unknown code or a
    malformed size leaves the item incomplete rather than raising, and the
    step guard is what eventually blocks the user.
    """

    def __init__(
        self,
        catalog: PriceCatalog,
        settings: Optional[PricingSettings] = None,
        offer: Optional[Offer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.catalog = catalog
        self.settings = settings or PricingSettings()
        self.offer = offer or Offer()
        self.logger = logger or logging.getLogger("matoffer")
        self.dimensions = DimensionPricer(catalog, self.settings)
        self.optibrush = OptibrushRecalculator(OptibrushPricer(self.settings))
        self.seasons = SeasonalScheduler()

    def rebind(self, catalog: PriceCatalog, settings: PricingSettings) -> None:
        """Switch to a reloaded catalog. Prices already on items stay until the item is edited."""
        self.catalog = catalog
        self.settings = settings
        self.dimensions = DimensionPricer(catalog, settings)
        self.optibrush.pricer = OptibrushPricer(settings)

    # ---------- offer level ----------

    def set_offer_type(self, offer_type: str) -> bool:
        if offer_type not in OFFER_TYPES:
            return False
        self.offer.offer_type = offer_type
        if offer_type != "nakup" and not self.offer.rental_items:
            self.add_item(RENTAL)
        if offer_type in ("nakup", "primerjava") and not self.offer.purchase_items:
            self.add_item(PURCHASE)
        return True

    def set_offer_frequency(self, frequency: str) -> bool:
        """Change the offer-wide cadence and re-price rental items from scratch.

        Seasonal items, items with their own override and items the catalog
        does not know keep their price. Every re-priced item loses its discount.
        """
        frequency = str(frequency)
        if frequency not in FREQUENCIES:
            return False
        self.offer.offer_frequency = frequency
        repriced = 0
        for item in self.offer.rental_items:
            if self._is_purchase(item) or item.seasonal or item.frequency_override:
                continue
            if item.item_type == "optibrush" or not item.code:
                continue
            base = self._base_price(item, frequency)
            if not base:
                continue
            item.pricing = DiscountedPrice.fresh(base)
            repriced += 1
        self.logger.info("offer %s frequency -> %s, %d item(s) re-priced", self.offer.id, frequency, repriced)
        return True

    # ---------- steps ----------

    def path(self) -> Tuple[str, ...]:
        return TRANSITIONS[self.offer.offer_type]

    def step_items(self, step: Optional[str] = None) -> List[OfferItem]:
        step = step or self.offer.step
        offer = self.offer
        if offer.offer_type == "dodatna":
            if step == STEP_ITEMS_NAKUP:
                return [i for i in offer.rental_items if i.purpose == PURCHASE]
            if step == STEP_ITEMS_NAJEM:
                return [i for i in offer.rental_items if i.purpose != PURCHASE]
            return []
        if step == STEP_ITEMS_NAKUP:
            return list(offer.purchase_items)
        if step == STEP_ITEMS_NAJEM:
            return list(offer.rental_items)
        return []

    def incomplete_items(self, step: Optional[str] = None) -> List[OfferItem]:
        return [item for item in self.step_items(step) if not item.is_complete()]

    def can_advance(self) -> bool:
        path = self.path()
        if self.offer.step not in path or self.offer.step == path[-1]:
            return False
        return not self.incomplete_items()

    def next_step(self) -> bool:
        if not self.can_advance():
            return False
        path = self.path()
        self.offer.step = path[path.index(self.offer.step) + 1]
        return True

    def previous_step(self) -> bool:
        path = self.path()
        if self.offer.step not in path:
            self.offer.step = STEP_TYPE
            return True
        index = path.index(self.offer.step)
        if index == 0:
            return False
        self.offer.step = path[index - 1]
        return True

    # ---------- item lifecycle ----------

    def add_item(self, kind: str = RENTAL, purpose: Optional[str] = None) -> OfferItem:
        in_purchase_list = kind == PURCHASE and self.offer.offer_type in ("nakup", "primerjava")
        if self.offer.offer_type == "dodatna":
            purpose = purpose if purpose in PURPOSES else (PURCHASE if kind == PURCHASE else RENTAL)
        else:
            purpose = None
        purchase = in_purchase_list or purpose == PURCHASE
        item = OfferItem(item_type="design" if purchase else "standard", purpose=purpose)
        if purchase:
            item.name = CUSTOM_ITEM_NAME
        else:
            item.replacement_cost = 0.0
        target = self.offer.purchase_items if in_purchase_list else self.offer.rental_items
        target.append(item)
        return item

    def remove_item(self, item_id: str) -> bool:
        for items in (self.offer.rental_items, self.offer.purchase_items):
            for index, item in enumerate(items):
                if item.id == item_id:
                    del items[index]
                    self.optibrush.forget(item_id)
                    return True
        return False

    def get_item(self, item_id: str) -> Optional[OfferItem]:
        return self.offer.find(item_id)

    def set_item_type(self, item_id: str, item_type: str) -> bool:
        item = self.get_item(item_id)
        if item is None or item_type not in ITEM_TYPES:
            return False
        item.item_type = item_type
        item.code = ""
        item.size = ""
        item.m2 = 0.0
        item.special_shape = False
        item.pricing = DiscountedPrice.fresh(0)
        item.replacement_cost = 0.0 if not self._is_purchase(item) else None
        item.optibrush_price_per_m2 = None
        self.optibrush.forget(item.id)
        if item_type == "optibrush":
            item.optibrush = OptibrushConfig()
            item.name = OPTIBRUSH_ITEM_NAME
        else:
            item.optibrush = None
            item.name = DEFAULT_ITEM_NAME if item_type == "standard" else CUSTOM_ITEM_NAME
        return True

    # ---------- pricing inputs ----------

    def select_code(self, item_id: str, code: str) -> bool:
        item = self.get_item(item_id)
        if item is None or item.item_type not in ("standard", "design"):
            return False
        entry = self.catalog.lookup(code)
        if entry is None:
            self.logger.debug("code %s not in catalog, item %s unchanged", code, item_id)
            return False
        item.code = entry.code
        item.name = entry.name or item.name
        item.size = entry.dimensions
        item.m2 = m2_from_dimensions(entry.dimensions) or entry.m2
        return self._reprice(item)

    def set_dimensions(self, item_id: str, text: str) -> bool:
        item = self.get_item(item_id)
        if item is None or item.item_type not in ("custom", "design"):
            return False
        item.size = (text or "").strip()
        item.m2 = m2_from_dimensions(item.size)
        if item.m2 <= 0:
            item.code = ""
            item.pricing = DiscountedPrice.fresh(0)
            item.replacement_cost = None if self._is_purchase(item) else 0.0
            return True
        match = self.catalog.find_by_dimensions(item.size, category="design") if item.item_type == "design" else None
        item.code = match.code if match is not None else CUSTOM_CODE
        item.name = CUSTOM_ITEM_NAME
        return self._reprice(item)

    def set_special_shape(self, item_id: str, enabled: bool) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.special_shape = bool(enabled)
        if item.item_type not in ("custom", "design"):
            return True
        return self._reprice(item)

    def set_purpose(self, item_id: str, purpose: str) -> bool:
        item = self.get_item(item_id)
        if item is None or purpose not in PURPOSES or self.offer.offer_type not in ("primerjava", "dodatna"):
            return False
        if self.offer.in_purchase_list(item):
            return False
        item.purpose = purpose
        if purpose == PURCHASE:
            item.schedule = None
            item.frequency_override = None
            if item.item_type == "standard":
                # standard mats are rental-only; a bought mat is a design mat
                item.item_type = "design"
                item.code = ""
                item.size = ""
                item.m2 = 0.0
                item.name = CUSTOM_ITEM_NAME
                item.pricing = DiscountedPrice.fresh(0)
                item.replacement_cost = None
                return True
        if not self._reprice(item):
            item.replacement_cost = self._replacement_cost(item)
        return True

    def set_frequency_override(self, item_id: str, frequency: Optional[str]) -> bool:
        item = self.get_item(item_id)
        if item is None or self._is_purchase(item) or item.seasonal:
            return False
        if frequency in (None, ""):
            item.frequency_override = None
        elif str(frequency) in FREQUENCIES:
            item.frequency_override = str(frequency)
        else:
            return False
        if item.code and item.item_type != "optibrush":
            self._reprice(item)
        return True

    # ---------- price / discount ----------

    def set_price(self, item_id: str, price: Any) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.pricing = item.pricing.with_price(to_float(price))
        return True

    def set_discount(self, item_id: str, discount: Any) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.pricing = item.pricing.with_discount(to_float(discount))
        return True

    # ---------- plain fields ----------

    def set_quantity(self, item_id: str, value: Any) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.quantity = to_int(value)
        return True

    def commit_quantity(self, item_id: str) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        if item.quantity is None or item.quantity < 1:
            item.quantity = 1
        return True

    def set_replacement_cost(self, item_id: str, value: Any) -> bool:
        item = self.get_item(item_id)
        if item is None or self._is_purchase(item):
            return False
        item.replacement_cost = max(0.0, round_money(to_float(value)))
        return True

    def set_customized(self, item_id: str, enabled: bool) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.customized = bool(enabled)
        return True

    def set_name(self, item_id: str, name: str) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.name = (name or "").strip() or item.name
        return True

    # ---------- Optibrush ----------

    def update_optibrush(self, item_id: str, **changes: Any) -> bool:
        """Apply configuration changes and re-price; returns True only when the item was written."""
        item = self.get_item(item_id)
        if item is None or item.item_type != "optibrush":
            return False
        config = item.optibrush or OptibrushConfig()
        clean: Dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _OPTIBRUSH_FIELDS:
                continue
            if key in ("width_cm", "height_cm"):
                clean[key] = to_int(value)
            elif key == "color_count":
                clean[key] = "2-3" if str(value) == "2-3" else "1"
            else:
                clean[key] = bool(value)
        item.optibrush = replace(config, **clean)
        return self.sync_optibrush(item_id)

    def sync_optibrush(self, item_id: str) -> bool:
        item = self.get_item(item_id)
        if item is None or item.optibrush is None:
            return False
        quote = self.optibrush.evaluate(item.id, item.optibrush, item.price_per_unit)
        if quote is None:
            # price unchanged; a rotated size still needs its own code
            return self._sync_optibrush_labels(item)
        item.pricing = DiscountedPrice.fresh(quote.total_price)
        item.optibrush_price_per_m2 = quote.price_per_m2
        item.name = OPTIBRUSH_ITEM_NAME
        item.m2 = quote.m2
        self._sync_optibrush_labels(item)
        return True

    def _sync_optibrush_labels(self, item: OfferItem) -> bool:
        config = item.optibrush
        if config is None or not config.has_dimensions:
            return False
        code = f"OPTIBRUSH-{config.width_cm}x{config.height_cm}"
        if item.code == code:
            return False
        item.code = code
        item.size = f"{config.width_cm}*{config.height_cm}"
        return True

    # ---------- seasonal ----------

    def toggle_seasonal(self, item_id: str, enabled: bool) -> bool:
        """Switch two-period pricing on or off.

        Turning it off drops the whole schedule and does not restore any
        price or discount from before it was turned on.
        """
        item = self.get_item(item_id)
        if item is None or self._is_purchase(item) or item.item_type == "optibrush":
            return False
        if not enabled:
            item.schedule = None
            return True
        if item.schedule is None:
            item.schedule = self.seasons.enable(self._price_for(item))
        return True

    def change_period_frequency(self, item_id: str, period: str, frequency: str) -> bool:
        item = self.get_item(item_id)
        if item is None or item.schedule is None or period not in PERIODS or str(frequency) not in FREQUENCIES:
            return False
        item.schedule = self.seasons.change_frequency(item.schedule, period, str(frequency), self._price_for(item))
        return True

    def change_period_price(self, item_id: str, period: str, price: Any) -> bool:
        item = self.get_item(item_id)
        if item is None or item.schedule is None or period not in PERIODS:
            return False
        item.schedule = self.seasons.change_price(item.schedule, period, to_float(price))
        return True

    def change_period_discount(self, item_id: str, period: str, discount: Any) -> bool:
        item = self.get_item(item_id)
        if item is None or item.schedule is None or period not in PERIODS:
            return False
        item.schedule = self.seasons.change_discount(item.schedule, period, to_float(discount))
        return True

    def set_period_weeks(self, item_id: str, period: str, from_week: Any = None, to_week: Any = None) -> bool:
        item = self.get_item(item_id)
        if item is None or item.schedule is None or period not in PERIODS:
            return False
        item.schedule = self.seasons.set_weeks(item.schedule, period, from_week, to_week)
        return True

    # ---------- outputs ----------

    def totals(self) -> Dict[str, Optional[Dict[str, object]]]:
        return offer_summaries(self.offer)

    def db_offer_type(self) -> str:
        offer_type = self.offer.offer_type
        if offer_type == "nakup":
            return "purchase"
        if offer_type == "primerjava":
            return "both"
        if offer_type == "dodatna":
            parts = partition(self.offer)
            if parts["rental"] and parts["purchase"]:
                return "both"
            if parts["purchase"]:
                return "purchase"
        return "rental"

    def subject(self, company_name: Optional[str] = None) -> str:
        offer_type = self.offer.offer_type
        key = offer_type
        if offer_type == "dodatna":
            parts = partition(self.offer)
            if parts["rental"] and parts["purchase"]:
                key = "both"
            elif parts["rental"]:
                key = "najem"
            elif parts["purchase"]:
                key = "nakup"
            else:
                key = ""
        base = SUBJECTS.get(key)
        if base is None:
            return SUBJECT_BASE
        return f"{base} - {company_name}" if company_name else base

    def build_save_payload(self, company_name: Optional[str] = None, email: Optional[str] = None) -> Dict[str, Any]:
        """Structured hand-off for the persistence/e-mail collaborator."""
        offer = self.offer
        if offer.offer_type in ("nakup", "primerjava"):
            items = list(offer.purchase_items) + list(offer.rental_items)
        else:
            items = list(offer.rental_items)
        rows = [self._save_row(item) for item in items if item.code or item.item_type == "custom"]
        return {
            "offer_id": offer.id,
            "subject": self.subject(company_name),
            "recipient_email": email or None,
            "offer_type": offer.offer_type,
            "db_offer_type": self.db_offer_type(),
            "frequency": offer.offer_frequency,
            "rows": rows,
            "totals": self.totals(),
        }

    def snapshot(self) -> Dict[str, Any]:
        offer = self.offer
        return {
            "offer_id": offer.id,
            "offer_type": offer.offer_type,
            "offer_frequency": offer.offer_frequency,
            "step": offer.step,
            "path": list(self.path()),
            "can_advance": self.can_advance(),
            "rental_items": [item.to_dict() for item in offer.rental_items],
            "purchase_items": [item.to_dict() for item in offer.purchase_items],
            "totals": self.totals(),
        }

    # ---------- internals ----------

    def _is_purchase(self, item: OfferItem) -> bool:
        return item.is_purchase(self.offer.in_purchase_list(item))

    def _frequency(self, item: OfferItem) -> str:
        return item.frequency_override or self.offer.offer_frequency

    def _price_for(self, item: OfferItem) -> Callable[[str], Optional[float]]:
        return lambda frequency: self._base_price(item, frequency)

    def _base_price(self, item: OfferItem, frequency: Optional[str] = None) -> Optional[float]:
        """Undiscounted unit price from the owning pricer; ``None`` on a catalog miss."""
        purchase = self._is_purchase(item)
        frequency = frequency or self._frequency(item)
        if item.item_type == "optibrush":
            return None
        if item.item_type == "custom":
            if purchase:
                return self.dimensions.purchase_price(item.size, item.special_shape)
            return self.dimensions.rental_price(item.size, frequency, item.special_shape)
        entry = self.catalog.lookup(item.code) if item.code and item.code != CUSTOM_CODE else None
        if item.item_type == "standard":
            if entry is None:
                return None
            return entry.purchase_price if purchase else entry.rental_price(frequency)
        # design: listed sizes use the catalog, anything else is priced by area
        if entry is not None:
            base = entry.purchase_price if purchase else entry.rental_price(frequency)
            if item.special_shape:
                base = base * self.settings.special_shape_multiplier
            return round_money(base)
        if not item.size:
            return None
        if purchase:
            return self.dimensions.purchase_price(item.size, item.special_shape)
        return self.dimensions.rental_price(item.size, frequency, item.special_shape)

    def _replacement_cost(self, item: OfferItem) -> Optional[float]:
        if self._is_purchase(item):
            return None
        if item.item_type == "optibrush":
            return item.replacement_cost
        entry = self.catalog.lookup(item.code) if item.code and item.code != CUSTOM_CODE else None
        if entry is not None:
            return entry.replacement_cost
        if parse_dimensions(item.size):
            return self.dimensions.replacement_cost(item.size)
        return 0.0

    def _reprice(self, item: OfferItem) -> bool:
        base = self._base_price(item)
        if base is None:
            return False
        item.pricing = DiscountedPrice.fresh(base)
        item.replacement_cost = self._replacement_cost(item)
        if item.schedule is not None:
            price_for = self._price_for(item)
            for name in ("normal", "season"):
                period = item.schedule.period(name)
                item.schedule = self.seasons.change_frequency(item.schedule, name, period.frequency, price_for)
        return True

    def _save_row(self, item: OfferItem) -> Dict[str, Any]:
        purchase = self._is_purchase(item)
        schedule = item.schedule
        normal_frequency = item.frequency_override or (schedule.normal.frequency if schedule else None)
        normal_frequency = normal_frequency or self.offer.offer_frequency
        return {
            "code": item.code,
            "name": item.name,
            "size": item.size,
            "m2": item.m2,
            "item_type": item.item_type,
            "is_design": item.item_type in ("design", "custom"),
            "quantity": item.quantity or 1,
            "price_rental": None if purchase else item.price_per_unit,
            "price_purchase": item.price_per_unit if purchase else None,
            "original_price": item.original_price,
            "discount": item.discount,
            "price_penalty": item.replacement_cost or None,
            "notes": f"{item.code or item.name} - {item.size or 'po meri'}",
            "customized": item.customized,
            "special_shape": item.special_shape,
            "seasonal": schedule is not None,
            "normal_from_week": schedule.normal.from_week if schedule else None,
            "normal_to_week": schedule.normal.to_week if schedule else None,
            "seasonal_from_week": schedule.season.from_week if schedule else None,
            "seasonal_to_week": schedule.season.to_week if schedule else None,
            "frequency": None if purchase else normal_frequency,
            "normal_frequency": normal_frequency,
            "seasonal_frequency": schedule.season.frequency if schedule else "1",
            "normal_price": schedule.normal.price if schedule else item.price_per_unit,
            "seasonal_price": schedule.season.price if schedule else None,
        }
