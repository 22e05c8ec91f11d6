from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from matoffer.app.pricing.models import PURCHASE, Offer, OfferItem
from matoffer.app.utils import round_money


@dataclass(frozen=True)
class PurchaseTotals:
    total_items: int
    total_price: float

    def to_dict(self) -> Dict[str, object]:
        return {"total_items": self.total_items, "total_price": self.total_price}


@dataclass(frozen=True)
class RentalTotals:
    total_items: int
    weekly_total: float
    four_week_total: float
    frequency: str
    normal_four_week_total: Optional[float] = None
    season_four_week_total: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "total_items": self.total_items,
            "weekly_total": self.weekly_total,
            "four_week_total": self.four_week_total,
            "frequency": self.frequency,
        }
        if self.season_four_week_total is not None:
            data["normal_four_week_total"] = self.normal_four_week_total
            data["season_four_week_total"] = self.season_four_week_total
        return data


def _qty(item: OfferItem) -> int:
    return item.quantity or 0


def purchase_totals(items: Iterable[OfferItem]) -> PurchaseTotals:
    items = list(items)
    return PurchaseTotals(
        total_items=sum(_qty(i) for i in items),
        total_price=round_money(sum(i.price_per_unit * _qty(i) for i in items)),
    )


def rental_totals(items: Iterable[OfferItem], frequency: str) -> RentalTotals:
    """Weekly and 4-week rental sums.

    Seasonal items count with their current ``price_per_unit``; the per-period
    4-week figures are only filled in when at least one item is seasonal.
    """
    items = list(items)
    weekly = round_money(sum(i.price_per_unit * _qty(i) for i in items))
    normal_total = season_total = None
    if any(i.seasonal for i in items):
        normal_total = round_money(
            sum((i.schedule.normal.price if i.seasonal else i.price_per_unit) * _qty(i) * 4 for i in items)
        )
        season_total = round_money(sum(i.schedule.season.price * _qty(i) * 4 for i in items if i.seasonal))
    return RentalTotals(
        total_items=sum(_qty(i) for i in items),
        weekly_total=weekly,
        four_week_total=weekly * 4,
        frequency=frequency,
        normal_four_week_total=normal_total,
        season_four_week_total=season_total,
    )


def partition(offer: Offer) -> Dict[str, List[OfferItem]]:
    """Split an offer's items into the rental and purchase sets that get priced."""
    if offer.offer_type == "najem":
        return {"rental": list(offer.rental_items), "purchase": []}
    if offer.offer_type == "nakup":
        return {"rental": [], "purchase": list(offer.purchase_items)}
    rental = [i for i in offer.rental_items if i.purpose != PURCHASE]
    purchase = [i for i in offer.rental_items if i.purpose == PURCHASE]
    if offer.offer_type == "primerjava":
        purchase = list(offer.purchase_items) + purchase
    return {"rental": rental, "purchase": purchase}


def offer_summaries(offer: Offer) -> Dict[str, Optional[Dict[str, object]]]:
    parts = partition(offer)
    rental: Optional[Dict[str, object]] = None
    purchase: Optional[Dict[str, object]] = None
    if offer.offer_type != "nakup":
        rental = rental_totals(parts["rental"], offer.offer_frequency).to_dict()
    if offer.offer_type != "najem":
        purchase = purchase_totals(parts["purchase"]).to_dict()
    return {"rental": rental, "purchase": purchase}
