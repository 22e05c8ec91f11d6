from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from matoffer.app.utils import clamp, round_money, round_percent


def apply_discount(original_price: float, discount_pct: Optional[float]) -> float:
    """Price after ``discount_pct`` percent off; a falsy discount returns the original untouched."""
    if not discount_pct:
        return original_price
    return round_money(original_price * (1 - discount_pct / 100))


def infer_discount(original_price: float, new_price: float) -> int:
    """Whole-percent discount that turns ``original_price`` into ``new_price``.

    A raised price counts as 0 %, and so does a missing baseline.
    """
    if not original_price or original_price <= 0:
        return 0
    pct = round_percent((1 - new_price / original_price) * 100)
    return int(clamp(pct, 0, 100))


@dataclass(frozen=True)
class DiscountedPrice:
    """Baseline price, effective price and discount kept in step.

    Instances are only built through ``fresh``/``with_discount``/``with_price``
    so the discount always derives from the two prices. ``base_price`` changes
    only through ``fresh``, which is what the pricers call after a
    recomputation.
    """

    base_price: float = 0.0
    price: float = 0.0
    discount: int = 0

    @classmethod
    def fresh(cls, base_price: float) -> "DiscountedPrice":
        base = max(0.0, round_money(base_price))
        return cls(base_price=base, price=base, discount=0)

    def with_discount(self, discount_pct: Optional[float]) -> "DiscountedPrice":
        base = self.base_price or self.price
        pct = int(clamp(round_percent(discount_pct or 0), 0, 100))
        if pct == 0:
            return DiscountedPrice(base_price=base, price=base, discount=0)
        return DiscountedPrice(base_price=base, price=max(0.0, apply_discount(base, pct)), discount=pct)

    def with_price(self, new_price: float) -> "DiscountedPrice":
        price = max(0.0, round_money(new_price))
        base = self.base_price or self.price or price
        return DiscountedPrice(base_price=base, price=price, discount=infer_discount(base, price))
