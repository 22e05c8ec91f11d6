from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from matoffer.app.pricing.discount import DiscountedPrice
from matoffer.app.utils import clamp, to_int

PriceForFrequency = Callable[[str], Optional[float]]

NORMAL = "normal"
SEASON = "season"
PERIODS = (NORMAL, SEASON)

# Season wraps the year end (45 -> 12); the normal period covers the rest.
DEFAULT_PERIODS = {
    NORMAL: {"frequency": "4", "from_week": 13, "to_week": 44},
    SEASON: {"frequency": "1", "from_week": 45, "to_week": 12},
}


@dataclass(frozen=True)
class PricingPeriod:
    frequency: str
    from_week: int
    to_week: int
    pricing: DiscountedPrice

    @property
    def price(self) -> float:
        return self.pricing.price

    @property
    def weeks(self) -> int:
        """Number of weeks covered, counting a wrap over new year."""
        if self.from_week <= self.to_week:
            return self.to_week - self.from_week + 1
        return 52 - self.from_week + 1 + self.to_week

    def to_dict(self) -> Dict[str, object]:
        return {
            "frequency": self.frequency,
            "from_week": self.from_week,
            "to_week": self.to_week,
            "price": self.pricing.price,
            "original_price": self.pricing.base_price,
            "discount": self.pricing.discount,
        }


@dataclass(frozen=True)
class SeasonalSchedule:
    normal: PricingPeriod
    season: PricingPeriod

    def period(self, name: str) -> PricingPeriod:
        if name not in PERIODS:
            raise ValueError(f"unknown seasonal period '{name}'")
        return getattr(self, name)

    def replace_period(self, name: str, period: PricingPeriod) -> "SeasonalSchedule":
        self.period(name)
        return replace(self, **{name: period})

    def to_dict(self) -> Dict[str, object]:
        return {NORMAL: self.normal.to_dict(), SEASON: self.season.to_dict()}


def clamp_week(value) -> int:
    week = to_int(value, 1)
    return int(clamp(week, 1, 52))


class SeasonalScheduler:
    """Builds and edits the two-period schedule of a seasonal rental item.

    ``price_for`` resolves the rental price of the item at a frequency (catalog
    or m² pricing); it is supplied per call so the scheduler stays stateless.
    """

    def enable(self, price_for: PriceForFrequency) -> SeasonalSchedule:
        periods = {}
        for name, defaults in DEFAULT_PERIODS.items():
            price = self._price_or_fallback(price_for, defaults["frequency"]) or 0.0
            periods[name] = PricingPeriod(
                frequency=defaults["frequency"],
                from_week=defaults["from_week"],
                to_week=defaults["to_week"],
                pricing=DiscountedPrice.fresh(price),
            )
        return SeasonalSchedule(**periods)

    def change_frequency(
        self, schedule: SeasonalSchedule, name: str, frequency: str, price_for: PriceForFrequency
    ) -> SeasonalSchedule:
        period = schedule.period(name)
        price = self._price_or_fallback(price_for, frequency)
        pricing = DiscountedPrice.fresh(price) if price else period.pricing
        return schedule.replace_period(name, replace(period, frequency=str(frequency), pricing=pricing))

    def change_price(self, schedule: SeasonalSchedule, name: str, new_price: float) -> SeasonalSchedule:
        period = schedule.period(name)
        return schedule.replace_period(name, replace(period, pricing=period.pricing.with_price(new_price)))

    def change_discount(self, schedule: SeasonalSchedule, name: str, discount: float) -> SeasonalSchedule:
        period = schedule.period(name)
        return schedule.replace_period(name, replace(period, pricing=period.pricing.with_discount(discount)))

    def set_weeks(
        self, schedule: SeasonalSchedule, name: str, from_week=None, to_week=None
    ) -> SeasonalSchedule:
        period = schedule.period(name)
        updated = replace(
            period,
            from_week=clamp_week(from_week) if from_week is not None else period.from_week,
            to_week=clamp_week(to_week) if to_week is not None else period.to_week,
        )
        return schedule.replace_period(name, updated)

    @staticmethod
    def _price_or_fallback(price_for: PriceForFrequency, frequency: str) -> Optional[float]:
        price = price_for(str(frequency))
        if not price:
            price = price_for("1")
        return price or None
