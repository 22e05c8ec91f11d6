from __future__ import annotations

from typing import Optional, Tuple

from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.utils import round_money
from matoffer.shared.normalize.text import split_dimensions


def parse_dimensions(text: Optional[str]) -> Optional[Tuple[int, int]]:
    parsed = split_dimensions(text)
    if parsed is None or parsed[0] <= 0 or parsed[1] <= 0:
        return None
    return parsed


def m2_from_dimensions(text: Optional[str]) -> float:
    """Area in m² of a ``W*H`` string in centimetres; 0 when unparsable."""
    parsed = parse_dimensions(text)
    if parsed is None:
        return 0.0
    width, height = parsed
    return round_money(width * height / 10000)


class DimensionPricer:
    """Prices design and free-dimension mats from their area.

    Rental prices come from the catalog when the exact size is a listed
    design size and from the small/large €/m² rate table otherwise; standard
    mats of the same size never count. Purchase prices always use the single
    configured €/m² rate. The special-shape multiplier applies to both.
    """

    def __init__(self, catalog: PriceCatalog, settings: PricingSettings):
        self.catalog = catalog
        self.settings = settings

    def _shape(self, price: float, special_shape: bool) -> float:
        if special_shape:
            return round_money(price * self.settings.special_shape_multiplier)
        return round_money(price)

    def rental_price(self, size: Optional[str], frequency: str, special_shape: bool = False) -> float:
        m2 = m2_from_dimensions(size)
        if m2 <= 0:
            return 0.0
        entry = self.catalog.find_by_dimensions(size, category="design")
        if entry is not None and entry.rental_price(frequency) > 0:
            base = entry.rental_price(frequency)
        else:
            base = m2 * self.settings.custom_rate(m2, frequency)
        return self._shape(base, special_shape)

    def purchase_price(self, size: Optional[str], special_shape: bool = False) -> float:
        m2 = m2_from_dimensions(size)
        if m2 <= 0:
            return 0.0
        return self._shape(m2 * self.settings.purchase_price_per_m2, special_shape)

    def replacement_cost(self, size: Optional[str]) -> float:
        return self.purchase_price(size, special_shape=False)
