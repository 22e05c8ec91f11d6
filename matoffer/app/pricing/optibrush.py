from __future__ import annotations

"""Optibrush tier pricing.

Optibrush mats are priced per m² from five factors: edge, colour count,
drainage holes, standard vs. custom size and a large/small split at 7.5 m².
A size only counts as standard when the mat also has an edge; a mat without
an edge is always made to measure.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from matoffer.app.pricing.catalog import PricingSettings, TierKey
from matoffer.app.utils import round_money

M2_THRESHOLD = 7.5

STANDARD_SIZES: Tuple[Tuple[int, int], ...] = (
    (60, 85),
    (75, 85),
    (80, 120),
    (85, 150),
    (85, 300),
    (120, 180),
    (120, 200),
    (120, 240),
    (150, 200),
    (150, 250),
    (150, 300),
)

COLOR_COUNTS = ("1", "2-3")

# (has_edge, has_drainage, is_standard, is_large, color_count) -> €/m².
# Standard sizes ignore the large flag; drainage prices do not depend on the edge.
BUILTIN_TIERS: Dict[TierKey, float] = {}


def _fill_builtin() -> None:
    drainage_std = {"1": 186.15, "2-3": 254.59}
    drainage_large = {"1": 252.18, "2-3": 354.79}
    drainage_small = {"1": 219.16, "2-3": 304.69}
    plain_std = {"1": 172.36, "2-3": 235.73}
    plain_large = {"1": 233.50, "2-3": 328.51}
    plain_small = {"1": 202.93, "2-3": 282.12}
    for color in COLOR_COUNTS:
        for is_large in (False, True):
            BUILTIN_TIERS[(True, True, True, is_large, color)] = drainage_std[color]
            BUILTIN_TIERS[(True, False, True, is_large, color)] = plain_std[color]
            for edge in (False, True):
                BUILTIN_TIERS[(edge, True, False, is_large, color)] = (drainage_large if is_large else drainage_small)[color]
                BUILTIN_TIERS[(edge, False, False, is_large, color)] = (plain_large if is_large else plain_small)[color]


_fill_builtin()


@dataclass(frozen=True)
class OptibrushConfig:
    has_edge: bool = True
    color_count: str = "1"
    has_drainage: bool = False
    special_shape: bool = False
    width_cm: Optional[int] = None
    height_cm: Optional[int] = None

    def fingerprint(self) -> Tuple[object, ...]:
        return (
            self.has_edge,
            self.color_count,
            self.has_drainage,
            self.special_shape,
            self.width_cm,
            self.height_cm,
        )

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width_cm and self.height_cm and self.width_cm > 0 and self.height_cm > 0)


@dataclass(frozen=True)
class OptibrushQuote:
    price_per_m2: float
    total_price: float
    m2: float


def is_standard_size(width_cm: int, height_cm: int) -> bool:
    return (width_cm, height_cm) in STANDARD_SIZES or (height_cm, width_cm) in STANDARD_SIZES


def classify(config: OptibrushConfig) -> Optional[TierKey]:
    if not config.has_dimensions:
        return None
    m2 = config.width_cm * config.height_cm / 10000
    is_standard = config.has_edge and is_standard_size(config.width_cm, config.height_cm)
    color = config.color_count if config.color_count in COLOR_COUNTS else "1"
    return (config.has_edge, config.has_drainage, is_standard, m2 > M2_THRESHOLD, color)


def describe_tier(config: OptibrushConfig) -> str:
    tier = classify(config)
    if tier is None:
        return ""
    has_edge, has_drainage, is_standard, is_large, _ = tier
    parts = ["Z robom" if has_edge else "Brez roba"]
    if has_drainage:
        parts.append("z drenažnimi luknjicami")
    if is_standard:
        parts.append("standardna dimenzija")
    elif is_large:
        parts.append("nestandardna (>7,5 m²)")
    else:
        parts.append("nestandardna (≤7,5 m²)")
    return ", ".join(parts)


class OptibrushPricer:
    def __init__(self, settings: Optional[PricingSettings] = None):
        self.settings = settings or PricingSettings()

    def price_per_m2(self, tier: TierKey) -> Optional[float]:
        table = self.settings.optibrush_tier_table or {}
        value = table.get(tier)
        if value:
            return value
        return BUILTIN_TIERS.get(tier)

    def quote(self, config: OptibrushConfig) -> Optional[OptibrushQuote]:
        tier = classify(config)
        if tier is None:
            return None
        per_m2 = self.price_per_m2(tier)
        if per_m2 is None:
            return None
        if config.special_shape:
            per_m2 = per_m2 * self.settings.optibrush_special_shape_multiplier
        m2 = config.width_cm * config.height_cm / 10000
        return OptibrushQuote(
            price_per_m2=round_money(per_m2),
            total_price=round_money(per_m2 * m2),
            m2=round_money(m2),
        )


class OptibrushRecalculator:
    """Fingerprint memo guarding Optibrush write-backs.

    ``evaluate`` returns a quote only when the item's inputs changed since the
    last commit *and* the fresh total differs from ``current_total``; in every
    other case it returns ``None`` and the caller must not write.
    """

    def __init__(self, pricer: OptibrushPricer):
        self.pricer = pricer
        self._seen: Dict[str, Tuple[object, ...]] = {}
        self.evaluations = 0

    def evaluate(self, item_id: str, config: OptibrushConfig, current_total: float) -> Optional[OptibrushQuote]:
        fingerprint = config.fingerprint()
        if self._seen.get(item_id) == fingerprint:
            return None
        self._seen[item_id] = fingerprint
        self.evaluations += 1
        quote = self.pricer.quote(config)
        if quote is None or quote.total_price == current_total:
            return None
        return quote

    def forget(self, item_id: str) -> None:
        self._seen.pop(item_id, None)
