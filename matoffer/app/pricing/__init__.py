"""Pure pricing core: catalog, area pricing, Optibrush tiers, discounts, seasons, totals."""

from matoffer.app.pricing.catalog import CatalogEntry, PriceCatalog, PricingSettings
from matoffer.app.pricing.discount import DiscountedPrice, apply_discount, infer_discount

__all__ = [
    "CatalogEntry",
    "DiscountedPrice",
    "PriceCatalog",
    "PricingSettings",
    "apply_discount",
    "infer_discount",
]
