import pytest

from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.pricing.dimensions import DimensionPricer, m2_from_dimensions, parse_dimensions


@pytest.mark.parametrize("text", ["120*180", "120x180", "120 × 180", "120X180", " 120 * 180 cm"])
def test_parse_dimensions_separators(text):
    assert parse_dimensions(text) == (120, 180)


@pytest.mark.parametrize("text", ["", None, "abc", "120*", "0*180"])
def test_malformed_dimensions_yield_zero_area(text):
    assert m2_from_dimensions(text) == 0.0


def test_m2_rounds_to_two_decimals():
    assert m2_from_dimensions("120*180") == 2.16
    assert m2_from_dimensions("85*150") == 1.28


def _pricer(**settings):
    return DimensionPricer(PriceCatalog.builtin(), PricingSettings(**settings))


def test_purchase_price_uses_flat_rate():
    pricer = _pricer()
    assert pricer.purchase_price("120*180") == 356.40
    assert pricer.purchase_price("120*180", special_shape=True) == 534.60


def test_purchase_price_respects_configured_rate():
    pricer = _pricer(purchase_price_per_m2=200.0, special_shape_multiplier=2.0)
    assert pricer.purchase_price("100*100") == 200.0
    assert pricer.purchase_price("100*100", special_shape=True) == 400.0


def test_rental_price_prefers_catalog_size():
    pricer = _pricer()
    # DESIGN-100x100 is listed at 5.65 for a two-week cycle
    assert pricer.rental_price("100*100", "2") == 5.65


def test_rental_price_falls_back_to_area_rates():
    pricer = _pricer()
    # 2.16 m² is in the large tier: 4.17 €/m² at frequency 2
    assert pricer.rental_price("120*180", "2") == 9.01
    # 1.5 m² is in the small tier: 9.23 €/m² at frequency 1
    assert pricer.rental_price("100*150", "1") == 13.85
    assert pricer.rental_price("100*150", "1", special_shape=True) == 20.77


def test_malformed_size_prices_to_zero():
    pricer = _pricer()
    assert pricer.rental_price("oops", "2") == 0.0
    assert pricer.purchase_price("oops") == 0.0
    assert pricer.replacement_cost("120*180") == 356.40


def test_rental_price_ignores_standard_mat_of_same_size():
    pricer = _pricer()
    # MBW1 is 85*150 but only design sizes count; 1.28 m² × 5.69 €/m²
    assert pricer.rental_price("85*150", "2") == 7.28
