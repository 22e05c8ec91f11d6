import pytest

from matoffer.app.pricing.discount import DiscountedPrice, apply_discount, infer_discount


def test_apply_discount_rounds_to_cents():
    assert apply_discount(12.0, 25) == 9.0
    assert apply_discount(4.03, 37) == 2.54


@pytest.mark.parametrize("falsy", [0, None, 0.0])
def test_apply_discount_falsy_returns_original_exactly(falsy):
    assert apply_discount(356.4, falsy) == 356.4


def test_infer_discount_basic_and_raised_price():
    assert infer_discount(12.0, 9.0) == 25
    assert infer_discount(12.0, 13.5) == 0
    assert infer_discount(12.0, 12.0) == 0


def test_infer_discount_guards_missing_baseline():
    assert infer_discount(0, 5.0) == 0
    assert infer_discount(-3, 5.0) == 0


@pytest.mark.parametrize("original", [1.0, 4.03, 12.0, 356.4, 1999.99])
def test_discount_round_trip_within_one_percent(original):
    for pct in range(0, 101):
        assert abs(infer_discount(original, apply_discount(original, pct)) - pct) <= 1


def test_discounted_price_keeps_baseline():
    price = DiscountedPrice.fresh(12.0).with_discount(25)
    assert (price.base_price, price.price, price.discount) == (12.0, 9.0, 25)

    manual = price.with_price(10.8)
    assert manual.base_price == 12.0
    assert manual.discount == 10

    restored = manual.with_discount(0)
    assert restored.price == restored.base_price == 12.0
    assert restored.discount == 0


def test_discounted_price_clamps():
    assert DiscountedPrice.fresh(-5).price == 0.0
    full = DiscountedPrice.fresh(20.0).with_discount(150)
    assert full.discount == 100
    assert full.price == 0.0
    negative = DiscountedPrice.fresh(20.0).with_price(-4)
    assert negative.price == 0.0
    assert negative.discount == 100
    assert DiscountedPrice.fresh(20.0).with_discount(-10).discount == 0


def test_with_price_without_baseline_adopts_new_price():
    price = DiscountedPrice().with_price(7.5)
    assert price.base_price == 7.5
    assert price.discount == 0
