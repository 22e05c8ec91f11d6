from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.pricing.optibrush import (
    BUILTIN_TIERS,
    OptibrushConfig,
    OptibrushPricer,
    OptibrushRecalculator,
    classify,
    describe_tier,
    is_standard_size,
)
from matoffer.app.services.offer_wizard import OfferWizard


def _config(**overrides) -> OptibrushConfig:
    values = {"width_cm": 120, "height_cm": 180}
    values.update(overrides)
    return OptibrushConfig(**values)


def test_standard_size_matches_either_orientation():
    assert is_standard_size(120, 180)
    assert is_standard_size(180, 120)
    assert not is_standard_size(100, 180)


def test_classify_requires_dimensions():
    assert classify(OptibrushConfig()) is None
    assert classify(_config(width_cm=0)) is None


def test_size_without_edge_is_never_standard():
    assert classify(_config()) == (True, False, True, False, "1")
    assert classify(_config(has_edge=False)) == (False, False, False, False, "1")


def test_large_split_above_threshold():
    assert classify(_config(width_cm=300, height_cm=300))[3] is True
    # 7.5 m² exactly is still small
    assert classify(_config(width_cm=250, height_cm=300))[3] is False


def test_builtin_table_covers_every_tier():
    assert len(BUILTIN_TIERS) == 24
    assert BUILTIN_TIERS[(True, False, True, False, "1")] == 172.36
    assert BUILTIN_TIERS[(False, True, False, True, "2-3")] == 354.79


def test_quote_standard_plain():
    quote = OptibrushPricer().quote(_config())
    assert quote.price_per_m2 == 172.36
    assert quote.m2 == 2.16
    assert quote.total_price == 372.30


def test_quote_special_shape_uses_optibrush_multiplier():
    quote = OptibrushPricer().quote(_config(special_shape=True))
    assert quote.price_per_m2 == 224.07
    assert quote.total_price == 483.99


def test_quote_large_custom():
    quote = OptibrushPricer().quote(_config(width_cm=300, height_cm=300))
    assert quote.price_per_m2 == 233.50
    assert quote.total_price == 2101.50


def test_configured_tier_table_wins_over_builtin():
    settings = PricingSettings(optibrush_tier_table={(True, False, True, False, "1"): 100.0})
    quote = OptibrushPricer(settings).quote(_config())
    assert quote.price_per_m2 == 100.0
    assert quote.total_price == 216.0
    # tiers missing from the configured table fall back to the built-in prices
    assert OptibrushPricer(settings).quote(_config(has_drainage=True)).price_per_m2 == 186.15


def test_describe_tier_labels():
    assert describe_tier(_config()) == "Z robom, standardna dimenzija"
    assert describe_tier(_config(has_edge=False, has_drainage=True)) == "Brez roba, z drenažnimi luknjicami, nestandardna (≤7,5 m²)"
    assert describe_tier(_config(width_cm=300, height_cm=300, has_edge=False)) == "Brez roba, nestandardna (>7,5 m²)"
    assert describe_tier(OptibrushConfig()) == ""


def test_recalculator_skips_unchanged_fingerprint():
    recalculator = OptibrushRecalculator(OptibrushPricer())
    config = _config()
    first = recalculator.evaluate("item", config, 0.0)
    assert first is not None
    assert recalculator.evaluate("item", config, 0.0) is None
    assert recalculator.evaluations == 1
    recalculator.forget("item")
    assert recalculator.evaluate("item", config, 0.0) is not None
    assert recalculator.evaluations == 2


def test_recalculator_skips_equal_total():
    recalculator = OptibrushRecalculator(OptibrushPricer())
    assert recalculator.evaluate("item", _config(), 372.30) is None
    assert recalculator.evaluations == 1


def _optibrush_item(wizard: OfferWizard):
    wizard.set_offer_type("nakup")
    item = wizard.offer.purchase_items[0]
    assert wizard.set_item_type(item.id, "optibrush")
    return item


def test_wizard_optibrush_writes_once_per_change():
    wizard = OfferWizard(PriceCatalog.builtin())
    item = _optibrush_item(wizard)
    assert not item.is_complete()

    assert wizard.update_optibrush(item.id, width_cm="120", height_cm="180") is True
    assert item.price_per_unit == 372.30
    assert item.optibrush_price_per_m2 == 172.36
    assert item.code == "OPTIBRUSH-120x180"
    assert item.size == "120*180"
    assert item.m2 == 2.16
    assert item.is_complete()

    # re-running with the same inputs converges without another write
    assert wizard.sync_optibrush(item.id) is False
    assert wizard.update_optibrush(item.id, width_cm=120, height_cm=180) is False
    assert wizard.optibrush.evaluations == 1

    assert wizard.update_optibrush(item.id, has_drainage=True) is True
    assert item.price_per_unit == 402.08


def test_wizard_optibrush_rotated_size_keeps_price():
    wizard = OfferWizard(PriceCatalog.builtin())
    item = _optibrush_item(wizard)
    wizard.update_optibrush(item.id, width_cm=120, height_cm=180)
    wizard.set_discount(item.id, 10)
    assert item.price_per_unit == 335.07

    # rotating changes the fingerprint and the quote differs from the discounted price
    assert wizard.update_optibrush(item.id, width_cm=180, height_cm=120) is True
    assert item.price_per_unit == 372.30
    assert item.discount == 0

    # same total as the current price, only the labels follow the new orientation
    assert wizard.update_optibrush(item.id, width_cm=120, height_cm=180) is True
    assert item.code == "OPTIBRUSH-120x180"
    assert item.size == "120*180"
    assert item.price_per_unit == 372.30
    assert item.discount == 0
    assert wizard.optibrush.evaluations == 3

    # labels already match, so a repeat is a no-op
    assert wizard.sync_optibrush(item.id) is False


def test_optibrush_is_not_touched_by_offer_frequency():
    wizard = OfferWizard(PriceCatalog.builtin())
    wizard.set_offer_type("najem")
    item = wizard.offer.rental_items[0]
    wizard.set_item_type(item.id, "optibrush")
    wizard.update_optibrush(item.id, width_cm=85, height_cm=150)
    before = item.price_per_unit
    assert before > 0
    wizard.set_offer_frequency("4")
    assert item.price_per_unit == before
