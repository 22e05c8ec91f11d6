from pathlib import Path

import pytest

from matoffer.app.pricing.catalog import CatalogEntry, PriceCatalog, PricingSettings
from matoffer.app.utils import round_money, to_float, to_int

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture(scope="module")
def catalog() -> PriceCatalog:
    return PriceCatalog.builtin()


def test_builtin_catalog_shape(catalog):
    assert len(catalog) == 28
    assert len(catalog.design_sizes()) == 19
    assert all(e.category != "design" for e in catalog.standard_types())


def test_lookup_is_case_insensitive(catalog):
    assert catalog.lookup("mbw1").code == "MBW1"
    assert catalog.lookup(" design-85×150 ").code == "DESIGN-85x150"


def test_lookup_prefix_fallback(catalog):
    assert catalog.lookup("MBW1-EXTRA").code == "MBW1"
    assert catalog.lookup("DESIGN-85x1").code == "DESIGN-85x115"


def test_lookup_miss(catalog):
    assert catalog.lookup("XYZ") is None
    assert catalog.lookup("") is None
    assert catalog.rental_price("XYZ", "2") == 0.0
    assert catalog.purchase_price("XYZ") == 0.0


def test_prices_and_replacement_cost(catalog):
    assert catalog.rental_price("MBW1", "4") == 2.48
    assert catalog.purchase_price("MBW1") == 75.33
    assert catalog.replacement_cost("MBW1") == 75.33
    assert catalog.lookup("MBW1").rental_price("7") == 0.0


def test_find_by_dimensions(catalog):
    assert catalog.find_by_dimensions("85x150").code == "MBW1"
    assert catalog.find_by_dimensions("85*150", category="design").code == "DESIGN-85x150"
    assert catalog.find_by_dimensions("33*33") is None


def test_entry_from_store_columns():
    entry = CatalogEntry.from_mapping(
        {"code": "X1", "name": "X", "category": "poslovni", "price_week_2": "4,5", "price_purchase": 10}
    )
    assert entry.rental_price("2") == 4.5
    assert entry.rental_price("1") == 0.0
    assert entry.purchase_price == 10.0


def test_settings_from_yaml():
    settings = PricingSettings.from_yaml(DATA_DIR / "pricing_settings.yaml")
    assert settings.special_shape_multiplier == 1.5
    assert settings.purchase_price_per_m2 == 165.0
    assert settings.custom_rate(2.0, "1") == 9.23
    assert settings.custom_rate(2.01, "1") == 6.66


def test_settings_yaml_missing_or_invalid(tmp_path):
    assert PricingSettings.from_yaml(tmp_path / "missing.yaml").purchase_price_per_m2 == 165.0
    bad = tmp_path / "bad.yaml"
    bad.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        PricingSettings.from_yaml(bad)


def test_settings_overrides():
    settings = PricingSettings().apply_overrides(
        {
            "design_purchase_price_per_m2": "180",
            "custom_m2_rates": {"small": {"2": 6.0}, "huge": {"1": 1.0}},
            "optibrush_tiers": [{"has_edge": True, "is_standard": True, "color_count": "1", "price_per_m2": 99}],
        }
    )
    assert settings.purchase_price_per_m2 == 180.0
    assert settings.custom_rate(1.0, "2") == 6.0
    assert settings.custom_rate(1.0, "1") == 9.23
    assert settings.optibrush_tier_table == {(True, False, True, False, "1"): 99.0}


@pytest.mark.parametrize("value, expected", [(1.005, 1.01), (0.125, 0.13), (2.675, 2.68), ("x", 0.0), (-1.005, -1.01)])
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_number_parsing():
    assert to_float("3,5") == 3.5
    assert to_float("") == 0.0
    assert to_int("2.9") == 2
    assert to_int("x", 1) == 1
