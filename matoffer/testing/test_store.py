from datetime import datetime
from pathlib import Path

import pytest

import matoffer.store.catalog_store as catalog_store
from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings


def _use_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "prices.db"
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path}")
    catalog_store.init_db()
    return catalog_store


def test_mat_price_crud(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)

    result = store.upsert_mat_price(
        {
            "code": "MBW1",
            "name": "Poslovni predpražnik",
            "category": "poslovni",
            "dimensions": "85*150",
            "m2": 1.28,
            "prices": {"1": 6.8, "2": 4.03, "3": 2.85, "4": 2.48},
            "purchase_price": 75.33,
        }
    )
    assert result["price_week_2"] == 4.03
    assert result["prices"]["4"] == 2.48
    assert result["purchase_price"] == 75.33
    assert result["is_active"] is True

    store.upsert_mat_price({"code": "MBW1", "name": "Poslovni", "category": "poslovni", "price_week_2": 4.5})
    rows = store.list_mat_prices()
    assert len(rows) == 1
    assert rows[0]["price_week_2"] == 4.5
    assert rows[0]["name"] == "Poslovni"

    assert store.delete_mat_price("MBW1") is True
    assert store.list_mat_prices() == []
    assert store.list_mat_prices(include_inactive=True)[0]["is_active"] is False
    assert store.delete_mat_price("MISSING") is False


@pytest.mark.parametrize(
    "row",
    [
        {"code": "", "name": "X", "category": "poslovni"},
        {"code": "X1", "name": "X", "category": "kuhinja"},
        {"code": "X1", "name": "X", "category": "poslovni", "price_week_1": -1},
    ],
)
def test_mat_price_validation(tmp_path, monkeypatch, row):
    store = _use_store(tmp_path, monkeypatch)
    with pytest.raises(ValueError):
        store.upsert_mat_price(row)


def test_seed_defaults_fills_empty_tables_once(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    counts = store.seed_defaults()
    assert counts == {"mat_prices": 28, "optibrush_prices": 24, "custom_m2_prices": 8, "price_settings": 3}

    again = store.seed_defaults()
    assert sum(again.values()) == 0
    assert store.seed_defaults(overwrite=True)["mat_prices"] == 28


def test_catalog_and_settings_from_store(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    store.seed_defaults()
    store.set_price_setting("design_purchase_price_per_m2", 200.0)
    store.upsert_custom_m2_price("large", "2", 5.0)
    store.upsert_optibrush_price(
        {"has_edge": True, "has_drainage": False, "is_standard": True, "is_large": False, "color_count": "1", "price_per_m2": 150.0}
    )

    catalog = PriceCatalog.from_store()
    assert len(catalog) == 28
    assert catalog.lookup("MBW1").rental_price("2") == 4.03

    settings = PricingSettings.from_store()
    assert settings.purchase_price_per_m2 == 200.0
    assert settings.custom_rate(2.16, "2") == 5.0
    assert settings.optibrush_tier_table[(True, False, True, False, "1")] == 150.0


def test_empty_store_falls_back_to_builtin_catalog(tmp_path, monkeypatch):
    _use_store(tmp_path, monkeypatch)
    assert len(PriceCatalog.from_store()) == len(PriceCatalog.builtin())


def test_bulk_increase_rental_only(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    store.seed_defaults()
    touched = store.bulk_price_increase("poslovni", 10, "rental")
    assert touched == 5

    row = store.get_mat_price("MBW1")
    assert row["price_week_2"] == 4.43
    assert row["price_purchase"] == 75.33
    assert store.get_mat_price("ERM10R")["price_week_2"] == 3.21


def test_bulk_increase_custom_rates(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    store.seed_defaults()
    assert store.bulk_price_increase("custom_m2", 10) == 8
    rates = {(r["size_category"], r["frequency"]): r["price_per_m2"] for r in store.list_custom_m2_prices()}
    assert rates[("small", "1")] == 10.15

    with pytest.raises(ValueError):
        store.bulk_price_increase("kuhinja", 10)


def test_custom_and_optibrush_validation(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    with pytest.raises(ValueError):
        store.upsert_custom_m2_price("medium", "1", 5.0)
    with pytest.raises(ValueError):
        store.upsert_custom_m2_price("small", "5", 5.0)
    with pytest.raises(ValueError):
        store.upsert_optibrush_price({"color_count": "4", "price_per_m2": 100})


def test_timestamps_are_timezone_aware(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    assert store._utcnow().tzinfo is not None

    created = store.upsert_mat_price({"code": "TZ-1", "name": "Ura", "category": "poslovni", "price_week_2": 3.0})
    assert isinstance(created["updated_at"], datetime)
    updated = store.upsert_mat_price({"code": "TZ-1", "name": "Ura", "category": "poslovni", "price_week_2": 3.5})
    assert updated["updated_at"] >= created["updated_at"]
    assert store.bulk_price_increase("poslovni", 10, "rental") == 1
