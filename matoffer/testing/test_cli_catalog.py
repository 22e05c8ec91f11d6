import csv
import json
from pathlib import Path

import pytest
import yaml

import matoffer.cli.catalog_cli as cli
import matoffer.store.catalog_store as catalog_store


def _use_store(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DB_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    catalog_store.init_db()
    return catalog_store


def _write_csv(path: Path, rows):
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=["code", "name", "category", "dimensions", "price_week_1", "price_week_2", "price_purchase", "active"])
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def test_import_export_prices_roundtrip_csv(tmp_path, monkeypatch, capsys):
    store = _use_store(tmp_path, monkeypatch)
    csv_path = tmp_path / "prices.csv"
    _write_csv(
        csv_path,
        [
            {"code": "MBW1", "name": "Poslovni", "category": "poslovni", "dimensions": "85x150", "price_week_1": "6,80", "price_week_2": "4.03", "price_purchase": "75.33", "active": "da"},
            {"code": "DESIGN-85x150", "name": "Design", "category": "Design", "dimensions": "85*150", "price_week_1": "10", "price_week_2": "6.08", "price_purchase": "115.13", "active": ""},
        ],
    )

    assert cli.main(["import-prices", "--path", str(csv_path)]) == 0
    assert "Imported 2 prices (inserted=2 updated=0)." in capsys.readouterr().out

    row = store.get_mat_price("MBW1")
    assert row["price_week_1"] == 6.8
    assert row["dimensions"] == "85*150"
    assert row["m2"] == 1.28
    assert store.get_mat_price("DESIGN-85x150")["category"] == "design"

    assert cli.main(["import-prices", "--path", str(csv_path)]) == 0
    assert "inserted=0 updated=2" in capsys.readouterr().out

    export_path = tmp_path / "out" / "prices.csv"
    assert cli.main(["export-prices", "--path", str(export_path), "--category", "poslovni"]) == 0
    with export_path.open(encoding="utf-8") as handle:
        exported = list(csv.DictReader(handle))
    assert [r["code"] for r in exported] == ["MBW1"]
    assert exported[0]["active"] == "true"


def test_import_prices_json(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    json_path = tmp_path / "prices.json"
    json_path.write_text(
        json.dumps([{"code": "ERM10R", "name": "Ergonomski", "category": "ergonomski", "price_week_2": 3.21, "active": False}]),
        encoding="utf-8",
    )
    assert cli.main(["import-prices", "--path", str(json_path)]) == 0
    assert store.list_mat_prices() == []
    assert store.list_mat_prices(include_inactive=True)[0]["price_week_2"] == 3.21


def test_import_prices_rejects_bad_rows(tmp_path, monkeypatch, capsys):
    _use_store(tmp_path, monkeypatch)
    csv_path = tmp_path / "bad.csv"
    _write_csv(csv_path, [{"code": "X1", "name": "X", "category": "kuhinja"}])
    assert cli.main(["import-prices", "--path", str(csv_path)]) == 1
    assert "unknown category 'kuhinja'" in capsys.readouterr().err

    _write_csv(csv_path, [{"code": "X1", "name": "X", "category": "poslovni", "price_week_1": "poceni"}])
    assert cli.main(["import-prices", "--path", str(csv_path)]) == 1

    assert cli.main(["import-prices", "--path", str(tmp_path / "prices.txt")]) == 1
    assert "--format" in capsys.readouterr().err


def test_import_and_export_settings(tmp_path, monkeypatch):
    store = _use_store(tmp_path, monkeypatch)
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text(
        yaml.safe_dump(
            {
                "special_shape_multiplier": 1.6,
                "custom_m2_rates": {"small": {"1": 10.0}},
                "optibrush_tiers": [
                    {"has_edge": True, "has_drainage": True, "is_standard": True, "is_large": False, "color_count": "1", "price_per_m2": 190.0}
                ],
            }
        ),
        encoding="utf-8",
    )
    assert cli.main(["import-settings", "--path", str(settings_path)]) == 0
    assert store.get_price_settings()["special_shape_multiplier"] == 1.6
    assert store.list_custom_m2_prices()[0]["price_per_m2"] == 10.0

    export_path = tmp_path / "export.yaml"
    assert cli.main(["export-settings", "--path", str(export_path)]) == 0
    exported = yaml.safe_load(export_path.read_text(encoding="utf-8"))
    assert exported["special_shape_multiplier"] == 1.6
    assert exported["custom_m2_rates"] == {"small": {"1": 10.0}}
    assert exported["optibrush_tiers"][0]["price_per_m2"] == 190.0


def test_seed_bulk_increase_and_stats(tmp_path, monkeypatch, capsys):
    store = _use_store(tmp_path, monkeypatch)
    assert cli.main(["seed"]) == 0
    assert "mat_prices=28" in capsys.readouterr().out

    assert cli.main(["bulk-increase", "--category", "design", "--percentage", "10", "--price-type", "purchase"]) == 0
    assert store.get_mat_price("DESIGN-100x100")["price_purchase"] == 99.33

    assert cli.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "mat prices: active=28 total=28" in out
    assert "optibrush tiers: 24" in out


def test_parse_bool_rejects_garbage():
    assert cli._parse_bool("NE") is False
    assert cli._parse_bool(None) is True
    with pytest.raises(cli.CLIError):
        cli._parse_bool("morda")
