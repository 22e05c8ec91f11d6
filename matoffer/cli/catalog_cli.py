from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from matoffer.app.pricing.dimensions import m2_from_dimensions
from matoffer.shared.normalize.text import normalize_dimensions
from matoffer.store import catalog_store

PRICE_HEADERS = [
    "code",
    "name",
    "category",
    "dimensions",
    "m2",
    "price_week_1",
    "price_week_2",
    "price_week_3",
    "price_week_4",
    "price_purchase",
    "active",
]
REQUIRED_HEADERS = ["code", "name", "category"]
SETTING_KEYS = ("special_shape_multiplier", "design_purchase_price_per_m2", "optibrush_special_shape_multiplier")
TRUTHY = {"1", "true", "yes", "y", "on", "da"}
FALSY = {"0", "false", "no", "n", "off", "ne"}


class CLIError(Exception):
    """Raised when user input is invalid."""


def _resolve_format(path: Path, explicit: Optional[str], allowed: Iterable[str]) -> str:
    if explicit:
        fmt = explicit.lower()
        if fmt not in allowed:
            raise CLIError(f"Unsupported format '{explicit}'. Allowed: {', '.join(sorted(allowed))}")
        return fmt
    suffix = path.suffix.lower()
    if suffix in (".csv", ".tsv") and "csv" in allowed:
        return "csv"
    if suffix == ".json" and "json" in allowed:
        return "json"
    if suffix in (".yaml", ".yml") and "yaml" in allowed:
        return "yaml"
    raise CLIError("Unable to infer format from file extension. Please pass --format.")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return True
    text = str(value).strip().lower()
    if not text:
        return True
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise CLIError(f"Could not parse boolean value '{value}' for 'active'.")


def _parse_price(value, label: str) -> float:
    if value is None or str(value).strip() == "":
        return 0.0
    try:
        price = float(str(value).strip().replace(",", "."))
    except ValueError as exc:
        raise CLIError(f"{label}: '{value}' is not a number.") from exc
    if price < 0:
        raise CLIError(f"{label}: price must not be negative.")
    return price


def _price_from_entry(entry: Dict[str, object], label: str) -> Dict[str, object]:
    code = str(entry.get("code") or "").strip()
    name = str(entry.get("name") or "").strip()
    category = str(entry.get("category") or "").strip().lower()
    if not code or not name:
        raise CLIError(f"{label}: 'code' and 'name' are required.")
    if category not in catalog_store.CATEGORIES:
        raise CLIError(f"{label}: unknown category '{category}'.")
    dimensions = normalize_dimensions(str(entry.get("dimensions") or "")) or str(entry.get("dimensions") or "")
    m2_raw = entry.get("m2")
    m2 = _parse_price(m2_raw, f"{label} m2") if m2_raw not in (None, "") else m2_from_dimensions(dimensions)
    row: Dict[str, object] = {
        "code": code,
        "name": name,
        "category": category,
        "dimensions": dimensions,
        "m2": m2,
        "price_purchase": _parse_price(entry.get("price_purchase"), f"{label} price_purchase"),
        "is_active": _parse_bool(entry.get("active", entry.get("is_active"))),
    }
    for freq in ("1", "2", "3", "4"):
        key = f"price_week_{freq}"
        row[key] = _parse_price(entry.get(key), f"{label} {key}")
    return row


def _read_prices_from_csv(path: Path) -> List[Dict[str, object]]:
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            return []
        missing = [column for column in REQUIRED_HEADERS if column not in reader.fieldnames]
        if missing:
            raise CLIError(f"CSV missing required headers: {', '.join(missing)}")
        return [_price_from_entry(row, f"Row {line_no}") for line_no, row in enumerate(reader, start=2)]


def _read_prices_from_json(path: Path) -> List[Dict[str, object]]:
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8") or "[]")
    if not isinstance(data, list):
        raise CLIError("JSON payload must be a list of price objects.")
    rows: List[Dict[str, object]] = []
    for idx, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise CLIError(f"Entry {idx} is not a JSON object.")
        rows.append(_price_from_entry(entry, f"Entry {idx}"))
    return rows


def _price_to_row(price: Dict[str, object]) -> Dict[str, object]:
    return {
        "code": price.get("code", ""),
        "name": price.get("name", ""),
        "category": price.get("category", ""),
        "dimensions": price.get("dimensions", ""),
        "m2": price.get("m2", 0.0),
        "price_week_1": price.get("price_week_1", 0.0),
        "price_week_2": price.get("price_week_2", 0.0),
        "price_week_3": price.get("price_week_3", 0.0),
        "price_week_4": price.get("price_week_4", 0.0),
        "price_purchase": price.get("price_purchase", 0.0),
        "active": bool(price.get("is_active", True)),
    }


def _write_prices_csv(path: Path, prices: List[Dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=PRICE_HEADERS)
        writer.writeheader()
        for price in prices:
            row = _price_to_row(price)
            row["active"] = "true" if row["active"] else "false"
            writer.writerow(row)


def _write_prices_json(path: Path, prices: List[Dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [_price_to_row(price) for price in prices]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_settings_yaml(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise CLIError("Settings YAML must define a mapping.")
    return data


def cmd_import_prices(args: argparse.Namespace) -> None:
    path = Path(args.path)
    fmt = _resolve_format(path, args.format, {"csv", "json"})
    prices = _read_prices_from_csv(path) if fmt == "csv" else _read_prices_from_json(path)
    existing = {row["code"] for row in catalog_store.list_mat_prices(include_inactive=True)}
    inserted = 0
    updated = 0
    for price in prices:
        if price["code"] in existing:
            updated += 1
        else:
            inserted += 1
            existing.add(price["code"])
        catalog_store.upsert_mat_price(price)
    print(f"Imported {len(prices)} prices (inserted={inserted} updated={updated}).")


def cmd_export_prices(args: argparse.Namespace) -> None:
    path = Path(args.path)
    fmt = _resolve_format(path, args.format, {"csv", "json"})
    prices = catalog_store.list_mat_prices(category=args.category)
    prices_sorted = sorted(prices, key=lambda item: (item.get("category", ""), item.get("code", "")))
    if fmt == "csv":
        _write_prices_csv(path, prices_sorted)
    else:
        _write_prices_json(path, prices_sorted)
    print(f"Exported {len(prices_sorted)} prices to {path}.")


def cmd_import_settings(args: argparse.Namespace) -> None:
    data = _read_settings_yaml(Path(args.path))
    applied = 0
    for key in SETTING_KEYS:
        if key in data:
            catalog_store.set_price_setting(key, _parse_price(data[key], key))
            applied += 1
    rates = data.get("custom_m2_rates") or {}
    if not isinstance(rates, dict):
        raise CLIError("'custom_m2_rates' must be a mapping of small/large -> frequency -> price.")
    for size, by_freq in rates.items():
        if not isinstance(by_freq, dict):
            raise CLIError(f"custom_m2_rates.{size} must be a mapping.")
        for freq, value in by_freq.items():
            try:
                catalog_store.upsert_custom_m2_price(str(size), str(freq), _parse_price(value, f"{size}/{freq}"))
            except ValueError as exc:
                raise CLIError(str(exc)) from exc
            applied += 1
    for idx, tier in enumerate(data.get("optibrush_tiers") or [], start=1):
        if not isinstance(tier, dict):
            raise CLIError(f"optibrush_tiers entry {idx} is not a mapping.")
        try:
            catalog_store.upsert_optibrush_price(tier)
        except ValueError as exc:
            raise CLIError(f"optibrush_tiers entry {idx}: {exc}") from exc
        applied += 1
    print(f"Applied {applied} setting value(s) from {args.path}.")


def cmd_export_settings(args: argparse.Namespace) -> None:
    path = Path(args.path)
    rates: Dict[str, Dict[str, float]] = {}
    for row in catalog_store.list_custom_m2_prices():
        rates.setdefault(str(row["size_category"]), {})[str(row["frequency"])] = float(row["price_per_m2"])
    tiers = [
        {key: row[key] for key in ("has_edge", "has_drainage", "is_standard", "is_large", "color_count", "price_per_m2")}
        for row in catalog_store.list_optibrush_prices()
    ]
    payload: Dict[str, object] = dict(catalog_store.get_price_settings())
    payload["custom_m2_rates"] = rates
    payload["optibrush_tiers"] = tiers
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=True), encoding="utf-8")
    print(f"Exported settings to {path}.")


def cmd_bulk_increase(args: argparse.Namespace) -> None:
    try:
        touched = catalog_store.bulk_price_increase(args.category, args.percentage, args.price_type)
    except ValueError as exc:
        raise CLIError(str(exc)) from exc
    print(f"Raised {args.category} prices by {args.percentage}% ({touched} row(s)).")


def cmd_seed(args: argparse.Namespace) -> None:
    counts = catalog_store.seed_defaults(overwrite=args.overwrite)
    summary = " ".join(f"{table}={count}" for table, count in counts.items())
    print(f"Seeded defaults: {summary}.")


def cmd_stats(args: argparse.Namespace) -> None:
    active = catalog_store.list_mat_prices()
    total = catalog_store.list_mat_prices(include_inactive=True)
    by_category: Dict[str, int] = {}
    for row in active:
        by_category[str(row["category"])] = by_category.get(str(row["category"]), 0) + 1
    categories = ", ".join(f"{name}={count}" for name, count in sorted(by_category.items())) or "-"
    print(
        "Price store stats:\n"
        f"- mat prices: active={len(active)} total={len(total)} ({categories})\n"
        f"- optibrush tiers: {len(catalog_store.list_optibrush_prices())}\n"
        f"- custom m² rates: {len(catalog_store.list_custom_m2_prices())}\n"
        f"- settings: {len(catalog_store.get_price_settings())}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage mat prices and pricing settings in the local store.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_prices = subparsers.add_parser("import-prices", help="Import mat prices from CSV/JSON.")
    import_prices.add_argument("--path", required=True)
    import_prices.add_argument("--format", choices=("csv", "json"), default=None)
    import_prices.set_defaults(func=cmd_import_prices)

    export_prices = subparsers.add_parser("export-prices", help="Export active mat prices.")
    export_prices.add_argument("--path", required=True)
    export_prices.add_argument("--format", choices=("csv", "json"), default=None)
    export_prices.add_argument("--category", choices=catalog_store.CATEGORIES, default=None)
    export_prices.set_defaults(func=cmd_export_prices)

    import_settings = subparsers.add_parser("import-settings", help="Import pricing settings from YAML.")
    import_settings.add_argument("--path", required=True)
    import_settings.set_defaults(func=cmd_import_settings)

    export_settings = subparsers.add_parser("export-settings", help="Export pricing settings to YAML.")
    export_settings.add_argument("--path", required=True)
    export_settings.set_defaults(func=cmd_export_settings)

    bulk = subparsers.add_parser("bulk-increase", help="Raise prices of a category by a percentage.")
    bulk.add_argument("--category", required=True, choices=catalog_store.BULK_CATEGORIES)
    bulk.add_argument("--percentage", required=True, type=float)
    bulk.add_argument("--price-type", dest="price_type", choices=catalog_store.PRICE_TYPES, default="all")
    bulk.set_defaults(func=cmd_bulk_increase)

    seed = subparsers.add_parser("seed", help="Fill empty tables from the built-in price list.")
    seed.add_argument("--overwrite", action="store_true", help="Re-apply built-in prices to every table.")
    seed.set_defaults(func=cmd_seed)

    stats = subparsers.add_parser("stats", help="Show price store stats.")
    stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    catalog_store.init_db()
    try:
        args.func(args)
    except CLIError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
