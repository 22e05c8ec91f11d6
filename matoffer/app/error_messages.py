"""Friendly Slovenian messages for the offer wizard.

The pricing engine itself never reports errors; these texts are only used
by the HTTP layer when a step transition is blocked or a session is gone.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from matoffer.app.pricing.models import OfferItem


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _item_label(index: int, item: OfferItem) -> str:
    label = item.code or item.name or "predpražnik"
    if item.size:
        label = f"{label} ({item.size})"
    problems = []
    if item.item_type == "optibrush":
        if item.optibrush is None or not item.optibrush.has_dimensions:
            problems.append("manjkajo dimenzije")
    elif not item.code:
        problems.append("ni izbrane kode ali dimenzije")
    if item.price_per_unit <= 0:
        problems.append("cena mora biti večja od 0")
    return f"{index}. {label}: {', '.join(problems)}"


def incomplete_items_message(items: Sequence[OfferItem]) -> str:
    """Reply when "next" is pressed while some items are not configured yet."""
    if not items:
        return "Korak še ni zaključen. Preverite vnesene predpražnike."
    bullets = _bullet_list(_item_label(i, item) for i, item in enumerate(items, 1))
    return (
        "Ponudbe še ni mogoče nadaljevati\n\n"
        "Te postavke še niso popolne:\n"
        f"{bullets}\n\n"
        "Dopolnite manjkajoče podatke in nadaljujte."
    )


def unknown_session_message(session_id: str) -> str:
    return f"Ponudba '{session_id}' ne obstaja več. Začnite novo ponudbo."


def unknown_code_message(code: str) -> str:
    return f"Koda '{code}' ni v ceniku. Izberite predpražnik iz seznama ali vnesite dimenzije po meri."
