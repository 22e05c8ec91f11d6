from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from matoffer.app.error_messages import (
    incomplete_items_message,
    unknown_code_message,
    unknown_session_message,
)
from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.pricing.models import OFFER_TYPES, Offer
from matoffer.app.pricing.optibrush import OptibrushConfig, OptibrushPricer, describe_tier
from matoffer.app.pricing.seasonal import PERIODS
from matoffer.app.services.offer_wizard import OfferWizard
from matoffer.app.utils import to_int


class ServiceError(Exception):
    """Domain specific error that can be translated to HTTP responses."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class OfferServiceContext:
    catalog: PriceCatalog
    settings: PricingSettings
    offer_sessions: Dict[str, OfferWizard]
    logger: Any
    save_callback: Callable[[Dict[str, Any]], Any] | None = None
    debug: bool = False
    saved_offers: List[Dict[str, Any]] = field(default_factory=list)


# action name -> (wizard method, payload keys passed as keyword arguments)
ACTIONS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "set_offer_type": ("set_offer_type", ("offer_type",)),
    "set_offer_frequency": ("set_offer_frequency", ("frequency",)),
    "remove_item": ("remove_item", ("item_id",)),
    "set_item_type": ("set_item_type", ("item_id", "item_type")),
    "select_code": ("select_code", ("item_id", "code")),
    "set_dimensions": ("set_dimensions", ("item_id", "text")),
    "set_special_shape": ("set_special_shape", ("item_id", "enabled")),
    "set_purpose": ("set_purpose", ("item_id", "purpose")),
    "set_frequency_override": ("set_frequency_override", ("item_id", "frequency")),
    "set_price": ("set_price", ("item_id", "price")),
    "set_discount": ("set_discount", ("item_id", "discount")),
    "set_quantity": ("set_quantity", ("item_id", "value")),
    "commit_quantity": ("commit_quantity", ("item_id",)),
    "set_replacement_cost": ("set_replacement_cost", ("item_id", "value")),
    "set_customized": ("set_customized", ("item_id", "enabled")),
    "set_name": ("set_name", ("item_id", "name")),
    "toggle_seasonal": ("toggle_seasonal", ("item_id", "enabled")),
    "change_period_frequency": ("change_period_frequency", ("item_id", "period", "frequency")),
    "change_period_price": ("change_period_price", ("item_id", "period", "price")),
    "change_period_discount": ("change_period_discount", ("item_id", "period", "discount")),
    "set_period_weeks": ("set_period_weeks", ("item_id", "period", "from_week", "to_week")),
}

OPTIBRUSH_KEYS = ("has_edge", "color_count", "has_drainage", "special_shape", "width_cm", "height_cm")


def _get_wizard(ctx: OfferServiceContext, session_id: str) -> OfferWizard:
    wizard = ctx.offer_sessions.get(session_id or "")
    if wizard is None:
        raise ServiceError(unknown_session_message(session_id), status_code=404)
    return wizard


def _state(session_id: str, wizard: OfferWizard) -> Dict[str, Any]:
    data = wizard.snapshot()
    data["session_id"] = session_id
    return data


def start_offer(*, payload: Dict[str, Any], ctx: OfferServiceContext) -> Dict[str, Any]:
    offer_type = (payload or {}).get("offer_type") or "najem"
    if offer_type not in OFFER_TYPES:
        raise ServiceError(f"Neznana vrsta ponudbe '{offer_type}'.", status_code=400)
    wizard = OfferWizard(ctx.catalog, ctx.settings, offer=Offer(), logger=ctx.logger)
    wizard.set_offer_type(offer_type)
    frequency = (payload or {}).get("frequency")
    if frequency is not None:
        wizard.set_offer_frequency(str(frequency))
    session_id = wizard.offer.id
    ctx.offer_sessions[session_id] = wizard
    ctx.logger.info("offer session %s started (%s)", session_id, offer_type)
    return _state(session_id, wizard)


def get_offer(*, session_id: str, ctx: OfferServiceContext) -> Dict[str, Any]:
    return _state(session_id, _get_wizard(ctx, session_id))


def apply_action(*, session_id: str, payload: Dict[str, Any], ctx: OfferServiceContext) -> Dict[str, Any]:
    wizard = _get_wizard(ctx, session_id)
    payload = payload or {}
    action = payload.get("action")
    notice: Optional[str] = None
    result: Dict[str, Any] = {}

    if action == "add_item":
        item = wizard.add_item(payload.get("kind") or "najem", payload.get("purpose"))
        applied = True
        result["item_id"] = item.id
    elif action == "update_optibrush":
        item_id = payload.get("item_id")
        _require_item(wizard, item_id)
        changes = {key: payload[key] for key in OPTIBRUSH_KEYS if key in payload}
        applied = wizard.update_optibrush(item_id, **changes)
        item = wizard.get_item(item_id)
        if item is not None and item.optibrush is not None:
            result["tier"] = describe_tier(item.optibrush)
    elif action in ACTIONS:
        method_name, keys = ACTIONS[action]
        if "item_id" in keys:
            _require_item(wizard, payload.get("item_id"))
        if "period" in keys and payload.get("period") not in PERIODS:
            raise ServiceError(f"Neznano obdobje '{payload.get('period')}'. Izberite 'normal' ali 'season'.", status_code=400)
        kwargs = {key: payload.get(key) for key in keys}
        applied = getattr(wizard, method_name)(**kwargs)
        if action == "select_code" and not applied:
            notice = unknown_code_message(str(payload.get("code") or ""))
    else:
        raise ServiceError(f"Neznano dejanje '{action}'.", status_code=400)

    if ctx.debug:
        ctx.logger.debug("offer %s action %s applied=%s", session_id, action, applied)
    response = _state(session_id, wizard)
    response.update(result)
    response["applied"] = bool(applied)
    if notice:
        response["notice"] = notice
    return response


def _require_item(wizard: OfferWizard, item_id: Optional[str]) -> None:
    if not item_id or wizard.get_item(item_id) is None:
        raise ServiceError(f"Postavka '{item_id}' ne obstaja.", status_code=400)


def next_step(*, session_id: str, ctx: OfferServiceContext) -> Dict[str, Any]:
    wizard = _get_wizard(ctx, session_id)
    if not wizard.next_step():
        blocked = wizard.incomplete_items()
        ctx.logger.info("offer %s blocked at step %s (%d incomplete)", session_id, wizard.offer.step, len(blocked))
        raise ServiceError(incomplete_items_message(blocked), status_code=409)
    return _state(session_id, wizard)


def previous_step(*, session_id: str, ctx: OfferServiceContext) -> Dict[str, Any]:
    wizard = _get_wizard(ctx, session_id)
    wizard.previous_step()
    return _state(session_id, wizard)


def finalize_offer(*, session_id: str, payload: Dict[str, Any], ctx: OfferServiceContext) -> Dict[str, Any]:
    """Hand the finished offer to the save collaborator and close the session."""
    wizard = _get_wizard(ctx, session_id)
    blocked = [item for step in wizard.path() for item in wizard.incomplete_items(step)]
    if blocked:
        raise ServiceError(incomplete_items_message(blocked), status_code=409)
    payload = payload or {}
    handoff = wizard.build_save_payload(payload.get("company_name"), payload.get("email"))
    if ctx.save_callback is not None:
        ctx.save_callback(handoff)
    ctx.saved_offers.append(handoff)
    ctx.offer_sessions.pop(session_id, None)
    ctx.logger.info("offer %s finalized: %s (%d row(s))", session_id, handoff["subject"], len(handoff["rows"]))
    return handoff


def close_offer(*, session_id: str, ctx: OfferServiceContext) -> Dict[str, Any]:
    _get_wizard(ctx, session_id)
    ctx.offer_sessions.pop(session_id, None)
    return {"ok": True, "session_id": session_id}


def reset_sessions(*, ctx: OfferServiceContext) -> Dict[str, Any]:
    count = len(ctx.offer_sessions)
    ctx.offer_sessions.clear()
    return {"ok": True, "closed": count}


def list_catalog(*, ctx: OfferServiceContext, category: Optional[str] = None) -> Dict[str, Any]:
    entries = [e for e in ctx.catalog.entries if not category or e.category == category]
    return {"count": len(entries), "items": [e.to_dict() for e in entries]}


def catalog_entry(*, code: str, ctx: OfferServiceContext) -> Dict[str, Any]:
    entry = ctx.catalog.lookup(code)
    if entry is None:
        raise ServiceError(unknown_code_message(code), status_code=404)
    return entry.to_dict()


def optibrush_quote(*, payload: Dict[str, Any], ctx: OfferServiceContext) -> Dict[str, Any]:
    payload = payload or {}
    config = OptibrushConfig(
        has_edge=bool(payload.get("has_edge", True)),
        color_count="2-3" if str(payload.get("color_count")) == "2-3" else "1",
        has_drainage=bool(payload.get("has_drainage", False)),
        special_shape=bool(payload.get("special_shape", False)),
        width_cm=to_int(payload.get("width_cm")),
        height_cm=to_int(payload.get("height_cm")),
    )
    quote = OptibrushPricer(ctx.settings).quote(config)
    if quote is None:
        raise ServiceError("Vnesite veljavne dimenzije (širina in višina v cm).", status_code=400)
    return {
        "price_per_m2": quote.price_per_m2,
        "total_price": quote.total_price,
        "m2": quote.m2,
        "tier": describe_tier(config),
    }
