# main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

BASE_DIR = Path(__file__).resolve().parent

# Load .env before reading any configuration
load_dotenv(BASE_DIR / ".env")

from matoffer.app import admin_api
from matoffer.app.pricing.catalog import PriceCatalog, PricingSettings
from matoffer.app.services.offer_service import (
    OfferServiceContext,
    ServiceError,
    apply_action,
    catalog_entry,
    close_offer,
    finalize_offer,
    get_offer,
    list_catalog,
    next_step,
    optibrush_quote,
    previous_step,
    reset_sessions,
    start_offer,
)
from matoffer.store import catalog_store


# ---------- Logging ----------
logger = logging.getLogger("matoffer")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# ---------- ENV ----------
DEBUG = os.getenv("DEBUG", "0") == "1"
PRICE_SOURCE = os.getenv("PRICE_SOURCE", "builtin").lower()
PRICING_SETTINGS_FILE = os.getenv("PRICING_SETTINGS_FILE", str(BASE_DIR / "data" / "pricing_settings.yaml"))
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("FRONTEND_ORIGINS", "").split(",") if o.strip()]

if DEBUG:
    logger.setLevel(logging.DEBUG)


def _load_pricing() -> tuple[PriceCatalog, PricingSettings]:
    if PRICE_SOURCE == "store":
        catalog_store.init_db()
        catalog_store.seed_defaults()
        return PriceCatalog.from_store(), PricingSettings.from_store()
    return PriceCatalog.builtin(), PricingSettings.from_yaml(Path(PRICING_SETTINGS_FILE))


CATALOG, SETTINGS = _load_pricing()
OFFER_SESSIONS: Dict[str, Any] = {}


def _log_saved_offer(handoff: Dict[str, Any]) -> None:
    logger.info("offer ready for delivery: %s (%s)", handoff["subject"], handoff["db_offer_type"])


SERVICE_CONTEXT = OfferServiceContext(
    catalog=CATALOG,
    settings=SETTINGS,
    offer_sessions=OFFER_SESSIONS,
    logger=logger,
    save_callback=_log_saved_offer,
    debug=DEBUG,
)


def refresh_pricing() -> Dict[str, Any]:
    """Reload catalog and settings, e.g. after an admin price change."""
    global CATALOG, SETTINGS
    CATALOG, SETTINGS = _load_pricing()
    SERVICE_CONTEXT.catalog = CATALOG
    SERVICE_CONTEXT.settings = SETTINGS
    for wizard in OFFER_SESSIONS.values():
        wizard.rebind(CATALOG, SETTINGS)
    logger.info("pricing refreshed: %d catalog entries (source=%s)", len(CATALOG), PRICE_SOURCE)
    return {"entries": len(CATALOG), "source": PRICE_SOURCE}


def _get_service_context() -> OfferServiceContext:
    return SERVICE_CONTEXT


# ---------- FastAPI ----------


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    catalog_store.init_db()
    logger.info("startup: price source=%s, %d catalog entries", PRICE_SOURCE, len(CATALOG))
    logger.info("startup: db=%s", catalog_store.current_db_url())
    yield


app = FastAPI(title="matoffer", lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or ["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(admin_api.router)


@app.get("/")
def root():
    return {"ok": True, "service": "matoffer", "health": "/api/health", "docs": "/docs"}


@app.get("/api/health")
def api_health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


@app.get("/api/catalog")
def api_catalog(category: Optional[str] = Query(None)):
    return list_catalog(ctx=_get_service_context(), category=category)


@app.get("/api/catalog/{code}")
def api_catalog_entry(code: str):
    try:
        return catalog_entry(code=code, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/optibrush/quote")
def api_optibrush_quote(payload: Dict[str, Any] = Body(...)):
    try:
        return optibrush_quote(payload=payload, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


# ---- Offer wizard ----
@app.post("/api/offers/start")
def api_offer_start(payload: Dict[str, Any] = Body(default={})):
    try:
        return start_offer(payload=payload or {}, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/offers/reset")
def api_offer_reset():
    return reset_sessions(ctx=_get_service_context())


@app.get("/api/offers/{session_id}")
def api_offer_get(session_id: str):
    try:
        return get_offer(session_id=session_id, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/offers/{session_id}/action")
def api_offer_action(session_id: str, payload: Dict[str, Any] = Body(...)):
    try:
        return apply_action(session_id=session_id, payload=payload, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/offers/{session_id}/next")
def api_offer_next(session_id: str):
    try:
        return next_step(session_id=session_id, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/offers/{session_id}/back")
def api_offer_back(session_id: str):
    try:
        return previous_step(session_id=session_id, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.post("/api/offers/{session_id}/finalize")
def api_offer_finalize(session_id: str, payload: Dict[str, Any] = Body(default={})):
    try:
        return finalize_offer(session_id=session_id, payload=payload or {}, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@app.delete("/api/offers/{session_id}")
def api_offer_close(session_id: str):
    try:
        return close_offer(session_id=session_id, ctx=_get_service_context())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
