import base64
import json
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .config import settings
from .ingest import client_ip, server_log_record, tracked_record, visitor_key
from .report import BADGE_LABELS, badge_metric, badge_value, build_report
from .schemas import BadgeEnvelope, StatsBundle
from .store import EventStore
from .utils.logging import setup_logging
from .workers.filters import is_loopback

logger = setup_logging()

# 1x1 transparent GIF
PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")
PIXEL_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.SERVICE_NAME} {settings.VERSION} started")
    yield


app = FastAPI(title="pagetally API", version=settings.VERSION, lifespan=lifespan)

# tracked sites live on other origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_store() -> EventStore:
    return EventStore()


def _peer(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@app.get("/health")
def health(store: EventStore = Depends(get_store)):
    return {"ok": True, "service": settings.SERVICE_NAME, "redis": store.ping()}


@app.post("/track")
def track(request: Request, payload: Dict[str, Any] = Body(...), store: EventStore = Depends(get_store)):
    """
    Store one client-reported event, enriched with address, timestamp and geo.
    """
    cfg = store.cfg
    record = tracked_record(payload, request.headers, cfg, peer=_peer(request))
    try:
        store.record(cfg.VISITS_KEY, json.dumps(record))
        store.add_to_set(cfg.UNIQUE_IPS_KEY, record["ip"])
        store.add_to_set(cfg.UNIQUE_VISITORS_KEY, visitor_key(record))
    except Exception:
        logger.exception("Error tracking visit")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    logger.debug(f"tracked {record.get('path')} from {record['ip']}")
    return {"success": True}


@app.get("/log")
def server_log(
    request: Request,
    path: str = Query("/"),
    ref: Optional[str] = Query(None),
    store: EventStore = Depends(get_store),
):
    """Pixel endpoint: logs the request even when the page runs no JavaScript."""
    cfg = store.cfg
    ip = client_ip(request.headers, _peer(request))
    if is_loopback(ip):
        logger.debug(f"skipped pixel from {ip}")
        return {"success": True, "skipped": True, "reason": "localhost"}

    referrer = ref or request.headers.get("referer") or "direct"
    record = server_log_record(ip, path, referrer, request.headers.get("user-agent"), request.headers, cfg)
    try:
        store.record(cfg.SERVER_LOGS_KEY, json.dumps(record))
        store.add_to_set(cfg.UNIQUE_IPS_KEY, ip)
    except Exception:
        # the pixel is served regardless
        logger.exception("Error in server log")
    return Response(content=PIXEL, media_type="image/gif", headers=PIXEL_HEADERS)


@app.get("/stats", response_model=StatsBundle)
def stats(store: EventStore = Depends(get_store)):
    try:
        return build_report(store)
    except Exception:
        logger.exception("Error getting stats")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _wants_json(request: Request, fmt: Optional[str]) -> bool:
    if fmt:
        return fmt == "json"
    return "application/json" in request.headers.get("accept", "")


@app.get("/badge")
def badge(
    request: Request,
    metric: str = Query("visitors"),
    fmt: Optional[str] = Query(None, alias="format"),
    store: EventStore = Depends(get_store),
):
    """
    Single number for badge renderers. Failures still answer 200 with an
    "error" message, badge services cannot show anything else.
    """
    metric = badge_metric(metric)
    as_json = _wants_json(request, fmt)
    label = BADGE_LABELS[metric]
    try:
        value = badge_value(store, metric)
    except Exception:
        logger.exception("Error getting badge stats")
        if as_json:
            body = BadgeEnvelope(label=label, message="error", color="red")
            return JSONResponse(content=body.model_dump(by_alias=True))
        return PlainTextResponse("error")

    headers = {"Cache-Control": f"public, max-age={settings.BADGE_CACHE_SECONDS}"}
    if as_json:
        body = BadgeEnvelope(label=label, message=str(value), color="blue")
        return JSONResponse(content=body.model_dump(by_alias=True), headers=headers)
    return PlainTextResponse(str(value), headers=headers)
