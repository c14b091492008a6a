from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote

from .config import Settings
from .events import SERVER_LOG_SOURCE

MOBILE_RE = re.compile(r"mobile|android|iphone|ipod|blackberry|iemobile|opera mini")
TABLET_RE = re.compile(r"tablet|ipad|playbook|silk")


def utc_now_iso(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """Proxy headers first, then the socket peer. `headers` is keyed lowercase."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return peer or "unknown"


def _finite(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def geo_from_headers(headers: Mapping[str, str], prefix: str) -> Dict[str, Any]:
    """Edge-provided geo fields; only the ones that are present and valid."""
    geo: Dict[str, Any] = {}
    country = headers.get(prefix + "country")
    region = headers.get(prefix + "country-region")
    city = headers.get(prefix + "city")
    if country:
        geo["countryCode"] = country
    if region:
        geo["regionCode"] = region
    if city:
        geo["city"] = unquote(city)
    lat = _finite(headers.get(prefix + "latitude"))
    lon = _finite(headers.get(prefix + "longitude"))
    if lat is not None:
        geo["latitude"] = lat
    if lon is not None:
        geo["longitude"] = lon
    return geo


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, Optional[str]]:
    if not user_agent:
        return {"browser": None, "os": None, "deviceType": "unknown"}
    ua = user_agent.lower()

    device = "desktop"
    if MOBILE_RE.search(ua):
        device = "mobile"
    elif TABLET_RE.search(ua):
        device = "tablet"

    browser = None
    if "chrome" in ua and "edg" not in ua and "opr" not in ua:
        browser = "chrome"
    elif "firefox" in ua:
        browser = "firefox"
    elif "safari" in ua and "chrome" not in ua:
        browser = "safari"
    elif "edg" in ua:
        browser = "edge"
    elif "opr" in ua or "opera" in ua:
        browser = "opera"

    os_name = None
    if "windows" in ua:
        os_name = "windows"
    elif "mac os x" in ua or "macintosh" in ua:
        os_name = "macos"
    elif "linux" in ua:
        os_name = "linux"
    elif "android" in ua:
        os_name = "android"
    elif "iphone" in ua or "ipad" in ua:
        os_name = "ios"

    return {"browser": browser, "os": os_name, "deviceType": device}


def tracked_record(body: Dict[str, Any], headers: Mapping[str, str], cfg: Settings,
                   peer: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Client payload plus the fields only the server can observe."""
    record = dict(body)
    record["ip"] = client_ip(headers, peer)
    record["timestamp"] = utc_now_iso(now)
    record.update(geo_from_headers(headers, cfg.GEO_HEADER_PREFIX))
    return record


def visitor_key(record: Dict[str, Any]) -> str:
    visitor_id = record.get("visitorId")
    if visitor_id:
        return str(visitor_id)
    return f"{record.get('ip')}:{record.get('path')}"


def server_log_record(ip: str, path: str, referrer: str, user_agent: Optional[str],
                      headers: Mapping[str, str], cfg: Settings,
                      now: Optional[datetime] = None) -> Dict[str, Any]:
    geo = geo_from_headers(headers, cfg.GEO_HEADER_PREFIX)
    record = {
        "ip": ip,
        "path": path,
        "referrer": referrer,
        "userAgent": user_agent or "unknown",
        "timestamp": utc_now_iso(now),
        "source": SERVER_LOG_SOURCE,
        "countryCode": geo.get("countryCode"),
        "regionCode": geo.get("regionCode"),
        "city": geo.get("city"),
        "latitude": geo.get("latitude"),
        "longitude": geo.get("longitude"),
    }
    record.update(parse_user_agent(user_agent))
    return record
