from __future__ import annotations
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional

PAGES = ["/", "/blog", "/blog/first-post", "/projects", "/about", "/contact"]
DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _clock(now: Optional[datetime]):
    now = now or datetime.now(timezone.utc)
    return now.hour, DAYS[now.weekday()]


def _view(vid, sid, path, new, hour, day, **extra) -> Dict:
    ev = {"path": path, "visitorId": vid, "sessionId": sid, "isNewVisitor": new,
          "hour": hour, "dayName": day}
    ev.update(extra)
    return ev


def _exit(vid, sid, path, seconds, depth) -> Dict:
    return {"path": path, "visitorId": vid, "sessionId": sid, "eventType": "page_exit",
            "timeOnPage": seconds, "scrollDepth": depth}


def reader(vid="v_reader", sid_prefix="s_reader", pages=4, rng: random.Random = None,
           now: datetime = None) -> List[Dict]:
    """Returning visitor, reads several pages end to end."""
    rng = rng or random.Random()
    hour, day = _clock(now)
    sid = f"{sid_prefix}_{vid}_{rng.randrange(10**6)}"
    ev = []
    for path in PAGES[:pages]:
        ev.append(_view(vid, sid, path, False, hour, day, deviceType="desktop",
                        browser="firefox", os="linux", source="direct", sourceType="direct"))
        ev.append(_exit(vid, sid, path, rng.randint(60, 240), rng.randint(80, 100)))
    return ev


def bouncer(vid="v_bouncer", sid_prefix="s_bouncer", rng: random.Random = None,
            now: datetime = None) -> List[Dict]:
    """New visitor from search, one page, leaves quickly."""
    rng = rng or random.Random()
    hour, day = _clock(now)
    sid = f"{sid_prefix}_{vid}_{rng.randrange(10**6)}"
    path = rng.choice(PAGES)
    return [
        _view(vid, sid, path, True, hour, day, deviceType="mobile", browser="safari",
              os="ios", source="google.com", sourceType="search"),
        _exit(vid, sid, path, rng.randint(2, 10), rng.randint(5, 30)),
    ]


def skimmer(vid="v_skimmer", sid_prefix="s_skimmer", pages=3, rng: random.Random = None,
            now: datetime = None) -> List[Dict]:
    """Quick hops across pages, shallow scroll, no exit timing on the last one."""
    rng = rng or random.Random()
    hour, day = _clock(now)
    sid = f"{sid_prefix}_{vid}_{rng.randrange(10**6)}"
    ev = []
    visited = rng.sample(PAGES, pages)
    for i, path in enumerate(visited):
        ev.append(_view(vid, sid, path, i == 0, hour, day, deviceType="tablet",
                        browser="chrome", os="android", source="news.ycombinator.com",
                        sourceType="referral"))
        if i < pages - 1:
            ev.append(_exit(vid, sid, path, rng.randint(5, 20), rng.randint(10, 40)))
    return ev
