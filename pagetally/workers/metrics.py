import math
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..events import Event
from ..schemas import (
    BrowserCount,
    DayCount,
    HourCount,
    OsCount,
    PageCount,
    RecentVisitor,
    SourceCount,
    StatsBundle,
    TypeCount,
)
from .filters import is_loopback, is_loopback_source
from .sessionize import round_half_up, session_stats

TOP_PAGES = 10
RECENT_VISITORS = 300

VIEW_COLUMNS = [
    "path", "visitor_id", "session_id", "device_type", "browser", "os",
    "source", "source_type", "is_new_visitor", "hour", "day_name",
]
EXIT_COLUMNS = ["time_on_page", "scroll_depth"]


def to_frame(events: Sequence[Event], columns: List[str]) -> pd.DataFrame:
    # fixed columns so an empty input still has every field
    return pd.DataFrame([ev.model_dump(include=set(columns)) for ev in events], columns=columns)


def frequency(values: pd.Series, exclude: Optional[Callable[[object], bool]] = None) -> pd.Series:
    """Counts per present value, keys in first-seen order."""
    values = values.dropna()
    if exclude is not None:
        mask = values.map(exclude).astype(bool)
        values = values[~mask]
    return values.groupby(values, sort=False).size()


def ranked(counts: pd.Series) -> pd.Series:
    # mergesort is stable: ties keep first-seen order
    return counts.sort_values(ascending=False, kind="mergesort")


def _mean(values: pd.Series) -> int:
    values = values.astype(float)
    values = values[np.isfinite(values)]
    if values.empty:
        return 0
    total = float(values.sum())
    if not math.isfinite(total):
        # sum overflowed; divide first
        return round_half_up(float((values / len(values)).sum()))
    return round_half_up(total / len(values))


def recent_visitors(page_views: Iterable[Event], limit: int = RECENT_VISITORS) -> List[RecentVisitor]:
    out = []
    for v in page_views:
        if len(out) >= limit:
            break
        if not v.ip or not v.path or is_loopback(v.ip):
            continue
        server_log = v.is_server_log
        out.append(RecentVisitor(
            ip=v.ip,
            path=v.path,
            timestamp=v.timestamp,
            device_type=v.device_type or ("unknown" if server_log else None),
            browser=v.browser,
            os=v.os,
            source_type=v.source_type or ("server-log" if server_log else None),
            source=v.source or (v.referrer if v.referrer and v.referrer != "direct" else "direct"),
            country_code=v.country_code,
            region_code=v.region_code,
            city=v.city,
            latitude=v.latitude,
            longitude=v.longitude,
        ))
    return out


def compute_stats(
    page_views: Sequence[Event],
    exit_events: Sequence[Event],
    distinct_ips: Iterable[str] = (),
    top_pages_limit: int = TOP_PAGES,
    recent_limit: int = RECENT_VISITORS,
) -> StatsBundle:
    """
    Build the statistics bundle from already filtered events.

    Pure: same input, same bundle. Fields missing from an event only keep
    it out of that one breakdown.
    """
    views = to_frame(page_views, VIEW_COLUMNS)
    exits = to_frame(exit_events, EXIT_COLUMNS)

    # --- pages ---
    page_counts = ranked(frequency(views["path"]))
    top_pages = [PageCount(path=p, count=int(n)) for p, n in page_counts.head(top_pages_limit).items()]

    # --- breakdowns ---
    devices = frequency(views["device_type"])
    browsers = frequency(views["browser"])
    systems = frequency(views["os"])
    sources = ranked(frequency(views["source"], exclude=is_loopback_source))
    source_types = frequency(views["source_type"], exclude=is_loopback_source)
    by_hour = frequency(views["hour"])
    by_day = frequency(views["day_name"])

    flags = views["is_new_visitor"].dropna().astype(bool)
    new_visitors = int(flags.sum())

    # --- engagement ---
    time_on_page = pd.to_numeric(exits["time_on_page"], errors="coerce")
    scroll_depth = pd.to_numeric(exits["scroll_depth"], errors="coerce").dropna()

    return StatsBundle(
        total_views=len(page_views),
        distinct_ips=len(set(distinct_ips)),
        unique_visitors=int(views["visitor_id"].dropna().nunique()),
        top_page=top_pages[0].path if top_pages else "/",
        top_pages=top_pages,
        recent_visitors=recent_visitors(page_views, recent_limit),
        device_types=[TypeCount(type=k, count=int(n)) for k, n in devices.items()],
        browsers=[BrowserCount(browser=k, count=int(n)) for k, n in browsers.items()],
        operating_systems=[OsCount(os=k, count=int(n)) for k, n in systems.items()],
        traffic_sources=[SourceCount(source=k, count=int(n)) for k, n in sources.items()],
        source_types=[TypeCount(type=k, count=int(n)) for k, n in source_types.items()],
        new_visitors=new_visitors,
        returning_visitors=int(len(flags)) - new_visitors,
        visits_by_hour=[HourCount(hour=int(k), count=int(n)) for k, n in by_hour.items()],
        visits_by_day=[DayCount(day=k, count=int(n)) for k, n in by_day.items()],
        avg_time_on_page=_mean(time_on_page[time_on_page > 0]),
        avg_scroll_depth=_mean(scroll_depth),
        **session_stats(views),
    )
