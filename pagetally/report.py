from typing import List

from .config import Settings
from .events import Event
from .schemas import StatsBundle
from .store import EventStore
from .workers.filters import FilteredEvents, split_events
from .workers.metrics import compute_stats
from .workers.normalize import normalize_records

BADGE_METRICS = ("visitors", "views", "ips")
BADGE_LABELS = {"visitors": "visitors", "views": "views", "ips": "unique ips"}


def load_events(store: EventStore) -> List[Event]:
    """
    Tracked visits followed by pixel-log entries, each newest first.
    The two streams are merged as-is; a visit captured by both is counted twice.
    """
    cfg = store.cfg
    events = normalize_records(store.read_all_as_list(cfg.VISITS_KEY))
    if cfg.MERGE_SERVER_LOGS:
        events += normalize_records(store.read_all_as_list(cfg.SERVER_LOGS_KEY))
    return events


def load_filtered(store: EventStore) -> FilteredEvents:
    events = load_events(store)
    return split_events(events, store.read_set(store.cfg.UNIQUE_IPS_KEY))


def build_report(store: EventStore) -> StatsBundle:
    cfg: Settings = store.cfg
    filtered = load_filtered(store)
    return compute_stats(
        filtered.page_views,
        filtered.exit_events,
        filtered.distinct_ips,
        top_pages_limit=cfg.TOP_PAGES_LIMIT,
        recent_limit=cfg.RECENT_VISITORS_LIMIT,
    )


def badge_metric(metric: str) -> str:
    return metric if metric in BADGE_METRICS else "visitors"


def badge_value(store: EventStore, metric: str = "visitors") -> int:
    filtered = load_filtered(store)
    metric = badge_metric(metric)
    if metric == "views":
        return len(filtered.page_views)
    if metric == "ips":
        return len(filtered.distinct_ips)
    return len({v.visitor_id for v in filtered.page_views if v.visitor_id})
