from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from ..events import Event

LOOPBACK_EXACT = ("127.0.0.1", "localhost", "::1", "::ffff:127.0.0.1")


def is_loopback(address: Optional[str]) -> bool:
    """True for addresses that point back at the server itself."""
    if not address or address == "unknown":
        return False
    a = address.lower().strip()
    return a in LOOPBACK_EXACT or a.startswith("127.")


def is_loopback_source(source: Optional[str]) -> bool:
    """Same idea for free-text referrer / source strings."""
    if not source:
        return False
    s = source.lower().strip()
    return (
        "localhost" in s
        or "127.0.0.1" in s
        or s.startswith(("http://localhost", "https://localhost"))
    )


@dataclass
class FilteredEvents:
    page_views: List[Event] = field(default_factory=list)
    exit_events: List[Event] = field(default_factory=list)
    distinct_ips: Set[str] = field(default_factory=set)


def split_events(events: Iterable[Event], unique_ips: Optional[Iterable[str]] = None) -> FilteredEvents:
    """
    Drop loopback traffic and partition the rest into page views and
    page exits. Order is preserved inside each partition.
    """
    out = FilteredEvents()
    for ev in events:
        if is_loopback(ev.ip):
            continue
        if ev.is_exit:
            out.exit_events.append(ev)
        else:
            out.page_views.append(ev)
    out.distinct_ips = {ip for ip in (unique_ips or ()) if not is_loopback(ip)}
    return out
