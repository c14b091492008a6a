from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PageCount(_Camel):
    path: str
    count: int


class TypeCount(_Camel):
    type: str
    count: int


class BrowserCount(_Camel):
    browser: str
    count: int


class OsCount(_Camel):
    os: str
    count: int


class SourceCount(_Camel):
    source: str
    count: int


class HourCount(_Camel):
    hour: int
    count: int


class DayCount(_Camel):
    day: str
    count: int


class RecentVisitor(_Camel):
    ip: str
    path: str
    timestamp: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    source_type: Optional[str] = None
    source: Optional[str] = None
    country_code: Optional[str] = None
    region_code: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class StatsBundle(_Camel):
    total_views: int = 0
    distinct_ips: int = Field(0, alias="distinctIPs")
    unique_visitors: int = 0
    top_page: str = "/"
    top_pages: List[PageCount] = []
    recent_visitors: List[RecentVisitor] = []

    device_types: List[TypeCount] = []
    browsers: List[BrowserCount] = []
    operating_systems: List[OsCount] = []
    traffic_sources: List[SourceCount] = []
    source_types: List[TypeCount] = []
    new_visitors: int = 0
    returning_visitors: int = 0
    visits_by_hour: List[HourCount] = []
    visits_by_day: List[DayCount] = []

    avg_time_on_page: int = 0
    avg_scroll_depth: int = 0
    total_sessions: int = 0
    avg_pages_per_session: str = "0"
    bounce_rate: int = 0


class BadgeEnvelope(_Camel):
    """shields.io endpoint-badge body."""

    schema_version: int = 1
    label: str
    message: str
    color: str
