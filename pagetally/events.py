from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    FiniteFloat,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    PAGE_VIEW = "page_view"
    PAGE_EXIT = "page_exit"


SERVER_LOG_SOURCE = "server-log"


class Event(BaseModel):
    """
    One stored page-view or page-exit record.

    Everything is optional: the log is schema-less and clients send whatever
    they have. Unknown fields are kept as extras.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    ip: Optional[str] = Field(None, description="network address observed by the server")
    path: Optional[str] = None
    timestamp: Optional[str] = Field(None, description="ISO-8601, set at ingestion")
    event_type: EventType = EventType.PAGE_VIEW

    visitor_id: Optional[str] = None
    session_id: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    source: Optional[str] = None
    source_type: Optional[str] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    is_new_visitor: Optional[bool] = None

    # client-local time bucket
    hour: Optional[int] = None
    day_name: Optional[str] = None

    # engagement, page_exit only
    time_on_page: Optional[FiniteFloat] = Field(None, description="seconds")
    scroll_depth: Optional[FiniteFloat] = Field(None, description="0-100")

    # geo
    country_code: Optional[str] = None
    region_code: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[FiniteFloat] = None
    longitude: Optional[FiniteFloat] = None

    @field_validator("*", mode="wrap")
    @classmethod
    def _unusable_is_absent(cls, v, handler: ValidatorFunctionWrapHandler, info: ValidationInfo):
        # a blank or unusable field only drops that field, never the event
        if info.field_name == "event_type":
            return handler(v)
        if isinstance(v, str) and not v:
            return None
        try:
            return handler(v)
        except ValidationError:
            return None

    @field_validator("event_type", mode="before")
    @classmethod
    def _coerce_event_type(cls, v):
        # anything that is not an exit counts as a view
        if v == EventType.PAGE_EXIT.value:
            return EventType.PAGE_EXIT
        return EventType.PAGE_VIEW

    @property
    def is_exit(self) -> bool:
        return self.event_type is EventType.PAGE_EXIT

    @property
    def is_server_log(self) -> bool:
        return self.source == SERVER_LOG_SOURCE
