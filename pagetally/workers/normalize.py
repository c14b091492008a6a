import json
from typing import Any, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..events import Event


def parse_record(raw: Any) -> Optional[Event]:
    """Decode one stored entry; None when it is not a usable event object."""
    if isinstance(raw, dict):
        data = raw
    elif isinstance(raw, (bytes, bytearray, str)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
    else:
        return None

    if not isinstance(data, dict):
        return None
    try:
        return Event.model_validate(data)
    except ValidationError:
        return None


def normalize_records(raw_values: Optional[Iterable[Any]]) -> List[Event]:
    """
    Parse the raw list read from the store, keeping store order
    (newest first). Malformed entries are skipped.
    """
    events = []
    skipped = 0
    for raw in raw_values or []:
        ev = parse_record(raw)
        if ev is None:
            skipped += 1
            continue
        events.append(ev)
    if skipped:
        logger.debug(f"[normalize] skipped {skipped} malformed record(s)")
    return events
