"""
Mapping between the event API field names and `bsd_events` columns.
"""

import re
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from groundcontrol.events.models import Event
from groundcontrol.shared.clock import as_utc, to_naive_utc
from groundcontrol.shared.relay import decode_id

# API names whose column is not simply the snake_case form.
FIELD_ALIASES = {
    "id": "event_id",
    "host_id": "creator_cons_id",
    "start_date": "start_dt",
    "create_date": "create_dt",
    "local_timezone": "start_tz",
    "venue_state": "venue_state_cd",
}

ID_FIELDS = ("event_id", "creator_cons_id", "event_type_id")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def decamelize(name: str) -> str:
    """`venueAddr1` -> `venue_addr1`; snake_case names pass through."""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def event_field_from_api_field(field: str) -> str:
    snake = decamelize(field)
    return FIELD_ALIASES.get(snake, snake)


def event_from_api_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate API event fields to column values.

    Relay global ids in the id fields are decoded; dates become naive UTC.
    """
    event: dict[str, Any] = {}
    for name, value in fields.items():
        column = event_field_from_api_field(name)
        if isinstance(value, datetime):
            value = to_naive_utc(value)
        event[column] = value

    for column in ID_FIELDS:
        if event.get(column):
            raw = decode_id(event[column])
            event[column] = int(raw) if raw.isdigit() else raw
    return event


def event_columns() -> set[str]:
    return {column.key for column in Event.__table__.columns}


def event_to_dict(event: Event) -> dict[str, Any]:
    return {column: getattr(event, column) for column in event_columns()}


def local_timezone(event: Event) -> str | None:
    """The event's IANA zone name, or None when `start_tz` is not a known zone."""
    if not event.start_tz:
        return None
    try:
        return ZoneInfo(event.start_tz).key
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def local_utc_offset(event: Event, now: datetime) -> int:
    """Current UTC offset of the event's zone in minutes (0 when unknown)."""
    zone_name = local_timezone(event)
    if zone_name is None:
        return 0
    offset = as_utc(now).astimezone(ZoneInfo(zone_name)).utcoffset()
    return int(offset.total_seconds() // 60) if offset is not None else 0
