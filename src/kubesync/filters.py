"""Time based filtering of events."""

import re
from collections.abc import Iterable
from datetime import UTC, datetime

import pydantic

from .errors import DatetimeFormatError
from .resources import Event

_RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$",
)
_AWARE_DATETIME = pydantic.TypeAdapter(pydantic.AwareDatetime)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Raises:
        DatetimeFormatError: If ``value`` is not an RFC 3339 timestamp.
    """
    if not _RFC3339.match(value):
        msg = f"Couldn't parse date time input {value!r}: expected RFC 3339"
        raise DatetimeFormatError(msg)
    try:
        return _AWARE_DATETIME.validate_python(value.upper().replace(" ", "T"))
    except pydantic.ValidationError as err:
        msg = f"Couldn't parse date time input {value!r}: {err}"
        raise DatetimeFormatError(msg) from err


def filter_since(events: Iterable[Event], since: str | None) -> list[Event]:
    """Keep the events that happened at or after ``since``.

    Without a cutoff every event is returned, including those with no
    ``event_time``. With a cutoff, events lacking ``event_time`` are dropped.
    Order is preserved.

    Raises:
        DatetimeFormatError: If ``since`` is not an RFC 3339 timestamp.
    """
    if since is None:
        return list(events)

    cutoff = parse_rfc3339(since)
    kept = []
    for event in events:
        if event.event_time is None:
            continue
        event_time = event.event_time
        if event_time.tzinfo is None:
            event_time = event_time.replace(tzinfo=UTC)
        if event_time >= cutoff:
            kept.append(event)
    return kept
