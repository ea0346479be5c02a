"""Translate ``GET /readings`` query parameters into a MongoDB query."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from hud_readings.models.readings import to_bson_datetime
from hud_readings.utils.error_handling import InvalidQueryParameter

# The amount of readings returned per page
PAGE_SIZE = 50

_RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class ReadingsQuery:
    """Filter document plus offset pagination for the readings collection."""

    filter: Dict[str, Any] = field(default_factory=dict)
    skip: int = 0
    limit: int = PAGE_SIZE


def parse_rfc3339(name: str, value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 date-time query parameter.

    Args:
        name: Query parameter name, used in the error message
        value: Raw parameter value

    Returns:
        Optional[datetime]: Aware datetime or None if the parameter was not given

    Raises:
        InvalidQueryParameter: If the value is not an RFC 3339 date-time with an offset
    """
    if value is None:
        return None
    message = (
        f"{name} date is invalid: {value!r}. "
        "Expected an RFC 3339 date-time such as 2024-01-01T00:00:00Z."
    )
    if not _RFC3339.match(value):
        raise InvalidQueryParameter(name, message)
    try:
        return datetime.fromisoformat(value.upper().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidQueryParameter(name, message)


def build_readings_query(
    patient: Optional[str] = None,
    from_: Optional[str] = None,
    until: Optional[str] = None,
    page: Optional[int] = None,
    page_size: int = PAGE_SIZE,
) -> ReadingsQuery:
    """
    Build the query for a page of readings.

    Args:
        patient: Only readings whose patient.bluetooth_id equals this value
        from_: Inclusive lower bound on reading_at (RFC 3339)
        until: Exclusive upper bound on reading_at (RFC 3339)
        page: Zero-indexed page number
        page_size: Readings per page

    Returns:
        ReadingsQuery: Filter and pagination for the storage layer

    Raises:
        InvalidQueryParameter: If a date is malformed or the page is negative
    """
    start = parse_rfc3339("from", from_)
    end = parse_rfc3339("until", until)

    query_filter: Dict[str, Any] = {}
    if patient is not None:
        query_filter["patient.bluetooth_id"] = patient

    # Both bounds share one range predicate so neither replaces the other
    reading_at: Dict[str, datetime] = {}
    if start is not None:
        reading_at["$gte"] = to_bson_datetime(start)
    if end is not None:
        reading_at["$lt"] = to_bson_datetime(end)
    if reading_at:
        query_filter["reading_at"] = reading_at

    if page is not None and page < 0:
        raise InvalidQueryParameter("page", f"page must be a non-negative integer, got {page}")
    skip = page * page_size if page else 0

    return ReadingsQuery(filter=query_filter, skip=skip, limit=page_size)
