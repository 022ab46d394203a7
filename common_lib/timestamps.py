"""Timestamp utilities for consistent datetime handling across the pipeline.

Every timestamp persisted by the ingestor must fit the range of a SQL Server
``datetime`` column, the narrowest of the supported engines. Values outside
``[MIN_TIMESTAMP, MAX_TIMESTAMP]`` are clamped rather than rejected.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .logger import get_logger

logger = get_logger(__name__)

MIN_TIMESTAMP = datetime(1753, 1, 1, 0, 0, 0)
MAX_TIMESTAMP = datetime(9999, 12, 31, 23, 59, 59)

_YEAR_PREFIX = re.compile(r"^\s*([+-]?\d{4,})-")
_DATETIME = TypeAdapter(datetime)


def _clamped(original: Any, result: datetime) -> datetime:
    logger.warning("Clamped out-of-range timestamp %r to %s", original, result.isoformat())
    return result


def to_naive_utc(value: datetime) -> datetime:
    """
    Convert a datetime to naive UTC.

    Timezone-aware values are shifted to UTC and stripped of tzinfo; naive
    values are assumed to be UTC already and returned unchanged.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def clamp_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp and clamp it into the storable range.

    Args:
        value: None, a datetime, or an ISO 8601 string (as found in CVE 5.x documents)

    Returns:
        None when value is None, otherwise a naive UTC datetime within
        [MIN_TIMESTAMP, MAX_TIMESTAMP]

    Raises:
        ValueError: if value is not a recognizable timestamp
    """
    if value is None:
        return None

    if isinstance(value, str):
        # Years outside 1..9999 cannot be parsed at all, so decide on the prefix
        match = _YEAR_PREFIX.match(value)
        if match:
            year = int(match.group(1))
            if year < datetime.min.year:
                return _clamped(value, MIN_TIMESTAMP)
            if year > datetime.max.year:
                return _clamped(value, MAX_TIMESTAMP)

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = _DATETIME.validate_python(value)
        except ValidationError as exc:
            raise ValueError(f"invalid timestamp {value!r}") from exc

    try:
        normalized = to_naive_utc(parsed)
    except OverflowError:
        # e.g. 9999-12-31T23:00:00-05:00 has no UTC representation
        bound = MIN_TIMESTAMP if parsed.year < MIN_TIMESTAMP.year else MAX_TIMESTAMP
        return _clamped(value, bound)

    if normalized < MIN_TIMESTAMP:
        return _clamped(value, MIN_TIMESTAMP)
    if normalized > MAX_TIMESTAMP:
        return _clamped(value, MAX_TIMESTAMP)
    return normalized
