"""
Shared query-parameter parsing for the API routes.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from orbitwatch.schemas.space import SourceId, as_utc, utcnow
from orbitwatch.services.base import UnknownSourceError, ValidationError
from orbitwatch.services.ingestion.pick import parse_time

DEFAULT_LOOKBACK = timedelta(hours=24)


def parse_time_param(name: str, value: Optional[str]) -> Optional[datetime]:
    """Unix seconds or ISO-8601; None when the parameter is absent."""
    if value is None or value.strip() == "":
        return None

    text = value.strip()
    try:
        return parse_time(float(text))
    except ValueError:
        pass
    except (OverflowError, OSError) as e:
        raise ValidationError("api", f"'{name}' is out of range: {value}") from e

    parsed = parse_time(text)
    if parsed is None:
        raise ValidationError("api", f"'{name}' must be Unix seconds or ISO-8601, got '{value}'")
    return parsed


def resolve_range(start: Optional[str], end: Optional[str]) -> Tuple[datetime, datetime]:
    """
    Turn optional from/to strings into a closed UTC range.
    Defaults: to = now, from = to - 24h.
    """
    end_at = parse_time_param("to", end) or utcnow()
    start_at = parse_time_param("from", start) or (end_at - DEFAULT_LOOKBACK)

    start_at, end_at = as_utc(start_at), as_utc(end_at)
    if start_at > end_at:
        raise ValidationError("api", "'from' must not be after 'to'")
    return start_at, end_at


def resolve_source(name: str) -> SourceId:
    source = SourceId.parse(name)
    if source is None:
        raise UnknownSourceError(name)
    return source
