"""
Tolerant field pickers for loosely shaped upstream JSON.

Each picker returns the first usable value among candidate keys, so adapters
survive upstreams that rename or drop fields between versions.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional


def pick_str(obj: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    """First key holding a string or number, as a string."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return None


def pick_float(obj: Mapping[str, Any], keys: Iterable[str]) -> Optional[float]:
    """First key holding a number (or numeric string), as a float."""
    for key in keys:
        value = obj.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def parse_time(value: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts Unix seconds, ISO-8601 (with or without offset, 'Z' suffix),
    and plain dates.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def pick_time(obj: Mapping[str, Any], keys: Iterable[str]) -> Optional[datetime]:
    """First key holding a parsable timestamp."""
    for key in keys:
        parsed = parse_time(obj.get(key))
        if parsed is not None:
            return parsed
    return None
