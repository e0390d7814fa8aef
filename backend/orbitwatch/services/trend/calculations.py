"""
Position trend calculations

Great-circle distance and derived ground speed for position history.
Pure functions, no I/O.
"""

import math
from typing import List, Optional, Sequence

from orbitwatch.schemas.space import HistoryEntry, TrendPoint

# Mean Earth radius (IUGG), km
EARTH_RADIUS_KM = 6371.0088


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in km between two (lat, lon) points in degrees.

    Symmetric, zero for identical points. Longitude differences wrap through
    sin(), so crossing the antimeridian needs no special casing; the clamp
    keeps antipodal and polar inputs inside asin's domain.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def speed_kmh(distance_km: float, elapsed_seconds: float) -> Optional[float]:
    """Average speed over an interval; None when no time has passed."""
    if elapsed_seconds <= 0:
        return None
    return distance_km / (elapsed_seconds / 3600.0)


def _coord(payload: dict, *keys: str) -> Optional[float]:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def build_trend(entries: Sequence[HistoryEntry]) -> List[TrendPoint]:
    """
    Turn ordered position history into trend points.

    Entries without usable coordinates are skipped. The first point has no
    speed; each later point gets the speed from its predecessor.
    """
    points: List[TrendPoint] = []
    previous: Optional[TrendPoint] = None

    for entry in entries:
        lat = _coord(entry.payload, "latitude", "lat")
        lon = _coord(entry.payload, "longitude", "lon")
        if lat is None or lon is None:
            continue

        speed = None
        if previous is not None:
            elapsed = (entry.observed_at - previous.timestamp).total_seconds()
            speed = speed_kmh(haversine_km(previous.lat, previous.lon, lat, lon), elapsed)

        point = TrendPoint(
            timestamp=entry.observed_at,
            lat=lat,
            lon=lon,
            alt=_coord(entry.payload, "altitude", "alt"),
            speed_kmh=speed,
        )
        points.append(point)
        previous = point

    return points
