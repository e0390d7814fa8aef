"""
Trend calculations for position history.
"""

from orbitwatch.services.trend.calculations import (
    EARTH_RADIUS_KM,
    haversine_km,
    speed_kmh,
    build_trend,
)

__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_km",
    "speed_kmh",
    "build_trend",
]
