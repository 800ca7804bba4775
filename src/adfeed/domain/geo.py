"""Great-circle distance and human-readable distance/time labels."""

from __future__ import annotations

import math
from typing import Any, Iterable

EARTH_RADIUS_KM = 6371.0


def _degrees(point: Any, attr: str) -> float | None:
    if point is None:
        return None
    value = point.get(attr) if isinstance(point, dict) else getattr(point, attr, None)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def calculate_distance(a: Any, b: Any) -> float:
    """Haversine distance in km between two coordinates, rounded to 0.1 km.

    Accepts anything with ``lat``/``lng`` attributes or keys. Absent or
    non-numeric input yields 0.0; 0.0 does not mean colocated.
    """
    lat1, lng1 = _degrees(a, "lat"), _degrees(a, "lng")
    lat2, lng2 = _degrees(b, "lat"), _degrees(b, "lng")
    if None in (lat1, lng1, lat2, lng2):
        return 0.0

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_KM * c, 1)


def min_distance(origin: Any, locations: Iterable[Any]) -> float:
    """Smallest distance from ``origin`` to any location; inf when there are none."""
    return min((calculate_distance(origin, loc) for loc in locations), default=math.inf)


def format_distance(km: float) -> str:
    if km <= 0:
        return "Nearby"
    if km < 1:
        return f"{round(km * 1000)}m away"
    return f"{km:g}km away"


def format_time_ago(timestamp_ms: int, now_ms: int) -> str:
    diff = now_ms - timestamp_ms
    hours = diff // (1000 * 60 * 60)
    minutes = diff // (1000 * 60)
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "Just now"


def expires_in(expires_at_ms: int, now_ms: int) -> str:
    diff = expires_at_ms - now_ms
    if diff <= 0:
        return "Expired"
    hours = diff // (1000 * 60 * 60)
    minutes = (diff % (1000 * 60 * 60)) // (1000 * 60)
    return f"{hours}h {minutes}m left"
