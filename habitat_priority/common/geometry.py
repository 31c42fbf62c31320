"""Geometry helpers: great-circle distance and degree-box arithmetic."""

from __future__ import annotations

import math

from habitat_priority.common.constants import EARTH_RADIUS_KM, KM_PER_DEGREE
from habitat_priority.common.models import Bounds


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres between two WGS84 coordinates.

    NaN input yields NaN; callers validate coordinates upstream.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push a just past 1 for near-antipodal pairs.
    a = min(a, 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def km_to_lat_degrees(km: float) -> float:
    return km / KM_PER_DEGREE


def km_to_lng_degrees(km: float, at_lat: float) -> float:
    return km / (KM_PER_DEGREE * math.cos(math.radians(at_lat)))


def buffer_bounds(bounds: Bounds, buffer_km: float) -> Bounds:
    # Longitude correction is taken at the north edge.
    lat_buffer = km_to_lat_degrees(buffer_km)
    lng_buffer = km_to_lng_degrees(buffer_km, bounds.north)
    return Bounds(
        north=bounds.north + lat_buffer,
        south=bounds.south - lat_buffer,
        east=bounds.east + lng_buffer,
        west=bounds.west - lng_buffer,
    )


def point_bounds(lat: float, lng: float, radius_km: float) -> Bounds:
    lat_offset = km_to_lat_degrees(radius_km)
    lng_offset = km_to_lng_degrees(radius_km, lat)
    return Bounds(
        north=lat + lat_offset,
        south=lat - lat_offset,
        east=lng + lng_offset,
        west=lng - lng_offset,
    )


def bounds_area_km2(bounds: Bounds) -> float:
    lat_km = (bounds.north - bounds.south) * KM_PER_DEGREE
    mid_lat = (bounds.north + bounds.south) / 2
    lng_km = (bounds.east - bounds.west) * KM_PER_DEGREE * math.cos(math.radians(mid_lat))
    return lat_km * lng_km


def bounds_area_hectares(bounds: Bounds) -> int:
    return round(bounds_area_km2(bounds) * 100)


def bounds_to_polygon_wkt(bounds: Bounds) -> str:
    ring = [
        (bounds.west, bounds.south),
        (bounds.east, bounds.south),
        (bounds.east, bounds.north),
        (bounds.west, bounds.north),
        (bounds.west, bounds.south),
    ]
    coords = ", ".join(f"{x} {y}" for x, y in ring)
    return f"POLYGON(({coords}))"


def centroid(coords: list[tuple[float, float]]) -> tuple[float, float]:
    count = len(coords)
    return (
        sum(lat for lat, _ in coords) / count,
        sum(lng for _, lng in coords) / count,
    )


def spatial_spread_km(coords: list[tuple[float, float]]) -> float:
    """Largest distance from any coordinate to the group centroid."""
    if len(coords) < 2:
        return 0.0
    c_lat, c_lng = centroid(coords)
    return max(haversine_km(lat, lng, c_lat, c_lng) for lat, lng in coords)
