from __future__ import annotations

import math

import pytest

from habitat_priority.common.models import OccurrencePoint

KM_PER_DEGREE_HAVERSINE = 6371.0 * math.pi / 180


def make_point(index: int, lat: float, lng: float, species: str = "Pongo pygmaeus", **overrides) -> OccurrencePoint:
    fields = {
        "id": f"occ-{index}",
        "species": species,
        "lat": lat,
        "lng": lng,
        "ingest_index": index,
        "year": 2020,
        "data_quality": "fair",
        "recency": 0.8,
        "precision": 0.5,
    }
    fields.update(overrides)
    return OccurrencePoint(**fields)


def offset_km(lat: float, lng: float, north_km: float, east_km: float) -> tuple[float, float]:
    """Shift a coordinate by kilometres using the haversine sphere."""
    new_lat = lat + north_km / KM_PER_DEGREE_HAVERSINE
    new_lng = lng + east_km / (KM_PER_DEGREE_HAVERSINE * math.cos(math.radians(lat)))
    return new_lat, new_lng


def packed_with_outlier(outlier_quality: str = "poor") -> list[OccurrencePoint]:
    """Thirty points inside a 5 km radius plus one point 200 km north."""
    center = (0.5, 110.0)
    points = []
    for k in range(30):
        radius = 4.0 * ((k % 5) + 1) / 5
        angle = math.radians(12 * k)
        lat, lng = offset_km(*center, radius * math.cos(angle), radius * math.sin(angle))
        points.append(make_point(k, lat, lng))
    lat, lng = offset_km(*center, 200.0, 0.0)
    points.append(make_point(30, lat, lng, data_quality=outlier_quality))
    return points


@pytest.fixture
def scenario_three_points() -> list[OccurrencePoint]:
    return [
        make_point(0, 0.0, 0.0),
        make_point(1, 0.05, 0.0),
        make_point(2, 5.0, 5.0),
    ]


@pytest.fixture
def scenario_packed() -> list[OccurrencePoint]:
    return packed_with_outlier()


@pytest.fixture
def point_factory():
    return make_point


@pytest.fixture
def shift_km():
    return offset_km


@pytest.fixture
def packed_factory():
    return packed_with_outlier
