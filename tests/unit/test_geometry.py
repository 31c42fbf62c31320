import math

import pytest

from habitat_priority.common.geometry import (
    bounds_area_hectares,
    bounds_area_km2,
    bounds_to_polygon_wkt,
    buffer_bounds,
    centroid,
    haversine_km,
    point_bounds,
    spatial_spread_km,
)
from habitat_priority.common.models import Bounds
from habitat_priority.pipeline.run import run_analysis


def test_haversine_zero_for_same_coordinate():
    assert haversine_km(1.5, 110.0, 1.5, 110.0) == 0.0


def test_haversine_known_distances():
    assert haversine_km(0.0, 0.0, 0.05, 0.0) == pytest.approx(5.5597, abs=1e-3)
    assert 780 < haversine_km(0.0, 0.0, 5.0, 5.0) < 790


def test_haversine_is_symmetric():
    forward = haversine_km(3.68, 97.65, 5.87, 117.95)
    backward = haversine_km(5.87, 117.95, 3.68, 97.65)
    assert forward == backward


def test_haversine_propagates_nan():
    assert math.isnan(haversine_km(float("nan"), 0.0, 1.0, 1.0))


def test_buffer_bounds_expands_every_edge():
    box = Bounds(north=1.0, south=0.0, east=101.0, west=100.0)
    buffered = buffer_bounds(box, 5.0)

    assert buffered.north == pytest.approx(1.0 + 5 / 111)
    assert buffered.south == pytest.approx(0.0 - 5 / 111)
    lng_offset = 5 / (111 * math.cos(math.radians(1.0)))
    assert buffered.east == pytest.approx(101.0 + lng_offset)
    assert buffered.west == pytest.approx(100.0 - lng_offset)


def test_point_bounds_is_centered_on_point():
    box = point_bounds(2.0, 110.0, 5.0)
    assert box.contains(2.0, 110.0)
    assert (box.north + box.south) / 2 == pytest.approx(2.0)
    assert (box.east + box.west) / 2 == pytest.approx(110.0)


def test_hectares_quadruple_when_spans_double():
    small = Bounds(north=0.5, south=-0.5, east=100.5, west=99.5)
    large = Bounds(north=1.0, south=-1.0, east=101.0, west=99.0)

    assert bounds_area_km2(large) == pytest.approx(4 * bounds_area_km2(small))
    assert bounds_area_hectares(large) == 4 * bounds_area_hectares(small)
    assert bounds_area_hectares(small) == 1232100


def test_polygon_wkt_closes_ring():
    wkt = bounds_to_polygon_wkt(Bounds(north=2.0, south=1.0, east=4.0, west=3.0))
    assert wkt == "POLYGON((3.0 1.0, 4.0 1.0, 4.0 2.0, 3.0 2.0, 3.0 1.0))"


def test_centroid_and_spread():
    coords = [(0.0, 0.0), (0.0, 0.2)]
    assert centroid(coords) == (0.0, 0.1)
    assert spatial_spread_km(coords) == pytest.approx(haversine_km(0.0, 0.0, 0.0, 0.1))
    assert spatial_spread_km([(1.0, 1.0)]) == 0.0


def test_haversine_antipodal_pair_is_half_circumference():
    # Rounding puts the haversine term slightly above 1 for this pair.
    assert haversine_km(-26.3, 110.0, 26.3, -70.0) == pytest.approx(math.pi * 6371.0)
    assert math.isfinite(spatial_spread_km([(-26.3, 110.0), (26.3, -70.0)]))


def test_run_analysis_completes_on_antipodal_pair(point_factory):
    result = run_analysis([point_factory(0, -26.3, 110.0), point_factory(1, 26.3, -70.0)])

    assert [annotation.nearby_count for annotation in result.annotations] == [0, 0]
    assert result.clusters == ()
    assert [area.id for area in result.areas] == ["isolated_area_1", "isolated_area_2"]
