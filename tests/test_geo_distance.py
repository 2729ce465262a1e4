import math

import pytest

from geonear import InvalidParameter
from geonear.core.geo import (
    EARTH_RADIUS_KM,
    Coordinate,
    PlanarDistance,
    SphericalDistance,
    distance_model,
    haversine_rad,
    km_to_degrees,
    km_to_radians,
    planar_distance,
)

SAMPLE = [
    Coordinate(0, 0),
    Coordinate(4, 5),
    Coordinate(100, 20),
    Coordinate(-179.5, 0),
    Coordinate(179.5, -12.25),
    Coordinate(12.5, 89.9),
    Coordinate(-73.9857, 40.7484),
]


def test_planar_distance_is_raw_degree_euclidean():
    assert planar_distance(Coordinate(0, 0), Coordinate(3, 4)) == 5.0
    # No cos(lat) correction: one degree of longitude counts the same at 60N as at the equator.
    assert planar_distance(Coordinate(0, 60), Coordinate(1, 60)) == 1.0


def test_haversine_matches_known_angles():
    assert haversine_rad(Coordinate(0, 0), Coordinate(0, 90)) == pytest.approx(math.pi / 2)
    assert haversine_rad(Coordinate(0, 0), Coordinate(180, 0)) == pytest.approx(math.pi)
    assert haversine_rad(Coordinate(0, 0), Coordinate(10, 0)) == pytest.approx(math.radians(10))


def test_haversine_wraps_across_antimeridian():
    d = haversine_rad(Coordinate(-179.5, 0), Coordinate(179.5, 0))
    assert d == pytest.approx(math.radians(1))


@pytest.mark.parametrize("model", [PlanarDistance(), SphericalDistance()], ids=["planar", "spherical"])
def test_distance_is_symmetric_and_zero_on_self(model):
    for a in SAMPLE:
        assert model.distance(a, a) == 0.0
        for b in SAMPLE:
            assert model.distance(a, b) == model.distance(b, a)
            assert model.distance(a, b) >= 0


def test_unit_helpers_follow_caller_conversions():
    radius_km = 10 * 111.19
    assert km_to_degrees(radius_km) == pytest.approx(radius_km / (EARTH_RADIUS_KM * math.pi / 180))
    assert km_to_radians(radius_km) == pytest.approx(radius_km / EARTH_RADIUS_KM)
    # A substituted earth radius flows through the spherical model helpers.
    model = SphericalDistance(earth_radius_km=1000)
    assert model.from_km(500) == 0.5
    assert model.to_km(0.5) == 500


def test_distance_model_factory():
    assert isinstance(distance_model(False), PlanarDistance)
    spherical = distance_model(True, earth_radius_km=3390)
    assert isinstance(spherical, SphericalDistance)
    assert spherical.earth_radius_km == 3390


def test_spherical_boxes_split_at_antimeridian():
    boxes = SphericalDistance().bounding_boxes(Coordinate(179.5, 0), math.radians(2))
    assert len(boxes) == 2
    assert any(b.contains(-179.0, 0.5) for b in boxes)
    assert any(b.contains(179.9, -0.5) for b in boxes)


def test_spherical_boxes_span_all_longitudes_near_pole():
    boxes = SphericalDistance().bounding_boxes(Coordinate(0, 89.5), math.radians(1))
    assert len(boxes) == 1
    assert boxes[0].min_lon == -180.0 and boxes[0].max_lon == 180.0
    assert boxes[0].contains(180.0, 89.5)


def test_spherical_boxes_cover_the_cap():
    # Every point within the radius must fall inside some box (no false negatives).
    model = SphericalDistance()
    center = Coordinate(30, 45)
    radius = math.radians(5)
    boxes = model.bounding_boxes(center, radius)
    for lon in range(20, 41):
        for lat in range(38, 53):
            p = Coordinate(float(lon), float(lat))
            if model.distance(center, p) <= radius:
                assert any(b.contains(p.lon, p.lat) for b in boxes), p


@pytest.mark.parametrize("radius_km", [0, -6371])
def test_spherical_model_rejects_non_positive_earth_radius(radius_km):
    with pytest.raises(InvalidParameter) as excinfo:
        SphericalDistance(earth_radius_km=radius_km)
    assert excinfo.value.name == "earth_radius_km"
