"""
Coordinate / BoundingBox containment tests.

Covers closed-interval edges and antimeridian-crossing boxes.
"""

import math

import pytest

from map_features.bounds import BoundingBox, Coordinate, contains
from map_features.exceptions import FeatureValidationError, ValidationErrorCode


NEW_YORK_BOX = BoundingBox(north=41, south=40, east=-73, west=-75)
BERING_BOX = BoundingBox(north=65, south=55, east=-170, west=170)


class TestNormalBox:
    def test_new_york_included(self):
        assert contains(NEW_YORK_BOX, Coordinate(40.7128, -74.0060))

    def test_london_excluded(self):
        assert not contains(NEW_YORK_BOX, Coordinate(51.5074, -0.1278))

    @pytest.mark.parametrize("point", [
        Coordinate(41, -74),    # north edge
        Coordinate(40, -74),    # south edge
        Coordinate(40.5, -73),  # east edge
        Coordinate(40.5, -75),  # west edge
        Coordinate(41, -75),    # corner
    ])
    def test_edges_are_inside(self, point):
        assert contains(NEW_YORK_BOX, point)

    @pytest.mark.parametrize("point", [
        Coordinate(41.0001, -74),
        Coordinate(39.9999, -74),
        Coordinate(40.5, -72.9999),
        Coordinate(40.5, -75.0001),
    ])
    def test_just_outside_edges(self, point):
        assert not contains(NEW_YORK_BOX, point)

    def test_method_matches_function(self):
        point = Coordinate(40.7128, -74.0060)
        assert NEW_YORK_BOX.contains(point) == contains(NEW_YORK_BOX, point)

    def test_does_not_cross_antimeridian(self):
        assert not NEW_YORK_BOX.crosses_antimeridian

    def test_degenerate_longitude_span(self):
        box = BoundingBox(north=10, south=0, east=5, west=5)
        assert contains(box, Coordinate(5, 5))
        assert not contains(box, Coordinate(5, 5.1))


class TestWraparoundBox:
    def test_crosses_antimeridian(self):
        assert BERING_BOX.crosses_antimeridian

    def test_west_side_included(self):
        assert contains(BERING_BOX, Coordinate(60, 175))

    def test_east_side_included(self):
        assert contains(BERING_BOX, Coordinate(60, -175))

    def test_greenwich_excluded(self):
        assert not contains(BERING_BOX, Coordinate(60, 0))

    @pytest.mark.parametrize("longitude", [170, -170, 180, -180])
    def test_longitude_edges_are_inside(self, longitude):
        assert contains(BERING_BOX, Coordinate(60, longitude))

    def test_latitude_still_applies(self):
        assert not contains(BERING_BOX, Coordinate(66, 175))
        assert not contains(BERING_BOX, Coordinate(54, -175))

    def test_wrap_is_not_an_error(self):
        box = BoundingBox(north=10, south=-10, east=-179, west=179)
        assert box.is_valid()

    @pytest.mark.parametrize("latitude,longitude", [
        (55, 170), (65, -170), (60, 169.9), (60, -169.9), (60, 179.5), (60, -179.5)
    ])
    def test_matches_union_of_intervals(self, latitude, longitude):
        expected = 55 <= latitude <= 65 and (longitude >= 170 or longitude <= -170)
        assert contains(BERING_BOX, Coordinate(latitude, longitude)) == expected


class TestBoundaryExact:
    def test_point_on_north_edge_included(self):
        box = BoundingBox(north=48.8566, south=40, east=10, west=-5)
        assert contains(box, Coordinate(48.8566, 2.3522))

    def test_point_on_south_edge_of_wrap_box_included(self):
        assert contains(BERING_BOX, Coordinate(55, 180))


class TestBoundingBoxConstruction:
    def test_north_equal_south_rejected(self):
        with pytest.raises(FeatureValidationError) as exc_info:
            BoundingBox(north=10, south=10, east=5, west=0)
        assert exc_info.value.code == ValidationErrorCode.INVALID_BOUNDS

    def test_north_below_south_rejected(self):
        with pytest.raises(FeatureValidationError) as exc_info:
            BoundingBox(north=0, south=10, east=5, west=0)
        assert exc_info.value.code == ValidationErrorCode.INVALID_BOUNDS

    def test_is_frozen(self):
        with pytest.raises(Exception):
            NEW_YORK_BOX.north = 50

    def test_to_dict(self):
        assert NEW_YORK_BOX.to_dict() == {"north": 41, "south": 40, "east": -73, "west": -75}

    def test_out_of_domain_edges_reported_invalid(self):
        assert not BoundingBox(north=95, south=0, east=0, west=-10).is_valid()


class TestCoordinate:
    @pytest.mark.parametrize("latitude,longitude", [(90, 180), (-90, -180), (0, 0)])
    def test_domain_limits_valid(self, latitude, longitude):
        assert Coordinate(latitude, longitude).is_valid()

    @pytest.mark.parametrize("latitude,longitude", [(90.1, 0), (0, -180.1), (math.nan, 0)])
    def test_outside_domain_invalid(self, latitude, longitude):
        assert not Coordinate(latitude, longitude).is_valid()

    def test_contains_does_not_normalise(self):
        # 190 is not folded to -170
        box = BoundingBox(north=10, south=-10, east=-160, west=-180)
        assert not contains(box, Coordinate(0, 190))
