"""
Feature model and construction-rule tests.

Anti-overfitting: Enum count assertions catch silent additions/removals.
"""

import pytest
from pydantic import ValidationError

from map_features.exceptions import FeatureValidationError, ValidationErrorCode
from map_features.models import (
    BOUNDS_DEFAULT_LIMIT,
    SEARCH_DEFAULT_LIMIT,
    BoundsInput,
    CreateFeatureInput,
    FeaturesInBoundsInput,
    FeatureType,
    SearchFeaturesInput,
    build_feature_record
)
from tests.factories.feature_factories import make_create_input, make_feature


class TestFeatureTypeEnum:
    def test_has_exactly_5_values(self):
        assert len(FeatureType) == 5

    def test_expected_values(self):
        assert {t.value for t in FeatureType} == {
            "city", "region", "landmark", "administrative", "natural"
        }

    def test_is_str_enum(self):
        assert isinstance(FeatureType.CITY, str)

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            FeatureType("department")


class TestBuildFeatureRecord:
    def test_empty_name_rejected(self):
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(CreateFeatureInput(**make_create_input(name="")))
        assert exc_info.value.code == ValidationErrorCode.EMPTY_NAME

    def test_whitespace_name_rejected(self):
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(CreateFeatureInput(**make_create_input(name="   \t")))
        assert exc_info.value.code == ValidationErrorCode.EMPTY_NAME

    def test_unknown_feature_type_rejected(self):
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(CreateFeatureInput(**make_create_input(feature_type="commune")))
        assert exc_info.value.code == ValidationErrorCode.INVALID_FEATURE_TYPE

    @pytest.mark.parametrize("latitude,longitude", [(91, 0), (-90.5, 0), (0, 181), (0, -180.01)])
    def test_coordinate_out_of_range_rejected(self, latitude, longitude):
        data = CreateFeatureInput(**make_create_input(latitude=latitude, longitude=longitude))
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(data)
        assert exc_info.value.code == ValidationErrorCode.COORDINATE_OUT_OF_RANGE

    def test_name_checked_before_type_and_coordinates(self):
        data = CreateFeatureInput(**make_create_input(name=" ", feature_type="bogus", latitude=200))
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(data)
        assert exc_info.value.code == ValidationErrorCode.EMPTY_NAME

    def test_type_checked_before_coordinates(self):
        data = CreateFeatureInput(**make_create_input(feature_type="bogus", latitude=200))
        with pytest.raises(FeatureValidationError) as exc_info:
            build_feature_record(data)
        assert exc_info.value.code == ValidationErrorCode.INVALID_FEATURE_TYPE

    def test_name_is_trimmed(self):
        record = build_feature_record(CreateFeatureInput(**make_create_input(name="  Lyon  ")))
        assert record.name == "Lyon"

    def test_empty_description_stored_as_absent(self):
        record = build_feature_record(CreateFeatureInput(**make_create_input(description="")))
        assert record.description is None

    def test_valid_record(self):
        body = make_create_input(feature_type="landmark", latitude=48.8584, longitude=2.2945)
        record = build_feature_record(CreateFeatureInput(**body))
        assert record.feature_type is FeatureType.LANDMARK
        assert (record.latitude, record.longitude) == (48.8584, 2.2945)
        assert record.properties == body["properties"]

    def test_error_message_includes_code(self):
        error = FeatureValidationError(ValidationErrorCode.EMPTY_NAME, "name must not be empty")
        assert str(error).startswith("EmptyName")


class TestGeographicFeature:
    def test_location(self):
        feature = make_feature(latitude=45.764, longitude=4.8357)
        assert feature.location.latitude == 45.764
        assert feature.location.longitude == 4.8357

    def test_geojson_uses_lon_lat_order(self):
        feature = make_feature(latitude=45.764, longitude=4.8357)
        geojson = feature.to_geojson()
        assert geojson["type"] == "Feature"
        assert geojson["geometry"] == {"type": "Point", "coordinates": [4.8357, 45.764]}
        assert geojson["properties"]["name"] == feature.name
        assert geojson["properties"]["feature_type"] == feature.feature_type.value

    def test_is_frozen(self):
        feature = make_feature()
        with pytest.raises(ValidationError):
            feature.name = "renamed"


class TestSearchFeaturesInput:
    def test_default_limit(self):
        assert SearchFeaturesInput().limit == SEARCH_DEFAULT_LIMIT == 50

    @pytest.mark.parametrize("limit", [1, 100])
    def test_limit_range_accepted(self, limit):
        assert SearchFeaturesInput(limit=limit).limit == limit

    @pytest.mark.parametrize("limit", [0, -1, 101])
    def test_limit_range_rejected(self, limit):
        with pytest.raises(ValidationError):
            SearchFeaturesInput(limit=limit)

    def test_unknown_feature_type_rejected(self):
        with pytest.raises(ValidationError):
            SearchFeaturesInput(feature_type="village")


class TestFeaturesInBoundsInput:
    BOUNDS = {"north": 51.1, "south": 41.3, "east": 9.6, "west": -5.1}

    def test_default_limit(self):
        assert FeaturesInBoundsInput(bounds=self.BOUNDS).limit == BOUNDS_DEFAULT_LIMIT == 100

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_limit_range_rejected(self, limit):
        with pytest.raises(ValidationError):
            FeaturesInBoundsInput(bounds=self.BOUNDS, limit=limit)

    def test_accepts_max_limit(self):
        assert FeaturesInBoundsInput(bounds=self.BOUNDS, limit=1000).limit == 1000

    def test_empty_type_list_means_no_restriction(self):
        assert FeaturesInBoundsInput(bounds=self.BOUNDS, feature_types=[]).feature_type_set is None

    def test_type_set(self):
        params = FeaturesInBoundsInput(bounds=self.BOUNDS, feature_types=["city", "city", "natural"])
        assert params.feature_type_set == frozenset({FeatureType.CITY, FeatureType.NATURAL})


class TestBoundsInput:
    def test_wraparound_accepted(self):
        bounds = BoundsInput(north=65, south=55, east=-170, west=170)
        assert bounds.to_bounding_box().crosses_antimeridian

    def test_north_not_above_south_rejected(self):
        with pytest.raises(ValidationError):
            BoundsInput(north=40, south=40, east=1, west=0)

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            BoundsInput(north=91, south=0, east=1, west=0)
