# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES MODELS
# ============================================================================
# STATUS: Standalone Models - Map Features Pydantic models
# PURPOSE: Feature record, request input schemas and response models
# LAST_REVIEWED: Current
# EXPORTS: FeatureType, GeographicFeature, NewFeatureRecord, CreateFeatureInput,
#          BoundsInput, SearchFeaturesInput, FeaturesInBoundsInput, MapView,
#          FeatureListResponse, build_feature_record
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: All classes in this file except FeatureType
# DEPENDENCIES: pydantic, typing, datetime, enum
# SOURCE: Map application feature schema
# SCOPE: Map Features API request/response models
# VALIDATION: Pydantic v2 validation (transport limits), domain rules in build_feature_record
# PATTERNS: Data Transfer Objects (DTOs)
# ENTRY_POINTS: from map_features.models import GeographicFeature, FeatureType
# ============================================================================

"""
Map Features Pydantic Models

Two validation layers live here:

1. Transport schemas (SearchFeaturesInput, FeaturesInBoundsInput, BoundsInput)
   enforce call-shape rules such as limit ranges with plain pydantic
   constraints. Failures surface as pydantic ValidationError.

2. Domain rules for new records (non-empty name, known feature type,
   coordinate domain) are checked by build_feature_record() and raise
   FeatureValidationError with a specific ValidationErrorCode.

References:
- GeoJSON RFC 7946: https://tools.ietf.org/html/rfc7946
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .bounds import BoundingBox, Coordinate
from .exceptions import FeatureValidationError, ValidationErrorCode

# Call-shape limits (transport layer)
SEARCH_DEFAULT_LIMIT = 50
SEARCH_MAX_LIMIT = 100
BOUNDS_DEFAULT_LIMIT = 100
BOUNDS_MAX_LIMIT = 1000


class FeatureType(str, Enum):
    """Closed set of feature categories."""
    CITY = "city"
    REGION = "region"
    LANDMARK = "landmark"
    ADMINISTRATIVE = "administrative"
    NATURAL = "natural"


# ============================================================================
# FEATURE RECORDS
# ============================================================================

class NewFeatureRecord(BaseModel):
    """
    Validated feature that has not been stored yet.

    Built only by build_feature_record(); the store assigns id and created_at.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    feature_type: FeatureType
    latitude: float
    longitude: float
    properties: Optional[Dict[str, str]] = None


class GeographicFeature(BaseModel):
    """
    Stored geographic point feature.

    Immutable after creation. `properties` is a free-form string map with no
    implied schema.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Store-assigned unique identifier")
    name: str = Field(description="Feature name")
    description: Optional[str] = Field(default=None, description="Optional description")
    feature_type: FeatureType = Field(description="Feature category")
    latitude: float = Field(description="Latitude in degrees (EPSG:4326)")
    longitude: float = Field(description="Longitude in degrees (EPSG:4326)")
    properties: Optional[Dict[str, str]] = Field(
        default=None,
        description="Free-form key/value attributes"
    )
    created_at: datetime = Field(description="Creation timestamp, set once by the store")

    @property
    def location(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    def to_geojson(self) -> Dict[str, Any]:
        """
        Render as a GeoJSON Point Feature.

        Returns:
            Feature dict with [longitude, latitude] coordinates (RFC 7946 order)
        """
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": {
                "type": "Point",
                "coordinates": [self.longitude, self.latitude]
            },
            "properties": {
                "name": self.name,
                "description": self.description,
                "feature_type": self.feature_type.value,
                "properties": self.properties,
                "created_at": self.created_at.isoformat()
            }
        }


# ============================================================================
# REQUEST INPUTS
# ============================================================================

class CreateFeatureInput(BaseModel):
    """
    Request body for feature creation.

    Types only. Name, feature type and coordinate domain are checked by
    build_feature_record() so each failure gets its own error code.
    """
    name: str
    description: Optional[str] = None
    feature_type: str
    latitude: float
    longitude: float
    properties: Optional[Dict[str, str]] = None


class BoundsInput(BaseModel):
    """
    Bounding box as received from callers.

    west > east is accepted: it denotes a box crossing the antimeridian.
    """
    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)

    @model_validator(mode="after")
    def check_latitude_order(self) -> "BoundsInput":
        if self.north <= self.south:
            raise ValueError("'north' must be greater than 'south'")
        return self

    def to_bounding_box(self) -> BoundingBox:
        return BoundingBox(
            north=self.north,
            south=self.south,
            east=self.east,
            west=self.west
        )


class SearchFeaturesInput(BaseModel):
    """Search call shape: text, single type, optional bounds."""
    query: Optional[str] = None
    feature_type: Optional[FeatureType] = None
    bounds: Optional[BoundsInput] = None
    limit: int = Field(default=SEARCH_DEFAULT_LIMIT, ge=1, le=SEARCH_MAX_LIMIT)


class FeaturesInBoundsInput(BaseModel):
    """Map viewport call shape: required bounds, optional type set."""
    bounds: BoundsInput
    feature_types: Optional[List[FeatureType]] = None
    limit: int = Field(default=BOUNDS_DEFAULT_LIMIT, ge=1, le=BOUNDS_MAX_LIMIT)

    @property
    def feature_type_set(self) -> Optional[FrozenSet[FeatureType]]:
        if not self.feature_types:
            return None
        return frozenset(self.feature_types)


# ============================================================================
# RESPONSES
# ============================================================================

class MapCenter(BaseModel):
    latitude: float
    longitude: float


class MapView(BaseModel):
    """Initial viewport for map clients."""
    center: MapCenter
    zoom_level: int = Field(ge=0, le=22)
    bounds: BoundsInput


class FeatureListResponse(BaseModel):
    """Feature sequence returned by list, search and bounds endpoints."""
    features: List[GeographicFeature]
    numberReturned: int
    timeStamp: str


# ============================================================================
# CONSTRUCTION
# ============================================================================

def build_feature_record(data: CreateFeatureInput) -> NewFeatureRecord:
    """
    Apply domain rules to a creation request.

    Args:
        data: Parsed request body

    Returns:
        NewFeatureRecord ready for FeatureStore.insert

    Raises:
        FeatureValidationError: EMPTY_NAME, INVALID_FEATURE_TYPE or
            COORDINATE_OUT_OF_RANGE
    """
    name = data.name.strip()
    if not name:
        raise FeatureValidationError(
            ValidationErrorCode.EMPTY_NAME,
            "name must not be empty"
        )

    try:
        feature_type = FeatureType(data.feature_type)
    except ValueError:
        allowed = ", ".join(t.value for t in FeatureType)
        raise FeatureValidationError(
            ValidationErrorCode.INVALID_FEATURE_TYPE,
            f"unknown feature_type '{data.feature_type}' (allowed: {allowed})"
        )

    location = Coordinate(latitude=data.latitude, longitude=data.longitude)
    if not location.is_valid():
        raise FeatureValidationError(
            ValidationErrorCode.COORDINATE_OUT_OF_RANGE,
            f"({data.latitude}, {data.longitude}) is outside latitude [-90, 90] / longitude [-180, 180]"
        )

    return NewFeatureRecord(
        name=name,
        description=data.description or None,
        feature_type=feature_type,
        latitude=location.latitude,
        longitude=location.longitude,
        properties=data.properties
    )
