# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES BOUNDS
# ============================================================================
# STATUS: Standalone Module - Coordinate and bounding box math
# PURPOSE: Point containment for rectangular regions, including antimeridian wraparound
# LAST_REVIEWED: Current
# EXPORTS: Coordinate, BoundingBox, contains, LATITUDE_RANGE, LONGITUDE_RANGE
# INTERFACES: Frozen dataclasses (value objects)
# PYDANTIC_MODELS: None
# DEPENDENCIES: dataclasses, typing
# SCOPE: Pure geometry predicates - no I/O
# VALIDATION: north > south enforced at construction
# PATTERNS: Value Object
# ENTRY_POINTS: from map_features.bounds import BoundingBox, Coordinate, contains
# ============================================================================

"""
Coordinate & Bounding Box Value Objects

Boxes are closed rectangles in EPSG:4326 degrees. Longitude ordering carries
meaning:

    west <= east   normal box, longitude in [west, east]
    west >  east   box wraps across the antimeridian, longitude in
                   [west, 180] or [-180, east]

A box with west > east is NOT malformed. It is how a region spanning the
±180° line (e.g. the Bering Strait) is expressed, and must never be turned
into a validation failure. Only north <= south is rejected.

Containment does not normalise its inputs: out-of-domain numbers are compared
as given.
"""

from dataclasses import dataclass
from typing import Tuple

from .exceptions import FeatureValidationError, ValidationErrorCode

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def _in_range(value: float, bounds: Tuple[float, float]) -> bool:
    # NaN fails both comparisons
    return bounds[0] <= value <= bounds[1]


@dataclass(frozen=True)
class Coordinate:
    """Immutable WGS84 point."""
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Check that both components are inside their declared domains."""
        return (
            _in_range(self.latitude, LATITUDE_RANGE)
            and _in_range(self.longitude, LONGITUDE_RANGE)
        )

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class BoundingBox:
    """
    Immutable geographic rectangle.

    Raises:
        FeatureValidationError: INVALID_BOUNDS if north <= south
    """
    north: float
    south: float
    east: float
    west: float

    def __post_init__(self):
        if not self.north > self.south:
            raise FeatureValidationError(
                ValidationErrorCode.INVALID_BOUNDS,
                f"north ({self.north}) must be greater than south ({self.south})"
            )

    @property
    def crosses_antimeridian(self) -> bool:
        """True when the box wraps through ±180° longitude."""
        return self.west > self.east

    def is_valid(self) -> bool:
        """Check that all four edges are inside their declared domains."""
        return (
            _in_range(self.north, LATITUDE_RANGE)
            and _in_range(self.south, LATITUDE_RANGE)
            and _in_range(self.east, LONGITUDE_RANGE)
            and _in_range(self.west, LONGITUDE_RANGE)
        )

    def contains(self, point: Coordinate) -> bool:
        return contains(self, point)

    def to_dict(self) -> dict:
        return {
            "north": self.north,
            "south": self.south,
            "east": self.east,
            "west": self.west
        }


def contains(box: BoundingBox, point: Coordinate) -> bool:
    """
    Closed-rectangle containment test.

    Every edge counts as inside, for both normal and wrapping boxes.

    Args:
        box: Region to test against
        point: Candidate location

    Returns:
        True if the point lies inside or on the edge of the box
    """
    if not (box.south <= point.latitude <= box.north):
        return False

    if box.west <= box.east:
        return box.west <= point.longitude <= box.east

    # Wraparound: union of [west, 180] and [-180, east]
    return point.longitude >= box.west or point.longitude <= box.east
