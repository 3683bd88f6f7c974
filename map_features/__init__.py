# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES API MODULE
# ============================================================================
# STATUS: Standalone Module - Map Features API implementation
# PURPOSE: Point feature store with bounds / type / text querying for map clients
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesService, MapFeaturesConfig, QueryEngine, FeatureQuery,
#          BoundingBox, Coordinate, FeatureType, get_map_feature_triggers
# INTERFACES: FeatureStore (PostgreSQL or in-memory)
# PYDANTIC_MODELS: GeographicFeature, CreateFeatureInput, SearchFeaturesInput, FeaturesInBoundsInput
# DEPENDENCIES: psycopg, pydantic, azure-functions
# SOURCE: Environment variables for store selection and map defaults
# SCOPE: Standalone Map Features API - portable to any Function App
# VALIDATION: Pydantic models, domain validation with error codes
# PATTERNS: Service Layer, Repository Pattern, Composable predicates
# ENTRY_POINTS: from map_features import get_map_feature_triggers
# ============================================================================

"""
Map Features API - Standalone Module

Serves named point features (cities, regions, landmarks, administrative
zones, natural sites) to map clients. The core is the query engine that
selects features by bounding box, feature type and free text, with bounding
boxes allowed to cross the antimeridian (west > east).

Architecture:
    map_features/
    ├── bounds.py      # Coordinate / BoundingBox value objects, contains()
    ├── exceptions.py  # FeatureValidationError codes, StoreError
    ├── models.py      # Pydantic models (records, inputs, responses)
    ├── config.py      # Environment-based configuration
    ├── repository.py  # FeatureStore: PostgreSQL (psycopg) and in-memory
    ├── engine.py      # Predicate-based query engine
    ├── assembler.py   # Result ordering and truncation
    ├── service.py     # Business logic layer
    └── triggers.py    # Azure Functions HTTP handlers

Integration:
    # In function_app.py (ONLY integration point)
    from map_features import get_map_feature_triggers

    triggers = get_map_feature_triggers()
"""

from .bounds import BoundingBox, Coordinate, contains
from .config import MapFeaturesConfig, get_map_features_config
from .engine import FeatureQuery, QueryEngine
from .models import FeatureType, GeographicFeature
from .service import MapFeaturesService
from .triggers import get_map_feature_triggers

__version__ = "1.0.0"
__all__ = [
    "BoundingBox",
    "Coordinate",
    "contains",
    "FeatureQuery",
    "FeatureType",
    "GeographicFeature",
    "MapFeaturesConfig",
    "MapFeaturesService",
    "QueryEngine",
    "get_map_feature_triggers",
    "get_map_features_config"
]
