# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES SERVICE
# ============================================================================
# STATUS: Standalone Service - Map Features API business logic
# PURPOSE: Orchestrate feature creation and queries between triggers and the store
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesService
# INTERFACES: FeatureStore (injected or from get_feature_store)
# PYDANTIC_MODELS: CreateFeatureInput, SearchFeaturesInput, FeaturesInBoundsInput,
#                  GeographicFeature, MapView
# DEPENDENCIES: typing, threading, util_logger
# SOURCE: Repository layer (FeatureStore) via QueryEngine
# SCOPE: Business logic for map feature operations
# VALIDATION: build_feature_record (domain rules), pydantic (call shape)
# PATTERNS: Service Layer, Facade Pattern, Dependency Injection
# ENTRY_POINTS: service = MapFeaturesService(); service.search_features(params)
# ============================================================================

"""
Map Features Service - Business Logic Layer

Coordinates HTTP triggers, the query engine and the feature store:
- createFeature: domain validation then exactly one store insert
- listFeatures: every feature, newest first
- searchFeatures: text / single type / optional bounds, unordered
- featuresInBounds: required bounds / optional type set, unordered
- defaultBounds, initialMapView: configured map defaults

Store errors are not caught here; triggers translate them to HTTP codes.
"""

import threading
from typing import List, Optional

from util_logger import ComponentType, LoggerFactory, log_exceptions

from .assembler import OrderPolicy, assemble
from .bounds import BoundingBox
from .config import MapFeaturesConfig, get_map_features_config
from .engine import FeatureQuery, QueryEngine
from .models import (
    BoundsInput,
    CreateFeatureInput,
    FeaturesInBoundsInput,
    GeographicFeature,
    MapCenter,
    MapView,
    SearchFeaturesInput,
    build_feature_record
)
from .repository import FeatureStore, get_feature_store

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "MapFeaturesService")


class MapFeaturesService:
    """
    Business logic service for the Map Features API.

    Responsibilities:
    - Validate and store new features
    - Translate call shapes into FeatureQuery objects
    - Pick the ordering policy for each operation
    - Serve configured map defaults
    """

    def __init__(
        self,
        config: Optional[MapFeaturesConfig] = None,
        store: Optional[FeatureStore] = None
    ):
        """
        Initialize service with configuration and store.

        Args:
            config: Map Features configuration (uses singleton if not provided)
            store: Feature store (uses the configured shared store if not provided)
        """
        self.config = config or get_map_features_config()
        # Empty stores are falsy (__len__), so test against None
        self.store = store if store is not None else get_feature_store(self.config)
        self.engine = QueryEngine(self.store)
        logger.info(f"MapFeaturesService initialized (store: {type(self.store).__name__})")

    # ========================================================================
    # CREATION
    # ========================================================================

    @log_exceptions(logger=logger)
    def create_feature(self, data: CreateFeatureInput) -> GeographicFeature:
        """
        Validate a creation request and persist it.

        Args:
            data: Parsed request body

        Returns:
            Stored feature with id and created_at assigned

        Raises:
            FeatureValidationError: Domain rule failure (store untouched)
            StoreError: Store failure
        """
        record = build_feature_record(data)
        feature = self.store.insert(record)

        logger.info(
            f"Created feature {feature.id} ('{feature.name}', {feature.feature_type.value})",
            extra={'custom_dimensions': {'feature_id': feature.id}}
        )
        return feature

    # ========================================================================
    # QUERIES
    # ========================================================================

    @log_exceptions(logger=logger)
    def list_features(self) -> List[GeographicFeature]:
        """
        Every stored feature, most recent first.

        Equal created_at values are ordered by id, highest first.
        """
        features = assemble(self.store.list_all(), None, OrderPolicy.CREATED_DESC)
        logger.info(f"Listed {len(features)} features")
        return features

    @log_exceptions(logger=logger)
    def search_features(
        self,
        params: SearchFeaturesInput,
        cancel_event: Optional[threading.Event] = None
    ) -> List[GeographicFeature]:
        """
        Text / type / bounds search.

        Args:
            params: Validated search call (limit already within 1..100)
            cancel_event: Optional cooperative cancellation flag

        Returns:
            Up to params.limit matching features, in no particular order
        """
        query = FeatureQuery(
            limit=params.limit,
            text_query=params.query,
            feature_type=params.feature_type,
            bounds=params.bounds.to_bounding_box() if params.bounds else None
        )
        features = self.engine.query_features(query, OrderPolicy.UNORDERED, cancel_event)

        logger.info(
            f"Search returned {len(features)} features",
            extra={'custom_dimensions': {
                'query': params.query,
                'feature_type': params.feature_type.value if params.feature_type else None,
                'has_bounds': params.bounds is not None,
                'limit': params.limit
            }}
        )
        return features

    @log_exceptions(logger=logger)
    def features_in_bounds(
        self,
        params: FeaturesInBoundsInput,
        cancel_event: Optional[threading.Event] = None
    ) -> List[GeographicFeature]:
        """
        Features visible in a map viewport.

        Args:
            params: Validated bounds call (limit already within 1..1000)
            cancel_event: Optional cooperative cancellation flag

        Returns:
            Up to params.limit features inside the bounds, in no particular order
        """
        bounds = params.bounds.to_bounding_box()
        query = FeatureQuery(
            limit=params.limit,
            feature_types=params.feature_type_set,
            bounds=bounds
        )
        features = self.engine.query_features(query, OrderPolicy.UNORDERED, cancel_event)

        logger.info(
            f"Bounds query returned {len(features)} features"
            f"{' (crosses antimeridian)' if bounds.crosses_antimeridian else ''}",
            extra={'custom_dimensions': {'bounds': bounds.to_dict(), 'limit': params.limit}}
        )
        return features

    # ========================================================================
    # MAP DEFAULTS
    # ========================================================================

    def get_default_bounds(self) -> BoundingBox:
        """Configured default map bounds."""
        return BoundingBox(
            north=self.config.default_north,
            south=self.config.default_south,
            east=self.config.default_east,
            west=self.config.default_west
        )

    def get_initial_map_view(self) -> MapView:
        """Initial map center, zoom level and bounds."""
        bounds = self.get_default_bounds()
        return MapView(
            center=MapCenter(
                latitude=self.config.center_latitude,
                longitude=self.config.center_longitude
            ),
            zoom_level=self.config.default_zoom,
            bounds=BoundsInput(**bounds.to_dict())
        )
