# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - Map Features API endpoints
# PURPOSE: Azure Functions HTTP triggers for feature creation, search and map defaults
# LAST_REVIEWED: Current
# EXPORTS: get_map_feature_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# PYDANTIC_MODELS: CreateFeatureInput, SearchFeaturesInput, FeaturesInBoundsInput, BoundsInput
# DEPENDENCIES: azure.functions, pydantic, json, typing
# SOURCE: HTTP requests from map clients (Leaflet, curl)
# SCOPE: HTTP endpoint handlers for the Map Features API
# VALIDATION: Query parameter parsing and Pydantic validation
# PATTERNS: Trigger Pattern, Factory Pattern (get_map_feature_triggers)
# ENTRY_POINTS: Function App route registration via get_map_feature_triggers()
# ============================================================================

"""
Map Features API HTTP Triggers - Azure Functions Handlers

Endpoints:
- POST /api/map/features - Create a feature (201)
- GET  /api/map/features - List all features, newest first
- GET  /api/map/features/search - Text / type / bounds search
- GET  /api/map/features/bounds - Features inside a map viewport
- GET  /api/map/bounds - Default map bounds
- GET  /api/map/view - Initial map view

Each trigger:
1. Parses HTTP request parameters
2. Validates inputs (Pydantic)
3. Calls service layer
4. Returns JSON (or GeoJSON with ?f=geojson)
5. Maps errors to status codes:
   - 400: malformed parameters, ValidationError, FeatureValidationError
   - 503: feature table unavailable, StoreError
   - 500: anything else

Integration:
    In function_app.py:

    from map_features import get_map_feature_triggers

    triggers = get_map_feature_triggers()
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import azure.functions as func
from pydantic import ValidationError

from util_logger import ComponentType, LogContext, LoggerFactory

from .exceptions import FeatureValidationError, StoreError
from .models import (
    BoundsInput,
    CreateFeatureInput,
    FeatureListResponse,
    FeaturesInBoundsInput,
    GeographicFeature,
    SearchFeaturesInput
)
from .repository import is_feature_table_available
from .service import MapFeaturesService

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "MapFeaturesTriggers")

BOUNDS_PARAMS = ("north", "south", "east", "west")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_map_feature_triggers(service: Optional[MapFeaturesService] = None) -> List[Dict[str, Any]]:
    """
    Get list of Map Features API trigger configurations for function_app.py.

    Args:
        service: Optional shared service (tests inject one backed by a memory store)

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Callable trigger handler
    """
    return [
        {
            'route': 'map/features',
            'methods': ['GET', 'POST'],
            'handler': FeaturesTrigger(service).handle
        },
        {
            'route': 'map/features/search',
            'methods': ['GET'],
            'handler': SearchFeaturesTrigger(service).handle
        },
        {
            'route': 'map/features/bounds',
            'methods': ['GET'],
            'handler': FeaturesInBoundsTrigger(service).handle
        },
        {
            'route': 'map/bounds',
            'methods': ['GET'],
            'handler': DefaultBoundsTrigger(service).handle
        },
        {
            'route': 'map/view',
            'methods': ['GET'],
            'handler': MapViewTrigger(service).handle
        }
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseMapTrigger:
    """
    Base class for Map Features API triggers.

    Provides common functionality:
    - Feature table availability checking
    - Query parameter parsing
    - JSON response formatting
    - Error mapping
    """

    def __init__(self, service: Optional[MapFeaturesService] = None):
        self._service = service
        self._requires_database = True  # Override in subclasses that don't need the store

    @property
    def service(self) -> MapFeaturesService:
        # Created on first request so route registration never touches the store
        if self._service is None:
            self._service = MapFeaturesService()
        return self._service

    def _check_table_available(self) -> Optional[func.HttpResponse]:
        """
        Check if the feature table is available.

        Returns:
            None if available, 503 HttpResponse if not
        """
        if not self._requires_database:
            return None

        if is_feature_table_available():
            return None

        logger.warning("Map Features API request rejected: feature table not available")
        return self._error_response(
            message="Map Features API is not available: feature table has not been configured",
            status_code=503,
            error_type="ServiceUnavailable"
        )

    # ========================================================================
    # PARAMETER PARSING
    # ========================================================================

    def _parse_float(self, req: func.HttpRequest, name: str) -> float:
        raw = req.params.get(name)
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Parameter '{name}' must be a number, got '{raw}'")

    def _parse_limit(self, req: func.HttpRequest) -> Optional[int]:
        raw = req.params.get('limit')
        if raw is None or raw == '':
            return None
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"Parameter 'limit' must be an integer, got '{raw}'")

    def _parse_bounds(self, req: func.HttpRequest, required: bool) -> Optional[BoundsInput]:
        """
        Parse north/south/east/west query parameters.

        Args:
            req: Azure Functions HTTP request
            required: Whether missing bounds is an error

        Returns:
            BoundsInput, or None when no edge was supplied and bounds are optional

        Raises:
            ValueError: Partial or non-numeric bounds
            ValidationError: Edges out of range or north <= south
        """
        present = [name for name in BOUNDS_PARAMS if req.params.get(name) not in (None, '')]

        if not present and not required:
            return None

        if len(present) != len(BOUNDS_PARAMS):
            missing = [name for name in BOUNDS_PARAMS if name not in present]
            raise ValueError(
                f"Bounds require all of north, south, east, west (missing: {', '.join(missing)})"
            )

        return BoundsInput(**{name: self._parse_float(req, name) for name in BOUNDS_PARAMS})

    # ========================================================================
    # RESPONSES
    # ========================================================================

    def _json_response(
        self,
        data: Any,
        status_code: int = 200,
        content_type: str = "application/json"
    ) -> func.HttpResponse:
        """
        Create JSON HTTP response.

        Args:
            data: Data to serialize (dict, Pydantic model, etc.)
            status_code: HTTP status code
            content_type: Response content type

        Returns:
            Azure Functions HttpResponse
        """
        # Handle Pydantic models
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json')

        return func.HttpResponse(
            body=json.dumps(data, indent=2),
            status_code=status_code,
            mimetype=content_type
        )

    def _features_response(
        self,
        req: func.HttpRequest,
        features: List[GeographicFeature]
    ) -> func.HttpResponse:
        """
        Feature list response; ?f=geojson switches to a GeoJSON FeatureCollection.
        """
        timestamp = datetime.now(timezone.utc).isoformat()

        if (req.params.get('f') or '').lower() == 'geojson':
            collection = {
                "type": "FeatureCollection",
                "features": [feature.to_geojson() for feature in features],
                "numberReturned": len(features),
                "timeStamp": timestamp
            }
            return self._json_response(collection, content_type="application/geo+json")

        return self._json_response(FeatureListResponse(
            features=features,
            numberReturned=len(features),
            timeStamp=timestamp
        ))

    def _error_response(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "BadRequest"
    ) -> func.HttpResponse:
        """
        Create error response.

        Args:
            message: Error message
            status_code: HTTP status code
            error_type: Error type string

        Returns:
            Azure Functions HttpResponse with error JSON
        """
        error_body = {
            "code": error_type,
            "description": message
        }
        return func.HttpResponse(
            body=json.dumps(error_body, indent=2),
            status_code=status_code,
            mimetype="application/json"
        )

    def _log_context(self, req: func.HttpRequest, operation: str) -> LogContext:
        """Correlation dimensions taken from the caller's tracing headers."""
        return LogContext(
            correlation_id=req.headers.get('traceparent'),
            request_id=req.headers.get('x-request-id'),
            operation=operation
        )

    def _exception_response(self, e: Exception, operation: str, req: func.HttpRequest) -> func.HttpResponse:
        """
        Map an exception raised while handling a request to an error response.

        Args:
            e: Raised exception
            operation: Short description for the log line
            req: Request being handled, for log correlation

        Returns:
            400, 503 or 500 HttpResponse
        """
        log_extra = {'custom_dimensions': self._log_context(req, operation).to_dict()}

        if isinstance(e, FeatureValidationError):
            logger.warning(f"Rejected {operation}: {e}", extra=log_extra)
            return self._error_response(message=e.message, error_type=e.code.value)

        if isinstance(e, ValidationError):
            logger.warning(f"Invalid parameters for {operation}: {e}", extra=log_extra)
            return self._error_response(message=f"Invalid parameters: {str(e)}")

        if isinstance(e, ValueError):
            logger.warning(f"Invalid parameters for {operation}: {e}", extra=log_extra)
            return self._error_response(message=str(e))

        if isinstance(e, StoreError):
            logger.error(f"Feature store unavailable while {operation}: {e}", extra=log_extra)
            return self._error_response(
                message=str(e),
                status_code=503,
                error_type="ServiceUnavailable"
            )

        logger.error(f"Error {operation}: {e}", exc_info=True, extra=log_extra)
        return self._error_response(
            message=f"Internal server error: {str(e)}",
            status_code=500,
            error_type="InternalServerError"
        )


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class FeaturesTrigger(BaseMapTrigger):
    """
    Feature collection trigger.

    Endpoints:
    - POST /api/map/features - JSON body {name, description?, feature_type,
      latitude, longitude, properties?}
    - GET  /api/map/features - All features, created_at descending
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        unavailable_response = self._check_table_available()
        if unavailable_response:
            return unavailable_response

        if req.method.upper() == 'POST':
            return self._create(req)
        return self._list(req)

    def _create(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            try:
                body = req.get_json()
            except ValueError:
                return self._error_response(message="Request body must be valid JSON")

            data = CreateFeatureInput.model_validate(body)
            feature = self.service.create_feature(data)

            return self._json_response(feature, status_code=201)

        except Exception as e:
            return self._exception_response(e, "creating feature", req)

    def _list(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            features = self.service.list_features()
            return self._features_response(req, features)

        except Exception as e:
            return self._exception_response(e, "listing features", req)


class SearchFeaturesTrigger(BaseMapTrigger):
    """
    Feature search trigger.

    Endpoint: GET /api/map/features/search

    Query Parameters:
    - q: Case-insensitive substring of name or description
    - feature_type: Single feature type
    - north, south, east, west: Optional bounds (all four or none; west > east wraps)
    - limit: Max features to return (1-100, default 50)
    - f: "geojson" for a FeatureCollection
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        unavailable_response = self._check_table_available()
        if unavailable_response:
            return unavailable_response

        try:
            params: Dict[str, Any] = {
                'query': req.params.get('q') or None,
                'feature_type': req.params.get('feature_type') or None,
                'bounds': self._parse_bounds(req, required=False)
            }
            limit = self._parse_limit(req)
            if limit is not None:
                params['limit'] = limit

            search = SearchFeaturesInput(**params)
            features = self.service.search_features(search)

            return self._features_response(req, features)

        except Exception as e:
            return self._exception_response(e, "searching features", req)


class FeaturesInBoundsTrigger(BaseMapTrigger):
    """
    Map viewport trigger.

    Endpoint: GET /api/map/features/bounds

    Query Parameters:
    - north, south, east, west: Required bounds (west > east wraps the antimeridian)
    - feature_types: Comma-separated feature types (e.g. city,landmark)
    - limit: Max features to return (1-1000, default 100)
    - f: "geojson" for a FeatureCollection
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        unavailable_response = self._check_table_available()
        if unavailable_response:
            return unavailable_response

        try:
            params: Dict[str, Any] = {
                'bounds': self._parse_bounds(req, required=True),
                'feature_types': self._parse_feature_types(req)
            }
            limit = self._parse_limit(req)
            if limit is not None:
                params['limit'] = limit

            viewport = FeaturesInBoundsInput(**params)
            features = self.service.features_in_bounds(viewport)

            return self._features_response(req, features)

        except Exception as e:
            return self._exception_response(e, "querying features in bounds", req)

    def _parse_feature_types(self, req: func.HttpRequest) -> Optional[List[str]]:
        raw = req.params.get('feature_types')
        if not raw:
            return None
        return [part.strip() for part in raw.split(',') if part.strip()]


class DefaultBoundsTrigger(BaseMapTrigger):
    """
    Default map bounds trigger.

    Endpoint: GET /api/map/bounds

    Note: Served from configuration - no store needed.
    """

    def __init__(self, service: Optional[MapFeaturesService] = None):
        super().__init__(service)
        self._requires_database = False

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            return self._json_response(self.service.get_default_bounds().to_dict())

        except Exception as e:
            return self._exception_response(e, "getting default bounds", req)


class MapViewTrigger(BaseMapTrigger):
    """
    Initial map view trigger.

    Endpoint: GET /api/map/view

    Note: Served from configuration - no store needed.
    """

    def __init__(self, service: Optional[MapFeaturesService] = None):
        super().__init__(service)
        self._requires_database = False

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            return self._json_response(self.service.get_initial_map_view())

        except Exception as e:
            return self._exception_response(e, "getting initial map view", req)
