# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the Map Features API
# LAST_REVIEWED: Current
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, map_features, health
# ============================================================================

"""
Azure Functions Entry Point for the Map Features API

Registers all HTTP triggers with the Azure Functions runtime.

Architecture:
    - Map Features API: 5 routes (6 operations) serving point features
    - Health checks: 2 endpoints for monitoring and APIM integration
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (full metrics for APIM probes)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import json
import logging

import azure.functions as func

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Map Features API - 5 Routes
# ============================================================================

try:
    from map_features import get_map_feature_triggers

    logger.info("Registering Map Features API endpoints...")

    # Register all Map Features API endpoints with unique function names
    triggers = get_map_feature_triggers()

    # Create (POST) and list (GET)
    @app.route(route="map/features", methods=["GET", "POST"], auth_level=func.AuthLevel.ANONYMOUS)
    def map_features(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[0]['handler'](req)

    # Text / type / bounds search
    @app.route(route="map/features/search", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    def map_features_search(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[1]['handler'](req)

    # Viewport query
    @app.route(route="map/features/bounds", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    def map_features_in_bounds(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[2]['handler'](req)

    # Default bounds
    @app.route(route="map/bounds", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    def map_default_bounds(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[3]['handler'](req)

    # Initial map view
    @app.route(route="map/view", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    def map_initial_view(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[4]['handler'](req)

    logger.info("✅ Map Features API registered successfully (5 routes)")

except ImportError as e:
    logger.warning(f"⚠️ Map Features module not available: {e}")
    logger.warning("Map Features API will not be available")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.

    Returns:
        JSON: {"status": "healthy|unhealthy", "timestamp": "..."}
    """
    from health import get_public_health

    result = get_public_health()

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for APIM probes and operations.

    Returns 503 if unhealthy, 200 otherwise.

    SECURITY: Block this endpoint from external access via APIM policy.
    """
    from health import HealthStatus, get_detailed_health

    result = get_detailed_health()

    # Return 503 if unhealthy, 200 otherwise (healthy or degraded)
    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

from health import get_app_identity
_app_identity = get_app_identity()

logger.info("="*60)
logger.info(f"{_app_identity['name']} - {_app_identity['description']}")
logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health (APIM only)")
logger.info("")
logger.info("Map Features API (5 routes):")
logger.info("  - POST /api/map/features - Create feature")
logger.info("  - GET /api/map/features - List features (newest first)")
logger.info("  - GET /api/map/features/search - Text / type / bounds search")
logger.info("  - GET /api/map/features/bounds - Features in viewport")
logger.info("  - GET /api/map/bounds - Default map bounds")
logger.info("  - GET /api/map/view - Initial map view")
logger.info("="*60)
