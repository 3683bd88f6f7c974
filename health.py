# ============================================================================
# CLAUDE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks for APIM integration and monitoring
# LAST_REVIEWED: Current
# EXPORTS: get_public_health, get_detailed_health, get_app_identity, HealthStatus
# DEPENDENCIES: psycopg, config, util_logger, map_features
# PATTERNS: Two-tier health checks (public/detailed) for APIM
# ============================================================================

"""
Health Check Module for the Map Features API

Provides two-tier health monitoring:

1. Public Health (/api/health):
   - Minimal response for external callers
   - Returns only status and timestamp
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - Database connectivity with latency metrics (skipped for the memory store)
   - Feature table availability and row count
   - API module status
   - Returns 503 if unhealthy

Usage:
    from health import get_public_health, get_detailed_health

    result = get_public_health()
    # {"status": "healthy", "timestamp": "2025-11-24T12:00:00Z"}
"""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import psycopg
from psycopg import sql

from config import get_app_config, get_postgres_connection_string
from util_logger import ComponentType, LoggerFactory

# Create module logger
logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")

APP_NAME = "map-features-api"
APP_DESCRIPTION = "Map Features API (geographic point features)"


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical components failing
    UNHEALTHY = "unhealthy"    # Critical components failing


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass", "fail" or "skip"
    latency_ms: float        # Time taken for check
    message: str             # Human-readable status message
    details: Optional[Dict[str, Any]] = None  # Additional details

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


def get_app_identity() -> Dict[str, str]:
    """Name and description used in startup logs and detailed health."""
    return {"name": APP_NAME, "description": APP_DESCRIPTION}


def _uses_memory_store() -> bool:
    from map_features.config import StoreBackend, get_map_features_config
    return get_map_features_config().store_backend == StoreBackend.MEMORY


# ============================================================================
# Health Check Functions
# ============================================================================

def check_database_connectivity(timeout_seconds: float = 5.0) -> CheckResult:
    """
    Check PostgreSQL database connectivity.

    Executes SELECT 1 with timeout to verify database is reachable.
    Skipped when the in-memory store is configured.

    Args:
        timeout_seconds: Connection timeout in seconds

    Returns:
        CheckResult with connection status and latency
    """
    start_time = time.perf_counter()

    if _uses_memory_store():
        return CheckResult(
            status="skip",
            latency_ms=0.0,
            message="In-memory feature store configured, no database in use"
        )

    try:
        conn_string = get_postgres_connection_string()
        config = get_app_config()

        with psycopg.connect(
            conn_string,
            connect_timeout=int(timeout_seconds)
        ) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()

        latency_ms = (time.perf_counter() - start_time) * 1000

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="PostgreSQL connection successful",
            details={
                "host": config.postgis_host,
                "database": config.postgis_database,
                "auth_mode": "managed_identity" if config.use_managed_identity else "password"
            }
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Database connectivity check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Database connection failed: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_feature_table() -> CheckResult:
    """
    Check the feature table behind the Map Features API.

    This is a critical check - failure means UNHEALTHY status.

    Returns:
        CheckResult with table status and feature count
    """
    start_time = time.perf_counter()

    try:
        from map_features.repository import (
            InMemoryFeatureStore,
            get_feature_store,
            is_feature_table_available
        )

        store = get_feature_store()

        if isinstance(store, InMemoryFeatureStore):
            latency_ms = (time.perf_counter() - start_time) * 1000
            return CheckResult(
                status="pass",
                latency_ms=latency_ms,
                message=f"{len(store)} features in memory",
                details={"backend": "memory", "feature_count": len(store)}
            )

        table_name = f"{store.config.feature_schema}.{store.config.feature_table}"

        if not is_feature_table_available(force_check=True):
            latency_ms = (time.perf_counter() - start_time) * 1000
            return CheckResult(
                status="fail",
                latency_ms=latency_ms,
                message=f"Table '{table_name}' does not exist",
                details={"table": table_name, "exists": False}
            )

        with psycopg.connect(get_postgres_connection_string()) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("SELECT COUNT(*) FROM {table}").format(
                        table=sql.Identifier(store.config.feature_schema, store.config.feature_table)
                    )
                )
                feature_count = cur.fetchone()[0]

        latency_ms = (time.perf_counter() - start_time) * 1000

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message=f"{feature_count} features available",
            details={"backend": "postgres", "table": table_name, "feature_count": feature_count}
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Feature table check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Feature table check failed: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_api_modules() -> CheckResult:
    """
    Check API module availability.

    Verifies map_features can be imported and exposes its triggers.
    This is a non-critical check - failure means DEGRADED status.

    Returns:
        CheckResult with module availability status
    """
    start_time = time.perf_counter()

    try:
        from map_features import __version__, get_map_feature_triggers
        triggers = get_map_feature_triggers()
        map_status = {
            "available": True,
            "endpoints": len(triggers),
            "version": __version__
        }
        status = "pass"
        message = "All modules loaded"
    except Exception as e:
        map_status = {"available": False, "endpoints": 0, "error": str(e)}
        status = "fail"
        message = "No API modules available"

    latency_ms = (time.perf_counter() - start_time) * 1000

    return CheckResult(
        status=status,
        latency_ms=latency_ms,
        message=message,
        details={"map_features": map_status}
    )


# ============================================================================
# Main Entry Points
# ============================================================================

def get_public_health() -> Dict[str, Any]:
    """
    Get minimal health status for public endpoint.

    Returns only status and timestamp - no internal details.

    Returns:
        Dict with status and timestamp only
    """
    start_time = time.perf_counter()

    # Quick database check to determine status
    db_result = check_database_connectivity(timeout_seconds=3.0)

    if db_result.status == "fail":
        status = HealthStatus.UNHEALTHY
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_detailed_health() -> Dict[str, Any]:
    """
    Get detailed health status for APIM probes and operations.

    SECURITY NOTE: Block this endpoint from external access via APIM policy.

    Returns:
        Dict with full health metrics
    """
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())[:8]

    checks = {}
    critical_failures = []
    non_critical_failures = []

    # Critical: Database connectivity
    db_result = check_database_connectivity()
    checks["database"] = db_result.to_dict()
    if db_result.status == "fail":
        critical_failures.append("database")

    # Critical: Feature table
    table_result = check_feature_table()
    checks["feature_table"] = table_result.to_dict()
    if table_result.status == "fail":
        critical_failures.append("feature_table")

    # Non-critical: API modules
    modules_result = check_api_modules()
    checks["api_modules"] = modules_result.to_dict()
    if modules_result.status == "fail":
        non_critical_failures.append("api_modules")

    if critical_failures:
        status = HealthStatus.UNHEALTHY
    elif non_critical_failures:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'detailed',
            'request_id': request_id,
            'critical_failures': critical_failures,
            'non_critical_failures': non_critical_failures,
            'database_latency_ms': db_result.latency_ms
        }
    })

    identity = get_app_identity()
    return {
        "status": status.value,
        "app": identity["name"],
        "description": identity["description"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": checks,
        "total_duration_ms": round(total_duration, 2)
    }
