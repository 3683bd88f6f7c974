# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - Map Features API
# PURPOSE: Self-contained configuration management for the Map Features API
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesConfig, StoreBackend, get_map_features_config
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: MapFeaturesConfig
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables (connection settings live in root config.py)
# SCOPE: Map Features API configuration only
# VALIDATION: Pydantic v2 validation
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from map_features.config import get_map_features_config
# ============================================================================

"""
Map Features API Configuration

Environment Variables:
    Optional:
    - MAP_FEATURES_STORE: Feature store backend, "postgres" or "memory" (default: postgres)
    - MAP_FEATURES_SCHEMA: Schema holding the feature table (default: "geo")
    - MAP_FEATURES_TABLE: Feature table name (default: "geographic_features")
    - MAP_FEATURES_AUTO_CREATE: Create the feature table on first use (default: false)
    - MAP_FEATURES_QUERY_TIMEOUT: Statement timeout in seconds (default: 30)
    - MAP_DEFAULT_NORTH / SOUTH / EAST / WEST: Default map bounds (default: France)
    - MAP_CENTER_LATITUDE / MAP_CENTER_LONGITUDE: Initial map center (default: France)
    - MAP_DEFAULT_ZOOM: Initial zoom level (default: 6)

PostgreSQL connection settings (POSTGIS_HOST, ...) are read by the root
config module, shared with the health checks.
"""

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreBackend(str, Enum):
    """Feature store implementations."""
    POSTGRES = "postgres"
    MEMORY = "memory"


class MapFeaturesConfig(BaseModel):
    """Configuration for the Map Features API."""

    # Environment values arrive through default_factory
    model_config = ConfigDict(validate_default=True)

    # Store
    store_backend: StoreBackend = Field(
        default_factory=lambda: os.getenv("MAP_FEATURES_STORE", "postgres").lower(),
        description="Feature store backend (postgres or memory)"
    )
    feature_schema: str = Field(
        default_factory=lambda: os.getenv("MAP_FEATURES_SCHEMA", "geo"),
        description="PostgreSQL schema containing the feature table"
    )
    feature_table: str = Field(
        default_factory=lambda: os.getenv("MAP_FEATURES_TABLE", "geographic_features"),
        description="Feature table name"
    )
    auto_create_table: bool = Field(
        default_factory=lambda: os.getenv("MAP_FEATURES_AUTO_CREATE", "false").lower() == "true",
        description="Create the feature table if it does not exist"
    )
    query_timeout_seconds: int = Field(
        default_factory=lambda: int(os.getenv("MAP_FEATURES_QUERY_TIMEOUT", "30")),
        ge=1,
        le=300,
        description="Maximum query execution time in seconds"
    )

    # Default map view (metropolitan France)
    default_north: float = Field(
        default_factory=lambda: float(os.getenv("MAP_DEFAULT_NORTH", "51.1")),
        ge=-90,
        le=90
    )
    default_south: float = Field(
        default_factory=lambda: float(os.getenv("MAP_DEFAULT_SOUTH", "41.3")),
        ge=-90,
        le=90
    )
    default_east: float = Field(
        default_factory=lambda: float(os.getenv("MAP_DEFAULT_EAST", "9.6")),
        ge=-180,
        le=180
    )
    default_west: float = Field(
        default_factory=lambda: float(os.getenv("MAP_DEFAULT_WEST", "-5.1")),
        ge=-180,
        le=180
    )
    center_latitude: float = Field(
        default_factory=lambda: float(os.getenv("MAP_CENTER_LATITUDE", "46.2276")),
        ge=-90,
        le=90
    )
    center_longitude: float = Field(
        default_factory=lambda: float(os.getenv("MAP_CENTER_LONGITUDE", "2.2137")),
        ge=-180,
        le=180
    )
    default_zoom: int = Field(
        default_factory=lambda: int(os.getenv("MAP_DEFAULT_ZOOM", "6")),
        ge=0,
        le=22
    )

    @field_validator("feature_schema", "feature_table")
    @classmethod
    def validate_identifier(cls, v: str, info) -> str:
        """Ensure schema and table names are set."""
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        return v


# Singleton instance cache
_config_cache: Optional[MapFeaturesConfig] = None


def get_map_features_config() -> MapFeaturesConfig:
    """
    Get singleton Map Features configuration instance.

    Returns:
        Cached configuration instance
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = MapFeaturesConfig()

    return _config_cache


def reset_map_features_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config_cache
    _config_cache = None
