# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for PostgreSQL connection with managed identity support
# LAST_REVIEWED: Current
# EXPORTS: AppConfig, get_app_config, get_postgres_connection_string
# DEPENDENCIES: pydantic-settings, azure-identity
# SOURCE: Environment variables, Azure managed identity
# PATTERNS: Singleton pattern for config, lazy initialization for credentials
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration management for the map features app:
- PostgreSQL connection string generation
- Support for both password and managed identity authentication
- Environment-based configuration with validation

Authentication Modes:
    1. Password-based (local development):
       - Requires: POSTGIS_HOST, POSTGIS_USER, POSTGIS_PASSWORD
       - Use when: USE_MANAGED_IDENTITY=false or not set

    2. Managed Identity (Azure production):
       - Requires: System-assigned managed identity enabled
       - Use when: USE_MANAGED_IDENTITY=true
       - Eliminates need for password storage

Usage:
    from config import get_postgres_connection_string

    conn_string = get_postgres_connection_string()
    conn = psycopg.connect(conn_string)
"""

import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

POSTGRES_AAD_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        postgis_host: PostgreSQL server hostname
        postgis_port: PostgreSQL server port
        postgis_database: Database name
        postgis_user: Database username
        postgis_password: Database password (optional with managed identity)
        postgis_sslmode: libpq sslmode (require for Azure PostgreSQL)
        use_managed_identity: Enable Azure managed identity authentication
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # PostgreSQL Connection
    postgis_host: str = Field(..., description="PostgreSQL hostname")
    postgis_port: int = Field(default=5432, description="PostgreSQL port")
    postgis_database: str = Field(..., description="Database name")
    postgis_user: str = Field(..., description="Database username")
    postgis_sslmode: str = Field(default="require", description="libpq sslmode")

    # Authentication Mode (declared before the password so the validator can see it)
    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication"
    )
    postgis_password: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="Database password"
    )

    @field_validator('postgis_password')
    @classmethod
    def validate_password(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Ensure password is provided when not using managed identity."""
        use_managed_identity = info.data.get('use_managed_identity', False)
        if not use_managed_identity and not v:
            raise ValueError(
                "POSTGIS_PASSWORD is required when USE_MANAGED_IDENTITY=false"
            )
        return v


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


# ============================================================================
# PostgreSQL Connection String Generation
# ============================================================================

def get_postgres_connection_string() -> str:
    """
    Generate PostgreSQL connection string based on authentication mode.

    Returns:
        str: PostgreSQL connection string (psycopg format)

    Raises:
        ValueError: If required configuration is missing or token acquisition fails
    """
    config = get_app_config()

    if config.use_managed_identity:
        return _build_managed_identity_connection_string(config)
    else:
        return _build_password_connection_string(config)


def _build_connection_string(config: AppConfig, secret: str) -> str:
    # URL-encode secret to handle special characters (e.g., @ symbols)
    return (
        f"postgresql://{config.postgis_user}:{quote_plus(secret)}"
        f"@{config.postgis_host}:{config.postgis_port}"
        f"/{config.postgis_database}"
        f"?sslmode={config.postgis_sslmode}"
    )


def _build_password_connection_string(config: AppConfig) -> str:
    """
    Build password-based connection string.

    Args:
        config: Application configuration

    Returns:
        str: Connection string with embedded password
    """
    logger.info(f"Building password-based connection string for {config.postgis_host}")
    return _build_connection_string(config, config.postgis_password)


def _build_managed_identity_connection_string(config: AppConfig) -> str:
    """
    Build managed identity connection string with Azure AD token.

    Args:
        config: Application configuration

    Returns:
        str: Connection string with Azure AD token as password

    Note:
        Token is acquired synchronously and has limited lifetime (~1 hour).
        Connections are per-request, so a fresh token is fetched each time.
    """
    from azure.core.exceptions import ClientAuthenticationError
    from azure.identity import DefaultAzureCredential

    logger.info(f"Building managed identity connection string for {config.postgis_host}")

    try:
        credential = DefaultAzureCredential()
        token = credential.get_token(POSTGRES_AAD_SCOPE)
    except ClientAuthenticationError as e:
        logger.error(f"Failed to acquire managed identity token: {e}")
        raise ValueError(
            f"Managed identity authentication failed: {e}. "
            "Ensure system-assigned managed identity is enabled and has database permissions."
        ) from e

    logger.info("Successfully acquired managed identity token")
    return _build_connection_string(config, token.token)

