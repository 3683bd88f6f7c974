"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials. The feature store is
forced to the in-memory backend.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'map_features', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables so configuration can be built.

    Configuration objects read env vars when first requested; safe defaults
    keep that from needing Azure infrastructure.
    """
    defaults = {
        "POSTGIS_HOST": "localhost",
        "POSTGIS_DATABASE": "testdb",
        "POSTGIS_USER": "tester",
        "POSTGIS_PASSWORD": "test-password",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)
    os.environ["MAP_FEATURES_STORE"] = "memory"


@pytest.fixture(autouse=True)
def reset_map_features_caches(set_minimal_env_vars):
    """Give every test a fresh configuration and an empty shared store."""
    from map_features.config import reset_map_features_config
    from map_features.repository import reset_feature_store

    reset_map_features_config()
    reset_feature_store()
    yield
    reset_map_features_config()
    reset_feature_store()
