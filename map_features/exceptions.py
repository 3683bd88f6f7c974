# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES EXCEPTIONS
# ============================================================================
# STATUS: Standalone Module - Map Features error taxonomy
# PURPOSE: Distinguish rejected input from storage failures
# LAST_REVIEWED: Current
# EXPORTS: ValidationErrorCode, FeatureValidationError, StoreError, QueryCancelledError
# INTERFACES: Standard Python exception hierarchy
# PYDANTIC_MODELS: None
# DEPENDENCIES: enum (standard library only)
# SCOPE: Raised by bounds, service and repository layers
# PATTERNS: Exception hierarchy for error categorization
# ENTRY_POINTS: from map_features.exceptions import FeatureValidationError
# ============================================================================

"""
Map Features Exception Hierarchy

Separates three kinds of failure:
1. Input rejected before it reaches the store (FeatureValidationError)
2. Store failures, propagated unchanged by the engine (StoreError)
3. Cooperative cancellation of a running query (QueryCancelledError)

FeatureValidationError subclasses ValueError so HTTP triggers can treat it
like any other bad-request input.
"""

from enum import Enum
from typing import Optional


class ValidationErrorCode(str, Enum):
    """Reason an input was rejected."""
    EMPTY_NAME = "EmptyName"
    COORDINATE_OUT_OF_RANGE = "CoordinateOutOfRange"
    INVALID_FEATURE_TYPE = "InvalidFeatureType"
    INVALID_BOUNDS = "InvalidBounds"


class FeatureValidationError(ValueError):
    """
    Raised when caller input is rejected.

    Attributes:
        code: ValidationErrorCode identifying the failed rule
        message: Human-readable explanation
    """

    def __init__(self, code: ValidationErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or code.value
        super().__init__(f"{code.value}: {self.message}")


class StoreError(Exception):
    """
    Feature store operation failed.

    Examples:
        - Connection refused or lost
        - Statement timeout
        - Constraint violation on insert

    The query engine performs no retry or recovery for these.
    """
    pass


class QueryCancelledError(Exception):
    """A query was cancelled between record evaluations."""
    pass
