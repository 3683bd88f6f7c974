# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES RESULT ASSEMBLER
# ============================================================================
# STATUS: Standalone Module - Result ordering and truncation
# PURPOSE: Shape filtered feature sequences into the final response order/size
# LAST_REVIEWED: Current
# EXPORTS: OrderPolicy, assemble
# INTERFACES: Plain functions
# PYDANTIC_MODELS: GeographicFeature (input/output)
# DEPENDENCIES: enum, typing
# SCOPE: Post-filter ordering and limit enforcement
# PATTERNS: Strategy via enum
# ENTRY_POINTS: from map_features.assembler import assemble, OrderPolicy
# ============================================================================

"""
Result Assembler

Ordering is kept apart from filtering so each can be tested alone.

Policies:
    CREATED_DESC  newest first; equal created_at values are broken by id
                  descending so the order is fully deterministic
    UNORDERED     store order passed through untouched; callers must not
                  rely on it (search and bounds endpoints)

Truncation runs on the already-filtered sequence only.
"""

from enum import Enum
from typing import List, Optional, Sequence

from .models import GeographicFeature


class OrderPolicy(str, Enum):
    """How assembled results are ordered."""
    UNORDERED = "unordered"
    CREATED_DESC = "created_desc"


def assemble(
    filtered: Sequence[GeographicFeature],
    limit: Optional[int],
    order_policy: OrderPolicy = OrderPolicy.UNORDERED
) -> List[GeographicFeature]:
    """
    Order and truncate a filtered feature sequence.

    Args:
        filtered: Features that already passed every predicate
        limit: Maximum number of features to return (None = no truncation)
        order_policy: Ordering to apply before truncation

    Returns:
        New list with at most `limit` features
    """
    if limit is not None and limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit}")

    if order_policy == OrderPolicy.CREATED_DESC:
        ordered = sorted(
            filtered,
            key=lambda feature: (feature.created_at, feature.id),
            reverse=True
        )
    else:
        ordered = list(filtered)

    if limit is None:
        return ordered
    return ordered[:limit]
