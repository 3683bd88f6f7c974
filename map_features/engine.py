# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES QUERY ENGINE
# ============================================================================
# STATUS: Standalone Module - Feature filtering engine
# PURPOSE: Combine bounds, type and text predicates into one filtering pass
# LAST_REVIEWED: Current
# EXPORTS: FeatureQuery, Predicate, build_predicates, filter_features, QueryEngine
# INTERFACES: FeatureStore (injected)
# PYDANTIC_MODELS: GeographicFeature
# DEPENDENCIES: dataclasses, threading, typing, logging
# SOURCE: Candidates from FeatureStore.list_all / find_in_region
# SCOPE: In-process filtering - stateless, safe for concurrent queries
# PATTERNS: Composable predicates, Dependency Injection
# ENTRY_POINTS: engine = QueryEngine(store); features = engine.query_features(query)
# ============================================================================

"""
Feature Query Engine

A FeatureQuery is turned into a list of independent predicates, one per
criterion that is present. A candidate qualifies when every predicate
accepts it, so the result does not depend on predicate order.

Flow:
    1. Fetch candidates (find_in_region when bounds are set, list_all otherwise)
    2. Evaluate the full predicate list against every candidate
    3. Hand the matches to the result assembler for ordering and truncation

Truncation never happens before step 2 has seen the whole candidate set.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional

from .assembler import OrderPolicy, assemble
from .bounds import BoundingBox, contains
from .exceptions import QueryCancelledError
from .models import FeatureType, GeographicFeature
from .repository import FeatureStore

logger = logging.getLogger(__name__)

Predicate = Callable[[GeographicFeature], bool]


@dataclass(frozen=True)
class FeatureQuery:
    """
    Filtering criteria. Every field except limit is optional; absent
    criteria accept every candidate.

    Attributes:
        limit: Upper bound on returned features (positive)
        text_query: Case-insensitive substring of name or description
        feature_type: Exact single-type match
        feature_types: Type membership; empty or None means no restriction
        bounds: Region the feature location must fall in
    """
    limit: int
    text_query: Optional[str] = None
    feature_type: Optional[FeatureType] = None
    feature_types: Optional[FrozenSet[FeatureType]] = None
    bounds: Optional[BoundingBox] = None

    def __post_init__(self):
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")


# ============================================================================
# PREDICATES
# ============================================================================

def text_predicate(text_query: str) -> Predicate:
    needle = text_query.lower()

    def matches(feature: GeographicFeature) -> bool:
        if needle in feature.name.lower():
            return True
        return feature.description is not None and needle in feature.description.lower()

    return matches


def type_predicate(feature_type: FeatureType) -> Predicate:
    def matches(feature: GeographicFeature) -> bool:
        return feature.feature_type == feature_type

    return matches


def type_set_predicate(feature_types: FrozenSet[FeatureType]) -> Predicate:
    def matches(feature: GeographicFeature) -> bool:
        return feature.feature_type in feature_types

    return matches


def bounds_predicate(bounds: BoundingBox) -> Predicate:
    def matches(feature: GeographicFeature) -> bool:
        return contains(bounds, feature.location)

    return matches


def build_predicates(query: FeatureQuery) -> List[Predicate]:
    """
    Build one predicate per criterion present in the query.

    Returns:
        List of independent predicates (empty when nothing is filtered)
    """
    predicates: List[Predicate] = []

    if query.text_query is not None:
        predicates.append(text_predicate(query.text_query))
    if query.feature_type is not None:
        predicates.append(type_predicate(query.feature_type))
    if query.feature_types:
        predicates.append(type_set_predicate(query.feature_types))
    if query.bounds is not None:
        predicates.append(bounds_predicate(query.bounds))

    return predicates


def filter_features(
    candidates: Iterable[GeographicFeature],
    predicates: List[Predicate],
    cancel_event: Optional[threading.Event] = None
) -> List[GeographicFeature]:
    """
    Keep candidates accepted by every predicate.

    Args:
        candidates: Full candidate set from the store
        predicates: Independent predicates, AND-ed together
        cancel_event: Checked before each record; set it to abort

    Returns:
        Matching features in candidate order

    Raises:
        QueryCancelledError: If cancel_event is set mid-scan
    """
    matched: List[GeographicFeature] = []

    for feature in candidates:
        if cancel_event is not None and cancel_event.is_set():
            raise QueryCancelledError("Feature query cancelled")
        if all(predicate(feature) for predicate in predicates):
            matched.append(feature)

    return matched


# ============================================================================
# ENGINE
# ============================================================================

class QueryEngine:
    """
    Runs feature queries against an injected store.

    Holds no per-query state; a single instance can serve concurrent calls.
    Store errors are not caught.
    """

    def __init__(self, store: FeatureStore):
        self.store = store

    def fetch_candidates(self, query: FeatureQuery) -> List[GeographicFeature]:
        if query.bounds is not None:
            return self.store.find_in_region(query.bounds)
        return self.store.list_all()

    def query_features(
        self,
        query: FeatureQuery,
        order_policy: OrderPolicy = OrderPolicy.UNORDERED,
        cancel_event: Optional[threading.Event] = None
    ) -> List[GeographicFeature]:
        """
        Select features matching every criterion of the query.

        Args:
            query: Filtering criteria and limit
            order_policy: Result ordering (UNORDERED for search/bounds calls)
            cancel_event: Optional cooperative cancellation flag

        Returns:
            At most query.limit matching features
        """
        candidates = self.fetch_candidates(query)
        predicates = build_predicates(query)
        matched = filter_features(candidates, predicates, cancel_event)
        results = assemble(matched, query.limit, order_policy)

        logger.debug(
            f"Query matched {len(matched)}/{len(candidates)} candidates, "
            f"returning {len(results)} (limit {query.limit})"
        )

        return results
