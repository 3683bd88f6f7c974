# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES REPOSITORY
# ============================================================================
# STATUS: Standalone Repository - Feature store implementations
# PURPOSE: Persist and retrieve point features (PostgreSQL or in-memory)
# LAST_REVIEWED: Current
# EXPORTS: FeatureStore, InMemoryFeatureStore, PostgresFeatureStore,
#          get_feature_store, reset_feature_store, is_feature_table_available
# INTERFACES: FeatureStore (abstract base class)
# PYDANTIC_MODELS: GeographicFeature, NewFeatureRecord
# DEPENDENCIES: psycopg, psycopg.sql, threading, itertools, logging
# SOURCE: PostgreSQL table (configurable schema/table) or process memory
# SCOPE: Feature persistence and candidate retrieval
# VALIDATION: SQL injection prevention via psycopg.sql composition
# PATTERNS: Repository Pattern, Query Builder, SQL Composition
# ENTRY_POINTS: store = get_feature_store(); store.find_in_region(bounds)
# ============================================================================

"""
Map Features Repository

The query engine only needs three operations from a store:

    insert(record)          persist a NewFeatureRecord, assign id + created_at
    list_all()              every stored feature, unfiltered, no order promised
    find_in_region(bounds)  candidates for a region; must return exactly what
                            list_all() filtered with bounds.contains() would

Implementations:
- InMemoryFeatureStore: thread-safe list, used by tests and local development
- PostgresFeatureStore: psycopg 3, per-call connections, region filter pushed
  into SQL (OR-ed longitude test for antimeridian-crossing boxes)

Safety:
- All queries use psycopg.sql.SQL() composition (NO string concatenation)
- Dynamic identifiers via sql.Identifier()
- Values via parameterized queries (%s placeholders)
"""

import itertools
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from pydantic import ValidationError

from util_logger import ComponentType, LoggerFactory

from .bounds import BoundingBox, contains
from .config import MapFeaturesConfig, StoreBackend, get_map_features_config
from .exceptions import StoreError
from .models import FeatureType, GeographicFeature, NewFeatureRecord

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "FeatureRepository")

FEATURE_COLUMNS = (
    "id", "name", "description", "feature_type",
    "latitude", "longitude", "properties", "created_at"
)


class FeatureStore(ABC):
    """Read/write contract the query engine relies on."""

    @abstractmethod
    def insert(self, record: NewFeatureRecord) -> GeographicFeature:
        """Persist a new feature; the store assigns id and created_at."""

    @abstractmethod
    def list_all(self) -> List[GeographicFeature]:
        """Return every stored feature with no filter applied."""

    @abstractmethod
    def find_in_region(self, bounds: BoundingBox) -> List[GeographicFeature]:
        """Return the features whose location lies inside bounds."""


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class InMemoryFeatureStore(FeatureStore):
    """
    Process-local feature store.

    Thread Safety:
    - Id assignment and appends happen under one lock
    - Reads return snapshots, never the live list
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._lock = threading.Lock()
        self._records: List[GeographicFeature] = []
        self._ids = itertools.count(1)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def insert(self, record: NewFeatureRecord) -> GeographicFeature:
        with self._lock:
            feature = GeographicFeature(
                id=next(self._ids),
                created_at=self._clock(),
                **record.model_dump()
            )
            self._records.append(feature)

        logger.debug(f"Stored feature {feature.id} ('{feature.name}') in memory")
        return feature

    def list_all(self) -> List[GeographicFeature]:
        with self._lock:
            return list(self._records)

    def find_in_region(self, bounds: BoundingBox) -> List[GeographicFeature]:
        return [f for f in self.list_all() if contains(bounds, f.location)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# ============================================================================
# POSTGRESQL STORE
# ============================================================================

class PostgresFeatureStore(FeatureStore):
    """
    PostgreSQL feature store.

    Table layout (created by ensure_table()):
        id SERIAL PRIMARY KEY, name TEXT, description TEXT, feature_type TEXT,
        latitude DOUBLE PRECISION, longitude DOUBLE PRECISION,
        properties JSONB, created_at TIMESTAMPTZ DEFAULT now()

    Thread Safety:
    - Each method opens its own connection
    - Safe for concurrent requests in Azure Functions
    """

    def __init__(
        self,
        config: Optional[MapFeaturesConfig] = None,
        connection_string: Optional[str] = None
    ):
        """
        Initialize store with configuration.

        Args:
            config: Map Features configuration (uses singleton if not provided)
            connection_string: Explicit connection string (defaults to root config)
        """
        self.config = config or get_map_features_config()
        self._connection_string = connection_string
        self._table_ready = not self.config.auto_create_table
        self._ready_lock = threading.Lock()
        logger.info(
            f"PostgresFeatureStore initialized "
            f"(table: {self.config.feature_schema}.{self.config.feature_table})"
        )

    def _get_connection_string(self) -> str:
        if self._connection_string:
            return self._connection_string
        from config import get_postgres_connection_string
        return get_postgres_connection_string()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL connections.

        Yields:
            psycopg connection with dict_row factory
        """
        try:
            conn_string = self._get_connection_string()
        except ValueError as e:
            logger.error(f"Could not resolve database credentials: {e}")
            raise StoreError(f"Feature store credentials unavailable: {e}") from e

        conn = None
        try:
            conn = psycopg.connect(
                conn_string,
                row_factory=dict_row
            )
            yield conn
        except psycopg.Error as e:
            logger.error(f"Database error: {e}")
            raise StoreError(f"Feature store error: {e}") from e
        finally:
            if conn:
                conn.close()

    def _table(self) -> sql.Identifier:
        return sql.Identifier(self.config.feature_schema, self.config.feature_table)

    def regclass_name(self, context=None) -> str:
        """Quoted schema.table in the form to_regclass() resolves without case folding."""
        return self._table().as_string(context)

    def _to_feature(self, row) -> GeographicFeature:
        try:
            return GeographicFeature.model_validate(row)
        except ValidationError as e:
            raise StoreError(f"Stored feature {row.get('id')} is malformed: {e}") from e

    def _set_timeout(self, cur) -> None:
        cur.execute(
            sql.SQL("SET statement_timeout = {}").format(
                sql.Literal(f"{self.config.query_timeout_seconds}s")
            )
        )

    def _ensure_ready(self) -> None:
        if self._table_ready:
            return
        with self._ready_lock:
            if not self._table_ready:
                self.ensure_table()
                self._table_ready = True

    # ========================================================================
    # SCHEMA
    # ========================================================================

    def build_create_table_statements(self) -> List[sql.Composed]:
        """
        DDL for the feature table, idempotent.

        Returns:
            Statements to run in order
        """
        table = self._table()
        type_values = sql.SQL(", ").join(sql.Literal(t.value) for t in FeatureType)
        index_name = sql.Identifier(f"idx_{self.config.feature_table}_lat_lng")

        return [
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {schema}").format(
                schema=sql.Identifier(self.config.feature_schema)
            ),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {table} (
                    id SERIAL PRIMARY KEY,
                    name TEXT NOT NULL CHECK (btrim(name) <> ''),
                    description TEXT,
                    feature_type TEXT NOT NULL CHECK (feature_type IN ({types})),
                    latitude DOUBLE PRECISION NOT NULL CHECK (latitude BETWEEN -90 AND 90),
                    longitude DOUBLE PRECISION NOT NULL CHECK (longitude BETWEEN -180 AND 180),
                    properties JSONB,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(table=table, types=type_values),
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (latitude, longitude)").format(
                index=index_name,
                table=table
            )
        ]

    def ensure_table(self) -> None:
        """Create schema, table and coordinate index if missing."""
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                for statement in self.build_create_table_statements():
                    cur.execute(statement)
            conn.commit()
        logger.info(f"Feature table {self.config.feature_schema}.{self.config.feature_table} ready")

    # ========================================================================
    # QUERY BUILDING (SQL COMPOSITION)
    # ========================================================================

    def _select_columns(self) -> sql.Composed:
        return sql.SQL(", ").join(sql.Identifier(c) for c in FEATURE_COLUMNS)

    def build_region_clause(self, bounds: BoundingBox) -> Tuple[sql.Composed, List[Any]]:
        """
        Build WHERE clause equivalent to bounds.contains().

        Closed comparisons on every edge. A box crossing the antimeridian
        uses an OR between its two longitude edges.

        Returns:
            Tuple of (where_clause_sql, params_list)
        """
        latitude = sql.SQL("{col} >= %s AND {col} <= %s").format(col=sql.Identifier("latitude"))

        if bounds.crosses_antimeridian:
            longitude = sql.SQL("({col} >= %s OR {col} <= %s)")
        else:
            longitude = sql.SQL("{col} >= %s AND {col} <= %s")
        longitude = longitude.format(col=sql.Identifier("longitude"))

        clause = sql.SQL(" AND ").join([latitude, longitude])
        params = [bounds.south, bounds.north, bounds.west, bounds.east]
        return clause, params

    def build_select_query(self, bounds: Optional[BoundingBox] = None) -> Tuple[sql.Composed, List[Any]]:
        """
        Build SELECT for all features, optionally restricted to a region.

        Returns:
            Tuple of (query_sql, params_list)
        """
        if bounds is None:
            query = sql.SQL("SELECT {columns} FROM {table}").format(
                columns=self._select_columns(),
                table=self._table()
            )
            return query, []

        where_clause, params = self.build_region_clause(bounds)
        query = sql.SQL("SELECT {columns} FROM {table} WHERE {where_clause}").format(
            columns=self._select_columns(),
            table=self._table(),
            where_clause=where_clause
        )
        return query, params

    def build_insert_query(self, record: NewFeatureRecord) -> Tuple[sql.Composed, Tuple[Any, ...]]:
        insert_columns = ("name", "description", "feature_type", "latitude", "longitude", "properties")
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING {returning}").format(
            table=self._table(),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in insert_columns),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in insert_columns),
            returning=self._select_columns()
        )
        params = (
            record.name,
            record.description,
            record.feature_type.value,
            record.latitude,
            record.longitude,
            Jsonb(record.properties) if record.properties is not None else None
        )
        return query, params

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def insert(self, record: NewFeatureRecord) -> GeographicFeature:
        self._ensure_ready()
        query, params = self.build_insert_query(record)

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                self._set_timeout(cur)
                cur.execute(query, params)
                row = cur.fetchone()
            conn.commit()

        feature = self._to_feature(row)
        logger.info(f"Stored feature {feature.id} ('{feature.name}')")
        return feature

    def list_all(self) -> List[GeographicFeature]:
        return self._fetch(None)

    def find_in_region(self, bounds: BoundingBox) -> List[GeographicFeature]:
        return self._fetch(bounds)

    def _fetch(self, bounds: Optional[BoundingBox]) -> List[GeographicFeature]:
        self._ensure_ready()
        query, params = self.build_select_query(bounds)

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                self._set_timeout(cur)
                cur.execute(query, params)
                rows = cur.fetchall()

        logger.debug(f"Fetched {len(rows)} candidate features (bounds: {bounds})")
        return [self._to_feature(row) for row in rows]


# ============================================================================
# FACTORY & AVAILABILITY
# ============================================================================

_store_cache: Optional[FeatureStore] = None
_store_lock = threading.Lock()

# Cache for table availability (reset on cold start)
_feature_table_available: Optional[bool] = None


def get_feature_store(config: Optional[MapFeaturesConfig] = None) -> FeatureStore:
    """
    Get the process-wide feature store for the configured backend.

    The in-memory backend must be shared so that features created through one
    trigger are visible to the others.
    """
    global _store_cache

    if _store_cache is None:
        with _store_lock:
            if _store_cache is None:
                config = config or get_map_features_config()
                if config.store_backend == StoreBackend.MEMORY:
                    _store_cache = InMemoryFeatureStore()
                    logger.info("Using in-memory feature store")
                else:
                    _store_cache = PostgresFeatureStore(config)

    return _store_cache


def reset_feature_store() -> None:
    """Drop the cached store and availability result (tests, config reloads)."""
    global _store_cache, _feature_table_available
    with _store_lock:
        _store_cache = None
    _feature_table_available = None


def is_feature_table_available(force_check: bool = False) -> bool:
    """
    Check that the feature table can be queried.

    Uses cached result for performance (table existence doesn't change
    during function app lifetime). Use force_check=True to refresh.

    Returns:
        True for the memory backend, or when the PostgreSQL table exists
        (creating it first when auto-create is enabled)
    """
    global _feature_table_available

    if _feature_table_available is not None and not force_check:
        return _feature_table_available

    store = get_feature_store()
    if not isinstance(store, PostgresFeatureStore):
        _feature_table_available = True
        return True

    config = store.config
    try:
        if config.auto_create_table:
            store._ensure_ready()

        with store._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT to_regclass(%s) AS oid",
                    (store.regclass_name(conn),)
                )
                result = cur.fetchone()

        _feature_table_available = bool(result and result["oid"])
        if not _feature_table_available:
            logger.warning(f"Feature table '{config.feature_schema}.{config.feature_table}' does not exist")
        return _feature_table_available

    except StoreError as e:
        logger.error(f"Error checking feature table availability: {e}")
        _feature_table_available = False
        return False
