"""
Feature store tests.

In-memory store behaviour, and PostgreSQL query composition rendered with
psycopg.sql without a database connection.
"""

import random
import threading
from datetime import datetime, timezone

import psycopg
import pytest
from psycopg.types.json import Jsonb

from map_features.bounds import BoundingBox, contains
from map_features.config import MapFeaturesConfig, StoreBackend
from map_features.exceptions import StoreError
from map_features.models import CreateFeatureInput, FeatureType, build_feature_record
from map_features.repository import (
    InMemoryFeatureStore,
    PostgresFeatureStore,
    get_feature_store,
    is_feature_table_available
)
from tests.factories.feature_factories import make_create_input, ticking_clock


class _FakeCursor:
    def __init__(self, rows):
        self._rows = rows

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        pass

    def fetchall(self):
        return self._rows


class _FakeConnection:
    def __init__(self, rows):
        self._rows = rows

    def cursor(self):
        return _FakeCursor(self._rows)

    def close(self):
        pass


def _record(**overrides):
    return build_feature_record(CreateFeatureInput(**make_create_input(**overrides)))


@pytest.fixture
def postgres_store():
    config = MapFeaturesConfig(
        store_backend=StoreBackend.POSTGRES,
        feature_schema="geo",
        feature_table="geographic_features"
    )
    return PostgresFeatureStore(config, connection_string="postgresql://tester:pw@localhost/testdb")


class TestInMemoryStore:
    def test_insert_assigns_id_and_timestamp(self):
        clock = ticking_clock()
        store = InMemoryFeatureStore(clock=clock)
        first = store.insert(_record())
        second = store.insert(_record())

        assert first.id != second.id
        assert second.created_at > first.created_at

    def test_insert_keeps_record_fields(self):
        store = InMemoryFeatureStore()
        record = _record(name="Mont Blanc", feature_type="natural", latitude=45.8326, longitude=6.8652)
        feature = store.insert(record)

        assert feature.name == "Mont Blanc"
        assert feature.feature_type is FeatureType.NATURAL
        assert (feature.latitude, feature.longitude) == (45.8326, 6.8652)
        assert feature.properties == record.properties

    def test_list_all_returns_snapshot(self):
        store = InMemoryFeatureStore()
        store.insert(_record())
        snapshot = store.list_all()
        store.insert(_record())

        assert len(snapshot) == 1
        assert len(store) == 2

    def test_concurrent_inserts_get_unique_ids(self):
        store = InMemoryFeatureStore()

        def insert_many():
            for _ in range(25):
                store.insert(_record())

        threads = [threading.Thread(target=insert_many) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        ids = [f.id for f in store.list_all()]
        assert len(ids) == 100
        assert len(set(ids)) == 100

    @pytest.mark.parametrize("bounds", [
        BoundingBox(north=50, south=40, east=10, west=-10),
        BoundingBox(north=30, south=-30, east=-150, west=150),
        BoundingBox(north=90, south=-90, east=180, west=-180),
    ])
    def test_find_in_region_equals_filtered_list_all(self, bounds):
        store = InMemoryFeatureStore()
        for _ in range(60):
            store.insert(_record(
                latitude=round(random.uniform(-89, 89), 3),
                longitude=round(random.uniform(-179, 179), 3)
            ))

        expected = {f.id for f in store.list_all() if contains(bounds, f.location)}
        assert {f.id for f in store.find_in_region(bounds)} == expected


class TestPostgresQueryComposition:
    def test_select_all_has_no_where(self, postgres_store):
        query, params = postgres_store.build_select_query()
        rendered = query.as_string(None)

        assert '"geo"."geographic_features"' in rendered
        assert "WHERE" not in rendered
        assert params == []

    def test_normal_box_uses_and(self, postgres_store):
        bounds = BoundingBox(north=51.1, south=41.3, east=9.6, west=-5.1)
        clause, params = postgres_store.build_region_clause(bounds)
        rendered = clause.as_string(None)

        assert " OR " not in rendered
        assert '"longitude" >= %s AND "longitude" <= %s' in rendered
        assert params == [41.3, 51.1, -5.1, 9.6]

    def test_wrapping_box_uses_or(self, postgres_store):
        bounds = BoundingBox(north=65, south=55, east=-170, west=170)
        clause, params = postgres_store.build_region_clause(bounds)
        rendered = clause.as_string(None)

        assert '("longitude" >= %s OR "longitude" <= %s)' in rendered
        assert '"latitude" >= %s AND "latitude" <= %s' in rendered
        assert params == [55, 65, 170, -170]

    def test_region_select_has_where(self, postgres_store):
        query, params = postgres_store.build_select_query(
            BoundingBox(north=1, south=0, east=1, west=0)
        )
        assert "WHERE" in query.as_string(None)
        assert len(params) == 4

    def test_insert_wraps_properties_as_jsonb(self, postgres_store):
        record = _record(properties={"population": "513275"})
        query, params = postgres_store.build_insert_query(record)

        assert "RETURNING" in query.as_string(None)
        assert params[0] == record.name
        assert params[2] == record.feature_type.value
        assert isinstance(params[5], Jsonb)

    def test_insert_without_properties(self, postgres_store):
        record = _record(properties=None)
        _, params = postgres_store.build_insert_query(record)
        assert params[5] is None

    def test_hostile_table_name_is_quoted(self):
        config = MapFeaturesConfig(
            store_backend=StoreBackend.POSTGRES,
            feature_table='features"; DROP TABLE users; --'
        )
        store = PostgresFeatureStore(config, connection_string="postgresql://localhost/testdb")
        rendered = store.build_select_query()[0].as_string(None)

        assert '"features""; DROP TABLE users; --"' in rendered

    def test_regclass_name_keeps_case(self):
        config = MapFeaturesConfig(
            store_backend=StoreBackend.POSTGRES,
            feature_schema="geo",
            feature_table="GeoFeatures"
        )
        store = PostgresFeatureStore(config, connection_string="postgresql://localhost/testdb")

        assert store.regclass_name() == '"geo"."GeoFeatures"'


class TestPostgresErrors:
    def test_connection_error_becomes_store_error(self, postgres_store, monkeypatch):
        def refuse(*args, **kwargs):
            raise psycopg.OperationalError("connection refused")

        monkeypatch.setattr(psycopg, "connect", refuse)

        with pytest.raises(StoreError) as exc_info:
            postgres_store.list_all()
        assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)

    def test_credential_failure_becomes_store_error(self, monkeypatch):
        import config as app_config

        def no_token():
            raise ValueError("Managed identity authentication failed")

        monkeypatch.setattr(app_config, "get_postgres_connection_string", no_token)
        store = PostgresFeatureStore(MapFeaturesConfig(store_backend=StoreBackend.POSTGRES))

        with pytest.raises(StoreError) as exc_info:
            store.list_all()
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_malformed_stored_row_becomes_store_error(self, postgres_store, monkeypatch):
        row = {
            "id": 7,
            "name": "Lyon",
            "description": None,
            "feature_type": "city",
            "latitude": 45.76,
            "longitude": 4.83,
            "properties": {"population": 522000},
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        monkeypatch.setattr(psycopg, "connect", lambda *args, **kwargs: _FakeConnection([row]))

        with pytest.raises(StoreError, match="Stored feature 7"):
            postgres_store.list_all()


class TestStoreFactory:
    def test_memory_backend_selected(self):
        assert isinstance(get_feature_store(), InMemoryFeatureStore)

    def test_store_is_shared(self):
        assert get_feature_store() is get_feature_store()

    def test_memory_table_always_available(self):
        assert is_feature_table_available() is True
