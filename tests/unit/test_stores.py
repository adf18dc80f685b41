"""Unit tests for schema provisioning, the vector store and app config."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from qdrant_client import QdrantClient
from sqlalchemy import inspect

from src.models.database import create_store_engine, normalize_database_url, open_engine
from src.models.setup_config import QdrantConfig
from src.models.vector import NotePayload, VectorPoint
from src.services.app_config_store import AppConfigStore
from src.services.errors import ConfigurationMissingError, InvalidConfigurationError, StoreError
from src.services.schema_service import TABLE_NAMES, provision_schema, schema_index_names
from src.services.vector_store import MISSING_VECTOR_STORE_MESSAGE, VectorStoreService

EMBEDDING_DIMENSIONS = 4
MALFORMED_DB_URL = "postgresql://u:p@host:notaport/db"


class TestNormalizeDatabaseUrl:
    def test_postgresql_scheme_uses_psycopg(self) -> None:
        assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"

    def test_postgres_alias(self) -> None:
        assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"

    def test_other_urls_untouched(self) -> None:
        assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"

    def test_engine_is_unpooled(self, db_url: str) -> None:
        engine = create_store_engine(db_url)
        try:
            assert type(engine.pool).__name__ == "NullPool"
        finally:
            engine.dispose()

    def test_malformed_url_is_a_configuration_error(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            with open_engine(MALFORMED_DB_URL):
                pass

    def test_unknown_dialect_is_a_configuration_error(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            create_store_engine("nosuchdb://u:p@host/db")


class TestProvisionSchema:
    def test_creates_tables_and_indexes(self, db_url: str) -> None:
        result = provision_schema(db_url)

        assert result.tables == TABLE_NAMES
        assert "idx_students_class" in result.indexes
        assert "idx_app_config_user_key" in result.indexes

        with open_engine(db_url) as engine:
            inspector = inspect(engine)
            assert set(TABLE_NAMES) <= set(inspector.get_table_names())
            index_names = {i["name"] for t in TABLE_NAMES for i in inspector.get_indexes(t)}
            assert set(schema_index_names()) <= index_names

    def test_is_idempotent(self, db_url: str) -> None:
        first = provision_schema(db_url)
        second = provision_schema(db_url)
        assert first == second

    def test_unreachable_database(self, tmp_path) -> None:
        with pytest.raises(StoreError) as exc_info:
            provision_schema(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
        assert exc_info.value.message == "Failed to setup database schema"
        assert exc_info.value.error

    def test_malformed_connection_string(self) -> None:
        with pytest.raises(InvalidConfigurationError) as exc_info:
            provision_schema(MALFORMED_DB_URL)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid database connection string"
        assert exc_info.value.error


class TestVectorStoreService:
    def _store(self, client: QdrantClient) -> VectorStoreService:
        return VectorStoreService(client, dimensions=EMBEDDING_DIMENSIONS)

    def test_creates_collection_once(self, qdrant_client: QdrantClient) -> None:
        store = self._store(qdrant_client)

        assert store.ensure_collection() == "student_notes"
        assert store.ensure_collection() == "student_notes"
        assert store.list_collections() == ["student_notes"]

        info = qdrant_client.get_collection("student_notes")
        assert info.config.params.vectors.size == EMBEDDING_DIMENSIONS

    def test_respects_configured_name_and_distance(self, qdrant_client: QdrantClient, settings) -> None:
        store = VectorStoreService.from_settings(qdrant_client, settings, collection_name="demo_notes")
        assert store.collection_name == "demo_notes"
        assert store.dimensions == EMBEDDING_DIMENSIONS
        assert store.distance.value == "Cosine"

    def test_upsert_and_search(self, qdrant_client: QdrantClient) -> None:
        store = self._store(qdrant_client)
        store.ensure_collection()

        near = VectorPoint(
            vector=[1.0, 0.0, 0.0, 0.0],
            payload=NotePayload(student_id=1, content="Great progress in algebra", date="2024-03-01"),
        )
        far = VectorPoint(
            vector=[0.0, 1.0, 0.0, 0.0],
            payload=NotePayload(student_id=2, content="Missed homework", content_type="concern",
                                date="2024-03-02"),
        )
        store.upsert_point(near)
        store.upsert_point(far)

        hits = store.search([0.9, 0.1, 0.0, 0.0], limit=2)
        assert [h.id for h in hits] == [near.id, far.id]
        assert hits[0].payload.content == "Great progress in algebra"

    def test_rejects_wrong_dimensions(self, qdrant_client: QdrantClient) -> None:
        store = self._store(qdrant_client)
        store.ensure_collection()
        point = VectorPoint(vector=[1.0, 2.0], payload=NotePayload(student_id=1, content="x", date="2024-01-01"))
        with pytest.raises(ValueError):
            store.upsert_point(point)

    def test_client_failure_becomes_store_error(self) -> None:
        client = MagicMock()
        client.collection_exists.side_effect = RuntimeError("connection refused")
        with pytest.raises(StoreError) as exc_info:
            VectorStoreService(client).ensure_collection()
        assert exc_info.value.message == "Failed to setup vector collection"
        assert "connection refused" in exc_info.value.error


class TestVectorStoreConnect:
    def test_uses_request_config(self, settings) -> None:
        factory = MagicMock()
        store = VectorStoreService.connect(
            factory, QdrantConfig(url="http://other:6333", api_key="k", collection_name="c1"), settings
        )
        factory.assert_called_once_with("http://other:6333", "k")
        assert store.collection_name == "c1"
        assert store.dimensions == EMBEDDING_DIMENSIONS

    def test_falls_back_to_settings(self, settings) -> None:
        factory = MagicMock()
        VectorStoreService.connect(factory, QdrantConfig(), settings)
        factory.assert_called_once_with("http://qdrant.test:6333", "test-key")

    def test_missing_url_never_builds_a_client(self, unconfigured_settings) -> None:
        factory = MagicMock()
        with pytest.raises(ConfigurationMissingError) as exc_info:
            VectorStoreService.connect(factory, QdrantConfig(), unconfigured_settings)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == MISSING_VECTOR_STORE_MESSAGE
        factory.assert_not_called()

    def test_client_construction_failure_becomes_store_error(self, settings) -> None:
        def factory(url, api_key=None):
            raise ValueError("Invalid IPv6 URL")

        with pytest.raises(StoreError) as exc_info:
            VectorStoreService.connect(factory, QdrantConfig(url="http://[bad"), settings)
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Failed to connect to vector database"
        assert exc_info.value.error == "Invalid IPv6 URL"


class TestAppConfigStore:
    def test_set_get_and_update(self, provisioned_db: str) -> None:
        store = AppConfigStore(provisioned_db)

        assert store.get_value("u1", "theme") is None
        store.set_value("u1", "theme", "dark")
        store.set_value("u1", "theme", "light")
        store.set_value("u2", "theme", "dark")

        assert store.get_value("u1", "theme") == "light"
        assert store.get_all("u1") == {"theme": "light"}
        assert store.get_all("u2") == {"theme": "dark"}

    def test_setup_complete_flag(self, provisioned_db: str) -> None:
        store = AppConfigStore(provisioned_db)
        assert not store.is_setup_complete("default")
        store.mark_setup_complete("default")
        assert store.is_setup_complete("default")
