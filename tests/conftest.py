"""Shared pytest fixtures for the setup service test suite.

A file-backed SQLite database stands in for Neon Postgres and Qdrant's
in-process ``:memory:`` client stands in for Qdrant Cloud.
"""

from __future__ import annotations

import random
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from qdrant_client import QdrantClient

from src.api.dependencies import get_client_factory, get_random
from src.api.main import app
from src.api.rate_limit import limiter
from src.config import Settings, get_settings
from src.models.setup_config import DatabaseConfig, NeonConfig, QdrantConfig
from src.services.schema_service import provision_schema

EMBEDDING_DIMENSIONS = 4


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Keep slowapi out of the way; tests hit the same routes repeatedly."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of an empty SQLite database file."""
    return f"sqlite:///{tmp_path / 'tracker.db'}"


@pytest.fixture
def provisioned_db(db_url: str) -> str:
    """A database with the schema already created."""
    provision_schema(db_url)
    return db_url


@pytest.fixture
def settings(db_url: str) -> Settings:
    return Settings(
        _env_file=None,
        neon_database_url=db_url,
        qdrant_url="http://qdrant.test:6333",
        qdrant_api_key="test-key",
        embedding_dimensions=EMBEDDING_DIMENSIONS,
        openai_api_key="sk-" + "a" * 48,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    """Settings with no stores configured."""
    return Settings(_env_file=None)


@pytest.fixture
def qdrant_client() -> QdrantClient:
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def client_factory(qdrant_client: QdrantClient):
    """Client factory that ignores its URL and returns the in-memory client."""
    def factory(url, api_key=None):
        return qdrant_client
    return factory


@pytest.fixture
def database_config(db_url: str) -> DatabaseConfig:
    return DatabaseConfig(
        neon=NeonConfig(connection_string=db_url),
        qdrant=QdrantConfig(url="http://qdrant.test:6333", api_key="test-key"),
    )


@pytest.fixture
def api_client(settings: Settings, client_factory) -> TestClient:
    """TestClient with settings, Qdrant and randomness overridden."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_client_factory] = lambda: client_factory
    app.dependency_overrides[get_random] = lambda: random.Random(42)
    yield TestClient(app)
    app.dependency_overrides.clear()
