"""
FastAPI dependencies shared by the routers.

Tests replace these through `app.dependency_overrides`.
"""
import random
from typing import Optional

from fastapi import Depends

from src.config import Settings, get_settings
from src.models.setup_config import (
    QdrantConfig,
    llm_config_from_settings,
    transcription_config_from_settings,
)
from src.services.chat_service import ChatService
from src.services.connection_tester import ProviderTester
from src.services.errors import ConfigurationMissingError
from src.services.transcription_service import TranscriptionService
from src.services.vector_store import ClientFactory, VectorStoreService, create_qdrant_client

MISSING_DATABASE_MESSAGE = (
    "Database configuration not found. Please provide connectionString "
    "in request body or complete setup first."
)


def get_client_factory() -> ClientFactory:
    """Factory building Qdrant clients from (url, api_key)."""
    return create_qdrant_client


def get_random() -> Optional[random.Random]:
    """Random source for sample data; None means a fresh unseeded one."""
    return None


def get_provider_tester() -> ProviderTester:
    return ProviderTester()


def get_transcription_service(settings: Settings = Depends(get_settings)) -> TranscriptionService:
    return TranscriptionService(transcription_config_from_settings(settings))


def get_chat_service(settings: Settings = Depends(get_settings)) -> ChatService:
    return ChatService(
        llm_config_from_settings(settings),
        connection_string=settings.neon_database_url,
        user_id=settings.setup_user_id,
    )


def get_vector_store(
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> VectorStoreService:
    """Vector store for the configured Qdrant collection."""
    return VectorStoreService.connect(client_factory, QdrantConfig(), settings)


def resolve_connection_string(requested: Optional[str], settings: Settings) -> str:
    """Prefer the connection string from the request, then settings."""
    connection_string = requested or settings.neon_database_url
    if not connection_string:
        raise ConfigurationMissingError(MISSING_DATABASE_MESSAGE)
    return connection_string
