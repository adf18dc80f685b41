"""
Configuration management for the Student Tracker setup service.

Supports environment variables and .env files. The settings object is
frozen: routes receive it through dependency injection and never mutate it.
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Student Tracker"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Relational store (Neon Postgres)
    neon_database_url: Optional[str] = None

    # Vector store (Qdrant)
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    qdrant_collection_name: str = "student_notes"
    embedding_dimensions: int = 1536  # text-embedding-3-small / ada-002
    vector_distance: str = "Cosine"  # Cosine, Euclid, Dot or Manhattan

    # Transcription
    transcription_provider: str = "openai"  # "openai" or "custom"
    openai_api_key: Optional[str] = None
    openai_whisper_model: str = "whisper-1"
    custom_transcription_endpoint: Optional[str] = None
    custom_transcription_api_key: Optional[str] = None

    # LLM
    llm_provider: str = "google"  # "openai", "anthropic", "google" or "custom"
    google_gemini_api_key: Optional[str] = None
    google_gemini_model: str = "gemini-1.5-flash"
    openai_model: str = "gpt-3.5-turbo"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-haiku-20240307"

    # Embeddings
    openai_embeddings_model: str = "text-embedding-3-small"

    # Setup
    setup_user_id: str = "default"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["*"]
    rate_limit_enabled: bool = True

    @property
    def has_database(self) -> bool:
        return bool(self.neon_database_url)

    @property
    def has_vector_store(self) -> bool:
        return bool(self.qdrant_url and self.qdrant_api_key)

    @property
    def llm_api_key(self) -> Optional[str]:
        """Key for the configured LLM provider, if any."""
        return {
            "google": self.google_gemini_api_key,
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }.get(self.llm_provider)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
