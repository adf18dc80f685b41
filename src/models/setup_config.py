"""
Setup wizard configuration models.

Request bodies use the camelCase keys of the web client
(`connectionString`, `apiKey`, `collectionName`, `customEndpoint`).
Each provider slot is a tagged union on `provider`, so every provider
carries only the credentials it needs.
"""
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.config import Settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Databases
# =============================================================================

class NeonConfig(CamelModel):
    connection_string: str = ""
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class QdrantConfig(CamelModel):
    url: str = ""
    api_key: str = ""
    collection_name: Optional[str] = None


class DatabaseConfig(CamelModel):
    neon: NeonConfig
    qdrant: QdrantConfig


# =============================================================================
# AI providers
# =============================================================================

class OpenAITranscription(CamelModel):
    provider: Literal["openai"] = "openai"
    api_key: str = ""
    model: str = "whisper-1"


class GoogleTranscription(CamelModel):
    provider: Literal["google"]
    api_key: str = ""


class AzureTranscription(CamelModel):
    provider: Literal["azure"]
    api_key: str = ""


class CustomTranscription(CamelModel):
    provider: Literal["custom"]
    custom_endpoint: Optional[str] = None
    api_key: str = ""
    model: Optional[str] = None


TranscriptionConfig = Annotated[
    Union[OpenAITranscription, GoogleTranscription, AzureTranscription, CustomTranscription],
    Field(discriminator="provider"),
]


class OpenAILLM(CamelModel):
    provider: Literal["openai"]
    api_key: str = ""
    model: str = "gpt-3.5-turbo"


class AnthropicLLM(CamelModel):
    provider: Literal["anthropic"]
    api_key: str = ""
    model: str = "claude-3-haiku-20240307"


class GoogleLLM(CamelModel):
    provider: Literal["google"] = "google"
    api_key: str = ""
    model: str = "gemini-1.5-flash"


class CustomLLM(CamelModel):
    provider: Literal["custom"]
    custom_endpoint: Optional[str] = None
    api_key: str = ""
    model: Optional[str] = None


LLMConfig = Annotated[
    Union[OpenAILLM, AnthropicLLM, GoogleLLM, CustomLLM],
    Field(discriminator="provider"),
]


class OpenAIEmbeddings(CamelModel):
    provider: Literal["openai"] = "openai"
    api_key: str = ""
    model: str = "text-embedding-ada-002"


class SentenceTransformersEmbeddings(CamelModel):
    provider: Literal["sentence-transformers"]
    model: str = "all-MiniLM-L6-v2"


class CustomEmbeddings(CamelModel):
    provider: Literal["custom"]
    custom_endpoint: Optional[str] = None
    api_key: str = ""
    model: Optional[str] = None


EmbeddingsConfig = Annotated[
    Union[OpenAIEmbeddings, SentenceTransformersEmbeddings, CustomEmbeddings],
    Field(discriminator="provider"),
]


class APIConfig(CamelModel):
    transcription: TranscriptionConfig = Field(default_factory=OpenAITranscription)
    llm: LLMConfig = Field(default_factory=GoogleLLM)
    embeddings: EmbeddingsConfig = Field(default_factory=OpenAIEmbeddings)


# =============================================================================
# Settings adapters
# =============================================================================

def database_config_from_settings(settings: Settings) -> Optional[DatabaseConfig]:
    """DatabaseConfig from environment settings, or None when Postgres is unset."""
    if not settings.neon_database_url:
        return None
    return DatabaseConfig(
        neon=NeonConfig(connection_string=settings.neon_database_url),
        qdrant=QdrantConfig(
            url=settings.qdrant_url or "",
            api_key=settings.qdrant_api_key or "",
            collection_name=settings.qdrant_collection_name,
        ),
    )


def transcription_config_from_settings(settings: Settings) -> TranscriptionConfig:
    if settings.custom_transcription_endpoint or settings.transcription_provider == "custom":
        return CustomTranscription(
            provider="custom",
            custom_endpoint=settings.custom_transcription_endpoint,
            api_key=settings.custom_transcription_api_key or "",
        )
    return OpenAITranscription(
        api_key=settings.openai_api_key or "",
        model=settings.openai_whisper_model,
    )


def llm_config_from_settings(settings: Settings) -> LLMConfig:
    if settings.llm_provider == "openai":
        return OpenAILLM(provider="openai", api_key=settings.openai_api_key or "", model=settings.openai_model)
    if settings.llm_provider == "anthropic":
        return AnthropicLLM(
            provider="anthropic", api_key=settings.anthropic_api_key or "", model=settings.anthropic_model
        )
    return GoogleLLM(api_key=settings.google_gemini_api_key or "", model=settings.google_gemini_model)


def api_config_from_settings(settings: Settings) -> APIConfig:
    """APIConfig assembled from environment settings."""
    return APIConfig(
        transcription=transcription_config_from_settings(settings),
        llm=llm_config_from_settings(settings),
        embeddings=OpenAIEmbeddings(
            api_key=settings.openai_api_key or "",
            model=settings.openai_embeddings_model,
        ),
    )
