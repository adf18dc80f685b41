"""
Pydantic schemas for API request/response models.
"""
from typing import Any, Optional
from pydantic import BaseModel, Field

from src.models.setup_config import APIConfig, CamelModel, NeonConfig, QdrantConfig


class SchemaDetails(BaseModel):
    """What schema provisioning guarantees exists."""
    tables_created: list[str]
    indexes_created: list[str]
    qdrant_collection: str


class SchemaSetupResponse(BaseModel):
    """API response for schema provisioning."""
    success: bool = True
    message: str
    details: SchemaDetails


class SampleDataRequest(CamelModel):
    """Optional connection override; falls back to configured settings."""
    connection_string: Optional[str] = None


class SampleDataResponse(BaseModel):
    """API response for a sample data load."""
    success: bool
    count: int
    message: str
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body returned for failed setup calls."""
    success: bool = False
    message: str
    error: Optional[str] = None


class CheckResult(BaseModel):
    """One validation or connection check."""
    success: bool
    message: str
    details: Optional[Any] = None


class ValidateRequest(CamelModel):
    """Credentials to validate; any subset may be given."""
    neon: Optional[NeonConfig] = None
    qdrant: Optional[QdrantConfig] = None
    api: Optional[APIConfig] = None


class ValidateResponse(BaseModel):
    success: bool
    results: dict[str, CheckResult]


class ConnectionCheckResponse(BaseModel):
    """API response for database or provider connection tests."""
    success: bool
    message: str
    results: dict[str, CheckResult]


class TranscriptionResponse(BaseModel):
    success: bool = True
    transcription: str
    request_id: str = Field(serialization_alias="requestId")


class NoteSearchRequest(BaseModel):
    vector: list[float]
    limit: int = Field(default=5, ge=1, le=100)


class ChatRequest(CamelModel):
    """A question for the assistant; `isAudio` marks transcribed recordings."""
    message: Optional[Any] = None
    is_audio: bool = False


class ChatResponse(BaseModel):
    success: bool = True
    response: str


class HealthCheck(BaseModel):
    """Result of one live dependency check."""
    status: str  # pass, warn or fail
    message: str
    response_time_ms: Optional[int] = None


class HealthResponse(BaseModel):
    status: str  # healthy, degraded or unhealthy
    name: str
    version: str
    configured: dict[str, bool]
    checks: dict[str, HealthCheck]
