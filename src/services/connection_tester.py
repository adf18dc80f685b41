"""
Live connection checks for the configured stores and AI providers.

Every check returns a ConnectionTestResult instead of raising, so one
failing dependency does not hide the state of the others.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional
from urllib.parse import urlparse

import anthropic
import httpx
from openai import OpenAI
from sqlalchemy import text

from src.models.database import open_engine
from src.models.setup_config import (
    APIConfig,
    DatabaseConfig,
    AnthropicLLM,
    CustomEmbeddings,
    CustomLLM,
    CustomTranscription,
    GoogleLLM,
    OpenAIEmbeddings,
    OpenAILLM,
    OpenAITranscription,
)
from src.services.vector_store import ClientFactory, create_qdrant_client

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


@dataclass
class ConnectionTestResult:
    """Outcome of one connection check."""
    success: bool
    message: str
    details: Optional[Any] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def check_custom_endpoint(endpoint: Optional[str], label: str) -> ConnectionTestResult:
    """Custom providers are only checked for a well-formed endpoint URL."""
    if not endpoint:
        return ConnectionTestResult(False, "Custom endpoint is required for custom provider")
    if not _is_valid_url(endpoint):
        return ConnectionTestResult(False, "Invalid custom endpoint URL format")
    return ConnectionTestResult(True, f"Custom {label} endpoint format is valid")


# =============================================================================
# Databases
# =============================================================================

def check_postgres(connection_string: str) -> ConnectionTestResult:
    """Run SELECT 1 against the relational store."""
    try:
        with open_engine(connection_string) as engine:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"PostgreSQL connection test failed: {e}")
        return ConnectionTestResult(False, f"PostgreSQL connection failed: {e}")
    return ConnectionTestResult(True, "PostgreSQL connection successful")


def check_qdrant(url: str, api_key: str, client_factory: ClientFactory = create_qdrant_client) -> ConnectionTestResult:
    """List collections on the vector store."""
    try:
        client = client_factory(url, api_key)
        response = client.get_collections()
    except Exception as e:
        logger.warning(f"Qdrant connection test failed: {e}")
        return ConnectionTestResult(False, f"Qdrant connection failed: {e}")
    return ConnectionTestResult(
        True,
        "Qdrant connection successful",
        {"collections": [c.name for c in response.collections]},
    )


def check_databases(
    config: DatabaseConfig,
    client_factory: ClientFactory = create_qdrant_client,
) -> dict[str, Any]:
    """Check both stores and summarize."""
    neon = check_postgres(config.neon.connection_string)
    qdrant = check_qdrant(config.qdrant.url, config.qdrant.api_key, client_factory)
    success = neon.success and qdrant.success
    return {
        "success": success,
        "message": "All database connections successful" if success
        else "One or more database connections failed",
        "results": {"neon": neon.to_dict(), "qdrant": qdrant.to_dict()},
    }


# =============================================================================
# AI providers
# =============================================================================

class ProviderTester:
    """Checks each provider slot of an APIConfig with a minimal live call."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http = http_client

    def check_transcription(self, config) -> ConnectionTestResult:
        try:
            if isinstance(config, OpenAITranscription):
                if not config.api_key:
                    return ConnectionTestResult(False, "OpenAI API key is required")
                OpenAI(api_key=config.api_key).models.list()
                return ConnectionTestResult(True, "OpenAI Whisper API connection successful")
            if isinstance(config, CustomTranscription):
                return check_custom_endpoint(config.custom_endpoint, "transcription")
            return ConnectionTestResult(False, f"{config.provider} provider testing not implemented yet")
        except Exception as e:
            return ConnectionTestResult(False, f"Transcription API test failed: {e}")

    def check_llm(self, config) -> ConnectionTestResult:
        try:
            if isinstance(config, OpenAILLM):
                if not config.api_key:
                    return ConnectionTestResult(False, "OpenAI API key is required")
                OpenAI(api_key=config.api_key).chat.completions.create(
                    model=config.model,
                    messages=[{"role": "user", "content": "Test"}],
                    max_tokens=1,
                )
                return ConnectionTestResult(True, "OpenAI LLM API connection successful")
            if isinstance(config, AnthropicLLM):
                if not config.api_key:
                    return ConnectionTestResult(False, "Anthropic API key is required")
                anthropic.Anthropic(api_key=config.api_key).messages.create(
                    model=config.model,
                    max_tokens=1,
                    messages=[{"role": "user", "content": "Test"}],
                )
                return ConnectionTestResult(True, "Anthropic Claude API connection successful")
            if isinstance(config, GoogleLLM):
                if not config.api_key:
                    return ConnectionTestResult(False, "Google Gemini API key is required")
                return self._check_gemini(config)
            if isinstance(config, CustomLLM):
                return check_custom_endpoint(config.custom_endpoint, "LLM")
            return ConnectionTestResult(False, f"{config.provider} provider testing not implemented yet")
        except Exception as e:
            return ConnectionTestResult(False, f"LLM API test failed: {e}")

    def _check_gemini(self, config: GoogleLLM) -> ConnectionTestResult:
        if self.http is not None:
            response = self._post_gemini(self.http, config)
        else:
            with httpx.Client(timeout=30.0) as client:
                response = self._post_gemini(client, config)

        if response.is_success:
            return ConnectionTestResult(True, "Google Gemini API connection successful")

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        reason = (error_data.get("error") or {}).get("message", "Unknown error")
        return ConnectionTestResult(False, f"Google Gemini API test failed: {reason}", error_data)

    @staticmethod
    def _post_gemini(client: httpx.Client, config: GoogleLLM) -> httpx.Response:
        return client.post(
            GEMINI_URL.format(model=config.model),
            params={"key": config.api_key},
            json={"contents": [{"parts": [{"text": "Test"}]}]},
        )

    def check_embeddings(self, config) -> ConnectionTestResult:
        try:
            if isinstance(config, OpenAIEmbeddings):
                if not config.api_key:
                    return ConnectionTestResult(False, "OpenAI API key is required")
                OpenAI(api_key=config.api_key).embeddings.create(model=config.model, input="test")
                return ConnectionTestResult(True, "OpenAI Embeddings API connection successful")
            if isinstance(config, CustomEmbeddings):
                return check_custom_endpoint(config.custom_endpoint, "embeddings")
            return ConnectionTestResult(False, f"{config.provider} provider testing not implemented yet")
        except Exception as e:
            return ConnectionTestResult(False, f"Embeddings API test failed: {e}")

    def check_all(self, config: APIConfig) -> dict[str, Any]:
        """Check all three slots and summarize."""
        results = {
            "transcription": self.check_transcription(config.transcription),
            "llm": self.check_llm(config.llm),
            "embeddings": self.check_embeddings(config.embeddings),
        }
        success = all(r.success for r in results.values())
        for slot, result in results.items():
            if not result.success:
                logger.warning(f"{slot} provider check failed: {result.message}")
        return {
            "success": success,
            "message": "All API connections successful" if success
            else "One or more API connections failed",
            "results": {slot: r.to_dict() for slot, r in results.items()},
        }
