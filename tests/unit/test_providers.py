"""Unit tests for provider configuration parsing and live provider checks."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from pydantic import ValidationError
from qdrant_client.models import Distance, VectorParams

from src.models.setup_config import (
    AnthropicLLM,
    APIConfig,
    CustomTranscription,
    GoogleLLM,
    OpenAIEmbeddings,
    OpenAITranscription,
    SentenceTransformersEmbeddings,
    api_config_from_settings,
    database_config_from_settings,
)
from src.services.connection_tester import (
    ProviderTester,
    check_custom_endpoint,
    check_databases,
    check_postgres,
    check_qdrant,
)


# ---------------------------------------------------------------------------
# Tagged provider configs
# ---------------------------------------------------------------------------


class TestAPIConfigParsing:
    def test_defaults(self) -> None:
        config = APIConfig()
        assert isinstance(config.transcription, OpenAITranscription)
        assert isinstance(config.llm, GoogleLLM)
        assert isinstance(config.embeddings, OpenAIEmbeddings)
        assert config.transcription.model == "whisper-1"

    def test_camel_case_variants(self) -> None:
        config = APIConfig.model_validate({
            "transcription": {"provider": "custom", "customEndpoint": "https://stt.example.com"},
            "llm": {"provider": "anthropic", "apiKey": "key-123"},
            "embeddings": {"provider": "sentence-transformers"},
        })
        assert isinstance(config.transcription, CustomTranscription)
        assert config.transcription.custom_endpoint == "https://stt.example.com"
        assert isinstance(config.llm, AnthropicLLM)
        assert config.llm.api_key == "key-123"
        assert isinstance(config.embeddings, SentenceTransformersEmbeddings)

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError):
            APIConfig.model_validate({"llm": {"provider": "mystery"}})

    def test_from_settings(self, settings) -> None:
        config = api_config_from_settings(settings)
        assert isinstance(config.transcription, OpenAITranscription)
        assert config.transcription.api_key == settings.openai_api_key
        assert isinstance(config.llm, GoogleLLM)

        database = database_config_from_settings(settings)
        assert database.neon.connection_string == settings.neon_database_url
        assert database.qdrant.collection_name == "student_notes"

    def test_no_database_settings(self, unconfigured_settings) -> None:
        assert database_config_from_settings(unconfigured_settings) is None


# ---------------------------------------------------------------------------
# Store checks
# ---------------------------------------------------------------------------


class TestStoreChecks:
    def test_postgres_ok(self, db_url: str) -> None:
        result = check_postgres(db_url)
        assert result.success
        assert result.message == "PostgreSQL connection successful"

    def test_postgres_failure(self, tmp_path) -> None:
        result = check_postgres(f"sqlite:///{tmp_path / 'missing' / 'x.db'}")
        assert not result.success
        assert result.message.startswith("PostgreSQL connection failed")

    def test_qdrant_lists_collections(self, client_factory, qdrant_client) -> None:
        qdrant_client.create_collection(
            "existing",
            vectors_config=VectorParams(size=4, distance=Distance.COSINE),
        )
        result = check_qdrant("http://qdrant.test", "key", client_factory)
        assert result.success
        assert result.details == {"collections": ["existing"]}

    def test_qdrant_failure(self) -> None:
        def broken_factory(url, api_key=None):
            raise ConnectionError("refused")

        result = check_qdrant("http://qdrant.test", "key", broken_factory)
        assert not result.success
        assert "refused" in result.message

    def test_summary(self, database_config, client_factory) -> None:
        summary = check_databases(database_config, client_factory)
        assert summary["success"]
        assert summary["message"] == "All database connections successful"
        assert set(summary["results"]) == {"neon", "qdrant"}


# ---------------------------------------------------------------------------
# Provider checks
# ---------------------------------------------------------------------------


def _gemini_client(status_code: int, body: dict) -> tuple[httpx.Client, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body)

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


class TestProviderTester:
    def test_custom_endpoint_format(self) -> None:
        assert check_custom_endpoint("https://llm.example.com/v1", "LLM").success
        assert not check_custom_endpoint("not a url", "LLM").success
        assert check_custom_endpoint(None, "LLM").message == "Custom endpoint is required for custom provider"

    def test_gemini_success(self) -> None:
        http, seen = _gemini_client(200, {"candidates": []})
        result = ProviderTester(http).check_llm(GoogleLLM(api_key="AIza-test"))
        assert result.success
        assert seen[0].url.params["key"] == "AIza-test"
        assert "gemini-1.5-flash:generateContent" in seen[0].url.path
        assert json.loads(seen[0].content)["contents"][0]["parts"][0]["text"] == "Test"

    def test_gemini_error_message(self) -> None:
        http, _ = _gemini_client(400, {"error": {"message": "API key not valid"}})
        result = ProviderTester(http).check_llm(GoogleLLM(api_key="bad"))
        assert not result.success
        assert result.message == "Google Gemini API test failed: API key not valid"

    def test_missing_key(self) -> None:
        result = ProviderTester(MagicMock()).check_llm(GoogleLLM())
        assert result.message == "Google Gemini API key is required"

    @patch("src.services.connection_tester.OpenAI")
    def test_openai_transcription(self, openai_cls: MagicMock) -> None:
        result = ProviderTester(MagicMock()).check_transcription(OpenAITranscription(api_key="sk-test"))
        assert result.success
        openai_cls.assert_called_once_with(api_key="sk-test")
        openai_cls.return_value.models.list.assert_called_once()

    @patch("src.services.connection_tester.OpenAI")
    def test_openai_failure_is_reported(self, openai_cls: MagicMock) -> None:
        openai_cls.return_value.embeddings.create.side_effect = RuntimeError("invalid api key")
        result = ProviderTester(MagicMock()).check_embeddings(OpenAIEmbeddings(api_key="sk-test"))
        assert not result.success
        assert result.message == "Embeddings API test failed: invalid api key"

    @patch("src.services.connection_tester.anthropic")
    def test_anthropic(self, anthropic_module: MagicMock) -> None:
        result = ProviderTester(MagicMock()).check_llm(AnthropicLLM(provider="anthropic", api_key="key"))
        assert result.success
        create = anthropic_module.Anthropic.return_value.messages.create
        assert create.call_args.kwargs["max_tokens"] == 1

    def test_unimplemented_provider(self) -> None:
        config = APIConfig.model_validate({"transcription": {"provider": "azure"}})
        result = ProviderTester(MagicMock()).check_transcription(config.transcription)
        assert not result.success
        assert result.message == "azure provider testing not implemented yet"

    def test_check_all_summary(self) -> None:
        config = APIConfig.model_validate({
            "transcription": {"provider": "custom", "customEndpoint": "https://stt.example.com"},
            "llm": {"provider": "custom", "customEndpoint": "https://llm.example.com"},
            "embeddings": {"provider": "sentence-transformers"},
        })
        summary = ProviderTester(MagicMock()).check_all(config)
        assert not summary["success"]
        assert summary["message"] == "One or more API connections failed"
        assert summary["results"]["transcription"]["success"]
        assert summary["results"]["llm"]["success"]
        assert not summary["results"]["embeddings"]["success"]

    def test_injected_client_stays_open(self) -> None:
        http, _ = _gemini_client(200, {"candidates": []})
        ProviderTester(http).check_llm(GoogleLLM(api_key="AIza-test"))
        assert not http.is_closed

    @patch("src.services.connection_tester.httpx.Client")
    def test_own_client_is_closed(self, client_cls: MagicMock) -> None:
        client = client_cls.return_value.__enter__.return_value
        client.post.return_value = httpx.Response(200, json={"candidates": []})

        result = ProviderTester().check_llm(GoogleLLM(api_key="AIza-test"))

        assert result.success
        client_cls.assert_called_once_with(timeout=30.0)
        client_cls.return_value.__exit__.assert_called_once()

    def test_no_client_created_up_front(self) -> None:
        assert ProviderTester().http is None
