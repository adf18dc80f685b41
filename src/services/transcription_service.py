"""
Speech-to-text for recorded audio.

Supports:
- OpenAI Whisper (via the openai SDK)
- A custom HTTP endpoint accepting a multipart `audio` upload
"""
import logging
from typing import Optional

import httpx
from openai import OpenAI

from src.models.setup_config import CustomTranscription, OpenAITranscription, TranscriptionConfig

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Transcription could not be attempted or the provider failed."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TranscriptionService:
    """Sends audio blobs to the configured transcription provider."""

    def __init__(
        self,
        config: TranscriptionConfig,
        openai_client: Optional[OpenAI] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config
        self._openai = openai_client
        self._http = http_client

    def transcribe(
        self,
        audio: bytes,
        filename: str = "recording.webm",
        content_type: str = "audio/webm",
    ) -> str:
        """
        Transcribe an audio blob.

        Args:
            audio: Raw audio bytes
            filename: Name sent to the provider (its extension hints the format)
            content_type: MIME type of the audio

        Returns:
            The transcribed text, stripped

        Raises:
            TranscriptionError: 400 for configuration problems, 500 for provider failures
        """
        if not audio:
            raise TranscriptionError("No audio file provided", status_code=400)

        if isinstance(self.config, OpenAITranscription):
            text = self._transcribe_openai(audio, filename, content_type)
        elif isinstance(self.config, CustomTranscription):
            text = self._transcribe_custom(audio, filename, content_type)
        else:
            raise TranscriptionError(
                f"Transcription provider {self.config.provider} not supported yet", status_code=400
            )

        logger.info(f"Transcribed {len(audio)} bytes of {content_type} into {len(text)} characters")
        return text.strip()

    def _transcribe_openai(self, audio: bytes, filename: str, content_type: str) -> str:
        if not self.config.api_key and self._openai is None:
            raise TranscriptionError("OpenAI API key not configured", status_code=400)

        client = self._openai or OpenAI(api_key=self.config.api_key)
        try:
            response = client.audio.transcriptions.create(
                file=(filename, audio, content_type),
                model=self.config.model or "whisper-1",
                language="en",
                response_format="text",
            )
        except Exception as e:
            logger.error(f"OpenAI transcription failed: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

        # response_format="text" yields a plain string
        return response if isinstance(response, str) else getattr(response, "text", "")

    def _transcribe_custom(self, audio: bytes, filename: str, content_type: str) -> str:
        if not self.config.custom_endpoint:
            raise TranscriptionError("Custom transcription endpoint not configured", status_code=400)

        headers = {}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        files = {"audio": (filename, audio, content_type)}
        try:
            if self._http is not None:
                response = self._http.post(self.config.custom_endpoint, files=files, headers=headers)
            else:
                with httpx.Client(timeout=60.0) as client:
                    response = client.post(self.config.custom_endpoint, files=files, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Custom transcription failed: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

        return data.get("transcription") or data.get("text") or ""
