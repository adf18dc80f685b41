"""
Audio transcription endpoint.

The browser recorder submits its blob as multipart field `audio`.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from starlette.responses import JSONResponse

from src.api.dependencies import get_transcription_service
from src.api.rate_limit import transcribe_limit
from src.api.schemas import TranscriptionResponse
from src.services.transcription_service import TranscriptionError, TranscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Transcription"])


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id") or uuid.uuid4().hex[:12]


@router.post("/transcribe", response_model=TranscriptionResponse)
@transcribe_limit
def transcribe_audio(
    request: Request,
    audio: Optional[UploadFile] = File(None),
    service: TranscriptionService = Depends(get_transcription_service),
):
    """Transcribe an uploaded audio recording."""
    request_id = _request_id(request)
    logger.info(f"[{request_id}] Transcription request received")

    try:
        if audio is None:
            raise TranscriptionError("No audio file provided", status_code=400)
        text = service.transcribe(
            audio.file.read(),
            filename=audio.filename or "recording.webm",
            content_type=audio.content_type or "audio/webm",
        )
    except TranscriptionError as e:
        logger.error(f"[{request_id}] Transcription failed: {e.message}")
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})

    return TranscriptionResponse(transcription=text, request_id=request_id)
