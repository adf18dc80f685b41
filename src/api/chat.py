"""
Assistant chat endpoint.

Typed questions and transcribed recordings both arrive here as text.
"""
import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from src.api.dependencies import get_chat_service
from src.api.rate_limit import chat_limit
from src.api.schemas import ChatRequest, ChatResponse
from src.services.chat_service import ChatError, ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Chat"])


@router.post("/chat", response_model=ChatResponse)
@chat_limit
def chat(
    request: Request,
    payload: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Answer a question about the tracked students."""
    try:
        if not payload.message or not isinstance(payload.message, str):
            raise ChatError("Message is required", status_code=400)
        reply = service.chat(payload.message, is_audio=payload.is_audio)
    except ChatError as e:
        logger.error(f"Chat processing error: {e.message}")
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})

    return ChatResponse(response=reply)
