"""
Exception handlers turning setup errors into JSON responses.
"""
import logging

from fastapi import Request
from starlette.responses import JSONResponse

from src.services.errors import SetupError

logger = logging.getLogger(__name__)


def error_body(exc: SetupError) -> dict:
    body = {"success": False, "message": exc.message}
    if exc.error:
        body["error"] = exc.error
    return body


async def setup_error_handler(request: Request, exc: SetupError) -> JSONResponse:
    """Log and render any SetupError raised by a route."""
    logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.error})")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))
