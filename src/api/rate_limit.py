"""
Rate limiting for API endpoints.

Uses slowapi with in-memory storage, keyed by client IP. Setup and
connection-test routes hit paid third-party services or write to the
database, so they get tighter limits than the default.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from starlette.responses import JSONResponse

from src.config import get_settings


# Create the limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=["200/minute"],
    enabled=get_settings().rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


# Preset rate limit decorators
# Usage: @setup_limit (instead of @limiter.limit("30/minute"))

def setup_limit(func):
    """Rate limit for schema provisioning and sample data loads."""
    return limiter.limit("30/minute")(func)


def connection_test_limit(func):
    """Rate limit for live provider checks - each one costs an API call."""
    return limiter.limit("10/minute")(limiter.limit("50/hour")(func))


def transcribe_limit(func):
    """Rate limit for transcription."""
    return limiter.limit("20/minute")(func)


def chat_limit(func):
    """Rate limit for assistant chat - each message costs an LLM call."""
    return limiter.limit("30/minute")(func)
