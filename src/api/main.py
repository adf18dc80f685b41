"""
FastAPI application for the Student Tracker setup service.

Provides endpoints for:
- Database schema and vector collection provisioning
- Sample data loading
- Credential validation and live connection tests
- Audio transcription
- Student note storage and search
- Assistant chat over student records
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from src.config import Settings, get_settings
from src.api.dependencies import get_client_factory
from src.api.errors import setup_error_handler
from src.api.rate_limit import limiter, rate_limit_exceeded_handler
from src.api.schemas import HealthCheck, HealthResponse
from src.api.setup import router as setup_router
from src.api.connection_tests import router as connection_tests_router
from src.api.transcribe import router as transcribe_router
from src.api.notes import router as notes_router
from src.api.chat import router as chat_router
from src.services.connection_tester import check_postgres, check_qdrant
from src.services.errors import SetupError
from src.services.vector_store import ClientFactory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - configure logging on startup."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        f"{settings.app_name} starting (database configured: {settings.has_database}, "
        f"vector store configured: {settings.has_vector_store})"
    )
    yield


settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="""
Setup service for the Student Tracker.

Features:
- Create the Postgres schema and the Qdrant notes collection
- Seed sample students, payments, test scores and conversation notes
- Validate credentials and test live connections to stores and AI providers
- Transcribe recorded audio
- Answer questions about students with the configured LLM
    """,
    version=settings.app_version,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(SetupError, setup_error_handler)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(setup_router)
app.include_router(connection_tests_router)
app.include_router(transcribe_router)
app.include_router(notes_router)
app.include_router(chat_router)


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Health"])
async def root(settings: Settings = Depends(get_settings)):
    """API root - health check and basic info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/docs",
    }


def _timed_check(check, *args) -> HealthCheck:
    started = time.monotonic()
    result = check(*args)
    return HealthCheck(
        status="pass" if result.success else "fail",
        message=result.message,
        response_time_ms=int((time.monotonic() - started) * 1000),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """
    Check the configured backing stores live.

    An unconfigured store is a warning (degraded); a failing one makes the
    service unhealthy and the response a 503.
    """
    checks = {}
    if settings.has_database:
        checks["database"] = _timed_check(check_postgres, settings.neon_database_url)
    else:
        checks["database"] = HealthCheck(status="warn", message="Database not configured")

    if settings.has_vector_store:
        checks["vector_database"] = _timed_check(
            check_qdrant, settings.qdrant_url, settings.qdrant_api_key, client_factory
        )
    else:
        checks["vector_database"] = HealthCheck(status="warn", message="Vector database not configured")

    statuses = {c.status for c in checks.values()}
    if "fail" in statuses:
        status = "unhealthy"
    elif "warn" in statuses:
        status = "degraded"
    else:
        status = "healthy"

    health = HealthResponse(
        status=status,
        name=settings.app_name,
        version=settings.app_version,
        configured={
            "database": settings.has_database,
            "vector_store": settings.has_vector_store,
            "llm": bool(settings.llm_api_key),
        },
        checks=checks,
    )
    if status == "unhealthy":
        logger.warning(f"Health check failed: {[n for n, c in checks.items() if c.status == 'fail']}")
        return JSONResponse(status_code=503, content=health.model_dump())
    return health
