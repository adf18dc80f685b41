"""
Setup wizard API endpoints.

Handles:
- Relational schema and vector collection provisioning
- Sample data seeding (students, payments, tests, notes)
- Offline credential validation
"""
import logging
import random
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from src.config import Settings, get_settings
from src.api.dependencies import get_client_factory, get_random, resolve_connection_string
from src.api.rate_limit import setup_limit
from src.api.schemas import (
    CheckResult,
    ErrorResponse,
    SampleDataRequest,
    SampleDataResponse,
    SchemaDetails,
    SchemaSetupResponse,
    ValidateRequest,
    ValidateResponse,
)
from src.models.setup_config import (
    DatabaseConfig,
    GoogleLLM,
    OpenAIEmbeddings,
    OpenAILLM,
    OpenAITranscription,
)
from src.services.errors import SetupError
from src.services.sample_data import SampleDataLoader
from src.services.schema_service import provision_schema
from src.services.validation import (
    validate_gemini_api_key,
    validate_neon_connection,
    validate_openai_api_key,
    validate_qdrant_api_key,
    validate_qdrant_url,
)
from src.services.vector_store import ClientFactory, VectorStoreService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/setup", tags=["Setup"])

FAILURE_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/schema", response_model=SchemaSetupResponse, responses=FAILURE_RESPONSES)
@setup_limit
def setup_schema(
    request: Request,
    config: DatabaseConfig,
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """
    Create the relational schema and the vector collection.

    Both steps are idempotent. The relational step runs first; a vector store
    failure afterwards does not undo it.
    """
    connection_string = resolve_connection_string(config.neon.connection_string, settings)
    schema = provision_schema(connection_string)

    store = VectorStoreService.connect(client_factory, config.qdrant, settings)
    collection = store.ensure_collection()

    return SchemaSetupResponse(
        message="Database schema setup completed successfully",
        details=SchemaDetails(
            tables_created=schema.tables,
            indexes_created=schema.indexes,
            qdrant_collection=collection,
        ),
    )


# =============================================================================
# Sample data
# =============================================================================

def _load_sample_data(
    payload: Optional[SampleDataRequest],
    settings: Settings,
    rng: Optional[random.Random],
    load: Callable[[SampleDataLoader], int],
    label: str,
):
    try:
        connection_string = resolve_connection_string(
            payload.connection_string if payload else None, settings
        )
        count = load(SampleDataLoader(connection_string, rng=rng))
    except SetupError as e:
        logger.error(f"Sample {label} loading error: {e.message} ({e.error})")
        body = {"success": False, "count": 0, "message": e.message}
        if e.error:
            body["error"] = e.error
        return JSONResponse(status_code=e.status_code, content=body)

    return SampleDataResponse(
        success=True,
        count=count,
        message=f"Successfully loaded {count} sample {label}",
    )


@router.post("/sample-data/students", response_model=SampleDataResponse, responses=FAILURE_RESPONSES)
@setup_limit
def load_sample_students(
    request: Request,
    payload: Optional[SampleDataRequest] = None,
    settings: Settings = Depends(get_settings),
    rng: Optional[random.Random] = Depends(get_random),
):
    """Insert the ten sample students."""
    return _load_sample_data(payload, settings, rng, SampleDataLoader.load_students, "students")


@router.post("/sample-data/payments", response_model=SampleDataResponse, responses=FAILURE_RESPONSES)
@setup_limit
def load_sample_payments(
    request: Request,
    payload: Optional[SampleDataRequest] = None,
    settings: Settings = Depends(get_settings),
    rng: Optional[random.Random] = Depends(get_random),
):
    """Insert six months of payments for every existing student."""
    return _load_sample_data(payload, settings, rng, SampleDataLoader.load_payments, "payment records")


@router.post("/sample-data/tests", response_model=SampleDataResponse, responses=FAILURE_RESPONSES)
@setup_limit
def load_sample_tests(
    request: Request,
    payload: Optional[SampleDataRequest] = None,
    settings: Settings = Depends(get_settings),
    rng: Optional[random.Random] = Depends(get_random),
):
    """Insert 8-12 test scores for every existing student."""
    return _load_sample_data(payload, settings, rng, SampleDataLoader.load_tests, "test scores")


@router.post("/sample-data/notes", response_model=SampleDataResponse, responses=FAILURE_RESPONSES)
@setup_limit
def load_sample_notes(
    request: Request,
    payload: Optional[SampleDataRequest] = None,
    settings: Settings = Depends(get_settings),
    rng: Optional[random.Random] = Depends(get_random),
):
    """Insert 2-4 logged conversations for every existing student."""
    return _load_sample_data(payload, settings, rng, SampleDataLoader.load_notes, "conversation notes")


# =============================================================================
# Validation
# =============================================================================

@router.post("/validate", response_model=ValidateResponse)
def validate_credentials(payload: ValidateRequest):
    """Check credential formats without contacting any service."""
    results = {}

    if payload.neon is not None:
        results["neon_connection_string"] = validate_neon_connection(payload.neon.connection_string)
    if payload.qdrant is not None:
        results["qdrant_url"] = validate_qdrant_url(payload.qdrant.url)
        results["qdrant_api_key"] = validate_qdrant_api_key(payload.qdrant.api_key)
    if payload.api is not None:
        api = payload.api
        if isinstance(api.transcription, OpenAITranscription):
            results["transcription_api_key"] = validate_openai_api_key(api.transcription.api_key)
        if isinstance(api.llm, OpenAILLM):
            results["llm_api_key"] = validate_openai_api_key(api.llm.api_key)
        elif isinstance(api.llm, GoogleLLM):
            results["llm_api_key"] = validate_gemini_api_key(api.llm.api_key)
        if isinstance(api.embeddings, OpenAIEmbeddings):
            results["embeddings_api_key"] = validate_openai_api_key(api.embeddings.api_key)

    return ValidateResponse(
        success=all(r.success for r in results.values()),
        results={name: CheckResult(**r.to_dict()) for name, r in results.items()},
    )
