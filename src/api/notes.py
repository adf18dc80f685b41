"""
Student note endpoints backed by the Qdrant collection.

Embeddings are computed by the caller; these routes only store and search them.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_vector_store
from src.api.rate_limit import setup_limit
from src.api.schemas import NoteSearchRequest
from src.models.vector import ScoredNote, VectorPoint
from src.services.vector_store import VectorStoreService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])


@router.post("", response_model=VectorPoint, status_code=201)
@setup_limit
def add_note(
    request: Request,
    point: VectorPoint,
    store: VectorStoreService = Depends(get_vector_store),
):
    """Store a note embedding for a student."""
    store.ensure_collection()
    try:
        store.upsert_point(point)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Stored note {point.id} for student {point.payload.student_id}")
    return point


@router.post("/search", response_model=list[ScoredNote])
def search_notes(
    payload: NoteSearchRequest,
    store: VectorStoreService = Depends(get_vector_store),
):
    """Nearest notes to a query embedding."""
    return store.search(payload.vector, limit=payload.limit)
