"""
Models for student notes stored in the Qdrant vector collection.
"""
import uuid
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class NoteContentType(str, Enum):
    NOTE = "note"
    BEHAVIOR = "behavior"
    ACHIEVEMENT = "achievement"
    CONCERN = "concern"


class NotePayload(BaseModel):
    """Payload stored alongside each embedding."""
    student_id: int
    content: str
    content_type: NoteContentType = NoteContentType.NOTE
    date: str  # ISO date, e.g. "2024-05-01"
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorPoint(BaseModel):
    """An embedding plus its note payload."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    vector: list[float]
    payload: NotePayload


class ScoredNote(BaseModel):
    """A similarity search hit."""
    id: str
    score: float
    payload: Optional[NotePayload] = None
