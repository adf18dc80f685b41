"""
Qdrant vector store for student notes.

Provides:
- Idempotent collection provisioning
- Note upserts (embedding + payload)
- Similarity search
- Collection listing for connection checks
"""
import logging
from typing import Callable, Optional

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from src.config import Settings
from src.models.setup_config import QdrantConfig
from src.models.vector import NotePayload, ScoredNote, VectorPoint
from src.services.errors import ConfigurationMissingError, StoreError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "student_notes"
DEFAULT_DIMENSIONS = 1536

MISSING_VECTOR_STORE_MESSAGE = (
    "Vector database configuration not found. Please provide qdrant url "
    "and apiKey in request body or set QDRANT_URL and QDRANT_API_KEY."
)

ClientFactory = Callable[[str, Optional[str]], QdrantClient]


def create_qdrant_client(url: str, api_key: Optional[str] = None) -> QdrantClient:
    """Create a Qdrant REST client."""
    return QdrantClient(url=url, api_key=api_key or None)


class VectorStoreService:
    """Service wrapping one Qdrant collection."""

    def __init__(
        self,
        client: QdrantClient,
        collection_name: Optional[str] = None,
        dimensions: int = DEFAULT_DIMENSIONS,
        distance: str = "Cosine",
    ):
        self.client = client
        self.collection_name = collection_name or DEFAULT_COLLECTION
        self.dimensions = dimensions
        self.distance = Distance(distance)

    @classmethod
    def from_settings(
        cls,
        client: QdrantClient,
        settings: Settings,
        collection_name: Optional[str] = None,
    ) -> "VectorStoreService":
        """Build a service using the configured embedding width and distance."""
        return cls(
            client,
            collection_name=collection_name or settings.qdrant_collection_name,
            dimensions=settings.embedding_dimensions,
            distance=settings.vector_distance,
        )

    @classmethod
    def connect(
        cls,
        client_factory: ClientFactory,
        qdrant: QdrantConfig,
        settings: Settings,
    ) -> "VectorStoreService":
        """
        Build a service from request config, falling back to settings.

        Raises:
            ConfigurationMissingError: if no Qdrant URL is supplied or configured
            StoreError: if the client cannot be created from the URL
        """
        url = qdrant.url or settings.qdrant_url
        api_key = qdrant.api_key or settings.qdrant_api_key
        if not url:
            raise ConfigurationMissingError(MISSING_VECTOR_STORE_MESSAGE)

        try:
            client = client_factory(url, api_key)
        except Exception as e:
            logger.error(f"Qdrant client creation failed: {e}")
            raise StoreError("Failed to connect to vector database", str(e)) from e

        return cls.from_settings(client, settings, collection_name=qdrant.collection_name)

    def ensure_collection(self) -> str:
        """
        Make sure the collection exists, creating it if absent.

        Returns:
            The collection name used
        """
        try:
            if self.client.collection_exists(self.collection_name):
                logger.info(f"Qdrant collection '{self.collection_name}' already exists")
                return self.collection_name

            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.dimensions, distance=self.distance),
            )
        except Exception as e:
            logger.error(f"Qdrant collection setup failed: {e}")
            raise StoreError("Failed to setup vector collection", str(e)) from e

        logger.info(
            f"Created Qdrant collection '{self.collection_name}' "
            f"({self.dimensions}d, {self.distance.value})"
        )
        return self.collection_name

    def upsert_point(self, point: VectorPoint) -> None:
        """Store one note embedding, waiting for the write to be applied."""
        if len(point.vector) != self.dimensions:
            raise ValueError(
                f"Vector has {len(point.vector)} dimensions, collection expects {self.dimensions}"
            )

        try:
            self.client.upsert(
                collection_name=self.collection_name,
                wait=True,
                points=[
                    PointStruct(
                        id=point.id,
                        vector=point.vector,
                        payload=point.payload.model_dump(mode="json"),
                    )
                ],
            )
        except Exception as e:
            raise StoreError("Failed to store note vector", str(e)) from e

    def search(self, vector: list[float], limit: int = 5) -> list[ScoredNote]:
        """Find the notes closest to `vector`."""
        try:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                with_payload=True,
            )
        except Exception as e:
            raise StoreError("Vector search failed", str(e)) from e

        return [
            ScoredNote(
                id=str(hit.id),
                score=hit.score,
                payload=NotePayload(**hit.payload) if hit.payload else None,
            )
            for hit in response.points
        ]

    def list_collections(self) -> list[str]:
        """Names of all collections on the server."""
        response = self.client.get_collections()
        return [c.name for c in response.collections]
