from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import PointStruct, VectorParams, Distance, CollectionStatus
import asyncio
from typing import Any, Dict, List
from app.config import Settings
import logging
import uuid

from .errors import StoreError
from .models import DocumentChunk, SearchResult

logger = logging.getLogger(__name__)

QDRANT_TIMEOUT = 30


def _forward_api_key(settings: Settings) -> bool:
    qdrant = settings.qdrant
    if not qdrant.api_key:
        return False
    return qdrant.use_auth is not False


class VectorStore:
    """
    Thin wrapper over a single Qdrant collection.

    The Qdrant client is synchronous; every call runs in a worker thread so
    the event loop is never blocked.
    """

    def __init__(self, settings: Settings, vector_size: int):
        self.collection_name = settings.qdrant.collection_name
        self.vector_size = vector_size

        # Initialize Qdrant client
        if _forward_api_key(settings):
            self.qdrant_client = QdrantClient(
                host=settings.qdrant.host,
                port=settings.qdrant.port,
                api_key=settings.qdrant.api_key,
                timeout=QDRANT_TIMEOUT,
            )
        else:
            self.qdrant_client = QdrantClient(
                host=settings.qdrant.host,
                port=settings.qdrant.port,
                timeout=QDRANT_TIMEOUT,
            )

    def _create_collection(self) -> bool:
        if self.qdrant_client.collection_exists(collection_name=self.collection_name):
            return False
        try:
            self.qdrant_client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=self.vector_size,
                    distance=Distance.COSINE
                )
            )
        except UnexpectedResponse as e:
            # Another instance created it between the check and the create
            if e.status_code == 409:
                return False
            raise
        return True

    async def ensure_collection(self) -> None:
        """Create the collection if it doesn't exist"""
        try:
            created = await asyncio.to_thread(self._create_collection)
        except Exception as e:
            logger.error(f"❌ Error initializing collection: {e}")
            raise StoreError(f"failed to create collection {self.collection_name}: {e}") from e

        if created:
            logger.info(f"✅ Created collection: {self.collection_name}")
        else:
            logger.info(f"✅ Collection already exists: {self.collection_name}")

    async def add_documents(self, chunks: List[DocumentChunk]) -> None:
        """Upsert all chunks in one request; ids are random UUIDs"""
        if not chunks:
            return

        points = [
            PointStruct(
                id=str(uuid.uuid4()),
                vector=chunk.vector,
                payload={
                    "content": chunk.content,
                    "source": chunk.source,
                    "metadata": chunk.metadata or {},
                },
            )
            for chunk in chunks
        ]

        try:
            await asyncio.to_thread(
                self.qdrant_client.upsert,
                collection_name=self.collection_name,
                points=points,
                wait=True,
            )
        except Exception as e:
            logger.error(f"❌ Error storing documents: {e}")
            raise StoreError(f"failed to store documents: {e}") from e

        logger.info(f"✅ Stored {len(points)} documents in vector database")

    async def search(self, vector: List[float], limit: int) -> List[SearchResult]:
        """Nearest neighbours of vector, best match first"""
        try:
            response = await asyncio.to_thread(
                self.qdrant_client.query_points,
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                with_payload=True,
            )
        except Exception as e:
            logger.error(f"❌ Error searching documents: {e}")
            raise StoreError(f"failed to search documents: {e}") from e

        results = []
        for point in response.points:
            payload = point.payload or {}
            results.append(SearchResult(
                content=payload.get("content", ""),
                source=payload.get("source", ""),
                score=point.score,
                metadata=payload.get("metadata"),
            ))

        logger.info(f"✅ Found {len(results)} similar documents")
        return results

    def _collection_info(self) -> Dict[str, Any]:
        collection_info = self.qdrant_client.get_collection(self.collection_name)
        count_result = self.qdrant_client.count(collection_name=self.collection_name)
        vectors = collection_info.config.params.vectors

        return {
            "collection_name": self.collection_name,
            "status": "healthy",
            "vector_count": count_result.count,
            "vector_size": vectors.size,
            "distance_metric": vectors.distance.name,
            "indexed": collection_info.status == CollectionStatus.GREEN,
        }

    async def collection_info(self) -> Dict[str, Any]:
        """Get collection information and health status"""
        try:
            health_info = await asyncio.to_thread(self._collection_info)
        except Exception as e:
            logger.error(f"❌ Error getting collection info: {e}")
            return {
                "collection_name": self.collection_name,
                "status": "error",
                "error": str(e)
            }

        logger.info("✅ Collection health check completed")
        return health_info
