"""
Qdrant vector database service for storing listing embeddings and scoring
them against a query vector.
"""

import logging
import uuid
from functools import lru_cache
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, FieldCondition, Filter, MatchValue, PointStruct, Range, VectorParams

from campex_search.core.config import settings
from campex_search.core.errors import UpstreamError
from campex_search.schemas.search import SearchFilters

logger = logging.getLogger(__name__)

# Qdrant point ids must be unsigned ints or UUIDs; listing ids are mapped deterministically
POINT_ID_NAMESPACE = uuid.UUID("6f1c1c5e-8f0e-4a55-9d1e-2f7d4c1a9b3e")


def point_id_for(product_id: str) -> str:
    return str(uuid.uuid5(POINT_ID_NAMESPACE, product_id))


class QdrantService:
    """Service for interacting with Qdrant vector database"""

    def __init__(self, client: AsyncQdrantClient | None = None):
        # Use local persistent storage
        self.client = client or AsyncQdrantClient(path=settings.QDRANT_PATH)
        self.collection_name = settings.QDRANT_COLLECTION_NAME
        self._collection_ready = False

    async def _ensure_collection(self) -> None:
        """Create collection if it doesn't exist"""
        if self._collection_ready:
            return

        if not await self.client.collection_exists(collection_name=self.collection_name):
            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=settings.EMBEDDING_DIMENSION, distance=Distance.COSINE),
            )
            logger.info(f"✅ Created Qdrant collection: {self.collection_name}")
        else:
            logger.info(f"✅ Using existing Qdrant collection: {self.collection_name}")

        self._collection_ready = True

    @staticmethod
    def build_filter(filters: SearchFilters | None) -> Filter | None:
        """
        Convert search filters to a Qdrant Filter (all conditions must match).

        Args:
            filters: Normalized search filters

        Returns:
            Qdrant Filter object, or None when nothing is filtered
        """
        if filters is None:
            return None

        must_conditions = []

        if filters.category_id:
            must_conditions.append(FieldCondition(key="category_id", match=MatchValue(value=filters.category_id)))
        if filters.university_id:
            must_conditions.append(
                FieldCondition(key="university_id", match=MatchValue(value=filters.university_id))
            )

        range_params = {}
        if filters.min_price is not None:
            range_params["gte"] = filters.min_price
        if filters.max_price is not None:
            range_params["lte"] = filters.max_price
        if range_params:
            must_conditions.append(FieldCondition(key="price", range=Range(**range_params)))

        if not must_conditions:
            return None
        return Filter(must=must_conditions)

    async def add_embeddings(
        self,
        product_ids: list[str],
        embeddings: list[list[float]],
        payloads: list[dict[str, Any]],
    ) -> None:
        """
        Upsert listing vectors (insert or update if exists).

        Args:
            product_ids: Listing ids, one per embedding
            embeddings: List of embedding vectors
            payloads: Filterable listing fields stored next to each vector
        """
        await self._ensure_collection()

        points = []
        for product_id, embedding, payload in zip(product_ids, embeddings, payloads, strict=True):
            point_payload = {**payload, "product_id": product_id}
            points.append(PointStruct(id=point_id_for(product_id), vector=embedding, payload=point_payload))

        try:
            await self.client.upsert(collection_name=self.collection_name, points=points)
        except Exception as e:
            raise UpstreamError(None, f"Failed to add embeddings to Qdrant: {str(e)}") from e

    async def semantic_scores(
        self,
        query_embedding: list[float],
        n_results: int = 100,
        filters: SearchFilters | None = None,
    ) -> dict[str, float]:
        """
        Score listings by cosine similarity to the query vector.

        Args:
            query_embedding: Query vector
            n_results: Number of results to return
            filters: Normalized search filters applied inside Qdrant

        Returns:
            Mapping of product id -> similarity score (higher = more similar)
        """
        await self._ensure_collection()

        try:
            points = (
                await self.client.query_points(
                    collection_name=self.collection_name,
                    query=query_embedding,
                    limit=n_results,
                    query_filter=self.build_filter(filters),
                    with_payload=True,
                )
            ).points
        except Exception as e:
            raise UpstreamError(None, f"Failed to query Qdrant: {str(e)}") from e

        return {point.payload["product_id"]: point.score for point in points if point.payload}

    async def get_count(self) -> int:
        """Get total number of embeddings in collection"""
        try:
            await self._ensure_collection()
            result = await self.client.count(collection_name=self.collection_name, exact=True)
            return result.count
        except Exception as e:
            logger.error(f"Error getting count: {e}")
            return 0

    async def clear(self) -> None:
        """Delete and recreate collection"""
        try:
            await self.client.delete_collection(collection_name=self.collection_name)
            self._collection_ready = False
            await self._ensure_collection()
            logger.info(f"✅ Cleared collection: {self.collection_name}")
        except Exception as e:
            raise UpstreamError(None, f"Failed to clear collection: {str(e)}") from e


@lru_cache
def get_qdrant_service() -> QdrantService:
    """Dependency injection for Qdrant service"""
    return QdrantService()
