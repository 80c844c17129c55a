"""Search service for hybrid catalog search (full-text + semantic)"""

import asyncio
import logging
from collections.abc import Awaitable
from functools import lru_cache
from typing import Any

from campex_search.core.config import settings
from campex_search.core.errors import EmptyResultError
from campex_search.core.mongo import get_mongo_db
from campex_search.schemas.search import (
    NormalizedQuery,
    RankedItem,
    SearchMode,
    SearchParams,
    SearchResponse,
    SearchResultProduct,
)
from campex_search.services.bm25_service import BM25Service, get_bm25_service
from campex_search.services.catalog_service import CatalogService
from campex_search.services.embedding_service import EmbeddingService, build_product_text, get_embedding_service
from campex_search.services.hybrid_scorer import score
from campex_search.services.pagination import paginate
from campex_search.services.qdrant_service import QdrantService, get_qdrant_service
from campex_search.services.query_normalizer import normalize

logger = logging.getLogger(__name__)


async def gather_or_cancel(*aws: Awaitable[Any]) -> tuple[Any, ...]:
    """
    Run awaitables concurrently and return their results in order.

    The first failure cancels the remaining tasks and is re-raised. If the
    caller is cancelled, every task is cancelled with it.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    if pending:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # Retrieve every exception so none is reported as never retrieved
    errors = [task.exception() for task in tasks if task in done and not task.cancelled()]
    for error in errors:
        if error is not None:
            raise error

    return tuple(task.result() for task in tasks)


def _index_text(product: dict[str, Any]) -> str:
    text = build_product_text(product.get("title", ""), product.get("description"), product.get("category_name"))
    if store_name := product.get("store_name"):
        text = f"{text} {store_name}"
    return text


class SearchService:
    """
    Handles hybrid catalog search.

    Two retrieval signals:
    1. Full-text: BM25 over listing title, description, category and store name
    2. Semantic: OpenAI query embedding + Qdrant cosine similarity, with the
       category/university/price filters applied inside Qdrant

    Both score sets are min-max normalized and blended with the request's
    weights. The ranked ids are then hydrated from MongoDB (where the filters
    are enforced for every signal) and paginated.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        qdrant_service: QdrantService,
        bm25_service: BM25Service,
        catalog_service: CatalogService,
    ):
        self.embedding_service = embedding_service
        self.qdrant_service = qdrant_service
        self.bm25_service = bm25_service
        self.catalog_service = catalog_service
        self._bm25_lock = asyncio.Lock()

    async def _ensure_bm25_initialized(self) -> None:
        """Build the BM25 index from the catalog on first use"""
        if self.bm25_service.is_initialized:
            return

        async with self._bm25_lock:
            if self.bm25_service.is_initialized:
                return
            logger.info("🔄 Initializing BM25 index (first search)...")
            products = await self.catalog_service.get_active_products()
            documents = [{"id": str(product["_id"]), "text": _index_text(product)} for product in products]
            self.bm25_service.build_index(documents)

    def invalidate_full_text_index(self) -> None:
        self.bm25_service.reset()

    async def _full_text_scores(self, query: NormalizedQuery, top_k: int) -> dict[str, float]:
        await self._ensure_bm25_initialized()
        return self.bm25_service.search(query.query, top_k=top_k)

    async def _semantic_scores(self, query: NormalizedQuery, top_k: int) -> dict[str, float]:
        embedding = await self.embedding_service.embed(query.query)
        return await self.qdrant_service.semantic_scores(
            query_embedding=embedding.embedding,
            n_results=top_k,
            filters=query.filters,
        )

    async def _retrieve(self, query: NormalizedQuery) -> tuple[dict[str, float], dict[str, float]]:
        """Fetch (full-text, semantic) scores, skipping whichever signal the mode excludes"""
        top_k = settings.SEARCH_CANDIDATE_LIMIT

        if query.mode == SearchMode.FULL_TEXT:
            return await self._full_text_scores(query, top_k), {}
        if query.mode == SearchMode.SEMANTIC:
            return {}, await self._semantic_scores(query, top_k)

        full_text, semantic = await gather_or_cancel(
            self._full_text_scores(query, top_k),
            self._semantic_scores(query, top_k),
        )
        return full_text, semantic

    async def search(self, params: SearchParams) -> SearchResponse:
        """
        Execute a catalog search.

        Search Flow:
        1. Normalize the request (rejects an empty query before any I/O)
        2. Retrieve full-text and/or semantic scores (concurrently in hybrid mode)
        3. Fuse scores into one ranking
        4. Hydrate listings from MongoDB with filters applied, keeping rank order
        5. Paginate

        Raises:
            ValidationError: empty query
            RateLimited: embedding API throttled the request
            UpstreamError: embedding API or vector store failed
        """
        query = normalize(params)

        logger.info(
            f"🔍 Search '{query.query}' mode={query.mode.value} "
            f"weights=({query.full_text_weight:.2f}, {query.semantic_weight:.2f}) "
            f"page={query.page} limit={query.limit}"
        )

        full_text, semantic = await self._retrieve(query)
        logger.info(f"✅ Full-text: {len(full_text)} results, semantic: {len(semantic)} results")

        try:
            ranked = score(full_text, semantic, (query.full_text_weight, query.semantic_weight))
        except EmptyResultError:
            ranked = []

        results = await self._hydrate(ranked, query)
        page = paginate(results, query.page, query.limit)

        return SearchResponse(success=True, data=page.data, pagination=page.pagination, query=query.query)

    async def _hydrate(self, ranked: list[RankedItem], query: NormalizedQuery) -> list[SearchResultProduct]:
        if not ranked:
            return []

        products = await self.catalog_service.get_products_by_ids([item.id for item in ranked], query.filters)

        results = []
        for item in ranked:
            product = products.get(item.id)
            if product is None:
                continue
            results.append(
                SearchResultProduct(
                    id=item.id,
                    store_id=str(product.get("store_id") or ""),
                    title=product.get("title") or "",
                    description=product.get("description"),
                    price=product.get("price") or 0,
                    image_url=product.get("image_url"),
                    category_id=product.get("category_id"),
                    category_name=product.get("category_name"),
                    stock_quantity=product.get("stock_quantity") or 0,
                    is_active=product.get("is_active", True),
                    store_name=product.get("store_name"),
                    university_short_code=product.get("university_short_code"),
                    relevance_score=item.relevance_score,
                )
            )
        return results

    async def get_health_status(self) -> dict[str, Any]:
        """Get search service health status"""
        try:
            count = await self.qdrant_service.get_count()
            return {
                "status": "healthy",
                "vectors_count": count,
                "collection": settings.QDRANT_COLLECTION_NAME,
                "bm25": self.bm25_service.get_stats(),
            }
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}


@lru_cache
def get_search_service() -> SearchService:
    """Get cached search service instance"""
    return SearchService(
        embedding_service=get_embedding_service(),
        qdrant_service=get_qdrant_service(),
        bm25_service=get_bm25_service(),
        catalog_service=CatalogService(get_mongo_db()),
    )
