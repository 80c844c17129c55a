"""Service for embedding catalog listings and storing them in Qdrant"""

import logging
from functools import lru_cache
from typing import Any

from campex_search.core.config import settings
from campex_search.core.errors import RateLimited, UpstreamError
from campex_search.core.mongo import get_mongo_db
from campex_search.schemas.catalog import EmbeddingBatchResult, EmbeddingStats
from campex_search.services.bm25_service import BM25Service, get_bm25_service
from campex_search.services.catalog_service import CatalogService
from campex_search.services.embedding_service import EmbeddingService, build_product_text, get_embedding_service
from campex_search.services.qdrant_service import QdrantService, get_qdrant_service

logger = logging.getLogger(__name__)


class ProductEmbeddingService:
    """Embeds listings that lack vectors, one upstream call per batch"""

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

    def prepare_payload(self, product: dict[str, Any]) -> dict[str, Any]:
        """
        Filterable listing fields stored next to each vector in Qdrant,
        so category/university/price filters apply during semantic search.
        """
        return {
            "title": (product.get("title") or "")[:200],
            "category_id": product.get("category_id"),
            "university_id": product.get("university_id"),
            "price": float(product["price"]) if product.get("price") is not None else 0.0,
        }

    async def embed_products(self, limit: int, force_update: bool = False) -> EmbeddingBatchResult:
        """
        Embed up to `limit` listings and upsert them into Qdrant.

        RateLimited from the embedding API stops the run; the batches already
        stored are reported along with the retry delay. Other upstream failures
        mark the batch failed and the run moves on.

        Returns:
            EmbeddingBatchResult with processed/failed counts and error messages
        """
        products = await self.catalog_service.get_products_needing_embeddings(limit, force_update)
        logger.info(f"📦 {len(products)} listings need embeddings")

        processed = 0
        failed = 0
        errors = []
        retry_after = None

        batch_size = settings.EMBEDDING_BATCH_SIZE
        for start in range(0, len(products), batch_size):
            batch = []
            texts = []
            for product in products[start:start + batch_size]:
                text = build_product_text(
                    product.get("title", ""), product.get("description"), product.get("category_name")
                )
                if not text:
                    failed += 1
                    errors.append(f"{product['_id']}: no text to embed")
                    continue
                batch.append(product)
                texts.append(text)

            if not batch:
                continue

            product_ids = [str(product["_id"]) for product in batch]
            try:
                embeddings = await self.embedding_service.embed_batch(texts)
                await self.qdrant_service.add_embeddings(
                    product_ids=product_ids,
                    embeddings=embeddings,
                    payloads=[self.prepare_payload(product) for product in batch],
                )
            except RateLimited as e:
                logger.warning(f"⏸️ Rate limited at batch starting {start}, stopping after {processed} listings")
                errors.append(f"batch {start // batch_size}: {e}")
                retry_after = e.retry_after_seconds
                break
            except UpstreamError as e:
                logger.error(f"❌ Batch starting at {start} failed: {e}")
                failed += len(batch)
                errors.append(f"batch {start // batch_size}: {e}")
                continue

            await self.catalog_service.mark_embedded(product_ids)
            processed += len(batch)
            logger.info(f"✅ Embedded {processed} listings so far")

        if processed:
            # Keyword index is rebuilt from the catalog on the next search
            self.bm25_service.reset()

        return EmbeddingBatchResult(processed=processed, failed=failed, errors=errors, retry_after_seconds=retry_after)

    async def get_stats(self) -> EmbeddingStats:
        total = await self.catalog_service.count_products()
        with_embeddings = await self.qdrant_service.get_count()
        without_embeddings = max(0, total - with_embeddings)
        progress = (with_embeddings / total * 100) if total > 0 else 0.0

        return EmbeddingStats(
            total_products=total,
            products_with_embeddings=with_embeddings,
            products_without_embeddings=without_embeddings,
            progress_percentage=round(min(progress, 100.0), 2),
        )


@lru_cache
def get_product_embedding_service() -> ProductEmbeddingService:
    """Get product embedding service instance"""
    return ProductEmbeddingService(
        embedding_service=get_embedding_service(),
        qdrant_service=get_qdrant_service(),
        bm25_service=get_bm25_service(),
        catalog_service=CatalogService(get_mongo_db()),
    )
