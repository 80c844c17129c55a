"""Embedding indexer tests - batching, skip/fail accounting and keyword index invalidation."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from campex_search.core.config import settings
from campex_search.core.errors import RateLimited, UpstreamError
from campex_search.services.product_embedding_service import ProductEmbeddingService

PRODUCTS = [
    {"_id": "p1", "title": "Rice cooker", "description": "1.8L", "category_id": "electronics", "price": 15000},
    {"_id": "p2", "title": "  ", "description": None},
    {"_id": "p3", "title": "Calculus textbook", "category_name": "Books", "university_id": "ui", "price": 4500},
]


@pytest.fixture()
def deps():
    embedding_service = MagicMock()
    embedding_service.embed_batch = AsyncMock(side_effect=lambda texts: [[float(i)] for i in range(len(texts))])
    qdrant_service = MagicMock()
    qdrant_service.add_embeddings = AsyncMock()
    qdrant_service.get_count = AsyncMock(return_value=30)
    bm25_service = MagicMock()
    catalog_service = MagicMock()
    catalog_service.get_products_needing_embeddings = AsyncMock(return_value=PRODUCTS)
    catalog_service.mark_embedded = AsyncMock(return_value=2)
    catalog_service.count_products = AsyncMock(return_value=40)
    return embedding_service, qdrant_service, bm25_service, catalog_service


@pytest.fixture()
def service(deps):
    return ProductEmbeddingService(*deps)


class TestEmbedProducts:
    @pytest.mark.asyncio
    async def test_one_upstream_call_per_batch(self, service, deps):
        embedding_service, qdrant_service, bm25_service, catalog_service = deps

        result = await service.embed_products(limit=10)

        assert result.processed == 2
        assert result.failed == 1
        assert result.errors == ["p2: no text to embed"]
        embedding_service.embed_batch.assert_awaited_once_with(["Rice cooker. 1.8L", "Calculus textbook. Books"])
        kwargs = qdrant_service.add_embeddings.call_args.kwargs
        assert kwargs["product_ids"] == ["p1", "p3"]
        assert kwargs["payloads"][1] == {
            "title": "Calculus textbook",
            "category_id": None,
            "university_id": "ui",
            "price": 4500.0,
        }
        catalog_service.mark_embedded.assert_awaited_once_with(["p1", "p3"])
        bm25_service.reset.assert_called_once()

    @pytest.mark.asyncio
    async def test_respects_batch_size(self, service, deps):
        embedding_service = deps[0]

        with patch.object(settings, "EMBEDDING_BATCH_SIZE", 1):
            result = await service.embed_products(limit=10)

        assert result.processed == 2
        assert embedding_service.embed_batch.await_count == 2

    @pytest.mark.asyncio
    async def test_upstream_failure_marks_batch_failed(self, service, deps):
        embedding_service, _, bm25_service, catalog_service = deps
        embedding_service.embed_batch.side_effect = UpstreamError(500, "boom")

        result = await service.embed_products(limit=10)

        assert result.processed == 0
        assert result.failed == 3
        catalog_service.mark_embedded.assert_not_called()
        bm25_service.reset.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_stops_run(self, service, deps):
        deps[0].embed_batch.side_effect = RateLimited(20)

        result = await service.embed_products(limit=10)

        assert result.processed == 0
        assert result.retry_after_seconds == 20
        deps[2].reset.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_on_later_batch_keeps_progress(self, service, deps):
        embedding_service, qdrant_service, bm25_service, catalog_service = deps
        embedding_service.embed_batch.side_effect = [[[0.1]], RateLimited(10)]

        with patch.object(settings, "EMBEDDING_BATCH_SIZE", 1):
            result = await service.embed_products(limit=10)

        assert result.processed == 1
        assert result.failed == 1
        assert result.retry_after_seconds == 10
        assert result.errors[-1] == "batch 2: Rate limited. Retry after 10 seconds"
        assert embedding_service.embed_batch.await_count == 2
        catalog_service.mark_embedded.assert_awaited_once_with(["p1"])
        qdrant_service.add_embeddings.assert_awaited_once()
        bm25_service.reset.assert_called_once()

    @pytest.mark.asyncio
    async def test_force_update_passed_to_catalog(self, service, deps):
        await service.embed_products(limit=7, force_update=True)

        deps[3].get_products_needing_embeddings.assert_awaited_once_with(7, True)


class TestStats:
    @pytest.mark.asyncio
    async def test_progress(self, service):
        stats = await service.get_stats()

        assert stats.total_products == 40
        assert stats.products_with_embeddings == 30
        assert stats.products_without_embeddings == 10
        assert stats.progress_percentage == 75.0
