"""HTTP surface tests - parameter mapping and failure-to-response translation."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from campex_search.core.errors import RateLimited, UpstreamError, ValidationError
from campex_search.main import app
from campex_search.routers.search import get_recommendation_service
from campex_search.schemas.catalog import EmbeddingBatchResult
from campex_search.routers.seo import get_sitemap_service
from campex_search.schemas.search import (
    Pagination,
    SearchMode,
    SearchRecommendation,
    SearchResponse,
    SearchResultProduct,
)
from campex_search.services.product_embedding_service import get_product_embedding_service
from campex_search.services.search_service import get_search_service


def _ok_response(query="rice cooker"):
    return SearchResponse(
        success=True,
        data=[
            SearchResultProduct(
                id="p1",
                store_id="s1",
                title="Rice cooker",
                price=15000,
                relevance_score=0.87,
            )
        ],
        pagination=Pagination(page=1, limit=20, total=1, total_pages=1),
        query=query,
    )


@pytest.fixture()
def search_service():
    service = MagicMock()
    service.search = AsyncMock(return_value=_ok_response())
    return service


@pytest.fixture()
def client(search_service):
    app.dependency_overrides[get_search_service] = lambda: search_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSearchEndpoint:
    def test_success_body(self, client):
        resp = client.get("/api/v1/search", params={"q": "rice cooker"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"][0]["id"] == "p1"
        assert body["data"][0]["relevance_score"] == 0.87
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}

    def test_query_params_mapped(self, client, search_service):
        client.get(
            "/api/v1/search",
            params={
                "q": "kettle",
                "category": "electronics",
                "university": "unilag",
                "minPrice": "1000",
                "maxPrice": "9000",
                "page": "2",
                "limit": "5",
                "ftWeight": "0.7",
                "mode": "full_text",
            },
        )

        params = search_service.search.call_args.args[0]
        assert params.query == "kettle"
        assert params.filters.category_id == "electronics"
        assert params.filters.university_id == "unilag"
        assert params.filters.min_price == 1000
        assert params.filters.max_price == 9000
        assert params.page == 2
        assert params.limit == 5
        assert params.full_text_weight == 0.7
        assert params.semantic_weight is None
        assert params.mode == SearchMode.FULL_TEXT

    def test_post_body_accepts_camel_case(self, client, search_service):
        resp = client.post(
            "/api/v1/search",
            json={"query": "kettle", "filters": {"categoryId": "electronics"}, "semanticWeight": 0.9},
        )

        assert resp.status_code == 200
        params = search_service.search.call_args.args[0]
        assert params.filters.category_id == "electronics"
        assert params.semantic_weight == 0.9

    def test_validation_error_is_400(self, client, search_service):
        search_service.search.side_effect = ValidationError("Search query cannot be empty")

        resp = client.get("/api/v1/search", params={"q": "  "})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["data"] == []
        assert body["error"] == "Search query cannot be empty"

    def test_rate_limited_is_429_with_retry_after(self, client, search_service):
        search_service.search.side_effect = RateLimited(30)

        resp = client.get("/api/v1/search", params={"q": "kettle", "page": "3", "limit": "10"})

        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "30"
        body = resp.json()
        assert body["success"] is False
        assert body["data"] == []
        assert body["pagination"] == {"page": 3, "limit": 10, "total": 0, "totalPages": 0}

    def test_failure_pagination_caps_limit(self, client, search_service):
        search_service.search.side_effect = UpstreamError(503, "unavailable")

        resp = client.get("/api/v1/search", params={"q": "kettle", "limit": "1000"})

        assert resp.status_code == 502
        assert resp.json()["pagination"]["limit"] == 100

    def test_upstream_error_is_502(self, client, search_service):
        search_service.search.side_effect = UpstreamError(500, "boom")

        resp = client.get("/api/v1/search", params={"q": "kettle"})

        assert resp.status_code == 502
        assert resp.json()["success"] is False
        assert resp.json()["query"] == "kettle"

    def test_unexpected_error_is_500(self, client, search_service):
        search_service.search.side_effect = RuntimeError("MongoDB not connected")

        resp = client.get("/api/v1/search", params={"q": "kettle"})

        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert "MongoDB" not in body["error"]


class TestRecommendationsEndpoint:
    def test_returns_recommendations(self, client):
        service = MagicMock()
        service.recommend = AsyncMock(
            return_value=[SearchRecommendation(id="p1", title="Rice cooker", price=15000)]
        )
        app.dependency_overrides[get_recommendation_service] = lambda: service

        resp = client.post("/api/v1/search/recommendations", json={"q": "rice", "limit": 3})

        assert resp.status_code == 200
        assert resp.json()["recommendations"][0]["title"] == "Rice cooker"
        service.recommend.assert_awaited_once_with("rice", 3)

    def test_failure_reported_in_body(self, client):
        service = MagicMock()
        service.recommend = AsyncMock(side_effect=RuntimeError("down"))
        app.dependency_overrides[get_recommendation_service] = lambda: service

        resp = client.post("/api/v1/search/recommendations", json={"q": "rice"})

        assert resp.status_code == 200
        assert resp.json() == {"success": False, "recommendations": [], "error": "Failed to fetch recommendations"}


class TestEmbeddingsEndpoint:
    def test_completed_run(self, client):
        service = MagicMock()
        service.embed_products = AsyncMock(return_value=EmbeddingBatchResult(processed=3, failed=0, errors=[]))
        app.dependency_overrides[get_product_embedding_service] = lambda: service

        resp = client.post("/api/v1/embeddings/create", json={"limit": 3})

        assert resp.status_code == 200
        assert resp.json()["processed"] == 3
        service.embed_products.assert_awaited_once_with(limit=3, force_update=False)

    def test_rate_limited_run_reports_progress(self, client):
        service = MagicMock()
        service.embed_products = AsyncMock(
            return_value=EmbeddingBatchResult(
                processed=50,
                failed=0,
                errors=["batch 1: Rate limited. Retry after 10 seconds"],
                retry_after_seconds=10,
            )
        )
        app.dependency_overrides[get_product_embedding_service] = lambda: service

        resp = client.post("/api/v1/embeddings/create", json={})

        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "10"
        body = resp.json()
        assert body["processed"] == 50
        assert body["retry_after_seconds"] == 10


class TestSeoEndpoints:
    def test_robots_txt(self, client):
        resp = client.get("/robots.txt")

        assert resp.status_code == 200
        assert "Disallow: /api/" in resp.text
        assert "Sitemap: https://www.shopwithcampex.com/sitemap.xml" in resp.text

    def test_sitemap_xml(self, client):
        service = MagicMock()
        service.build_sitemap = AsyncMock(return_value='<?xml version="1.0" encoding="utf-8"?>\n<urlset></urlset>')
        app.dependency_overrides[get_sitemap_service] = lambda: service

        resp = client.get("/sitemap.xml")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/xml")
        assert "<urlset>" in resp.text


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}
