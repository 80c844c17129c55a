import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from campex_search.core.config import settings
from campex_search.core.errors import RateLimited, SearchError, ValidationError
from campex_search.core.mongo import get_mongo_db
from campex_search.schemas.search import (
    Pagination,
    SearchFilters,
    SearchMode,
    SearchParams,
    SearchRecommendationsResponse,
    SearchResponse,
)
from campex_search.services.recommendation_service import RecommendationService
from campex_search.services.search_service import SearchService, get_search_service

router = APIRouter(prefix="/search", tags=["search"])
logger = logging.getLogger(__name__)


class RecommendationRequest(BaseModel):
    """Type-ahead request"""
    q: str = Field(default="", description="Partial query typed by the user")
    limit: int = Field(default=settings.RECOMMENDATION_DEFAULT_LIMIT, description="Maximum suggestions")


def get_recommendation_service() -> RecommendationService:
    db = get_mongo_db()
    return RecommendationService(db)


def _failure(params: SearchParams, status_code: int, error: str, headers: dict[str, str] | None = None) -> JSONResponse:
    """SearchResponse with success=false and no data"""
    page = params.page if params.page and params.page >= 1 else 1
    limit = params.limit if params.limit and params.limit >= 1 else settings.SEARCH_DEFAULT_LIMIT
    limit = min(limit, settings.SEARCH_MAX_LIMIT)
    body = SearchResponse(
        success=False,
        data=[],
        pagination=Pagination(page=page, limit=limit, total=0, total_pages=0),
        query=params.query.strip(),
        error=error,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True), headers=headers)


async def _run_search(service: SearchService, params: SearchParams) -> SearchResponse | JSONResponse:
    """Run a search, turning every failure into a success=false SearchResponse"""
    try:
        return await service.search(params)
    except ValidationError as e:
        return _failure(params, status.HTTP_400_BAD_REQUEST, e.message)
    except RateLimited as e:
        logger.warning(f"Search rate limited: {e}")
        return _failure(
            params,
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Search is temporarily unavailable. Please try again in a moment.",
            headers={"Retry-After": str(e.retry_after_seconds)},
        )
    except SearchError as e:
        logger.error(f"Search upstream failure: {e}")
        return _failure(params, status.HTTP_502_BAD_GATEWAY, "Search failed. Please try again.")
    except Exception:
        logger.exception("Unexpected search error")
        return _failure(
            params, status.HTTP_500_INTERNAL_SERVER_ERROR, "An error occurred while searching. Please try again."
        )


@router.get("", response_model=SearchResponse)
async def search_products(
    q: str = Query("", description="Search query"),
    category: str | None = Query(None, description="Category id filter"),
    university: str | None = Query(None, description="University id filter"),
    min_price: float | None = Query(None, alias="minPrice"),
    max_price: float | None = Query(None, alias="maxPrice"),
    page: int | None = Query(None),
    limit: int | None = Query(None),
    ft_weight: float | None = Query(None, alias="ftWeight", description="Full-text weight in [0, 1]"),
    sem_weight: float | None = Query(None, alias="semWeight", description="Semantic weight in [0, 1]"),
    mode: SearchMode = Query(SearchMode.HYBRID),
    service: SearchService = Depends(get_search_service),
):
    """
    Hybrid product search over the marketplace catalog.

    📝 **Examples:**
        ```
        /search?q=rice cooker
        /search?q=calculus textbook&category=books-stationery&maxPrice=5000
        /search?q=iphone charger&ftWeight=0.8
        /search?q=snacks&mode=full_text
        ```
    """
    params = SearchParams(
        query=q,
        filters=SearchFilters(
            category_id=category,
            university_id=university,
            min_price=min_price,
            max_price=max_price,
        ),
        page=page,
        limit=limit,
        full_text_weight=ft_weight,
        semantic_weight=sem_weight,
        mode=mode,
    )
    return await _run_search(service, params)


@router.post("", response_model=SearchResponse)
async def search_products_json(
    params: SearchParams,
    service: SearchService = Depends(get_search_service),
):
    """Same as GET /search, with a JSON SearchParams body"""
    return await _run_search(service, params)


@router.post("/recommendations", response_model=SearchRecommendationsResponse)
async def search_recommendations(
    request: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Type-ahead suggestions by title match (no embeddings, in-stock listings only)"""
    try:
        recommendations = await service.recommend(request.q, request.limit)
        return SearchRecommendationsResponse(success=True, recommendations=recommendations)
    except Exception:
        logger.exception("Recommendations error")
        return SearchRecommendationsResponse(
            success=False, recommendations=[], error="Failed to fetch recommendations"
        )


@router.get("/health")
async def search_health():
    """Check if search service is healthy"""
    try:
        search_service = get_search_service()
        return await search_service.get_health_status()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
