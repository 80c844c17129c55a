from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SearchMode(str, Enum):
    """Which retrieval signals a search uses"""

    HYBRID = "hybrid"
    FULL_TEXT = "full_text"
    SEMANTIC = "semantic"


class SearchFilters(BaseModel):
    """Optional catalog filters applied to search results"""

    model_config = ConfigDict(populate_by_name=True)

    category_id: str | None = Field(None, alias="categoryId")
    university_id: str | None = Field(None, alias="universityId")
    min_price: float | None = Field(None, alias="minPrice")
    max_price: float | None = Field(None, alias="maxPrice")


class SearchParams(BaseModel):
    """Raw search request as submitted by the marketplace UI"""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="Free-text search query")
    filters: SearchFilters | None = None
    page: int | None = None
    limit: int | None = None
    full_text_weight: float | None = Field(None, alias="fullTextWeight")
    semantic_weight: float | None = Field(None, alias="semanticWeight")
    mode: SearchMode = SearchMode.HYBRID


class NormalizedQuery(BaseModel):
    """Canonical search request produced by the query normalizer"""

    query: str
    filters: SearchFilters
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    full_text_weight: float = Field(..., ge=0, le=1)
    semantic_weight: float = Field(..., ge=0, le=1)
    mode: SearchMode = SearchMode.HYBRID


class RankedItem(BaseModel):
    """Fused score for one catalog item, with its normalized per-source components"""

    model_config = ConfigDict(frozen=True)

    id: str
    relevance_score: float
    full_text_score: float = 0.0
    semantic_score: float = 0.0


class SearchResultProduct(BaseModel):
    """Catalog item projection returned by search"""

    model_config = ConfigDict(frozen=True)

    id: str
    store_id: str
    title: str
    description: str | None = None
    price: float
    image_url: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    stock_quantity: int = 0
    is_active: bool = True
    store_name: str | None = None
    university_short_code: str | None = None
    relevance_score: float


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")


class SearchResponse(BaseModel):
    """Response body of the search endpoint"""

    success: bool
    data: list[SearchResultProduct]
    pagination: Pagination
    query: str
    error: str | None = None


class SearchRecommendation(BaseModel):
    """Lightweight projection used for type-ahead suggestions"""

    id: str
    title: str
    category_name: str | None = None
    image_url: str | None = None
    price: float


class SearchRecommendationsResponse(BaseModel):
    success: bool
    recommendations: list[SearchRecommendation]
    error: str | None = None


class EmbeddingUsage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingResult(BaseModel):
    """Single embedding returned by the embedding client"""

    embedding: list[float]
    model: str
    usage: EmbeddingUsage
