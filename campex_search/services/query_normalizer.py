"""Turns raw search parameters into a canonical, validated query"""

import math

from campex_search.core.config import settings
from campex_search.core.errors import ValidationError
from campex_search.schemas.search import NormalizedQuery, SearchFilters, SearchMode, SearchParams


def normalize(params: SearchParams) -> NormalizedQuery:
    """
    Validate and clean a search request.

    - query: trimmed, inner whitespace collapsed; empty raises ValidationError
    - page/limit: absent or non-positive values fall back to defaults,
      limit is capped at SEARCH_MAX_LIMIT
    - weights: clamped to [0, 1] and made to sum to 1
    - filters: blank ids dropped, prices clamped to >= 0, inverted range swapped

    Args:
        params: Raw search parameters

    Returns:
        NormalizedQuery ready for retrieval
    """
    query = " ".join(params.query.split())
    if not query:
        raise ValidationError("Search query cannot be empty")

    page = params.page if params.page and params.page >= 1 else 1

    limit = params.limit if params.limit and params.limit >= 1 else settings.SEARCH_DEFAULT_LIMIT
    limit = min(limit, settings.SEARCH_MAX_LIMIT)

    if params.mode == SearchMode.FULL_TEXT:
        full_text_weight, semantic_weight = 1.0, 0.0
    elif params.mode == SearchMode.SEMANTIC:
        full_text_weight, semantic_weight = 0.0, 1.0
    else:
        full_text_weight, semantic_weight = normalize_weights(params.full_text_weight, params.semantic_weight)

    return NormalizedQuery(
        query=query,
        filters=normalize_filters(params.filters),
        page=page,
        limit=limit,
        full_text_weight=full_text_weight,
        semantic_weight=semantic_weight,
        mode=params.mode,
    )


def normalize_weights(full_text_weight: float | None, semantic_weight: float | None) -> tuple[float, float]:
    """Resolve the (full-text, semantic) weight pair so both lie in [0, 1] and sum to 1"""
    ft = _clamp_weight(full_text_weight)
    sem = _clamp_weight(semantic_weight)

    if ft is None and sem is None:
        return _default_weights()
    if sem is None:
        return ft, 1.0 - ft
    if ft is None:
        return 1.0 - sem, sem

    total = ft + sem
    if total == 0:
        return _default_weights()
    return ft / total, sem / total


def normalize_filters(filters: SearchFilters | None) -> SearchFilters:
    if filters is None:
        return SearchFilters()

    category_id = (filters.category_id or "").strip() or None
    university_id = (filters.university_id or "").strip() or None
    min_price = _clean_price(filters.min_price)
    max_price = _clean_price(filters.max_price)

    if min_price is not None and max_price is not None and min_price > max_price:
        min_price, max_price = max_price, min_price

    return SearchFilters(
        category_id=category_id,
        university_id=university_id,
        min_price=min_price,
        max_price=max_price,
    )


def _default_weights() -> tuple[float, float]:
    ft = settings.DEFAULT_FULL_TEXT_WEIGHT
    sem = settings.DEFAULT_SEMANTIC_WEIGHT
    total = ft + sem
    if total <= 0:
        return 0.5, 0.5
    return ft / total, sem / total


def _clamp_weight(weight: float | None) -> float | None:
    if weight is None or math.isnan(weight):
        return None
    return min(1.0, max(0.0, weight))


def _clean_price(price: float | None) -> float | None:
    if price is None or math.isnan(price):
        return None
    return max(0.0, price)
