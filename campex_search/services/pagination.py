import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from campex_search.schemas.search import Pagination

T = TypeVar("T")


@dataclass(frozen=True)
class PaginatedResults(Generic[T]):
    data: list[T]
    pagination: Pagination


def paginate(ranked_results: list[T], page: int, limit: int) -> PaginatedResults[T]:
    """Slice ranked results into one page. Pages past the end are empty, not errors."""
    page = max(1, page)
    limit = max(1, limit)

    total = len(ranked_results)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit

    return PaginatedResults(
        data=ranked_results[start:start + limit],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )
