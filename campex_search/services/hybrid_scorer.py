"""
Hybrid scorer that blends full-text and semantic relevance into one ranking.

Each source's raw scores live on their own scale (BM25 is unbounded, cosine
similarity is roughly [-1, 1]), so both sets are min-max normalized into
[0, 1] independently before the weighted sum. An item missing from a source
gets 0 for that source.
"""

import logging
from collections.abc import Mapping

from campex_search.core.errors import EmptyResultError
from campex_search.schemas.search import RankedItem

logger = logging.getLogger(__name__)

# Final scores are rounded before sorting so float noise cannot reorder ties
SCORE_PRECISION = 9


def min_max_normalize(scores: Mapping[str, float]) -> dict[str, float]:
    """
    Scale scores into [0, 1].

    A degenerate set (every score equal, including a single item) maps to
    1.0 uniformly.
    """
    if not scores:
        return {}

    low = min(scores.values())
    high = max(scores.values())
    spread = high - low

    if spread == 0:
        return {item_id: 1.0 for item_id in scores}
    return {item_id: (value - low) / spread for item_id, value in scores.items()}


def score(
    full_text_results: Mapping[str, float],
    semantic_results: Mapping[str, float],
    weights: tuple[float, float],
) -> list[RankedItem]:
    """
    Fuse full-text and semantic scores.

    Args:
        full_text_results: item id -> raw full-text score
        semantic_results: item id -> raw vector similarity
        weights: (full_text_weight, semantic_weight)

    Returns:
        Items sorted by descending fused score, ties by ascending id

    Raises:
        EmptyResultError: if both inputs are empty
    """
    if not full_text_results and not semantic_results:
        raise EmptyResultError()

    full_text_weight, semantic_weight = weights
    full_text_norm = min_max_normalize(full_text_results)
    semantic_norm = min_max_normalize(semantic_results)

    ranked = []
    for item_id in full_text_norm.keys() | semantic_norm.keys():
        ft = full_text_norm.get(item_id, 0.0)
        sem = semantic_norm.get(item_id, 0.0)
        fused = round(full_text_weight * ft + semantic_weight * sem, SCORE_PRECISION)
        ranked.append(RankedItem(id=item_id, relevance_score=fused, full_text_score=ft, semantic_score=sem))

    ranked.sort(key=lambda item: (-item.relevance_score, item.id))

    logger.debug(
        f"Fused {len(full_text_norm)} full-text and {len(semantic_norm)} semantic scores "
        f"into {len(ranked)} ranked items"
    )
    return ranked
