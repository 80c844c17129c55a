"""
In-process full-text scoring of catalog listings with rank-bm25.

The index is held in memory and rebuilt from MongoDB on demand; see
SearchService._ensure_bm25_initialized.
"""

import logging
import re
from functools import lru_cache
from typing import Any

import numpy as np
from rank_bm25 import BM25Okapi

logger = logging.getLogger(__name__)

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


class BM25Service:
    """
    Keyword relevance over listing text (title, description, category, store).

    Scores are raw BM25 values on an unbounded scale; the hybrid scorer
    min-max normalizes them before blending with semantic similarity.

    Example:
        Query: "hp laptop charger"
        - BM25 favours listings containing "hp", "laptop" and "charger"
        - Semantic search might also surface "notebook power adapter"
    """

    def __init__(self):
        self._index: BM25Okapi | None = None
        self._product_ids: list[str] = []
        self._doc_lengths: list[int] = []
        self._doc_terms: list[frozenset[str]] = []

    @property
    def is_initialized(self) -> bool:
        return self._index is not None

    @staticmethod
    def tokenize(text: str) -> list[str]:
        """Lowercase and split on anything that is not a letter or digit"""
        return [token for token in _TOKEN_SPLIT.split(text.lower()) if token]

    def build_index(self, documents: list[dict[str, Any]]) -> None:
        """
        Replace the index with the given listings.

        Args:
            documents: dicts with 'id' and 'text' keys
        """
        if not documents:
            logger.warning("⚠️ No listings to index for full-text search")
            self.reset()
            return

        corpus = [self.tokenize(doc["text"]) for doc in documents]
        self._product_ids = [str(doc["id"]) for doc in documents]
        self._doc_lengths = [len(tokens) for tokens in corpus]
        self._doc_terms = [frozenset(tokens) for tokens in corpus]
        self._index = BM25Okapi(corpus)

        logger.info(f"✅ Full-text index built over {len(self._product_ids)} listings")

    def reset(self) -> None:
        """Drop the index so the next search rebuilds it from the catalog"""
        self._index = None
        self._product_ids = []
        self._doc_lengths = []
        self._doc_terms = []

    def search(self, query: str, top_k: int = 100) -> dict[str, float]:
        """
        Score listings against a query.

        Returns:
            product id -> BM25 score, best first, at most top_k entries and
            only listings sharing at least one token with the query. Okapi
            IDF goes negative for terms in most listings, so scores may be
            negative; callers normalize them.
        """
        if self._index is None:
            logger.warning("⚠️ Full-text index not built, returning no scores")
            return {}

        tokens = self.tokenize(query)
        if not tokens:
            return {}

        query_terms = set(tokens)
        matches = np.array([i for i, terms in enumerate(self._doc_terms) if terms & query_terms], dtype=int)
        if matches.size == 0:
            return {}

        scores = self._index.get_scores(tokens)[matches]
        # Stable sort on negated scores keeps corpus order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]

        return {self._product_ids[matches[i]]: float(scores[i]) for i in order}

    def get_stats(self) -> dict[str, Any]:
        lengths = self._doc_lengths
        return {
            "is_initialized": self.is_initialized,
            "total_documents": len(self._product_ids),
            "avg_doc_length": sum(lengths) / len(lengths) if lengths else 0,
        }


@lru_cache
def get_bm25_service() -> BM25Service:
    return BM25Service()
