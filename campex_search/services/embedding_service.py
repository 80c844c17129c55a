"""Embedding client for product and query text using the OpenAI embeddings API"""

import logging
import math
import re
from functools import lru_cache

import openai
from openai import AsyncOpenAI

from campex_search.core.config import settings
from campex_search.core.errors import RateLimited, UpstreamError, ValidationError
from campex_search.schemas.search import EmbeddingResult, EmbeddingUsage

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60

_NEWLINES = re.compile(r"\n+")


class EmbeddingService:
    """
    Turns text into fixed-length vectors.

    One upstream call per invocation (one per batch for `embed_batch`).
    The SDK's built-in retries are disabled: a 429 surfaces as `RateLimited`
    and the caller owns the retry policy.
    """

    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            max_retries=0,
            timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
        )
        self.model = settings.EMBEDDING_MODEL
        self.dimensions = settings.EMBEDDING_DIMENSION
        self.max_chars = settings.EMBEDDING_MAX_CHARS

    def clean_text(self, text: str) -> str:
        """Trim, fold newline runs into a single space and truncate to the safe maximum length"""
        return _NEWLINES.sub(" ", text.strip())[: self.max_chars]

    async def embed(self, text: str) -> EmbeddingResult:
        """Create an embedding for a single text"""
        cleaned = self.clean_text(text)
        if not cleaned:
            raise ValidationError("Text cannot be empty")

        response = await self._create(cleaned)
        usage = response.usage

        return EmbeddingResult(
            embedding=response.data[0].embedding,
            model=response.model,
            usage=EmbeddingUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0),
                total_tokens=getattr(usage, "total_tokens", 0),
            ),
        )

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Create embeddings for several texts in a single upstream request.

        Returns:
            Embedding vectors in the same order as `texts`
        """
        if not texts:
            return []

        cleaned = [self.clean_text(text) for text in texts]
        empty_indices = [i for i, text in enumerate(cleaned) if not text]
        if empty_indices:
            raise ValidationError(f"Empty text at indices: {', '.join(str(i) for i in empty_indices)}")

        response = await self._create(cleaned)

        # Upstream may return items out of order
        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(cleaned):
            raise UpstreamError(None, f"Expected {len(cleaned)} embeddings, got {len(items)}")

        logger.info(f"Created {len(items)} embeddings in one batch")
        return [item.embedding for item in items]

    async def _create(self, payload: str | list[str]):
        try:
            return await self.client.embeddings.create(
                model=self.model,
                input=payload,
                dimensions=self.dimensions,
                encoding_format="float",
            )
        except openai.RateLimitError as e:
            retry_after = _parse_retry_after(e.response.headers.get("retry-after"))
            logger.warning(f"Embedding API rate limited, retry after {retry_after}s")
            raise RateLimited(retry_after) from e
        except openai.APIStatusError as e:
            logger.error(f"Embedding API error: {e.status_code} - {e.message}")
            raise UpstreamError(e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            logger.error(f"Embedding API unreachable: {e}")
            raise UpstreamError(None, f"Embedding API unreachable: {e}") from e


def _parse_retry_after(value: str | None) -> int:
    if not value:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = float(value)
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS
    if not math.isfinite(seconds):
        return DEFAULT_RETRY_AFTER_SECONDS
    return max(0, int(seconds))


def build_product_text(title: str, description: str | None = None, category_name: str | None = None) -> str:
    """Combine product fields into the text that gets embedded"""
    parts = [part.strip() for part in (title, description, category_name) if part and part.strip()]
    return ". ".join(parts)


@lru_cache
def get_embedding_service() -> EmbeddingService:
    """Get cached embedding service instance"""
    return EmbeddingService()
