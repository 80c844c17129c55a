from pydantic import BaseModel, Field


class EmbeddingRequest(BaseModel):
    """Request to embed catalog products"""

    limit: int = Field(default=500, ge=1, le=10000, description="Maximum number of products to process")
    force_update: bool = Field(default=False, description="Re-embed products that already have embeddings")


class EmbeddingBatchResult(BaseModel):
    """Outcome of an embedding indexing run"""

    processed: int
    failed: int
    errors: list[str]
    retry_after_seconds: int | None = Field(
        default=None, description="Set when the embedding API rate limited the run and it stopped early"
    )


class EmbeddingStats(BaseModel):
    total_products: int
    products_with_embeddings: int
    products_without_embeddings: int
    progress_percentage: float
