import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from campex_search.schemas.catalog import EmbeddingBatchResult, EmbeddingRequest, EmbeddingStats
from campex_search.services.product_embedding_service import (
    ProductEmbeddingService,
    get_product_embedding_service,
)

router = APIRouter(prefix="/embeddings", tags=["embeddings"])
logger = logging.getLogger(__name__)


@router.post("/create", response_model=EmbeddingBatchResult)
async def create_embeddings(
    request: EmbeddingRequest,
    service: ProductEmbeddingService = Depends(get_product_embedding_service),
):
    """
    Embed listings that don't have vectors yet and store them in Qdrant.

    Listings are sent to OpenAI in batches (one request per batch). A
    rate-limited batch stops the run with HTTP 429; the body still reports
    the batches stored before the limit was hit.

    Example:
        ```json
        {"limit": 200, "force_update": false}
        ```
    """
    try:
        result = await service.embed_products(limit=request.limit, force_update=request.force_update)
    except Exception as e:
        logger.exception("Embedding creation failed")
        raise HTTPException(status_code=500, detail=f"Embedding creation failed: {str(e)}") from e

    if result.retry_after_seconds is not None:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=result.model_dump(),
            headers={"Retry-After": str(result.retry_after_seconds)},
        )
    return result


@router.get("/stats", response_model=EmbeddingStats)
async def get_embedding_stats(service: ProductEmbeddingService = Depends(get_product_embedding_service)):
    """How many active listings have vectors in Qdrant"""
    try:
        return await service.get_stats()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get statistics: {str(e)}") from e
