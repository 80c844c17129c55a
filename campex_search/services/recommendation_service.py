import logging
import re

from motor.motor_asyncio import AsyncIOMotorDatabase

from campex_search.core.config import settings
from campex_search.schemas.search import SearchRecommendation

logger = logging.getLogger(__name__)


class RecommendationService:
    """Type-ahead suggestions from a plain title match (no embeddings involved)"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.PRODUCTS_COLLECTION]

    async def recommend(self, query: str, limit: int) -> list[SearchRecommendation]:
        """
        Suggest in-stock listings whose title contains the query.

        Ordered by title then id, so identical inputs over an unchanged
        catalog always yield the same list.
        """
        limit = min(limit, settings.RECOMMENDATION_MAX_LIMIT)
        if limit <= 0:
            return []

        query = query.strip()
        if len(query) < settings.RECOMMENDATION_MIN_QUERY_LENGTH:
            return []

        # Escape regex metacharacters so user input is matched literally
        escaped_query = re.escape(query)
        filter_query = {
            "title": {"$regex": escaped_query, "$options": "i"},
            "is_active": True,
            "stock_quantity": {"$gt": 0},
        }
        projection = {"title": 1, "price": 1, "image_url": 1, "category_name": 1}

        cursor = self.collection.find(filter_query, projection).sort([("title", 1), ("_id", 1)]).limit(limit)
        products = await cursor.to_list(length=limit)

        return [
            SearchRecommendation(
                id=str(product["_id"]),
                title=product.get("title") or "",
                category_name=product.get("category_name"),
                image_url=product.get("image_url"),
                price=product.get("price") or 0,
            )
            for product in products
        ]
