"""MongoDB access for the store listings catalog"""

import logging
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from campex_search.core.config import settings
from campex_search.schemas.search import SearchFilters

logger = logging.getLogger(__name__)

INDEX_PROJECTION = {"title": 1, "description": 1, "category_name": 1, "store_name": 1}
EMBEDDING_PROJECTION = {**INDEX_PROJECTION, "category_id": 1, "university_id": 1, "price": 1}


def id_match_values(product_ids: list[str]) -> list[str | ObjectId]:
    """Match ids stored either as strings or as ObjectIds"""
    values: list[str | ObjectId] = []
    for product_id in product_ids:
        values.append(product_id)
        try:
            values.append(ObjectId(product_id))
        except InvalidId:
            pass
    return values


class CatalogService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.PRODUCTS_COLLECTION]

    @staticmethod
    def build_filter_query(filters: SearchFilters | None) -> dict[str, Any]:
        """Translate search filters into a Mongo match on active listings"""
        query: dict[str, Any] = {"is_active": True}
        if filters is None:
            return query

        if filters.category_id:
            query["category_id"] = filters.category_id
        if filters.university_id:
            query["university_id"] = filters.university_id

        price_range = {}
        if filters.min_price is not None:
            price_range["$gte"] = filters.min_price
        if filters.max_price is not None:
            price_range["$lte"] = filters.max_price
        if price_range:
            query["price"] = price_range

        return query

    async def get_products_by_ids(
        self, product_ids: list[str], filters: SearchFilters | None = None
    ) -> dict[str, dict[str, Any]]:
        """
        Batch fetch listings by id, dropping those that fail the filters.

        Returns:
            Mapping of product id -> listing document
        """
        if not product_ids:
            return {}

        query = self.build_filter_query(filters)
        query["_id"] = {"$in": id_match_values(product_ids)}

        products = {}
        async for product in self.collection.find(query, {"embedding": 0}):
            products[str(product["_id"])] = product
        return products

    async def get_active_products(self) -> list[dict[str, Any]]:
        """All active listings with the fields used for keyword indexing"""
        cursor = self.collection.find({"is_active": True}, INDEX_PROJECTION)
        return await cursor.to_list(length=None)

    async def get_products_needing_embeddings(self, limit: int, force_update: bool = False) -> list[dict[str, Any]]:
        """Active listings that have not been embedded yet (or all, when forcing)"""
        query: dict[str, Any] = {"is_active": True}
        if not force_update:
            query["embedded_at"] = None

        cursor = self.collection.find(query, EMBEDDING_PROJECTION).sort("_id", 1).limit(limit)
        return await cursor.to_list(length=limit)

    async def mark_embedded(self, product_ids: list[str]) -> int:
        if not product_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": id_match_values(product_ids)}},
            {"$set": {"embedded_at": datetime.now(UTC), "embedding_model": settings.EMBEDDING_MODEL}},
        )
        logger.info(f"Marked {result.modified_count} listings as embedded")
        return result.modified_count

    async def count_products(self) -> int:
        return await self.collection.count_documents({"is_active": True})
