from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import xmltodict

from campex_search.services.sitemap_service import STATIC_ROUTES, SitemapService, SitemapUrl, build_robots_txt

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def _collection(documents):
    collection = MagicMock()
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=documents)
    collection.find.return_value = cursor
    return collection


@pytest.fixture()
def db():
    collections = {
        "store_listings": _collection([{"_id": "p1", "updated_at": datetime(2026, 9, 30, 8, 0)}]),
        "categories": _collection([{"_id": "c1", "slug": "electronics"}, {"_id": "c2"}]),
        "universities": _collection([{"_id": "u1", "slug": "unilag"}]),
        "stores": _collection([{"_id": "s1"}]),
    }
    mock_db = MagicMock()
    mock_db.__getitem__.side_effect = collections.__getitem__
    return mock_db


class TestCollectRoutes:
    @pytest.mark.asyncio
    async def test_static_and_dynamic_routes(self, db):
        routes = await SitemapService(db, base_url="https://campex.test").collect_routes()

        paths = [route.path for route in routes]
        assert paths[: len(STATIC_ROUTES)] == [route.path for route in STATIC_ROUTES]
        assert paths[len(STATIC_ROUTES):] == [
            "/marketplace/products/p1",
            "/marketplace/products/category/electronics",
            "/marketplace/products/university/unilag",
            "/marketplace/vendors/s1",
        ]


class TestRender:
    def test_renders_urlset(self):
        service = SitemapService(MagicMock(), base_url="https://campex.test/")
        routes = [
            SitemapUrl("/", 1.0, "weekly"),
            SitemapUrl("/marketplace/products/p1", 0.8, "weekly", datetime(2026, 9, 30, 8, 0)),
        ]

        document = xmltodict.parse(service.render(routes, now=NOW))

        urls = document["urlset"]["url"]
        assert document["urlset"]["@xmlns"] == "http://www.sitemaps.org/schemas/sitemap/0.9"
        assert urls[0] == {
            "loc": "https://campex.test/",
            "lastmod": "2026-10-01T12:00:00+00:00",
            "changefreq": "weekly",
            "priority": "1.0",
        }
        assert urls[1]["loc"] == "https://campex.test/marketplace/products/p1"
        assert urls[1]["lastmod"] == "2026-09-30T08:00:00+00:00"
        assert urls[1]["priority"] == "0.8"


def test_robots_txt_points_at_sitemap():
    robots = build_robots_txt("https://campex.test/")

    assert "User-agent: *" in robots
    assert "Disallow: /private/" in robots
    assert robots.rstrip().endswith("Sitemap: https://campex.test/sitemap.xml")
