"""Sitemap and robots.txt generation for the public marketplace pages"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import xmltodict
from motor.motor_asyncio import AsyncIOMotorDatabase

from campex_search.core.config import settings

logger = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


@dataclass(frozen=True)
class SitemapUrl:
    path: str
    priority: float
    changefreq: str
    lastmod: datetime | None = None


STATIC_ROUTES = [
    SitemapUrl("/", 1.0, "weekly"),
    SitemapUrl("/marketplace", 0.9, "daily"),
    SitemapUrl("/about", 0.8, "monthly"),
    SitemapUrl("/contact", 0.8, "monthly"),
    SitemapUrl("/legal/terms", 0.7, "yearly"),
    SitemapUrl("/legal/privacy", 0.7, "yearly"),
    SitemapUrl("/legal/cookies", 0.6, "yearly"),
    SitemapUrl("/login", 0.5, "monthly"),
    SitemapUrl("/register", 0.5, "monthly"),
    SitemapUrl("/onboarding/role", 0.5, "monthly"),
    SitemapUrl("/onboarding/student/profile", 0.5, "monthly"),
    SitemapUrl("/onboarding/vendor/profile", 0.5, "monthly"),
]


class SitemapService:
    def __init__(self, db: AsyncIOMotorDatabase, base_url: str | None = None):
        self.db = db
        self.base_url = (base_url or settings.SITE_URL).rstrip("/")

    async def collect_routes(self) -> list[SitemapUrl]:
        """Static pages plus one entry per active product, category, university and vendor"""
        products, categories, universities, vendors = await asyncio.gather(
            self.db[settings.PRODUCTS_COLLECTION].find({"is_active": True}, {"updated_at": 1}).to_list(length=None),
            self.db[settings.CATEGORIES_COLLECTION].find({}, {"slug": 1}).to_list(length=None),
            self.db[settings.UNIVERSITIES_COLLECTION].find({}, {"slug": 1}).to_list(length=None),
            self.db[settings.STORES_COLLECTION].find({}, {"updated_at": 1}).to_list(length=None),
        )

        logger.info(
            f"Sitemap sources: {len(products)} products, {len(categories)} categories, "
            f"{len(universities)} universities, {len(vendors)} vendors"
        )

        routes = list(STATIC_ROUTES)
        routes.extend(
            SitemapUrl(f"/marketplace/products/{p['_id']}", 0.8, "weekly", p.get("updated_at")) for p in products
        )
        routes.extend(
            SitemapUrl(f"/marketplace/products/category/{c['slug']}", 0.7, "weekly")
            for c in categories
            if c.get("slug")
        )
        routes.extend(
            SitemapUrl(f"/marketplace/products/university/{u['slug']}", 0.7, "weekly")
            for u in universities
            if u.get("slug")
        )
        routes.extend(
            SitemapUrl(f"/marketplace/vendors/{v['_id']}", 0.7, "weekly", v.get("updated_at")) for v in vendors
        )
        return routes

    def render(self, routes: list[SitemapUrl], now: datetime | None = None) -> str:
        """Render routes as sitemap XML; routes without a known lastmod use `now`"""
        now = now or datetime.now(UTC)
        document = {
            "urlset": {
                "@xmlns": SITEMAP_NAMESPACE,
                "url": [
                    {
                        "loc": f"{self.base_url}{route.path}",
                        "lastmod": _format_lastmod(route.lastmod or now),
                        "changefreq": route.changefreq,
                        "priority": f"{route.priority:.1f}",
                    }
                    for route in routes
                ],
            }
        }
        return xmltodict.unparse(document, pretty=True)

    async def build_sitemap(self) -> str:
        return self.render(await self.collect_routes())


def build_robots_txt(base_url: str) -> str:
    base_url = base_url.rstrip("/")
    return "\n".join(
        [
            "User-agent: Googlebot",
            "Disallow: /nogooglebot/",
            "",
            "User-agent: *",
            "Disallow: /private/",
            "Disallow: /api/",
            "Allow: /",
            "",
            f"Sitemap: {base_url}/sitemap.xml",
            "",
        ]
    )


def _format_lastmod(value: datetime | str) -> str:
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat(timespec="seconds")
