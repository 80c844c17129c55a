from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse, Response

from campex_search.core.config import settings
from campex_search.core.mongo import get_mongo_db
from campex_search.services.sitemap_service import SitemapService, build_robots_txt

router = APIRouter(tags=["SEO"])


def get_sitemap_service() -> SitemapService:
    db = get_mongo_db()
    return SitemapService(db)


@router.get("/sitemap.xml")
async def sitemap(service: SitemapService = Depends(get_sitemap_service)):
    """Sitemap of static pages, products, categories, universities and vendors."""
    try:
        xml = await service.build_sitemap()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Failed to build sitemap: {str(e)}"
        ) from e
    return Response(
        content=xml,
        media_type="application/xml",
        headers={"Cache-Control": "public, max-age=3600, s-maxage=86400"},
    )


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt():
    return PlainTextResponse(build_robots_txt(settings.SITE_URL), headers={"Cache-Control": "public, max-age=86400"})
