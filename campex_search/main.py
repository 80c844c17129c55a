from contextlib import asynccontextmanager

from fastapi import FastAPI

from campex_search.core.config import settings
from campex_search.core.logging_config import setup_logging
from campex_search.core.mongo import close_mongo, connect_mongo
from campex_search.routers.embeddings import router as embeddings_router
from campex_search.routers.search import router as search_router
from campex_search.routers.seo import router as seo_router

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_mongo()
    yield
    # Shutdown
    await close_mongo()


app = FastAPI(
    title="Campex Search API",
    description="Hybrid catalog search, type-ahead recommendations, embedding indexing and SEO endpoints",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(search_router, prefix="/api/v1")
app.include_router(embeddings_router, prefix="/api/v1")
app.include_router(seo_router)


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
