from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Campex Search API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB settings
    MONGO_URL: str
    MONGO_DB_NAME: str = "campex"

    # Collection names
    PRODUCTS_COLLECTION: str = "store_listings"
    CATEGORIES_COLLECTION: str = "categories"
    UNIVERSITIES_COLLECTION: str = "universities"
    STORES_COLLECTION: str = "stores"

    # OpenAI settings
    OPENAI_API_KEY: str
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536  # Dimension for text-embedding-3-small
    EMBEDDING_MAX_CHARS: int = 8000  # Inputs are truncated to this many characters
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_BATCH_SIZE: int = 50

    # Qdrant settings
    QDRANT_PATH: str = "./qdrant_db"  # Local storage path
    QDRANT_COLLECTION_NAME: str = "campex_products"

    # Search settings
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 100
    SEARCH_CANDIDATE_LIMIT: int = 500  # Candidates retrieved from each source before fusion
    DEFAULT_FULL_TEXT_WEIGHT: float = 0.5
    DEFAULT_SEMANTIC_WEIGHT: float = 0.5

    # Recommendation settings
    RECOMMENDATION_DEFAULT_LIMIT: int = 5
    RECOMMENDATION_MAX_LIMIT: int = 10
    RECOMMENDATION_MIN_QUERY_LENGTH: int = 2

    # SEO settings
    SITE_URL: str = "https://www.shopwithcampex.com"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
