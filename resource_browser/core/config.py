from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "resource-browser"

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    DATABASE_URL: str
    REDIS_URL: str
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.4

    COUNT_CACHE_ENABLED: bool = True
    # Only counts strictly above the threshold are memoized.
    COUNT_CACHE_THRESHOLD: int = 100_000
    COUNT_CACHE_TTL_SECONDS: int = 600
    COUNT_CACHE_KEY_PREFIX: str = "resource_browser:cache"

    # Comma-separated modules whose models on db.session.Base are registered at startup.
    RESOURCE_MODULES: str = ""

    DEFAULT_PER_PAGE: int = 100
    PAGE_PARAM: str = "page"
    PER_PAGE_PARAM: str = "limit"
    SEARCH_PARAM: str = "search"
    ORDER_FIELD_PARAM: str = "_of"
    ORDER_DIR_PARAM: str = "_ow"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def resource_modules_list(self) -> List[str]:
        return [m.strip() for m in self.RESOURCE_MODULES.split(",") if m.strip()]

settings = Settings()
