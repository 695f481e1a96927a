from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_USER: str = Field(default="storefront")
    DB_PASSWORD: str = Field(default="storefront")
    DB_NAME: str = Field(default="storefront")
    DATABASE_URL: str | None = Field(default=None)
    DB_SYNC_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=20)
    DB_POOL_TIMEOUT: int = Field(default=30)

    REDIS_URL: str | None = Field(default=None)

    # sql | remote | memory
    CATALOG_BACKEND: str = Field(default="sql")
    CATALOG_BASE_URL: str | None = Field(default=None)
    CATALOG_TIMEOUT_SECONDS: float = Field(default=10.0)
    CATALOG_USER_AGENT: str = Field(default="storefront-catalog/0.1")
    CATALOG_MAX_ATTEMPTS: int = Field(default=3)

    # exclude_self | include_self
    FACET_POLICY: str = Field(default="exclude_self")
    FACET_CACHE_TTL_SECONDS: int = Field(default=120)
    ITEMS_CACHE_TTL_SECONDS: int = Field(default=60)
    VOCABULARY_TTL_SECONDS: int = Field(default=300)

    URL_ROOT: str = Field(default="cars")
    DEFAULT_PAGE_SIZE: int = Field(default=20)
    MAX_PAGE_SIZE: int = Field(default=100)

    @property
    def sync_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


settings = Settings()
