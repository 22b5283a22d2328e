from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "stocksense"
    POSTGRES_USER: str = "stocksense"
    POSTGRES_PASSWORD: str = "stocksense"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts (e.g. sqlite:///stocksense.db)
    DATABASE_URL: Optional[str] = None
    SQLITE_TIMEOUT: float = 15.0
    RUN_MIGRATIONS: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"

    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    # Comma separated; "*" allows any origin
    CORS_ORIGINS: str = "*"

    DEFAULT_MIN_THRESHOLD: int = 5
    DEFAULT_MAX_CEILING: int = 20
    TRANSACTION_HISTORY_DEFAULT_LIMIT: int = 50
    TRANSACTION_HISTORY_MAX_LIMIT: int = 500
    FREE_TEXT_MAX_LENGTH: int = 500

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

@lru_cache
def get_settings() -> Settings:
    return Settings()
