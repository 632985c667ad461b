"""
Configuration management for the identity service
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url
from typing import List, Optional

DEFAULT_JWT_SECRET = "change-this-secret-in-prod"


class Settings(BaseSettings):
    """Identity service configuration loaded from environment variables"""

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database Configuration
    DATABASE_URL: Optional[str] = None
    PGHOST: str = "localhost"
    PGPORT: int = 5432
    PGDATABASE: str = "postgres"
    PGUSER: str = "postgres"
    PGPASSWORD: Optional[str] = None
    DB_SSL_REQUIRE: bool = True
    DB_POOL_SIZE: int = 10
    # recycle age: pooled connections older than this are replaced on checkout
    DB_IDLE_TIMEOUT_SECONDS: float = 30.0
    DB_CONNECT_TIMEOUT_SECONDS: float = 30.0
    DB_CREATE_SCHEMA: bool = True

    # Startup / Shutdown
    DB_STARTUP_RETRIES: int = 5
    DB_RETRY_DELAY_SECONDS: float = 1.0
    DB_RETRY_BACKOFF: float = 2.0
    DB_ALLOW_DEGRADED_START: bool = False
    DB_DRAIN_TIMEOUT_SECONDS: float = 10.0

    # Token Configuration
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60

    # Password Policy
    PASSWORD_HASH_ROUNDS: Optional[int] = None
    PASSWORD_MIN_LENGTH: int = 6

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def database_url(self) -> URL:
        """Return the SQLAlchemy URL, preferring DATABASE_URL over the PG* fields."""
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)
        return URL.create(
            "postgresql+psycopg",
            username=self.PGUSER,
            password=self.PGPASSWORD,
            host=self.PGHOST,
            port=self.PGPORT,
            database=self.PGDATABASE,
        )

    @property
    def uses_default_secret(self) -> bool:
        return self.JWT_SECRET == DEFAULT_JWT_SECRET


# Global settings instance
settings = Settings()
