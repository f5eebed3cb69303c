"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- DATABASE_URL has no default (will fail if not set)
- STORE_BACKEND=memory swaps the SQL store for the in-process virtual store
"""
import json
import logging
from typing import List, Union
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Default CORS origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


class Settings(BaseSettings):
    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Filmflow"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # Database - NO DEFAULT (will fail if not set)
    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v):
        """Convert plain postgres:// URLs to asyncpg format."""
        if not v:
            return v
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://") and "+asyncpg" not in v:
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Persistence backend: "sql" or "memory"
    STORE_BACKEND: str = "sql"

    @field_validator("STORE_BACKEND", mode="before")
    @classmethod
    def normalize_store_backend(cls, v):
        v = (v or "sql").strip().lower()
        if v not in ("sql", "memory"):
            raise ValueError("STORE_BACKEND must be 'sql' or 'memory'")
        return v

    # Database Pool Configuration
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # 1 hour

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Union[str, List[str]] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Readiness
    ORDER_READY_THRESHOLD_PERCENT: float = 95.0

    # Audit sink
    AUDIT_LOG_ENABLED: bool = True

    # Read endpoints
    STOCK_MOVEMENTS_DEFAULT_LIMIT: int = 100
    STOCK_MOVEMENTS_MAX_LIMIT: int = 500
    AUDIT_LOGS_DEFAULT_LIMIT: int = 200
    AUDIT_LOGS_MAX_LIMIT: int = 500

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Warn about insecure configuration in production."""
        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                logger.warning("SECURITY WARNING: DEBUG=True in production environment")
            if self.STORE_BACKEND == "memory":
                logger.warning(
                    "STORE_BACKEND=memory in production: data will not survive a restart"
                )
            if self.ORDER_READY_THRESHOLD_PERCENT != 95.0:
                logger.warning(
                    "ORDER_READY_THRESHOLD_PERCENT=%s differs from the 95%% readiness contract",
                    self.ORDER_READY_THRESHOLD_PERCENT,
                )
        return self


settings = Settings()
