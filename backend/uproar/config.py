"""
Configuration settings for the Full Uproar commerce core.
Loads from environment variables with validation.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Full Uproar Commerce Core"
    DEBUG: bool = False
    FRONTEND_URL: str = "http://localhost:3000"
    SECRET_KEY: str

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 40

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Inventory transactions (seconds)
    INVENTORY_TX_MAX_WAIT_SECONDS: float = 5.0
    INVENTORY_TX_TIMEOUT_SECONDS: float = 10.0
    INVENTORY_RETRY_ATTEMPTS: int = 3
    INVENTORY_RETRY_WAIT_MIN_SECONDS: float = 0.05
    INVENTORY_RETRY_WAIT_MAX_SECONDS: float = 1.0

    # Reporting
    LOW_STOCK_THRESHOLD: int = 10

    def validate_production_settings(self):
        """Validate transaction bounds and secrets before serving traffic."""
        if self.INVENTORY_TX_MAX_WAIT_SECONDS <= 0 or self.INVENTORY_TX_TIMEOUT_SECONDS <= 0:
            raise ValueError("Inventory transaction max wait and timeout must be positive.")
        if self.INVENTORY_TX_TIMEOUT_SECONDS < self.INVENTORY_TX_MAX_WAIT_SECONDS:
            raise ValueError(
                "INVENTORY_TX_TIMEOUT_SECONDS must not be shorter than INVENTORY_TX_MAX_WAIT_SECONDS."
            )
        if self.INVENTORY_RETRY_ATTEMPTS < 1:
            raise ValueError("INVENTORY_RETRY_ATTEMPTS must be at least 1.")
        if not self.DEBUG and len(self.SECRET_KEY) < 16:
            raise ValueError(
                "SECRET_KEY must be at least 16 characters in production. "
                "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader with production validation."""
    settings = Settings()
    settings.validate_production_settings()
    return settings
