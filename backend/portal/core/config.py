"""
Application configuration module.

Provides centralized, environment-safe configuration management
with sensible defaults for development.
"""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables or a ``.env`` file.

    Attributes:
        APP_NAME: Application name.
        ENVIRONMENT: development, testing or production.
        DATABASE_URL: SQLAlchemy database URL.
        SECRET_KEY: Key used to sign JWTs.
        TOP_TIER_ROLE: Role name that receives the top tier.
        ELEVATED_TIER_ROLE: Role name that receives the elevated tier.
    """

    # Application metadata
    APP_NAME: str = Field(default="Analytics Hub Access Portal")
    APP_VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./portal.db")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # Tokens
    SECRET_KEY: str = Field(default="change-me-in-production-at-least-32-characters")
    ALGORITHM: str = Field(default="HS256")
    ISSUER: str = Field(default="analytics-hub")
    AUDIENCE: str = Field(default="analytics-hub-portal")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7)

    # Account protection
    MAX_LOGIN_ATTEMPTS: int = Field(default=5)
    INACTIVITY_LIMIT_MINUTES: int = Field(default=30)
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    LOGIN_RATE_LIMIT: int = Field(default=5)

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:5173,http://localhost:3000")
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: str = Field(default="GET,POST,PUT,PATCH,DELETE,OPTIONS")
    CORS_ALLOW_HEADERS: str = Field(default="Authorization,Content-Type,X-Request-ID")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="console")

    # Role tiers
    TOP_TIER_ROLE: str = Field(default="super_admin")
    ELEVATED_TIER_ROLE: str = Field(default="admin")

    # Bootstrap account
    SUPER_ADMIN_NAME: str = Field(default="Super Administrator")
    SUPER_ADMIN_EMAIL: str = Field(default="superadmin@analyticshub.local")
    SUPER_ADMIN_PASSWORD: str = Field(default="ChangeMe123!")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @staticmethod
    def _split(value: str) -> list[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return self._split(self.CORS_ORIGINS)

    @property
    def cors_methods_list(self) -> list[str]:
        return self._split(self.CORS_ALLOW_METHODS)

    @property
    def cors_headers_list(self) -> list[str]:
        return self._split(self.CORS_ALLOW_HEADERS)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        logger.info(f"Settings loaded: app_name={_settings.APP_NAME}, environment={_settings.ENVIRONMENT}")
    return _settings


settings = get_settings()
