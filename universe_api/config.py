"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set or no matching file exists
            .env.{APP_ENV} file path otherwise (defaults to .env.dev)
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env_file = f".env.{os.getenv('APP_ENV', 'dev')}"
        return env_file if os.path.exists(env_file) else None

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "UniVerse API"
    APP_ENV: str = "dev"
    DB_URL: str  # Required, defined in .env files

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 0  # Hard cap: never more than DB_POOL_SIZE connections
    DB_POOL_TIMEOUT: int = 2  # Seconds to wait for a free connection
    DB_POOL_RECYCLE: int = 1800
    DB_CONNECT_TIMEOUT: int = 10

    # ==================== Sessions & Tokens ====================
    SESSION_SECRET: str  # Required, defined in .env files
    SESSION_TTL_DAYS: int = 7
    EMAIL_TOKEN_TTL_HOURS: int = 24
    BCRYPT_ROUNDS: int = 10

    # ==================== Registration Rules ====================
    STUDENT_EMAIL_DOMAIN: str = "@stu.yasar.edu.tr"
    STAFF_EMAIL_DOMAIN: str = "@yasar.edu.tr"
    PASSWORD_MIN_LENGTH: int = 8
    USER_EMAIL_MAX_LENGTH: int = 255

    # ==================== Lost & Found ====================
    ITEMS_DEFAULT_LIMIT: int = 50
    ITEMS_MAX_LIMIT: int = 100
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_FILES: int = 5
    MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:5173"  # Comma-separated allowed origins

    # ==================== Rate Limiting ====================
    RATE_LIMIT_AUTH: str = "20/minute"
    RATE_LIMIT_WRITE: str = "60/minute"
    RATE_LIMIT_READ: str = "120/minute"

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None  # Path to enable file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    # ==================== Redis Caching ====================
    REDIS_URL: str = "redis://localhost:6379/0"
    ROOM_CACHE_TTL: int = 300
    CACHE_ENABLED: bool = False

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL is provided and uses a supported async driver."""
        if not v:
            raise ValueError("DB_URL is required but not provided in environment variables")
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("DB_URL must be a postgresql+asyncpg:// or sqlite+aiosqlite:// URL")
        return v

    @field_validator('SESSION_SECRET')
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """Validate that SESSION_SECRET is provided and sufficiently long."""
        if not v:
            raise ValueError("SESSION_SECRET is required but not provided in environment variables")
        if len(v) < 32:
            raise ValueError("SESSION_SECRET must be at least 32 characters")
        return v

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_postgres(self) -> bool:
        return self.DB_URL.startswith("postgresql")


settings = Settings()
