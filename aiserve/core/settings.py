# ==============================================================================
# SETTINGS CONFIGURATION - Environment Management
# ==============================================================================
# Pydantic Settings for type-safe environment variable management
# Database, connection pool, security and logging configuration
# ==============================================================================

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SECRET_KEY = "your-super-secret-key-change-in-production"


class DatabaseType(str, Enum):
    """
    Supported database types for the application.

    Attributes:
        SQLITE: File-based database for development/testing (aiosqlite)
        POSTGRESQL: Production-grade relational database (asyncpg)
    """
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application Settings Configuration.

    Manages all environment variables with type validation and defaults.
    Uses Pydantic BaseSettings for automatic .env file loading and
    environment variable parsing.

    Example:
        >>> from aiserve.core.settings import settings
        >>> settings.DB_POOL_TIMEOUT
        5.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # --------------------------------------------------------------------------
    APP_NAME: str = Field(
        default="AI Serving Backend",
        description="Application display name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application semantic version"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (logs, stack traces)"
    )
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current deployment environment"
    )

    # --------------------------------------------------------------------------
    # API CONFIGURATION
    # --------------------------------------------------------------------------
    API_V1_PREFIX: str = Field(
        default="/api/v1",
        description="API version 1 route prefix"
    )
    API_TITLE: str = Field(
        default="AI Serving API",
        description="OpenAPI documentation title"
    )
    API_DESCRIPTION: str = Field(
        default="Model registry and prediction log with request-scoped units of work",
        description="OpenAPI documentation description"
    )

    # --------------------------------------------------------------------------
    # DATABASE TYPE SELECTION
    # --------------------------------------------------------------------------
    DATABASE_TYPE: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Active database backend (sqlite, postgresql)"
    )

    # --------------------------------------------------------------------------
    # SQLITE CONFIGURATION
    # --------------------------------------------------------------------------
    SQLITE_URL: str = Field(
        default="sqlite:///./aiserve.db",
        description="SQLite database file path"
    )

    # --------------------------------------------------------------------------
    # POSTGRESQL CONFIGURATION
    # --------------------------------------------------------------------------
    POSTGRES_HOST: str = Field(
        default="localhost",
        description="PostgreSQL server hostname"
    )
    POSTGRES_PORT: int = Field(
        default=5432,
        ge=1,
        le=65535,
        description="PostgreSQL server port"
    )
    POSTGRES_USER: str = Field(
        default="postgres",
        description="PostgreSQL username"
    )
    POSTGRES_PASSWORD: str = Field(
        default="password",
        description="PostgreSQL password"
    )
    POSTGRES_DB: str = Field(
        default="aiserve",
        description="PostgreSQL database name"
    )

    # --------------------------------------------------------------------------
    # CONNECTION POOL SETTINGS
    # --------------------------------------------------------------------------
    DB_POOL_SIZE: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Database connection pool size"
    )
    DB_MAX_OVERFLOW: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Maximum overflow connections beyond pool size"
    )
    DB_POOL_TIMEOUT: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="Seconds to wait for a free pooled connection"
    )
    DB_POOL_RECYCLE: int = Field(
        default=3600,
        ge=60,
        description="Connection recycle time in seconds"
    )
    DB_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )

    # --------------------------------------------------------------------------
    # SECURITY SETTINGS
    # --------------------------------------------------------------------------
    SECRET_KEY: str = Field(
        default=DEFAULT_SECRET_KEY,
        min_length=32,
        description="JWT signing secret key (min 32 chars)"
    )
    ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Access token expiration in minutes"
    )

    # --------------------------------------------------------------------------
    # CORS SETTINGS
    # --------------------------------------------------------------------------
    CORS_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )

    # --------------------------------------------------------------------------
    # LOGGING CONFIGURATION
    # --------------------------------------------------------------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    LOG_FORMAT: str = Field(
        default="text",
        pattern="^(json|text)$",
        description="Log format (json, text)"
    )

    # --------------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # --------------------------------------------------------------------------
    @computed_field
    @property
    def postgres_url(self) -> str:
        """
        Construct PostgreSQL async connection URL.

        Returns:
            Async PostgreSQL connection string with asyncpg driver
        """
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field
    @property
    def postgres_sync_url(self) -> str:
        """
        Construct PostgreSQL sync connection URL for Alembic migrations.

        Returns:
            Sync PostgreSQL connection string with psycopg2 driver
        """
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field
    @property
    def sqlite_async_url(self) -> str:
        """
        Construct SQLite async connection URL.

        Returns:
            Async SQLite connection string with aiosqlite driver
        """
        if "aiosqlite" in self.SQLITE_URL:
            return self.SQLITE_URL
        return self.SQLITE_URL.replace("sqlite://", "sqlite+aiosqlite://")

    @computed_field
    @property
    def database_url(self) -> str:
        """
        Get the async database URL for the selected DATABASE_TYPE.

        Raises:
            ValueError: If DATABASE_TYPE is not supported
        """
        if self.DATABASE_TYPE == DatabaseType.SQLITE:
            return self.sqlite_async_url
        elif self.DATABASE_TYPE == DatabaseType.POSTGRESQL:
            return self.postgres_url
        raise ValueError(f"Unsupported database type: {self.DATABASE_TYPE}")

    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    # --------------------------------------------------------------------------
    # VALIDATORS
    # --------------------------------------------------------------------------
    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Warn when the shipped default key is still in use."""
        if v == DEFAULT_SECRET_KEY:
            import warnings
            warnings.warn(
                "Using default SECRET_KEY. Generate a secure key for production!",
                UserWarning
            )
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            if v == "*":
                return ["*"]
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Uses lru_cache to ensure settings are only loaded once,
    providing a singleton-like behavior for the settings object.
    """
    return Settings()


# Module-level settings instance for convenient imports
settings = get_settings()
