# ==============================================================================
# SETTINGS CONFIGURATION - Environment Management
# ==============================================================================
# Pydantic Settings for type-safe environment variable management
# Covers application, database, security, ledger and recurrence options
# ==============================================================================

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CATEGORIES: List[str] = [
    "food",
    "groceries",
    "dining",
    "transport",
    "travel",
    "shopping",
    "entertainment",
    "fun",
    "bills",
    "utilities",
    "rent",
    "health",
    "education",
    "subscriptions",
    "salary",
    "freelance",
    "investment",
    "gift",
    "others",
]


class DatabaseType(str, Enum):
    """
    Supported database types for the ledger.

    Attributes:
        SQLITE: File-based database for development/testing
        POSTGRESQL: Production-grade relational database
        MONGODB: Document store (replica set required for transactions)
    """
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MONGODB = "mongodb"


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application Settings Configuration.

    Manages all environment variables with type validation and defaults.
    Values are read from the process environment and an optional .env file.

    Example:
        >>> from walletwise.core.settings import settings
        >>> print(settings.LEDGER_COMMIT_TIMEOUT_SECONDS)
        10.0
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
        default="WalletWise Ledger",
        description="Application display name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application semantic version"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (docs, stack traces in errors)"
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
        default="WalletWise Ledger API",
        description="OpenAPI documentation title"
    )
    API_DESCRIPTION: str = Field(
        default="Transaction ledger with an atomically maintained wallet balance",
        description="OpenAPI documentation description"
    )

    # --------------------------------------------------------------------------
    # DATABASE TYPE SELECTION
    # --------------------------------------------------------------------------
    DATABASE_TYPE: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Active database backend (sqlite, postgresql, mongodb)"
    )

    # --------------------------------------------------------------------------
    # SQLITE CONFIGURATION
    # --------------------------------------------------------------------------
    SQLITE_URL: str = Field(
        default="sqlite:///./walletwise.db",
        description="SQLite database file path"
    )
    SQLITE_BUSY_TIMEOUT: float = Field(
        default=15.0,
        ge=0,
        description="Seconds SQLite waits on a locked database before failing"
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
        default="walletwise",
        description="PostgreSQL database name"
    )

    # --------------------------------------------------------------------------
    # MONGODB CONFIGURATION
    # --------------------------------------------------------------------------
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017/?replicaSet=rs0",
        description="MongoDB connection URI (must point at a replica set)"
    )
    MONGODB_DB: str = Field(
        default="walletwise",
        description="MongoDB database name"
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
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Connection pool timeout in seconds"
    )
    DB_POOL_RECYCLE: int = Field(
        default=3600,
        ge=60,
        description="Connection recycle time in seconds"
    )

    # --------------------------------------------------------------------------
    # SECURITY SETTINGS
    # --------------------------------------------------------------------------
    SECRET_KEY: str = Field(
        default="your-super-secret-key-change-in-production",
        min_length=32,
        description="JWT verification secret key (min 32 chars)"
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
        default="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        description="Logging format string"
    )

    # --------------------------------------------------------------------------
    # LEDGER SETTINGS
    # --------------------------------------------------------------------------
    LEDGER_CATEGORIES: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        description="Closed set of valid transaction categories"
    )
    LEDGER_COMMIT_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for one atomic ledger scope, lock wait included"
    )
    LEDGER_CONFLICT_RETRIES: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for update/delete when the scope hits a write conflict"
    )
    LEDGER_CONFLICT_BACKOFF_SECONDS: float = Field(
        default=0.05,
        ge=0,
        description="Base delay for exponential backoff between conflict retries"
    )

    # --------------------------------------------------------------------------
    # RECURRENCE SETTINGS
    # --------------------------------------------------------------------------
    RECURRENCE_SWEEP_ON_LIST: bool = Field(
        default=True,
        description="Run the caller's recurrence sweep before listing transactions"
    )
    RECURRENCE_SWEEP_INTERVAL_SECONDS: int = Field(
        default=3600,
        ge=0,
        description="Period of the background sweep over all users (0 disables it)"
    )
    RECURRENCE_BATCH_SIZE: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Maximum due templates processed per sweep"
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
        """PostgreSQL sync connection URL for Alembic migrations."""
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field
    @property
    def sqlite_async_url(self) -> str:
        """SQLite connection URL with the aiosqlite driver."""
        if "aiosqlite" in self.SQLITE_URL:
            return self.SQLITE_URL
        return self.SQLITE_URL.replace("sqlite://", "sqlite+aiosqlite://")

    @computed_field
    @property
    def database_url(self) -> str:
        """
        Get the appropriate database URL based on DATABASE_TYPE.

        Raises:
            ValueError: If DATABASE_TYPE is not supported
        """
        if self.DATABASE_TYPE == DatabaseType.SQLITE:
            return self.sqlite_async_url
        elif self.DATABASE_TYPE == DatabaseType.POSTGRESQL:
            return self.postgres_url
        elif self.DATABASE_TYPE == DatabaseType.MONGODB:
            return self.MONGODB_URL
        raise ValueError(f"Unsupported database type: {self.DATABASE_TYPE}")

    # --------------------------------------------------------------------------
    # VALIDATORS
    # --------------------------------------------------------------------------
    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Warn when the placeholder secret is in use."""
        if v == "your-super-secret-key-change-in-production":
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

    @field_validator("LEDGER_CATEGORIES", mode="before")
    @classmethod
    def parse_categories(cls, v):
        """Accept a comma separated string; normalize to lowercase labels."""
        if isinstance(v, str):
            v = v.split(",")
        categories = [str(item).strip().lower() for item in v]
        return [item for item in categories if item]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


# Module-level settings instance for convenient imports
settings = get_settings()
