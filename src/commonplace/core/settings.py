"""Application settings and configuration.

This module defines all configuration options for the Commonplace application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Commonplace application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Commonplace", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./commonplace.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT carrying the caller-supplied actor id
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Document store tuning
    store_cas_max_retries: int = Field(default=64, alias="STORE_CAS_MAX_RETRIES")

    # Secondary (denormalized) write retries before queueing reconciliation
    secondary_write_max_attempts: int = Field(
        default=3,
        alias="SECONDARY_WRITE_MAX_ATTEMPTS",
    )
    secondary_write_backoff_seconds: float = Field(
        default=0.05,
        alias="SECONDARY_WRITE_BACKOFF_SECONDS",
    )

    # External moderation / categorization collaborator
    moderation_service_url: str | None = Field(default=None, alias="MODERATION_SERVICE_URL")
    moderation_timeout_seconds: float = Field(default=10.0, alias="MODERATION_TIMEOUT_SECONDS")
    moderation_sensitivity: str = Field(default="medium", alias="MODERATION_SENSITIVITY")

    # Content limits
    comment_max_length: int = Field(default=2000, alias="COMMENT_MAX_LENGTH")
    post_max_length: int = Field(default=10_000, alias="POST_MAX_LENGTH")
    poll_max_options: int = Field(default=10, alias="POLL_MAX_OPTIONS")

    # Actor ids allowed to run maintenance tasks (reconcile, publish-due)
    operator_ids: list[str] = Field(default_factory=list, alias="OPERATOR_IDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def moderation_enabled(self) -> bool:
        """Return True when an external moderation service is configured."""
        return bool(self.moderation_service_url)


settings = Settings()  # type: ignore[call-arg]
