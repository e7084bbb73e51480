"""Application settings and configuration.

This module defines all configuration options for the engagement engine.
Settings are loaded from environment variables with sensible defaults.
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Engagement Engine", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./engagement.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the like cooldowns; an in-process cache is used when unset.
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Bot classification
    bot_score_threshold: int = Field(default=50, alias="BOT_SCORE_THRESHOLD")
    min_user_agent_length: int = Field(default=20, alias="MIN_USER_AGENT_LENGTH")
    velocity_window_seconds: int = Field(default=60, alias="VELOCITY_WINDOW_SECONDS")
    velocity_burst_threshold: int = Field(default=10, alias="VELOCITY_BURST_THRESHOLD")

    # View validity thresholds
    valid_view_min_scroll: float = Field(default=70.0, alias="VALID_VIEW_MIN_SCROLL")
    valid_view_min_duration_ms: int = Field(default=2000, alias="VALID_VIEW_MIN_DURATION_MS")

    # Like toggle cool-down (per user, per post)
    like_cooldown_seconds: float = Field(default=2.0, alias="LIKE_COOLDOWN_SECONDS")

    # Ledger retention and background maintenance
    view_retention_days: int = Field(default=90, alias="VIEW_RETENTION_DAYS")
    ledger_maintenance_enabled: bool = Field(
        default=False,
        alias="LEDGER_MAINTENANCE_ENABLED",
    )
    ledger_maintenance_interval_seconds: float = Field(
        default=300.0,
        alias="LEDGER_MAINTENANCE_INTERVAL_SECONDS",
    )
    ledger_reconcile_batch_size: int = Field(default=500, alias="LEDGER_RECONCILE_BATCH_SIZE")

    # Default pricing used when initializing cities
    default_price_per_view: Decimal = Field(default=Decimal("0.10"), alias="DEFAULT_PRICE_PER_VIEW")
    default_price_per_like: Decimal = Field(default=Decimal("0.25"), alias="DEFAULT_PRICE_PER_LIKE")

    # Notification webhook (disabled when no URL is configured)
    notification_webhook_url: str | None = Field(default=None, alias="NOTIFICATION_WEBHOOK_URL")
    notification_shared_secret: str | None = Field(
        default=None,
        alias="NOTIFICATION_SHARED_SECRET",
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        alias="NOTIFICATION_TIMEOUT_SECONDS",
    )

    # CORS configuration for the admin frontend
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

        Drops async driver suffixes so Alembic can use the default sync driver.
        """
        url = self.database_url
        for async_driver in ("+asyncpg", "+aiosqlite"):
            url = url.replace(async_driver, "", 1)
        return url

    @property
    def notifications_enabled(self) -> bool:
        """Return True when a notification webhook is configured."""
        return bool(self.notification_webhook_url)


settings = Settings()  # type: ignore[call-arg]
