"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""


import os

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskboard.utils.logger import setup_logger

load_dotenv(override=False)


logger = setup_logger("core_config")

DEV_JWT_SECRET = "taskboard-dev-secret-change-me"


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
    )

    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment: development, production or test",
    )

    # ===== Database Configuration =====
    database_url: str | None = Field(
        default=None,
        alias="TASKBOARD_DATABASE_URL",
        description="Application database URL (postgresql+asyncpg or sqlite+aiosqlite)",
    )

    db_pool_size: int = Field(
        default=20, alias="DB_POOL_SIZE", description="Connection pool size"
    )

    db_max_overflow: int = Field(
        default=30,
        alias="DB_MAX_OVERFLOW",
        description="Connections allowed above the pool size",
    )

    # ===== JWT Configuration =====
    jwt_secret: str | None = Field(
        default=None,
        alias="JWT_SECRET",
        description="HS256 signing secret for access tokens",
    )

    jwt_algorithm: str = Field(
        default="HS256", alias="JWT_ALGORITHM", description="JWT signing algorithm"
    )

    jwt_expire_minutes: int = Field(
        default=7 * 24 * 60,
        alias="JWT_EXPIRE_MINUTES",
        description="Access token lifetime in minutes (default 7 days)",
    )

    jwt_issuer: str = Field(
        default="task-management-api",
        alias="JWT_ISSUER",
        description="Issuer claim written to and required from tokens",
    )

    jwt_audience: str = Field(
        default="task-management-client",
        alias="JWT_AUDIENCE",
        description="Audience claim written to and required from tokens",
    )

    # ===== Security Configuration =====
    auth_rate_limit_max: int = Field(
        default=5,
        alias="AUTH_RATE_LIMIT_MAX",
        description="Requests per window allowed on /api/auth per client IP",
    )

    general_rate_limit_max: int = Field(
        default=100,
        alias="GENERAL_RATE_LIMIT_MAX",
        description="Requests per window allowed on /api per client IP",
    )

    rate_limit_window_seconds: int = Field(
        default=15 * 60,
        alias="RATE_LIMIT_WINDOW_SECONDS",
        description="Rate limit window length in seconds",
    )

    trust_proxy: bool = Field(
        default=False,
        alias="TRUST_PROXY",
        description="Key rate limits on X-Forwarded-For; enable only behind a proxy that sets it",
    )

    failed_login_window_seconds: int = Field(
        default=15 * 60,
        alias="FAILED_LOGIN_WINDOW_SECONDS",
        description="How long a failed-login counter survives after the last failure",
    )

    failed_login_alert_threshold: int = Field(
        default=3,
        alias="FAILED_LOGIN_ALERT_THRESHOLD",
        description="Failed logins per email/IP before a suspicious-activity event",
    )

    search_max_length: int = Field(
        default=100,
        alias="SEARCH_MAX_LENGTH",
        description="Maximum length of a free-text search term",
    )

    max_page_size: int = Field(
        default=100, alias="MAX_PAGE_SIZE", description="Upper bound for ?limit="
    )

    max_page: int = Field(
        default=10_000, alias="MAX_PAGE", description="Upper bound for ?page="
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=5000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",  # Vite dev server default port
            "http://localhost:3000",
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["Authorization", "Content-Type"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    # User-facing hint for database connection errors
    db_unavailable_hint: str = os.getenv(
        "DB_UNAVAILABLE_HINT",
        "Database connection failed. The server may be offline or network connectivity is down.",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""
        if not self.jwt_secret:
            if self.is_production:
                raise ValueError("JWT_SECRET must be set in production environment")
            logger.warning(
                "JWT_SECRET environment variable not set. Using a development secret."
            )
            self.jwt_secret = DEV_JWT_SECRET

        if not self.database_url:
            logger.warning("TASKBOARD_DATABASE_URL environment variable not set.")

        logger.debug(f"Running in '{self.environment}' environment")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# Global settings instance
settings = Settings()
