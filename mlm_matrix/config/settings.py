"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mlm_matrix.config.business_constants import (
    DEFAULT_ELIGIBLE_INVESTMENT_STATUSES,
    MATRIX_DEPTH,
    PLACEMENT_MAX_ATTEMPTS,
)


SUPPORTED_DATABASE_SCHEMES = (
    "postgresql://",
    "postgresql+asyncpg://",
    "sqlite+aiosqlite://",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = Field(
        default=None,
        description="Optional rotating log file (e.g. logs/matrix.log)"
    )

    # Matrix placement
    placement_max_attempts: int = Field(
        default=PLACEMENT_MAX_ATTEMPTS,
        ge=1,
        le=10,
        description="Placement attempts before a slot conflict is surfaced"
    )
    matrix_view_depth: int = Field(
        default=MATRIX_DEPTH,
        ge=1,
        le=MATRIX_DEPTH,
        description="Default number of levels rendered in a matrix view"
    )

    # Commissions
    commission_eligible_statuses: str = Field(
        default=",".join(DEFAULT_ELIGIBLE_INVESTMENT_STATUSES),
        description="Comma-separated investment statuses that trigger commissions"
    )

    # Redis (Dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.database_url.startswith('sqlite'):
                logger.warning(
                    'DATABASE_URL points to SQLite in production. '
                    'Concurrent placements are serialized on a single file.'
                )
        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(SUPPORTED_DATABASE_SCHEMES):
            raise ValueError(
                'DATABASE_URL must start with one of: '
                + ', '.join(SUPPORTED_DATABASE_SCHEMES)
            )
        if v.startswith('postgresql://'):
            # Async engine needs the asyncpg driver
            v = v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    def get_eligible_statuses(self) -> frozenset[str]:
        """Parse eligible investment statuses from comma-separated string."""
        statuses = {
            status.strip().lower()
            for status in self.commission_eligible_statuses.split(",")
            if status.strip()
        }
        if not statuses:
            logger.warning(
                "COMMISSION_ELIGIBLE_STATUSES is empty, using defaults"
            )
            return frozenset(DEFAULT_ELIGIBLE_INVESTMENT_STATUSES)
        return frozenset(statuses)


# Global settings instance
settings = Settings()
