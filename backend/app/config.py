"""Application configuration."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class SmtpConfig:
    """Connection settings for the outbound email transport."""

    host: str
    port: int
    secure: bool
    user: str = ""
    password: str = ""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "Operations Workflow Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./workflows.db"
    SQLALCHEMY_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis Settings (Celery broker / result backend)
    REDIS_URL: str = "redis://localhost:6379/0"

    # SMTP Settings
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "noreply@pls-scm.com"

    # Workflow Engine Settings
    WORKFLOW_LOOP_MAX_ITERATIONS: int = 100
    WORKFLOW_TIMEOUT_SECONDS: Optional[float] = None  # None = no run deadline
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    WEBHOOK_BLOCK_PRIVATE_NETWORKS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def smtp(self) -> SmtpConfig:
        """Explicit SMTP configuration handed to the email transport."""
        return SmtpConfig(
            host=self.SMTP_HOST,
            port=self.SMTP_PORT,
            secure=self.SMTP_SECURE,
            user=self.SMTP_USER,
            password=self.SMTP_PASSWORD,
        )

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses caching to ensure settings are loaded only once.

    Returns:
        Settings object with all configuration values
    """
    return Settings()
