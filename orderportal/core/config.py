"""
Application configuration with environment variables.
"""
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Order Portal"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    SECRET_KEY: str = "your-secret-key-change-in-production"

    # Database
    POSTGRES_USER: str = "orderportal"
    POSTGRES_PASSWORD: str = "orderportal"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "orderportal"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Redis (RQ queues + scheduler)
    REDIS_URL: str = "redis://redis:6379/0"

    # JWT Settings
    JWT_ALGORITHM: str = "HS256"

    # External inventory system
    INVENTORY_API_URL: str = "http://inventory-api:5000/api"
    INVENTORY_TIMEOUT_SECONDS: float = 10.0

    # Outbound email (SMTP). No host = log-only mode.
    EMAIL_HOST: Optional[str] = None
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASSWORD: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    EMAIL_FROM_NAME: str = "Order Portal"
    EMAIL_TIMEOUT_SECONDS: int = 30

    # Scheduling defaults (overridden by email_settings rows when present)
    STATUS_CHECK_INTERVAL_MINUTES: int = 5
    ALERT_CHECK_TIMES: List[str] = ["09:00", "17:00"]
    DEFAULT_ALERT_DAYS_THRESHOLD: int = 5

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5000"]

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def assemble_db_url(cls, v: Optional[str], info) -> str:
        if isinstance(v, str) and v:
            return v

        data = info.data
        user = data.get("POSTGRES_USER", "orderportal")
        password = data.get("POSTGRES_PASSWORD", "orderportal")
        host = data.get("POSTGRES_HOST", "postgres")
        port = data.get("POSTGRES_PORT", "5432")
        db = data.get("POSTGRES_DB", "orderportal")

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str, info) -> str:
        """Reject weak SECRET_KEY in production, warn in development."""
        weak_keys = {
            "your-secret-key-change-in-production",
            "your-secret-key-change-this",
            "change-me-in-production",
            "secret",
            "changeme",
        }
        is_weak = v in weak_keys or len(v) < 32
        if is_weak:
            debug = info.data.get("DEBUG", False)
            if not debug:
                raise ValueError(
                    "SECRET_KEY is weak or default. "
                    "Generate a strong key with: openssl rand -hex 32"
                )
            import warnings
            warnings.warn(
                "SECRET_KEY is weak or default! Set a strong key before deploying.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @field_validator('EMAIL_PORT')
    @classmethod
    def validate_email_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"EMAIL_PORT out of range: {v}")
        return v

    @property
    def email_sender(self) -> Optional[str]:
        """Envelope sender; falls back to the SMTP login like most relays expect."""
        return self.EMAIL_FROM or self.EMAIL_USER


settings = Settings()
