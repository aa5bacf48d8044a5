"""
Application configuration management using Pydantic Settings.
Loads environment variables and provides centralized configuration.
"""
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Metadata
    APP_NAME: str = "Quota Gateway"
    APP_VERSION: str = "1.0.0"

    # Redis (usage counter, pending batches)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Object store (S3-compatible: MinIO, R2, S3)
    S3_ENDPOINT: str = "localhost:9000"
    S3_SECURE: bool = False
    S3_REGION: str = "auto"
    S3_BUCKET: str = "files"
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None

    # Quota & batches
    STORAGE_LIMIT_BYTES: int = int(9.5 * 1024 * 1024 * 1024)  # 9.5 GiB
    MAX_FILES_PER_BATCH: int = 20

    # Retention
    RETENTION_DAYS: int = 7

    # Presigned uploads
    UPLOAD_URL_EXPIRY_SECONDS: int = 600
    PENDING_BATCH_TTL_SECONDS: int = 3600

    # Scheduled sweep trigger
    CRON_TOKEN: str = "cron"

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    @field_validator("S3_ENDPOINT")
    @classmethod
    def strip_scheme(cls, v):
        """Endpoint is host[:port]; the scheme comes from S3_SECURE."""
        return v.replace("https://", "").replace("http://", "").rstrip("/")

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v

    @property
    def signing_configured(self) -> bool:
        return bool(self.S3_ACCESS_KEY_ID and self.S3_SECRET_ACCESS_KEY)


# Global settings instance
settings = Settings()
