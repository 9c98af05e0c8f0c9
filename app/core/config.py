"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (session storage, retry policy, upload target)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB (pairing audit trail)
    MONGODB_ENABLED: bool = Field(
        default=False,
        description="Record pairing attempts in MongoDB"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="pairserver",
        description="MongoDB database name"
    )

    # WhatsApp session storage
    SESSION_ROOT: str = Field(
        default="./session",
        description="Directory holding one session store per phone number"
    )
    CREDS_FILENAME: str = Field(
        default="creds.db",
        description="Credential store file name inside a session directory"
    )

    # Pairing policy
    MAX_RETRIES: int = Field(
        default=5,
        description="Maximum reconnect attempts after a transient disconnect"
    )
    RETRY_BASE_DELAY: float = Field(
        default=5.0,
        description="Reconnect delay in seconds, multiplied by the attempt number"
    )
    SESSION_FLUSH_DELAY: float = Field(
        default=3.0,
        description="Seconds to wait after connecting before reading credentials"
    )
    PAIR_RESPONSE_TIMEOUT: float = Field(
        default=60.0,
        description="Seconds the HTTP caller waits for a pairing outcome"
    )
    PAIRING_SESSION_TTL: float = Field(
        default=300.0,
        description="Seconds a pairing session may stay open before it is aborted"
    )

    # Credential upload
    STORAGE_BACKEND: Literal["memory", "s3"] = Field(
        default="memory",
        description="Where generated credentials are uploaded"
    )
    S3_ENDPOINT_URL: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint (R2, MinIO, ...); None for AWS"
    )
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_BUCKET_NAME: Optional[str] = None
    S3_REGION: str = "auto"
    STORAGE_PUBLIC_URL: Optional[str] = Field(
        default=None,
        description="Public base URL of uploaded files; stripped to build the session id"
    )

    # Confirmation messages
    SESSION_IMAGE_URL: str = Field(
        default="https://i.imgur.com/yourimage.png",
        description="Image sent with the session id caption"
    )
    BOT_NAME: str = Field(
        default="ALPHA [The powerful WA BOT]",
        description="Bot name shown in the session caption"
    )
    SUPPORT_LINK: str = Field(
        default="wa.me/message/0722737727",
        description="Support link shown in the session caption"
    )

    # Process management
    RESTART_COMMAND: Optional[str] = Field(
        default=None,
        description="Shell command that restarts this service (e.g. 'pm2 restart Alpha')"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("MAX_RETRIES")
    def validate_max_retries(cls, v):
        """Retry count cannot be negative."""
        if v < 0:
            raise ValueError("MAX_RETRIES must be >= 0")
        return v

    @validator("S3_BUCKET_NAME")
    def validate_bucket(cls, v, values):
        """Ensure a bucket is set when uploading to S3 in production."""
        if values.get("ENVIRONMENT") == "production" and values.get("STORAGE_BACKEND") == "s3" and not v:
            raise ValueError("S3_BUCKET_NAME is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.SESSION_ROOT:
        errors.append("SESSION_ROOT is required")

    if settings.MONGODB_ENABLED and not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required when MONGODB_ENABLED is set")

    if settings.STORAGE_BACKEND == "s3":
        if not settings.S3_BUCKET_NAME:
            errors.append("S3_BUCKET_NAME is required for s3 storage")
        if not settings.S3_ACCESS_KEY_ID or not settings.S3_SECRET_ACCESS_KEY:
            errors.append("S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY are required for s3 storage")

    # Production-specific validations
    if settings.is_production:
        if settings.STORAGE_BACKEND != "s3":
            errors.append("STORAGE_BACKEND must be 's3' in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
