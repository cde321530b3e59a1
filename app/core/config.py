"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URL, JWT secret, SMTP, upload limits)
- Validates configuration on startup
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="blaze",
        description="MongoDB database name"
    )

    # Authentication
    JWT_SECRET: str = Field(
        default="change-me-in-production",
        description="Secret used to sign access tokens"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRE_DAYS: int = Field(
        default=7,
        description="Lifetime of a member access token in days"
    )
    ADMIN_JWT_EXPIRE_HOURS: int = Field(
        default=24,
        description="Lifetime of an admin access token in hours"
    )
    BCRYPT_ROUNDS: int = Field(default=12)
    PASSWORD_RESET_EXPIRE_MINUTES: int = Field(default=60)

    # Default admin created on first boot
    DEFAULT_ADMIN_USERNAME: str = Field(default="admin")
    DEFAULT_ADMIN_EMAIL: str = Field(default="admin@blaze.local")
    DEFAULT_ADMIN_PASSWORD: Optional[str] = Field(
        default=None,
        description="Password for the bootstrap admin; skipped when unset"
    )

    # Email
    SMTP_HOST: Optional[str] = Field(
        default=None,
        description="SMTP server; emails are only logged when unset"
    )
    SMTP_PORT: int = Field(default=587)
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = Field(default="Blaze <no-reply@blaze.local>")
    CLIENT_URL: str = Field(
        default="http://localhost:3000",
        description="Front end base URL used in email links"
    )

    # Uploads
    UPLOAD_DIR: str = Field(default="uploads")
    MAX_CHAT_FILE_SIZE: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum chat attachment size in bytes"
    )
    MAX_PROFILE_FILE_SIZE: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum avatar / resume size in bytes"
    )

    # Realtime
    HEARTBEAT_TIMEOUT_SECONDS: int = Field(
        default=120,
        description="Close websockets silent for longer than this"
    )

    # Location
    ZIP_DATA_FILE: Optional[str] = Field(
        default=None,
        description="Optional georef JSON file extending the ZIP table"
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
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("JWT_SECRET")
    def validate_jwt_secret(cls, v, values):
        """Ensure the signing secret is changed in production."""
        if values.get("ENVIRONMENT") == "production" and v == "change-me-in-production":
            raise ValueError("JWT_SECRET must be changed in production environment")
        return v

    @validator("BCRYPT_ROUNDS")
    def validate_bcrypt_rounds(cls, v):
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def email_enabled(self) -> bool:
        return bool(self.SMTP_HOST)

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

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.JWT_SECRET:
        errors.append("JWT_SECRET is required")

    # Production-specific validations
    if settings.is_production:
        if not settings.SMTP_HOST:
            errors.append("SMTP_HOST is required in production")
        if "*" in settings.CORS_ORIGINS:
            errors.append("CORS_ORIGINS must list explicit origins in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
