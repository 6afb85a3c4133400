"""
Configuration management for JobTrack.

Loads settings from environment variables with sensible defaults.
Uses pydantic-settings for validation.
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///./jobtrack.db",
        description="SQLAlchemy database URL for the job record store"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement (debugging only)"
    )

    class Config:
        env_prefix = "DB_"


class AuthSettings(BaseSettings):
    """Session token and password hashing settings."""

    secret_key: Optional[str] = Field(
        default=None,
        description="Secret used to sign session tokens. Random per process if unset."
    )
    token_ttl_seconds: int = Field(
        default=7 * 24 * 3600,
        description="Seconds a session token stays valid after it was issued"
    )
    password_iterations: int = Field(
        default=480000,
        description="PBKDF2 iterations for password hashes"
    )

    class Config:
        env_prefix = "AUTH_"


class ClientSettings(BaseSettings):
    """Settings for the HTTP client used by the board and the CLI."""

    base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the JobTrack API"
    )
    timeout: float = Field(
        default=10.0,
        description="Request timeout in seconds"
    )

    class Config:
        env_prefix = "CLIENT_"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    # Application
    app_name: str = "JobTrack"
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)

    class Config:
        env_prefix = "JOBTRACK_"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings. Useful for dependency injection."""
    return settings
