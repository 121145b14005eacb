"""Configuration management for taskboard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record store
    sqlite_db_path: str = Field(default="taskboard.db", description="Path to the SQLite record store file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Comments
    default_avatar_url: str = Field(
        default="https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=40&h=40&fit=crop&crop=face",
        description="Avatar used when a comment author has none",
    )
    max_comment_length: int = Field(default=500, description="Maximum comment length in characters")

    # Attachments
    max_attachment_bytes: int = Field(default=10 * 1024 * 1024, description="Maximum attachment size in bytes")


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_UNPROCESSABLE: int = 422
    HTTP_INTERNAL_ERROR: int = 500
    HTTP_BAD_GATEWAY: int = 502

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Tasks and projects are always loaded in full

    # Aggregation fallback labels
    UNKNOWN_LABEL: str = "unknown"
    OTHER_CATEGORY_LABEL: str = "Other"
    DEFAULT_PRIORITY_LABEL: str = "low"

    # Attachments
    ALLOWED_ATTACHMENT_TYPES: frozenset[str] = frozenset(
        {
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "text/plain",
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
        }
    )


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
