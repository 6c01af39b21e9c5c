"""
Application configuration with environment-driven settings.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONTACTBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "contactbook"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///contacts.db",
        description="SQLAlchemy async connection URL for the local contact store",
    )

    # Listing
    default_page_size: int = Field(
        default=20,
        ge=1,
        description="Page size used when the caller does not pick one",
    )

    # CSV import/export
    csv_encoding: str = Field(
        default="utf-8",
        description="Text encoding used to read and write CSV files",
    )
    import_skip_duplicates: bool = Field(
        default=True,
        description="Drop duplicate-phone errors from import reports by default",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Store the level name upper-cased."""
        return str(v).strip().upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
