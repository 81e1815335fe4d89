"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="POWERLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Storage Configuration
    storage_backend: Literal["database", "api"] = Field(
        default="database",
        description="Where inventory is persisted: a local database or a PowerLog REST server",
    )
    database_url: str = Field(
        default="sqlite:///./powerlog.db",
        description="Database connection URL",
    )
    api_base_url: str = Field(
        default="http://localhost:3030",
        description="PowerLog REST server base URL",
    )
    api_timeout: int = Field(default=10, description="API request timeout in seconds")
    max_retries: int = Field(
        default=2,
        description="Maximum number of retries for failed API requests",
    )
    retry_delay: float = Field(
        default=1.0,
        description="Base delay in seconds between retries (uses exponential backoff)",
    )

    # Offline fallback
    cache_file: str = Field(
        default="~/.cache/powerlog/batteries.json",
        description="Local snapshot of the last known inventory, used when storage is unreachable",
    )

    # Inventory rules
    strict_stock_invariant: bool = Field(
        default=False,
        description="Reject rechargeable writes where quantity + in use exceeds total quantity",
    )
    default_min_quantity: int = Field(
        default=2,
        description="Reorder threshold used by 'add' when none is given",
    )

    # Presentation preferences
    language: Literal["de", "en"] = Field(default="en", description="Language of category labels")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (logs to console if not set)",
    )
    log_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    def get_cache_path(self) -> Path:
        """Resolve the cache file setting to an absolute path."""
        return Path(self.cache_file).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
