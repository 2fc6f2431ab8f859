"""
Centralized configuration management.

Settings are read from environment variables (a .env file is loaded by
main.py) and validated once.
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Application settings with validation."""

    # Upload limits
    max_file_size_mb: int = Field(default=25, ge=1, le=1000, description="Maximum workbook size in MB")
    max_file_rows: int = Field(default=1000000, ge=1000, description="Maximum rows per sheet")
    max_file_columns: int = Field(default=1000, ge=10, description="Maximum columns per sheet")
    max_cell_size_bytes: int = Field(default=100000, ge=1000, description="Maximum text cell size in bytes")

    # Responses
    max_preview_rows: int = Field(default=200, ge=1, le=10000, description="Rows echoed back as a preview")
    default_histogram_bins: int = Field(default=20, ge=1, le=200, description="Histogram buckets when none requested")

    # Stored datasets
    dataset_ttl_seconds: int = Field(default=3600, ge=60, le=86400, description="How long uploaded datasets are kept")

    # Rate limiting and timeouts
    rate_limit_per_minute: int = Field(default=10, ge=1, le=1000, description="Uploads per minute per IP")
    request_timeout_seconds: int = Field(default=120, ge=1, le=3600, description="Request timeout in seconds")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        description="Comma-separated list of allowed CORS origins"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got '{v}'")
        return v.upper()

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            max_file_size_mb=int(os.getenv("MAX_FILE_SIZE_MB", "25")),
            max_file_rows=int(os.getenv("MAX_FILE_ROWS", "1000000")),
            max_file_columns=int(os.getenv("MAX_FILE_COLUMNS", "1000")),
            max_cell_size_bytes=int(os.getenv("MAX_CELL_SIZE_BYTES", "100000")),
            max_preview_rows=int(os.getenv("MAX_PREVIEW_ROWS", "200")),
            default_histogram_bins=int(os.getenv("DEFAULT_HISTOGRAM_BINS", "20")),
            dataset_ttl_seconds=int(os.getenv("DATASET_TTL_SECONDS", "3600")),
            rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", "10")),
            request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "120")),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8080"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Configuration loaded and validated successfully")
    return _settings


def reload_settings() -> Settings:
    """Re-read the environment (used by tests)."""
    global _settings
    _settings = None
    return get_settings()
