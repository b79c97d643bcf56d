"""Librophoto configuration using pydantic-settings."""

import functools
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from librophoto.compression import CompressionProfile

# 0.7 MB, the ceiling applied to every stored capture
DEFAULT_MAX_UPLOAD_BYTES = 734_003


class Settings(BaseSettings):
    """Librophoto settings.

    All settings can be overridden via environment variables with LIBROPHOTO_ prefix.
    Example: LIBROPHOTO_DATABASE_URL, LIBROPHOTO_MAX_DIMENSION_PX
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBROPHOTO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Metadata store
    database_url: str = "sqlite+aiosqlite:///./librophoto.db"

    # Object store
    storage_path: Path = Path("~/.local/share/librophoto/objects")
    storage_bucket: str = "captures"
    public_base_url: str = "http://localhost:8000/storage/v1/object/public"

    # Compression
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_dimension_px: int = 1600
    jpeg_quality: int = 80
    min_jpeg_quality: int = 40

    # Logging
    log_level: str = "INFO"

    @field_validator("max_upload_bytes", "max_dimension_px")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensure size limits are positive."""
        if v < 1:
            raise ValueError("size limits must be positive")
        return v

    @field_validator("jpeg_quality", "min_jpeg_quality")
    @classmethod
    def validate_jpeg_quality(cls, v: int) -> int:
        """Ensure JPEG quality is within valid range."""
        if v < 1 or v > 100:
            raise ValueError("JPEG quality must be between 1 and 100")
        return v

    @field_validator("storage_bucket")
    @classmethod
    def validate_bucket(cls, v: str) -> str:
        """Bucket names are single path segments."""
        if not v or "/" in v:
            raise ValueError("storage_bucket must be a non-empty name without '/'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @property
    def storage_root(self) -> Path:
        """Return expanded object storage directory."""
        return self.storage_path.expanduser()

    def compression_profile(self) -> CompressionProfile:
        """Build the compression profile applied before upload."""
        return CompressionProfile(
            max_bytes=self.max_upload_bytes,
            max_dimension_px=self.max_dimension_px,
            quality=self.jpeg_quality,
            min_quality=min(self.min_jpeg_quality, self.jpeg_quality),
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    To reload settings, call get_settings.cache_clear() first.
    """
    return Settings()
