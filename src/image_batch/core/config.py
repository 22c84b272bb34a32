"""
Configuration loader for the image batch service.

Environment variables (prefix ``IMAGE_BATCH_``) are centralized here so the
staging location, worker pool size and time budgets are injected into the
pipeline instead of living in module globals.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROCESSOR_CHOICES = ("serial", "multithread", "asyncio")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="IMAGE_BATCH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Staging area
    staging_dir: Path = Path("tmp")
    artifact_ttl_seconds: float = 3600.0  # <= 0 disables purging

    # Concurrency
    processor: str = "multithread"
    max_workers: int = Field(4, ge=1)
    item_timeout_seconds: float = Field(30.0, gt=0)
    batch_timeout_seconds: float = Field(120.0, gt=0)

    # Largest resize target in pixels; None uses Image.MAX_IMAGE_PIXELS
    max_output_pixels: Optional[int] = Field(None, gt=0)

    # API
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_format: str = "structured"

    @field_validator("processor")
    @classmethod
    def validate_processor(cls, v: str) -> str:
        if v not in PROCESSOR_CHOICES:
            raise ValueError("processor must be one of serial|multithread|asyncio")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in {"structured", "simple"}:
            raise ValueError("log_format must be one of structured|simple")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()
