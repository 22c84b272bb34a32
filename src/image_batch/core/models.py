"""Shared data models for the image batch service."""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OutputFormat(str, Enum):
    """Output formats the transform engine can encode."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    TIFF = "tiff"
    GIF = "gif"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return self.value


DEFAULT_FORMAT = OutputFormat.JPEG
DEFAULT_QUALITY = 80


class ImageItem(BaseModel):
    """An uploaded image awaiting transformation."""

    raw_bytes: bytes
    original_name: str = ""
    index: int = 0


class TransformOptions(BaseModel):
    """Validated per-image transformation instructions."""

    model_config = ConfigDict(frozen=True)

    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    quality: int = Field(DEFAULT_QUALITY, ge=1, le=100)
    format: OutputFormat = DEFAULT_FORMAT


class TransformJob(BaseModel):
    """An image paired with the options bound to it."""

    item: ImageItem
    options: TransformOptions = Field(default_factory=TransformOptions)


class Artifact(BaseModel):
    """A staged, transformed image addressable by its key."""

    model_config = ConfigDict(frozen=True)

    key: str
    storage_location: Path
    original_name: str = ""
    format: OutputFormat = DEFAULT_FORMAT

    @property
    def content_type(self) -> str:
        return self.format.content_type


class ItemResult(BaseModel):
    """Outcome of transforming and staging a single image."""

    index: int
    original_name: str = ""
    success: bool = False
    artifact: Optional[Artifact] = None
    error: str = ""
    error_type: str = ""
    processing_time: float = 0.0


class BatchRequest(BaseModel):
    """A decoded batch submission: uploaded images plus the raw options text."""

    images: List[ImageItem] = Field(default_factory=list)
    options_text: Optional[str] = None


class BatchResult(BaseModel):
    """Per-item results of one batch, in input order."""

    results: List[ItemResult] = Field(default_factory=list)

    @property
    def manifest(self) -> List[Artifact]:
        """Artifacts of the successful items, in input order."""
        return [r.artifact for r in self.results if r.success and r.artifact]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded
