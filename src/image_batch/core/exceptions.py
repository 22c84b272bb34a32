"""Custom exceptions for the image batch service."""

from __future__ import annotations

from typing import Any, List, Optional


class ImageBatchError(Exception):
    """Base exception for all image batch errors."""


class ConfigurationError(ImageBatchError):
    """Error raised for invalid configuration options."""


class ValidationError(ImageBatchError):
    """Error raised when a request or one of its option records is malformed.

    ``index`` and ``field`` identify the offending option record and field
    when the failure is tied to one of them.
    """

    def __init__(
        self, message: str, index: Optional[int] = None, field: Optional[str] = None
    ):
        super().__init__(message)
        self.index = index
        self.field = field


class ParseError(ImageBatchError):
    """Error raised when the options payload is not a well-formed JSON array."""


class StorageError(ImageBatchError):
    """Error raised when the staging area is unavailable or a write fails."""


class NotFoundError(ImageBatchError):
    """Error raised when an artifact key does not resolve."""


class TransformError(ImageBatchError):
    """Error raised when transforming a single image fails."""


class DecodeError(TransformError):
    """Input bytes are not a recognizable image."""


class UnsupportedFormatError(TransformError):
    """Requested output format has no registered encoder."""


class EncodeError(TransformError):
    """The encoder rejected the image or its parameters."""


class ItemTimeoutError(TransformError):
    """An item did not finish within its time budget."""


class BatchFailedError(TransformError):
    """Every item of a batch failed.

    Carries the per-item results so callers can report each failure.
    """

    def __init__(self, message: str, results: Optional[List[Any]] = None):
        super().__init__(message)
        self.results = results or []
