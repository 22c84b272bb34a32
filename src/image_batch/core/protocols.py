"""Protocol definitions for dependency injection and testability."""

from typing import Any, Callable, List, Optional, Protocol

from .models import Artifact, ItemResult, OutputFormat, TransformOptions


class TransformerProtocol(Protocol):
    """Protocol for the transform engine."""

    def transform(self, image_bytes: bytes, options: TransformOptions) -> bytes:
        """Decode, resize and re-encode image bytes."""
        ...


class StagingStoreProtocol(Protocol):
    """Protocol for staging store operations."""

    def ensure_ready(self) -> None:
        """Create the backing namespace if needed."""
        ...

    def put(self, data: bytes, original_name: str, fmt: OutputFormat) -> Artifact:
        """Stage bytes under a fresh key."""
        ...

    def get(self, key: str) -> bytes:
        """Read bytes by key."""
        ...

    def resolve(self, key: str) -> Artifact:
        """Look up artifact metadata by key."""
        ...

    def delete(self, key: str) -> None:
        """Remove an artifact."""
        ...

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Remove artifacts older than the retention window."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        ...


# process_batch(jobs, settings, store, transformer) -> results
ProcessBatchFunction = Callable[..., List[ItemResult]]
