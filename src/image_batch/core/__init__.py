"""Core utilities and shared components for the image batch service."""

from .image_utils import (
    compute_target_size,
    decode_image,
    encode_image,
    transform_image,
)
from .logging_config import (
    get_logger,
    setup_logger,
)
from .exceptions import (
    ImageBatchError,
    ValidationError,
    ParseError,
    StorageError,
    NotFoundError,
    ConfigurationError,
    TransformError,
    DecodeError,
    UnsupportedFormatError,
    EncodeError,
    ItemTimeoutError,
    BatchFailedError,
)
from .models import (
    Artifact,
    BatchRequest,
    BatchResult,
    ImageItem,
    ItemResult,
    OutputFormat,
    TransformJob,
    TransformOptions,
)
from .options import bind_options, parse_options_payload

__all__ = [
    "Artifact",
    "BatchRequest",
    "BatchResult",
    "ImageItem",
    "ItemResult",
    "OutputFormat",
    "TransformJob",
    "TransformOptions",
    "bind_options",
    "parse_options_payload",
    "compute_target_size",
    "decode_image",
    "encode_image",
    "transform_image",
    "setup_logger",
    "get_logger",
    "ImageBatchError",
    "ValidationError",
    "ParseError",
    "StorageError",
    "NotFoundError",
    "ConfigurationError",
    "TransformError",
    "DecodeError",
    "UnsupportedFormatError",
    "EncodeError",
    "ItemTimeoutError",
    "BatchFailedError",
]
