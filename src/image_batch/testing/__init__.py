"""Testing utilities and fakes for the image batch service."""

from .fakes import (
    FakeLogger,
    FakeTransformer,
    create_test_image,
)

__all__ = [
    "FakeLogger",
    "FakeTransformer",
    "create_test_image",
]
