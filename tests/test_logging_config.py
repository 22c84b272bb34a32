"""Tests for logging_config.py utility functions."""

import os
import sys
import logging
from unittest.mock import patch

import pytest

from image_batch.core import logging_config
from image_batch.core.logging_config import (
    HANDLER_NAME,
    configure_from_settings,
    get_logger,
    get_service_handler,
    logger,
    setup_logger,
)


def _service_handlers(test_logger):
    return [h for h in test_logger.handlers if h.get_name() == HANDLER_NAME]


@pytest.fixture(autouse=True)
def clean_logging_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    monkeypatch.setitem(logging_config._defaults, "level", None)
    monkeypatch.setitem(logging_config._defaults, "format", None)


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_setup_logger_default_parameters(self):
        """Test setup_logger with default parameters."""
        test_logger = setup_logger()
        assert test_logger.name == "image-batch"
        assert test_logger.level == logging.INFO
        assert len(_service_handlers(test_logger)) == 1
        assert not test_logger.propagate

    def test_setup_logger_custom_level_by_parameter(self):
        """Test setup_logger with custom level via parameter."""
        test_logger = setup_logger(name="test-param-level", level="DEBUG")
        assert test_logger.level == logging.DEBUG

    def test_setup_logger_custom_level_by_env_var(self):
        """Test setup_logger with custom level via environment variable."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            test_logger = setup_logger(name="test-env-level")
            assert test_logger.level == logging.WARNING

    def test_setup_logger_invalid_level_defaults_to_info(self):
        """Test setup_logger with invalid level defaults to INFO."""
        test_logger = setup_logger(name="test-invalid-level", level="INVALID_LEVEL")
        assert test_logger.level == logging.INFO

    def test_setup_logger_structured_format(self):
        """Test setup_logger with structured format."""
        test_logger = setup_logger(name="test-structured", format_type="structured")
        format_string = get_service_handler(test_logger).formatter._fmt
        assert "%(filename)s" in format_string
        assert "%(lineno)d" in format_string
        assert "%(funcName)s" in format_string

    def test_setup_logger_simple_format(self):
        """Test setup_logger with simple format."""
        test_logger = setup_logger(name="test-simple", format_type="simple")
        format_string = get_service_handler(test_logger).formatter._fmt
        assert "%(message)s" in format_string
        assert "%(filename)s" not in format_string

    def test_setup_logger_env_format_override(self):
        """Test setup_logger format override via environment variable."""
        with patch.dict(os.environ, {"LOG_FORMAT": "simple"}):
            test_logger = setup_logger(name="test-env-format", format_type="structured")
            assert "%(filename)s" not in get_service_handler(test_logger).formatter._fmt

    def test_setup_logger_no_duplicate_handlers(self):
        """Test that setup_logger doesn't add duplicate handlers."""
        test_logger1 = setup_logger(name="test-no-duplicates")
        test_logger2 = setup_logger(name="test-no-duplicates")
        assert test_logger1 is test_logger2
        assert len(_service_handlers(test_logger1)) == 1

    def test_setup_logger_ignores_foreign_handlers(self):
        """Test that handlers attached by other tools do not replace ours."""
        test_logger = logging.getLogger("test-foreign-handler")
        foreign = logging.NullHandler()
        test_logger.addHandler(foreign)

        setup_logger(name="test-foreign-handler")

        assert len(_service_handlers(test_logger)) == 1
        assert foreign in test_logger.handlers

    def test_setup_logger_handler_uses_stdout(self):
        """Test that logger handler uses stdout."""
        test_logger = setup_logger(name="test-stdout")
        assert get_service_handler(test_logger).stream is sys.stdout


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_default_name(self):
        """Test get_logger with default name."""
        assert get_logger().name == "image-batch"

    def test_get_logger_returns_configured_logger(self):
        """Test that get_logger returns a properly configured logger."""
        test_logger = get_logger(name="image-batch.test-configured")
        assert len(_service_handlers(test_logger)) == 1
        assert not test_logger.propagate


class TestConfigureFromSettings:
    """Tests for configure_from_settings."""

    def test_applies_level_to_existing_service_loggers(self):
        """Test that child loggers created earlier are reconfigured."""
        child = get_logger("image-batch.test-child")
        assert child.level == logging.INFO

        configure_from_settings("DEBUG", "structured")

        assert child.level == logging.DEBUG
        assert logging.getLogger("image-batch").level == logging.DEBUG

    def test_applies_to_loggers_created_later(self):
        """Test that new loggers inherit the configured defaults."""
        configure_from_settings("ERROR", "simple")
        test_logger = get_logger("image-batch.test-later")
        assert test_logger.level == logging.ERROR
        assert "%(filename)s" not in get_service_handler(test_logger).formatter._fmt

    def test_replaces_handlers(self):
        """Test that reconfiguration keeps a single handler with the new format."""
        configure_from_settings("INFO", "simple")
        root = configure_from_settings("INFO", "structured")
        assert len(_service_handlers(root)) == 1
        assert "%(filename)s" in get_service_handler(root).formatter._fmt

    def test_leaves_unrelated_loggers_alone(self):
        """Test that loggers outside the service namespace are untouched."""
        other = setup_logger(name="unrelated-logger", level="WARNING")
        configure_from_settings("DEBUG", "structured")
        assert other.level == logging.WARNING


class TestDefaultLogger:
    """Tests for default logger instance."""

    def test_default_logger_exists(self):
        """Test that default logger instance is created."""
        assert isinstance(logger, logging.Logger)
        assert logger.name == "image-batch"
        assert not logger.propagate
