"""Centralized logging configuration for the image batch service."""

import os
import sys
import logging
from typing import Dict, Optional

ROOT_LOGGER_NAME = "image-batch"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
HANDLER_NAME = "image-batch-stdout"

# Filled by configure_from_settings; environment variables still win
_defaults: Dict[str, Optional[str]] = {"level": None, "format": None}


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "structured":
        return logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(SIMPLE_FORMAT)


def _resolve_level(level: Optional[str]) -> int:
    name = level or os.getenv("LOG_LEVEL") or _defaults["level"] or "INFO"
    return getattr(logging, name.upper(), logging.INFO)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "image-batch")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    # Avoid duplicate handlers; handlers added by other tools are left alone
    if get_service_handler(logger) is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        env_format = os.getenv("LOG_FORMAT") or _defaults["format"] or format_type
        handler.setFormatter(_build_formatter(env_format.lower()))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_service_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    """Return the stdout handler installed by ``setup_logger``, if any."""
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return setup_logger(name)


def configure_from_settings(level: str, format_type: str) -> logging.Logger:
    """
    Apply the configured level and format to every service logger.

    Loggers created later pick the same values up through ``setup_logger``.
    """
    _defaults["level"] = level
    _defaults["format"] = format_type

    names = [ROOT_LOGGER_NAME] + [
        name
        for name in logging.root.manager.loggerDict
        if name.startswith(ROOT_LOGGER_NAME + ".")
    ]
    for name in names:
        existing = logging.getLogger(name)
        handler = get_service_handler(existing)
        if handler is not None:
            existing.removeHandler(handler)
        setup_logger(name)

    return logging.getLogger(ROOT_LOGGER_NAME)


# Create default logger instance
logger = setup_logger()
