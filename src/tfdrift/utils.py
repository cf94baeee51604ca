"""
Utility functions for Terraform Drift Detector.
"""

import functools
import logging
from typing import Callable, Optional, TypeVar, cast

F = TypeVar("F", bound=Callable[..., object])


def setup_logging(log_level: Optional[str] = None) -> logging.Logger:
    """
    Sets up logging configuration for the drift detector.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). When omitted the
            current level is kept, or INFO if the logger was never configured.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("tfdrift")
    if log_level is not None:
        logger.setLevel(getattr(logging, log_level.upper()))
    elif logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)

    # Prevent duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def fetcher_error_handler(func: F) -> F:
    """
    Decorator for consistent error logging in AWS fetchers.
    Logs the failing function name with the error and re-raises it unchanged,
    so callers still see the original exception type.
    """

    @functools.wraps(func)
    def wrapper(*args: object, **kwargs: object) -> object:
        logger = setup_logging()
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in {func.__name__}: {e}")
            raise

    return cast(F, wrapper)


def to_snake_case(name: str) -> str:
    """
    Converts a CamelCase field name to snake_case.

    Every upper-case letter after the first character starts a new word, so
    "InstanceType" becomes "instance_type" and names that are already
    snake_case are returned unchanged.
    """
    chars = []
    for i, char in enumerate(name):
        if char.isupper():
            if i > 0:
                chars.append("_")
            chars.append(char.lower())
        else:
            chars.append(char)
    return "".join(chars)
