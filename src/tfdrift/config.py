"""
Configuration loader for Terraform Drift Detector.
"""

import os
from dataclasses import dataclass
from typing import Optional

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Config:
    """Configuration class for the drift detector."""

    state_path: str
    aws_region: Optional[str] = None
    log_level: str = "INFO"
    max_retries: int = 3
    timeout_seconds: int = 30
    drift_config_path: Optional[str] = None


def _parse_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_config() -> Config:
    """
    Loads and validates configuration from environment variables.

    Returns:
        Config object with validated settings

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Required configuration
    state_path = os.environ.get("STATE_FILE_PATH")
    if not state_path:
        raise ValueError("STATE_FILE_PATH environment variable is required")

    # Validate state path format
    if "://" in state_path and not state_path.startswith(("s3://", "local://")):
        raise ValueError(
            "STATE_FILE_PATH must be a local path, a local:// path or an S3 path starting with s3://"
        )

    # Optional configuration with defaults
    aws_region = os.environ.get("AWS_REGION")
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")
    max_retries = _parse_int("MAX_RETRIES", "3")
    timeout_seconds = _parse_int("TIMEOUT_SECONDS", "30")
    if max_retries < 0:
        raise ValueError("MAX_RETRIES must not be negative")
    if timeout_seconds <= 0:
        raise ValueError("TIMEOUT_SECONDS must be positive")

    return Config(
        state_path=state_path,
        aws_region=aws_region,
        log_level=log_level,
        max_retries=max_retries,
        timeout_seconds=timeout_seconds,
        drift_config_path=os.environ.get("DRIFT_CONFIG_PATH"),
    )
