"""
Detection Configuration Module.

This module contains the default detection settings, their validation, and the
JSON file format used to load and save them.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..utils import setup_logging
from .errors import ConfigValidationError
from .models import AttributeConfig, ComparisonType, DetectionConfig

logger = setup_logging()

DEFAULT_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 5 * 60
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 100
MAX_TOLERANCE = 1_000_000.0
CONFIG_PATH_ENV_VAR = "DRIFT_CONFIG_PATH"

_EXACT = AttributeConfig(ComparisonType.EXACT_MATCH, case_sensitive=True)
_EXACT_IGNORE_CASE = AttributeConfig(ComparisonType.EXACT_MATCH, case_sensitive=False)


def default_detection_config() -> DetectionConfig:
    """Returns the detection settings used when no configuration file exists."""
    return DetectionConfig(
        attribute_configs={
            "instance_id": _EXACT,
            "instance_type": _EXACT,
            "ami": _EXACT,
            "state": _EXACT_IGNORE_CASE,
            "public_ip": _EXACT,
            "private_ip": _EXACT,
            "public_dns": _EXACT_IGNORE_CASE,
            "private_dns": _EXACT_IGNORE_CASE,
            "security_groups": AttributeConfig(ComparisonType.ARRAY_UNORDERED),
            "tags": AttributeConfig(ComparisonType.MAP_COMPARISON),
            "subnet_id": _EXACT,
            "vpc_id": _EXACT,
            "availability_zone": _EXACT,
            "key_name": _EXACT,
            "monitoring": _EXACT,
            "ebs_optimized": _EXACT,
            "source_dest_check": _EXACT,
            "disable_api_termination": _EXACT,
            "instance_initiated_shutdown_behavior": _EXACT_IGNORE_CASE,
            "placement_group": _EXACT,
            "tenancy": _EXACT_IGNORE_CASE,
            "host_id": _EXACT,
            "cpu_core_count": _EXACT,
            "cpu_threads_per_core": _EXACT,
            "root_device_name": _EXACT,
            "root_device_type": _EXACT_IGNORE_CASE,
            "block_device_mappings": AttributeConfig(ComparisonType.ARRAY_UNORDERED),
        },
        default_config=_EXACT,
        ignored_attributes={
            "launch_time",  # AWS-managed, changes on every start
            "state_transition_reason",
            "state_reason",
            "network_interfaces",
            "security_groups_detailed",  # redundant with security_groups
        },
        strict_mode=False,
        max_concurrency=10,
        timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
    )


def strict_detection_config() -> DetectionConfig:
    """Returns the default settings tightened for production runs."""
    config = default_detection_config()
    config.strict_mode = True
    config.max_concurrency = 5
    config.timeout_seconds = 60
    return config


def validate_attribute_config(attribute_name: str, config: AttributeConfig) -> None:
    if not isinstance(config.comparison_type, ComparisonType):
        raise ConfigValidationError(
            f"invalid config for attribute '{attribute_name}': "
            f"invalid comparison type {config.comparison_type!r}"
        )

    if config.comparison_type is ComparisonType.NUMERIC_TOLERANCE:
        if config.tolerance is None:
            raise ConfigValidationError(
                f"invalid config for attribute '{attribute_name}': "
                "tolerance is required for numeric_tolerance comparison"
            )
        if config.tolerance < 0:
            raise ConfigValidationError(
                f"invalid config for attribute '{attribute_name}': "
                f"tolerance must be non-negative, got {config.tolerance}"
            )
        if config.tolerance > MAX_TOLERANCE:
            raise ConfigValidationError(
                f"invalid config for attribute '{attribute_name}': "
                f"tolerance too high (max {MAX_TOLERANCE:.0f}), got {config.tolerance}"
            )


def validate_config(config: DetectionConfig) -> None:
    """
    Validates detection settings against their bounds.

    Raises:
        ConfigValidationError: On the first setting out of bounds
    """
    if config.max_concurrency < MIN_CONCURRENCY:
        raise ConfigValidationError(
            f"max_concurrency must be positive, got {config.max_concurrency}"
        )
    if config.max_concurrency > MAX_CONCURRENCY:
        raise ConfigValidationError(
            f"max_concurrency too high (max {MAX_CONCURRENCY}), got {config.max_concurrency}"
        )
    if config.timeout_seconds <= 0:
        raise ConfigValidationError(
            f"timeout must be positive, got {config.timeout_seconds}s"
        )
    if config.timeout_seconds > MAX_TIMEOUT_SECONDS:
        raise ConfigValidationError(
            f"timeout too high (max 5 minutes), got {config.timeout_seconds}s"
        )

    for attribute_name, attribute_config in config.attribute_configs.items():
        validate_attribute_config(attribute_name, attribute_config)
    validate_attribute_config("default", config.default_config)


def attribute_config_to_dict(config: AttributeConfig) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "comparison_type": config.comparison_type.value,
        "case_sensitive": config.case_sensitive,
    }
    if config.tolerance is not None:
        data["tolerance"] = config.tolerance
    return data


def attribute_config_from_dict(data: Dict[str, Any]) -> AttributeConfig:
    tolerance = data.get("tolerance")
    return AttributeConfig(
        comparison_type=ComparisonType.parse(data.get("comparison_type", "exact_match")),
        case_sensitive=bool(data.get("case_sensitive", False)),
        tolerance=float(tolerance) if tolerance is not None else None,
    )


def config_to_dict(config: DetectionConfig) -> Dict[str, Any]:
    """Converts detection settings to the JSON configuration file shape."""
    timeout_seconds = int(config.timeout_seconds)
    if timeout_seconds <= 0:
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    return {
        "attribute_configs": {
            name: attribute_config_to_dict(attribute_config)
            for name, attribute_config in sorted(config.attribute_configs.items())
        },
        "default_config": attribute_config_to_dict(config.default_config),
        "ignored_attributes": sorted(config.ignored_attributes),
        "strict_mode": config.strict_mode,
        "max_concurrency": config.max_concurrency,
        "timeout_seconds": timeout_seconds,
    }


def config_from_dict(data: Dict[str, Any]) -> DetectionConfig:
    """Builds detection settings from the JSON configuration file shape."""
    timeout_seconds = data.get("timeout_seconds") or 0
    if timeout_seconds <= 0:
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    return DetectionConfig(
        attribute_configs={
            name: attribute_config_from_dict(attribute_data)
            for name, attribute_data in (data.get("attribute_configs") or {}).items()
        },
        default_config=attribute_config_from_dict(data.get("default_config") or {}),
        ignored_attributes=set(data.get("ignored_attributes") or []),
        strict_mode=bool(data.get("strict_mode", False)),
        max_concurrency=int(data.get("max_concurrency", 0)),
        timeout_seconds=timeout_seconds,
    )


class ConfigManager:
    """Loads and saves detection settings from a JSON file."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        self.config_path = Path(config_path or get_config_path())

    def load_config(self) -> DetectionConfig:
        """
        Loads detection settings, returning the defaults when the file is missing.

        Raises:
            ValueError: If the file is not valid JSON or not a JSON object
        """
        if not self.config_path.exists():
            logger.info(f"No drift config at {self.config_path}, using defaults")
            return default_detection_config()

        logger.info(f"Loading drift config from {self.config_path}")
        try:
            data = json.loads(self.config_path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"failed to parse config file {self.config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"config file {self.config_path} must contain a JSON object")
        return config_from_dict(data)

    def save_config(self, config: DetectionConfig) -> None:
        """Writes detection settings, creating the parent directory when needed."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps(config_to_dict(config), indent=2))
        logger.info(f"Saved drift config to {self.config_path}")


def get_config_path() -> str:
    """Returns the config path from DRIFT_CONFIG_PATH, or the per-user default."""
    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return env_path
    return str(Path.home() / ".tfdrift" / "drift-config.json")
