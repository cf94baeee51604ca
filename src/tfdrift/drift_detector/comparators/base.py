"""
Base Value Comparators Module.

This module contains compare_values, the single entry point used by the drift
detector, which routes a pair of values to the comparator for their kind.
"""

import dataclasses
import functools
import numbers
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from ..models import AttributeConfig
from .collection_comparators import compare_array, compare_map
from .scalar_comparators import compare_bool, compare_numeric, compare_string

FieldConfigs = Optional[Dict[str, AttributeConfig]]


def _value_kind(value: Any) -> str:
    # bool must be checked before numbers: bool is an int subclass
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, numbers.Real):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple)):
        return "sequence"
    return "object"


def _string_keys(value: Mapping) -> Dict[str, Any]:
    return {str(key): item for key, item in value.items()}


def compare_values(
    actual: Any,
    expected: Any,
    config: AttributeConfig,
    field_configs: FieldConfigs = None,
) -> Tuple[bool, str]:
    """
    Compares two attribute values under the given comparison config.

    None on both sides is equal and None on one side is not. Values of different
    kinds are compared through their str() forms as strings, so 1 and "1"
    compare equal.

    Args:
        actual: Value observed on the live resource
        expected: Value declared in the Terraform configuration
        config: Comparison settings for this attribute
        field_configs: Per-field overrides applied when recursing into objects

    Returns:
        Tuple of (equal, human-readable description of the comparison)
    """
    if actual is None and expected is None:
        return True, "both values are nil"
    if actual is None or expected is None:
        return False, f"nil mismatch: {actual} vs {expected}"

    actual_kind = _value_kind(actual)
    expected_kind = _value_kind(expected)
    if actual_kind != expected_kind or (
        actual_kind == "object" and type(actual) is not type(expected)
    ):
        return compare_string(str(actual), str(expected), config)

    compare = functools.partial(compare_values, field_configs=field_configs)

    if actual_kind == "string":
        return compare_string(actual, expected, config)
    if actual_kind == "number":
        return compare_numeric(float(actual), float(expected), config)
    if actual_kind == "bool":
        return compare_bool(actual, expected)
    if actual_kind == "sequence":
        return compare_array(list(actual), list(expected), config, compare)
    if actual_kind == "map":
        return compare_map(_string_keys(actual), _string_keys(expected), config, compare)
    return compare_nested_object(actual, expected, config, field_configs)


def _public_fields(value: Any) -> Optional[List[str]]:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return [f.name for f in dataclasses.fields(value) if not f.name.startswith("_")]
    if hasattr(value, "__dict__"):
        return [name for name in vars(value) if not name.startswith("_")]
    return None


def compare_nested_object(
    actual: Any,
    expected: Any,
    config: AttributeConfig,
    field_configs: FieldConfigs = None,
) -> Tuple[bool, str]:
    """
    Compare two structured objects of the same type field by field.

    Only public fields take part. Each field is compared with the parent config
    unless field_configs holds an entry for that field name. Objects that expose
    no fields (datetimes, sets, ...) are compared with ==.
    """
    actual_fields = _public_fields(actual)
    expected_fields = _public_fields(expected)
    if actual_fields is None or expected_fields is None:
        is_equal = actual == expected
        return is_equal, f"deep comparison ({type(actual).__name__}): {actual} vs {expected}"

    field_names = list(dict.fromkeys(actual_fields + expected_fields))
    for name in field_names:
        field_config = config
        if field_configs and name in field_configs:
            field_config = field_configs[name]
        is_equal, description = compare_values(
            getattr(actual, name, None),
            getattr(expected, name, None),
            field_config,
            field_configs,
        )
        if not is_equal:
            return False, f"struct field '{name}' mismatch: {description}"

    return True, "struct comparison: all fields match"
