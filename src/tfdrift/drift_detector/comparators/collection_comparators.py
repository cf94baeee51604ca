"""
Collection Value Comparators Module.

This module contains the sequence and mapping equality strategies. Element and
value comparison is delegated back to the caller-supplied compare function so
that nested values follow the same rules as top-level attributes.
"""

from typing import Any, Callable, Dict, List, Tuple

from ..models import AttributeConfig, ComparisonType

CompareFunc = Callable[[Any, Any, AttributeConfig], Tuple[bool, str]]


def compare_array(
    actual: List[Any],
    expected: List[Any],
    config: AttributeConfig,
    compare: CompareFunc,
) -> Tuple[bool, str]:
    """Compare two sequences; a length mismatch short-circuits to not equal."""
    if len(actual) != len(expected):
        return False, f"array length mismatch: {len(actual)} vs {len(expected)}"

    if config.comparison_type is ComparisonType.ARRAY_UNORDERED:
        return compare_array_unordered(actual, expected)

    return compare_array_ordered(actual, expected, config, compare)


def compare_array_ordered(
    actual: List[Any],
    expected: List[Any],
    config: AttributeConfig,
    compare: CompareFunc,
) -> Tuple[bool, str]:
    for index, (actual_item, expected_item) in enumerate(zip(actual, expected)):
        is_equal, description = compare(actual_item, expected_item, config)
        if not is_equal:
            return False, f"array element mismatch at index {index}: {description}"
    return True, "array comparison (ordered): all elements match"


def compare_array_unordered(actual: List[Any], expected: List[Any]) -> Tuple[bool, str]:
    """
    Compare two sequences ignoring order by sorting their str() forms.

    This is an approximation: 1 and "1" stringify identically and compare equal,
    while equivalent values with different formatting (1.0 and 1) compare unequal.
    """
    actual_strs = sorted(str(item) for item in actual)
    expected_strs = sorted(str(item) for item in expected)

    if actual_strs != expected_strs:
        return False, f"array content mismatch (unordered): {actual} vs {expected}"

    return True, "array comparison (unordered): all elements match"


def compare_map(
    actual: Dict[str, Any],
    expected: Dict[str, Any],
    config: AttributeConfig,
    compare: CompareFunc,
) -> Tuple[bool, str]:
    """
    Compare two mappings key by key in both directions.
    Missing and extra keys are never tolerated, whatever the comparison mode.
    """
    if len(actual) != len(expected):
        return False, f"map size mismatch: {len(actual)} vs {len(expected)} keys"

    for key, expected_value in expected.items():
        if key not in actual:
            return False, f"missing key in actual map: '{key}'"
        is_equal, description = compare(actual[key], expected_value, config)
        if not is_equal:
            return False, f"map value mismatch for key '{key}': {description}"

    for key in actual:
        if key not in expected:
            return False, f"extra key in actual map: '{key}'"

    return True, "map comparison: all key-value pairs match"
