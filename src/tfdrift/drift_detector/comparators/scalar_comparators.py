"""
Scalar Value Comparators Module.

This module contains the string and numeric equality strategies.
"""

from typing import Tuple

from ..models import AttributeConfig, ComparisonType


def compare_string(actual: str, expected: str, config: AttributeConfig) -> Tuple[bool, str]:
    """
    Compare two strings, ordinal or case-folded depending on config.case_sensitive.
    Exact and fuzzy modes share the same equality rule and differ only in how
    the outcome is described.
    """
    mode = "fuzzy" if config.comparison_type is ComparisonType.FUZZY_MATCH else "exact"
    if config.case_sensitive:
        return (
            actual == expected,
            f"string comparison (case-sensitive {mode}): '{actual}' vs '{expected}'",
        )
    return (
        actual.casefold() == expected.casefold(),
        f"string comparison (case-insensitive {mode}): '{actual}' vs '{expected}'",
    )


def compare_numeric(actual: float, expected: float, config: AttributeConfig) -> Tuple[bool, str]:
    """
    Compare two numbers already widened to float.
    numeric_tolerance with a tolerance set accepts |actual - expected| <= tolerance;
    every other mode requires exact equality.
    """
    if config.comparison_type is ComparisonType.NUMERIC_TOLERANCE and config.tolerance is not None:
        diff = abs(actual - expected)
        tolerance = config.tolerance
        return (
            diff <= tolerance,
            f"numeric comparison with tolerance {tolerance:.6f}: "
            f"{actual:.6f} vs {expected:.6f} (diff: {diff:.6f})",
        )

    return actual == expected, f"numeric comparison (exact): {actual:.6f} vs {expected:.6f}"


def compare_bool(actual: bool, expected: bool) -> Tuple[bool, str]:
    return actual == expected, f"boolean comparison: {actual} vs {expected}"
