"""
Attribute Value Comparators Package.

This package contains the pluggable equality strategies used to compare a live
attribute value with its declared value. Each module handles one family of
value kinds.
"""

from .base import compare_nested_object, compare_values

__all__ = [
    "compare_values",
    "compare_nested_object",
]
