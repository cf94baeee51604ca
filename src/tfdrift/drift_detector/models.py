"""
Drift Detection Data Model.

This module contains the comparison settings, detection configuration and the
result records produced by the drift detector.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Set, Tuple

from ..utils import setup_logging

logger = setup_logging()


class ComparisonType(Enum):
    """Strategy used to decide whether two attribute values are equal."""

    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    NUMERIC_TOLERANCE = "numeric_tolerance"
    ARRAY_ORDERED = "array_ordered"
    ARRAY_UNORDERED = "array_unordered"
    MAP_COMPARISON = "map_comparison"
    NESTED_OBJECT = "nested_object"

    @classmethod
    def parse(cls, value: str) -> "ComparisonType":
        """Parses a config-file string, falling back to exact_match for unknown values."""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown comparison type {value!r}, using exact_match")
            return cls.EXACT_MATCH


class Severity(IntEnum):
    """Operational risk tier of a difference, ordered NONE < LOW < ... < CRITICAL."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    def __str__(self) -> str:
        return self.name.lower()


class DifferenceType(str, Enum):
    """How an attribute differs between the live and the declared record."""

    ADDED = "added"  # observed but not declared
    REMOVED = "removed"  # declared but not observed
    CHANGED = "changed"


@dataclass(frozen=True)
class AttributeConfig:
    """How a single attribute is compared."""

    comparison_type: ComparisonType = ComparisonType.EXACT_MATCH
    case_sensitive: bool = True
    tolerance: Optional[float] = None
    required: bool = False
    description: str = ""


@dataclass
class DetectionConfig:
    """
    Detection settings owned by a DriftDetector.

    attribute_configs maps attribute names to their comparison settings and
    default_config applies to every attribute that has no entry of its own.
    """

    attribute_configs: Dict[str, AttributeConfig] = field(default_factory=dict)
    default_config: AttributeConfig = field(default_factory=AttributeConfig)
    ignored_attributes: Set[str] = field(default_factory=set)
    strict_mode: bool = False
    max_concurrency: int = 10
    timeout_seconds: float = 30

    def config_for(self, attribute_name: str) -> AttributeConfig:
        return self.attribute_configs.get(attribute_name, self.default_config)

    def is_ignored(self, attribute_name: str) -> bool:
        return attribute_name in self.ignored_attributes


@dataclass(frozen=True)
class AttributeDifference:
    """A single attribute that differs between the live and declared records."""

    attribute_name: str
    actual_value: Any
    expected_value: Any
    severity: Severity
    description: str
    difference_type: DifferenceType = DifferenceType.CHANGED

    def __str__(self) -> str:
        return (
            f"{self.attribute_name}: expected '{self.expected_value}', "
            f"got '{self.actual_value}' ({self.difference_type.value})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attribute_name": self.attribute_name,
            "actual_value": self.actual_value,
            "expected_value": self.expected_value,
            "severity": str(self.severity),
            "description": self.description,
            "difference_type": self.difference_type.value,
        }


@dataclass(frozen=True)
class DriftResult:
    """
    Outcome of one drift detection.

    is_drifted and overall_severity are derived from differences and can never
    disagree with them.
    """

    resource_id: str
    resource_type: str
    differences: Tuple[AttributeDifference, ...] = ()
    detection_time: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_drifted(self) -> bool:
        return len(self.differences) > 0

    @property
    def overall_severity(self) -> Severity:
        return max(
            (difference.severity for difference in self.differences),
            default=Severity.NONE,
        )

    @property
    def drifted_attributes(self) -> List[str]:
        return [difference.attribute_name for difference in self.differences]

    def summary(self) -> str:
        """Returns a human-readable one-line summary of the result."""
        if not self.is_drifted:
            return f"No drift detected for resource {self.resource_id}"

        counts: Dict[Severity, int] = {}
        for difference in self.differences:
            counts[difference.severity] = counts.get(difference.severity, 0) + 1
        parts = [
            f"{counts[severity]} {severity}"
            for severity in sorted(counts, reverse=True)
        ]
        return (
            f"Drift detected for resource {self.resource_id}: "
            f"{', '.join(parts)} differences across {len(self.differences)} attributes"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "detection_time": self.detection_time.isoformat(),
            "is_drifted": self.is_drifted,
            "overall_severity": str(self.overall_severity),
            "differences": [difference.to_dict() for difference in self.differences],
        }


@dataclass(frozen=True)
class ResourcePair:
    """One (actual, expected) pair submitted to a batch, tagged with its result slot."""

    index: int
    actual: Any
    expected: Any


@dataclass(frozen=True)
class BatchResult:
    """Output of one pair of a batch, correlated back to its input by index."""

    index: int
    result: Optional[DriftResult] = None
    error: Optional[Exception] = None
