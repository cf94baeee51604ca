"""
Terraform Drift Detector Package.

This package detects configuration drift between EC2 instances declared in
Terraform state and the instances actually running in AWS.

The drift detection process:
1. Reads and parses the Terraform state file from S3 or disk
2. Fetches the live EC2 instances with retry and backoff
3. Compares every declared attribute with its live value
4. Reports drifted attributes ranked by severity, plus missing instances
"""

from .core import detect_drift
from .detector import DriftDetector
from .models import (
    AttributeConfig,
    AttributeDifference,
    ComparisonType,
    DetectionConfig,
    DriftResult,
    ResourcePair,
    Severity,
)

__all__ = [
    "AttributeConfig",
    "AttributeDifference",
    "ComparisonType",
    "DetectionConfig",
    "DriftDetector",
    "DriftResult",
    "ResourcePair",
    "Severity",
    "detect_drift",
]
