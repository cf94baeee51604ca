"""
Type definitions for the Terraform Drift Detector.

This module contains the shared type aliases used across the comparator,
detector and fetcher modules.
"""

# AWS Client Types - Using Any for flexibility with boto3 clients
#
# boto3 does not provide static type stubs for service clients, and the methods
# available on each client are dynamically generated at runtime.
from typing import Any, Dict, List, Union

EC2Client = Any
S3Client = Any

# Attribute values as they appear in Terraform state and EC2 responses
ResourceValue = Union[str, int, float, bool, List, Dict, None]
AttributeMap = Dict[str, Any]

# Raw boto3 describe_instances instance entry
LiveInstanceData = Dict[str, Any]

# Terraform state types
TerraformResource = Dict[str, Any]
TerraformState = Dict[str, Any]

# Drift report produced by the orchestration layer
DriftReport = Dict[str, Any]
