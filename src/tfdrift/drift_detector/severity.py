"""
Severity classification for drifted attributes.

Severity depends only on the attribute name, never on the values involved.
Supporting a new resource type means adding InstanceAttribute members and table
entries, not changing the lookup.
"""

from enum import Enum
from typing import Dict, FrozenSet

from ..utils import to_snake_case
from .models import Severity


class InstanceAttribute(str, Enum):
    """EC2 instance attributes with a non-default risk tier."""

    SECURITY_GROUPS = "security_groups"
    INSTANCE_TYPE = "instance_type"
    AMI = "ami"
    VPC_ID = "vpc_id"
    SUBNET_ID = "subnet_id"
    DISABLE_API_TERMINATION = "disable_api_termination"
    KEY_NAME = "key_name"
    MONITORING = "monitoring"
    EBS_OPTIMIZED = "ebs_optimized"
    SOURCE_DEST_CHECK = "source_dest_check"
    INSTANCE_INITIATED_SHUTDOWN_BEHAVIOR = "instance_initiated_shutdown_behavior"
    TENANCY = "tenancy"
    PLACEMENT_GROUP = "placement_group"
    ROOT_DEVICE_TYPE = "root_device_type"
    BLOCK_DEVICE_MAPPINGS = "block_device_mappings"
    TAGS = "tags"
    AVAILABILITY_ZONE = "availability_zone"
    CPU_CORE_COUNT = "cpu_core_count"
    CPU_THREADS_PER_CORE = "cpu_threads_per_core"
    ROOT_DEVICE_NAME = "root_device_name"


# Security or functionality affecting
CRITICAL_ATTRIBUTES: FrozenSet[InstanceAttribute] = frozenset(
    {
        InstanceAttribute.SECURITY_GROUPS,
        InstanceAttribute.INSTANCE_TYPE,
        InstanceAttribute.AMI,
        InstanceAttribute.VPC_ID,
        InstanceAttribute.SUBNET_ID,
        InstanceAttribute.DISABLE_API_TERMINATION,
    }
)

HIGH_ATTRIBUTES: FrozenSet[InstanceAttribute] = frozenset(
    {
        InstanceAttribute.KEY_NAME,
        InstanceAttribute.MONITORING,
        InstanceAttribute.EBS_OPTIMIZED,
        InstanceAttribute.SOURCE_DEST_CHECK,
        InstanceAttribute.INSTANCE_INITIATED_SHUTDOWN_BEHAVIOR,
        InstanceAttribute.TENANCY,
        InstanceAttribute.PLACEMENT_GROUP,
        InstanceAttribute.ROOT_DEVICE_TYPE,
        InstanceAttribute.BLOCK_DEVICE_MAPPINGS,
    }
)

MEDIUM_ATTRIBUTES: FrozenSet[InstanceAttribute] = frozenset(
    {
        InstanceAttribute.TAGS,
        InstanceAttribute.AVAILABILITY_ZONE,
        InstanceAttribute.CPU_CORE_COUNT,
        InstanceAttribute.CPU_THREADS_PER_CORE,
        InstanceAttribute.ROOT_DEVICE_NAME,
    }
)


def _build_severity_table() -> Dict[str, Severity]:
    table: Dict[str, Severity] = {}
    for severity, attributes in (
        (Severity.MEDIUM, MEDIUM_ATTRIBUTES),
        (Severity.HIGH, HIGH_ATTRIBUTES),
        (Severity.CRITICAL, CRITICAL_ATTRIBUTES),
    ):
        for attribute in attributes:
            table[attribute.value] = severity
    return table


SEVERITY_BY_ATTRIBUTE: Dict[str, Severity] = _build_severity_table()


def classify_severity(attribute_name: str) -> Severity:
    """
    Returns the risk tier for an attribute name; unknown attributes are LOW.
    CamelCase names are normalised to snake_case before the lookup.
    """
    return SEVERITY_BY_ATTRIBUTE.get(to_snake_case(attribute_name), Severity.LOW)
