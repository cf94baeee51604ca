"""
EC2 Resource Records Module.

This module contains the live (EC2Instance) and declared (TerraformConfig,
EC2InstanceConfig) records compared by the drift detector. Each record exposes
its comparable attributes through to_attribute_map().
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .types import AttributeMap

INSTANCE_STATE_RUNNING = "running"
INSTANCE_STATE_STOPPED = "stopped"


@dataclass
class SecurityGroup:
    """A security group attached to an EC2 instance."""

    group_id: str
    group_name: str = ""


@dataclass
class EC2Instance:
    """Live EC2 instance as described by the EC2 API."""

    instance_id: str
    instance_type: str
    state: str = ""
    image_id: Optional[str] = None
    key_name: Optional[str] = None
    public_ip_address: Optional[str] = None
    private_ip_address: Optional[str] = None
    public_dns_name: Optional[str] = None
    private_dns_name: Optional[str] = None
    subnet_id: Optional[str] = None
    vpc_id: Optional[str] = None
    availability_zone: Optional[str] = None
    launch_time: Optional[datetime] = None
    platform: Optional[str] = None
    architecture: Optional[str] = None
    monitoring: bool = False
    ebs_optimized: bool = False
    source_dest_check: Optional[bool] = None
    security_groups: List[SecurityGroup] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    resource_type = "aws_instance"

    @property
    def resource_id(self) -> str:
        return self.instance_id

    def get_tag(self, key: str) -> str:
        return self.tags.get(key, "")

    def is_running(self) -> bool:
        return self.state == INSTANCE_STATE_RUNNING

    def is_stopped(self) -> bool:
        return self.state == INSTANCE_STATE_STOPPED

    def to_attribute_map(self) -> AttributeMap:
        attributes: AttributeMap = {
            "instance_id": self.instance_id,
            "instance_type": self.instance_type,
            "tags": self.tags,
            "monitoring": self.monitoring,
            "ebs_optimized": self.ebs_optimized,
        }
        optional = {
            "ami": self.image_id,
            "public_ip": self.public_ip_address,
            "private_ip": self.private_ip_address,
            "subnet_id": self.subnet_id,
            "vpc_id": self.vpc_id,
            "availability_zone": self.availability_zone,
            "key_name": self.key_name,
            "source_dest_check": self.source_dest_check,
        }
        attributes.update({name: value for name, value in optional.items() if value is not None})

        # Only the group ids take part in the comparison
        if self.security_groups:
            attributes["security_groups"] = [group.group_id for group in self.security_groups]
        return attributes


@dataclass
class BlockDevice:
    """EBS block device declared on an instance."""

    device_name: str
    volume_type: str = ""
    volume_size: int = 0
    iops: int = 0
    throughput: int = 0
    encrypted: Optional[bool] = None
    kms_key_id: str = ""
    delete_on_termination: Optional[bool] = None
    snapshot_id: str = ""
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class TerraformConfig:
    """Declared EC2 instance configuration extracted from Terraform state."""

    resource_id: str  # Terraform address, e.g. "aws_instance.web"
    instance_id: str = ""
    instance_type: str = ""
    ami: str = ""
    key_name: str = ""
    subnet_id: str = ""
    vpc_id: str = ""
    availability_zone: str = ""
    private_ip: str = ""
    public_ip: str = ""
    ebs_optimized: Optional[bool] = None
    monitoring: Optional[bool] = None
    source_dest_check: Optional[bool] = None
    tags: Dict[str, str] = field(default_factory=dict)
    security_groups: List[str] = field(default_factory=list)
    security_group_refs: List[str] = field(default_factory=list)
    root_block_device: Optional[BlockDevice] = None
    ebs_block_devices: List[BlockDevice] = field(default_factory=list)

    @property
    def resource_type(self) -> str:
        return self.resource_id.split(".")[0]

    @property
    def resource_name(self) -> str:
        parts = self.resource_id.split(".")
        return parts[1] if len(parts) > 1 else ""

    def is_ec2_instance(self) -> bool:
        return self.resource_type == "aws_instance"

    def validate(self) -> None:
        """Raises ValueError if a field every declaration needs is empty."""
        for name in ("resource_id", "instance_type", "ami"):
            if not getattr(self, name):
                raise ValueError(f"{name} is required")

    def to_attribute_map(self) -> AttributeMap:
        attributes: AttributeMap = {
            "instance_id": self.instance_id,
            "instance_type": self.instance_type,
            "ami": self.ami,
            "tags": self.tags,
        }
        for name in ("public_ip", "private_ip", "subnet_id", "vpc_id", "availability_zone", "key_name"):
            value = getattr(self, name)
            if value:
                attributes[name] = value

        # Resolved references win over literal ids
        if self.security_group_refs:
            attributes["security_groups"] = list(self.security_group_refs)
        elif self.security_groups:
            attributes["security_groups"] = list(self.security_groups)

        for name in ("monitoring", "ebs_optimized", "source_dest_check"):
            value = getattr(self, name)
            if value is not None:
                attributes[name] = value
        return attributes


@dataclass
class EC2InstanceConfig:
    """Reduced instance declaration as produced by configuration-source parsers."""

    resource_name: str
    instance_type: str = ""
    ami: str = ""
    subnet_id: Optional[str] = None
    vpc_security_group_ids: List[str] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    key_name: Optional[str] = None
    user_data: Optional[str] = None

    resource_type = "ec2_instance_config"

    @property
    def resource_id(self) -> str:
        return self.resource_name

    def to_attribute_map(self) -> AttributeMap:
        attributes: AttributeMap = {
            "instance_type": self.instance_type,
            "ami": self.ami,
            "tags": self.tags,
            "security_groups": list(self.vpc_security_group_ids) or None,
            "subnet_id": self.subnet_id,
            "key_name": self.key_name,
            "user_data": self.user_data,
        }
        return {name: value for name, value in attributes.items() if value is not None}
