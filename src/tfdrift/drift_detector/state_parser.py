"""
Terraform State Parser Module.

This module reads Terraform state files from disk or S3 and extracts the
declared EC2 instances as TerraformConfig records.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import boto3

from ..utils import setup_logging
from .resources import TerraformConfig
from .types import S3Client, TerraformResource, TerraformState

logger = setup_logging()

LOCAL_PREFIX = "local://"
S3_PREFIX = "s3://"
INSTANCE_RESOURCE_TYPE = "aws_instance"


def download_s3_file(s3_path: str, s3_client: Optional[S3Client] = None) -> str:
    """
    Downloads a file from S3 and returns its content as a string.

    Args:
        s3_path: S3 path in format 's3://bucket/key'
        s3_client: Optional boto3 S3 client

    Returns:
        File content as string

    Raises:
        ValueError: If S3 path is invalid
    """
    parsed = urlparse(s3_path)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if parsed.scheme != "s3" or not bucket or not key:
        raise ValueError(f"Invalid S3 path: {s3_path}")

    logger.info(f"Downloading S3 file: {s3_path}")
    if s3_client is None:
        s3_client = boto3.client("s3")
    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
    except Exception as e:
        logger.error(f"Failed to download S3 file {s3_path}: {e}")
        raise

    content_bytes = response["Body"].read()
    content = (
        content_bytes.decode("utf-8")
        if isinstance(content_bytes, bytes)
        else str(content_bytes)
    )
    logger.info(f"Successfully downloaded {len(content)} bytes from S3")
    return content


def load_state_content(state_path: str, s3_client: Optional[S3Client] = None) -> str:
    """Reads raw state text from an s3:// path, a local:// path or a plain file path."""
    if state_path.startswith(S3_PREFIX):
        return download_s3_file(state_path, s3_client)

    if state_path.startswith(LOCAL_PREFIX):
        state_path = state_path[len(LOCAL_PREFIX):]
    logger.info(f"Reading local state file: {state_path}")
    with open(state_path, "r", encoding="utf-8") as f:
        return f.read()


def parse_terraform_state(state_content: str) -> TerraformState:
    """
    Parses Terraform state file content into a Python dict.

    Raises:
        ValueError: If the content is not JSON or not a JSON object
    """
    logger.info("Parsing Terraform state file")
    try:
        state_data = json.loads(state_content)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in state file: {e}")
        raise ValueError(f"Invalid JSON in state file: {e}")
    if not isinstance(state_data, dict):
        raise ValueError("State file did not parse to a dictionary.")

    logger.info(
        f"Successfully parsed state file with "
        f"{len(state_data.get('resources', []))} resources"
    )
    return state_data


def _optional_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def instance_config_from_attributes(address: str, attributes: Dict[str, Any]) -> TerraformConfig:
    """Builds a TerraformConfig from the attributes of one aws_instance state entry."""
    tags = attributes.get("tags") or {}
    return TerraformConfig(
        resource_id=address,
        instance_id=attributes.get("id") or "",
        instance_type=attributes.get("instance_type") or "",
        ami=attributes.get("ami") or "",
        key_name=attributes.get("key_name") or "",
        subnet_id=attributes.get("subnet_id") or "",
        availability_zone=attributes.get("availability_zone") or "",
        private_ip=attributes.get("private_ip") or "",
        public_ip=attributes.get("public_ip") or "",
        ebs_optimized=_optional_bool(attributes.get("ebs_optimized")),
        monitoring=_optional_bool(attributes.get("monitoring")),
        source_dest_check=_optional_bool(attributes.get("source_dest_check")),
        tags={str(k): str(v) for k, v in tags.items()},
        security_groups=_string_list(attributes.get("vpc_security_group_ids")),
    )


def _resource_address(resource: TerraformResource) -> str:
    address = f"{resource.get('type')}.{resource.get('name')}"
    module = resource.get("module")
    return f"{module}.{address}" if module else address


def extract_instance_configs(state: TerraformState) -> Dict[str, TerraformConfig]:
    """
    Extracts declared EC2 instances from parsed Terraform state.

    Managed aws_instance resources are returned keyed by their address, e.g.
    "aws_instance.web"; resources with several instances get an index suffix,
    e.g. "aws_instance.web[0]". Data sources are skipped.
    """
    configs: Dict[str, TerraformConfig] = {}
    for resource in state.get("resources", []):
        if resource.get("type") != INSTANCE_RESOURCE_TYPE or resource.get("mode", "managed") != "managed":
            continue

        address = _resource_address(resource)
        instances = resource.get("instances", [])
        for index, instance in enumerate(instances):
            instance_address = address
            if len(instances) > 1 or "index_key" in instance:
                instance_address = f"{address}[{instance.get('index_key', index)}]"
            configs[instance_address] = instance_config_from_attributes(
                instance_address, instance.get("attributes", {})
            )

    logger.info(f"Extracted {len(configs)} EC2 instance declarations from state")
    return configs
