"""
EC2 Instance Fetchers Module.

This module contains the fetcher for live EC2 instances. Every describe call is
wrapped in retry_with_backoff, and not-found responses are translated into
InstanceNotFoundError so callers can tell "resource gone" from "call failed".
"""

import threading
from typing import Dict, List, Optional, Sequence

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ...utils import fetcher_error_handler, setup_logging
from ..errors import (
    DeadlineExceededError,
    FetchError,
    InstanceNotFoundError,
    InvalidInstanceIDError,
    OperationCancelledError,
)
from ..resources import EC2Instance, SecurityGroup
from ..types import EC2Client, LiveInstanceData
from .retry import ERROR_PATTERN_INSTANCE_NOT_FOUND, RetryPolicy, retry_with_backoff

logger = setup_logging()


def convert_from_aws_instance(instance: LiveInstanceData) -> EC2Instance:
    """
    Convert one entry of a describe_instances response into an EC2Instance.

    Args:
        instance: Instance dictionary from Reservations[].Instances[]

    Returns:
        EC2Instance with tags flattened and security groups reduced to id/name
    """
    placement = instance.get("Placement") or {}
    monitoring = instance.get("Monitoring") or {}
    state = instance.get("State") or {}

    return EC2Instance(
        instance_id=instance["InstanceId"],
        instance_type=instance.get("InstanceType", ""),
        state=state.get("Name", ""),
        image_id=instance.get("ImageId"),
        key_name=instance.get("KeyName"),
        public_ip_address=instance.get("PublicIpAddress"),
        private_ip_address=instance.get("PrivateIpAddress"),
        public_dns_name=instance.get("PublicDnsName"),
        private_dns_name=instance.get("PrivateDnsName"),
        subnet_id=instance.get("SubnetId"),
        vpc_id=instance.get("VpcId"),
        availability_zone=placement.get("AvailabilityZone"),
        launch_time=instance.get("LaunchTime"),
        platform=instance.get("Platform") or None,
        architecture=instance.get("Architecture") or None,
        monitoring=monitoring.get("State") == "enabled",
        ebs_optimized=bool(instance.get("EbsOptimized", False)),
        source_dest_check=instance.get("SourceDestCheck"),
        security_groups=[
            SecurityGroup(group_id=group["GroupId"], group_name=group.get("GroupName", ""))
            for group in instance.get("SecurityGroups", [])
        ],
        tags={
            tag["Key"]: tag["Value"]
            for tag in instance.get("Tags", [])
            if "Key" in tag and "Value" in tag
        },
    )


def _is_not_found(error: Exception) -> bool:
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code == ERROR_PATTERN_INSTANCE_NOT_FOUND:
            return True
    return ERROR_PATTERN_INSTANCE_NOT_FOUND in str(error)


class EC2InstanceFetcher:
    """Fetches live EC2 instances with retry and backoff."""

    def __init__(
        self,
        ec2_client: Optional[EC2Client] = None,
        region_name: Optional[str] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        self.retry_policy = retry_policy
        if ec2_client is None:
            # botocore's own retries are disabled: retry_with_backoff owns them
            boto_config = BotoConfig(
                connect_timeout=retry_policy.request_timeout,
                read_timeout=retry_policy.request_timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            )
            ec2_client = boto3.client("ec2", region_name=region_name, config=boto_config)
        self.ec2_client = ec2_client

    def _describe(
        self,
        instance_ids: List[str],
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ) -> List[LiveInstanceData]:
        response = retry_with_backoff(
            lambda: self.ec2_client.describe_instances(InstanceIds=instance_ids),
            policy=self.retry_policy,
            cancel_event=cancel_event,
            deadline=deadline,
        )
        return [
            instance
            for reservation in response.get("Reservations", [])
            for instance in reservation.get("Instances", [])
        ]

    @fetcher_error_handler
    def get_instance(
        self,
        instance_id: str,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> EC2Instance:
        """
        Fetch a single EC2 instance by id.

        Raises:
            InvalidInstanceIDError: If instance_id is empty
            InstanceNotFoundError: If the instance does not exist
            FetchError: If the describe call failed for any other reason
        """
        if not instance_id:
            raise InvalidInstanceIDError("invalid instance id", operation="get_instance")

        logger.debug(f"[EC2] Retrieving EC2 instance with ID: {instance_id}")
        try:
            instances = self._describe([instance_id], cancel_event, deadline)
        except (OperationCancelledError, DeadlineExceededError):
            raise
        except Exception as e:
            if _is_not_found(e):
                raise InstanceNotFoundError(
                    "ec2 instance not found", operation="get_instance", resource_id=instance_id
                ) from e
            raise FetchError(
                "failed to describe EC2 instance", operation="get_instance", resource_id=instance_id
            ) from e

        if not instances:
            raise InstanceNotFoundError(
                "ec2 instance not found", operation="get_instance", resource_id=instance_id
            )

        logger.debug(f"[EC2] Successfully retrieved EC2 instance: {instance_id}")
        return convert_from_aws_instance(instances[0])

    @fetcher_error_handler
    def get_instances(
        self,
        instance_ids: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> Dict[str, EC2Instance]:
        """
        Fetch several EC2 instances in one describe call.

        Returns:
            Dictionary mapping instance id to EC2Instance

        Raises:
            InvalidInstanceIDError: If any id is empty
            InstanceNotFoundError: If the API reports one of the ids as unknown
            FetchError: If the describe call failed for any other reason
        """
        if not instance_ids:
            return {}
        if not all(instance_ids):
            raise InvalidInstanceIDError("invalid instance id", operation="get_instances")

        ids = list(dict.fromkeys(instance_ids))
        logger.debug(f"[EC2] Retrieving {len(ids)} EC2 instances")
        try:
            instances = self._describe(ids, cancel_event, deadline)
        except (OperationCancelledError, DeadlineExceededError):
            raise
        except Exception as e:
            if _is_not_found(e):
                raise InstanceNotFoundError(
                    "ec2 instance not found", operation="get_instances", resource_id=",".join(ids)
                ) from e
            raise FetchError(
                "failed to describe EC2 instances", operation="get_instances", resource_id=",".join(ids)
            ) from e

        result = {}
        for instance in instances:
            converted = convert_from_aws_instance(instance)
            result[converted.instance_id] = converted

        logger.debug(f"[EC2] Successfully retrieved {len(result)} EC2 instances")
        return result
