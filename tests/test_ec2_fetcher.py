"""
Unit tests for the EC2 instance fetcher.
All AWS interactions are mocked to avoid real API calls.
"""

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from tfdrift.drift_detector.errors import (
    DeadlineExceededError,
    FetchError,
    InstanceNotFoundError,
    InvalidInstanceIDError,
)
from tfdrift.drift_detector.fetchers import EC2InstanceFetcher, RetryPolicy, convert_from_aws_instance

FAST = RetryPolicy(max_retries=2, base_delay=0.001, max_delay=0.002)

AWS_INSTANCE = {
    "InstanceId": "i-0abc",
    "InstanceType": "t3.micro",
    "State": {"Code": 16, "Name": "running"},
    "ImageId": "ami-123",
    "KeyName": "deploy",
    "PrivateIpAddress": "10.0.1.15",
    "PublicIpAddress": "203.0.113.7",
    "SubnetId": "subnet-1",
    "VpcId": "vpc-1",
    "Placement": {"AvailabilityZone": "eu-west-2a", "Tenancy": "default"},
    "LaunchTime": datetime(2024, 5, 1, tzinfo=timezone.utc),
    "Architecture": "x86_64",
    "EbsOptimized": True,
    "SourceDestCheck": False,
    "Monitoring": {"State": "enabled"},
    "SecurityGroups": [{"GroupId": "sg-1", "GroupName": "web"}],
    "Tags": [{"Key": "Name", "Value": "web"}, {"Key": "Env", "Value": "prod"}],
}


def describe_response(*instances):
    return {"Reservations": [{"Instances": list(instances)}]}


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "DescribeInstances")


class TestConvertFromAwsInstance(unittest.TestCase):
    """describe_instances entries to EC2Instance."""

    def test_full_instance(self) -> None:
        instance = convert_from_aws_instance(AWS_INSTANCE)
        self.assertEqual(instance.instance_id, "i-0abc")
        self.assertEqual(instance.availability_zone, "eu-west-2a")
        self.assertTrue(instance.monitoring)
        self.assertTrue(instance.ebs_optimized)
        self.assertTrue(instance.is_running())
        self.assertEqual(instance.tags, {"Name": "web", "Env": "prod"})
        self.assertEqual(instance.security_groups[0].group_name, "web")
        self.assertIsNone(instance.platform)
        self.assertIs(instance.source_dest_check, False)
        self.assertIs(instance.to_attribute_map()["source_dest_check"], False)

    def test_minimal_instance(self) -> None:
        instance = convert_from_aws_instance({"InstanceId": "i-1", "Monitoring": {"State": "disabled"}})
        self.assertFalse(instance.monitoring)
        self.assertEqual(instance.tags, {})
        self.assertEqual(instance.security_groups, [])
        self.assertIsNone(instance.image_id)
        self.assertNotIn("source_dest_check", instance.to_attribute_map())


class TestEC2InstanceFetcher(unittest.TestCase):
    """get_instance / get_instances with a mocked client."""

    def setUp(self) -> None:
        self.client = MagicMock()
        self.fetcher = EC2InstanceFetcher(ec2_client=self.client, retry_policy=FAST)

    def test_get_instance(self) -> None:
        self.client.describe_instances.return_value = describe_response(AWS_INSTANCE)
        instance = self.fetcher.get_instance("i-0abc")
        self.assertEqual(instance.instance_type, "t3.micro")
        self.client.describe_instances.assert_called_once_with(InstanceIds=["i-0abc"])

    def test_empty_id(self) -> None:
        with self.assertRaises(InvalidInstanceIDError):
            self.fetcher.get_instance("")
        self.client.describe_instances.assert_not_called()

    def test_not_found_error_code(self) -> None:
        self.client.describe_instances.side_effect = client_error("InvalidInstanceID.NotFound")
        with self.assertRaises(InstanceNotFoundError) as context:
            self.fetcher.get_instance("i-gone")
        self.assertEqual(context.exception.resource_id, "i-gone")
        self.assertIsInstance(context.exception.__cause__, ClientError)
        self.assertEqual(self.client.describe_instances.call_count, 1)

    def test_empty_reservations(self) -> None:
        self.client.describe_instances.return_value = {"Reservations": []}
        with self.assertRaises(InstanceNotFoundError):
            self.fetcher.get_instance("i-gone")

    def test_transient_error_is_retried(self) -> None:
        self.client.describe_instances.side_effect = [
            client_error("RequestLimitExceeded"),
            describe_response(AWS_INSTANCE),
        ]
        self.assertEqual(self.fetcher.get_instance("i-0abc").instance_id, "i-0abc")
        self.assertEqual(self.client.describe_instances.call_count, 2)

    def test_persistent_failure_is_wrapped(self) -> None:
        self.client.describe_instances.side_effect = client_error("InternalError")
        with self.assertRaises(FetchError) as context:
            self.fetcher.get_instance("i-0abc")
        self.assertEqual(context.exception.operation, "get_instance")
        self.assertIn("i-0abc", str(context.exception))
        self.assertEqual(self.client.describe_instances.call_count, 3)

    def test_unauthorized_is_not_retried(self) -> None:
        self.client.describe_instances.side_effect = client_error("UnauthorizedOperation")
        with self.assertRaises(FetchError):
            self.fetcher.get_instance("i-0abc")
        self.assertEqual(self.client.describe_instances.call_count, 1)

    def test_deadline_is_not_wrapped(self) -> None:
        with self.assertRaises(DeadlineExceededError):
            self.fetcher.get_instance("i-0abc", deadline=0.0)

    def test_get_instances(self) -> None:
        second = dict(AWS_INSTANCE, InstanceId="i-0def")
        self.client.describe_instances.return_value = describe_response(AWS_INSTANCE, second)
        instances = self.fetcher.get_instances(["i-0abc", "i-0def", "i-0abc"])
        self.assertEqual(sorted(instances), ["i-0abc", "i-0def"])
        self.client.describe_instances.assert_called_once_with(InstanceIds=["i-0abc", "i-0def"])

    def test_get_instances_empty(self) -> None:
        self.assertEqual(self.fetcher.get_instances([]), {})
        self.client.describe_instances.assert_not_called()

    @patch("tfdrift.drift_detector.fetchers.ec2_instances_fetcher.boto3.client")
    def test_default_client_disables_botocore_retries(self, mock_boto3_client: MagicMock) -> None:
        EC2InstanceFetcher(region_name="eu-west-2")
        args, kwargs = mock_boto3_client.call_args
        self.assertEqual(args, ("ec2",))
        self.assertEqual(kwargs["region_name"], "eu-west-2")
        boto_config = kwargs["config"]
        self.assertEqual(boto_config.connect_timeout, 10.0)
        self.assertEqual(boto_config.read_timeout, 10.0)
        self.assertEqual(boto_config.retries["max_attempts"], 1)


if __name__ == "__main__":
    unittest.main()
