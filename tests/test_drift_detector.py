"""
Unit tests for the drift detection orchestration in the Terraform Drift Detector.
All AWS interactions are mocked to avoid real API calls.
"""

import json
import unittest
from unittest.mock import MagicMock, patch

from tfdrift.config import Config
from tfdrift.drift_detector import detect_drift
from tfdrift.drift_detector.core import fetch_live_instances
from tfdrift.drift_detector.detector import DriftDetector
from tfdrift.drift_detector.errors import FetchError, InstanceNotFoundError
from tfdrift.drift_detector.fetchers import convert_from_aws_instance
from tfdrift.drift_detector.models import DifferenceType, Severity
from tfdrift.drift_detector.resources import EC2Instance
from tfdrift.drift_detector.state_parser import instance_config_from_attributes

FLAGS = {"monitoring": False, "ebs_optimized": False, "source_dest_check": True}

STATE = {
    "version": 4,
    "resources": [
        {
            "mode": "managed",
            "type": "aws_instance",
            "name": name,
            "instances": [{"attributes": attributes}],
        }
        for name, attributes in (
            ("web", {"id": "i-web", "instance_type": "t3.micro", "ami": "ami-1", "tags": {"Name": "web"}, **FLAGS}),
            ("api", {"id": "i-api", "instance_type": "t3.micro", "ami": "ami-1", "tags": {"Name": "api"}, **FLAGS}),
            ("gone", {"id": "i-gone", "instance_type": "t3.micro", "ami": "ami-1"}),
            ("pending", {"instance_type": "t3.micro", "ami": "ami-1"}),
        )
    ],
}

LIVE = {
    "i-web": EC2Instance(instance_id="i-web", instance_type="t3.micro", image_id="ami-1", tags={"Name": "web"}, source_dest_check=True),
    "i-api": EC2Instance(instance_id="i-api", instance_type="t3.large", image_id="ami-1", tags={"Name": "api"}, source_dest_check=True),
}


class TestDetectDrift(unittest.TestCase):
    """End-to-end detection with state loading and fetching mocked."""

    def setUp(self) -> None:
        self.config = Config(state_path="s3://bucket/state.tfstate", drift_config_path="/nonexistent/drift.json")

    @patch("tfdrift.drift_detector.core.EC2InstanceFetcher")
    @patch("tfdrift.drift_detector.core.load_state_content")
    def test_detect_drift_report(self, mock_load: MagicMock, mock_fetcher_cls: MagicMock) -> None:
        """Drifted, clean, missing and id-less declarations all land in the report."""
        mock_load.return_value = json.dumps(STATE)
        fetcher = mock_fetcher_cls.return_value
        fetcher.get_instances.side_effect = InstanceNotFoundError("ec2 instance not found")

        def get_instance(instance_id, deadline=None):
            if instance_id not in LIVE:
                raise InstanceNotFoundError("ec2 instance not found", resource_id=instance_id)
            return LIVE[instance_id]

        fetcher.get_instance.side_effect = get_instance

        report = detect_drift(self.config)

        mock_load.assert_called_once_with("s3://bucket/state.tfstate")
        self.assertTrue(report["drift_detected"])
        by_address = {entry["address"]: entry for entry in report["results"]}
        self.assertEqual(sorted(by_address), ["aws_instance.api", "aws_instance.web"])
        self.assertTrue(by_address["aws_instance.api"]["is_drifted"])
        self.assertEqual(by_address["aws_instance.api"]["overall_severity"], "critical")
        self.assertFalse(by_address["aws_instance.web"]["is_drifted"])

        missing = {entry["address"]: entry["reason"] for entry in report["missing_resources"]}
        self.assertEqual(
            missing,
            {"aws_instance.pending": "no instance id in state", "aws_instance.gone": "instance not found"},
        )
        summary = report["summary"]
        self.assertEqual(summary["total_resources"], 4)
        self.assertEqual(summary["checked_resources"], 2)
        self.assertEqual(summary["drifted_resources"], 1)
        self.assertEqual(summary["severity_counts"]["critical"], 1)
        self.assertIn("timestamp", summary)
        self.assertEqual(report["errors"], [])
        json.dumps(report)

    @patch("tfdrift.drift_detector.core.EC2InstanceFetcher")
    @patch("tfdrift.drift_detector.core.load_state_content")
    def test_no_drift(self, mock_load: MagicMock, mock_fetcher_cls: MagicMock) -> None:
        state = {"resources": [STATE["resources"][0]]}
        mock_load.return_value = json.dumps(state)
        mock_fetcher_cls.return_value.get_instances.return_value = {"i-web": LIVE["i-web"]}

        report = detect_drift(self.config)

        self.assertFalse(report["drift_detected"])
        self.assertEqual(report["summary"]["drifted_resources"], 0)

    @patch("tfdrift.drift_detector.core.load_state_content")
    def test_invalid_state_raises(self, mock_load: MagicMock) -> None:
        mock_load.return_value = "not json"
        with self.assertRaises(ValueError):
            detect_drift(self.config)


STATE_ATTRIBUTES = {
    "id": "i-0abc",
    "ami": "ami-123",
    "instance_type": "t3.micro",
    "key_name": "deploy",
    "subnet_id": "subnet-1",
    "availability_zone": "eu-west-2a",
    "private_ip": "10.0.1.15",
    "public_ip": "203.0.113.7",
    "vpc_security_group_ids": ["sg-2", "sg-1"],
    "tags": {"Name": "web"},
    "monitoring": False,
    "ebs_optimized": False,
    "source_dest_check": True,
}

DESCRIBED_INSTANCE = {
    "InstanceId": "i-0abc",
    "ImageId": "ami-123",
    "InstanceType": "t3.micro",
    "KeyName": "deploy",
    "SubnetId": "subnet-1",
    "VpcId": "vpc-1",
    "Placement": {"AvailabilityZone": "eu-west-2a"},
    "PrivateIpAddress": "10.0.1.15",
    "PublicIpAddress": "203.0.113.7",
    "SecurityGroups": [{"GroupId": "sg-1", "GroupName": "web"}, {"GroupId": "sg-2", "GroupName": "ssh"}],
    "Tags": [{"Key": "Name", "Value": "web"}],
    "Monitoring": {"State": "disabled"},
    "EbsOptimized": False,
    "SourceDestCheck": True,
    "State": {"Name": "running"},
}


class TestStateAgainstDescribedInstance(unittest.TestCase):
    """A state entry compared with the describe_instances entry of the same instance."""

    def setUp(self) -> None:
        self.detector = DriftDetector()
        self.declared = instance_config_from_attributes("aws_instance.web", STATE_ATTRIBUTES)

    def test_unchanged_instance_reports_only_undeclared_vpc(self) -> None:
        result = self.detector.detect_drift(convert_from_aws_instance(DESCRIBED_INSTANCE), self.declared)
        self.assertEqual(result.drifted_attributes, ["vpc_id"])
        self.assertEqual(result.differences[0].difference_type, DifferenceType.ADDED)
        self.assertEqual(result.overall_severity, Severity.LOW)

    def test_unchanged_instance_does_not_drift(self) -> None:
        described = {k: v for k, v in DESCRIBED_INSTANCE.items() if k != "VpcId"}
        result = self.detector.detect_drift(convert_from_aws_instance(described), self.declared)
        self.assertFalse(result.is_drifted, result.summary())

    def test_source_dest_check_change(self) -> None:
        described = dict(DESCRIBED_INSTANCE, SourceDestCheck=False)
        result = self.detector.detect_drift(convert_from_aws_instance(described), self.declared)
        by_name = {d.attribute_name: d for d in result.differences}
        self.assertEqual(by_name["source_dest_check"].difference_type, DifferenceType.CHANGED)
        self.assertEqual(by_name["source_dest_check"].severity, Severity.HIGH)


class TestFetchLiveInstances(unittest.TestCase):
    """Batch fetch with per-instance fallback."""

    def test_fetch_errors_are_collected(self) -> None:
        fetcher = MagicMock()
        fetcher.get_instances.side_effect = FetchError("failed")
        fetcher.get_instance.side_effect = [LIVE["i-web"], FetchError("failed", resource_id="i-api")]

        fetched = fetch_live_instances(fetcher, ["i-web", "i-api"])

        self.assertEqual(list(fetched["instances"]), ["i-web"])
        self.assertEqual(list(fetched["errors"]), ["i-api"])
        self.assertEqual(fetched["missing"], [])

    def test_instances_absent_from_response_are_missing(self) -> None:
        fetcher = MagicMock()
        fetcher.get_instances.return_value = {"i-web": LIVE["i-web"]}
        fetched = fetch_live_instances(fetcher, ["i-web", "i-api"])
        self.assertEqual(fetched["missing"], ["i-api"])

    def test_no_ids(self) -> None:
        fetcher = MagicMock()
        self.assertEqual(fetch_live_instances(fetcher, [])["instances"], {})
        fetcher.get_instances.assert_not_called()


if __name__ == "__main__":
    unittest.main()
