#!/usr/bin/env python3
"""
Command-line interface for running the Terraform Drift Detector locally.

It requires AWS credentials to be configured (via AWS CLI, environment variables, or IAM roles).

Usage:
    python run_drift_detector.py --state-path s3://your-bucket/path/to/terraform.tfstate
    python run_drift_detector.py --state-path ./terraform.tfstate --region us-east-1
    python run_drift_detector.py --state-path ./terraform.tfstate --output report.json --fail-on-drift
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from tfdrift.config import VALID_LOG_LEVELS, Config
from tfdrift.drift_detector import detect_drift
from tfdrift.utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect drift between Terraform-declared and live EC2 instances",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_drift_detector.py --state-path s3://my-terraform-bucket/terraform.tfstate
  python run_drift_detector.py --state-path local://state.tfstate --region us-west-2 --log-level DEBUG
        """,
    )
    parser.add_argument(
        "--state-path",
        required=True,
        help="Terraform state file: s3://bucket/key, local://path or a plain file path",
    )
    parser.add_argument("--region", default=None, help="AWS region for API calls")
    parser.add_argument(
        "--log-level",
        choices=VALID_LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=3,
        help="Maximum number of retries for AWS API calls (default: 3)",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=int,
        default=30,
        help="Overall deadline for fetching live instances in seconds (default: 30)",
    )
    parser.add_argument(
        "--drift-config",
        default=None,
        help="Path to the drift detection config JSON (default: $DRIFT_CONFIG_PATH or ~/.tfdrift/drift-config.json)",
    )
    parser.add_argument(
        "--output-format",
        choices=["json", "pretty"],
        default="pretty",
        help="Output format for the drift report (default: pretty)",
    )
    parser.add_argument("--output", default=None, help="Write the JSON report to this file")
    parser.add_argument(
        "--fail-on-drift",
        action="store_true",
        help="Exit with code 1 when drift or missing instances are found",
    )
    return parser


def print_drift_report(drift_report: Dict[str, Any]) -> None:
    """Print a human-readable drift report."""
    summary = drift_report.get("summary", {})
    print("\n" + "=" * 60)
    print("TERRAFORM DRIFT DETECTION REPORT")
    print("=" * 60)
    print(f"\nTimestamp: {summary.get('timestamp', 'Unknown')}")
    print(f"Declared instances: {summary.get('total_resources', 0)}")
    print(f"Checked instances: {summary.get('checked_resources', 0)}")

    results = drift_report.get("results", [])
    drifted = [result for result in results if result["is_drifted"]]
    print(f"\n=== Drifted Resources ({len(drifted)}) ===")
    for i, result in enumerate(drifted, 1):
        print(f"{i}. {result['address']} ({result['resource_id']}) severity={result['overall_severity']}")
        for difference in result["differences"]:
            print(f"     - [{difference['severity']}] {difference['attribute_name']}: {difference['description']}")
    if not drifted:
        print("No drifted resources detected.")

    missing = drift_report.get("missing_resources", [])
    print(f"\n=== Missing Resources ({len(missing)}) ===")
    for entry in missing:
        print(f"❌ {entry['address']} {entry['resource_id']}: {entry['reason']}")

    errors = drift_report.get("errors", [])
    if errors:
        print(f"\n=== Errors ({len(errors)}) ===")
        for entry in errors:
            print(f"⚠️  {entry['address']}: {entry['error']}")

    counts = summary.get("severity_counts", {})
    print("\nSeverity: " + ", ".join(f"{name}={count}" for name, count in counts.items()))
    print("\n" + "=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line drift detector."""
    args = build_parser().parse_args(argv)

    logger = setup_logging(args.log_level)
    logger.info("Starting Terraform drift detection from command line")

    config = Config(
        state_path=args.state_path,
        aws_region=args.region,
        log_level=args.log_level,
        max_retries=args.max_retries,
        timeout_seconds=args.timeout_seconds,
        drift_config_path=args.drift_config,
    )

    try:
        drift_report = detect_drift(config)
    except Exception as e:
        logger.error(f"Error running drift detection: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(drift_report, f, indent=2, default=str)
        logger.info(f"Drift report written to {args.output}")

    if args.output_format == "json":
        print(json.dumps(drift_report, indent=2, default=str))
    else:
        print_drift_report(drift_report)

    if args.fail_on_drift and drift_report.get("drift_detected", False):
        logger.warning("Drift detected! Exiting with code 1")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
