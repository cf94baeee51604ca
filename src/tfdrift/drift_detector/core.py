"""
Core drift detection orchestration logic.

This module contains the main entry point for drift detection: it reads the
Terraform state, fetches the matching live EC2 instances, runs the batch drift
detector over every (live, declared) pair and assembles the drift report.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import Config
from ..utils import setup_logging
from .config_manager import ConfigManager
from .detector import DriftDetector
from .errors import FetchError, InstanceNotFoundError
from .fetchers import EC2InstanceFetcher, RetryPolicy
from .models import ResourcePair, Severity
from .resources import EC2Instance, TerraformConfig
from .state_parser import extract_instance_configs, load_state_content, parse_terraform_state
from .types import DriftReport

logger = setup_logging()


def fetch_live_instances(
    fetcher: EC2InstanceFetcher,
    instance_ids: List[str],
    deadline: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Fetches live instances, falling back to one call per id when the batch call
    reports an unknown id.

    Returns:
        Dictionary with "instances" (id -> EC2Instance), "missing" (ids that no
        longer exist) and "errors" (id -> exception for other failures)
    """
    instances: Dict[str, EC2Instance] = {}
    missing: List[str] = []
    errors: Dict[str, Exception] = {}
    if not instance_ids:
        return {"instances": instances, "missing": missing, "errors": errors}

    try:
        instances = fetcher.get_instances(instance_ids, deadline=deadline)
    except (InstanceNotFoundError, FetchError) as e:
        logger.warning(f"Batch instance lookup failed, retrying per instance: {e}")
        for instance_id in instance_ids:
            try:
                instances[instance_id] = fetcher.get_instance(instance_id, deadline=deadline)
            except InstanceNotFoundError:
                missing.append(instance_id)
            except FetchError as fetch_error:
                errors[instance_id] = fetch_error

    missing.extend(
        instance_id
        for instance_id in instance_ids
        if instance_id not in instances and instance_id not in errors and instance_id not in missing
    )
    return {"instances": instances, "missing": missing, "errors": errors}


def _missing_entry(address: str, declared: TerraformConfig, reason: str) -> Dict[str, str]:
    return {
        "address": address,
        "resource_id": declared.instance_id,
        "resource_type": declared.resource_type,
        "reason": reason,
    }


def detect_drift(config: Config) -> DriftReport:
    """
    Main entry point for drift detection. Orchestrates the entire drift detection process.

    This function:
    - Reads the Terraform state file from S3 or a local path
    - Extracts the declared EC2 instances
    - Fetches the live instances with retry and backoff
    - Compares each live instance with its declaration in parallel
    - Returns a drift report with per-resource results and summary statistics

    Args:
        config: Runtime configuration

    Returns:
        Dictionary containing the drift report

    Raises:
        ValueError: If the state file cannot be read or parsed
    """
    state = parse_terraform_state(load_state_content(config.state_path))
    declared = extract_instance_configs(state)

    detection_config = ConfigManager(config.drift_config_path).load_config()
    detector = DriftDetector(detection_config)
    fetcher = EC2InstanceFetcher(
        region_name=config.aws_region,
        retry_policy=RetryPolicy(max_retries=config.max_retries),
    )
    deadline = time.monotonic() + config.timeout_seconds

    missing_resources = [
        _missing_entry(address, declaration, "no instance id in state")
        for address, declaration in sorted(declared.items())
        if not declaration.instance_id
    ]
    instance_ids = sorted({d.instance_id for d in declared.values() if d.instance_id})
    fetched = fetch_live_instances(fetcher, instance_ids, deadline=deadline)

    errors: List[Dict[str, str]] = []
    addresses: List[str] = []
    pairs: List[ResourcePair] = []
    for address, declaration in sorted(declared.items()):
        instance_id = declaration.instance_id
        if not instance_id:
            continue
        if instance_id in fetched["errors"]:
            errors.append(
                {"address": address, "resource_id": instance_id, "error": str(fetched["errors"][instance_id])}
            )
        elif instance_id in fetched["instances"]:
            pairs.append(ResourcePair(len(pairs), fetched["instances"][instance_id], declaration))
            addresses.append(address)
        else:
            missing_resources.append(_missing_entry(address, declaration, "instance not found"))

    results, batch_error = detector.detect_drift_batch(pairs)
    if batch_error is not None:
        for index, error in batch_error.failures.items():
            errors.append(
                {"address": addresses[index], "resource_id": pairs[index].expected.instance_id, "error": str(error)}
            )

    reported = []
    severity_counts = {str(severity): 0 for severity in Severity if severity is not Severity.NONE}
    for address, result in zip(addresses, results):
        if result is None:
            continue
        entry = result.to_dict()
        entry["address"] = address
        reported.append(entry)
        if result.is_drifted:
            severity_counts[str(result.overall_severity)] += 1

    drifted_count = sum(1 for entry in reported if entry["is_drifted"])
    drift_detected = drifted_count > 0 or bool(missing_resources)
    logger.info(
        f"Drift detection finished: {drifted_count} drifted, "
        f"{len(missing_resources)} missing, {len(errors)} failed"
    )

    return {
        "drift_detected": drift_detected,
        "results": reported,
        "missing_resources": missing_resources,
        "errors": errors,
        "summary": {
            "total_resources": len(declared),
            "checked_resources": len(reported),
            "drifted_resources": drifted_count,
            "missing_resources": len(missing_resources),
            "failed_resources": len(errors),
            "severity_counts": severity_counts,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }
