"""
AWS Lambda entry point for Terraform Drift Detector.
"""

import json

from .config import load_config
from .drift_detector import detect_drift
from .utils import setup_logging

JSON_HEADERS = {"Content-Type": "application/json"}


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "body": json.dumps(body, default=str),
        "headers": JSON_HEADERS,
    }


def lambda_handler(event: dict, context: object) -> dict:
    """
    AWS Lambda handler function.

    Args:
        event: Lambda event data
        context: Lambda context

    Returns:
        Dictionary with statusCode and body containing drift report
    """
    logger = setup_logging()
    try:
        config = load_config()
        logger = setup_logging(config.log_level)
        logger.info("Starting Terraform drift detection")

        drift_report = detect_drift(config)

        logger.info(
            f"Drift detection completed. "
            f"Drift detected: {drift_report.get('drift_detected', False)}"
        )
        return _response(200, drift_report)

    except ValueError as e:
        # Configuration or validation errors
        logger.error(f"Configuration error: {e}")
        return _response(400, {"error": "Configuration error", "message": str(e)})

    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return _response(500, {"error": "Internal server error", "message": str(e)})
