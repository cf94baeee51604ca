"""
Drift Detector Module.

This module contains the DriftDetector, which compares a live resource record
with its declared configuration and assembles a severity-ranked DriftResult,
either for a single pair or for a batch of pairs in parallel.
"""

import copy
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence, Tuple

from ..utils import setup_logging
from .adapters import extract_resource_id, extract_resource_type, resource_to_map
from .comparators import compare_values
from .config_manager import default_detection_config, validate_config
from .errors import (
    AdaptationError,
    BatchDetectionError,
    DriftValidationError,
    UnknownAttributeError,
)
from .models import (
    AttributeDifference,
    BatchResult,
    DetectionConfig,
    DifferenceType,
    DriftResult,
    ResourcePair,
    Severity,
)
from .severity import classify_severity
from .types import AttributeMap

logger = setup_logging()


class DriftDetector:
    """
    Detects drift between live and declared resource records.

    The detection config is published as an immutable snapshot: every detection
    reads the current snapshot once when it starts and uses it until it returns.
    update_config() swaps in a new snapshot without waiting for detections in
    flight, which keep the settings they started with.
    """

    def __init__(self, config: Optional[DetectionConfig] = None) -> None:
        config = config if config is not None else default_detection_config()
        validate_config(config)
        self._config = copy.deepcopy(config)
        self._config_lock = threading.Lock()

    def update_config(self, config: DetectionConfig) -> None:
        """
        Replaces the detection settings for detections started from now on.

        Raises:
            ConfigValidationError: If the new settings are out of bounds
        """
        validate_config(config)
        snapshot = copy.deepcopy(config)
        with self._config_lock:
            self._config = snapshot
        logger.info("Drift detection config updated")

    def get_config(self) -> DetectionConfig:
        """Returns a copy of the current detection settings."""
        return copy.deepcopy(self._snapshot())

    def _snapshot(self) -> DetectionConfig:
        with self._config_lock:
            return self._config

    def detect_drift(self, actual: Any, expected: Any) -> DriftResult:
        """
        Compares a live resource record with its declared configuration.

        Args:
            actual: Live record (EC2Instance, mapping, or any object with fields)
            expected: Declared record (TerraformConfig, mapping, ...)

        Returns:
            DriftResult holding one AttributeDifference per drifted attribute

        Raises:
            DriftValidationError: If either record is None, or strict mode meets
                an attribute with no comparison config
            AdaptationError: If a record cannot be converted to an attribute map
        """
        if actual is None or expected is None:
            raise DriftValidationError(
                "both the live resource and the declared configuration must be provided",
                operation="detect_drift",
            )

        config = self._snapshot()
        resource_id = extract_resource_id(actual)

        actual_map = self._adapt(actual, "live resource", resource_id)
        expected_map = self._adapt(expected, "declared configuration", resource_id)

        differences = self._compare_maps(actual_map, expected_map, config, resource_id)
        result = DriftResult(
            resource_id=resource_id,
            resource_type=extract_resource_type(actual),
            differences=tuple(differences),
        )
        logger.debug(result.summary())
        return result

    def _adapt(self, record: Any, side: str, resource_id: str) -> AttributeMap:
        try:
            return resource_to_map(record)
        except AdaptationError as e:
            raise AdaptationError(
                f"failed to convert {side} ({type(record).__name__})",
                operation="detect_drift",
                resource_id=resource_id,
            ) from e

    def _compare_maps(
        self,
        actual_map: AttributeMap,
        expected_map: AttributeMap,
        config: DetectionConfig,
        resource_id: str,
    ) -> List[AttributeDifference]:
        differences: List[AttributeDifference] = []

        for name in sorted(set(actual_map) | set(expected_map)):
            if config.is_ignored(name):
                continue

            in_actual = name in actual_map
            in_expected = name in expected_map
            attribute_config = config.config_for(name)
            required = " required" if attribute_config.required else ""

            if not in_actual and not in_expected:
                continue

            if not in_actual:
                differences.append(
                    AttributeDifference(
                        attribute_name=name,
                        actual_value=None,
                        expected_value=expected_map[name],
                        severity=Severity.MEDIUM,
                        description=(
                            f"Declared{required} attribute '{name}' is present in the "
                            f"Terraform configuration but missing from the live resource"
                        ),
                        difference_type=DifferenceType.REMOVED,
                    )
                )
                continue

            if not in_expected:
                differences.append(
                    AttributeDifference(
                        attribute_name=name,
                        actual_value=actual_map[name],
                        expected_value=None,
                        severity=Severity.LOW,
                        description=(
                            f"Observed{required} attribute '{name}' is present on the "
                            f"live resource but missing from the Terraform configuration"
                        ),
                        difference_type=DifferenceType.ADDED,
                    )
                )
                continue

            if config.strict_mode and name not in config.attribute_configs:
                raise UnknownAttributeError(
                    f"no comparison config for attribute '{name}' in strict mode",
                    operation="detect_drift",
                    resource_id=resource_id,
                )

            is_equal, description = compare_values(
                actual_map[name],
                expected_map[name],
                attribute_config,
                config.attribute_configs,
            )
            if not is_equal:
                differences.append(
                    AttributeDifference(
                        attribute_name=name,
                        actual_value=actual_map[name],
                        expected_value=expected_map[name],
                        severity=classify_severity(name),
                        description=description,
                        difference_type=DifferenceType.CHANGED,
                    )
                )

        return differences

    def detect_drift_batch(
        self,
        pairs: Sequence[ResourcePair],
        max_concurrency: Optional[int] = None,
    ) -> Tuple[List[Optional[DriftResult]], Optional[BatchDetectionError]]:
        """
        Runs detect_drift over many pairs with bounded concurrency.

        A failing pair never stops the others: its slot in the result list stays
        None and its error is collected into the returned BatchDetectionError.

        Args:
            pairs: Resource pairs whose indices cover 0..len(pairs)-1 exactly once
            max_concurrency: Worker bound, defaulting to the config value; values
                below 1 are clamped to 1

        Returns:
            Tuple of (results indexed by pair index, aggregated error or None)

        Raises:
            DriftValidationError: If the pair indices are duplicated or out of range
        """
        count = len(pairs)
        indices = [pair.index for pair in pairs]
        if len(set(indices)) != count or any(not 0 <= index < count for index in indices):
            raise DriftValidationError(
                f"pair indices must be unique and within [0, {count})",
                operation="detect_drift_batch",
            )

        if max_concurrency is None:
            max_concurrency = self._snapshot().max_concurrency
        workers = max(1, max_concurrency)

        results: List[Optional[DriftResult]] = [None] * count
        if count == 0:
            return results, None

        logger.info(f"Detecting drift for {count} resources with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="drift") as executor:
            batch_results = list(executor.map(self._detect_pair, pairs))

        failures = {}
        for batch_result in batch_results:
            if batch_result.error is not None:
                failures[batch_result.index] = batch_result.error
            else:
                results[batch_result.index] = batch_result.result

        if failures:
            error = BatchDetectionError(failures)
            logger.warning(f"{len(failures)} of {count} drift detections failed: {error}")
            return results, error
        return results, None

    def _detect_pair(self, pair: ResourcePair) -> BatchResult:
        # One failing pair must not abort its siblings
        try:
            return BatchResult(index=pair.index, result=self.detect_drift(pair.actual, pair.expected))
        except Exception as e:
            logger.error(f"Drift detection failed for pair {pair.index}: {e}")
            return BatchResult(index=pair.index, error=e)
