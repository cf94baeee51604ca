"""
Exception hierarchy for the drift detection engine.

Validation errors are raised before any work starts, adaptation errors are fatal
to a single detection, batch failures are collected per pair, and fetch errors
are classified by the retry layer before they reach the caller.
"""

from typing import Dict, List, Mapping, Optional


class DriftError(Exception):
    """Base error carrying the failing operation and resource for diagnostics."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource_id = resource_id

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"[{self.operation}]")
        parts.append(self.message)
        if self.resource_id:
            parts.append(f"resource: {self.resource_id}")
        if self.__cause__ is not None:
            parts.append(f"cause: {self.__cause__}")
        return " | ".join(parts)


class DriftValidationError(DriftError, ValueError):
    """Missing or invalid input rejected before detection begins."""


class ConfigValidationError(DriftValidationError):
    """A DetectionConfig violates its bounds."""


class UnknownAttributeError(DriftValidationError):
    """Strict mode found an attribute with no explicit comparison config."""


class InvalidInstanceIDError(DriftValidationError):
    """An EC2 instance id is empty or malformed."""


class AdaptationError(DriftError):
    """A record could not be converted into an attribute map."""


class FetchError(DriftError):
    """The external describe call failed after classification and retries."""


class InstanceNotFoundError(DriftError, LookupError):
    """The requested EC2 instance does not exist (any more)."""


class OperationCancelledError(DriftError):
    """The caller cancelled the operation before it could complete."""


class DeadlineExceededError(DriftError, TimeoutError):
    """The caller's deadline, or a single attempt's timeout, expired."""


class BatchDetectionError(DriftError):
    """Aggregates every failed pair of a batch detection, keyed by pair index."""

    def __init__(self, failures: Mapping[int, Exception]) -> None:
        self.failures: Dict[int, Exception] = dict(sorted(failures.items()))
        details = "; ".join(
            f"index {index}: {error}" for index, error in self.failures.items()
        )
        super().__init__(
            f"batch processing errors ({len(self.failures)} failed): {details}",
            operation="detect_drift_batch",
        )

    @property
    def failed_indices(self) -> List[int]:
        return list(self.failures)
