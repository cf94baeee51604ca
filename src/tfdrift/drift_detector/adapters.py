"""
Record Adapters Module.

This module converts the records handed to the drift detector into flat
attribute-name -> value maps. Records implementing SupportsAttributeMap are the
primary path; plain mappings (Terraform state attributes, raw API responses)
are taken as they are; anything else goes through a reflective field walk,
which is a last resort only.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..utils import setup_logging, to_snake_case
from .errors import AdaptationError
from .types import AttributeMap

logger = setup_logging()

ID_KEYS = ("resource_id", "instance_id", "InstanceId", "id", "Id", "ID")


@runtime_checkable
class SupportsAttributeMap(Protocol):
    """A record that exposes its comparable attributes as a name -> value mapping."""

    def to_attribute_map(self) -> AttributeMap:
        ...


def resource_to_map(record: Any) -> AttributeMap:
    """
    Adapt a record to a flat attribute map.

    Args:
        record: Live or declared resource record

    Returns:
        New dictionary mapping attribute names to values

    Raises:
        AdaptationError: If the record shape is not recognised or its adapter fails
    """
    record_type = type(record).__name__

    if isinstance(record, SupportsAttributeMap):
        try:
            return dict(record.to_attribute_map())
        except Exception as e:
            raise AdaptationError(
                f"failed to adapt {record_type} record", operation="resource_to_map"
            ) from e

    if isinstance(record, Mapping):
        return {str(name): value for name, value in record.items()}

    return reflect_to_map(record)


def reflect_to_map(record: Any) -> AttributeMap:
    """
    Fallback adapter walking the public fields of an arbitrary object.
    Field names are converted to snake_case.
    """
    record_type = type(record).__name__
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        values = {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}
    elif hasattr(record, "__dict__") and not isinstance(record, type):
        values = dict(vars(record))
    else:
        raise AdaptationError(
            f"unsupported record type {record_type}: expected an object with fields",
            operation="resource_to_map",
        )

    logger.debug(f"Using reflective adapter for {record_type} record")
    return {
        to_snake_case(name): value
        for name, value in values.items()
        if not name.startswith("_")
    }


def extract_resource_id(record: Any) -> str:
    resource_id = getattr(record, "resource_id", None)
    if isinstance(resource_id, str) and resource_id:
        return resource_id
    if isinstance(record, Mapping):
        for id_key in ID_KEYS:
            if record.get(id_key):
                return str(record[id_key])
    return "unknown"


def extract_resource_type(record: Any) -> str:
    resource_type = getattr(record, "resource_type", None)
    if isinstance(resource_type, str) and resource_type:
        return resource_type
    if isinstance(record, Mapping):
        return str(record.get("resource_type") or record.get("type") or "attribute_map")
    return type(record).__name__
