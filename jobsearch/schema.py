"""
Schema registry: required fields and field types for every collection.

validate() is fail-fast. It raises ValidationError on the first missing or
mistyped field and otherwise returns a cleaned copy of the document that
only carries declared fields.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# 32 hex chars for ids generated here, 24 for imported Mongo ObjectIds
_OBJECT_ID_RE = re.compile(r"^(?:[0-9a-f]{24}|[0-9a-f]{32})$")


class EntityKind(str, Enum):
    USER = "users"
    GEO_RESULT = "geo_results"
    BUSINESS = "businesses"
    JOB = "jobs"
    JOB_RESULT = "job_results"
    STARRED_JOB = "starred_jobs"
    APPLIED_JOB = "applied_jobs"


class FieldType(str, Enum):
    STRING = "string"
    INT64 = "64-bit integer"
    DOUBLE = "double"
    TIMESTAMP = "timestamp"
    OBJECT_ID = "object reference"
    OBJECT_ID_LIST = "list of object references"


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType
    required: bool = True
    ref: Optional[EntityKind] = None  # advisory parent collection


def _id_field() -> Field:
    return Field("id", FieldType.OBJECT_ID)


SCHEMAS: Dict[EntityKind, List[Field]] = {
    EntityKind.USER: [
        _id_field(),
        Field("username", FieldType.STRING),
        Field("email", FieldType.STRING),
        Field("password_hash", FieldType.STRING),
        Field("created_at", FieldType.TIMESTAMP),
    ],
    EntityKind.GEO_RESULT: [
        _id_field(),
        Field("user_id", FieldType.OBJECT_ID, ref=EntityKind.USER),
        Field("zip", FieldType.STRING),
        Field("radius", FieldType.INT64),
        Field("created_at", FieldType.TIMESTAMP),
    ],
    EntityKind.BUSINESS: [
        _id_field(),
        Field("geo_result_id", FieldType.OBJECT_ID, ref=EntityKind.GEO_RESULT),
        Field("name", FieldType.STRING),
        Field("address", FieldType.STRING),
        Field("url", FieldType.STRING),
        Field("lat", FieldType.DOUBLE),
        Field("lon", FieldType.DOUBLE),
    ],
    EntityKind.JOB: [
        _id_field(),
        Field("business_id", FieldType.OBJECT_ID, ref=EntityKind.BUSINESS),
        Field("title", FieldType.STRING),
        Field("description", FieldType.STRING),
        Field("url", FieldType.STRING),
        Field("posted_at", FieldType.TIMESTAMP, required=False),
    ],
    EntityKind.JOB_RESULT: [
        _id_field(),
        Field("user_id", FieldType.OBJECT_ID, ref=EntityKind.USER),
        Field("jobs", FieldType.OBJECT_ID_LIST, ref=EntityKind.JOB),
        Field("query_title", FieldType.STRING),
        Field("created_at", FieldType.TIMESTAMP),
    ],
    EntityKind.STARRED_JOB: [
        _id_field(),
        Field("user_id", FieldType.OBJECT_ID, ref=EntityKind.USER),
        Field("job_id", FieldType.OBJECT_ID, ref=EntityKind.JOB),
        Field("timestamp", FieldType.TIMESTAMP),
    ],
    EntityKind.APPLIED_JOB: [
        _id_field(),
        Field("user_id", FieldType.OBJECT_ID, ref=EntityKind.USER),
        Field("job_id", FieldType.OBJECT_ID, ref=EntityKind.JOB),
        Field("timestamp", FieldType.TIMESTAMP),
    ],
}


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and _OBJECT_ID_RE.match(value) is not None


def _is_int64(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and INT64_MIN <= value <= INT64_MAX
    )


def _check(field_type: FieldType, value: Any) -> bool:
    if field_type is FieldType.STRING:
        return isinstance(value, str)
    if field_type is FieldType.INT64:
        return _is_int64(value)
    if field_type is FieldType.DOUBLE:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        try:
            float(value)
        except OverflowError:
            return False
        return True
    if field_type is FieldType.TIMESTAMP:
        return isinstance(value, datetime)
    if field_type is FieldType.OBJECT_ID:
        return is_object_id(value)
    if field_type is FieldType.OBJECT_ID_LIST:
        return isinstance(value, (list, tuple)) and all(is_object_id(v) for v in value)
    raise ValueError(f"Unknown field type: {field_type}")


def validate(kind: EntityKind, document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a document against the schema for its collection.

    Args:
        kind: Collection the document is written to
        document: Field name -> value mapping

    Returns:
        A new dict with only declared fields. Doubles are coerced to float
        and reference lists to list.

    Raises:
        ValidationError: On the first missing or mistyped field
    """
    kind = EntityKind(kind)
    validated: Dict[str, Any] = {}
    for field in SCHEMAS[kind]:
        value = document.get(field.name)
        if value is None:
            if field.required:
                raise ValidationError(kind.value, field.name, field.type.value, reason="missing")
            validated[field.name] = None
            continue
        if not _check(field.type, value):
            raise ValidationError(kind.value, field.name, field.type.value)
        if field.type is FieldType.DOUBLE:
            value = float(value)
        elif field.type is FieldType.OBJECT_ID_LIST:
            value = list(value)
        validated[field.name] = value
    return validated


def reference_fields(kind: EntityKind) -> List[Field]:
    """Fields of a collection that point at a parent document."""
    return [f for f in SCHEMAS[EntityKind(kind)] if f.ref is not None]


def timestamp_fields(kind: EntityKind) -> List[str]:
    return [f.name for f in SCHEMAS[EntityKind(kind)] if f.type is FieldType.TIMESTAMP]


def describe(kind: EntityKind) -> List[str]:
    """Human readable field list, used by the CLI."""
    lines = []
    for f in SCHEMAS[EntityKind(kind)]:
        ref = f" -> {f.ref.value}" if f.ref is not None else ""
        optional = "" if f.required else " (optional)"
        lines.append(f"{f.name}: {f.type.value}{ref}{optional}")
    return lines
