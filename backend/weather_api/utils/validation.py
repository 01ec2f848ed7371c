"""
Input Validation Utilities
===========================

Parsing helpers for ids, dates and pagination parameters coming from
query strings and request bodies.
"""

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from bson import ObjectId
from pydantic import WithJsonSchema


# ObjectId as a pydantic field type (documented as a string in OpenAPI)
ObjectIdField = Annotated[
    ObjectId,
    WithJsonSchema({"type": "string", "examples": ["65f2c1e4a1b2c3d4e5f60718"]}),
]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def validate_object_id(value: Optional[str]) -> bool:
    """
    Check that a string is a well-formed MongoDB ObjectId.

    Args:
        value: Candidate id (24 hex characters)

    Returns:
        True if valid, False otherwise
    """
    return isinstance(value, str) and ObjectId.is_valid(value)


def parse_object_id(value: str) -> ObjectId:
    """
    Convert a string to an ObjectId.

    Raises:
        ValueError: If the string is not a valid ObjectId
    """
    if not validate_object_id(value):
        raise ValueError(f"'{value}' is not a valid id (insert in ObjectId format)")
    return ObjectId(value)


def parse_int_or_default(value: Optional[str], default: int) -> int:
    """
    Lenient integer parsing for page/limit query parameters.

    Reads the leading integer of the string ("3abc" -> 3). Missing,
    unparsable or zero values fall back to the default. Negative and very
    large values are passed through as-is.
    """
    if value is None:
        return default
    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    number = int(match.group(1))
    return number or default


def parse_datetime(value: Any) -> datetime:
    """
    Parse an ISO-8601 string (or datetime) into a naive UTC datetime.

    Values without an offset are taken as UTC. Raises ValueError for
    anything that isn't a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"'{value}' is not a valid date (use ISO-8601, e.g. 2024-03-14T10:30:00Z)")
    else:
        raise ValueError(f"'{value}' is not a valid date (use ISO-8601, e.g. 2024-03-14T10:30:00Z)")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_device_name(device_name: Optional[str]) -> bool:
    """A device name must be a non-blank string."""
    return bool(device_name and device_name.strip())
