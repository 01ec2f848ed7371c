"""
Utility modules for the weather readings backend.
"""

from weather_api.utils.validation import (
    validate_object_id,
    validate_device_name,
    parse_object_id,
    parse_int_or_default,
    parse_datetime,
)

__all__ = [
    "validate_object_id",
    "validate_device_name",
    "parse_object_id",
    "parse_int_or_default",
    "parse_datetime",
]
