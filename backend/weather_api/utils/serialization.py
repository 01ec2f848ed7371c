"""
JSON shaping for MongoDB documents.

Documents come back from the store with ObjectIds and naive UTC datetimes.
Before they go out in a response:
- `_id` becomes `id` (string)
- every ObjectId becomes its hex string
- every naive datetime is marked as UTC so clients see the offset
"""

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId


def to_jsonable(value: Any) -> Any:
    """Recursively convert store values into JSON-friendly ones."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, dict):
        return {
            ("id" if key == "_id" else key): to_jsonable(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def write_result(result: Any) -> dict:
    """Summarise a pymongo write result (insert/update/delete) as a dict."""
    summary: dict[str, Any] = {"acknowledged": result.acknowledged}
    for attribute in ("inserted_id", "inserted_ids", "matched_count",
                      "modified_count", "upserted_id", "deleted_count"):
        if hasattr(result, attribute):
            summary[attribute] = to_jsonable(getattr(result, attribute))
    return summary
