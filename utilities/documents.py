"""
Helpers for moving documents between MongoDB and JSON responses.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """
    Convert a path or body identifier to an ObjectId.

    Args:
        value: String id, ObjectId or None

    Returns:
        ObjectId, or None when the value is not a valid id
    """
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def parse_object_ids(values: Iterable[Any]) -> List[Optional[ObjectId]]:
    """Convert a list of identifiers, keeping None for invalid entries."""
    return [parse_object_id(value) for value in values]


def to_json_value(value: Any) -> Any:
    """Recursively convert BSON values to JSON-safe values."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(item) for item in value]
    return value


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert a raw MongoDB document to a JSON-safe dict.

    The ``_id`` field is renamed to ``id`` and all ObjectId and datetime
    values are converted to strings.
    """
    if document is None:
        return None
    result = dict(document)
    if "_id" in result:
        result["id"] = result.pop("_id")
    return to_json_value(result)
