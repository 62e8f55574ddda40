from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

from messaging.utils.errors import ValidationError


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}")
    return ObjectId(value)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # documents written by the driver come back naive unless tz_aware is set
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a raw document safe for the API layer: ObjectIds become strings, datetimes UTC."""
    if doc is None:
        return None
    out: Dict[str, Any] = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, datetime):
            out[key] = as_utc(value)
        else:
            out[key] = value
    return out


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
