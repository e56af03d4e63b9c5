"""
Finance Tracker - Serialization Helpers

Convert model instances and plain values into JSON-safe structures for
audit snapshots and API responses. Monetary Decimals are emitted as strings
so no precision is lost on the way to the JSON column.
"""

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional


def to_jsonable(value: Any) -> Any:
    """Recursively convert a value into something json.dumps accepts."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return str(value)


def snapshot_model(obj: Any, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Capture the column values of a loaded model instance.

    The instance must be fully loaded (refreshed after commit); reading an
    expired attribute here would trigger a lazy load.
    """
    skip = set(exclude or ())
    return {
        column.key: to_jsonable(getattr(obj, column.key))
        for column in obj.__table__.columns
        if column.key not in skip
    }
