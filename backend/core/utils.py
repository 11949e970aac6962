"""
Utility functions for the workflow engine.

Includes:
- JSON-safe serialization of variable snapshots
- UTC datetime helpers
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any


def safe_serialize(obj: Any, depth: int = 0) -> Any:
    """Recursively ensure all values are JSON-serializable.

    Datetimes become ISO strings, Decimals become floats, and anything
    else unknown is stringified. Nesting deeper than 10 levels is
    stringified as a whole.
    """
    if depth > 10:
        return str(obj)
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, dict):
        return {str(k): safe_serialize(v, depth + 1) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [safe_serialize(v, depth + 1) for v in obj]
    return str(obj)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)
