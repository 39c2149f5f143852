"""
JSON codec shared by both cache tiers.

orjson handles datetimes (ISO-8601), dataclasses and UUIDs natively. The
``default`` hook covers the rest of what page snapshots carry: Decimal
amounts become strings and pydantic models become their JSON dump.
"""

from decimal import Decimal
from typing import Any

import orjson
from pydantic import BaseModel

from directory_cache.core.exceptions import CacheSerializationError


def _default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def dumps(value: Any) -> str:
    """
    Serialize a value to JSON text.

    Raises:
        CacheSerializationError: If the value cannot be encoded
    """
    try:
        return orjson.dumps(value, default=_default, option=orjson.OPT_NON_STR_KEYS).decode()
    except (orjson.JSONEncodeError, TypeError) as e:
        raise CacheSerializationError(
            message=f"Cannot serialize cache value: {e}",
            details={"value_type": type(value).__name__},
        )


def loads(text: str | bytes) -> Any:
    """
    Deserialize JSON text.

    Raises:
        CacheSerializationError: If the text is not valid JSON
    """
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as e:
        raise CacheSerializationError(message=f"Corrupt cache payload: {e}")
