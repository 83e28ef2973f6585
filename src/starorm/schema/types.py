"""
Semantic property types and value casting.

Values coming from storage or from callers are cast to the declared type of
the property they belong to. Casting is idempotent: casting an already cast
value returns an equal value.
"""

import calendar
import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Type


class PropertyType(str, Enum):
    """Semantic property types"""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    ENUM = "enum"


TRUE_STRINGS = {"1", "true", "on", "yes", "y"}
FALSE_STRINGS = {"0", "false", "off", "no", "n", ""}


def to_string(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value)


def to_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and "." in value:
        return int(float(value))
    return int(value)


def to_float(value: Any) -> float:
    return float(value)


def to_boolean(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return bool(value)


def to_date(value: Any, date_format: Optional[str] = None) -> int:
    """Cast to a UNIX timestamp. Naive datetimes are taken as UTC."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not dates")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return calendar.timegm(value.timetuple())
        return int(value.timestamp())
    if isinstance(value, date):
        return calendar.timegm(value.timetuple())

    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    if date_format:
        return to_date(datetime.strptime(text, date_format))
    return to_date(datetime.fromisoformat(text))


def to_array(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value) if value else []
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return value


def to_object(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return value


def to_enum(value: Any, enum_class: Optional[Type[Enum]] = None) -> Any:
    if enum_class is None or isinstance(value, enum_class):
        return value
    return enum_class(value)


def cast(property_type: Optional[PropertyType], value: Any, nullable: bool = False,
         date_format: Optional[str] = None, enum_class: Optional[Type[Enum]] = None) -> Any:
    """
    Cast ``value`` to ``property_type``.

    ``None`` always stays ``None``. An empty string on a nullable property
    becomes ``None``. Untyped properties (relations, computed values) are
    passed through unchanged.
    """
    if value is None:
        return None
    if nullable and value == "":
        return None
    if property_type is None:
        return value

    property_type = PropertyType(property_type)
    if property_type == PropertyType.STRING:
        return to_string(value)
    if property_type == PropertyType.INTEGER:
        return to_integer(value)
    if property_type == PropertyType.FLOAT:
        return to_float(value)
    if property_type == PropertyType.BOOLEAN:
        return to_boolean(value)
    if property_type == PropertyType.DATE:
        return to_date(value, date_format)
    if property_type == PropertyType.ARRAY:
        return to_array(value)
    if property_type == PropertyType.OBJECT:
        return to_object(value)
    return to_enum(value, enum_class)


__all__ = [
    'PropertyType',
    'cast',
    'to_string',
    'to_integer',
    'to_float',
    'to_boolean',
    'to_date',
    'to_array',
    'to_object',
    'to_enum',
]
