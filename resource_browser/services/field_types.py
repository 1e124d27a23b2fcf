from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.sql.sqltypes import JSON, Boolean, Date, DateTime, Float, Integer, Numeric, String

from resource_browser.services.errors import MalformedInput


class FieldType(str, enum.Enum):
    ID = "id"
    BINARY_ID = "binary_id"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"
    DATETIME = "datetime"
    JSON = "json"
    OTHER = "other"


def _python_type(column: Any):
    try:
        return column.type.python_type
    except Exception:
        return None


def column_field_type(column: Any) -> FieldType:
    col_type = column.type
    if isinstance(col_type, Boolean):
        return FieldType.BOOLEAN
    if isinstance(col_type, Integer):
        # Keys are identifiers, everything else is a plain number.
        if column.primary_key or column.foreign_keys:
            return FieldType.ID
        return FieldType.INTEGER
    if isinstance(col_type, Float):
        return FieldType.FLOAT
    if isinstance(col_type, Numeric):
        return FieldType.DECIMAL
    if isinstance(col_type, DateTime):
        return FieldType.DATETIME
    if isinstance(col_type, Date):
        return FieldType.DATE
    if isinstance(col_type, JSON):
        return FieldType.JSON
    if isinstance(col_type, String):
        return FieldType.STRING
    python_type = _python_type(column)
    if python_type is uuid.UUID:
        return FieldType.BINARY_ID
    if python_type is str:
        return FieldType.STRING
    return FieldType.OTHER


def _bad_value(column_key: str, kind: str) -> MalformedInput:
    return MalformedInput(f'Invalid value for field "{column_key}" ({kind})')


def _coerce_bool(column_key: str, value):
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise _bad_value(column_key, "boolean")


def _coerce_number(column_key: str, value, python_type):
    if python_type in {int, float} and isinstance(value, (int, float)) and not isinstance(value, bool):
        return python_type(value)
    if python_type is Decimal and isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        raise _bad_value(column_key, "number")
    normalized = text.replace(",", ".")
    try:
        if python_type is int:
            return int(normalized)
        if python_type is float:
            return float(normalized)
        return Decimal(normalized)
    except (ValueError, TypeError, InvalidOperation):
        raise _bad_value(column_key, "number")


def _coerce_date(column_key: str, value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        raise _bad_value(column_key, "date")
    try:
        # Accept either YYYY-MM-DD or full ISO datetime and take its date part.
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_value(column_key, "date")


def _coerce_datetime(column_key: str, value, timezone_aware: bool):
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_value(column_key, "datetime")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_value(column_key, "datetime")
    if timezone_aware and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_uuid(column_key: str, value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value or "").strip())
    except ValueError:
        raise MalformedInput(f'Invalid UUID for field "{column_key}"')


def coerce_value(column: Any, value: Any) -> Any:
    """Convert a raw query-string value into the Python type bound for ``column``.

    Raises ``MalformedInput`` when the value cannot represent the column type.
    """
    kind = column_field_type(column)
    if kind in {FieldType.ID, FieldType.INTEGER}:
        return _coerce_number(column.key, value, int)
    if kind is FieldType.FLOAT:
        return _coerce_number(column.key, value, float)
    if kind is FieldType.DECIMAL:
        return _coerce_number(column.key, value, Decimal)
    if kind is FieldType.BOOLEAN:
        return _coerce_bool(column.key, value)
    if kind is FieldType.DATE:
        return _coerce_date(column.key, value)
    if kind is FieldType.DATETIME:
        return _coerce_datetime(column.key, value, bool(getattr(column.type, "timezone", False)))
    if kind is FieldType.BINARY_ID:
        return _coerce_uuid(column.key, value)
    return value
