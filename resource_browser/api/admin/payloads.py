from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.inspection import inspect as sa_inspect


def serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_dict(row: Any) -> Any:
    # Post-fetch hooks may already hand back plain data.
    if isinstance(row, dict):
        return serialize_value(row)
    mapper = sa_inspect(type(row), raiseerr=False)
    if mapper is None:
        return serialize_value(row)
    return {prop.key: serialize_value(getattr(row, prop.key)) for prop in mapper.column_attrs}
