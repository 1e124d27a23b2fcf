from __future__ import annotations

import re

from resource_browser.services.field_types import FieldType

_BINARY_ID_RE = re.compile(r"\A[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}\Z", re.IGNORECASE)
_ID_RE = re.compile(r"\A\+?[0-9]+\Z")


def is_binary_id(value) -> bool:
    if not isinstance(value, str):
        return False
    return _BINARY_ID_RE.match(value) is not None


def is_id(value) -> bool:
    if not isinstance(value, str) or not _ID_RE.match(value):
        return False
    return int(value) > 0


def classify_search_term(term: str) -> FieldType:
    """Return the only field type a search term can be compared against."""
    if is_binary_id(term):
        return FieldType.BINARY_ID
    if is_id(term):
        return FieldType.ID
    return FieldType.STRING
