from __future__ import annotations

from typing import Iterable

from resource_browser.services.field_types import FieldType
from resource_browser.services.resource_registry import SearchField, association, field_type


def is_association(search_field: SearchField) -> bool:
    return not isinstance(search_field, str)


def select_search_fields(
    declared: Iterable[SearchField],
    model: type,
    term_type: FieldType,
) -> list[SearchField]:
    """Keep only the search fields a term of ``term_type`` can be compared against.

    Association entries are narrowed to the matching fields of the related
    model and dropped when none is left.
    """
    selected: list[SearchField] = []
    for entry in declared:
        if not is_association(entry):
            if field_type(model, entry) == term_type:
                selected.append(entry)
            continue
        assoc_name, assoc_fields = entry
        related = association(model, assoc_name).related
        matching = tuple(name for name in assoc_fields if field_type(related, name) == term_type)
        if matching:
            selected.append((assoc_name, matching))
    return selected
