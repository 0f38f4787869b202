"""Extraction of referenced identifiers from source records.

A lookup value can reach us in several shapes depending on how the record
was queried. Shapes are tried in a fixed priority order:

1. SHADOW_FIELD   - companion "_<field>_value" property
2. PLAIN_STRING   - the field itself holds the identifier
3. NESTED_VALUE   - the field is an object with a "_value" property
4. NESTED_ID      - the field is an object with an "id" property
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum

from ..utils import strip_braces


class ReferenceShape(str, Enum):
    """Where a referenced identifier was found on a record."""
    SHADOW_FIELD = "shadow_field"
    PLAIN_STRING = "plain_string"
    NESTED_VALUE = "nested_value"
    NESTED_ID = "nested_id"


NESTED_ID_KEYS = (
    ("_value", ReferenceShape.NESTED_VALUE),
    ("id", ReferenceShape.NESTED_ID),
)


@dataclass(frozen=True)
class ExtractedReference:
    """A referenced identifier and the shape it was read from."""
    identifier: str
    shape: ReferenceShape


def shadow_field_name(field_name: str) -> str:
    """Name of the companion property holding a lookup's raw id."""
    return f"_{field_name}_value"


def extract_reference(record: Dict[str, Any], field_name: str) -> Optional[ExtractedReference]:
    """
    Extract the referenced identifier for a lookup field.

    Args:
        record: Source record
        field_name: Lookup field logical name

    Returns:
        ExtractedReference with a brace-stripped identifier, or None if the
        record carries no reference for this field
    """
    shadow_value = record.get(shadow_field_name(field_name))
    if shadow_value:
        return _reference(shadow_value, ReferenceShape.SHADOW_FIELD)

    value = record.get(field_name)
    if isinstance(value, str):
        return _reference(value, ReferenceShape.PLAIN_STRING)

    if isinstance(value, dict):
        for key, shape in NESTED_ID_KEYS:
            if value.get(key):
                return _reference(value[key], shape)

    return None


def _reference(value: Any, shape: ReferenceShape) -> Optional[ExtractedReference]:
    identifier = strip_braces(value)
    if not identifier:
        return None
    return ExtractedReference(identifier=identifier, shape=shape)
