"""Identifier and OData string helpers shared across the package."""

from typing import Any


def strip_braces(value: Any) -> str:
    """Remove curly braces from an identifier ("{ABC}" -> "ABC")."""
    return str(value).replace("{", "").replace("}", "").strip()


def normalize_identifier(value: Any) -> str:
    """Brace-stripped, case-folded form used as a dictionary key.

    Idempotent: normalizing a normalized identifier returns it unchanged.
    """
    return strip_braces(value).lower()


def escape_odata_string(value: str) -> str:
    """Escape an OData string literal by doubling single quotes."""
    return value.replace("'", "''")
