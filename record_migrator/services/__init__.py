"""Service layer for the record migrator."""

from .naming import NamingResolver, pluralize_entity_name
from .references import ReferenceShape, ExtractedReference, extract_reference
from .transformer import RecordTransformer
from .auto_mapper import IdentityAutoMapper
from .mapping_builder import build_default_config

__all__ = [
    "NamingResolver",
    "pluralize_entity_name",
    "ReferenceShape",
    "ExtractedReference",
    "extract_reference",
    "RecordTransformer",
    "IdentityAutoMapper",
    "build_default_config",
]
