"""Transformation of source records into target payloads."""

import logging
from typing import Any, Dict, Optional

from ..models.migration import (
    FieldMapping,
    LookupMapping,
    LookupStrategy,
    MigrationConfig,
)
from ..utils import normalize_identifier
from .naming import NamingResolver
from .references import extract_reference

logger = logging.getLogger(__name__)

BIND_SUFFIX = "@odata.bind"


def format_reference_binding(collection_name: str, identifier: str) -> str:
    """Format a reference value, e.g. "/systemusers(<id>)"."""
    return f"/{collection_name}({identifier})"


class RecordTransformer:
    """
    Transforms source records to target payloads.

    Plain fields are copied verbatim. Lookup fields are resolved to the
    equivalent target record id and written as reference bindings.
    """

    def __init__(
        self,
        naming_resolver: NamingResolver,
        auto_mappings: Optional[Dict[str, Dict[str, str]]] = None
    ):
        """
        Initialize the transformer.

        Args:
            naming_resolver: Resolver for target collection names
            auto_mappings: Target entity name -> {normalized source id: target id},
                read at transform time so later auto-mapping runs are visible
        """
        self.naming_resolver = naming_resolver
        self.auto_mappings = auto_mappings if auto_mappings is not None else {}

    def transform(self, source_record: Dict[str, Any], config: MigrationConfig) -> Dict[str, Any]:
        """
        Build the target payload for one source record.

        Args:
            source_record: Source record as returned by the query
            config: Migration configuration

        Returns:
            Payload ready to send to the target environment
        """
        target_record: Dict[str, Any] = {}

        for mapping in config.enabled_field_mappings:
            lookup = config.get_lookup_mapping(mapping.source_field)

            if lookup is None:
                value = source_record.get(mapping.source_field)
                if value is not None:
                    target_record[mapping.target_field] = value
                continue

            if lookup.strategy == LookupStrategy.SKIP:
                continue

            binding = self._resolve_lookup(source_record, mapping, lookup)
            if binding is not None:
                target_record[f"{mapping.target_field}{BIND_SUFFIX}"] = binding

        return target_record

    def _resolve_lookup(
        self,
        source_record: Dict[str, Any],
        mapping: FieldMapping,
        lookup: LookupMapping
    ) -> Optional[str]:
        """Resolve a lookup field to a reference binding, or None to omit it."""
        reference = extract_reference(source_record, mapping.source_field)
        if reference is None:
            return None

        if not lookup.target_entity:
            logger.error(f"Target entity is missing for lookup field {mapping.source_field}")
            return None

        target_id = self.resolve_identifier(reference.identifier, lookup)
        collection_name = self.naming_resolver.resolve_collection_name(lookup.target_entity)

        logger.debug(
            f"Resolved {mapping.source_field} ({reference.shape.value}) "
            f"{reference.identifier} -> {collection_name}({target_id})"
        )
        return format_reference_binding(collection_name, target_id)

    def resolve_identifier(self, identifier: str, lookup: LookupMapping) -> str:
        """Map a source id to its target id, falling back to the id unchanged."""
        mapped = None

        if lookup.strategy == LookupStrategy.AUTO:
            known = self.auto_mappings.get(lookup.target_entity.lower())
            if known is not None:
                mapped = known.get(normalize_identifier(identifier))
        elif lookup.strategy == LookupStrategy.MANUAL:
            mapped = lookup.get_manual_mapping(identifier)

        if mapped is None:
            logger.debug(f"No {lookup.strategy.value} mapping for {lookup.target_entity} {identifier}")
            return identifier
        return mapped
