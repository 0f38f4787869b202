"""Default mapping configuration built from entity field metadata."""

import logging
from typing import Iterable, List, Optional

from ..models.migration import (
    FieldMapping,
    LookupMapping,
    LookupStrategy,
    MigrationConfig,
    Operation,
)
from ..models.schema import EntityField

logger = logging.getLogger(__name__)


def build_field_mappings(fields: Iterable[EntityField]) -> List[FieldMapping]:
    """Map every field to itself; the primary id starts disabled."""
    return [
        FieldMapping(
            source_field=f.logical_name,
            target_field=f.logical_name,
            is_enabled=not f.is_primary_id,
            field_type=f.type,
        )
        for f in fields
    ]


def build_lookup_mappings(fields: Iterable[EntityField]) -> List[LookupMapping]:
    """Create an auto-strategy lookup mapping for every reference field."""
    lookups = []
    for f in fields:
        if not f.is_lookup:
            continue
        if not f.targets:
            logger.warning(f"Lookup field {f.logical_name} has no target entity")
        lookups.append(LookupMapping(
            field_name=f.logical_name,
            field_display_name=f.display_name,
            target_entity=f.targets[0] if f.targets else "",
            strategy=LookupStrategy.AUTO,
        ))
    return lookups


def build_default_config(
    entity_logical_name: str,
    fields: List[EntityField],
    entity_display_name: str = "",
    operations: Optional[List[Operation]] = None,
    batch_size: int = 10
) -> MigrationConfig:
    """Build a starting configuration for an entity from its fields."""
    config = MigrationConfig(
        entity_logical_name=entity_logical_name,
        entity_display_name=entity_display_name or entity_logical_name,
        field_mappings=build_field_mappings(fields),
        lookup_mappings=build_lookup_mappings(fields),
        operations=operations or [Operation.CREATE],
        batch_size=batch_size,
    )
    logger.info(
        f"Built default config for {entity_logical_name}: "
        f"{len(config.field_mappings)} fields, {len(config.lookup_mappings)} lookups"
    )
    return config
