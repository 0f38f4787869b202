"""Migration configuration models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

from ..exceptions import ConfigError
from ..utils import normalize_identifier

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 100


class Operation(str, Enum):
    """Write operations that can be applied to a target record."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class LookupStrategy(str, Enum):
    """How a lookup field is resolved in the target environment."""
    AUTO = "auto"  # Auto-mapped users, teams, business units
    MANUAL = "manual"  # Per-value source id -> target id table
    SKIP = "skip"  # Omit the field from the payload


@dataclass
class FieldMapping:
    """Mapping between a source field and a target field."""
    source_field: str
    target_field: str
    is_enabled: bool = True
    field_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_field": self.source_field,
            "target_field": self.target_field,
            "is_enabled": self.is_enabled,
            "field_type": self.field_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Create from dictionary representation."""
        source_field = data.get("source_field", "")
        return cls(
            source_field=source_field,
            target_field=data.get("target_field") or source_field,
            is_enabled=data.get("is_enabled", True),
            field_type=data.get("field_type", ""),
        )


@dataclass
class LookupMapping:
    """Resolution settings for a lookup (reference) field."""
    field_name: str
    target_entity: str
    strategy: LookupStrategy = LookupStrategy.AUTO
    field_display_name: str = ""
    manual_mappings: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.strategy, LookupStrategy):
            self.strategy = LookupStrategy(self.strategy)
        # Keys are compared in normalized form
        self.manual_mappings = {
            normalize_identifier(source_id): target_id
            for source_id, target_id in self.manual_mappings.items()
        }

    def get_manual_mapping(self, source_id: str) -> Optional[str]:
        """Get the mapped target id for a source id, if one was configured."""
        return self.manual_mappings.get(normalize_identifier(source_id))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "field_name": self.field_name,
            "field_display_name": self.field_display_name,
            "target_entity": self.target_entity,
            "strategy": self.strategy.value,
            "manual_mappings": dict(self.manual_mappings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LookupMapping":
        """Create from dictionary representation."""
        return cls(
            field_name=data.get("field_name", ""),
            field_display_name=data.get("field_display_name", ""),
            target_entity=data.get("target_entity", ""),
            strategy=LookupStrategy(data.get("strategy", "auto")),
            manual_mappings=data.get("manual_mappings") or {},
        )


@dataclass
class MigrationConfig:
    """Configuration for migrating one entity type."""
    entity_logical_name: str
    entity_display_name: str = ""

    # Mapping
    field_mappings: List[FieldMapping] = field(default_factory=list)
    lookup_mappings: List[LookupMapping] = field(default_factory=list)

    # Execution options
    operations: List[Operation] = field(default_factory=lambda: [Operation.CREATE])
    batch_size: int = 10
    filter_query: Optional[str] = None

    def __post_init__(self):
        operations = []
        for operation in self.operations:
            operation = Operation(operation)
            if operation not in operations:
                operations.append(operation)
        self.operations = operations

    @property
    def enabled_field_mappings(self) -> List[FieldMapping]:
        """Field mappings that will be written to the target."""
        return [m for m in self.field_mappings if m.is_enabled]

    def get_lookup_mapping(self, field_name: str) -> Optional[LookupMapping]:
        """Get the lookup mapping governing a source field."""
        for lookup in self.lookup_mappings:
            if lookup.field_name == field_name:
                return lookup
        return None

    def has_operation(self, operation: Operation) -> bool:
        """Check if an operation was requested."""
        return operation in self.operations

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot be run."""
        errors = []
        if not self.entity_logical_name:
            errors.append("entity_logical_name is required")
        if not self.field_mappings:
            errors.append("at least one field mapping is required")
        if not MIN_BATCH_SIZE <= self.batch_size <= MAX_BATCH_SIZE:
            errors.append(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, got {self.batch_size}"
            )
        if not self.operations:
            errors.append("at least one operation is required")

        if errors:
            raise ConfigError(
                f"Invalid migration config: {'; '.join(errors)}",
                details={"errors": errors},
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity_logical_name": self.entity_logical_name,
            "entity_display_name": self.entity_display_name,
            "field_mappings": [m.to_dict() for m in self.field_mappings],
            "lookup_mappings": [m.to_dict() for m in self.lookup_mappings],
            "operations": [op.value for op in self.operations],
            "batch_size": self.batch_size,
            "filter_query": self.filter_query,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            entity_logical_name=data.get("entity_logical_name", ""),
            entity_display_name=data.get("entity_display_name", ""),
            field_mappings=[FieldMapping.from_dict(m) for m in data.get("field_mappings", [])],
            lookup_mappings=[LookupMapping.from_dict(m) for m in data.get("lookup_mappings", [])],
            operations=[Operation(op) for op in data.get("operations", ["create"])],
            batch_size=data.get("batch_size", 10),
            filter_query=data.get("filter_query"),
        )
