"""Data models for the record migrator."""

from .migration import (
    Operation,
    LookupStrategy,
    FieldMapping,
    LookupMapping,
    MigrationConfig,
)
from .record import (
    RecordStatus,
    Confidence,
    MigrationRecord,
    MigrationProgress,
    AutoMappingResult,
    UserRecord,
    TeamRecord,
    BusinessUnitRecord,
)
from .schema import (
    EntityMetadata,
    EntityField,
)

__all__ = [
    "Operation",
    "LookupStrategy",
    "FieldMapping",
    "LookupMapping",
    "MigrationConfig",
    "RecordStatus",
    "Confidence",
    "MigrationRecord",
    "MigrationProgress",
    "AutoMappingResult",
    "UserRecord",
    "TeamRecord",
    "BusinessUnitRecord",
    "EntityMetadata",
    "EntityField",
]
