"""Schema models for entity metadata."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

LOOKUP_ATTRIBUTE_TYPES = ("Lookup", "Owner", "Customer")


def extract_label(value: Any) -> Optional[str]:
    """Get the localized label from a metadata label object."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return None

    for container in (value, value.get("Label") or {}):
        user_label = container.get("UserLocalizedLabel") or {}
        if user_label.get("Label"):
            return user_label["Label"]
        localized = container.get("LocalizedLabels") or []
        if localized and localized[0].get("Label"):
            return localized[0]["Label"]
    return None


@dataclass
class EntityMetadata:
    """The metadata the migrator needs about an entity type."""
    logical_name: str
    primary_id_attribute: Optional[str] = None
    primary_name_attribute: Optional[str] = None
    collection_name: Optional[str] = None

    @classmethod
    def from_dict(cls, logical_name: str, data: Dict[str, Any]) -> "EntityMetadata":
        """Create from a Web API EntityDefinitions response."""
        return cls(
            logical_name=data.get("LogicalName") or logical_name,
            primary_id_attribute=data.get("PrimaryIdAttribute"),
            primary_name_attribute=data.get("PrimaryNameAttribute"),
            collection_name=data.get("EntitySetName") or data.get("LogicalCollectionName"),
        )


@dataclass
class EntityField:
    """Definition of a field (attribute) of an entity."""
    logical_name: str
    type: str
    display_name: str = ""
    is_primary_id: bool = False
    is_primary_name: bool = False
    required_level: Optional[str] = None
    targets: List[str] = field(default_factory=list)

    @property
    def is_lookup(self) -> bool:
        """Check if the field holds a reference to another record."""
        return any(t in self.type for t in LOOKUP_ATTRIBUTE_TYPES)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntityField":
        """Create from a Web API attribute metadata entry."""
        type_name = (data.get("AttributeTypeName") or {}).get("Value")
        return cls(
            logical_name=data.get("LogicalName", ""),
            type=type_name or data.get("AttributeType") or "Unknown",
            display_name=extract_label(data.get("DisplayName")) or data.get("LogicalName", ""),
            is_primary_id=bool(data.get("IsPrimaryId")),
            is_primary_name=bool(data.get("IsPrimaryName")),
            required_level=(data.get("RequiredLevel") or {}).get("Value"),
            targets=list(data.get("Targets") or []),
        )
