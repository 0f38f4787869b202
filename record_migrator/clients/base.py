"""Base client interface for record stores."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from ..models.record import UserRecord, TeamRecord, BusinessUnitRecord
from ..models.schema import EntityMetadata, EntityField
from ..exceptions import ClientError

logger = logging.getLogger(__name__)


class BaseRecordClient(ABC):
    """
    Base class for record store clients.

    A client is bound to one environment (source or target) and provides
    metadata lookups plus filtered reads and single-record writes.
    """

    def __init__(self, environment: str = "primary"):
        """
        Initialize the client.

        Args:
            environment: Name of the environment this client talks to
        """
        self.environment = environment

    @abstractmethod
    def get_entity_metadata(
        self,
        entity: str,
        fields: Optional[List[str]] = None
    ) -> Optional[EntityMetadata]:
        """
        Get metadata for an entity type.

        Args:
            entity: Entity logical name
            fields: Metadata properties wanted (None for all known ones)

        Returns:
            EntityMetadata, or None if the entity is unknown. Unknown
            properties are left as None. Raises only for transport failures.
        """
        pass

    @abstractmethod
    def query_records(
        self,
        entity: str,
        select_fields: List[str],
        filter_query: Optional[str] = None,
        order_by: Optional[str] = None,
        top: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Query records of an entity type."""
        pass

    @abstractmethod
    def create_record(self, entity: str, data: Dict[str, Any]) -> str:
        """Create a record and return its id."""
        pass

    @abstractmethod
    def update_record(self, entity: str, record_id: str, data: Dict[str, Any]) -> None:
        """Update an existing record."""
        pass

    @abstractmethod
    def delete_record(self, entity: str, record_id: str) -> None:
        """Delete a record."""
        pass

    @abstractmethod
    def retrieve_record(
        self,
        entity: str,
        record_id: str,
        fields: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Retrieve a single record by id.

        Raises:
            RecordNotFoundError: if no record has this id
        """
        pass

    def fetch_entity_fields(self, entity: str) -> List[EntityField]:
        """Get the field definitions of an entity type."""
        raise NotImplementedError(f"{self.__class__.__name__} does not expose field metadata")

    def fetch_users(self) -> List[UserRecord]:
        """Fetch enabled users for auto-mapping."""
        try:
            rows = self.query_records(
                "systemuser",
                ["systemuserid", "fullname", "domainname", "internalemailaddress"],
                filter_query="isdisabled eq false",
                order_by="fullname asc",
            )
        except ClientError as e:
            raise ClientError(f"Failed to fetch users: {e}", status_code=e.status_code) from e
        return [UserRecord.from_dict(row) for row in rows]

    def fetch_teams(self) -> List[TeamRecord]:
        """Fetch teams for auto-mapping."""
        try:
            rows = self.query_records("team", ["teamid", "name", "teamtype"], order_by="name asc")
        except ClientError as e:
            raise ClientError(f"Failed to fetch teams: {e}", status_code=e.status_code) from e
        return [TeamRecord.from_dict(row) for row in rows]

    def fetch_business_units(self) -> List[BusinessUnitRecord]:
        """Fetch business units for auto-mapping."""
        try:
            rows = self.query_records("businessunit", ["businessunitid", "name"], order_by="name asc")
        except ClientError as e:
            raise ClientError(f"Failed to fetch business units: {e}", status_code=e.status_code) from e
        return [BusinessUnitRecord.from_dict(row) for row in rows]

    def validate_connection(self) -> bool:
        """Validate the connection to the environment."""
        return True
