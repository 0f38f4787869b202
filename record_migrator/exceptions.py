"""Exception hierarchy for the record migrator.

MigrationError (base)
├── ConfigError
├── SetupError
├── AutoMappingError
├── InvalidTransitionError
└── ClientError
    └── RecordNotFoundError
"""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base exception for all record migrator errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(MigrationError):
    """The migration configuration is invalid."""


class SetupError(MigrationError):
    """A run could not be started; raised before any record is written."""


class AutoMappingError(MigrationError):
    """Fetching or matching system entities for auto-mapping failed."""


class InvalidTransitionError(MigrationError):
    """A migration record was moved out of a terminal status."""


class ClientError(MigrationError):
    """A call to a record store failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.status_code = status_code


class RecordNotFoundError(ClientError):
    """The requested record does not exist."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(
            f"{entity} record {record_id} not found",
            status_code=404,
            details={"entity": entity, "record_id": record_id},
        )
        self.entity = entity
        self.record_id = record_id
