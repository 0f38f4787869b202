"""Record models for migration progress and identity mapping."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from ..exceptions import InvalidTransitionError


class RecordStatus(str, Enum):
    """Status of a record during migration."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (RecordStatus.SUCCESS, RecordStatus.ERROR, RecordStatus.SKIPPED)


_ALLOWED_TRANSITIONS = {
    RecordStatus.PENDING: {RecordStatus.PROCESSING, RecordStatus.SKIPPED},
    RecordStatus.PROCESSING: {RecordStatus.SUCCESS, RecordStatus.ERROR, RecordStatus.SKIPPED},
}


class Confidence(str, Enum):
    """Quality of an auto-mapped identity match."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class MigrationRecord:
    """A source record's migration status at a point in time."""
    source_id: str
    display_name: str
    status: RecordStatus = RecordStatus.PENDING
    primary_name: str = ""
    target_id: Optional[str] = None
    error_message: Optional[str] = None

    def transition(self, status: RecordStatus, **changes: Any) -> "MigrationRecord":
        """Return a copy moved to a new status.

        Raises:
            InvalidTransitionError: if the move is not pending -> processing
                or processing -> success/error/skipped
        """
        if status not in _ALLOWED_TRANSITIONS.get(self.status, set()):
            raise InvalidTransitionError(
                f"Cannot move record {self.source_id} from {self.status.value} to {status.value}",
                details={"source_id": self.source_id},
            )
        return replace(self, status=status, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "display_name": self.display_name,
            "primary_name": self.primary_name,
            "status": self.status.value,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class MigrationProgress:
    """Immutable snapshot of a migration run."""
    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    records: Tuple[MigrationRecord, ...] = field(default_factory=tuple)
    is_in_progress: bool = True
    current_batch: int = 0
    total_batches: int = 0

    @property
    def success_rate(self) -> float:
        if self.processed == 0:
            return 0.0
        return self.successful / self.processed

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "records": [r.to_dict() for r in self.records],
            "is_in_progress": self.is_in_progress,
            "current_batch": self.current_batch,
            "total_batches": self.total_batches,
        }


@dataclass(frozen=True)
class AutoMappingResult:
    """An auto-mapped identity match between environments."""
    source_id: str
    target_id: str
    display_name: str
    confidence: Confidence
    match_criteria: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "display_name": self.display_name,
            "confidence": self.confidence.value,
            "match_criteria": self.match_criteria,
        }


@dataclass
class UserRecord:
    """A system user, as fetched for auto-mapping."""
    systemuserid: str
    fullname: str = ""
    domainname: str = ""
    internalemailaddress: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            systemuserid=data.get("systemuserid", ""),
            fullname=data.get("fullname") or "",
            domainname=data.get("domainname") or "",
            internalemailaddress=data.get("internalemailaddress"),
        )


@dataclass
class TeamRecord:
    """A team, as fetched for auto-mapping."""
    teamid: str
    name: str = ""
    teamtype: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamRecord":
        return cls(
            teamid=data.get("teamid", ""),
            name=data.get("name") or "",
            teamtype=data.get("teamtype"),
        )


@dataclass
class BusinessUnitRecord:
    """A business unit, as fetched for auto-mapping."""
    businessunitid: str
    name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessUnitRecord":
        return cls(
            businessunitid=data.get("businessunitid", ""),
            name=data.get("name") or "",
        )
