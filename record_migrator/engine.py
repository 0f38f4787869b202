"""Migration engine - runs a migration of approved records to the target."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .clients.base import BaseRecordClient
from .exceptions import RecordNotFoundError, SetupError
from .models.migration import MigrationConfig, Operation
from .models.record import (
    AutoMappingResult,
    MigrationProgress,
    MigrationRecord,
    RecordStatus,
)
from .services.auto_mapper import IdentityAutoMapper
from .services.naming import NamingResolver
from .services.references import shadow_field_name
from .services.transformer import RecordTransformer
from .utils import normalize_identifier

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[MigrationProgress], None]


def count_batches(total: int, batch_size: int) -> int:
    """Number of batches needed for total records."""
    return math.ceil(total / batch_size)


@dataclass
class _RunState:
    """Mutable progress of a run; only snapshot() leaves the engine."""
    total: int
    total_batches: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    records: List[MigrationRecord] = field(default_factory=list)
    is_in_progress: bool = True
    current_batch: int = 0

    def start_record(self, record: MigrationRecord) -> int:
        self.records.append(record.transition(RecordStatus.PROCESSING))
        return len(self.records) - 1

    def finish_record(self, index: int, status: RecordStatus, **changes: Any) -> None:
        self.records[index] = self.records[index].transition(status, **changes)
        self.processed += 1
        if status == RecordStatus.SUCCESS:
            self.successful += 1
        elif status == RecordStatus.ERROR:
            self.failed += 1
        else:
            self.skipped += 1

    def snapshot(self) -> MigrationProgress:
        return MigrationProgress(
            total=self.total,
            processed=self.processed,
            successful=self.successful,
            failed=self.failed,
            skipped=self.skipped,
            records=tuple(self.records),
            is_in_progress=self.is_in_progress,
            current_batch=self.current_batch,
            total_batches=self.total_batches,
        )


class MigrationEngine:
    """
    Migrates approved source records into the target environment.

    Handles:
    - Auto-mapping of users, teams and business units
    - Record transformation and lookup resolution
    - Create/update/delete with create+update acting as upsert
    - Batching, per-record failure isolation and progress snapshots

    The identity mappings accumulate for the lifetime of the engine; create
    a new engine to start from empty mappings.
    """

    def __init__(
        self,
        source_client: BaseRecordClient,
        target_client: BaseRecordClient,
        naming_resolver: Optional[NamingResolver] = None
    ):
        """
        Initialize the engine.

        Args:
            source_client: Client for the environment records are read from
            target_client: Client for the environment records are written to
            naming_resolver: Resolver for collection names (defaults to one
                backed by the target client)
        """
        self.source_client = source_client
        self.target_client = target_client
        self.auto_mapper = IdentityAutoMapper(source_client, target_client)
        self.naming_resolver = naming_resolver or NamingResolver(target_client)

        # Normalized source id -> target id
        self.user_mappings: Dict[str, str] = {}
        self.team_mappings: Dict[str, str] = {}
        self.business_unit_mappings: Dict[str, str] = {}

        self.transformer = RecordTransformer(
            self.naming_resolver,
            auto_mappings={
                "systemuser": self.user_mappings,
                "team": self.team_mappings,
                "businessunit": self.business_unit_mappings,
            },
        )

    def auto_map_users(self) -> List[AutoMappingResult]:
        """Auto-map users between source and target environments."""
        return self._store(self.auto_mapper.map_users(), self.user_mappings)

    def auto_map_teams(self) -> List[AutoMappingResult]:
        """Auto-map teams between source and target environments."""
        return self._store(self.auto_mapper.map_teams(), self.team_mappings)

    def auto_map_business_units(self) -> List[AutoMappingResult]:
        """Auto-map business units between source and target environments."""
        return self._store(self.auto_mapper.map_business_units(), self.business_unit_mappings)

    def auto_map_all(self) -> Dict[str, List[AutoMappingResult]]:
        """Run all auto-mappings: users, teams, then business units."""
        return {
            "users": self.auto_map_users(),
            "teams": self.auto_map_teams(),
            "business_units": self.auto_map_business_units(),
        }

    def _store(self, results: List[AutoMappingResult], mappings: Dict[str, str]) -> List[AutoMappingResult]:
        for result in results:
            mappings[normalize_identifier(result.source_id)] = result.target_id
        return results

    def get_user_mappings(self) -> Dict[str, str]:
        return dict(self.user_mappings)

    def get_team_mappings(self) -> Dict[str, str]:
        return dict(self.team_mappings)

    def get_business_unit_mappings(self) -> Dict[str, str]:
        return dict(self.business_unit_mappings)

    def fetch_source_records(self, config: MigrationConfig, top: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Query the source for the records a migration of config needs.

        Selects the primary id, every enabled plain field and the raw id
        property of every enabled lookup field, applying config.filter_query.
        """
        primary_id_field, _ = self._resolve_primary_fields(config.entity_logical_name)

        select_fields = [primary_id_field]
        for mapping in config.enabled_field_mappings:
            if config.get_lookup_mapping(mapping.source_field):
                name = shadow_field_name(mapping.source_field)
            else:
                name = mapping.source_field
            if name not in select_fields:
                select_fields.append(name)

        return self.source_client.query_records(
            config.entity_logical_name,
            select_fields,
            filter_query=config.filter_query,
            top=top,
        )

    def preview_records(self, config: MigrationConfig, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Transform records without writing anything."""
        return [self.transformer.transform(record, config) for record in records]

    def migrate_records(
        self,
        config: MigrationConfig,
        approved_records: List[Dict[str, Any]],
        on_progress: Optional[ProgressCallback] = None
    ) -> MigrationProgress:
        """
        Migrate approved records according to config.

        Args:
            config: Migration configuration
            approved_records: Source records in approval order; each must carry
                the values of every enabled field mapping
            on_progress: Called with a fresh snapshot on every change

        Returns:
            The final progress snapshot

        Raises:
            ConfigError: if config is invalid
            SetupError: if the source entity's primary id field cannot be
                resolved; nothing has been written or reported at that point
        """
        config.validate()
        primary_id_field, primary_name_field = self._resolve_primary_fields(config.entity_logical_name)

        total = len(approved_records)
        state = _RunState(total=total, total_batches=count_batches(total, config.batch_size))

        def emit():
            if on_progress is not None:
                on_progress(state.snapshot())

        logger.info(
            f"Migrating {total} {config.entity_logical_name} records in "
            f"{state.total_batches} batches ({', '.join(op.value for op in config.operations)})"
        )
        emit()

        for batch_number, batch in self._batch_iterator(approved_records, config.batch_size):
            state.current_batch = batch_number
            logger.info(f"Processing batch {batch_number}/{state.total_batches}")
            emit()

            for source_record in batch:
                self._migrate_record(config, source_record, primary_id_field, primary_name_field, state, emit)

        state.is_in_progress = False
        final = state.snapshot()
        if on_progress is not None:
            on_progress(final)

        logger.info(
            f"Migration of {config.entity_logical_name} finished: {final.successful} succeeded, "
            f"{final.failed} failed, {final.skipped} skipped"
        )
        return final

    def _migrate_record(
        self,
        config: MigrationConfig,
        source_record: Dict[str, Any],
        primary_id_field: str,
        primary_name_field: Optional[str],
        state: _RunState,
        emit: Callable[[], None]
    ) -> None:
        """Migrate one record, recording the outcome on state."""
        record_id = source_record.get(primary_id_field)
        primary_name = str(source_record.get(primary_name_field) or "") if primary_name_field else ""
        display_name = self._display_name(config, source_record, primary_name, record_id)

        index = state.start_record(MigrationRecord(
            source_id=str(record_id or ""),
            display_name=display_name,
            primary_name=primary_name or display_name,
        ))
        emit()

        if not record_id:
            logger.warning(f"Skipping record without {primary_id_field}: {display_name}")
            state.finish_record(
                index, RecordStatus.SKIPPED,
                error_message=f"Record has no value for {primary_id_field}",
            )
            emit()
            return

        record_id = str(record_id)

        try:
            target_data = self.transformer.transform(source_record, config)
            exists = self._exists_in_target(config.entity_logical_name, record_id, primary_id_field)
            target_id = self._execute_operations(config, record_id, primary_id_field, target_data, exists)
            state.finish_record(index, RecordStatus.SUCCESS, target_id=target_id)
            logger.debug(f"Migrated {config.entity_logical_name} {record_id} -> {target_id}")

        except Exception as e:
            state.finish_record(index, RecordStatus.ERROR, error_message=str(e))
            logger.error(f"Failed to migrate {config.entity_logical_name} {record_id}: {e}")

        emit()

    def _execute_operations(
        self,
        config: MigrationConfig,
        record_id: str,
        primary_id_field: str,
        target_data: Dict[str, Any],
        exists: bool
    ) -> Optional[str]:
        """Run the requested operations for one record; return the target id."""
        entity = config.entity_logical_name
        target_id = None

        for operation in self.planned_operations(config.operations, exists):
            if operation == Operation.CREATE:
                # Keep the source id so later runs find the record
                payload = dict(target_data)
                payload.setdefault(primary_id_field, record_id)
                target_id = self.target_client.create_record(entity, payload) or record_id
            elif operation == Operation.UPDATE:
                self.target_client.update_record(entity, record_id, target_data)
                target_id = record_id
            elif operation == Operation.DELETE:
                self.target_client.delete_record(entity, record_id)
                target_id = record_id

        return target_id

    @staticmethod
    def planned_operations(operations: List[Operation], exists: bool) -> List[Operation]:
        """
        Operations to run for a record, in requested order.

        With both create and update requested, create is dropped for records
        that exist and update is dropped for records that don't. Every other
        combination runs as requested.
        """
        planned = []
        for operation in operations:
            if operation == Operation.CREATE and exists and Operation.UPDATE in operations:
                continue
            if operation == Operation.UPDATE and not exists and Operation.CREATE in operations:
                continue
            planned.append(operation)
        return planned

    def _exists_in_target(self, entity: str, record_id: str, primary_id_field: str) -> bool:
        """Check whether the target has a record with this id."""
        try:
            self.target_client.retrieve_record(entity, record_id, [primary_id_field])
            return True
        except RecordNotFoundError:
            return False
        except Exception as e:
            # Treated as missing so a create is attempted
            logger.warning(f"Existence check for {entity} {record_id} failed: {e}")
            return False

    def _resolve_primary_fields(self, entity: str) -> Tuple[str, Optional[str]]:
        """Get the primary id and primary name fields of the source entity."""
        try:
            metadata = self.source_client.get_entity_metadata(
                entity, ["PrimaryIdAttribute", "PrimaryNameAttribute"]
            )
        except Exception as e:
            raise SetupError(
                f"Unable to get primary ID attribute for entity {entity}: {e}",
                details={"entity": entity},
            ) from e

        primary_id = (metadata.primary_id_attribute or "").strip() if metadata else ""
        if not primary_id:
            raise SetupError(
                f"Unable to get primary ID attribute for entity {entity}",
                details={"entity": entity},
            )

        primary_name = (metadata.primary_name_attribute or "").strip() or None
        return primary_id, primary_name

    def _display_name(
        self,
        config: MigrationConfig,
        source_record: Dict[str, Any],
        primary_name: str,
        record_id: Any
    ) -> str:
        """Pick a human-readable label for a record."""
        for mapping in config.field_mappings:
            if "name" in mapping.source_field:
                value = source_record.get(mapping.source_field)
                if value:
                    return str(value)
                break
        return primary_name or str(record_id or "")

    def _batch_iterator(
        self,
        records: List[Dict[str, Any]],
        batch_size: int
    ) -> Iterator[Tuple[int, List[Dict[str, Any]]]]:
        """Iterate over records in numbered batches."""
        for i in range(0, len(records), batch_size):
            yield i // batch_size + 1, records[i:i + batch_size]
