from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

import pytest

from record_migrator.clients.base import BaseRecordClient
from record_migrator.exceptions import ClientError, RecordNotFoundError
from record_migrator.models.schema import EntityMetadata


class FakeRecordClient(BaseRecordClient):
    """In-memory record store that records every write."""

    def __init__(self, environment: str = "primary", metadata: Optional[Dict[str, EntityMetadata]] = None):
        super().__init__(environment)
        self.metadata = metadata or {}
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[tuple, Exception] = {}
        self.metadata_error: Optional[Exception] = None

    def add(self, entity: str, record_id: str, data: Dict[str, Any]):
        self.tables.setdefault(entity, {})[record_id] = dict(data)

    def _maybe_fail(self, operation: str, record_id: Optional[str]):
        error = self.fail_on.get((operation, record_id))
        if error is not None:
            raise error

    def get_entity_metadata(self, entity, fields=None):
        self.calls.append(("metadata", entity))
        if self.metadata_error is not None:
            raise self.metadata_error
        return self.metadata.get(entity)

    def query_records(self, entity, select_fields, filter_query=None, order_by=None, top=None):
        self.calls.append(("query", entity, tuple(select_fields), filter_query))
        rows = list(self.tables.get(entity, {}).values())
        return rows[:top] if top else rows

    def create_record(self, entity, data):
        record_id = data.get(f"{entity}id") or str(uuid.uuid4())
        self.calls.append(("create", entity, record_id, dict(data)))
        self._maybe_fail("create", record_id)
        if record_id in self.tables.get(entity, {}):
            raise ClientError(f"A record with id {record_id} already exists", status_code=412)
        self.add(entity, record_id, data)
        return record_id

    def update_record(self, entity, record_id, data):
        self.calls.append(("update", entity, record_id, dict(data)))
        self._maybe_fail("update", record_id)
        if record_id not in self.tables.get(entity, {}):
            raise RecordNotFoundError(entity, record_id)
        self.tables[entity][record_id].update(data)

    def delete_record(self, entity, record_id):
        self.calls.append(("delete", entity, record_id))
        self._maybe_fail("delete", record_id)
        self.tables.get(entity, {}).pop(record_id, None)

    def retrieve_record(self, entity, record_id, fields=None):
        self.calls.append(("retrieve", entity, record_id))
        self._maybe_fail("retrieve", record_id)
        record = self.tables.get(entity, {}).get(record_id)
        if record is None:
            raise RecordNotFoundError(entity, record_id)
        return record

    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("create", "update", "delete")]


def account_metadata() -> Dict[str, EntityMetadata]:
    return {
        "account": EntityMetadata(
            logical_name="account",
            primary_id_attribute="accountid",
            primary_name_attribute="name",
            collection_name="accounts",
        ),
        "systemuser": EntityMetadata(logical_name="systemuser", collection_name="systemusers"),
    }


@pytest.fixture
def source_client():
    return FakeRecordClient("primary", account_metadata())


@pytest.fixture
def target_client():
    return FakeRecordClient("secondary", account_metadata())
