"""
In-memory Record Store

Single-process store for development and tests. Every operation completes
without yielding to the event loop, so the compare and the swap of one
compare_and_swap call cannot interleave with another task.
"""

from collections import defaultdict
from typing import Optional

import attrs

from src.platform.exception.exceptions import ConflictError, DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_record_store import IRecordStore, Mutation, Record
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.cas_result import CasResult


class InMemoryRecordStore(IRecordStore):
    def __init__(self) -> None:
        self._records: dict[RecordKind, dict[str, Record]] = defaultdict(dict)
        # (kind, parent_id) -> child ids in insertion order
        self._children: dict[tuple[RecordKind, str], dict[str, None]] = defaultdict(dict)

    async def get(self, *, kind: RecordKind, record_id: str) -> Optional[Record]:
        return self._records[kind].get(record_id)

    async def list_records(
        self, *, kind: RecordKind, parent_id: Optional[str] = None
    ) -> list[Record]:
        records = self._records[kind]
        if parent_id is None:
            return list(records.values())
        return [records[record_id] for record_id in self._children.get((kind, parent_id), {})]

    @Logger.io
    async def insert(self, *, record: Record) -> Record:
        kind = record.KIND
        if record.id in self._records[kind]:
            raise ConflictError(f'{kind} {record.id} already exists')
        if kind.is_versioned and record.version != 0:
            record = attrs.evolve(record, version=0)
        self._store(record)
        return record

    async def put(self, *, record: Record) -> Record:
        kind = record.KIND
        if kind.is_versioned:
            raise DomainError(f'{kind} records can only change through compare_and_swap')
        previous = self._records[kind].get(record.id)
        if previous is not None and previous.parent_id != record.parent_id:
            self._children[(kind, previous.parent_id)].pop(record.id, None)
        self._store(record)
        return record

    async def compare_and_swap(
        self,
        *,
        kind: RecordKind,
        record_id: str,
        expected_version: int,
        mutation: Mutation,
    ) -> CasResult:
        current = self._records[kind].get(record_id)
        if current is None:
            raise NotFoundError(f'{kind} {record_id} not found')
        if current.version != expected_version:
            return CasResult(committed=False, record=current)

        mutated = mutation(current)
        if mutated.id != current.id or mutated.parent_id != current.parent_id:
            raise DomainError(f'A mutation cannot move {kind} {record_id}')
        committed = attrs.evolve(mutated, version=current.version + 1)
        self._records[kind][record_id] = committed
        return CasResult(committed=True, record=committed, previous=current)

    def _store(self, record: Record) -> None:
        self._records[record.KIND][record.id] = record
        if record.parent_id is not None:
            self._children[(record.KIND, record.parent_id)][record.id] = None
