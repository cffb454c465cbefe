"""
Kvrocks Record Store

Storage Format:
    Key: seating:{kind}:{id}
    Type: Hash
    Fields:
        - version: int, authoritative for versioned kinds
        - data: orjson persisted layout (see record_codec)

    Key: seating:{kind}:all                  Set of every id of the kind
    Key: seating:{kind}:parent:{parent_id}   Set of child ids (seats of a room, ...)

Insert and compare-and-swap run as Lua scripts, so the version check and the
write happen in one step on the server even with several app processes.
"""

from typing import Any, Optional

import attrs
from opentelemetry import trace
from redis.asyncio import Redis

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import ConflictError, DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client
from src.platform.state.lua_script_executor import lua_script_executor
from src.service.seating.app.interface.i_record_store import IRecordStore, Mutation, Record
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.cas_result import CasResult
from src.service.seating.driven_adapter import record_codec


def _make_key(key: str) -> str:
    """Add prefix to key for test isolation in parallel testing"""
    return f'{settings.KVROCKS_KEY_PREFIX}{key}'


def _record_key(kind: RecordKind, record_id: str) -> str:
    return _make_key(f'seating:{kind}:{record_id}')


def _all_key(kind: RecordKind) -> str:
    return _make_key(f'seating:{kind}:all')


def _parent_key(kind: RecordKind, parent_id: str) -> str:
    return _make_key(f'seating:{kind}:parent:{parent_id}')


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else value


class KvrocksRecordStore(IRecordStore):
    def __init__(self, *, client: Optional[Redis] = None) -> None:
        self._client = client
        self.tracer = trace.get_tracer(__name__)

    @property
    def client(self) -> Redis:
        return self._client or kvrocks_client.get_client()

    async def get(self, *, kind: RecordKind, record_id: str) -> Optional[Record]:
        version, data = await self.client.hmget(_record_key(kind, record_id), ['version', 'data'])
        if data is None:
            return None
        return self._decode(kind, version, data)

    async def list_records(
        self, *, kind: RecordKind, parent_id: Optional[str] = None
    ) -> list[Record]:
        index_key = _all_key(kind) if parent_id is None else _parent_key(kind, parent_id)
        record_ids = sorted(_text(record_id) for record_id in await self.client.smembers(index_key))
        if not record_ids:
            return []

        async with self.client.pipeline(transaction=False) as pipe:
            for record_id in record_ids:
                pipe.hmget(_record_key(kind, record_id), ['version', 'data'])
            rows = await pipe.execute()

        return [
            self._decode(kind, version, data) for version, data in rows if data is not None
        ]

    @Logger.io
    async def insert(self, *, record: Record) -> Record:
        kind = record.KIND
        if kind.is_versioned and record.version != 0:
            record = attrs.evolve(record, version=0)

        keys = [_record_key(kind, record.id), _all_key(kind)]
        if record.parent_id is not None:
            keys.append(_parent_key(kind, record.parent_id))

        with self.tracer.start_as_current_span(
            'kvrocks.insert', attributes={'record.kind': str(kind), 'record.id': record.id}
        ):
            created = await lua_script_executor.run(
                'insert_if_absent',
                client=self.client,
                keys=keys,
                args=[self._version_of(record), record_codec.dumps(record), record.id],
            )
        if not int(created):
            raise ConflictError(f'{kind} {record.id} already exists')
        return record

    async def put(self, *, record: Record) -> Record:
        kind = record.KIND
        if kind.is_versioned:
            raise DomainError(f'{kind} records can only change through compare_and_swap')

        previous = await self.get(kind=kind, record_id=record.id)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hset(
                _record_key(kind, record.id),
                mapping={'version': 0, 'data': record_codec.dumps(record)},
            )
            pipe.sadd(_all_key(kind), record.id)
            if previous is not None and previous.parent_id != record.parent_id:
                pipe.srem(_parent_key(kind, previous.parent_id), record.id)
            if record.parent_id is not None:
                pipe.sadd(_parent_key(kind, record.parent_id), record.id)
            await pipe.execute()
        return record

    async def compare_and_swap(
        self,
        *,
        kind: RecordKind,
        record_id: str,
        expected_version: int,
        mutation: Mutation,
    ) -> CasResult:
        with self.tracer.start_as_current_span(
            'kvrocks.compare_and_swap',
            attributes={'record.kind': str(kind), 'record.id': record_id},
        ):
            current = await self.get(kind=kind, record_id=record_id)
            if current is None:
                raise NotFoundError(f'{kind} {record_id} not found')
            if current.version != expected_version:
                return CasResult(committed=False, record=current)

            mutated = mutation(current)
            if mutated.id != current.id or mutated.parent_id != current.parent_id:
                raise DomainError(f'A mutation cannot move {kind} {record_id}')
            candidate = attrs.evolve(mutated, version=expected_version + 1)

            # Another process may have committed since the read; the script re-checks
            reply = await lua_script_executor.run(
                'compare_and_swap',
                client=self.client,
                keys=[_record_key(kind, record_id)],
                args=[expected_version, record_codec.dumps(candidate)],
            )

        status = _text(reply[0])
        if status == 'ok':
            return CasResult(committed=True, record=candidate, previous=current)
        if status == 'conflict':
            return CasResult(committed=False, record=self._decode(kind, reply[1], reply[2]))
        raise NotFoundError(f'{kind} {record_id} not found')

    @staticmethod
    def _version_of(record: Record) -> int:
        return record.version if record.KIND.is_versioned else 0

    @staticmethod
    def _decode(kind: RecordKind, version: Any, data: Any) -> Record:
        record = record_codec.loads(data)
        if kind.is_versioned:
            # The hash field is what the script compares; it wins over the payload
            record = attrs.evolve(record, version=int(version))
        return record
