"""
Optimistic Concurrency Gate

The single write path for versioned records. A caller presents its last
known version; the gate either commits mutation(current) at version + 1 and
publishes it, or rejects with the record as it is stored now.
"""

from opentelemetry import trace

from src.platform.exception.exceptions import DomainError, VersionConflictError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seating_metrics import seating_metrics
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore, Mutation, Record
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope


class OptimisticGate:
    """
    Compare-and-swap with per-key serialization.

    The key lock covers exactly one compare-and-swap plus the publish of its
    result, never a network round trip to a client. Different keys never
    share a lock. Conflicts are returned to the caller, never retried here.
    """

    def __init__(
        self,
        *,
        record_store: IRecordStore,
        change_notifier: IChangeNotifier,
        keyed_lock: KeyedLock,
    ) -> None:
        self.record_store = record_store
        self.change_notifier = change_notifier
        self.keyed_lock = keyed_lock
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def write(
        self,
        *,
        kind: RecordKind,
        record_id: str,
        expected_version: int,
        mutation: Mutation,
        scope: Scope,
    ) -> Record:
        """
        Raises:
            VersionConflictError: expected_version is stale; carries the current record
            NotFoundError: No record under this id
            DomainError: The kind is not versioned, or the mutation rejected the change
        """
        if not kind.is_versioned:
            raise DomainError(f'{kind} records are not versioned')

        with self.tracer.start_as_current_span(
            'gate.write',
            attributes={
                'record.kind': str(kind),
                'record.id': record_id,
                'record.expected_version': expected_version,
            },
        ):
            async with self.keyed_lock.hold(key=f'{kind}:{record_id}'):
                result = await self.record_store.compare_and_swap(
                    kind=kind,
                    record_id=record_id,
                    expected_version=expected_version,
                    mutation=mutation,
                )
                if not result.committed:
                    seating_metrics.gate_conflicts.labels(kind=str(kind)).inc()
                    current = result.record
                    raise VersionConflictError(
                        current_record=current,
                        reason=(
                            f'{kind} {record_id} was modified concurrently: expected version '
                            f'{expected_version}, current version {current.version}'
                        ),
                    )

                seating_metrics.gate_commits.labels(kind=str(kind)).inc()
                Logger.base.info(
                    f'✅ [GATE] {kind} {record_id} committed v{expected_version} -> '
                    f'v{result.record.version}'
                )
                await self.change_notifier.publish_committed(record=result.record, scope=scope)

        return result.record
