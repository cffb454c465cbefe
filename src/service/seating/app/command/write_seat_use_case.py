"""
Write Seat Use Case

Administrative seat edits through the optimistic gate:
- status transitions (Available / Allocated / Broken)
- assigning or clearing a student
- feature and label edits

The caller always sends the version it last saw. A stale version comes back
as VersionConflictError carrying the current seat; the caller retries with
that record's version, never with one it computed itself.
"""

from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import student_lock_key
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.domain.value_object.seat_patch import SeatPatch


class WriteSeatUseCase:
    def __init__(
        self,
        *,
        record_store: IRecordStore,
        optimistic_gate: OptimisticGate,
        keyed_lock: KeyedLock,
    ) -> None:
        self.record_store = record_store
        self.optimistic_gate = optimistic_gate
        self.keyed_lock = keyed_lock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        optimistic_gate: OptimisticGate = Depends(Provide[Container.optimistic_gate]),
        keyed_lock: KeyedLock = Depends(Provide[Container.keyed_lock]),
    ) -> Self:
        return cls(
            record_store=record_store, optimistic_gate=optimistic_gate, keyed_lock=keyed_lock
        )

    @Logger.io
    async def write_seat(self, *, seat_id: str, expected_version: int, patch: SeatPatch) -> Seat:
        """
        Apply a patch to a seat

        Allocated -> Broken is allowed on version agreement alone: the student
        reference is dropped and the student is unseated until the next
        rebalance places them again.

        Raises:
            VersionConflictError: expected_version is stale
            NotFoundError: Seat, room or referenced student does not exist
            DomainError: The patch breaks a seat rule
        """
        with self.tracer.start_as_current_span(
            'use_case.write_seat',
            attributes={'seat.id': seat_id, 'seat.expected_version': expected_version},
        ):
            seat = await self.record_store.get(kind=RecordKind.SEAT, record_id=seat_id)
            if seat is None:
                raise NotFoundError(f'Seat {seat_id} not found')
            room = await self.record_store.get(kind=RecordKind.ROOM, record_id=seat.room_id)
            if room is None:
                raise NotFoundError(f'Room {seat.room_id} not found')

            def commit():
                return self.optimistic_gate.write(
                    kind=RecordKind.SEAT,
                    record_id=seat_id,
                    expected_version=expected_version,
                    mutation=lambda current: current.apply_patch(patch),
                    scope=Scope.of_room(room_id=room.id, building_id=room.building_id),
                )

            if patch.student_id:
                # Same lock as claims and allocation: the seat check holds until the commit
                async with self.keyed_lock.hold(key=student_lock_key(patch.student_id)):
                    await self._check_student_can_sit(
                        student_id=patch.student_id, room_id=room.id, seat_id=seat_id
                    )
                    updated = await commit()
            else:
                updated = await commit()

            if seat.student_id and updated.student_id != seat.student_id:
                Logger.base.info(
                    f'🪑 [WRITE-SEAT] Student {seat.student_id} left seat {updated.label} '
                    f'({updated.status})'
                )
            return updated

    async def release_seat(self, *, seat_id: str, expected_version: int) -> Seat:
        return await self.write_seat(
            seat_id=seat_id,
            expected_version=expected_version,
            patch=SeatPatch(status=SeatStatus.AVAILABLE),
        )

    async def _check_student_can_sit(
        self, *, student_id: str, room_id: str, seat_id: Optional[str]
    ) -> None:
        student = await self.record_store.get(kind=RecordKind.STUDENT, record_id=student_id)
        if student is None:
            raise NotFoundError(f'Student {student_id} not found')

        seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room_id)
        for other in seats:
            if other.student_id == student_id and other.id != seat_id:
                raise DomainError(
                    f'Student {student_id} already holds seat {other.label} in room {room_id}'
                )
