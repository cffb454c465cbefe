from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.dto.seat_allocation import SeatAllocation
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.enum.record_kind import RecordKind


class AllocationQueryUseCase:
    """
    Who sits where, and which branches can still be placed.

    A room counts as allocated to a branch while students of that branch hold
    seats in it; nothing on the room itself records this.
    """

    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def list_allocations(
        self, *, student_id: Optional[str] = None, room_id: Optional[str] = None
    ) -> list[SeatAllocation]:
        rooms = await self._by_id(kind=RecordKind.ROOM)
        students = await self._by_id(kind=RecordKind.STUDENT)
        seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room_id)

        allocations = [
            SeatAllocation(
                seat=seat, room=rooms[seat.room_id], student=students.get(seat.student_id)
            )
            for seat in seats
            if seat.student_id and (student_id is None or seat.student_id == student_id)
        ]
        return sorted(allocations, key=lambda a: (a.seat.room_id, a.seat.position))

    @Logger.io
    async def eligible_branches(
        self, *, room_id: Optional[str] = None, building_id: Optional[str] = None
    ) -> list[str]:
        """
        Branches that can be allocated to a room or a building

        For a room: its current branches if any of them still has unseated
        students, otherwise every branch with unseated students. For a
        building: branches with unseated students that are not already seated
        in another building.

        Raises:
            DomainError: Neither room_id nor building_id given
            NotFoundError: Room does not exist
        """
        if room_id is None and building_id is None:
            raise DomainError('Either room_id or building_id must be provided')

        rooms = await self._by_id(kind=RecordKind.ROOM)
        students = await self._by_id(kind=RecordKind.STUDENT)
        seats = await self.record_store.list_records(kind=RecordKind.SEAT)
        held = [seat for seat in seats if seat.student_id in students]
        seated = {seat.student_id for seat in held}
        waiting = {student.branch for student in students.values() if student.id not in seated}

        if room_id is not None:
            if room_id not in rooms:
                raise NotFoundError(f'Room {room_id} not found')
            current = {students[seat.student_id].branch for seat in held if seat.room_id == room_id}
            return sorted(current & waiting) if current else sorted(waiting)

        elsewhere = {
            students[seat.student_id].branch
            for seat in held
            if rooms[seat.room_id].building_id != building_id
        }
        return sorted(waiting - elsewhere)

    async def _by_id(self, *, kind: RecordKind) -> dict:
        return {record.id: record for record in await self.record_store.list_records(kind=kind)}
