from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.dto.student_seating import StudentSeating
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.enum.record_kind import RecordKind


class GetStudentUseCase:
    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def get_student(self, *, student_id: str) -> StudentSeating:
        student = await self.record_store.get(kind=RecordKind.STUDENT, record_id=student_id)
        if student is None:
            raise NotFoundError(f'Student {student_id} not found')

        # The student never points at its seats; the seats point at the student
        seats = await self.record_store.list_records(kind=RecordKind.SEAT)
        held = sorted(
            (seat for seat in seats if seat.student_id == student_id),
            key=lambda seat: (seat.room_id, seat.position),
        )
        return StudentSeating(student=student, seats=tuple(held))
