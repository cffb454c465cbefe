from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.entity.student_entity import Student


class RegisterStudentUseCase:
    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def register_student(self, *, student: Student) -> Student:
        """Create or replace a student; seats referencing it are untouched"""
        return await self.record_store.put(record=student)
