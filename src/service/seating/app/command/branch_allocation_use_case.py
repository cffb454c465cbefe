"""
Branch Allocation Use Case

A booked room is filled with the booking's branch: every unseated student of
the branch is placed into that one room by the regular greedy pass. Canceling
the booking hands those seats back.
"""

from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import RetryExhaustedError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.run_allocation_use_case import RunAllocationUseCase
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.allocation_outcome import AllocationSummary


class BranchAllocationUseCase:
    def __init__(
        self,
        *,
        record_store: IRecordStore,
        seat_assigner: SeatAssigner,
        change_notifier: IChangeNotifier,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.record_store = record_store
        self.seat_assigner = seat_assigner
        self.allocation = RunAllocationUseCase(
            record_store=record_store,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
            max_attempts=max_attempts,
        )
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        seat_assigner: SeatAssigner = Depends(Provide[Container.seat_assigner]),
        change_notifier: IChangeNotifier = Depends(Provide[Container.change_notifier]),
    ) -> Self:
        return cls(
            record_store=record_store,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
        )

    @Logger.io
    async def allocate_branch(self, *, branch: str, room_id: str) -> AllocationSummary:
        """
        Place every unseated student of `branch` into `room_id`

        Students already seated anywhere are left where they are.

        Raises:
            NotFoundError: Room does not exist
        """
        with self.tracer.start_as_current_span(
            'use_case.allocate_branch', attributes={'branch': branch, 'room.id': room_id}
        ):
            await self.seat_assigner.get_room(room_id=room_id)
            students = await self.record_store.list_records(kind=RecordKind.STUDENT)
            student_ids = sorted(student.id for student in students if student.branch == branch)
            return await self.allocation.run_allocation(
                student_ids=student_ids, room_ids=[room_id]
            )

    @Logger.io
    async def release_branch(self, *, branch: str, room_id: str) -> list[Seat]:
        """
        Free every seat in `room_id` held by a student of `branch`

        Raises:
            NotFoundError: Room does not exist
            RetryExhaustedError: Some seats kept changing; the rest were freed
        """
        with self.tracer.start_as_current_span(
            'use_case.release_branch', attributes={'branch': branch, 'room.id': room_id}
        ):
            await self.seat_assigner.get_room(room_id=room_id)
            students = await self.record_store.list_records(kind=RecordKind.STUDENT)
            members = {student.id for student in students if student.branch == branch}
            seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room_id)

            released: list[Seat] = []
            stuck: list[str] = []
            for seat in sorted(seats, key=lambda s: s.position):
                if seat.student_id not in members:
                    continue
                async with self.seat_assigner.student_lock(student_id=seat.student_id):
                    try:
                        freed = await self.seat_assigner.release(
                            seat=seat,
                            student_id=seat.student_id,
                            max_attempts=self.allocation.max_attempts,
                        )
                    except RetryExhaustedError:
                        stuck.append(seat.label)
                        continue
                if freed is not None:
                    released.append(freed)

            Logger.base.info(
                f'🧹 [BRANCH] Released {len(released)} seats of branch {branch} in room {room_id}'
            )
            if stuck:
                raise RetryExhaustedError(
                    f'Seats {", ".join(stuck)} in room {room_id} could not be released, '
                    f'release branch {branch} again to retry',
                    attempts=self.allocation.max_attempts,
                )
            return released
