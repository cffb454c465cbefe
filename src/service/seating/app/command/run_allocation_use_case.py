"""
Run Allocation Use Case

Bulk, greedy assignment of every unseated student to a seat across a room pool.

Each seat is its own gate write, retried per student: a batch never holds a
lock over more than one key, and partial progress under contention is normal.
Every student gets an outcome; nobody is dropped silently.
"""

from collections import defaultdict
from typing import Iterable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    ConstraintUnsatisfiableError,
    NotFoundError,
    RetryExhaustedError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seating_metrics import seating_metrics
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.seat_assigner import SeatAssigner, SeatPool
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.allocation_outcome import (
    AllocationOutcome,
    AllocationSummary,
)
from src.service.seating.domain.value_object.scope import Scope
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


def allocation_order(student: Student) -> tuple[bool, int, str]:
    # Accessibility needs first (fewest suitable seats), then more needs, then id
    return not student.has_accessibility_needs, -len(student.accessibility_needs), student.id


class RunAllocationUseCase:
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
        self.change_notifier = change_notifier
        self.max_attempts = max_attempts or settings.ALLOCATION_MAX_RETRIES
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
    async def run_allocation(
        self,
        *,
        student_ids: Optional[Iterable[str]] = None,
        room_ids: Optional[Iterable[str]] = None,
    ) -> AllocationSummary:
        """
        Args:
            student_ids: Students to consider (default: all); seated ones are skipped
            room_ids: Room pool in preference order (default: all rooms by id)
        """
        with self.tracer.start_as_current_span('use_case.run_allocation'):
            pool = await self.seat_assigner.load_pool(
                room_ids=await self.resolve_room_ids(room_ids=room_ids)
            )
            students = await self.resolve_students(student_ids=student_ids)
            seated = await self.seated_student_ids()
            unseated = [student for student in students if student.id not in seated]

            return await self.allocate(students=unseated, pool=pool, operation='allocation')

    async def allocate(
        self,
        *,
        students: list[Student],
        pool: SeatPool,
        operation: str,
        released_from: Optional[dict[str, str]] = None,
        prior_outcomes: Iterable[AllocationOutcome] = (),
    ) -> AllocationSummary:
        """Greedy pass over `students` in allocation order against one pool"""
        released_from = released_from or {}
        outcomes = list(prior_outcomes)
        committed: dict[str, list[Seat]] = defaultdict(list)

        for student in sorted(students, key=allocation_order):
            outcome = await self._allocate_one(
                student=student, pool=pool, released_from=released_from.get(student.id)
            )
            if outcome.is_allocated:
                committed[outcome.room_id].append(
                    next(seat for seat in pool.seats() if seat.id == outcome.seat_id)
                )
            seating_metrics.allocation_outcomes.labels(
                operation=operation, outcome=str(outcome.outcome)
            ).inc()
            outcomes.append(outcome)

        for room_id, seats in committed.items():
            room = pool.room(room_id)
            await self.change_notifier.seats_bulk_changed(
                seats=seats, scope=Scope.of_room(room_id=room.id, building_id=room.building_id)
            )

        usable = [seat for seat in pool.seats() if seat.status != SeatStatus.BROKEN]
        summary = AllocationSummary(
            outcomes=tuple(outcomes),
            total_seats=len(usable),
            occupied_seats=sum(1 for seat in usable if seat.status == SeatStatus.ALLOCATED),
        )
        Logger.base.info(
            f'📊 [ALLOCATION] {operation}: allocated={summary.allocated_count}, '
            f'unallocated={summary.unallocated_count}, '
            f'retry_exhausted={summary.retry_exhausted_count}, '
            f'already_seated={summary.already_seated_count}, '
            f'utilization={summary.utilization}%'
        )
        return summary

    async def _allocate_one(
        self, *, student: Student, pool: SeatPool, released_from: Optional[str]
    ) -> AllocationOutcome:
        async with self.seat_assigner.student_lock(student_id=student.id):
            # A claim or seat write may have seated them since the batch was planned
            held = await self.seat_assigner.seats_of(student_id=student.id)
            if held:
                return AllocationOutcome.already_seated(
                    student_id=student.id, seat=held[0], released_from=released_from
                )
            try:
                seat = await self.seat_assigner.assign(
                    student_id=student.id,
                    constraints=SeatConstraints.for_student(student),
                    pool=pool,
                    max_attempts=self.max_attempts,
                )
            except ConstraintUnsatisfiableError as e:
                return AllocationOutcome.unallocated(
                    student_id=student.id, reason=e.reason, released_from=released_from
                )
            except RetryExhaustedError as e:
                return AllocationOutcome.retry_exhausted(
                    student_id=student.id, reason=e.message, released_from=released_from
                )

        return AllocationOutcome.allocated(
            student_id=student.id,
            seat_id=seat.id,
            room_id=seat.room_id,
            released_from=released_from,
        )

    async def resolve_room_ids(self, *, room_ids: Optional[Iterable[str]]) -> list[str]:
        if room_ids is not None:
            return list(dict.fromkeys(room_ids))
        rooms = await self.record_store.list_records(kind=RecordKind.ROOM)
        return sorted(room.id for room in rooms)

    async def resolve_students(self, *, student_ids: Optional[Iterable[str]]) -> list[Student]:
        if student_ids is None:
            return await self.record_store.list_records(kind=RecordKind.STUDENT)

        students = []
        for student_id in dict.fromkeys(student_ids):
            student = await self.record_store.get(kind=RecordKind.STUDENT, record_id=student_id)
            if student is None:
                raise NotFoundError(f'Student {student_id} not found')
            students.append(student)
        return students

    async def seated_student_ids(self) -> set[str]:
        seats = await self.record_store.list_records(kind=RecordKind.SEAT)
        return {seat.student_id for seat in seats if seat.student_id}
