"""
Run Rebalance Use Case

Re-runs assignment when global constraints change (e.g. a room becomes
unavailable). Displaced students are released through the gate and then
placed again by the same greedy pass; every displaced student ends with an
outcome naming the seat it was released from.
"""

from typing import Iterable, Optional, Self

import attrs
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import RetryExhaustedError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seating_metrics import seating_metrics
from src.service.seating.app.command.run_allocation_use_case import RunAllocationUseCase
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.seat_layout import RoomLayout
from src.service.seating.domain.value_object.allocation_outcome import (
    AllocationOutcome,
    RebalanceSummary,
)
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


class RunRebalanceUseCase:
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
    async def run_rebalance(
        self,
        *,
        unavailable_room_ids: Iterable[str] = (),
        student_ids: Optional[Iterable[str]] = None,
        room_ids: Optional[Iterable[str]] = None,
    ) -> RebalanceSummary:
        """
        Args:
            unavailable_room_ids: Rooms to empty and leave out of the pool
            student_ids: Students to consider (default: all)
            room_ids: Room pool (default: all rooms); unavailable ones are removed
        """
        unavailable = set(unavailable_room_ids)
        with self.tracer.start_as_current_span(
            'use_case.run_rebalance', attributes={'rooms.unavailable': sorted(unavailable)}
        ):
            pool_room_ids = [
                room_id
                for room_id in await self.allocation.resolve_room_ids(room_ids=room_ids)
                if room_id not in unavailable
            ]
            students = {
                student.id: student
                for student in await self.allocation.resolve_students(student_ids=student_ids)
            }

            displaced = await self._find_displaced(students=students, unavailable=unavailable)

            released_from: dict[str, str] = {}
            release_reasons: dict[str, str] = {}
            released_count = 0
            prior_outcomes: list[AllocationOutcome] = []
            for seat, reason in displaced:
                student_id = seat.student_id
                try:
                    released = await self.seat_assigner.release(
                        seat=seat,
                        student_id=student_id,
                        max_attempts=self.allocation.max_attempts,
                    )
                except RetryExhaustedError as e:
                    # Still holds the old seat; report instead of moving them
                    prior_outcomes.append(
                        AllocationOutcome.retry_exhausted(student_id=student_id, reason=e.message)
                    )
                    seating_metrics.allocation_outcomes.labels(
                        operation='rebalance', outcome='retry_exhausted'
                    ).inc()
                    continue
                # None: somebody else already moved the student off this seat
                released_from.setdefault(student_id, seat.id)
                release_reasons.setdefault(student_id, reason)
                if released is not None:
                    released_count += 1
                    Logger.base.info(
                        f'🔄 [REBALANCE] Released seat {seat.label} of student {student_id}: '
                        f'{reason}'
                    )

            blocked = {outcome.student_id for outcome in prior_outcomes}
            seats = await self.record_store.list_records(kind=RecordKind.SEAT)
            held = {seat.student_id: seat for seat in seats if seat.student_id}
            to_place = []
            for student in students.values():
                if student.id in blocked:
                    continue
                if student.id not in held:
                    to_place.append(student)
                elif student.id in released_from:
                    # Displaced here but still seated elsewhere; nothing to place
                    prior_outcomes.append(
                        AllocationOutcome.already_seated(
                            student_id=student.id,
                            seat=held[student.id],
                            released_from=released_from[student.id],
                        )
                    )
                    seating_metrics.allocation_outcomes.labels(
                        operation='rebalance', outcome='already_seated'
                    ).inc()

            pool = await self.seat_assigner.load_pool(room_ids=pool_room_ids)
            allocation = await self.allocation.allocate(
                students=to_place,
                pool=pool,
                operation='rebalance',
                released_from=released_from,
                prior_outcomes=prior_outcomes,
            )
            allocation = attrs.evolve(
                allocation,
                outcomes=tuple(
                    attrs.evolve(outcome, release_reason=release_reasons.get(outcome.student_id))
                    for outcome in allocation.outcomes
                ),
            )

        return RebalanceSummary(
            allocation=allocation,
            released_count=released_count,
            unavailable_room_ids=tuple(sorted(unavailable)),
        )

    async def _find_displaced(
        self, *, students: dict[str, Student], unavailable: set[str]
    ) -> list[tuple[Seat, str]]:
        """Allocated seats whose student has to move, with the reason"""
        displaced = []
        rooms = await self.record_store.list_records(kind=RecordKind.ROOM)
        for room in sorted(rooms, key=lambda r: r.id):
            seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room.id)
            layout = RoomLayout(room=room, seats=seats)
            for seat in sorted(seats, key=lambda s: s.position):
                student = students.get(seat.student_id) if seat.student_id else None
                if student is None:
                    continue
                if room.id in unavailable:
                    displaced.append((seat, f'room {room.id} is unavailable'))
                    continue
                missing = SeatConstraints.for_student(student).missing_hard(
                    layout.features_of(seat)
                )
                if missing:
                    displaced.append(
                        (seat, f'seat no longer satisfies {", ".join(sorted(missing))}')
                    )
        return displaced
