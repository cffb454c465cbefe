from typing import Iterable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    ConstraintUnsatisfiableError,
    DomainError,
    NotFoundError,
    RetryExhaustedError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seating_metrics import seating_metrics
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


class ClaimBestSeatUseCase:
    """
    Claim the best Available seat of one room for one student.

    Flow:
    1. Read the room's seats (the snapshot the expected versions come from)
    2. Drop seats missing a hard constraint, score the rest
    3. Gate write on the winner; on a lost race emit allocation_conflict,
       re-read the room and try again, up to CLAIM_MAX_RETRIES attempts
    """

    def __init__(
        self,
        *,
        record_store: IRecordStore,
        seat_assigner: SeatAssigner,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.record_store = record_store
        self.seat_assigner = seat_assigner
        self.max_attempts = max_attempts or settings.CLAIM_MAX_RETRIES
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        seat_assigner: SeatAssigner = Depends(Provide[Container.seat_assigner]),
    ) -> Self:
        return cls(record_store=record_store, seat_assigner=seat_assigner)

    @Logger.io
    async def claim_seat(
        self,
        *,
        room_id: str,
        student_id: str,
        hard: Iterable[str] = (),
        soft: Iterable[str] = (),
    ) -> Seat:
        """
        Args:
            hard / soft: Extra constraints on top of the student's own
                accessibility needs (hard) and preferences (soft)

        Raises:
            ConstraintUnsatisfiableError: No Available seat meets the hard constraints
            RetryExhaustedError: Lost every race, try again later
        """
        with self.tracer.start_as_current_span(
            'use_case.claim_seat', attributes={'room.id': room_id, 'student.id': student_id}
        ):
            student = await self.record_store.get(kind=RecordKind.STUDENT, record_id=student_id)
            if student is None:
                raise NotFoundError(f'Student {student_id} not found')

            own = SeatConstraints.for_student(student)
            constraints = SeatConstraints(hard=own.hard | set(hard), soft=own.soft | set(soft))

            async with self.seat_assigner.student_lock(student_id=student_id):
                pool = await self.seat_assigner.load_pool(room_ids=[room_id])
                for seat in pool.seats():
                    if seat.student_id == student_id:
                        raise DomainError(
                            f'Student {student_id} already holds seat {seat.label} '
                            f'in room {room_id}'
                        )

                try:
                    seat = await self.seat_assigner.assign(
                        student_id=student_id,
                        constraints=constraints,
                        pool=pool,
                        max_attempts=self.max_attempts,
                        refresh_on_conflict=True,
                    )
                except ConstraintUnsatisfiableError:
                    seating_metrics.claim_results.labels(result='unsatisfiable').inc()
                    raise
                except RetryExhaustedError:
                    seating_metrics.claim_results.labels(result='retry_exhausted').inc()
                    raise

            seating_metrics.claim_results.labels(result='claimed').inc()
            return seat
