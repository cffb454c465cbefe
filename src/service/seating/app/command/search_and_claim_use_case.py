from datetime import datetime, timezone
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    ConstraintUnsatisfiableError,
    RetryExhaustedError,
    SlotTakenError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.command.create_room_booking_use_case import CreateRoomBookingUseCase
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.app.query.search_rooms_use_case import SearchRoomsUseCase
from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.value_object.room_search_criteria import RoomSearchCriteria


class SearchAndClaimUseCase:
    """
    Book the best recommended room that is still free.

    Walks the recommendations in order; a room lost to a concurrent booking is
    skipped and the next one is tried. A teacher overlap is never skipped: it
    holds for every room.
    """

    def __init__(
        self,
        *,
        record_store: IRecordStore,
        optimistic_gate: OptimisticGate,
        change_notifier: IChangeNotifier,
        keyed_lock: KeyedLock,
        seat_assigner: SeatAssigner,
    ) -> None:
        self.search_rooms_use_case = SearchRoomsUseCase(record_store=record_store)
        self.create_booking_use_case = CreateRoomBookingUseCase(
            record_store=record_store,
            optimistic_gate=optimistic_gate,
            change_notifier=change_notifier,
            keyed_lock=keyed_lock,
            seat_assigner=seat_assigner,
        )
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        optimistic_gate: OptimisticGate = Depends(Provide[Container.optimistic_gate]),
        change_notifier: IChangeNotifier = Depends(Provide[Container.change_notifier]),
        keyed_lock: KeyedLock = Depends(Provide[Container.keyed_lock]),
        seat_assigner: SeatAssigner = Depends(Provide[Container.seat_assigner]),
    ) -> Self:
        return cls(
            record_store=record_store,
            optimistic_gate=optimistic_gate,
            change_notifier=change_notifier,
            keyed_lock=keyed_lock,
            seat_assigner=seat_assigner,
        )

    @Logger.io
    async def search_and_claim(self, *, criteria: RoomSearchCriteria) -> RoomBooking:
        """
        Raises:
            ConflictError: The teacher already has an overlapping booking
            ConstraintUnsatisfiableError: No room fits and is free
            RetryExhaustedError: Every free room was lost to calendar contention
        """
        with self.tracer.start_as_current_span(
            'use_case.search_and_claim', attributes={'teacher.id': criteria.teacher_id}
        ):
            await self.create_booking_use_case.check_teacher_is_free(
                teacher_id=criteria.teacher_id,
                start_time=criteria.start_time,
                end_time=criteria.end_time,
                now=datetime.now(timezone.utc),
            )

            contended: Optional[RetryExhaustedError] = None
            recommendations = await self.search_rooms_use_case.search_rooms(criteria=criteria)
            for recommendation in recommendations:
                if not recommendation.available:
                    continue
                try:
                    return await self.create_booking_use_case.create_booking(
                        room_id=recommendation.room.id,
                        teacher_id=criteria.teacher_id,
                        branch=criteria.branch,
                        capacity=criteria.capacity,
                        start_time=criteria.start_time,
                        end_time=criteria.end_time,
                    )
                except SlotTakenError:
                    Logger.base.info(
                        f'🔁 [SEARCH-CLAIM] Room {recommendation.room.id} no longer free, '
                        f'trying next'
                    )
                except RetryExhaustedError as e:
                    contended = e
                    Logger.base.info(
                        f'🔁 [SEARCH-CLAIM] Room {recommendation.room.id} too contended, '
                        f'trying next'
                    )

            if contended is not None:
                # Rooms were free but busy; retrying later may succeed
                raise contended
            raise ConstraintUnsatisfiableError(
                f'No room with capacity {criteria.capacity} is free for the requested interval'
            )
