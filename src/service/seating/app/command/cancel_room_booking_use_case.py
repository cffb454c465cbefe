from datetime import datetime, timezone
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    NotFoundError,
    RetryExhaustedError,
    VersionConflictError,
)
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.branch_allocation_use_case import BranchAllocationUseCase
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.enum.booking_status import BookingLifecycle
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope


class CancelRoomBookingUseCase:
    """
    Cancel a booking, hand back its branch's seats in the room, then free its
    calendar slot.

    These are separate gate writes (there are no multi-record transactions).
    While the slot is still held, calling cancel again on the already-canceled
    booking retries only the seat release and the slot removal.
    """

    def __init__(
        self,
        *,
        record_store: IRecordStore,
        optimistic_gate: OptimisticGate,
        seat_assigner: SeatAssigner,
        change_notifier: IChangeNotifier,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.record_store = record_store
        self.optimistic_gate = optimistic_gate
        self.max_attempts = max_attempts or settings.BOOKING_MAX_RETRIES
        self.branch_allocation = BranchAllocationUseCase(
            record_store=record_store,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
        )
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        optimistic_gate: OptimisticGate = Depends(Provide[Container.optimistic_gate]),
        seat_assigner: SeatAssigner = Depends(Provide[Container.seat_assigner]),
        change_notifier: IChangeNotifier = Depends(Provide[Container.change_notifier]),
    ) -> Self:
        return cls(
            record_store=record_store,
            optimistic_gate=optimistic_gate,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
        )

    @Logger.io
    async def cancel_booking(self, *, booking_id: str, expected_version: int) -> RoomBooking:
        now = datetime.now(timezone.utc)
        with self.tracer.start_as_current_span(
            'use_case.cancel_booking', attributes={'booking.id': booking_id}
        ):
            booking = await self.record_store.get(kind=RecordKind.BOOKING, record_id=booking_id)
            if booking is None:
                raise NotFoundError(f'Booking {booking_id} not found')
            room = await self.record_store.get(kind=RecordKind.ROOM, record_id=booking.room_id)
            if room is None:
                raise NotFoundError(f'Room {booking.room_id} not found')
            scope = Scope.of_room(room_id=room.id, building_id=room.building_id)

            calendar = await self.record_store.get(kind=RecordKind.CALENDAR, record_id=room.id)
            slot_pending = calendar is not None and calendar.has_slot(booking_id=booking_id)

            if booking.lifecycle != BookingLifecycle.CANCELED or not slot_pending:
                booking = await self.optimistic_gate.write(
                    kind=RecordKind.BOOKING,
                    record_id=booking_id,
                    expected_version=expected_version,
                    mutation=lambda current: current.cancel(now=now),
                    scope=scope,
                )

            await self._release_branch(booking=booking, now=now)
            if slot_pending:
                await self._free_slot(booking=booking, scope=scope)
            Logger.base.info(f'🗑️ [BOOKING] Booking {booking_id} canceled')
            return booking

    async def _release_branch(self, *, booking: RoomBooking, now: datetime) -> None:
        bookings = await self.record_store.list_records(
            kind=RecordKind.BOOKING, parent_id=booking.room_id
        )
        if any(
            other.id != booking.id and other.branch == booking.branch and other.is_live_at(now)
            for other in bookings
        ):
            # Another booking of the branch still uses these seats
            return
        await self.branch_allocation.release_branch(
            branch=booking.branch, room_id=booking.room_id
        )

    async def _free_slot(self, *, booking: RoomBooking, scope: Scope) -> None:
        calendar = await self.record_store.get(kind=RecordKind.CALENDAR, record_id=booking.room_id)
        for _ in range(self.max_attempts):
            if not calendar.has_slot(booking_id=booking.id):
                return
            try:
                await self.optimistic_gate.write(
                    kind=RecordKind.CALENDAR,
                    record_id=booking.room_id,
                    expected_version=calendar.version,
                    mutation=lambda current: current.remove_slot(booking_id=booking.id),
                    scope=scope,
                )
                return
            except VersionConflictError as e:
                calendar = e.current_record

        raise RetryExhaustedError(
            f'Booking {booking.id} is canceled but its slot in room {booking.room_id} could not '
            f'be freed after {self.max_attempts} attempts, cancel again to retry',
            attempts=self.max_attempts,
        )
