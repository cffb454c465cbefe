"""
Create Room Booking Use Case

Two teachers must never hold overlapping intervals on one room. Every booking
of a room is a gate write on that room's calendar record, so concurrent
requests for the same room are serialized by its version. Requests of one
teacher are serialized by a per-teacher lock, so the teacher overlap check
holds until the booking is stored (within one process).

Once stored, the room is filled with the booking's branch.
"""

from datetime import datetime, timezone
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    RetryExhaustedError,
    VersionConflictError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.service.seating.app.command.branch_allocation_use_case import BranchAllocationUseCase
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.app.optimistic_gate import OptimisticGate
from src.service.seating.app.seat_assigner import SeatAssigner
from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.entity.room_calendar_entity import BookingSlot, RoomCalendar
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope


def teacher_lock_key(teacher_id: str) -> str:
    return f'teacher:{teacher_id}'


class CreateRoomBookingUseCase:
    def __init__(
        self,
        *,
        record_store: IRecordStore,
        optimistic_gate: OptimisticGate,
        change_notifier: IChangeNotifier,
        keyed_lock: KeyedLock,
        seat_assigner: SeatAssigner,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.record_store = record_store
        self.optimistic_gate = optimistic_gate
        self.change_notifier = change_notifier
        self.keyed_lock = keyed_lock
        self.branch_allocation = BranchAllocationUseCase(
            record_store=record_store,
            seat_assigner=seat_assigner,
            change_notifier=change_notifier,
        )
        self.max_attempts = max_attempts or settings.BOOKING_MAX_RETRIES
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
    async def create_booking(
        self,
        *,
        room_id: str,
        teacher_id: str,
        branch: str,
        capacity: int,
        start_time: datetime,
        end_time: datetime,
    ) -> RoomBooking:
        """
        Raises:
            DomainError: Invalid interval, start in the past, or capacity too large
            ConflictError: Room or teacher already booked for an overlapping interval
            RetryExhaustedError: Calendar kept changing under contention
        """
        now = datetime.now(timezone.utc)
        booking_id = str(uuid_utils.uuid7())

        with self.tracer.start_as_current_span(
            'use_case.create_booking', attributes={'booking.id': booking_id, 'room.id': room_id}
        ):
            booking = RoomBooking(
                id=booking_id,
                room_id=room_id,
                teacher_id=teacher_id,
                branch=branch,
                capacity=capacity,
                start_time=start_time,
                end_time=end_time,
                created_at=now,
            )
            if booking.start_time <= now:
                raise DomainError('Start time must be in the future')

            room = await self.record_store.get(kind=RecordKind.ROOM, record_id=room_id)
            if room is None:
                raise NotFoundError(f'Room {room_id} not found')
            if capacity > room.capacity:
                raise DomainError(
                    f'Room {room_id} seats {room.capacity}, {capacity} were requested'
                )
            async with self.keyed_lock.hold(key=teacher_lock_key(teacher_id)):
                await self.check_teacher_is_free(
                    teacher_id=teacher_id, start_time=start_time, end_time=end_time, now=now
                )
                await self._reserve_slot(room=room, booking=booking, now=now)
                booking = await self.record_store.insert(record=booking)

            await self.change_notifier.publish_committed(record=booking, scope=self._scope(room))
            Logger.base.info(
                f'📅 [BOOKING] Room {room_id} booked by {teacher_id} '
                f'{start_time.isoformat()} - {end_time.isoformat()} ({booking_id})'
            )
            await self._allocate_branch(booking=booking)
            return booking

    async def check_teacher_is_free(
        self, *, teacher_id: str, start_time: datetime, end_time: datetime, now: datetime
    ) -> None:
        bookings = await self.record_store.list_records(kind=RecordKind.BOOKING)
        for other in bookings:
            if (
                other.teacher_id == teacher_id
                and other.is_live_at(now)
                and other.overlaps(start_time=start_time, end_time=end_time)
            ):
                raise ConflictError(
                    f'Teacher {teacher_id} already has booking {other.id} in room '
                    f'{other.room_id} overlapping this interval'
                )

    async def _allocate_branch(self, *, booking: RoomBooking) -> None:
        if not await self.record_store.list_records(
            kind=RecordKind.SEAT, parent_id=booking.room_id
        ):
            Logger.base.warning(
                f'⚠️ [BOOKING] Room {booking.room_id} has no seats, branch {booking.branch} '
                f'was not allocated'
            )
            return
        # Per-student failures end up as outcomes; the booking stands either way
        summary = await self.branch_allocation.allocate_branch(
            branch=booking.branch, room_id=booking.room_id
        )
        Logger.base.info(
            f'🎓 [BOOKING] Allocated {summary.allocated_count} students of {booking.branch} '
            f'to room {booking.room_id} ({summary.unallocated_count} unallocated)'
        )

    async def get_calendar(self, *, room_id: str) -> RoomCalendar:
        calendar = await self.record_store.get(kind=RecordKind.CALENDAR, record_id=room_id)
        if calendar is not None:
            return calendar
        try:
            return await self.record_store.insert(record=RoomCalendar(id=room_id))
        except ConflictError:
            # Created concurrently; use theirs
            return await self.record_store.get(kind=RecordKind.CALENDAR, record_id=room_id)

    async def _reserve_slot(self, *, room: Room, booking: RoomBooking, now: datetime) -> None:
        slot = BookingSlot(
            booking_id=booking.id,
            teacher_id=booking.teacher_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )
        calendar = await self.get_calendar(room_id=room.id)

        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.optimistic_gate.write(
                    kind=RecordKind.CALENDAR,
                    record_id=room.id,
                    expected_version=calendar.version,
                    mutation=lambda current: current.add_slot(slot, now=now),
                    scope=self._scope(room),
                )
                return
            except VersionConflictError as e:
                calendar = e.current_record
                Logger.base.warning(
                    f'⚔️ [BOOKING] Calendar of room {room.id} changed concurrently '
                    f'(attempt {attempt}/{self.max_attempts})'
                )
                await self.change_notifier.allocation_conflict(
                    message=(
                        f'Booking request for room {room.id} by {booking.teacher_id} lost a race '
                        f'to a concurrent booking change'
                    ),
                    conflicting_record=calendar,
                    scope=self._scope(room),
                )

        raise RetryExhaustedError(
            f'Could not book room {room.id} after {self.max_attempts} attempts, try again later',
            attempts=self.max_attempts,
        )

    @staticmethod
    def _scope(room: Room) -> Scope:
        return Scope.of_room(room_id=room.id, building_id=room.building_id)
