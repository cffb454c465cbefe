from datetime import datetime
from typing import ClassVar, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.seating.domain.enum.booking_status import BookingLifecycle, BookingStatus
from src.service.seating.domain.enum.record_kind import RecordKind


@attrs.define(frozen=True)
class RoomBooking:
    """A teacher's claim on a room for the half-open interval [start_time, end_time)."""

    KIND: ClassVar[RecordKind] = RecordKind.BOOKING

    id: str
    room_id: str
    teacher_id: str
    branch: str
    capacity: int
    start_time: datetime
    end_time: datetime
    lifecycle: BookingLifecycle = BookingLifecycle.BOOKED
    created_at: Optional[datetime] = None
    version: int = 0

    def __attrs_post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise DomainError('End time must be after start time')
        if self.capacity < 1:
            raise DomainError('Capacity must be at least 1')

    @property
    def parent_id(self) -> str:
        return self.room_id

    def status_at(self, now: datetime) -> BookingStatus:
        if self.lifecycle == BookingLifecycle.CANCELED:
            return BookingStatus.CANCELED
        if now < self.start_time:
            return BookingStatus.UPCOMING
        if now < self.end_time:
            return BookingStatus.ACTIVE
        return BookingStatus.EXPIRED

    def is_live_at(self, now: datetime) -> bool:
        return self.status_at(now) in (BookingStatus.UPCOMING, BookingStatus.ACTIVE)

    def overlaps(self, *, start_time: datetime, end_time: datetime) -> bool:
        return self.start_time < end_time and start_time < self.end_time

    @Logger.io
    def cancel(self, *, now: datetime) -> 'RoomBooking':
        status = self.status_at(now)
        if status == BookingStatus.CANCELED:
            raise DomainError('Booking already canceled')
        if status == BookingStatus.EXPIRED:
            raise DomainError('Cannot cancel an expired booking')
        return attrs.evolve(self, lifecycle=BookingLifecycle.CANCELED)
