from datetime import datetime
from typing import ClassVar

import attrs

from src.platform.exception.exceptions import SlotTakenError
from src.service.seating.domain.enum.record_kind import RecordKind


@attrs.define(frozen=True)
class BookingSlot:
    booking_id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime

    def overlaps(self, *, start_time: datetime, end_time: datetime) -> bool:
        return self.start_time < end_time and start_time < self.end_time


@attrs.define(frozen=True)
class RoomCalendar:
    """
    Versioned list of the live booking intervals of one room.

    Every booking of a room goes through a compare-and-swap on this single
    record, which is what serializes two teachers racing for overlapping
    intervals.
    """

    KIND: ClassVar[RecordKind] = RecordKind.CALENDAR

    id: str  # same as the room id
    slots: tuple[BookingSlot, ...] = attrs.field(factory=tuple, converter=tuple)
    version: int = 0

    @property
    def room_id(self) -> str:
        return self.id

    @property
    def parent_id(self) -> str:
        return self.id

    def live_slots(self, *, now: datetime) -> tuple[BookingSlot, ...]:
        return tuple(slot for slot in self.slots if slot.end_time > now)

    def is_free(self, *, start_time: datetime, end_time: datetime, now: datetime) -> bool:
        return not any(
            slot.overlaps(start_time=start_time, end_time=end_time)
            for slot in self.live_slots(now=now)
        )

    def add_slot(self, slot: BookingSlot, *, now: datetime) -> 'RoomCalendar':
        if not self.is_free(start_time=slot.start_time, end_time=slot.end_time, now=now):
            raise SlotTakenError('Room is already booked for an overlapping time slot')
        # Expired slots can no longer conflict; drop them while we are writing anyway
        return attrs.evolve(self, slots=(*self.live_slots(now=now), slot))

    def remove_slot(self, *, booking_id: str) -> 'RoomCalendar':
        return attrs.evolve(
            self, slots=tuple(slot for slot in self.slots if slot.booking_id != booking_id)
        )

    def has_slot(self, *, booking_id: str) -> bool:
        return any(slot.booking_id == booking_id for slot in self.slots)
