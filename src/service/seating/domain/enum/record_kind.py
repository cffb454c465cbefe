from enum import StrEnum


class RecordKind(StrEnum):
    SEAT = 'seat'
    BOOKING = 'booking'
    CALENDAR = 'calendar'
    STUDENT = 'student'
    ROOM = 'room'

    @property
    def is_versioned(self) -> bool:
        return self in (RecordKind.SEAT, RecordKind.BOOKING, RecordKind.CALENDAR)
