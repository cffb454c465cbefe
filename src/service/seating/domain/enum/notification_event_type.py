"""Types of the change events fanned out to scope observers."""

from enum import StrEnum


class NotificationEventType(StrEnum):
    INITIAL_STATE = 'initial_state'
    SEAT_CHANGED = 'seat_changed'
    SEATS_BULK_CHANGED = 'seats_bulk_changed'
    BOOKING_CHANGED = 'booking_changed'
    ALLOCATION_CONFLICT = 'allocation_conflict'
