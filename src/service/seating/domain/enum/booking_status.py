from enum import StrEnum


class BookingLifecycle(StrEnum):
    """What is stored. Time-based states are derived on read."""

    BOOKED = 'booked'
    CANCELED = 'canceled'


class BookingStatus(StrEnum):
    """What callers see: lifecycle combined with wall-clock time."""

    UPCOMING = 'upcoming'
    ACTIVE = 'active'
    EXPIRED = 'expired'
    CANCELED = 'canceled'
