"""Seating Domain Enums"""

from src.service.seating.domain.enum.booking_status import BookingLifecycle, BookingStatus
from src.service.seating.domain.enum.notification_event_type import NotificationEventType
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_feature import SeatFeature
from src.service.seating.domain.enum.seat_status import SeatStatus

__all__ = [
    'BookingLifecycle',
    'BookingStatus',
    'NotificationEventType',
    'RecordKind',
    'SeatFeature',
    'SeatStatus',
]
