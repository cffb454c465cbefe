"""Booking plus its status as of the time it was read."""

import attrs

from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.enum.booking_status import BookingStatus


@attrs.define(frozen=True)
class BookingView:
    booking: RoomBooking
    status: BookingStatus
