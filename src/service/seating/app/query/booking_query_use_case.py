from datetime import datetime, timezone
from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.dto.booking_view import BookingView
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.enum.record_kind import RecordKind


class BookingQueryUseCase:
    """Bookings with status derived from wall-clock time at read."""

    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def get_booking(self, *, booking_id: str) -> BookingView:
        booking = await self.record_store.get(kind=RecordKind.BOOKING, record_id=booking_id)
        if booking is None:
            raise NotFoundError(f'Booking {booking_id} not found')
        return BookingView(booking=booking, status=booking.status_at(datetime.now(timezone.utc)))

    @Logger.io
    async def list_room_bookings(self, *, room_id: str) -> list[BookingView]:
        room = await self.record_store.get(kind=RecordKind.ROOM, record_id=room_id)
        if room is None:
            raise NotFoundError(f'Room {room_id} not found')

        now = datetime.now(timezone.utc)
        bookings = await self.record_store.list_records(kind=RecordKind.BOOKING, parent_id=room_id)
        return [
            BookingView(booking=booking, status=booking.status_at(now))
            for booking in sorted(bookings, key=lambda b: (b.start_time, b.id))
        ]
