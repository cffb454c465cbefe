from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind


class SeatQueryUseCase:
    """Full-state reads: the resync path for any observer that missed events."""

    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def get_seat(self, *, seat_id: str) -> Seat:
        seat = await self.record_store.get(kind=RecordKind.SEAT, record_id=seat_id)
        if seat is None:
            raise NotFoundError(f'Seat {seat_id} not found')
        return seat

    @Logger.io
    async def list_seats(self, *, room_id: str) -> list[Seat]:
        """Seats of a room in row-major order"""
        room = await self.record_store.get(kind=RecordKind.ROOM, record_id=room_id)
        if room is None:
            raise NotFoundError(f'Room {room_id} not found')
        seats = await self.record_store.list_records(kind=RecordKind.SEAT, parent_id=room_id)
        return sorted(seats, key=lambda seat: seat.position)
