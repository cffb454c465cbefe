"""
Provision Room Use Case

Creates a room and all of its seats exactly once. Seats start at version 0
and from then on change only through the optimistic gate.
"""

from typing import Iterable, Mapping, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import ConflictError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain.entity.room_calendar_entity import RoomCalendar
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.scope import Scope


def seat_label(*, row: int, col: int) -> str:
    """A1, A2, ... B1: row letter plus 1-based column"""
    return f'{chr(ord("A") + row)}{col + 1}'


def seat_id_for(*, room_id: str, label: str) -> str:
    return f'{room_id}-{label}'


class ProvisionRoomUseCase:
    def __init__(self, *, record_store: IRecordStore, change_notifier: IChangeNotifier) -> None:
        self.record_store = record_store
        self.change_notifier = change_notifier
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        record_store: IRecordStore = Depends(Provide[Container.record_store]),
        change_notifier: IChangeNotifier = Depends(Provide[Container.change_notifier]),
    ) -> Self:
        return cls(record_store=record_store, change_notifier=change_notifier)

    @Logger.io
    async def provision_room(
        self,
        *,
        room: Room,
        unused_cells: Iterable[tuple[int, int]] = (),
        seat_features: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> tuple[Room, list[Seat]]:
        """
        Args:
            room: Room to create
            unused_cells: (row, col) grid cells without a seat
            seat_features: Static features by seat label, e.g. {'A1': ['near_exit']}

        Raises:
            ConflictError: The room already exists
            DomainError: Capacity does not fit the usable cells, or a cell is off-grid
        """
        with self.tracer.start_as_current_span(
            'use_case.provision_room', attributes={'room.id': room.id}
        ):
            if await self.record_store.get(kind=RecordKind.ROOM, record_id=room.id):
                raise ConflictError(f'Room {room.id} already exists')

            unused = set(unused_cells)
            for row, col in unused:
                if not room.contains(row=row, col=col):
                    raise DomainError(f'Unused cell ({row}, {col}) is outside room {room.id}')
            if room.capacity > room.rows * room.cols - len(unused):
                raise DomainError(
                    f'Capacity {room.capacity} does not fit {room.rows}x{room.cols} '
                    f'minus {len(unused)} unused cells'
                )

            features = {label: frozenset(tags) for label, tags in (seat_features or {}).items()}
            seats = []
            for row in range(room.rows):
                for col in range(room.cols):
                    if len(seats) == room.capacity:
                        break
                    if (row, col) in unused:
                        continue
                    label = seat_label(row=row, col=col)
                    seats.append(
                        Seat(
                            id=seat_id_for(room_id=room.id, label=label),
                            room_id=room.id,
                            label=label,
                            row=row,
                            col=col,
                            features=features.get(label, frozenset()),
                        )
                    )

            unknown = set(features) - {seat.label for seat in seats}
            if unknown:
                raise DomainError(f'Features given for unknown seats: {", ".join(sorted(unknown))}')

            await self.record_store.put(record=room)
            stored = [await self.record_store.insert(record=seat) for seat in seats]
            await self.record_store.insert(record=RoomCalendar(id=room.id))

            await self.change_notifier.seats_bulk_changed(
                seats=stored, scope=Scope.of_room(room_id=room.id, building_id=room.building_id)
            )
            Logger.base.info(f'🏫 [PROVISION] Room {room.id}: {len(stored)} seats created')
            return room, stored
