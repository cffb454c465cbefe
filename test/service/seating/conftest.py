"""
Seating test fixtures

Factory fixtures that build rooms and students through the real use cases,
so every test starts from records the store actually issued.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Optional

from anyio import EndOfStream, WouldBlock
from anyio.streams.memory import MemoryObjectReceiveStream
import pytest

from src.service.seating.app.command.provision_room_use_case import ProvisionRoomUseCase
from src.service.seating.app.command.register_student_use_case import RegisterStudentUseCase
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student


ProvisionRoom = Callable[..., Awaitable[tuple[Room, list[Seat]]]]
RegisterStudent = Callable[..., Awaitable[Student]]


@pytest.fixture
def provision_room(record_store, change_notifier) -> ProvisionRoom:
    use_case = ProvisionRoomUseCase(record_store=record_store, change_notifier=change_notifier)

    async def _provision(
        room_id: str = 'R1',
        *,
        building_id: str = 'B1',
        rows: int = 2,
        cols: int = 3,
        capacity: Optional[int] = None,
        aisle_after_cols: Iterable[int] = (),
        block_id: Optional[str] = None,
        floor_id: Optional[str] = None,
        unused_cells: Iterable[tuple[int, int]] = (),
        seat_features: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> tuple[Room, list[Seat]]:
        room = Room(
            id=room_id,
            name=f'Room {room_id}',
            building_id=building_id,
            rows=rows,
            cols=cols,
            capacity=rows * cols if capacity is None else capacity,
            block_id=block_id,
            floor_id=floor_id,
            aisle_after_cols=aisle_after_cols,
        )
        return await use_case.provision_room(
            room=room, unused_cells=unused_cells, seat_features=seat_features
        )

    return _provision


@pytest.fixture
def register_student(record_store) -> RegisterStudent:
    use_case = RegisterStudentUseCase(record_store=record_store)

    async def _register(
        student_id: str,
        *,
        needs: Iterable[str] = (),
        preferences: Iterable[str] = (),
        branch: str = 'CSE',
    ) -> Student:
        return await use_case.register_student(
            student=Student(
                id=student_id,
                name=f'Student {student_id}',
                branch=branch,
                accessibility_needs=needs,
                preferences=preferences,
            )
        )

    return _register


def drain(stream: MemoryObjectReceiveStream[dict]) -> list[dict]:
    events = []
    while True:
        try:
            events.append(stream.receive_nowait())
        except (WouldBlock, EndOfStream):
            return events


@pytest.fixture
def drain_events() -> Callable[[MemoryObjectReceiveStream[dict]], list[dict]]:
    """Everything buffered on a subscriber stream right now"""
    return drain
