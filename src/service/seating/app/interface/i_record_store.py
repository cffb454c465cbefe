"""
Record Store Interface

Versioned key-value state for seats, bookings and room calendars, plus
unversioned students and rooms.

The store is the only place a version changes: compare_and_swap sets
version = old.version + 1 and nothing else can.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.entity.room_calendar_entity import RoomCalendar
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.value_object.cas_result import CasResult


Record = Union[Seat, RoomBooking, RoomCalendar, Student, Room]
Mutation = Callable[[Record], Record]


class IRecordStore(ABC):
    @abstractmethod
    async def get(self, *, kind: RecordKind, record_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def list_records(
        self, *, kind: RecordKind, parent_id: Optional[str] = None
    ) -> list[Record]:
        """
        Records of one kind

        Args:
            kind: Record kind
            parent_id: Only children of this parent (seats of a room, bookings
                of a room); None returns every record of the kind
        """
        pass

    @abstractmethod
    async def insert(self, *, record: Record) -> Record:
        """
        Create a record; versioned kinds always start at version 0

        Raises:
            ConflictError: A record with this id already exists
        """
        pass

    @abstractmethod
    async def put(self, *, record: Record) -> Record:
        """
        Upsert an unversioned record (student, room)

        Raises:
            DomainError: The kind is versioned and must go through compare_and_swap
        """
        pass

    @abstractmethod
    async def compare_and_swap(
        self,
        *,
        kind: RecordKind,
        record_id: str,
        expected_version: int,
        mutation: Mutation,
    ) -> CasResult:
        """
        Store mutation(current) at version + 1 if the stored version equals
        expected_version; otherwise change nothing and return the stored record

        If the mutation raises, nothing is stored and the error propagates.

        Raises:
            NotFoundError: No record under this id
        """
        pass
