"""An allocated seat joined with its student and room."""

from typing import Optional

import attrs

from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student


@attrs.define(frozen=True)
class SeatAllocation:
    seat: Seat
    room: Room
    # None when the seat references a student that was never registered
    student: Optional[Student] = None
