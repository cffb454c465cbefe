"""Student with the seat set it holds, computed from the seats on read."""

import attrs

from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.entity.student_entity import Student


@attrs.define(frozen=True)
class StudentSeating:
    student: Student
    seats: tuple[Seat, ...] = ()
