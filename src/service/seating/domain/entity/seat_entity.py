from typing import ClassVar, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.seat_patch import SeatPatch


@attrs.define(frozen=True)
class Seat:
    """
    One seat of one room.

    Invariant: student_id is set if and only if status is Allocated. Every
    instance is checked on construction, so a mutation that would break it
    fails before anything is stored.
    """

    KIND: ClassVar[RecordKind] = RecordKind.SEAT

    id: str
    room_id: str
    label: str
    row: int
    col: int
    status: SeatStatus = SeatStatus.AVAILABLE
    student_id: Optional[str] = None
    features: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)
    version: int = 0

    def __attrs_post_init__(self) -> None:
        if self.row < 0 or self.col < 0:
            raise DomainError(f'Seat {self.id} has a negative grid position')
        if self.version < 0:
            raise DomainError(f'Seat {self.id} has a negative version')
        if self.status == SeatStatus.ALLOCATED and not self.student_id:
            raise DomainError(f'Seat {self.label} cannot be Allocated without a student')
        if self.status != SeatStatus.ALLOCATED and self.student_id:
            raise DomainError(f'Seat {self.label} is {self.status} and cannot hold a student')

    @property
    def parent_id(self) -> str:
        return self.room_id

    @property
    def position(self) -> tuple[int, int]:
        return self.row, self.col

    @property
    def is_candidate(self) -> bool:
        return self.status == SeatStatus.AVAILABLE

    def claim(self, *, student_id: str) -> 'Seat':
        if self.status != SeatStatus.AVAILABLE:
            raise DomainError(f'Seat {self.label} is {self.status}, not Available')
        return attrs.evolve(self, status=SeatStatus.ALLOCATED, student_id=student_id)

    def release(self) -> 'Seat':
        return attrs.evolve(self, status=SeatStatus.AVAILABLE, student_id=None)

    def apply_patch(self, patch: SeatPatch) -> 'Seat':
        """
        Apply an administrative edit.

        Setting a student implies Allocated; moving to Available or Broken
        drops the student reference (a Broken seat never keeps its occupant).
        """
        status = patch.status
        if status is None:
            status = SeatStatus.ALLOCATED if patch.student_id else self.status

        if status == SeatStatus.ALLOCATED:
            student_id = patch.student_id or self.student_id
        elif patch.student_id:
            raise DomainError(f'A student can only be assigned to an Allocated seat, not {status}')
        else:
            student_id = None

        return attrs.evolve(
            self,
            status=status,
            student_id=student_id,
            features=self.features if patch.features is None else patch.features,
            label=patch.label or self.label,
        )
