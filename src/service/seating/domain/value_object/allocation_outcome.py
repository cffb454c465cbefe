from enum import StrEnum
from typing import TYPE_CHECKING, Optional

import attrs

if TYPE_CHECKING:
    from src.service.seating.domain.entity.seat_entity import Seat


class OutcomeKind(StrEnum):
    ALLOCATED = 'allocated'
    UNALLOCATED = 'unallocated'
    RETRY_EXHAUSTED = 'retry_exhausted'
    ALREADY_SEATED = 'already_seated'


@attrs.define(frozen=True)
class AllocationOutcome:
    student_id: str
    outcome: OutcomeKind
    seat_id: Optional[str] = None
    room_id: Optional[str] = None
    reason: Optional[str] = None
    # Seat the student held before a rebalance moved them, and why it was released
    released_from: Optional[str] = None
    release_reason: Optional[str] = None

    @classmethod
    def allocated(
        cls, *, student_id: str, seat_id: str, room_id: str, released_from: Optional[str] = None
    ) -> 'AllocationOutcome':
        return cls(
            student_id=student_id,
            outcome=OutcomeKind.ALLOCATED,
            seat_id=seat_id,
            room_id=room_id,
            released_from=released_from,
        )

    @classmethod
    def already_seated(
        cls, *, student_id: str, seat: 'Seat', released_from: Optional[str] = None
    ) -> 'AllocationOutcome':
        """The student got a seat elsewhere while the batch was running"""
        return cls(
            student_id=student_id,
            outcome=OutcomeKind.ALREADY_SEATED,
            seat_id=seat.id,
            room_id=seat.room_id,
            released_from=released_from,
        )

    @classmethod
    def unallocated(
        cls, *, student_id: str, reason: str, released_from: Optional[str] = None
    ) -> 'AllocationOutcome':
        return cls(
            student_id=student_id,
            outcome=OutcomeKind.UNALLOCATED,
            reason=reason,
            released_from=released_from,
        )

    @classmethod
    def retry_exhausted(
        cls, *, student_id: str, reason: str, released_from: Optional[str] = None
    ) -> 'AllocationOutcome':
        return cls(
            student_id=student_id,
            outcome=OutcomeKind.RETRY_EXHAUSTED,
            reason=reason,
            released_from=released_from,
        )

    @property
    def is_allocated(self) -> bool:
        return self.outcome == OutcomeKind.ALLOCATED


@attrs.define(frozen=True)
class AllocationSummary:
    outcomes: tuple[AllocationOutcome, ...]
    total_seats: int
    occupied_seats: int

    @property
    def allocated_count(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == OutcomeKind.ALLOCATED)

    @property
    def unallocated_count(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == OutcomeKind.UNALLOCATED)

    @property
    def retry_exhausted_count(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == OutcomeKind.RETRY_EXHAUSTED)

    @property
    def already_seated_count(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == OutcomeKind.ALREADY_SEATED)

    @property
    def utilization(self) -> float:
        """Occupied share of the non-broken seats in the pool, in percent."""
        if self.total_seats == 0:
            return 0.0
        return round(self.occupied_seats * 100 / self.total_seats, 2)


@attrs.define(frozen=True)
class RebalanceSummary:
    allocation: AllocationSummary
    released_count: int
    unavailable_room_ids: tuple[str, ...] = ()
