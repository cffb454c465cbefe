from typing import List, Optional

from pydantic import BaseModel

from src.service.seating.app.dto.seat_allocation import SeatAllocation
from src.service.seating.domain.value_object.allocation_outcome import (
    AllocationOutcome,
    AllocationSummary,
    RebalanceSummary,
)


class RunAllocationRequest(BaseModel):
    student_ids: Optional[List[str]] = None  # default: every student
    room_ids: Optional[List[str]] = None  # default: every room, by id


class RunRebalanceRequest(BaseModel):
    unavailable_room_ids: List[str] = []
    student_ids: Optional[List[str]] = None
    room_ids: Optional[List[str]] = None

    class Config:
        json_schema_extra = {'example': {'unavailable_room_ids': ['R102']}}


class BranchAllocationRequest(BaseModel):
    branch: str
    room_id: str

    class Config:
        json_schema_extra = {'example': {'branch': 'CSE', 'room_id': 'R101'}}


class AllocationOutcomeResponse(BaseModel):
    student_id: str
    outcome: str
    seat_id: Optional[str] = None
    room_id: Optional[str] = None
    reason: Optional[str] = None
    released_from: Optional[str] = None
    release_reason: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: AllocationOutcome) -> 'AllocationOutcomeResponse':
        return cls(
            student_id=outcome.student_id,
            outcome=outcome.outcome.value,
            seat_id=outcome.seat_id,
            room_id=outcome.room_id,
            reason=outcome.reason,
            released_from=outcome.released_from,
            release_reason=outcome.release_reason,
        )


class AllocationSummaryResponse(BaseModel):
    allocated: int
    unallocated: int
    retry_exhausted: int
    already_seated: int
    total_seats: int
    occupied_seats: int
    utilization: float
    outcomes: List[AllocationOutcomeResponse]

    @classmethod
    def from_summary(cls, summary: AllocationSummary) -> 'AllocationSummaryResponse':
        return cls(
            allocated=summary.allocated_count,
            unallocated=summary.unallocated_count,
            retry_exhausted=summary.retry_exhausted_count,
            already_seated=summary.already_seated_count,
            total_seats=summary.total_seats,
            occupied_seats=summary.occupied_seats,
            utilization=summary.utilization,
            outcomes=[AllocationOutcomeResponse.from_outcome(o) for o in summary.outcomes],
        )


class RebalanceSummaryResponse(AllocationSummaryResponse):
    released: int
    unavailable_room_ids: List[str]

    @classmethod
    def from_rebalance(cls, summary: RebalanceSummary) -> 'RebalanceSummaryResponse':
        return cls(
            **AllocationSummaryResponse.from_summary(summary.allocation).model_dump(),
            released=summary.released_count,
            unavailable_room_ids=list(summary.unavailable_room_ids),
        )


class SeatAllocationResponse(BaseModel):
    seat_id: str
    seat_label: str
    student_id: str
    student_name: Optional[str] = None
    branch: Optional[str] = None
    room_id: str
    room_name: str
    building_id: str

    @classmethod
    def from_allocation(cls, allocation: SeatAllocation) -> 'SeatAllocationResponse':
        student = allocation.student
        return cls(
            seat_id=allocation.seat.id,
            seat_label=allocation.seat.label,
            student_id=allocation.seat.student_id,
            student_name=student.name if student else None,
            branch=student.branch if student else None,
            room_id=allocation.room.id,
            room_name=allocation.room.name,
            building_id=allocation.room.building_id,
        )
