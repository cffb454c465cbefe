from typing import List, Optional

from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.branch_allocation_use_case import BranchAllocationUseCase
from src.service.seating.app.command.run_allocation_use_case import RunAllocationUseCase
from src.service.seating.app.command.run_rebalance_use_case import RunRebalanceUseCase
from src.service.seating.app.query.allocation_query_use_case import AllocationQueryUseCase
from src.service.seating.driving_adapter.schema.allocation_schema import (
    AllocationSummaryResponse,
    BranchAllocationRequest,
    RebalanceSummaryResponse,
    RunAllocationRequest,
    RunRebalanceRequest,
    SeatAllocationResponse,
)
from src.service.seating.driving_adapter.schema.seat_schema import SeatResponse


router = APIRouter()


@router.post('/run', status_code=status.HTTP_200_OK)
@Logger.io
async def run_allocation(
    request: RunAllocationRequest,
    use_case: RunAllocationUseCase = Depends(RunAllocationUseCase.depends),
) -> AllocationSummaryResponse:
    summary = await use_case.run_allocation(
        student_ids=request.student_ids, room_ids=request.room_ids
    )
    return AllocationSummaryResponse.from_summary(summary)


@router.post('/rebalance', status_code=status.HTTP_200_OK)
@Logger.io
async def run_rebalance(
    request: RunRebalanceRequest,
    use_case: RunRebalanceUseCase = Depends(RunRebalanceUseCase.depends),
) -> RebalanceSummaryResponse:
    summary = await use_case.run_rebalance(
        unavailable_room_ids=request.unavailable_room_ids,
        student_ids=request.student_ids,
        room_ids=request.room_ids,
    )
    return RebalanceSummaryResponse.from_rebalance(summary)


@router.post('/branch', status_code=status.HTTP_200_OK)
@Logger.io
async def allocate_branch(
    request: BranchAllocationRequest,
    use_case: BranchAllocationUseCase = Depends(BranchAllocationUseCase.depends),
) -> AllocationSummaryResponse:
    summary = await use_case.allocate_branch(branch=request.branch, room_id=request.room_id)
    return AllocationSummaryResponse.from_summary(summary)


@router.post('/branch/release', status_code=status.HTTP_200_OK)
@Logger.io
async def release_branch(
    request: BranchAllocationRequest,
    use_case: BranchAllocationUseCase = Depends(BranchAllocationUseCase.depends),
) -> List[SeatResponse]:
    seats = await use_case.release_branch(branch=request.branch, room_id=request.room_id)
    return [SeatResponse.from_entity(seat) for seat in seats]


@router.get('/eligible-branches', status_code=status.HTTP_200_OK)
@Logger.io
async def eligible_branches(
    room_id: Optional[str] = None,
    building_id: Optional[str] = None,
    use_case: AllocationQueryUseCase = Depends(AllocationQueryUseCase.depends),
) -> List[str]:
    return await use_case.eligible_branches(room_id=room_id, building_id=building_id)


@router.get('', status_code=status.HTTP_200_OK)
@Logger.io
async def list_allocations(
    student_id: Optional[str] = None,
    room_id: Optional[str] = None,
    use_case: AllocationQueryUseCase = Depends(AllocationQueryUseCase.depends),
) -> List[SeatAllocationResponse]:
    allocations = await use_case.list_allocations(student_id=student_id, room_id=room_id)
    return [SeatAllocationResponse.from_allocation(a) for a in allocations]
