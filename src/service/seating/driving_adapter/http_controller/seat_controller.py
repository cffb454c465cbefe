from typing import List

from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.claim_best_seat_use_case import ClaimBestSeatUseCase
from src.service.seating.app.command.write_seat_use_case import WriteSeatUseCase
from src.service.seating.app.query.seat_query_use_case import SeatQueryUseCase
from src.service.seating.domain.enum.seat_status import SeatStatus
from src.service.seating.domain.value_object.seat_patch import SeatPatch
from src.service.seating.driving_adapter.schema.seat_schema import (
    SeatClaimRequest,
    SeatResponse,
    SeatWriteRequest,
)


router = APIRouter()


@router.get('/seats/{seat_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_seat(
    seat_id: str,
    use_case: SeatQueryUseCase = Depends(SeatQueryUseCase.depends),
) -> SeatResponse:
    seat = await use_case.get_seat(seat_id=seat_id)
    return SeatResponse.from_entity(seat)


@router.patch('/seats/{seat_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def write_seat(
    seat_id: str,
    request: SeatWriteRequest,
    use_case: WriteSeatUseCase = Depends(WriteSeatUseCase.depends),
) -> SeatResponse:
    """
    Optimistic write: 409 with the current record when expected_version is stale.
    Retry with currentRecord.version.
    """
    seat = await use_case.write_seat(
        seat_id=seat_id,
        expected_version=request.expected_version,
        patch=SeatPatch(
            status=SeatStatus(request.status) if request.status else None,
            student_id=request.student_id,
            features=request.features,
            label=request.label,
        ),
    )
    return SeatResponse.from_entity(seat)


@router.get('/rooms/{room_id}/seats', status_code=status.HTTP_200_OK)
@Logger.io
async def list_seats(
    room_id: str,
    use_case: SeatQueryUseCase = Depends(SeatQueryUseCase.depends),
) -> List[SeatResponse]:
    seats = await use_case.list_seats(room_id=room_id)
    return [SeatResponse.from_entity(seat) for seat in seats]


@router.post('/rooms/{room_id}/claim', status_code=status.HTTP_200_OK)
@Logger.io
async def claim_seat(
    room_id: str,
    request: SeatClaimRequest,
    use_case: ClaimBestSeatUseCase = Depends(ClaimBestSeatUseCase.depends),
) -> SeatResponse:
    """422 when no seat can satisfy the hard constraints, 503 when contention wins"""
    seat = await use_case.claim_seat(
        room_id=room_id,
        student_id=request.student_id,
        hard=request.hard,
        soft=request.soft,
    )
    return SeatResponse.from_entity(seat)
