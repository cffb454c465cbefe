from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.cancel_room_booking_use_case import CancelRoomBookingUseCase
from src.service.seating.app.command.create_room_booking_use_case import CreateRoomBookingUseCase
from src.service.seating.app.command.search_and_claim_use_case import SearchAndClaimUseCase
from src.service.seating.app.dto.booking_view import BookingView
from src.service.seating.app.query.booking_query_use_case import BookingQueryUseCase
from src.service.seating.app.query.search_rooms_use_case import SearchRoomsUseCase
from src.service.seating.domain.entity.booking_entity import RoomBooking
from src.service.seating.domain.value_object.room_search_criteria import (
    LocationRef,
    RoomSearchCriteria,
)
from src.service.seating.driving_adapter.schema.booking_schema import (
    BookingCancelRequest,
    RoomBookingCreateRequest,
    RoomBookingResponse,
    RoomRecommendationResponse,
    RoomSearchRequest,
    RoomSearchResponse,
)


router = APIRouter()


def _criteria(request: RoomSearchRequest) -> RoomSearchCriteria:
    location = None
    if request.block_id or request.building_id or request.floor_id:
        location = LocationRef(
            block_id=request.block_id,
            building_id=request.building_id,
            floor_id=request.floor_id,
        )
    return RoomSearchCriteria(
        capacity=request.capacity,
        start_time=request.start_time,
        end_time=request.end_time,
        teacher_id=request.teacher_id,
        branch=request.branch,
        location=location,
    )


def _response(booking: RoomBooking) -> RoomBookingResponse:
    view = BookingView(booking=booking, status=booking.status_at(datetime.now(timezone.utc)))
    return RoomBookingResponse.from_view(view)


@router.post('/bookings/search', status_code=status.HTTP_200_OK)
@Logger.io
async def search_rooms(
    request: RoomSearchRequest,
    use_case: SearchRoomsUseCase = Depends(SearchRoomsUseCase.depends),
) -> RoomSearchResponse:
    recommendations = await use_case.search_rooms(criteria=_criteria(request))
    return RoomSearchResponse(
        recommendations=[RoomRecommendationResponse.from_recommendation(r) for r in recommendations]
    )


@router.post('/bookings', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_booking(
    request: RoomBookingCreateRequest,
    use_case: CreateRoomBookingUseCase = Depends(CreateRoomBookingUseCase.depends),
) -> RoomBookingResponse:
    booking = await use_case.create_booking(
        room_id=request.room_id,
        teacher_id=request.teacher_id,
        branch=request.branch,
        capacity=request.capacity,
        start_time=request.start_time,
        end_time=request.end_time,
    )
    return _response(booking)


@router.post('/bookings/search-and-claim', status_code=status.HTTP_201_CREATED)
@Logger.io
async def search_and_claim(
    request: RoomSearchRequest,
    use_case: SearchAndClaimUseCase = Depends(SearchAndClaimUseCase.depends),
) -> RoomBookingResponse:
    booking = await use_case.search_and_claim(criteria=_criteria(request))
    return _response(booking)


@router.patch('/bookings/{booking_id}/cancel', status_code=status.HTTP_200_OK)
@Logger.io
async def cancel_booking(
    booking_id: str,
    request: BookingCancelRequest,
    use_case: CancelRoomBookingUseCase = Depends(CancelRoomBookingUseCase.depends),
) -> RoomBookingResponse:
    booking = await use_case.cancel_booking(
        booking_id=booking_id, expected_version=request.expected_version
    )
    return _response(booking)


@router.get('/bookings/{booking_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_booking(
    booking_id: str,
    use_case: BookingQueryUseCase = Depends(BookingQueryUseCase.depends),
) -> RoomBookingResponse:
    view = await use_case.get_booking(booking_id=booking_id)
    return RoomBookingResponse.from_view(view)


@router.get('/rooms/{room_id}/bookings', status_code=status.HTTP_200_OK)
@Logger.io
async def list_room_bookings(
    room_id: str,
    use_case: BookingQueryUseCase = Depends(BookingQueryUseCase.depends),
) -> List[RoomBookingResponse]:
    views = await use_case.list_room_bookings(room_id=room_id)
    return [RoomBookingResponse.from_view(view) for view in views]
