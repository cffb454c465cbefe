from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel

from src.service.seating.app.dto.booking_view import BookingView
from src.service.seating.domain.room_recommendation import RoomRecommendation
from src.service.seating.driving_adapter.schema.room_schema import RoomResponse


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


UtcDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class RoomSearchRequest(BaseModel):
    capacity: int
    start_time: UtcDateTime
    end_time: UtcDateTime
    teacher_id: str
    branch: str
    # Current location of the requester, for proximity
    block_id: Optional[str] = None
    building_id: Optional[str] = None
    floor_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            'example': {
                'capacity': 30,
                'start_time': '2026-11-02T09:00:00Z',
                'end_time': '2026-11-02T10:00:00Z',
                'teacher_id': 'T042',
                'branch': 'CSE',
                'building_id': 'B1',
                'floor_id': 'B1-F1',
            }
        }


class RoomBookingCreateRequest(BaseModel):
    room_id: str
    teacher_id: str
    branch: str
    capacity: int
    start_time: UtcDateTime
    end_time: UtcDateTime


class BookingCancelRequest(BaseModel):
    expected_version: int


class RoomRecommendationResponse(BaseModel):
    room: RoomResponse
    available: bool
    proximity: Optional[str] = None
    score: int

    @classmethod
    def from_recommendation(cls, rec: RoomRecommendation) -> 'RoomRecommendationResponse':
        return cls(
            room=RoomResponse.from_entity(rec.room),
            available=rec.available,
            proximity=rec.proximity.name.lower() if rec.proximity is not None else None,
            score=rec.score,
        )


class RoomBookingResponse(BaseModel):
    id: str
    room_id: str
    teacher_id: str
    branch: str
    capacity: int
    start_time: datetime
    end_time: datetime
    status: str
    version: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: BookingView) -> 'RoomBookingResponse':
        booking = view.booking
        return cls(
            id=booking.id,
            room_id=booking.room_id,
            teacher_id=booking.teacher_id,
            branch=booking.branch,
            capacity=booking.capacity,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=view.status.value,
            version=booking.version,
            created_at=booking.created_at,
        )


class RoomSearchResponse(BaseModel):
    recommendations: List[RoomRecommendationResponse]
