from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from src.service.seating.domain.entity.seat_entity import Seat


class SeatResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'id': 'R101-A1',
                'room_id': 'R101',
                'label': 'A1',
                'row': 0,
                'col': 0,
                'status': 'Allocated',
                'student_id': 'S001',
                'features': ['near_exit'],
                'version': 4,
            }
        }
    )

    id: str
    room_id: str
    label: str
    row: int
    col: int
    status: str
    student_id: Optional[str] = None
    features: List[str] = []
    version: int

    @classmethod
    def from_entity(cls, seat: Seat) -> 'SeatResponse':
        return cls(
            id=seat.id,
            room_id=seat.room_id,
            label=seat.label,
            row=seat.row,
            col=seat.col,
            status=seat.status.value,
            student_id=seat.student_id,
            features=sorted(seat.features),
            version=seat.version,
        )


class SeatWriteRequest(BaseModel):
    expected_version: int
    status: Optional[Literal['Available', 'Allocated', 'Broken']] = None
    student_id: Optional[str] = None
    features: Optional[List[str]] = None
    label: Optional[str] = None

    class Config:
        json_schema_extra = {
            'examples': [
                {'expected_version': 3, 'status': 'Broken'},
                {'expected_version': 0, 'student_id': 'S001'},
                {'expected_version': 2, 'features': ['wheelchair_access']},
            ]
        }


class SeatClaimRequest(BaseModel):
    student_id: str
    hard: List[str] = []  # on top of the student's accessibility needs
    soft: List[str] = []  # on top of the student's preferences

    class Config:
        json_schema_extra = {'example': {'student_id': 'S001', 'soft': ['front_row']}}
