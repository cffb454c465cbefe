from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.driving_adapter.schema.seat_schema import SeatResponse


class RoomCreateRequest(BaseModel):
    id: str
    name: str
    building_id: str
    block_id: Optional[str] = None
    floor_id: Optional[str] = None
    rows: int
    cols: int
    capacity: int
    aisle_after_cols: List[int] = []
    unused_cells: List[Tuple[int, int]] = []  # (row, col) without a seat
    seat_features: Dict[str, List[str]] = {}  # by seat label

    class Config:
        json_schema_extra = {
            'example': {
                'id': 'R101',
                'name': 'Lecture Hall 101',
                'building_id': 'B1',
                'block_id': 'NORTH',
                'floor_id': 'B1-F1',
                'rows': 5,
                'cols': 8,
                'capacity': 38,
                'aisle_after_cols': [3],
                'unused_cells': [[4, 6], [4, 7]],
                'seat_features': {'A1': ['wheelchair_access'], 'E1': ['near_exit']},
            }
        }


class RoomResponse(BaseModel):
    id: str
    name: str
    building_id: str
    block_id: Optional[str] = None
    floor_id: Optional[str] = None
    rows: int
    cols: int
    capacity: int
    aisle_after_cols: List[int] = []

    @classmethod
    def from_entity(cls, room: Room) -> 'RoomResponse':
        return cls(
            id=room.id,
            name=room.name,
            building_id=room.building_id,
            block_id=room.block_id,
            floor_id=room.floor_id,
            rows=room.rows,
            cols=room.cols,
            capacity=room.capacity,
            aisle_after_cols=list(room.aisle_after_cols),
        )


class RoomWithSeatsResponse(RoomResponse):
    seats: List[SeatResponse]


class StudentCreateRequest(BaseModel):
    id: str
    name: str
    branch: str
    accessibility_needs: List[str] = []
    tags: List[str] = []
    preferences: List[str] = []

    class Config:
        json_schema_extra = {
            'example': {
                'id': 'S001',
                'name': 'Ada',
                'branch': 'CSE',
                'accessibility_needs': ['wheelchair_access'],
                'tags': ['2026-cohort'],
                'preferences': ['front_row'],
            }
        }


class StudentResponse(BaseModel):
    id: str
    name: str
    branch: str
    accessibility_needs: List[str]
    tags: List[str]
    preferences: List[str]
    seats: List[SeatResponse] = []

    @classmethod
    def from_entity(
        cls, student: Student, seats: Optional[List[SeatResponse]] = None
    ) -> 'StudentResponse':
        return cls(
            id=student.id,
            name=student.name,
            branch=student.branch,
            accessibility_needs=sorted(student.accessibility_needs),
            tags=sorted(student.tags),
            preferences=sorted(student.preferences),
            seats=seats or [],
        )
