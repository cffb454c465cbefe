from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.seating.app.command.provision_room_use_case import ProvisionRoomUseCase
from src.service.seating.app.command.register_student_use_case import RegisterStudentUseCase
from src.service.seating.app.query.get_student_use_case import GetStudentUseCase
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.student_entity import Student
from src.service.seating.driving_adapter.schema.room_schema import (
    RoomCreateRequest,
    RoomResponse,
    RoomWithSeatsResponse,
    StudentCreateRequest,
    StudentResponse,
)
from src.service.seating.driving_adapter.schema.seat_schema import SeatResponse


router = APIRouter()


@router.post('/rooms', status_code=status.HTTP_201_CREATED)
@Logger.io
async def provision_room(
    request: RoomCreateRequest,
    use_case: ProvisionRoomUseCase = Depends(ProvisionRoomUseCase.depends),
) -> RoomWithSeatsResponse:
    room, seats = await use_case.provision_room(
        room=Room(
            id=request.id,
            name=request.name,
            building_id=request.building_id,
            block_id=request.block_id,
            floor_id=request.floor_id,
            rows=request.rows,
            cols=request.cols,
            capacity=request.capacity,
            aisle_after_cols=request.aisle_after_cols,
        ),
        unused_cells=request.unused_cells,
        seat_features=request.seat_features,
    )
    return RoomWithSeatsResponse(
        **RoomResponse.from_entity(room).model_dump(),
        seats=[SeatResponse.from_entity(seat) for seat in seats],
    )


@router.post('/students', status_code=status.HTTP_201_CREATED)
@Logger.io
async def register_student(
    request: StudentCreateRequest,
    use_case: RegisterStudentUseCase = Depends(RegisterStudentUseCase.depends),
) -> StudentResponse:
    student = await use_case.register_student(
        student=Student(
            id=request.id,
            name=request.name,
            branch=request.branch,
            accessibility_needs=request.accessibility_needs,
            tags=request.tags,
            preferences=request.preferences,
        )
    )
    return StudentResponse.from_entity(student)


@router.get('/students/{student_id}', status_code=status.HTTP_200_OK)
@Logger.io
async def get_student(
    student_id: str,
    use_case: GetStudentUseCase = Depends(GetStudentUseCase.depends),
) -> StudentResponse:
    seating = await use_case.get_student(student_id=student_id)
    return StudentResponse.from_entity(
        seating.student, seats=[SeatResponse.from_entity(seat) for seat in seating.seats]
    )
