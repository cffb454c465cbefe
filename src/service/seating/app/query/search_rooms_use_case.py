from datetime import datetime, timezone
from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.seating.app.interface.i_record_store import IRecordStore
from src.service.seating.domain import room_recommendation
from src.service.seating.domain.enum.record_kind import RecordKind
from src.service.seating.domain.room_recommendation import RoomRecommendation
from src.service.seating.domain.value_object.room_search_criteria import RoomSearchCriteria


class SearchRoomsUseCase:
    """Rooms big enough for the request, best recommendation first."""

    def __init__(self, *, record_store: IRecordStore) -> None:
        self.record_store = record_store
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls, record_store: IRecordStore = Depends(Provide[Container.record_store])
    ) -> Self:
        return cls(record_store=record_store)

    @Logger.io
    async def search_rooms(self, *, criteria: RoomSearchCriteria) -> list[RoomRecommendation]:
        now = datetime.now(timezone.utc)
        with self.tracer.start_as_current_span(
            'use_case.search_rooms', attributes={'search.capacity': criteria.capacity}
        ):
            rooms = await self.record_store.list_records(kind=RecordKind.ROOM)
            recommendations = []
            for room in rooms:
                if room.capacity < criteria.capacity:
                    continue
                calendar = await self.record_store.get(kind=RecordKind.CALENDAR, record_id=room.id)
                available = calendar is None or calendar.is_free(
                    start_time=criteria.start_time, end_time=criteria.end_time, now=now
                )
                recommendations.append(
                    room_recommendation.recommend(
                        room=room,
                        required_capacity=criteria.capacity,
                        available=available,
                        location=criteria.location,
                    )
                )
            return room_recommendation.rank(recommendations)
