from datetime import datetime
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError


@attrs.define(frozen=True)
class LocationRef:
    """Point in the block > building > floor hierarchy, used for proximity."""

    block_id: Optional[str] = None
    building_id: Optional[str] = None
    floor_id: Optional[str] = None


@attrs.define(frozen=True)
class RoomSearchCriteria:
    capacity: int
    start_time: datetime
    end_time: datetime
    teacher_id: str
    branch: str
    location: Optional[LocationRef] = None

    def __attrs_post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise DomainError('End time must be after start time')
        if self.capacity < 1:
            raise DomainError('Capacity must be at least 1')
