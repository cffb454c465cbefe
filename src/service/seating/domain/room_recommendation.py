"""
Room Recommendation
Ranks rooms for a booking request by capacity fit, availability and proximity.
"""

from enum import IntEnum
from typing import Optional

import attrs

from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.value_object.room_search_criteria import LocationRef


CAPACITY_FIT_MAX = 40
CAPACITY_EXCESS_PENALTY = 2
AVAILABILITY_SCORE = 30


class Proximity(IntEnum):
    """Value is the score contribution; a closer room always scores higher."""

    CROSS_BLOCK = 0
    SAME_BLOCK = 10
    SAME_BUILDING = 20
    SAME_FLOOR = 30


@attrs.define(frozen=True)
class RoomRecommendation:
    room: Room
    available: bool
    proximity: Optional[Proximity]
    score: int


def proximity_of(room: Room, location: Optional[LocationRef]) -> Optional[Proximity]:
    if location is None:
        return None
    if location.building_id and room.building_id == location.building_id:
        if location.floor_id and room.floor_id == location.floor_id:
            return Proximity.SAME_FLOOR
        return Proximity.SAME_BUILDING
    if location.block_id and room.block_id == location.block_id:
        return Proximity.SAME_BLOCK
    return Proximity.CROSS_BLOCK


def capacity_fit(room: Room, required: int) -> int:
    excess = room.capacity - required
    return max(0, CAPACITY_FIT_MAX - CAPACITY_EXCESS_PENALTY * excess)


def recommend(
    *, room: Room, required_capacity: int, available: bool, location: Optional[LocationRef]
) -> RoomRecommendation:
    proximity = proximity_of(room, location)
    score = capacity_fit(room, required_capacity)
    if available:
        score += AVAILABILITY_SCORE
    if proximity is not None:
        score += int(proximity)
    return RoomRecommendation(room=room, available=available, proximity=proximity, score=score)


def rank(recommendations: list[RoomRecommendation]) -> list[RoomRecommendation]:
    return sorted(recommendations, key=lambda r: (-r.score, r.room.id))
