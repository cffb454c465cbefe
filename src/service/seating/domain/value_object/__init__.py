"""Seating Domain Value Objects"""

from src.service.seating.domain.value_object.allocation_outcome import (
    AllocationOutcome,
    AllocationSummary,
    OutcomeKind,
    RebalanceSummary,
)
from src.service.seating.domain.value_object.cas_result import CasResult
from src.service.seating.domain.value_object.room_search_criteria import (
    LocationRef,
    RoomSearchCriteria,
)
from src.service.seating.domain.value_object.scope import GLOBAL_SCOPE_KEY, Scope
from src.service.seating.domain.value_object.seat_patch import SeatPatch

__all__ = [
    'AllocationOutcome',
    'AllocationSummary',
    'CasResult',
    'GLOBAL_SCOPE_KEY',
    'LocationRef',
    'OutcomeKind',
    'RebalanceSummary',
    'RoomSearchCriteria',
    'Scope',
    'SeatPatch',
]
