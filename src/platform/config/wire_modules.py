"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.seating.app.command import (
    branch_allocation_use_case,
    cancel_room_booking_use_case,
    claim_best_seat_use_case,
    create_room_booking_use_case,
    provision_room_use_case,
    register_student_use_case,
    run_allocation_use_case,
    run_rebalance_use_case,
    search_and_claim_use_case,
    write_seat_use_case,
)
from src.service.seating.app.query import (
    allocation_query_use_case,
    booking_query_use_case,
    get_student_use_case,
    search_rooms_use_case,
    seat_query_use_case,
    stream_scope_use_case,
)


WIRE_MODULES: list[ModuleType] = [
    write_seat_use_case,
    claim_best_seat_use_case,
    run_allocation_use_case,
    run_rebalance_use_case,
    provision_room_use_case,
    register_student_use_case,
    create_room_booking_use_case,
    search_and_claim_use_case,
    cancel_room_booking_use_case,
    seat_query_use_case,
    get_student_use_case,
    search_rooms_use_case,
    booking_query_use_case,
    branch_allocation_use_case,
    allocation_query_use_case,
    stream_scope_use_case,
]
