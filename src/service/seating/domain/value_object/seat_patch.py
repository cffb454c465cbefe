from typing import Optional

import attrs

from src.service.seating.domain.enum.seat_status import SeatStatus


@attrs.define(frozen=True)
class SeatPatch:
    """Administrative edit of a seat. `None` leaves the field unchanged."""

    status: Optional[SeatStatus] = None
    student_id: Optional[str] = None
    features: Optional[frozenset[str]] = attrs.field(
        default=None, converter=attrs.converters.optional(frozenset)
    )
    label: Optional[str] = None
