from enum import StrEnum


class SeatFeature(StrEnum):
    # Stored on the seat
    WHEELCHAIR_ACCESS = 'wheelchair_access'
    NEAR_EXIT = 'near_exit'

    # Derived from (row, col) and the room layout every time matching runs
    FRONT_ROW = 'front_row'
    BACK_ROW = 'back_row'
    AISLE = 'aisle'
    MIDDLE_OF_ROW = 'middle_of_row'


GEOMETRIC_FEATURES = frozenset(
    {SeatFeature.FRONT_ROW, SeatFeature.BACK_ROW, SeatFeature.AISLE, SeatFeature.MIDDLE_OF_ROW}
)

# Features few seats have; seats carrying them are kept for requesters who need them
SCARCE_FEATURES = frozenset({SeatFeature.WHEELCHAIR_ACCESS, SeatFeature.NEAR_EXIT})
