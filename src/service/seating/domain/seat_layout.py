"""
Seat Layout
Geometric seat features derived from (row, col) and the room layout.

Nothing here is stored: a room edit (new aisle, removed first row) changes
what "front" or "aisle" means, so the features are recomputed every time
matching runs.
"""

from collections.abc import Iterable

from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.enum.seat_feature import SeatFeature


class RoomLayout:
    def __init__(self, *, room: Room, seats: Iterable[Seat]) -> None:
        self.room = room
        rows = [seat.row for seat in seats]
        # Unused grid cells do not count: front is the lowest row that has seats
        self.front_row = min(rows) if rows else 0
        self.back_row = max(rows) if rows else room.rows - 1
        self._group_of_col: dict[int, tuple[int, int]] = {}
        for first, last in room.column_groups():
            for col in range(first, last + 1):
                self._group_of_col[col] = (first, last)

    def geometric_features(self, seat: Seat) -> frozenset[str]:
        features = set()
        if seat.row == self.front_row:
            features.add(SeatFeature.FRONT_ROW)
        if seat.row == self.back_row:
            features.add(SeatFeature.BACK_ROW)

        first, last = self._group_of_col.get(seat.col, (seat.col, seat.col))
        if seat.col in (first, last):
            features.add(SeatFeature.AISLE)
        if self._is_middle(seat.col - first, last - first + 1):
            features.add(SeatFeature.MIDDLE_OF_ROW)
        return frozenset(features)

    def features_of(self, seat: Seat) -> frozenset[str]:
        """Stored static features plus the geometric ones."""
        return seat.features | self.geometric_features(seat)

    @staticmethod
    def _is_middle(offset: int, width: int) -> bool:
        # Central third of the group; groups narrower than 3 have no middle
        if width < 3:
            return False
        return abs(2 * offset - (width - 1)) <= width // 3
