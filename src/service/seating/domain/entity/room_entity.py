from typing import ClassVar, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.seating.domain.enum.record_kind import RecordKind


@attrs.define(frozen=True)
class Room:
    """
    Addressable seat grid of rows x cols, of which `capacity` cells hold seats.

    Rooms are unversioned: administrative edits are rare and happen outside
    the consistency core.
    """

    KIND: ClassVar[RecordKind] = RecordKind.ROOM

    id: str
    name: str
    building_id: str
    rows: int
    cols: int
    capacity: int
    block_id: Optional[str] = None
    floor_id: Optional[str] = None
    # 0-based column indices after which an aisle runs
    aisle_after_cols: tuple[int, ...] = attrs.field(
        factory=tuple, converter=lambda cols: tuple(sorted(set(cols)))
    )

    def __attrs_post_init__(self) -> None:
        if self.rows <= 0 or self.cols <= 0:
            raise DomainError(f'Room {self.id} needs at least one row and one column')
        if not 0 <= self.capacity <= self.rows * self.cols:
            raise DomainError(
                f'Room {self.id} capacity {self.capacity} does not fit a '
                f'{self.rows}x{self.cols} grid'
            )
        if any(not 0 <= col < self.cols - 1 for col in self.aisle_after_cols):
            raise DomainError(f'Room {self.id} has an aisle outside its grid')

    @property
    def parent_id(self) -> str:
        return self.building_id

    def contains(self, *, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def column_groups(self) -> list[tuple[int, int]]:
        """Inclusive (first_col, last_col) spans between walls and aisles."""
        groups = []
        start = 0
        for boundary in self.aisle_after_cols:
            groups.append((start, boundary))
            start = boundary + 1
        groups.append((start, self.cols - 1))
        return groups
