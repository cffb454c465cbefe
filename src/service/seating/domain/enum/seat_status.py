from enum import StrEnum


class SeatStatus(StrEnum):
    AVAILABLE = 'Available'
    ALLOCATED = 'Allocated'
    BROKEN = 'Broken'
