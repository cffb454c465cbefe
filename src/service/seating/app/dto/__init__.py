"""Seating application DTOs"""

from src.service.seating.app.dto.booking_view import BookingView
from src.service.seating.app.dto.seat_allocation import SeatAllocation
from src.service.seating.app.dto.student_seating import StudentSeating

__all__ = ['BookingView', 'SeatAllocation', 'StudentSeating']
