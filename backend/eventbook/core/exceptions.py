"""
Domain errors raised by the booking manager and the stores behind it.

Each error carries the HTTP status it maps to and a stable machine-readable
code. The exception handler in main.py renders them as
{"detail": ..., "code": ...}.
"""

from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "booking_error"
    default_message: str = "Booking operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Conflicting request"


class DuplicateEnrollment(Conflict):
    default_message = "You are already enrolled in this event"


class CapacityExceeded(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"
    default_message = "No available slots for this event"


class AlreadyCancelled(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


class CancellationWindowClosed(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "cancellation_window_closed"
    default_message = "Cancellation is closed for this event"


class StoreUnavailable(BookingError):
    """Transient storage failure. Surfaced unchanged; never retried here."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"
    default_message = "Storage backend unavailable, please retry later"
