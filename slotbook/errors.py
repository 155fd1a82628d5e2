# slotbook/errors.py
"""
Domain errors raised by the booking core.

All of them are expected, recoverable conditions: the HTTP layer turns them
into 4xx responses carrying ``message`` verbatim. Store failures (connection,
disk) are not wrapped here and propagate as they are.
"""

from typing import Optional


class BookingError(Exception):
    status_code = 400
    code = "booking_error"
    message = "The booking operation could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidTransition(BookingError):
    status_code = 409
    code = "invalid_transition"
    message = "The appointment's current status does not allow this operation"

    def __init__(self, current: str, event: str, message: Optional[str] = None):
        self.current = current
        self.event = event
        super().__init__(message or f"Cannot {event} an appointment that is {current}")


class ConflictError(BookingError):
    status_code = 409
    code = "reschedule_in_progress"
    message = "A reschedule is already in progress"


class InvalidSlotError(BookingError):
    status_code = 409
    code = "slot_unavailable"
    message = "This time is no longer available"


class AlreadyResolvedError(BookingError):
    status_code = 409
    code = "already_resolved"
    message = "This request has already been handled"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class PermissionDeniedError(BookingError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden"


class ValidationError(BookingError):
    status_code = 422
    code = "validation_error"
    message = "Invalid input"


class AlreadyRegisteredError(BookingError):
    status_code = 409
    code = "email_taken"
    message = "Email already registered"


class AuthenticationError(BookingError):
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"
