"""Custom application exceptions."""

from datetime import date


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class LeadTimeViolation(BadRequestException):
    """Booking requested for a date earlier than the minimum lead time allows."""

    def __init__(self, minimum_date: date):
        """Initialize with the earliest date that can be booked."""
        self.minimum_date = minimum_date
        super().__init__(
            f"Appointment date is too soon. "
            f"The earliest available date is {minimum_date.isoformat()}."
        )


class SlotConflict(ConflictException):
    """An active appointment already occupies the requested date and time."""

    def __init__(self, preferred_date: date, preferred_time: str):
        """Initialize with the offending slot."""
        self.preferred_date = preferred_date
        self.preferred_time = preferred_time
        super().__init__(
            f"This time slot ({preferred_time} on {preferred_date.isoformat()}) is already "
            f"booked. Please choose a different time."
        )


class DateBlocked(ConflictException):
    """The requested date falls inside an active blocked time range."""

    def __init__(self, blocked_date: date, reason: str | None = None):
        """Initialize with the blocked date and the range's reason."""
        self.blocked_date = blocked_date
        self.reason = reason
        message = f"The clinic is not accepting appointments on {blocked_date.isoformat()}"
        if reason:
            message += f" ({reason})"
        super().__init__(message + ".")


class InvalidStatusTransition(ConflictException):
    """Status change not allowed while strict transitions are enabled."""

    def __init__(self, old_status: str, new_status: str):
        """Initialize with both ends of the rejected transition."""
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(f"Cannot change appointment status from {old_status} to {new_status}")


class DuplicateNotification(ConflictException):
    """A notification already exists for the same source, entity and type."""

    def __init__(self, message: str = "Notification already exists"):
        """Initialize with 409 status code."""
        super().__init__(message)
