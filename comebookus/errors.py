# comebookus/errors.py

"""Domain errors raised by the scheduling layer.

Each error carries the HTTP status and the machine readable code the API
answers with. Storage errors are not wrapped and surface as 500s.
"""


class SchedulingError(Exception):
    status_code = 400
    code = "SCHEDULING_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class InvalidInterval(SchedulingError):
    """Start time must be before end time"""

    status_code = 400
    code = "INVALID_INTERVAL"


class ProviderNotFound(SchedulingError):
    """Provider not found"""

    status_code = 404
    code = "PROVIDER_NOT_FOUND"


class ServiceNotFound(SchedulingError):
    """Service not found"""

    status_code = 404
    code = "SERVICE_NOT_FOUND"


class BookingNotFound(SchedulingError):
    """Booking not found"""

    status_code = 404
    code = "BOOKING_NOT_FOUND"


class SlotTaken(SchedulingError):
    """Time slot is already booked"""

    status_code = 409
    code = "SLOT_TAKEN"


# the name used by callers that think in terms of conflicts
ConflictError = SlotTaken


class InvalidTransition(SchedulingError):
    """Booking cannot move to the requested status"""

    status_code = 409
    code = "INVALID_TRANSITION"


class SchedulerBusy(SchedulingError):
    """Provider calendar is busy, retry shortly"""

    status_code = 503
    code = "BUSY"


class OutsideBookingWindow(SchedulingError):
    """Start time is outside the service's booking window"""

    status_code = 400
    code = "OUTSIDE_BOOKING_WINDOW"
