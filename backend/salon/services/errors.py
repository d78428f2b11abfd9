"""
backend/salon/services/errors.py

Error taxonomy for the booking engine.

Domain errors (BookingError subclasses) are caller-correctable and carry
the HTTP status and a stable code the API renders. Infrastructure errors
(StorageError, LockUnavailableError) are opaque to callers.
ExternalSyncError never leaves the calendar-sync consumer.
"""


class SalonError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ── Domain ───────────────────────────────────────────────────────────────


class BookingError(SalonError):
    status_code = 400
    code = "booking_error"
    default_message = "Booking request rejected"


class ValidationError(BookingError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid input"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class UnauthorizedError(BookingError):
    status_code = 403
    code = "unauthorized"
    default_message = "Only the booking owner or an admin can do this"


class ServiceNotOfferedError(BookingError):
    status_code = 422
    code = "service_not_offered"
    default_message = "This hairdresser does not provide the selected service"


class SlotUnavailableError(BookingError):
    status_code = 409
    code = "slot_unavailable"
    default_message = "This time slot is no longer available"

    def __init__(self, message: str | None = None, conflicts: list | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class InvalidStatusTransitionError(BookingError):
    status_code = 409
    code = "invalid_status_transition"
    default_message = "Booking is no longer active"


class AlreadyCancelledError(InvalidStatusTransitionError):
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


class CannotRescheduleCancelledError(InvalidStatusTransitionError):
    code = "cannot_reschedule_cancelled"
    default_message = "Cannot reschedule a cancelled booking"


class PastDateError(BookingError):
    status_code = 422
    code = "past_date"
    default_message = "Cannot reschedule to a past date"


# ── Infrastructure ───────────────────────────────────────────────────────


class StorageError(SalonError):
    status_code = 503
    code = "storage_unavailable"
    default_message = "Storage is unavailable, try again later"


class LockUnavailableError(SalonError):
    status_code = 503
    code = "busy"
    default_message = "Hairdresser schedule is busy, try again"


class ExternalSyncError(SalonError):
    status_code = 502
    code = "external_sync_failed"
    default_message = "Calendar sync failed"
