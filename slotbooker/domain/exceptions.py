"""
Domain-specific exception hierarchy for the slot booker application.

Orchestrator-level errors (``BookingError`` and its subclasses) are what a
caller ever sees inside a result object. Store and gateway errors are raised by
adapters and mapped onto the booking taxonomy at the orchestrator boundary.
"""

from typing import Dict, List


class SlotbookerError(Exception):
    """Base class for all application-level errors."""


# --- Booking taxonomy -------------------------------------------------------

class BookingError(SlotbookerError):
    """A booking attempt failed; nothing was left behind."""


class ValidationError(BookingError):
    """User-correctable input problem."""

    def __init__(self, message: str, field_errors: Dict[str, List[str]] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class BlockedDayError(BookingError):
    """The requested date is closed for booking."""


class SlotConflictError(BookingError):
    """Another booking already holds the requested (date, time)."""


class NotificationError(BookingError):
    """Confirmation emails failed; the reservation was rolled back."""


class CalendarError(BookingError):
    """Calendar event creation failed; the reservation was rolled back."""


class RollbackFailure(BookingError):
    """
    Compensation failed after a partial booking.

    The reservation row may still exist while the caller was told the booking
    failed. Requires operator attention.
    """

    def __init__(self, message: str, appointment_id: int | None = None):
        super().__init__(message)
        self.appointment_id = appointment_id


# --- Store errors -----------------------------------------------------------

class StoreError(SlotbookerError):
    """Raised when the persistent store cannot complete an operation."""


class DuplicateSlotError(StoreError):
    """The store rejected an insert because (date, time) is already taken."""


class AppointmentNotFoundError(StoreError):
    """No appointment matches the given id (and ownership filter)."""


# --- Gateway errors ---------------------------------------------------------

class GatewayError(SlotbookerError):
    """Raised when an external notification system call fails."""


class MailDeliveryError(GatewayError):
    """Raised when an email cannot be sent."""


class CalendarSyncError(GatewayError):
    """Raised when a calendar event cannot be created or deleted."""


class AuthenticationError(GatewayError):
    """Raised when authentication or token handling fails."""
