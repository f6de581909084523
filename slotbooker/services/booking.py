"""
Booking saga: reserve the slot, notify, create the calendar event.

Each step gates the next. Any failure after the reservation exists is
compensated by deleting the row before the request returns, so the caller is
told "success" only when the reservation and both external effects exist.
The one exception is a failed compensation, reported as ``RollbackFailure``.

No in-process locking happens here. The store's uniqueness constraint is the
only arbiter between concurrent requests for the same slot.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..domain.exceptions import (
    AppointmentNotFoundError,
    BlockedDayError,
    BookingError,
    CalendarError,
    DuplicateSlotError,
    NotificationError,
    RollbackFailure,
    SlotConflictError,
    ValidationError,
)
from ..domain.availability import DEFAULT_GRANULARITY_MINUTES
from ..domain.models import Appointment, BookingOutcome, BookingResult
from . import email_templates
from .availability_service import AvailabilityService, Clock
from .protocols import (
    AdminConfigStoreProtocol,
    CalendarGatewayProtocol,
    NotificationGatewayProtocol,
    SlotStoreProtocol,
)
from .requests import BookingRequest

logger = logging.getLogger(__name__)

MSG_BLOCKED = "This day is unavailable for booking. Please choose another date."
MSG_CONFLICT = "This time slot is already booked. Please choose another time."
MSG_NOTIFICATION = "An error occurred: Failed to send confirmation emails. Please try again."
MSG_CALENDAR = "An error occurred: Failed to create calendar event. Please try again."
MSG_ROLLBACK = (
    "A critical server error occurred and we could not fully save your booking. "
    "Please contact us directly."
)
MSG_STORE = "An error occurred: The booking could not be saved. Please try again."
MSG_NOT_OFFERED = "This time is not offered for booking. Please choose one of the available slots."

_OUTCOMES = {
    ValidationError: BookingOutcome.VALIDATION_ERROR,
    BlockedDayError: BookingOutcome.BLOCKED_DAY,
    SlotConflictError: BookingOutcome.SLOT_CONFLICT,
    NotificationError: BookingOutcome.NOTIFICATION_ERROR,
    CalendarError: BookingOutcome.CALENDAR_ERROR,
    RollbackFailure: BookingOutcome.ROLLBACK_FAILURE,
}


class BookingOrchestrator:
    """
    Runs the booking saga against injected collaborators.

    The orchestrator holds no state between requests and may be shared by any
    number of concurrent callers.
    """

    def __init__(
        self,
        slot_store: SlotStoreProtocol,
        config_store: AdminConfigStoreProtocol,
        mailer: NotificationGatewayProtocol,
        calendar: CalendarGatewayProtocol,
        admin_email: Optional[str] = None,
        business_name: str = "our shop",
        timezone: str = "Europe/Berlin",
        clock: Clock | None = None,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
    ) -> None:
        self._slot_store = slot_store
        self._config_store = config_store
        self._mailer = mailer
        self._calendar = calendar
        self._admin_email = admin_email or None
        self._business_name = business_name
        self._availability = AvailabilityService(
            slot_store,
            config_store,
            timezone=timezone,
            clock=clock,
            granularity_minutes=granularity_minutes,
        )

    def book(self, data: Mapping[str, Any] | BookingRequest) -> BookingResult:
        """
        Book one slot and report a structured result.

        Accepts either raw input (validated here) or an already validated
        ``BookingRequest``. Never raises for booking failures.
        """
        try:
            request = data if isinstance(data, BookingRequest) else BookingRequest.parse(data)
            appointment = self._run(request)
        except BookingError as exc:
            return self._failure(exc)

        return BookingResult(
            outcome=BookingOutcome.CONFIRMED,
            message=(
                f"Success! Your appointment is confirmed for "
                f"{appointment.display_date()} at {appointment.display_time()}."
            ),
            appointment=appointment,
        )

    def _run(self, request: BookingRequest) -> Appointment:
        self._ensure_not_blocked(request)
        self._ensure_offered(request)
        appointment = self._reserve(request)

        try:
            self._notify(appointment)
        except Exception as exc:
            logger.error(
                "Confirmation emails failed for appointment %s: %s", appointment.id, exc
            )
            self._compensate(appointment)
            raise NotificationError("Failed to send confirmation emails.") from exc

        try:
            event_id = self._calendar.create_event(appointment)
        except Exception as exc:
            logger.error(
                "Calendar event creation failed for appointment %s: %s", appointment.id, exc
            )
            self._compensate(appointment)
            raise CalendarError("Failed to create calendar event.") from exc

        return self._record_event_id(appointment, event_id)

    def _ensure_not_blocked(self, request: BookingRequest) -> None:
        # Authoritative re-check; the availability the caller saw is advisory
        try:
            blocked = self._config_store.is_blocked_day(request.date)
        except Exception as exc:
            logger.exception("Could not read blocked days for %s", request.date)
            raise BookingError("Database error while checking for blocked days.") from exc

        if blocked:
            raise BlockedDayError(f"{request.date.isoformat()} is blocked")

    def _ensure_offered(self, request: BookingRequest) -> None:
        # Past, closed, out-of-window and off-grid times are never reservable
        try:
            offered = self._availability.is_offered(request.date, request.time)
        except Exception as exc:
            logger.exception("Could not read the schedule for %s", request.date)
            raise BookingError("Database error while checking the schedule.") from exc

        if not offered:
            raise ValidationError(
                "Validation failed. Please check your input.",
                field_errors={"time": [MSG_NOT_OFFERED]},
            )

    def _reserve(self, request: BookingRequest) -> Appointment:
        candidate = Appointment(
            customer_name=request.name,
            email=request.email,
            date=request.date,
            time=request.time,
            service=request.service,
        )

        try:
            appointment = self._slot_store.insert(candidate)
        except DuplicateSlotError as exc:
            logger.info("Slot %s %s already taken", request.date, request.time)
            raise SlotConflictError(str(exc)) from exc
        except Exception as exc:
            logger.exception("Failed to insert appointment for %s %s", request.date, request.time)
            raise BookingError("Failed to create the appointment in the database.") from exc

        logger.info(
            "Reserved appointment %s for %s %s", appointment.id, appointment.date, appointment.time
        )
        return appointment

    def _notify(self, appointment: Appointment) -> None:
        if self._admin_email:
            self._mailer.send(
                self._admin_email,
                email_templates.ADMIN_NOTIFICATION_SUBJECT,
                email_templates.admin_notification_html(appointment),
            )
        else:
            logger.warning("No admin email configured; skipping admin notification")

        self._mailer.send(
            appointment.email,
            email_templates.CUSTOMER_CONFIRMATION_SUBJECT,
            email_templates.customer_confirmation_html(appointment, self._business_name),
        )

    def _compensate(self, appointment: Appointment) -> None:
        """Delete the reservation made by this saga."""
        logger.warning("Rolling back appointment %s", appointment.id)
        try:
            self._slot_store.delete(appointment.id)
        except AppointmentNotFoundError:
            # Already removed elsewhere, e.g. an admin cancellation; nothing is left behind
            logger.warning("Appointment %s was already gone during rollback", appointment.id)
        except Exception as exc:
            logger.critical(
                "FAILED TO ROLL BACK appointment %s (%s %s). Manual intervention required: %s",
                appointment.id,
                appointment.date,
                appointment.time,
                exc,
            )
            raise RollbackFailure(
                "Compensation failed; reservation may still exist.",
                appointment_id=appointment.id,
            ) from exc

    def _record_event_id(self, appointment: Appointment, event_id: str) -> Appointment:
        # The booking already succeeded; a lost event id only hampers cleanup later
        try:
            self._slot_store.set_event_id(appointment.id, event_id)
        except Exception:
            logger.exception(
                "Could not store calendar event %s on appointment %s", event_id, appointment.id
            )
        return appointment.with_event_id(event_id)

    @staticmethod
    def _failure(error: BookingError) -> BookingResult:
        outcome = _OUTCOMES.get(type(error), BookingOutcome.ERROR)
        messages = {
            BookingOutcome.VALIDATION_ERROR: str(error),
            BookingOutcome.BLOCKED_DAY: MSG_BLOCKED,
            BookingOutcome.SLOT_CONFLICT: MSG_CONFLICT,
            BookingOutcome.NOTIFICATION_ERROR: MSG_NOTIFICATION,
            BookingOutcome.CALENDAR_ERROR: MSG_CALENDAR,
            BookingOutcome.ROLLBACK_FAILURE: MSG_ROLLBACK,
        }
        field_errors = error.field_errors if isinstance(error, ValidationError) else {}
        return BookingResult(
            outcome=outcome,
            message=messages.get(outcome, MSG_STORE),
            error=error,
            field_errors=field_errors,
        )
