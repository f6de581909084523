"""
Cancellation flow: verify, delete the reservation, clean up best-effort.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain.exceptions import AppointmentNotFoundError
from ..domain.models import Appointment, CancellationOutcome, CancellationResult
from . import email_templates
from .protocols import CalendarGatewayProtocol, NotificationGatewayProtocol, SlotStoreProtocol

logger = logging.getLogger(__name__)

MSG_CANCELLED = "Appointment cancelled successfully"
MSG_NOT_FOUND = "Unauthorized or Appointment not found"
MSG_FAILED = "Failed to cancel the appointment. Please try again."


class CancellationOrchestrator:
    """
    Cancels appointments for admins and for self-service customers.

    Only the row deletion can fail the operation. Once the row is gone there
    is nothing left to compensate, so calendar and email cleanup failures are
    logged and swallowed into a successful result.
    """

    def __init__(
        self,
        slot_store: SlotStoreProtocol,
        mailer: NotificationGatewayProtocol,
        calendar: CalendarGatewayProtocol,
        business_name: str = "our shop",
    ) -> None:
        self._slot_store = slot_store
        self._mailer = mailer
        self._calendar = calendar
        self._business_name = business_name

    def cancel(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> CancellationResult:
        """
        Cancel one appointment.

        When ``customer_name`` and ``email`` are given the appointment must
        belong to that customer; the same ownership filter is applied to the
        lookup and to the delete.
        """
        if (customer_name is None) != (email is None):
            return CancellationResult(CancellationOutcome.NOT_FOUND, MSG_NOT_FOUND)

        try:
            self._slot_store.get(appointment_id, customer_name=customer_name, email=email)
            appointment = self._slot_store.delete(
                appointment_id, customer_name=customer_name, email=email
            )
        except AppointmentNotFoundError:
            logger.info("No cancellable appointment %s for the given owner", appointment_id)
            return CancellationResult(CancellationOutcome.NOT_FOUND, MSG_NOT_FOUND)
        except Exception:
            logger.exception("Error deleting appointment %s", appointment_id)
            return CancellationResult(CancellationOutcome.FAILED, MSG_FAILED)

        logger.info("Cancelled appointment %s (%s %s)", appointment.id, appointment.date, appointment.time)

        self._delete_calendar_event(appointment)
        self._send_cancellation_notice(appointment)

        return CancellationResult(CancellationOutcome.CANCELLED, MSG_CANCELLED, appointment)

    def _delete_calendar_event(self, appointment: Appointment) -> None:
        if not appointment.event_id:
            logger.debug("Appointment %s has no calendar event", appointment.id)
            return

        try:
            self._calendar.delete_event(appointment.event_id)
        except Exception:
            logger.exception(
                "Failed to delete calendar event %s for appointment %s",
                appointment.event_id,
                appointment.id,
            )

    def _send_cancellation_notice(self, appointment: Appointment) -> None:
        if not appointment.email:
            return

        try:
            self._mailer.send(
                appointment.email,
                email_templates.CANCELLATION_SUBJECT,
                email_templates.cancellation_notice_html(appointment, self._business_name),
            )
        except Exception:
            logger.exception("Failed to send cancellation email for appointment %s", appointment.id)
