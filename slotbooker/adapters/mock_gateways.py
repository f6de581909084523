"""
Mock mail and calendar gateways for running without Microsoft Graph.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List

from ..domain.models import Appointment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentMail:
    to: str
    subject: str
    html_body: str


class MockMailGateway:
    """
    Records outgoing email instead of sending it.

    Useful for demos and tests, without requiring an Azure app registration.
    """

    def __init__(self):
        self.sent: List[SentMail] = []

    def send(self, to: str, subject: str, html_body: str) -> None:
        self.sent.append(SentMail(to=to, subject=subject, html_body=html_body))
        logger.info("Mock email to %s: %s", to, subject)


class MockCalendarGateway:
    """Keeps calendar events in a dict keyed by a generated event id."""

    def __init__(self):
        self.events: Dict[str, Appointment] = {}
        self._ids = itertools.count(1)

    def create_event(self, appointment: Appointment) -> str:
        event_id = f"mock-event-{next(self._ids)}"
        self.events[event_id] = appointment
        logger.info("Mock calendar event %s for appointment %s", event_id, appointment.id)
        return event_id

    def delete_event(self, event_id: str) -> None:
        self.events.pop(event_id, None)
        logger.info("Mock calendar event %s deleted", event_id)
