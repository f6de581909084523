"""
Microsoft Graph API gateways for email and calendar events.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarSyncError, GatewayError, MailDeliveryError
from ..domain.models import Appointment

TokenProvider = Callable[[], str]


class GraphClient:
    """
    Thin authenticated wrapper around the Microsoft Graph REST API.

    Tokens are fetched per request from the provider, which is expected to
    cache them.
    """

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
    TIMEOUT_SECONDS = 30

    def __init__(self, token_provider: TokenProvider, session: Optional[requests.Session] = None):
        """
        Initialize the Graph API client.

        Args:
            token_provider: Callable returning a valid access token
            session: Optional requests session (shared connection pool)
        """
        self._token_provider = token_provider
        self._session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Send one request and raise for non-2xx responses.

        Raises:
            GatewayError: If the call fails for any reason
        """
        url = f"{self.GRAPH_API_ENDPOINT}{path}"
        headers = {
            "Authorization": f"Bearer {self._token_provider()}",
            "Content-Type": "application/json",
        }

        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                json=payload,
                timeout=self.TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise GatewayError(f"Microsoft Graph {method} {path} failed: {e}") from e

        return response

    def test_connection(self, mailbox: str) -> Dict[str, Any]:
        """
        Test the connection and permissions by fetching the mailbox profile.

        Returns:
            User profile data
        """
        return self.request("GET", f"/users/{mailbox}").json()


class GraphMailGateway:
    """Sends HTML email from a shared mailbox via ``/sendMail``."""

    def __init__(self, client: GraphClient, sender: str):
        self._client = client
        self._sender = sender

    def send(self, to: str, subject: str, html_body: str) -> None:
        payload = {
            "message": {
                "subject": subject,
                "body": {"contentType": "HTML", "content": html_body},
                "toRecipients": [{"emailAddress": {"address": to}}],
            },
            "saveToSentItems": False,
        }

        try:
            self._client.request("POST", f"/users/{self._sender}/sendMail", payload)
        except GatewayError as exc:
            raise MailDeliveryError(f"Failed to send email to {to}: {exc}") from exc


class GraphCalendarGateway:
    """
    Creates and removes appointment events in a mailbox calendar.

    Event start and end are expressed in the business timezone. The end is
    derived from a per-service duration lookup.
    """

    def __init__(
        self,
        client: GraphClient,
        mailbox: str,
        timezone: str,
        duration_for: Callable[[str], int],
    ):
        self._client = client
        self._mailbox = mailbox
        self._timezone = timezone
        self._duration_for = duration_for

    def create_event(self, appointment: Appointment) -> str:
        start, end = self.event_window(appointment)
        payload = {
            "subject": f"Appointment: {appointment.customer_name} - {appointment.service}",
            "body": {
                "contentType": "text",
                "content": (
                    f"Customer: {appointment.customer_name}\n"
                    f"Email: {appointment.email}\n"
                    f"Service: {appointment.service}"
                ),
            },
            "start": self._graph_datetime(start),
            "end": self._graph_datetime(end),
        }

        try:
            response = self._client.request("POST", f"/users/{self._mailbox}/events", payload)
            event_id = response.json().get("id")
        except (GatewayError, ValueError) as exc:
            raise CalendarSyncError(f"Failed to create calendar event: {exc}") from exc

        if not event_id:
            raise CalendarSyncError("Calendar API response did not include an event id")

        return event_id

    def delete_event(self, event_id: str) -> None:
        if not event_id:
            raise CalendarSyncError("No event id provided for deletion")

        try:
            self._client.request("DELETE", f"/users/{self._mailbox}/events/{event_id}")
        except GatewayError as exc:
            raise CalendarSyncError(f"Failed to delete calendar event {event_id}: {exc}") from exc

    def event_window(self, appointment: Appointment) -> tuple[DateTime, DateTime]:
        """Start and end of the event in the business timezone."""
        start = pendulum.datetime(
            appointment.date.year,
            appointment.date.month,
            appointment.date.day,
            appointment.time.hour,
            appointment.time.minute,
            tz=self._timezone,
        )
        return start, start.add(minutes=self._duration_for(appointment.service))

    def _graph_datetime(self, value: datetime) -> Dict[str, str]:
        # Graph wants wall-clock time plus a separate zone name
        return {
            "dateTime": value.strftime("%Y-%m-%dT%H:%M:%S"),
            "timeZone": self._timezone,
        }
