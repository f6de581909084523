"""
HTML bodies and subjects for booking emails.
"""

from html import escape

from ..domain.models import Appointment

CUSTOMER_CONFIRMATION_SUBJECT = "Your Appointment is Confirmed!"
ADMIN_NOTIFICATION_SUBJECT = "New Booking Notification"
CANCELLATION_SUBJECT = "Your Appointment Has Been Canceled"


def customer_confirmation_html(appointment: Appointment, business_name: str = "our shop") -> str:
    return (
        "<h1>Booking Confirmation</h1>\n"
        f"<p>Dear {escape(appointment.customer_name)},</p>\n"
        f"<p>Your appointment for <strong>{escape(appointment.service)}</strong> is confirmed for "
        f"<strong>{appointment.display_date()}</strong> at <strong>{appointment.display_time()}</strong>.</p>\n"
        f"<p>Thank you for choosing {escape(business_name)}.</p>\n"
    )


def admin_notification_html(appointment: Appointment) -> str:
    return (
        "<h1>New Booking</h1>\n"
        "<p>A new appointment has been booked:</p>\n"
        "<ul>\n"
        f"  <li><strong>Name:</strong> {escape(appointment.customer_name)}</li>\n"
        f"  <li><strong>Email:</strong> {escape(appointment.email)}</li>\n"
        f"  <li><strong>Service:</strong> {escape(appointment.service)}</li>\n"
        f"  <li><strong>Date:</strong> {appointment.display_date()}</li>\n"
        f"  <li><strong>Time:</strong> {appointment.display_time()}</li>\n"
        "</ul>\n"
    )


def cancellation_notice_html(appointment: Appointment, business_name: str = "our shop") -> str:
    return (
        "<h1>Appointment Canceled</h1>\n"
        f"<p>Dear {escape(appointment.customer_name)},</p>\n"
        f"<p>Your appointment for <strong>{escape(appointment.service)}</strong> on "
        f"<strong>{appointment.display_date()}</strong> at <strong>{appointment.display_time()}</strong> "
        "has been canceled.</p>\n"
        "<p>We apologize for any inconvenience. Please feel free to book another appointment "
        "at your convenience.</p>\n"
        f"<p>Sincerely,<br>The {escape(business_name)} team</p>\n"
    )
