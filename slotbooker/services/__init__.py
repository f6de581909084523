"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import AvailabilityService
from .booking import BookingOrchestrator
from .cancellation import CancellationOrchestrator
from .protocols import (
    AdminConfigStoreProtocol,
    CalendarGatewayProtocol,
    NotificationGatewayProtocol,
    SlotStoreProtocol,
)
from .requests import BookingRequest

__all__ = [
    "AvailabilityService",
    "BookingOrchestrator",
    "CancellationOrchestrator",
    "AdminConfigStoreProtocol",
    "CalendarGatewayProtocol",
    "NotificationGatewayProtocol",
    "SlotStoreProtocol",
    "BookingRequest",
]
