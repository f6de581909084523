"""
Adapters layer - Persistence and external integrations (Microsoft Graph).
"""

from .graph_authenticator import GraphAuthenticator
from .graph_client import GraphCalendarGateway, GraphClient, GraphMailGateway
from .memory_store import InMemoryAdminConfigStore, InMemorySlotStore
from .mock_gateways import MockCalendarGateway, MockMailGateway
from .sql_store import SqlAdminConfigStore, SqlSlotStore

__all__ = [
    "GraphAuthenticator",
    "GraphCalendarGateway",
    "GraphClient",
    "GraphMailGateway",
    "InMemoryAdminConfigStore",
    "InMemorySlotStore",
    "MockCalendarGateway",
    "MockMailGateway",
    "SqlAdminConfigStore",
    "SqlSlotStore",
]
