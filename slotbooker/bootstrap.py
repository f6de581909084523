"""
Process-scoped wiring of stores, gateways and services.

Everything is built once from an ``AppConfig`` and passed explicitly into the
services; there are no module-level client singletons.
"""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from .adapters.graph_authenticator import GraphAuthenticator
from .adapters.graph_client import GraphCalendarGateway, GraphClient, GraphMailGateway
from .adapters.mock_gateways import MockCalendarGateway, MockMailGateway
from .adapters.sql_store import (
    SqlAdminConfigStore,
    SqlSlotStore,
    build_engine,
    create_session_factory,
    init_schema,
)
from .config import AppConfig
from .services.availability_service import AvailabilityService
from .services.booking import BookingOrchestrator
from .services.cancellation import CancellationOrchestrator
from .services.protocols import CalendarGatewayProtocol, NotificationGatewayProtocol


@dataclass
class Container:
    engine: Engine
    slot_store: SqlSlotStore
    config_store: SqlAdminConfigStore
    mailer: NotificationGatewayProtocol
    calendar: CalendarGatewayProtocol
    availability: AvailabilityService
    booking: BookingOrchestrator
    cancellation: CancellationOrchestrator

    def init_db(self) -> None:
        init_schema(self.engine)


def build_authenticator(config: AppConfig) -> GraphAuthenticator:
    if config.graph is None:
        raise ValueError("The 'graph' section is required unless running with --mock.")

    return GraphAuthenticator(
        client_id=config.graph.client_id,
        tenant_id=config.graph.tenant_id,
        client_secret=config.graph.client_secret,
        authority_url=config.graph.get_authority_url(),
    )


def build_container(config: AppConfig, mock: bool = False) -> Container:
    """
    Build all collaborators for one process.

    Args:
        config: Loaded application configuration
        mock: Use recording gateways instead of Microsoft Graph
    """
    engine = build_engine(config.database_url)
    session_factory = create_session_factory(engine)
    slot_store = SqlSlotStore(session_factory)
    config_store = SqlAdminConfigStore(
        session_factory, default_window_days=config.booking.default_window_days
    )

    mailer: NotificationGatewayProtocol
    calendar: CalendarGatewayProtocol
    if mock:
        mailer = MockMailGateway()
        calendar = MockCalendarGateway()
    else:
        authenticator = build_authenticator(config)
        client = GraphClient(token_provider=authenticator.get_access_token)
        mailer = GraphMailGateway(client, sender=config.graph.sender_address())
        calendar = GraphCalendarGateway(
            client,
            mailbox=config.graph.mailbox,
            timezone=config.timezone,
            duration_for=config.booking.duration_for,
        )

    return Container(
        engine=engine,
        slot_store=slot_store,
        config_store=config_store,
        mailer=mailer,
        calendar=calendar,
        availability=AvailabilityService(
            slot_store,
            config_store,
            timezone=config.timezone,
            granularity_minutes=config.booking.slot_minutes,
        ),
        booking=BookingOrchestrator(
            slot_store,
            config_store,
            mailer,
            calendar,
            admin_email=config.admin_email,
            business_name=config.business_name,
            timezone=config.timezone,
            granularity_minutes=config.booking.slot_minutes,
        ),
        cancellation=CancellationOrchestrator(
            slot_store, mailer, calendar, business_name=config.business_name
        ),
    )
