"""
SQLAlchemy-backed stores.

Double bookings are prevented by a partial unique index on (date, time) over
active rows. The insert path never checks for an existing row first; the
database rejects the second writer and the resulting ``IntegrityError`` is
translated into ``DuplicateSlotError``.
"""

from __future__ import annotations

import logging
import datetime as dt
from typing import List, Optional, Sequence, Set

from sqlalchemy import (
    Boolean,
    Date,
    Index,
    Integer,
    String,
    Time,
    and_,
    create_engine,
    delete,
    func,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..domain.exceptions import AppointmentNotFoundError, DuplicateSlotError, StoreError
from ..domain.models import ACTIVE_STATUSES, Appointment, ScheduleDay

logger = logging.getLogger(__name__)

BOOKING_WINDOW_KEY = "booking_window_days"

_ACTIVE_PREDICATE = "status IN ({})".format(", ".join(f"'{status}'" for status in ACTIVE_STATUSES))


class Base(DeclarativeBase):
    pass


class AppointmentRow(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "date",
            "time",
            unique=True,
            sqlite_where=text(_ACTIVE_PREDICATE),
            postgresql_where=text(_ACTIVE_PREDICATE),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    service: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="confirmed")
    event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def to_domain(self) -> Appointment:
        return Appointment(
            id=self.id,
            customer_name=self.customer_name,
            email=self.email,
            date=self.date,
            time=self.time,
            service=self.service,
            status=self.status,
            event_id=self.event_id,
        )


class ScheduleDayRow(Base):
    __tablename__ = "work_schedule"

    day_of_week: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_domain(self) -> ScheduleDay:
        return ScheduleDay(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=self.is_active,
        )


class BlockedDayRow(Base):
    __tablename__ = "blocked_days"

    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)


class AppSettingRow(Base):
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build an engine for a database URL.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet."""
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise StoreError(f"Failed to create the database schema: {exc}") from exc
    logger.info("Database schema ready")


class SqlSlotStore:
    """Appointment records in a relational database."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def insert(self, appointment: Appointment) -> Appointment:
        row = AppointmentRow(
            customer_name=appointment.customer_name,
            email=appointment.email,
            date=appointment.date,
            time=appointment.time,
            service=appointment.service,
            status=appointment.status,
            event_id=appointment.event_id,
        )
        try:
            with self._session_factory.begin() as session:
                session.add(row)
                session.flush()
                stored = row.to_domain()
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateSlotError(
                    f"Slot {appointment.date} {appointment.time:%H:%M} is already booked"
                ) from exc
            raise StoreError(f"Failed to insert appointment: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to insert appointment: {exc}") from exc

        return stored

    def get(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        statement = select(AppointmentRow).where(
            _match(appointment_id, customer_name, email)
        )
        try:
            with self._session_factory() as session:
                row = session.scalars(statement).one_or_none()
                if row is None:
                    raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
                return row.to_domain()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load appointment {appointment_id}: {exc}") from exc

    def delete(
        self,
        appointment_id: int,
        customer_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Appointment:
        predicate = _match(appointment_id, customer_name, email)
        try:
            with self._session_factory.begin() as session:
                row = session.scalars(select(AppointmentRow).where(predicate)).one_or_none()
                if row is None:
                    raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
                appointment = row.to_domain()

                result = session.execute(
                    delete(AppointmentRow).where(predicate).execution_options(
                        synchronize_session=False
                    )
                )
                if result.rowcount != 1:
                    # Someone else removed it between the read and the delete
                    raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete appointment {appointment_id}: {exc}") from exc

        return appointment

    def booked_times(self, day: dt.date) -> Set[dt.time]:
        statement = select(AppointmentRow.time).where(
            AppointmentRow.date == day,
            AppointmentRow.status.in_(ACTIVE_STATUSES),
        )
        try:
            with self._session_factory() as session:
                return {
                    slot_time.replace(second=0, microsecond=0)
                    for slot_time in session.scalars(statement)
                }
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read booked times for {day}: {exc}") from exc

    def set_event_id(self, appointment_id: int, event_id: str) -> None:
        statement = (
            update(AppointmentRow)
            .where(AppointmentRow.id == appointment_id)
            .values(event_id=event_id)
        )
        try:
            with self._session_factory.begin() as session:
                result = session.execute(statement)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update appointment {appointment_id}: {exc}") from exc

        if result.rowcount != 1:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

    def upcoming_for_customer(
        self, customer_name: str, email: str, from_date: dt.date
    ) -> List[Appointment]:
        statement = (
            select(AppointmentRow)
            .where(_owner(customer_name, email), AppointmentRow.date >= from_date)
            .order_by(AppointmentRow.date, AppointmentRow.time)
        )
        return self._list(statement)

    def list_appointments(self, from_date: Optional[dt.date] = None) -> List[Appointment]:
        statement = select(AppointmentRow).order_by(AppointmentRow.date, AppointmentRow.time)
        if from_date is not None:
            statement = statement.where(AppointmentRow.date >= from_date)
        return self._list(statement)

    def _list(self, statement) -> List[Appointment]:
        try:
            with self._session_factory() as session:
                return [row.to_domain() for row in session.scalars(statement)]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list appointments: {exc}") from exc


class SqlAdminConfigStore:
    """Schedule, closures and horizon in a relational database."""

    def __init__(self, session_factory: sessionmaker[Session], default_window_days: int = 14):
        self._session_factory = session_factory
        self._default_window_days = default_window_days

    def get_schedule_days(self) -> List[ScheduleDay]:
        statement = select(ScheduleDayRow).order_by(ScheduleDayRow.day_of_week)
        try:
            with self._session_factory() as session:
                return [row.to_domain() for row in session.scalars(statement)]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read the weekly schedule: {exc}") from exc

    def get_blocked_days(self) -> Set[dt.date]:
        try:
            with self._session_factory() as session:
                return set(session.scalars(select(BlockedDayRow.date)))
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read blocked days: {exc}") from exc

    def is_blocked_day(self, day: dt.date) -> bool:
        statement = select(BlockedDayRow.date).where(BlockedDayRow.date == day)
        try:
            with self._session_factory() as session:
                return session.scalars(statement).first() is not None
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to check whether {day} is blocked: {exc}") from exc

    def get_booking_window_days(self) -> int:
        try:
            with self._session_factory() as session:
                setting = session.get(AppSettingRow, BOOKING_WINDOW_KEY)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {BOOKING_WINDOW_KEY}: {exc}") from exc

        if setting is None:
            return self._default_window_days

        try:
            return int(setting.value)
        except ValueError:
            logger.warning(
                "Invalid %s value %r, using %d",
                BOOKING_WINDOW_KEY,
                setting.value,
                self._default_window_days,
            )
            return self._default_window_days

    def upsert_schedule_days(self, days: Sequence[ScheduleDay]) -> None:
        rows = [
            ScheduleDayRow(
                day_of_week=day.day_of_week,
                start_time=day.start_time,
                end_time=day.end_time,
                is_active=day.is_active,
            )
            for day in days
        ]
        self._write(rows, "the weekly schedule")

    def upsert_booking_window_days(self, days: int) -> None:
        if days < 1:
            raise ValueError("Booking window must be at least one day")
        self._write([AppSettingRow(key=BOOKING_WINDOW_KEY, value=str(days))], BOOKING_WINDOW_KEY)

    def add_blocked_day(self, day: dt.date) -> None:
        self._write([BlockedDayRow(date=day)], f"blocked day {day}")

    def remove_blocked_day(self, day: dt.date) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(BlockedDayRow).where(BlockedDayRow.date == day))
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to remove blocked day {day}: {exc}") from exc

    def _write(self, rows: Sequence[Base], what: str) -> None:
        # merge() upserts on the primary key
        try:
            with self._session_factory.begin() as session:
                for row in rows:
                    session.merge(row)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save {what}: {exc}") from exc


def _owner(customer_name: str, email: str):
    return and_(
        func.lower(AppointmentRow.customer_name) == customer_name.lower(),
        func.lower(AppointmentRow.email) == email.lower(),
    )


def _match(appointment_id: int, customer_name: Optional[str], email: Optional[str]):
    """Identity filter, plus the ownership filter for self-service calls."""
    predicate = AppointmentRow.id == appointment_id
    if customer_name is not None:
        predicate = and_(predicate, _owner(customer_name, email or ""))
    return predicate


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message
