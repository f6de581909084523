"""
Tests for the Typer CLI, run against a temporary SQLite database in mock mode.
"""

import pendulum
import pytest
import requests
from sqlalchemy import create_engine, text
from typer.testing import CliRunner

from helpers import FakeResponse
from slotbooker.adapters import graph_authenticator
from slotbooker.adapters.graph_authenticator import GraphAuthenticator
from slotbooker.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "timezone: Europe/Berlin\n"
        f"database_url: sqlite:///{tmp_path / 'cli.db'}\n"
        "admin_email: owner@example.com\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def open_every_day(config_path):
    for day in range(7):
        result = runner.invoke(app, ["set-day", str(day), "--start", "09:00", "--end", "17:00", "-c", str(config_path)])
        assert result.exit_code == 0, result.output
    return config_path


def invoke(config_path, *args):
    return runner.invoke(app, [*args, "-c", str(config_path)])


def future_day() -> str:
    return pendulum.today("Europe/Berlin").add(days=2).to_date_string()


def book(config_path, day, at="10:00", name="Dana Levi", email="dana@example.com"):
    return invoke(
        config_path,
        "book",
        "--name", name,
        "--email", email,
        "--service", "Haircut",
        "--date", day,
        "--time", at,
        "--mock",
    )


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "slotbooker" in result.output


def test_missing_config(tmp_path):
    result = runner.invoke(app, ["schedule", "-c", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_init_db(config_path):
    result = invoke(config_path, "init-db")

    assert result.exit_code == 0
    assert "Database ready" in result.output


def test_schedule_and_window(config_path):
    invoke(config_path, "set-day", "5", "--closed")
    invoke(config_path, "set-window", "21")

    result = invoke(config_path, "schedule")

    assert result.exit_code == 0
    assert "Saturday" in result.output
    assert "closed" in result.output
    assert "21 day(s)" in result.output


def test_set_day_rejects_inverted_hours(config_path):
    result = invoke(config_path, "set-day", "0", "--start", "17:00", "--end", "09:00")

    assert result.exit_code == 1


def test_book_list_and_cancel(open_every_day):
    day = future_day()

    booked = book(open_every_day, day)
    assert booked.exit_code == 0, booked.output
    assert "MOCK MODE" in booked.output
    assert "confirmed" in booked.output

    listed = invoke(open_every_day, "my-appointments", "--name", "dana levi", "--email", "DANA@example.com")
    assert listed.exit_code == 0
    assert "Dana" in listed.output

    slots = invoke(open_every_day, "slots", "--date", day)
    assert slots.exit_code == 0
    assert "10:00" not in slots.output
    assert "10:30" in slots.output

    refused = invoke(open_every_day, "cancel", "1", "--name", "Dana Levi", "--email", "x@example.com", "--mock")
    assert refused.exit_code == 1
    assert "not found" in refused.output

    cancelled = invoke(open_every_day, "cancel", "1", "--mock")
    assert cancelled.exit_code == 0
    assert "cancelled successfully" in cancelled.output

    empty = invoke(open_every_day, "appointments", "--all")
    assert "No appointments found" in empty.output


def test_double_booking_is_refused(open_every_day):
    day = future_day()
    book(open_every_day, day)

    second = book(open_every_day, day, name="Other", email="other@example.com")

    assert second.exit_code == 1
    assert "already booked" in second.output


def test_blocked_day_is_refused(open_every_day):
    day = future_day()
    assert invoke(open_every_day, "block", day).exit_code == 0

    result = book(open_every_day, day)

    assert result.exit_code == 1
    assert "unavailable" in result.output

    invoke(open_every_day, "unblock", day)
    assert book(open_every_day, day).exit_code == 0


def test_invalid_input_lists_field_errors(open_every_day):
    result = book(open_every_day, future_day(), email="not-an-email")

    assert result.exit_code == 1
    assert "email: Invalid email address" in result.output


@pytest.mark.parametrize("command", [["slots"], ["schedule"], ["set-window", "7"], ["block", "2030-01-01"]])
def test_outdated_admin_tables_exit_cleanly(config_path, tmp_path, command):
    """Admin tables with the wrong columns are reported as errors, not tracebacks."""
    engine = create_engine(f"sqlite:///{tmp_path / 'cli.db'}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE work_schedule (legacy_id INTEGER PRIMARY KEY)"))
        connection.execute(text("CREATE TABLE blocked_days (legacy_id INTEGER PRIMARY KEY)"))
        connection.execute(text("CREATE TABLE app_settings (legacy_id INTEGER PRIMARY KEY)"))
    engine.dispose()

    result = invoke(config_path, *command)

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "Failed to" in result.output


def test_live_mode_requires_graph_section(open_every_day):
    result = invoke(
        open_every_day,
        "book",
        "--name", "Dana",
        "--email", "dana@example.com",
        "--service", "Haircut",
        "--date", future_day(),
        "--time", "10:00",
    )

    assert result.exit_code == 1
    assert "graph" in result.output


@pytest.fixture
def graph_config_path(config_path):
    with config_path.open("a", encoding="utf-8") as handle:
        handle.write(
            "graph:\n"
            "  client_id: client\n"
            "  tenant_id: tenant\n"
            "  mailbox: shop@example.com\n"
        )
    return config_path


class TestGraphCommands:
    """Tests for the Microsoft Graph maintenance commands."""

    def test_connection_shows_mailbox(self, graph_config_path, monkeypatch):
        requested = []

        def fake_request(self, method, url, **kwargs):
            requested.append((method, url, kwargs["headers"]["Authorization"]))
            return FakeResponse(body={"displayName": "Romki Bookings", "mail": "shop@example.com"})

        monkeypatch.setattr(GraphAuthenticator, "get_access_token", lambda self: "app-token")
        monkeypatch.setattr(requests.Session, "request", fake_request)

        result = invoke(graph_config_path, "test-connection")

        assert result.exit_code == 0, result.output
        assert "Romki Bookings" in result.output
        assert requested == [
            ("GET", "https://graph.microsoft.com/v1.0/users/shop@example.com", "Bearer app-token")
        ]

    def test_connection_without_secret_fails(self, graph_config_path, monkeypatch):
        monkeypatch.setattr(graph_authenticator.keyring, "get_password", lambda service, key: None)

        result = invoke(graph_config_path, "test-connection")

        assert result.exit_code == 1
        assert "No client secret configured" in result.output

    def test_clear_secret(self, graph_config_path, monkeypatch):
        deleted = []
        monkeypatch.setattr(
            graph_authenticator.keyring,
            "delete_password",
            lambda service, key: deleted.append((service, key)),
        )

        result = invoke(graph_config_path, "clear-secret")

        assert result.exit_code == 0, result.output
        assert "removed from keyring" in result.output
        assert deleted == [("slotbooker", "client:tenant")]

    @pytest.mark.parametrize("command", ["test-connection", "clear-secret"])
    def test_graph_section_is_required(self, config_path, command):
        result = invoke(config_path, command)

        assert result.exit_code == 1
        assert "graph" in result.output
