"""
Main CLI application using Typer.
"""

import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.graph_client import GraphClient
from ..bootstrap import Container, build_authenticator, build_container
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SlotbookerError
from ..domain.models import Appointment, BookingOutcome, ScheduleDay, format_display_date

app = typer.Typer(
    name="slotbooker",
    help="Offer appointment slots and run bookings against the shop calendar",
    add_completion=False
)

console = Console()

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Record emails and calendar events instead of calling Microsoft Graph.")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    try:
        return AppConfig.load_from_yaml(config_file or get_default_config_path())
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _load(config_file: Optional[Path], mock: bool = True) -> tuple[AppConfig, Container]:
    config = _load_config(config_file)
    try:
        container = build_container(config, mock=mock)
        container.init_db()
    except (ValueError, SlotbookerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    return config, container


def _parse_date(value: str) -> date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as e:
        console.print(f"[red]Could not parse date '{value}': {e}[/red]")
        raise typer.Exit(1)


def _parse_time(value: str) -> time:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        console.print(f"[red]Could not parse time '{value}', expected HH:MM[/red]")
        raise typer.Exit(1)


def _appointment_table(title: str, appointments: List[Appointment]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow", justify="right")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Customer")
    table.add_column("Email", style="dim")
    table.add_column("Service")
    table.add_column("Calendar", style="dim")

    for appointment in appointments:
        table.add_row(
            str(appointment.id),
            appointment.display_date(),
            appointment.display_time(),
            appointment.customer_name,
            appointment.email,
            appointment.service,
            appointment.event_id or "-",
        )
    return table


@app.command()
def init_db(config_file: ConfigOption = None):
    """
    Create the database tables.
    """
    # _load creates missing tables
    _load(config_file)
    console.print("[green]✓ Database ready[/green]")


@app.command()
def slots(
    day: Annotated[Optional[str], typer.Option("--date", help="Show free times for one date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
):
    """
    Show bookable dates, or the free times on one date.

    Examples:

        slotbooker slots
        slotbooker slots --date 2024-11-26
    """
    _, container = _load(config_file)
    availability = container.availability

    try:
        if day:
            selected = _parse_date(day)
            times = availability.available_times(selected)
            if not times:
                console.print(f"[yellow]⚠ No free times on {format_display_date(selected)}.[/yellow]")
                return

            console.print(f"[bold green]✓ {len(times)} free time(s) on {format_display_date(selected)}:[/bold green]\n")
            console.print("  " + "  ".join(t.strftime("%H:%M") for t in times))
            console.print()
            return

        dates = availability.bookable_dates()
        if not dates:
            console.print("[yellow]⚠ No bookable dates in the booking window.[/yellow]")
            return

        table = Table(title="Bookable dates", show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold yellow")
        table.add_column("Weekday")
        table.add_column("Free slots", justify="right")
        for bookable in dates:
            table.add_row(
                format_display_date(bookable),
                WEEKDAY_NAMES[bookable.weekday()],
                str(len(availability.available_times(bookable))),
            )
        console.print()
        console.print(table)
        console.print()

    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    email: Annotated[str, typer.Option("--email", help="Customer email")],
    service: Annotated[str, typer.Option("--service", help="Booked service, e.g. 'Haircut'")],
    day: Annotated[str, typer.Option("--date", help="Date (YYYY-MM-DD)")],
    at: Annotated[str, typer.Option("--time", help="Time (HH:MM)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book one slot: reserve, send confirmations, create the calendar event.
    """
    _, container = _load(config_file, mock=mock)
    if mock:
        console.print("[yellow]⚠  MOCK MODE: emails and calendar events are only recorded[/yellow]\n")

    result = container.booking.book(
        {"name": name, "email": email, "service": service, "date": day, "time": at}
    )

    if result.success:
        console.print(Panel.fit(
            f"[bold green]✓ {result.message}[/bold green]\n\n"
            f"[bold]Appointment:[/bold] #{result.appointment.id}",
            title="✓ Booked"
        ))
        return

    console.print(f"[bold red]✗ {result.message}[/bold red]")
    for field, messages in result.field_errors.items():
        console.print(f"   {field}: {'; '.join(messages)}")
    if result.outcome is BookingOutcome.ROLLBACK_FAILURE:
        raise typer.Exit(2)
    raise typer.Exit(1)


@app.command()
def cancel(
    appointment_id: Annotated[int, typer.Argument(help="Appointment ID")],
    name: Annotated[Optional[str], typer.Option("--name", help="Customer name (self-service check)")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Customer email (self-service check)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Cancel an appointment. With --name and --email it must belong to that customer.
    """
    _, container = _load(config_file, mock=mock)
    if mock:
        console.print("[yellow]⚠  MOCK MODE: emails and calendar events are only recorded[/yellow]\n")

    result = container.cancellation.cancel(appointment_id, customer_name=name, email=email)

    if result.success:
        console.print(f"[green]✓ {result.message}[/green]")
        return

    console.print(f"[bold red]✗ {result.message}[/bold red]")
    raise typer.Exit(1)


@app.command()
def appointments(
    show_all: Annotated[bool, typer.Option("--all", help="Include past appointments")] = False,
    config_file: ConfigOption = None,
):
    """
    List appointments (upcoming by default).
    """
    _, container = _load(config_file)
    from_date = None if show_all else container.availability.now().date()

    try:
        rows = container.slot_store.list_appointments(from_date=from_date)
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    if not rows:
        console.print("[yellow]No appointments found.[/yellow]")
        return

    console.print()
    console.print(_appointment_table("Appointments", rows))
    console.print()


@app.command()
def my_appointments(
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    email: Annotated[str, typer.Option("--email", help="Customer email")],
    config_file: ConfigOption = None,
):
    """
    List a customer's upcoming appointments.
    """
    _, container = _load(config_file)
    today = container.availability.now().date()

    try:
        rows = container.slot_store.upcoming_for_customer(name, email, today)
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    if not rows:
        console.print("[yellow]No upcoming appointments found for these details.[/yellow]")
        return

    console.print()
    console.print(_appointment_table(f"Upcoming appointments for {name}", rows))
    console.print()


@app.command()
def schedule(config_file: ConfigOption = None):
    """
    Show the weekly schedule, blocked days and booking window.
    """
    _, container = _load(config_file)
    store = container.config_store
    try:
        by_day = {day.day_of_week: day for day in store.get_schedule_days()}
        window_days = store.get_booking_window_days()
        blocked = sorted(store.get_blocked_days())
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Weekly schedule", show_header=True, header_style="bold cyan")
    table.add_column("Day", style="bold yellow")
    table.add_column("Open")
    table.add_column("Hours")
    for index, weekday in enumerate(WEEKDAY_NAMES):
        entry = by_day.get(index)
        if entry is None:
            table.add_row(weekday, "[dim]not set[/dim]", "-")
            continue
        table.add_row(
            weekday,
            "[green]yes[/green]" if entry.is_active else "[red]closed[/red]",
            f"{entry.start_time:%H:%M} - {entry.end_time:%H:%M}",
        )

    console.print()
    console.print(table)
    console.print(f"\n[bold]Booking window:[/bold] {window_days} day(s)")
    if blocked:
        console.print("[bold]Blocked days:[/bold] " + ", ".join(format_display_date(d) for d in blocked))
    console.print()


@app.command()
def set_day(
    day_of_week: Annotated[int, typer.Argument(min=0, max=6, help="0=Monday ... 6=Sunday")],
    start: Annotated[str, typer.Option("--start", help="Opening time (HH:MM)")] = "09:00",
    end: Annotated[str, typer.Option("--end", help="Closing time (HH:MM)")] = "17:00",
    closed: Annotated[bool, typer.Option("--closed", help="Mark the weekday as closed")] = False,
    config_file: ConfigOption = None,
):
    """
    Set opening hours for one weekday.
    """
    _, container = _load(config_file)
    start_time, end_time = _parse_time(start), _parse_time(end)
    if not closed and start_time >= end_time:
        console.print("[red]Opening time must be before closing time.[/red]")
        raise typer.Exit(1)

    try:
        container.config_store.upsert_schedule_days(
            [ScheduleDay(day_of_week, start_time, end_time, is_active=not closed)]
        )
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    state = "closed" if closed else f"{start}-{end}"
    console.print(f"[green]✓ {WEEKDAY_NAMES[day_of_week]}: {state}[/green]")


@app.command()
def set_window(
    days: Annotated[int, typer.Argument(min=1, help="Days from today during which slots are offered")],
    config_file: ConfigOption = None,
):
    """
    Set the booking window.
    """
    _, container = _load(config_file)
    try:
        container.config_store.upsert_booking_window_days(days)
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓ Booking window set to {days} day(s)[/green]")


@app.command()
def block(
    day: Annotated[str, typer.Argument(help="Date to close (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Close a date for booking.
    """
    _, container = _load(config_file)
    blocked = _parse_date(day)
    try:
        container.config_store.add_blocked_day(blocked)
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓ {format_display_date(blocked)} blocked[/green]")


@app.command()
def unblock(
    day: Annotated[str, typer.Argument(help="Date to reopen (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Reopen a blocked date.
    """
    _, container = _load(config_file)
    reopened = _parse_date(day)
    try:
        container.config_store.remove_blocked_day(reopened)
    except SlotbookerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓ {format_display_date(reopened)} reopened[/green]")


@app.command()
def store_secret(config_file: ConfigOption = None):
    """
    Save the Microsoft Graph client secret in the OS keyring.
    """
    config = _load_config(config_file)
    try:
        authenticator = build_authenticator(config)
        secret = typer.prompt("Client secret", hide_input=True)
        authenticator.store_secret(secret)
    except (ValueError, SlotbookerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print("[green]✓ Client secret stored in keyring.[/green]")


@app.command()
def clear_secret(config_file: ConfigOption = None):
    """
    Remove the Microsoft Graph client secret from the OS keyring.
    """
    config = _load_config(config_file)
    try:
        build_authenticator(config).clear_secret()
    except (ValueError, SlotbookerError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print("\n[green]✓ Client secret removed from keyring.[/green]")
    console.print("Run 'slotbooker store-secret' before the next live booking.\n")


@app.command()
def test_connection(config_file: ConfigOption = None):
    """
    Test Microsoft Graph authentication and access to the shop mailbox.
    """
    config = _load_config(config_file)
    console.print("\n[bold]Testing Microsoft Graph connection...[/bold]\n")
    try:
        authenticator = build_authenticator(config)
        client = GraphClient(token_provider=authenticator.get_access_token)
        profile = client.test_connection(config.graph.mailbox)
    except (ValueError, SlotbookerError) as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]✓ Authentication successful![/bold green]\n\n"
        f"[bold]Mailbox:[/bold] {profile.get('displayName', 'N/A')}\n"
        f"[bold]Email:[/bold] {profile.get('mail') or profile.get('userPrincipalName', 'N/A')}",
        title="✓ Connection test"
    ))
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
