"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.backend_client import BackendClient
from ..adapters.mock_backend_client import MockBackendClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.join_window import JoinWindowGate
from ..domain.models import ConsultationRequest, Slot
from ..domain.timeutils import (
    day_name,
    format_wall_time,
    parse_calendar_date,
    parse_instant,
    parse_wall_time,
)
from ..services.booking import BookingService, DataAccessProtocol
from ..services.consultations import ConsultationService

app = typer.Typer(
    name="careslots",
    help="Resolve bookable appointment slots and join windows",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Reference instant (ISO 8601). Defaults to the current time."),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use bundled mock data instead of the hosted backend."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    careslots - appointment slots and join windows for the booking portal.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _resolve_now(now_option: Optional[str], tz: str) -> pendulum.DateTime:
    if not now_option:
        return pendulum.now(tz)
    try:
        return parse_instant(now_option, tz).in_timezone(tz)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _build_data_access(config: AppConfig, mock: bool) -> DataAccessProtocol:
    if mock:
        return MockBackendClient(timezone=config.timezone)

    if not config.backend.is_configured():
        console.print(
            "[bold red]Error:[/bold red] backend.url and backend.api_key must be "
            "configured (or use --mock)."
        )
        raise typer.Exit(1)
    return BackendClient(
        base_url=config.backend.url,
        api_key=config.backend.api_key,
        access_token=config.backend.access_token,
        timezone=config.timezone,
    )


def _build_service(config: AppConfig, mock: bool) -> BookingService:
    return BookingService(
        data_access=_build_data_access(config, mock),
        slot_generator=config.build_slot_generator(),
        join_gate=config.build_join_gate(),
        timezone=config.timezone,
    )


def _build_consultations(config: AppConfig, mock: bool) -> ConsultationService:
    return ConsultationService(_build_data_access(config, mock), timezone=config.timezone)


def _print_requests(requests_: List[ConsultationRequest], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Patient")
    table.add_column("Title")
    table.add_column("Preferred", style="bold yellow")
    table.add_column("Status")

    for request in requests_:
        table.add_row(
            request.id,
            request.patient_name or request.patient_id,
            request.title,
            f"{request.preferred_date.isoformat()} "
            f"{format_wall_time(request.preferred_time_start)}-"
            f"{format_wall_time(request.preferred_time_end)}",
            request.status,
        )

    console.print(table)


@app.command()
def slots(
    doctor_id: Annotated[str, typer.Argument(help="Doctor identifier")],
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    List bookable slots for a doctor, starting tomorrow.

    Examples:

        careslots slots dr-mehta --mock
        careslots slots dr-mehta --now 2024-01-07T12:00:00Z
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_service(config, mock)

    try:
        found = service.available_slots(doctor_id, reference)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not found:
        console.print("[yellow]No bookable slots in the next "
                      f"{config.scheduling.horizon_days} days.[/yellow]")
        return

    table = Table(title=f"Slots for {doctor_id}", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold yellow")
    table.add_column("Day")
    table.add_column("Time", style="green")

    for slot in found:
        table.add_row(slot.date.isoformat(), day_name(slot.date), format_wall_time(slot.time))

    console.print(table)


@app.command()
def dates(
    doctor_id: Annotated[str, typer.Argument(help="Doctor identifier")],
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Show the next dates that have at least one free slot.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_service(config, mock)

    try:
        found = service.date_picker(doctor_id, reference, limit=config.scheduling.max_dates)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not found:
        console.print("[yellow]No available dates.[/yellow]")
        return

    for entry, times in found:
        console.print(
            f"  {entry.day_name}, {entry.date.isoformat()} | "
            + ", ".join(format_wall_time(t) for t in times)
        )


@app.command("can-join")
def can_join(
    scheduled_at: Annotated[str, typer.Argument(help="Scheduled instant (ISO 8601)")],
    config_file: ConfigOption = None,
    now: NowOption = None,
    lead: Annotated[Optional[int], typer.Option("--lead", help="Override lead minutes")] = None,
    trail: Annotated[Optional[int], typer.Option("--trail", help="Override trail minutes")] = None,
):
    """
    Check whether the "join meeting" action is enabled. Exits 0 if it is, 2 if not.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)

    try:
        scheduled = parse_instant(scheduled_at, config.timezone)
        gate = JoinWindowGate(
            lead_minutes=lead if lead is not None else config.join_window.lead_minutes,
            trail_minutes=trail if trail is not None else config.join_window.trail_minutes,
        )
    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    window = gate.window_for(scheduled)
    opens = window.opens_at.in_timezone(config.timezone).format("YYYY-MM-DD HH:mm")
    closes = window.closes_at.in_timezone(config.timezone).format("YYYY-MM-DD HH:mm")

    if gate.can_join(scheduled, reference):
        console.print(f"[bold green]✓ Join enabled[/bold green] ({opens} - {closes})")
        return

    console.print(f"[yellow]⊘ Join disabled[/yellow] (window {opens} - {closes})")
    raise typer.Exit(2)


@app.command()
def book(
    doctor_id: Annotated[str, typer.Argument(help="Doctor identifier")],
    patient_id: Annotated[str, typer.Argument(help="Patient (user) identifier")],
    date: Annotated[str, typer.Option("--date", help="Slot date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Option("--time", help="Slot time (HH:MM)")],
    consultation_type: Annotated[str, typer.Option("--type", help="video or in-person")] = "video",
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the doctor")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Book one of the doctor's offered slots.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_service(config, mock)

    try:
        slot = Slot(
            date=pendulum.from_format(date, "YYYY-MM-DD").date(),
            time=parse_wall_time(time),
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid date or time: {e}")
        raise typer.Exit(1)

    try:
        appointment = service.book(
            doctor_id=doctor_id,
            patient_id=patient_id,
            slot=slot,
            now=reference,
            consultation_type=consultation_type,
            notes=notes,
        )
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[bold green]✓ Appointment {appointment.id} booked[/bold green] for "
        f"{appointment.scheduled_at.in_timezone(config.timezone).format('YYYY-MM-DD HH:mm')} "
        f"({appointment.status})"
    )


@app.command()
def dashboard(
    user_id: Annotated[str, typer.Argument(help="Patient or doctor identifier")],
    as_doctor: Annotated[bool, typer.Option("--doctor", help="Show the doctor's dashboard.")] = False,
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Show upcoming and past appointments with their join status.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_service(config, mock)

    try:
        if as_doctor:
            board = service.doctor_dashboard(user_id, reference)
        else:
            board = service.patient_dashboard(user_id, reference)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Upcoming appointments", show_header=True, header_style="bold cyan")
    table.add_column("When", style="bold yellow")
    table.add_column("Doctor")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Join")

    for view in board.upcoming:
        apt = view.appointment
        if not view.has_meeting_link:
            join = "[dim]no link[/dim]"
        elif view.can_join:
            join = "[green]open[/green]"
        else:
            join = "[yellow]closed[/yellow]"
        table.add_row(
            apt.scheduled_at.in_timezone(config.timezone).format("YYYY-MM-DD HH:mm"),
            apt.doctor_name or apt.doctor_id,
            apt.consultation_type,
            apt.status,
            join,
        )

    console.print(table)
    console.print(f"\n[dim]{len(board.past)} past appointment(s)[/dim]")

    if as_doctor:
        console.print()
        _print_requests(board.requests, "Pending consultation requests")


@app.command("setup-meeting")
def setup_meeting(
    appointment_id: Annotated[str, typer.Argument(help="Appointment identifier")],
    link: Annotated[str, typer.Option("--link", help="Meeting URL (Meet, Zoom, Teams, ...)")],
    date: Annotated[str, typer.Option("--date", help="Meeting date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Option("--time", help="Meeting time (HH:MM)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Attach a meeting link to an appointment and set its date and time.
    """
    config = _load_config(config_file)
    service = _build_service(config, mock)

    try:
        day = parse_calendar_date(date)
        wall_time = parse_wall_time(time)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid date or time: {e}")
        raise typer.Exit(1)

    try:
        appointment = service.setup_meeting(
            appointment_id, meeting_link=link, day=day, wall_time=wall_time
        )
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[bold green]✓ Meeting set up[/bold green] for "
        f"{appointment.scheduled_at.in_timezone(config.timezone).format('YYYY-MM-DD HH:mm')}"
    )


@app.command("request-consultation")
def request_consultation(
    patient_id: Annotated[str, typer.Argument(help="Patient (user) identifier")],
    title: Annotated[str, typer.Option("--title", help="Short reason for the consultation")],
    date: Annotated[str, typer.Option("--date", help="Preferred date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Option("--start", help="Preferred start time (HH:MM)")],
    end: Annotated[str, typer.Option("--end", help="Preferred end time (HH:MM)")],
    link: Annotated[str, typer.Option("--link", help="Meeting URL")],
    description: Annotated[Optional[str], typer.Option("--description", help="Details")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Ask for a consultation at a preferred date and time range.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_consultations(config, mock)

    try:
        preferred_date = parse_calendar_date(date)
        preferred_start = parse_wall_time(start)
        preferred_end = parse_wall_time(end)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid date or time: {e}")
        raise typer.Exit(1)

    try:
        request = service.request_consultation(
            patient_id=patient_id,
            title=title,
            preferred_date=preferred_date,
            preferred_time_start=preferred_start,
            preferred_time_end=preferred_end,
            meeting_link=link,
            now=reference,
            description=description,
        )
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Request {request.id} submitted[/bold green] ({request.status})")


@app.command("requests")
def list_requests(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List consultation requests waiting for a doctor.
    """
    config = _load_config(config_file)
    service = _build_consultations(config, mock)

    try:
        pending = service.open_requests()
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not pending:
        console.print("[yellow]No pending consultation requests.[/yellow]")
        return

    _print_requests(pending, "Pending consultation requests")


@app.command("accept-request")
def accept_request(
    request_id: Annotated[str, typer.Argument(help="Consultation request identifier")],
    doctor_id: Annotated[str, typer.Argument(help="Doctor taking the request")],
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Accept a pending consultation request.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_consultations(config, mock)

    try:
        request = service.accept(request_id, doctor_id, reference)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Request {request.id} {request.status}[/bold green]")


@app.command("reject-request")
def reject_request(
    request_id: Annotated[str, typer.Argument(help="Consultation request identifier")],
    config_file: ConfigOption = None,
    now: NowOption = None,
    mock: MockOption = False,
):
    """
    Reject a pending consultation request.
    """
    config = _load_config(config_file)
    reference = _resolve_now(now, config.timezone)
    service = _build_consultations(config, mock)

    try:
        request = service.reject(request_id, reference)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[yellow]Request {request.id} {request.status}[/yellow]")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]careslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
