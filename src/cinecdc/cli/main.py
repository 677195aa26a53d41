"""cinecdc CLI — talks to the daemon over HTTP."""

import json
from datetime import datetime
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import print as rprint

from cinecdc import __version__
from cinecdc.core.config import get_client_settings

app = typer.Typer(
    name="cinecdc",
    help="Change data capture for movie bookings",
    no_args_is_help=True,
)
console = Console()


def _client() -> httpx.Client:
    settings = get_client_settings()
    return httpx.Client(
        base_url=settings.host,
        headers={"Authorization": f"Bearer {settings.api_key}"},
        timeout=120,
    )


def _api(method: str, path: str, **kwargs) -> dict:
    """Make an API call to the daemon."""
    with _client() as client:
        try:
            resp = client.request(method, f"/api/v1{path}", **kwargs)
        except httpx.ConnectError:
            settings = get_client_settings()
            console.print(f"[red]Error:[/red] Cannot connect to cinecdc daemon at {settings.host}")
            console.print("Start the daemon with: [bold]cinecdcd[/bold]")
            raise typer.Exit(1)

        if resp.status_code >= 400:
            detail = resp.json().get("detail", resp.text) if resp.headers.get("content-type", "").startswith("application/json") else resp.text
            console.print(f"[red]Error {resp.status_code}:[/red] {detail}")
            raise typer.Exit(1)

        return resp.json()


def _print_change(change: dict):
    console.print(
        f"[green]✓[/green] {change['action']} [bold]{change['booking_id']}[/bold] captured at seq {change['seq']}"
    )


def _status_color(status: str | None) -> str:
    return "green" if status == "succeeded" else "red" if status == "failed" else "yellow" if status == "running" else "dim"


# ─── Booking Commands ───


@app.command()
def book(
    booking_id: str = typer.Argument(..., help="Booking ID"),
    movie: str = typer.Option(..., "--movie", "-m", help="Movie ID"),
    tickets: int = typer.Option(..., "--tickets", "-t", help="Ticket count"),
    price: str = typer.Option(..., "--price", "-p", help="Price per ticket"),
    customer: str = typer.Option(..., "--customer", "-c", help="Customer ID"),
    date: Optional[datetime] = typer.Option(None, "--date", help="Booking date (default: now)"),
):
    """Create a booking."""
    data = {
        "booking_id": booking_id,
        "customer_id": customer,
        "movie_id": movie,
        "ticket_count": tickets,
        "ticket_price": price,
    }
    if date:
        data["booking_date"] = date.isoformat()
    _print_change(_api("POST", "/bookings", json=data))


@app.command()
def update(
    booking_id: str = typer.Argument(..., help="Booking ID"),
    movie: Optional[str] = typer.Option(None, "--movie", "-m", help="Movie ID"),
    tickets: Optional[int] = typer.Option(None, "--tickets", "-t", help="Ticket count"),
    price: Optional[str] = typer.Option(None, "--price", "-p", help="Price per ticket"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="BOOKED or CANCELLED"),
):
    """Update fields of a booking."""
    data = {}
    if movie is not None:
        data["movie_id"] = movie
    if tickets is not None:
        data["ticket_count"] = tickets
    if price is not None:
        data["ticket_price"] = price
    if status is not None:
        data["status"] = status.upper()
    if not data:
        console.print("[red]Nothing to update[/red]")
        raise typer.Exit(1)
    _print_change(_api("PATCH", f"/bookings/{booking_id}", json=data))


@app.command()
def cancel(booking_id: str = typer.Argument(..., help="Booking ID")):
    """Cancel a booking (status CANCELLED)."""
    _print_change(_api("PATCH", f"/bookings/{booking_id}", json={"status": "CANCELLED"}))


@app.command()
def remove(booking_id: str = typer.Argument(..., help="Booking ID")):
    """Delete a booking from the source table."""
    _print_change(_api("DELETE", f"/bookings/{booking_id}"))


@app.command()
def booking(booking_id: str = typer.Argument(..., help="Booking ID")):
    """Show the enriched row for a booking."""
    result = _api("GET", f"/bookings/{booking_id}")
    rprint(Panel(json.dumps(result, indent=2, default=str), title=f"Booking: {booking_id}"))


@app.command()
def changes(
    cursor: int = typer.Option(0, "--cursor", help="Return changes after this seq"),
    limit: int = typer.Option(50, "--limit", "-l", help="Max changes"),
):
    """Show captured changes."""
    result = _api("GET", "/changes", params={"cursor": cursor, "limit": limit})

    table = Table(title="Captured changes")
    table.add_column("Seq", justify="right")
    table.add_column("Action")
    table.add_column("Booking", style="bold")
    table.add_column("Movie")
    table.add_column("Status")
    table.add_column("Total", justify="right")
    table.add_column("Captured")

    for c in result["changes"]:
        table.add_row(
            str(c["seq"]),
            c["action"],
            c["booking_id"],
            c.get("movie_id") or "—",
            c.get("status") or "—",
            str(c["total_amount"]) if c.get("total_amount") is not None else "—",
            c["captured_at"],
        )

    console.print(table)
    console.print(f"[dim]next cursor: {result['next_cursor']}[/dim]")


# ─── Insight Commands ───


@app.command()
def insights(movie: Optional[str] = typer.Argument(None, help="Movie ID (default: all movies)")):
    """Show per-movie insights."""
    if movie:
        result = _api("GET", f"/movies/{movie}/insights")
        rprint(Panel(json.dumps(result, indent=2, default=str), title=f"Movie: {movie}"))
        return

    rows = _api("GET", "/insights")["insights"]
    if not rows:
        console.print("[dim]No insights yet[/dim]")
        return

    table = Table(title="Movie insights")
    table.add_column("Movie", style="bold")
    table.add_column("Bookings", justify="right")
    table.add_column("Active", justify="right")
    table.add_column("Cancelled", justify="right")
    table.add_column("Active revenue", justify="right")
    table.add_column("Lost revenue", justify="right")
    table.add_column("Cancel %", justify="right")
    table.add_column("Quality %", justify="right")

    for i in rows:
        table.add_row(
            i["movie_id"],
            str(i["total_bookings"]),
            str(i["active_bookings"]),
            str(i["cancelled_bookings"]),
            str(i["total_active_revenue"]),
            str(i["total_lost_revenue"]),
            f"{i['cancellation_rate']:.2f}",
            f"{i['data_quality_score']:.2f}",
        )

    console.print(table)


# ─── Stage Commands ───


@app.command()
def stages():
    """Show stage status."""
    result = _api("GET", "/stages")

    table = Table(title="Stages")
    table.add_column("Name", style="bold")
    table.add_column("Trigger")
    table.add_column("State")
    table.add_column("Last Run")
    table.add_column("Last Outcome")
    table.add_column("In/Out", justify="right")
    table.add_column("Cursor", justify="right")
    table.add_column("Version", justify="right")

    for s in result["stages"]:
        if s["halted_reason"]:
            state = "[red]halted[/red]"
        elif s["paused"]:
            state = "[yellow]paused[/yellow]"
        else:
            state = f"[{_status_color(s['status'])}]{s['status']}[/{_status_color(s['status'])}]"
        trigger = f"every {s['interval_seconds']}s" if s["trigger"] == "interval" else f"after {s['upstream']}"
        outcome = s.get("last_outcome") or "—"

        table.add_row(
            s["name"],
            trigger,
            state,
            s.get("last_run_at") or "—",
            f"[{_status_color(outcome)}]{outcome}[/{_status_color(outcome)}]",
            f"{s['last_rows_in']}/{s['last_rows_out']}",
            str(s["cursor"]),
            str(s["output_version"]),
        )

    console.print(table)


@app.command()
def pause(name: str = typer.Argument(..., help="Stage name")):
    """Pause a stage."""
    _api("POST", f"/stages/{name}/pause")
    console.print(f"[yellow]Paused {name}[/yellow]")


@app.command()
def resume(name: str = typer.Argument(..., help="Stage name")):
    """Resume a paused or halted stage."""
    _api("POST", f"/stages/{name}/resume")
    console.print(f"[green]✓[/green] Resumed {name}")


@app.command()
def trigger(name: str = typer.Argument(..., help="Stage name")):
    """Run a stage now, then its downstream stages."""
    result = _api("POST", f"/stages/{name}/run")

    if not result["runs"]:
        console.print(f"[dim]{name} is already running[/dim]")
        return

    for r in result["runs"]:
        color = _status_color(r["status"])
        console.print(f"[{color}]●[/{color}] {r['stage']} ({r['trigger']}) — {r['status']}")
        console.print(f"  Rows: {r['rows_in']} in, {r['rows_out']} out")
        if r.get("duration_ms") is not None:
            console.print(f"  Duration: {r['duration_ms']}ms")
        if r.get("error"):
            console.print(f"  [red]Error:[/red] {r['error'][:200]}")


@app.command()
def interval(
    name: str = typer.Argument(..., help="Stage name"),
    seconds: int = typer.Argument(..., help="Interval in seconds"),
):
    """Change a stage's scheduling interval."""
    result = _api("PUT", f"/stages/{name}/interval", json={"seconds": seconds})
    console.print(f"[green]✓[/green] {name} interval set to {result['interval_seconds']}s")


@app.command()
def runs(
    name: str = typer.Argument(..., help="Stage name"),
    last: int = typer.Option(10, "--last", "-l", help="Number of runs to show"),
):
    """Show recent runs for a stage."""
    result = _api("GET", f"/stages/{name}/runs", params={"limit": last})

    table = Table(title=f"Runs: {name}")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Status")
    table.add_column("Trigger")
    table.add_column("In/Out", justify="right")
    table.add_column("Duration")
    table.add_column("Time")

    for r in result["runs"]:
        color = _status_color(r["status"])
        duration = f"{r['duration_ms']}ms" if r.get("duration_ms") is not None else "—"

        table.add_row(
            r["id"][:8],
            f"[{color}]{r['status']}[/{color}]",
            r["trigger"],
            f"{r['rows_in']}/{r['rows_out']}",
            duration,
            r.get("created_at", "—") or "—",
        )

    console.print(table)


@app.command()
def failures(limit: int = typer.Option(20, "--limit", "-l", help="Number of failures to show")):
    """Show recent failed stage runs."""
    result = _api("GET", "/stages/failures", params={"limit": limit})
    rows = result["runs"]

    if not rows:
        console.print("[green]No recent failures[/green]")
        return

    for r in rows:
        console.print(f"\n[red]●[/red] {r['stage_name']} — {r.get('created_at', '')}")
        if r.get("error"):
            console.print(f"  {r['error'][:200]}")


@app.command()
def version():
    """Show cinecdc version."""
    console.print(f"cinecdc v{__version__}")


@app.command()
def status():
    """Show daemon status."""
    with _client() as client:
        try:
            resp = client.get("/health")
            data = resp.json()
            console.print(f"[green]●[/green] cinecdc daemon v{data['version']} — running")
            jobs = data.get("scheduler_jobs", [])
            if jobs:
                console.print(f"  Scheduled jobs: {len(jobs)}")
                for j in jobs:
                    console.print(f"    {j['id']} → next: {j.get('next_run', '—')}")
            else:
                console.print("  No scheduled jobs")
        except httpx.ConnectError:
            settings = get_client_settings()
            console.print(f"[red]●[/red] Daemon not running at {settings.host}")


if __name__ == "__main__":
    app()
