"""Command-line interface for the usage tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from . import timeconv
from .config import DEFAULT_TOP_APPS_LIMIT, CollectorSettings
from .errors import StorageUnavailable
from .paths import get_db_path, get_log_path
from .store import SessionStore

app = typer.Typer(help="Local-first foreground window usage tracker.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def _validate_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        timeconv.parse_date(value)
    except ValueError as exc:
        raise typer.BadParameter("expected a date in YYYY-MM-DD format") from exc
    return value


def _open_store(db_path: Optional[Path]) -> SessionStore:
    try:
        return SessionStore.open(db_path or get_db_path())
    except StorageUnavailable as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


DB_OPTION = typer.Option(
    None,
    "--db",
    help="Location of the session SQLite database.",
)
DATE_OPTION = typer.Option(
    None,
    "--date",
    callback=_validate_date,
    help="Date (YYYY-MM-DD). Defaults to today.",
)


@app.command()
def collect(
    db_path: Optional[Path] = DB_OPTION,
    sample_seconds: float = typer.Option(
        1.0,
        "--interval",
        min=0.1,
        help="Sampling interval in seconds.",
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Minutes without input before the open session is closed.",
    ),
    log_file: bool = typer.Option(
        True,
        "--log-file/--no-log-file",
        help="Also append logs to the tracker log in the data directory.",
    ),
) -> None:
    """Run the background collector until interrupted."""
    from .collector import ActivityCollector, create_default_observer

    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)

    try:
        observer = create_default_observer()
    except RuntimeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    settings = CollectorSettings.from_intervals(
        sample_seconds=sample_seconds, idle_minutes=idle_minutes
    )
    with _open_store(db_path) as store:
        ActivityCollector(store, observer, settings).run_forever()


@app.command()
def summary(
    date: Optional[str] = DATE_OPTION,
    limit: int = typer.Option(DEFAULT_TOP_APPS_LIMIT, "--limit", min=1, help="Applications to list."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print totals, top applications and a breakdown for one day."""
    from .reporting import SummaryPrinter

    with _open_store(db_path) as store:
        SummaryPrinter(store, top_limit=limit).print_daily_summary(date or timeconv.today())


@app.command()
def hourly(
    date: Optional[str] = DATE_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print the hour-by-hour heat strip for one day."""
    from .reporting import SummaryPrinter

    with _open_store(db_path) as store:
        SummaryPrinter(store).print_hourly(date or timeconv.today())


@app.command()
def top(
    start: Optional[str] = typer.Option(
        None, "--start", callback=_validate_date, help="First day (YYYY-MM-DD), inclusive."
    ),
    end: Optional[str] = typer.Option(
        None, "--end", callback=_validate_date, help="Last day (YYYY-MM-DD), inclusive."
    ),
    limit: int = typer.Option(DEFAULT_TOP_APPS_LIMIT, "--limit", min=1, help="Applications to list."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Rank applications by tracked time over a date range."""
    from .reporting import SummaryPrinter

    first_day = start or timeconv.today()
    last_day = end or first_day
    if timeconv.parse_date(last_day) < timeconv.parse_date(first_day):
        raise typer.BadParameter("--end must be on or after --start")
    with _open_store(db_path) as store:
        SummaryPrinter(store).print_top(first_day, last_day, limit)


@app.command()
def stats(db_path: Optional[Path] = DB_OPTION) -> None:
    """Print all-time tracking statistics."""
    from .reporting import SummaryPrinter

    with _open_store(db_path) as store:
        SummaryPrinter(store).print_stats()


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = DB_OPTION,
    sample_seconds: float = typer.Option(
        1.0,
        "--interval",
        min=0.1,
        help="Sampling interval in seconds.",
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Minutes without input before the open session is closed.",
    ),
    collect_activity: bool = typer.Option(
        True,
        "--collect/--no-collect",
        help="Run the collector in the background while serving.",
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the status endpoint in your default browser.",
    ),
) -> None:
    """Serve the JSON API, optionally with the background collector."""
    from .server_runner import run_dashboard

    settings = CollectorSettings.from_intervals(
        sample_seconds=sample_seconds,
        idle_minutes=idle_minutes,
    )
    try:
        run_dashboard(
            host=host,
            port=port,
            db_path=db_path or get_db_path(),
            settings=settings,
            start_collector=collect_activity,
            open_browser=open_browser,
        )
    except StorageUnavailable as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
