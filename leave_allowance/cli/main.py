"""
CLI interface for Leave Allowance.

Provides command-line access to employee records and allowance figures.
"""

import asyncio
import sys
from datetime import date, datetime
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from leave_allowance.config.loader import AllowanceConfig, load_allowance_config
from leave_allowance.core.calculator import AllowanceCalculator
from leave_allowance.core.clock import start_of_year
from leave_allowance.core.resolver import promise_allowance
from leave_allowance.logging_setup import configure_logging
from leave_allowance.storage.db import DEFAULT_DB_PATH
from leave_allowance.storage.models import (
    AllowanceAdjustment,
    Department,
    LeaveRecord,
    LeaveStatus,
)
from leave_allowance.storage.repository import (
    fetch_allowance_adjustment,
    initialize_schema,
    insert_employee,
    insert_leave_record,
    load_employee_record,
    set_allowance_adjustment,
    upsert_department,
)

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

CONFIG_OPTION_HELP = "YAML configuration providing the database path and logging level"
DB_OPTION_HELP = (
    f"Path to the SQLite database (defaults to the configured path, then {DEFAULT_DB_PATH})"
)


def _load_settings(
    config: Optional[str],
    db: Optional[str]
) -> Tuple[Optional[AllowanceConfig], str]:
    """Load the optional config, apply its logging level and pick the database.

    An explicit --db wins over the configured database path.
    """
    if config is None:
        return None, db or DEFAULT_DB_PATH
    allowance_config = load_allowance_config(config)
    configure_logging(allowance_config.logging.numeric_level)
    return allowance_config, db or allowance_config.database.path


def _parse_date(value: str, option: str) -> date:
    """Parse a YYYY-MM-DD option value."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"{option} must be YYYY-MM-DD, got {value!r}")


def _parse_instant(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime option value."""
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"--now must be an ISO 8601 date or datetime, got {value!r}")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Leave Allowance CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Leave Allowance - Use --help to see available commands")


@app.command()
def init(
    config: str = typer.Option(
        ...,
        "--config",
        "-c",
        help="YAML configuration with database and departments"
    )
):
    """Initialize the database and store configured departments."""
    try:
        allowance_config = load_allowance_config(config)
        configure_logging(allowance_config.logging.numeric_level)
        db_path = allowance_config.database.path
        initialize_schema(db_path)
        for name, department in allowance_config.departments.items():
            upsert_department(Department(
                name=name,
                allowance=department.allowance,
                is_accrued_allowance=department.is_accrued_allowance
            ), db_path)
        console.print(
            f"[green]✓[/] Database initialized with "
            f"{len(allowance_config.departments)} department(s) at {db_path}"
        )
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("add-employee")
def add_employee(
    name: str = typer.Argument(..., help="Employee name"),
    department: str = typer.Option(..., "--department", "-d", help="Department name"),
    start_date: str = typer.Option(..., "--start-date", help="First day of employment"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="Last day of employment"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    db: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP)
):
    """Add an employee to a department.

    With --config the department must be one of the configured departments.
    """
    start = _parse_date(start_date, "--start-date")
    end = _parse_date(end_date, "--end-date") if end_date else None
    try:
        allowance_config, db_path = _load_settings(config, db)
        if allowance_config is not None:
            allowance_config.get_department(department)
        employee_id = insert_employee(name, department, start, end, db_path=db_path)
        console.print(f"[green]✓[/] Added {name} with id {employee_id}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("record-leave")
def record_leave(
    employee_id: int = typer.Argument(..., help="Employee id"),
    start_date: str = typer.Option(..., "--start-date", help="First day of the leave"),
    days: float = typer.Option(..., "--days", help="Days deducted by the leave"),
    no_allowance: bool = typer.Option(
        False,
        "--no-allowance",
        help="Leave type does not use the allowance"
    ),
    status: LeaveStatus = typer.Option(LeaveStatus.APPROVED, "--status", help="Leave status"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    db: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP)
):
    """Record leave taken by an employee."""
    start = _parse_date(start_date, "--start-date")
    try:
        _, db_path = _load_settings(config, db)
        insert_leave_record(LeaveRecord(
            employee_id=employee_id,
            start_date=start,
            days=days,
            uses_allowance=not no_allowance,
            status=status
        ), db_path=db_path)
        console.print(f"[green]✓[/] Recorded {days:g} day(s) for employee {employee_id}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def adjust(
    employee_id: int = typer.Argument(..., help="Employee id"),
    year: int = typer.Option(..., "--year", "-y", help="Allowance year"),
    adjustment: Optional[float] = typer.Option(
        None,
        "--adjustment",
        help="Signed manual adjustment in days"
    ),
    carry_over: Optional[float] = typer.Option(
        None,
        "--carry-over",
        help="Signed days carried over from the previous year"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    db: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP)
):
    """Set the manual adjustment and carry over for an employee year.

    Values not given keep what is already stored.
    """
    try:
        _, db_path = _load_settings(config, db)
        current = fetch_allowance_adjustment(employee_id, year, db_path=db_path)
        updated = AllowanceAdjustment(
            employee_id=employee_id,
            year=year,
            adjustment=current.adjustment if adjustment is None else adjustment,
            carried_over_allowance=(
                current.carried_over_allowance if carry_over is None else carry_over
            )
        )
        set_allowance_adjustment(updated, db_path=db_path)
        console.print(
            f"[green]✓[/] {year}: adjustment {updated.adjustment:g}, "
            f"carry over {updated.carried_over_allowance:g}"
        )
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def show(
    employee_id: int = typer.Argument(..., help="Employee id"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Allowance year"),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Evaluation instant (ISO 8601), used with --force-now"
    ),
    force_now: bool = typer.Option(
        False,
        "--force-now",
        help="Evaluate as of --now instead of the year default"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    db: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP)
):
    """Show an employee's allowance breakdown for a year."""
    instant = _parse_instant(now) if now else None
    try:
        _, db_path = _load_settings(config, db)
        record = load_employee_record(employee_id, db_path=db_path)
        calculator = asyncio.run(promise_allowance(
            user=record,
            year=start_of_year(year) if year is not None else None,
            now=instant,
            force_now=force_now
        ))
        _display_allowance(record.name, calculator)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _format_days(value: float) -> str:
    """Format a day count without trailing zeros."""
    return f"{value:g}"


def _display_allowance(name: str, calculator: AllowanceCalculator) -> None:
    """Display allowance figures as a table."""
    figures = calculator.breakdown()

    table = Table(title=f"Allowance for {name} as of {calculator.now.date().isoformat()}")
    table.add_column("Item")
    table.add_column("Days", justify="right")

    table.add_row("Nominal allowance", _format_days(figures["nominal_allowance"]))
    table.add_row("Carried over", _format_days(figures["carry_over"]))
    table.add_row("Manual adjustment", _format_days(figures["manual_adjustment"]))
    table.add_row("Employment range adjustment", _format_days(figures["employment_range_adjustment"]))
    table.add_row("[bold]Total allowance[/bold]", _format_days(figures["total_number_of_days_in_allowance"]))
    table.add_row("Taken", _format_days(figures["number_of_days_taken_from_allowance"]))
    if figures["is_accrued_allowance"]:
        table.add_row("Not yet accrued", _format_days(figures["accrued_adjustment"]))
    table.add_row("[bold]Available[/bold]", _format_days(figures["number_of_days_available_in_allowance"]))

    console.print(table)


if __name__ == "__main__":
    app()
