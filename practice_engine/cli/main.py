"""
Typer CLI for the practice engine.

Commands:
    practice db init            - Create database tables
    practice db drop            - Drop database tables
    practice db check           - Check database connectivity
    practice tiers              - Show daily session limits per tier
    practice limits STUDENT     - Show today's session quota for a student
    practice history STUDENT    - List a student's sessions with filters
    practice serve              - Run the HTTP API

Usage:
    practice --help
    practice limits student-42 --force
    practice history student-42 --range last7days --subject Mathematics
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from practice_engine.core.logging import configure_logging

app = typer.Typer(
    help="Practice engine CLI: quotas, history and the HTTP service",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    configure_logging(level="DEBUG" if verbose else "WARNING")


# ========================================
# Database
# ========================================

db_app = typer.Typer(help="Database management (init, drop, check)")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Create all tables from the SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from practice_engine.db.database import init_db

    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("drop")
def db_drop(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Drop all practice engine tables."""
    if not yes:
        typer.confirm("Drop all practice engine tables?", abort=True)

    from practice_engine.db.database import drop_db

    drop_db()
    rprint("[yellow]Database tables dropped[/yellow]")


@db_app.command("check")
def db_check() -> None:
    """Exit non-zero when the database is unreachable."""
    from practice_engine.db.database import check_connection

    if not check_connection():
        rprint("[red]✗[/red] Database unavailable")
        raise typer.Exit(code=1)
    rprint("[green]✓[/green] Database reachable")


# ========================================
# Quota
# ========================================


@app.command("tiers")
def show_tiers() -> None:
    """Show daily session limits per subscription tier."""
    settings = get_settings()
    table = Table(title=f"Daily session limits ({settings.reference_timezone})")
    table.add_column("Tier", style="cyan")
    table.add_column("Sessions/day", justify="right")

    for tier, limit in settings.session_limits.items():
        marker = " (default)" if tier == settings.default_tier else ""
        table.add_row(f"{tier}{marker}", str(limit))
    table.add_row("[dim]unknown[/dim]", str(settings.fallback_sessions_per_day))
    console.print(table)


@app.command("limits")
def show_limits(
    student_id: str = typer.Argument(..., help="Student id"),
    force: bool = typer.Option(False, "--force", help="Bypass the limit cache"),
) -> None:
    """Show how many sessions a student has started today."""
    from practice_engine.db import SqlPersistenceGateway
    from practice_engine.practice.limits import SessionLimitGate

    gate = SessionLimitGate(SqlPersistenceGateway())
    status = asyncio.run(gate.check_limit(student_id, force=force))

    colour = "green" if status.can_start_session else "red"
    rprint(
        f"[bold]{student_id}[/bold]: {status.sessions_today}/{status.session_limit} sessions today, "
        f"[{colour}]{status.remaining_sessions} remaining[/{colour}]"
    )


# ========================================
# History
# ========================================


@app.command("history")
def show_history(
    student_id: str = typer.Argument(..., help="Student id"),
    date_range: str = typer.Option("alltime", "--range", "-r", help="today, last7days, last30days, alltime"),
    grade: Optional[str] = typer.Option(None, "--grade", help="Grade level name"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Subject name"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Topic name"),
    sub_topic: Optional[str] = typer.Option(None, "--sub-topic", help="Sub-topic name"),
) -> None:
    """List a student's practice sessions, newest first."""
    import pytz

    from practice_engine.db import SqlPersistenceGateway
    from practice_engine.practice import history
    from practice_engine.practice.limits import utc_now

    try:
        selected_range = history.DateRange(date_range)
    except ValueError:
        rprint(f"[red]Unknown range:[/red] {date_range}")
        raise typer.Exit(code=2)

    settings = get_settings()
    sessions = asyncio.run(SqlPersistenceGateway().list_sessions(student_id))
    filters = history.HistoryFilters(
        grade_level_name=grade,
        subject_name=subject,
        topic_name=topic,
        sub_topic_name=sub_topic,
        date_range=selected_range,
    )
    summaries = history.filter_sessions(
        [history.summarize_session(s) for s in sessions],
        filters,
        utc_now(),
        pytz.timezone(settings.reference_timezone),
    )

    if not summaries:
        rprint("[dim]No sessions found[/dim]")
        return

    table = Table(title=f"Practice history: {student_id}")
    table.add_column("Started", style="dim")
    table.add_column("Subject")
    table.add_column("Topic")
    table.add_column("Sub-topic")
    table.add_column("Answered", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Status")

    for s in summaries:
        table.add_row(
            s.created_at.strftime("%Y-%m-%d %H:%M"),
            s.subject_name,
            s.topic_name,
            s.sub_topic_name,
            f"{s.answered}/{s.total_questions}",
            f"{s.score}%" if s.score is not None else "-",
            "[green]completed[/green]" if s.status == "completed" else "[yellow]in progress[/yellow]",
        )
    console.print(table)


# ========================================
# Server
# ========================================


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "practice_engine.api.main:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
