"""CLI commands for remaimber.

- serve: run the HTTP API
- init-db: create the database schema
- grade: grade one answer against the oracle, synchronously
- stats: show per-question mastery of a bank
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from remaimber.config.app_config import load_app_config
from remaimber.core.errors import GradeError, NotFoundError
from remaimber.core.grader import LLMGrader
from remaimber.core.mastery import CORRECT_THRESHOLD
from remaimber.core.models import BankType
from remaimber.db.database import Database
from remaimber.db.store import SQLiteStore
from remaimber.llm.client import LLMClient, LLMConfig
from remaimber.logging_setup import configure_logging

app = typer.Typer(
    name="remaimber",
    help="Practice question banks with asynchronous LLM grading.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML config file")


@app.command()
def serve(
    config_path: Path | None = ConfigOption,
    host: str | None = typer.Option(None, help="Bind address (overrides config)"),
    port: int | None = typer.Option(None, help="Port (overrides config)"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from remaimber.web.api import create_app

    config = load_app_config(config_path)
    configure_logging(config.server.log_level, config.server.json_logs)

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.server.log_level,
    )


@app.command(name="init-db")
def init_db(config_path: Path | None = ConfigOption) -> None:
    """Create the database file and schema."""
    config = load_app_config(config_path)
    db = Database(config.database.path)
    db.init()
    console.print(f"[green]✓ Database ready at {db.path}[/green]")


@app.command()
def grade(
    question: str = typer.Option(..., "--question", "-q", help="Question text"),
    expected: str = typer.Option(..., "--expected", "-e", help="Expected answer"),
    answer: str = typer.Option(..., "--answer", "-a", help="Answer to grade"),
    bank_type: BankType = typer.Option(BankType.THEORY, "--type", "-t", help="Grading mode"),
    rubric: str | None = typer.Option(None, "--rubric", help="Custom grading rules"),
    config_path: Path | None = ConfigOption,
) -> None:
    """Grade a single answer and print covered/missed points."""
    config = load_app_config(config_path)
    configure_logging("warning")

    client = LLMClient(LLMConfig.from_settings(config.llm))
    grader = LLMGrader(client, max_attempts=config.grading.max_attempts)

    with console.status("Grading..."):
        try:
            outcome = grader.grade(question, expected, answer, rubric, bank_type)
        except GradeError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1)

    color = "green" if outcome.score >= CORRECT_THRESHOLD else "yellow"
    console.print(f"[bold {color}]Score: {outcome.score}/100[/bold {color}]")
    for point in outcome.covered:
        console.print(f"  [green]✓[/green] {point}")
    for point in outcome.missed:
        console.print(f"  [red]✗[/red] {point}")


@app.command()
def stats(
    bank_id: str = typer.Argument(..., help="Bank ID"),
    config_path: Path | None = ConfigOption,
) -> None:
    """Show per-question statistics and mastery of a bank."""
    config = load_app_config(config_path)
    db = Database(config.database.path)
    db.init()
    store = SQLiteStore(db)

    try:
        bank = store.get_bank(bank_id)
    except NotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    subjects = {q.id: q.subject for q in bank.questions}

    table = Table(title=f"{bank.subject} ({bank.bank_type.value})")
    table.add_column("Question")
    table.add_column("Answered", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Mastery", justify="right")

    for s in store.get_question_stats_by_bank(bank.id):
        table.add_row(
            subjects.get(s.question_id, s.question_id),
            str(s.times_answered),
            str(s.times_correct),
            str(s.latest_score),
            str(s.mastery),
        )

    console.print(table)
    console.print(f"Bank mastery: [bold]{store.get_bank_mastery(bank.id)}[/bold]")
