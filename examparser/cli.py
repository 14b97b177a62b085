"""
CLI Interface
=============
Command-line front end for the extraction engine and the quiz session.

Usage:
    python -m examparser parse <file> [options]
    python -m examparser quiz <file> [--mode study|exam] [--duration N]
    python -m examparser export <file> [-o output.pdf] [--format pdf|json]
    python -m examparser info <file>
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .engine import ExtractionConfig, ExtractionEngine
from .errors import ExamParserError, SessionError
from .export import derive_exam_title, export_json, save_pdf
from .models import OPTION_LABELS, SessionMode
from .pdf_reader import PDFReader
from .session import ExamSession
from .validator import ValidationEngine

console = Console()

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])


def _fail(error: Exception, log_level: str = "INFO"):
    console.print(f"[red]Error:[/] {error}")
    if log_level == "DEBUG":
        console.print_exception()
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="examparser")
def cli():
    """Exam question extractor and quiz runner."""
    pass


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--fallback-threshold",
    default=0,
    type=int,
    help="Fall through to the next strategy while at most this many questions were found",
)
@click.option(
    "--lenient-threshold",
    default=1,
    type=int,
    help="Run lenient strategies while at most this many questions were found",
)
@click.option(
    "--no-per-page",
    is_flag=True,
    default=False,
    help="Skip the page-by-page retry for PDFs",
)
@click.option(
    "--no-pad",
    is_flag=True,
    default=False,
    help="Do not pad lenient matches to four options",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS, help="Logging level")
@click.option("--log-file", default=None, help="Path to log file")
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    path: str,
    fallback_threshold: int,
    lenient_threshold: int,
    no_per_page: bool,
    no_pad: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Extract questions from an exam file."""

    if json_output:
        log_level = "ERROR"

    config = ExtractionConfig(
        fallback_threshold=fallback_threshold,
        lenient_threshold=lenient_threshold,
        per_page_retry=not no_per_page,
        pad_options=not no_pad,
        log_level=log_level,
        log_file=log_file,
    )

    try:
        result = ExtractionEngine(config).load_file(path)
    except ExamParserError as e:
        _fail(e, log_level)

    if json_output:
        click.echo(json.dumps(
            result.model_dump(by_alias=True),
            indent=2,
            ensure_ascii=False,
        ))
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]examparser v{__version__}[/]\n"
            f"[dim]Parsed: {os.path.basename(path)}[/]",
            border_style="cyan",
        )
    )
    _display_questions(result.questions)
    _display_report(ValidationEngine().validate(result))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode", "-m",
    default="study",
    type=click.Choice([m.value for m in SessionMode]),
    help="study: immediate feedback; exam: timed, scored at the end",
)
@click.option("--duration", "-d", default=60, type=int, help="Exam duration in minutes")
@click.option("--log-level", default="WARNING", type=LOG_LEVELS, help="Logging level")
def quiz(path: str, mode: str, duration: int, log_level: str):
    """Run an interactive quiz over an exam file."""

    try:
        result = ExtractionEngine(ExtractionConfig(log_level=log_level)).load_file(path)
    except ExamParserError as e:
        _fail(e, log_level)

    session = ExamSession(result.questions)
    view = session.start(SessionMode(mode), duration_minutes=duration)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]{result.title or 'Exam Questions'}[/]\n"
            f"[dim]{session.total} questions, {mode} mode. "
            f"Answer with a letter; n/p to move, g<number> to jump, e to end.[/]",
            border_style="cyan",
        )
    )

    while session.state.in_progress:
        _display_question(view, session)
        choice = click.prompt("Your choice", default="", show_default=False).strip().lower()

        try:
            if len(choice) == 1 and choice.upper() in OPTION_LABELS:
                feedback = session.answer(OPTION_LABELS.index(choice.upper()))
                if feedback.is_correct is not None:
                    verdict = "[green]Correct![/]" if feedback.is_correct else "[red]Incorrect.[/]"
                    console.print(f"{verdict} Answer: {_label(feedback.correct_answer_index)}")
                    console.print(f"[dim]{feedback.explanation}[/]")
                else:
                    console.print("[dim]Answer recorded.[/]")

                next_view = session.next_question()
                if next_view is None:
                    session.end()
                else:
                    view = next_view
            elif choice == "n":
                view = session.next_question() or view
            elif choice == "p":
                view = session.previous_question() or view
            elif choice.startswith("g") and choice[1:].isdigit():
                view = session.jump_to(int(choice[1:]) - 1)
            elif choice == "e":
                session.end()
            else:
                console.print("[yellow]Unknown choice[/]")
        except SessionError as e:
            console.print(f"[yellow]{e}[/]")

    _display_results(session)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output file (defaults to <name>.<format>)")
@click.option(
    "--format", "fmt",
    default="pdf",
    type=click.Choice(["pdf", "json"]),
    help="Export format",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS, help="Logging level")
def export(path: str, output: str, fmt: str, log_level: str):
    """Convert an exam file to a printable PDF or a JSON question file."""

    try:
        result = ExtractionEngine(ExtractionConfig(log_level=log_level)).load_file(path)
    except ExamParserError as e:
        _fail(e, log_level)

    if result.is_placeholder:
        _fail(ExamParserError(f"No questions found in {os.path.basename(path)}"), log_level)

    title = result.title or derive_exam_title(path)
    target = output or str(Path(path).with_suffix(f".{fmt}"))
    if Path(target).resolve() == Path(path).resolve():
        target = str(Path(path).with_name(f"{Path(path).stem}_export.{fmt}"))

    if fmt == "pdf":
        written = save_pdf(result.questions, title, target)
    else:
        export_json(result.questions, title, target)
        written = target

    console.print(
        f"[green]✓[/] Exported {len(result.questions)} questions to [bold]{written}[/]"
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def info(path: str):
    """Display exam file information."""

    table = Table(title="File Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(path))
    table.add_row("Size", f"{os.path.getsize(path) / 1024:.1f} KB")
    table.add_row("Title", derive_exam_title(os.path.basename(path)))

    try:
        if Path(path).suffix.lower() == ".pdf":
            table.add_row("Pages", str(PDFReader().get_page_count(path)))
        result = ExtractionEngine(ExtractionConfig(log_level="ERROR")).load_file(path)
    except ExamParserError as e:
        _fail(e)

    table.add_row("Strategy", result.strategy)
    table.add_row("Questions", "0" if result.is_placeholder else str(len(result.questions)))

    console.print()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _label(index: int) -> str:
    return OPTION_LABELS[index] if index < len(OPTION_LABELS) else str(index + 1)


def _display_questions(questions):
    """Display extracted questions as a table."""
    console.print()
    table = Table(title="Extracted Questions", border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Options", justify="right")
    table.add_column("Answer", justify="center")

    for number, q in enumerate(questions, start=1):
        text = q.text if len(q.text) <= 70 else q.text[:67] + "..."
        answer = q.correct_letter if q.answer_detected else f"[dim]{q.correct_letter}?[/]"
        table.add_row(str(number), text, str(len(q.options)), answer)

    console.print(table)
    console.print()


def _display_report(report):
    """Display the extraction report as a rich table."""
    table = Table(title="Extraction Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Total Questions",
        "0" if report.is_placeholder else str(report.total_questions),
        "[red]✗[/]" if report.is_placeholder else "[green]✓[/]",
    )
    table.add_row("Strategy", report.strategy, "")
    table.add_row(
        "Questions Without Answer",
        f"{len(report.questions_without_answer)} ({report.answer_rate}% answered)",
        status_icon(len(report.questions_without_answer)),
    )
    table.add_row(
        "Questions Missing Explanation",
        str(len(report.questions_without_explanation)),
        status_icon(len(report.questions_without_explanation)),
    )
    table.add_row(
        "Padded Options",
        str(len(report.questions_with_padded_options)),
        status_icon(len(report.questions_with_padded_options)),
    )
    table.add_row(
        "Duplicate Questions",
        str(len(report.duplicate_questions)),
        status_icon(len(report.duplicate_questions)),
    )

    console.print(table)
    console.print()


def _display_question(view, session):
    header = f"Question {view.question_index + 1} of {view.total_questions}"
    if session.state.mode == SessionMode.EXAM:
        header += f"  [dim]({session.formatted_time()} left)[/]"

    lines = [view.question.text, ""]
    for index, option in enumerate(view.question.options):
        marker = " [cyan]←[/]" if view.user_answer == index else ""
        lines.append(f"  {_label(index)}. {option}{marker}")

    console.print()
    console.print(Panel("\n".join(lines), title=header, border_style="cyan"))


def _display_results(session):
    results = session.results()

    console.print()
    table = Table(title="Results", border_style="green")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Yours", justify="center")
    table.add_column("Correct", justify="center")
    table.add_column("", justify="center")

    for number, row in enumerate(results.questions, start=1):
        yours = "-" if row.user_answer is None else _label(row.user_answer)
        text = row.text if len(row.text) <= 60 else row.text[:57] + "..."
        table.add_row(
            str(number), text, yours, _label(row.correct_answer_index),
            "[green]✓[/]" if row.is_correct else "[red]✗[/]",
        )

    console.print(table)
    console.print(
        f"[bold]Score:[/] {results.score}/{results.total_questions} "
        f"({results.percentage}%), {results.answered_questions} answered"
    )
    console.print()


# ─── Entry point (for python -m examparser.cli) ───────────────────────────────


if __name__ == "__main__":
    cli()
