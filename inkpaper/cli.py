"""
CLI Interface
=============
Command-line interface for the ink paper engine.

Usage:
    python -m inkpaper build <entries.json> -q 7 -s 2 --format both
    python -m inkpaper preview <entries.json> -q 7
    python -m inkpaper escape <text>
    python -m inkpaper inspect <strokes.json>

Entries file: a JSON list of tagged strings ("Q1: text") or objects
{"question": 1, "text": "..."}.
Strokes file: a JSON list of strokes, each a list of [x, y, t] points.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click
from rich.console import Console
from rich.markup import escape as escape_markup
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .assembler import MarksSheet
from .capture import StrokeCapture
from .engine import EngineConfig, InkPaperEngine
from .errors import InkPaperError, InvalidMarksInput
from .models import ExportFormat, PaperSetup, TimedPoint
from .recognition import RecognitionAdapter
from .rtf import escape_rtf_text
from .store import RecognitionStore

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="inkpaper")
def cli():
    """Ink Paper Engine: handwritten questions to exam papers."""
    pass


def paper_options(func):
    """Options shared by the commands that assemble a paper."""
    options = [
        click.option(
            "--questions", "-q",
            default=5,
            type=click.IntRange(min=1),
            help="Number of questions on the paper",
        ),
        click.option(
            "--sections", "-s",
            default=1,
            type=click.IntRange(min=1),
            help="Number of sections (A, B, ...)",
        ),
        click.option(
            "--title", "-t",
            default="",
            help="Paper title (defaults to QUESTION PAPER)",
        ),
        click.option(
            "--time",
            "time_hours",
            default=3,
            type=click.IntRange(min=1),
            help="Time allowed in hours",
        ),
        click.option(
            "--marks", "-m",
            multiple=True,
            help="Marks for a question as Q=N, e.g. -m 1=10 (repeatable)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@click.argument("entries_path", type=click.Path(exists=True))
@paper_options
@click.option(
    "--format", "-f",
    "fmt",
    default="both",
    type=click.Choice(["doc", "pdf", "both"]),
    help="Export format",
)
@click.option(
    "--output", "-o",
    default="output",
    help="Output directory for exported papers",
)
@click.option(
    "--font",
    default=None,
    type=click.Path(),
    help="TTF/OTF font for the PDF (e.g. Noto Sans Devanagari)",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
def build(
    entries_path: str,
    questions: int,
    sections: int,
    title: str,
    time_hours: int,
    marks: tuple[str, ...],
    fmt: str,
    output: str,
    font: str,
    log_level: str,
    log_file: str,
):
    """Assemble a paper from recognized entries and export it."""

    config = EngineConfig(
        output_dir=output,
        font_path=font,
        log_level=log_level,
        log_file=log_file,
    )

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Ink Paper Engine v{__version__}[/]\n"
            f"[dim]Entries: {escape_markup(entries_path)}[/]",
            border_style="cyan",
        )
    )
    console.print()

    try:
        engine = InkPaperEngine(config)
        count = _load_entries(engine.store, entries_path)
        setup = PaperSetup(
            total_questions=questions,
            title=title or None,
            time_hours=time_hours,
            sections=sections,
        )
        paper = engine.build_paper(setup, _parse_marks(marks))
        report = engine.validate(paper)

        formats = (
            [ExportFormat.DOC, ExportFormat.PDF] if fmt == "both"
            else [ExportFormat(fmt)]
        )
        results = asyncio.run(_export_all(engine, paper, formats))

        console.print(f"[dim]Loaded {count} entries[/]")
        _display_report(report.model_dump())
        _display_exports(results)

    except click.BadParameter:
        raise
    except (InkPaperError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/] {escape_markup(str(e))}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {escape_markup(str(e))}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("entries_path", type=click.Path(exists=True))
@paper_options
def preview(
    entries_path: str,
    questions: int,
    sections: int,
    title: str,
    time_hours: int,
    marks: tuple[str, ...],
):
    """Show the assembled paper without exporting it."""

    try:
        engine = InkPaperEngine(EngineConfig(log_level="WARNING"))
        _load_entries(engine.store, entries_path)
        setup = PaperSetup(
            total_questions=questions,
            title=title or None,
            time_hours=time_hours,
            sections=sections,
        )
        paper = engine.build_paper(setup, _parse_marks(marks))
        report = engine.validate(paper)
    except click.BadParameter:
        raise
    except (InkPaperError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/] {escape_markup(str(e))}")
        sys.exit(1)

    console.print()
    console.print(
        Panel.fit(
            f"[bold]{escape_markup(paper.title)}[/]\n"
            f"[dim]{paper.time_label}  |  {paper.marks_label}[/]",
            border_style="cyan",
        )
    )
    console.print()

    for section in paper.sections:
        table = Table(title=section.label, border_style="cyan")
        table.add_column("Q", style="bold", justify="right")
        table.add_column("Text")
        table.add_column("Marks", justify="right")
        for question in paper.section_questions(section):
            text = escape_markup(question.text)
            if not question.has_text:
                text = f"[dim]{text}[/]"
            marks_cell = str(question.display_marks)
            if question.marks is None:
                marks_cell = f"[yellow]{marks_cell}*[/]"
            table.add_row(f"Q.{question.number}", text, marks_cell)
        console.print(table)
        console.print()

    _display_report(report.model_dump())


@cli.command()
@click.argument("text")
def escape(text: str):
    """Print the RTF escape sequence for TEXT."""
    click.echo(escape_rtf_text(text))


@cli.command()
@click.argument("strokes_path", type=click.Path(exists=True))
def inspect(strokes_path: str):
    """Replay a strokes file and show the recognizer input."""

    with open(strokes_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    capture = StrokeCapture()
    try:
        for stroke in data:
            points = [_to_point(p) for p in stroke]
            if not points:
                continue
            capture.begin_stroke(points[0])
            for point in points[1:]:
                capture.extend_stroke(point)
            capture.end_stroke()
    except (InkPaperError, ValueError, KeyError, TypeError) as e:
        console.print(
            f"[red]Error:[/] invalid strokes file: {escape_markup(str(e))}"
        )
        sys.exit(1)

    ink = RecognitionAdapter.build_input(capture)
    strokes = capture.snapshot()

    table = Table(title="Recognizer Input", border_style="cyan")
    table.add_column("Stroke", style="bold", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Start", justify="left")
    for i, stroke in enumerate(strokes, start=1):
        first = stroke.points[0]
        table.add_row(
            str(i),
            str(len(stroke.points)),
            str(stroke.duration_ms),
            f"({first.x:g}, {first.y:g}) @ {first.t}",
        )

    console.print()
    console.print(table)
    console.print(
        f"[bold]Total:[/] {ink.stroke_count} strokes, {ink.point_count} points"
    )
    console.print()


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _load_entries(store: RecognitionStore, path: str) -> int:
    """Import an entries file into the store, oldest entry first."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("entries file must contain a JSON list")

    for item in data:
        if isinstance(item, str):
            store.add_tagged(item)
        elif isinstance(item, dict) and "text" in item:
            store.add(str(item["text"]), question_index=item.get("question"))
        else:
            raise ValueError(f"unsupported entry: {item!r}")
    return len(data)


def _parse_marks(values: tuple[str, ...]) -> MarksSheet:
    sheet = MarksSheet()
    for value in values:
        question, sep, amount = value.partition("=")
        try:
            number = int(question)
        except ValueError:
            number = 0
        if not sep or number < 1:
            raise click.BadParameter(
                f"expected Q=N, got {value!r}", param_hint="--marks"
            )
        try:
            sheet.set_from_text(number, amount)
        except InvalidMarksInput as e:
            raise click.BadParameter(str(e), param_hint="--marks") from e
    return sheet


def _to_point(raw) -> TimedPoint:
    if isinstance(raw, dict):
        return TimedPoint(x=raw["x"], y=raw["y"], t=raw["t"])
    x, y, t = raw
    return TimedPoint(x=x, y=y, t=t)


async def _export_all(engine: InkPaperEngine, paper, formats):
    return [await engine.export(paper, fmt) for fmt in formats]


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_report(report: dict):
    """Display a paper report as a rich table."""
    table = Table(title="Paper Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[yellow]⚠[/]"

    total = report.get("total_questions", 0)
    rate = report.get("completion_rate", 0)
    table.add_row(
        "Total Questions",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row("Sections", str(report.get("section_count", 0)), "")
    table.add_row(
        "Questions With Text",
        f"{report.get('questions_with_text', 0)} ({rate}%)",
        "[green]✓[/]" if rate >= 100 else "[yellow]⚠[/]",
    )

    placeholders = report.get("placeholder_questions", [])
    table.add_row(
        "Placeholder Questions",
        str(len(placeholders)),
        status_icon(len(placeholders)),
    )

    missing_marks = report.get("questions_missing_marks", [])
    table.add_row(
        "Questions Without Marks",
        str(len(missing_marks)),
        status_icon(len(missing_marks)),
    )
    table.add_row(
        "Maximum Marks",
        str(report.get("explicit_marks_total", 0)),
        "",
    )
    table.add_row(
        "Marks Shown On Page",
        str(report.get("display_marks_total", 0)),
        "",
    )

    console.print(table)
    console.print()


def _display_exports(results):
    table = Table(title="Exports", border_style="cyan")
    table.add_column("Format", style="bold")
    table.add_column("File")
    table.add_column("Size", justify="right")
    for result in results:
        table.add_row(
            result.format.value.upper(),
            escape_markup(result.path),
            f"{result.size_bytes / 1024:.1f} KB",
        )
    console.print(table)
    console.print()


# ─── Entry point (for python -m inkpaper.cli) ─────────────────────────────────


if __name__ == "__main__":
    cli()
