#!/usr/bin/env python3
"""ujl-analyze - JVM unified logging GC log analyzer.

Reads gc logs written with ``-Xlog:gc*`` (JDK 9+) for:
- Serial and Parallel GC
- CMS
- G1 GC
- Shenandoah
- ZGC
- Rich terminal output with tables
- Parsing coverage (diagnostics per kind)
- Optional Markdown export
- JSON lines export of every event
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.theme import Theme

from ujl_analyze import __version__
from ujl_analyze.config import ParserConfig, SummaryThresholds
from ujl_analyze.diagnostics import CollectingDiagnosticsSink, DiagnosticKind
from ujl_analyze.exceptions import UnifiedLogError, UnsupportedLogFormatError
from ujl_analyze.model import GCModel, GCSummary, PauseStatistics
from ujl_analyze.reader import read_events

# ============================================================
# RICH OUTPUT RENDERING
# ============================================================

UJL_ANALYZE_THEME = Theme(
    {
        "critical": "bold red",
        "warning": "bold yellow",
        "success": "bold green",
        "info": "cyan",
        "metric": "white",
        "label": "dim white",
        "header": "bold magenta",
    }
)

console = Console(theme=UJL_ANALYZE_THEME)


def configure_logging(verbose: bool) -> None:
    """Route all library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def create_key_value_table(title: str, rows: list[tuple[str, str]]) -> Table:
    """Create a simple two-column key/value table."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="label")
    table.add_column("Value", style="metric")
    for label, value in rows:
        table.add_row(label, value)
    return table


def create_pause_distribution_table(summary: GCSummary) -> Table:
    """Create pause time distribution table."""
    table = Table(title="Pause Time Analysis", show_header=True, header_style="header")

    table.add_column("Pauses", style="info")
    table.add_column("Count", justify="right", style="metric")
    table.add_column("Total", justify="right", style="metric")
    table.add_column("Average", justify="right", style="metric")
    table.add_column("Median", justify="right", style="metric")
    table.add_column("P95", justify="right", style="metric")
    table.add_column("P99", justify="right", style="metric")
    table.add_column("Maximum", justify="right", style="metric")

    for row in build_pause_distribution_rows(summary):
        table.add_row(
            row["type"],
            row["count"],
            row["total"],
            row["avg"],
            row["median"],
            row["p95"],
            row["p99"],
            row["max"],
        )
    return table


def create_events_per_kind_table(summary: GCSummary) -> Table:
    table = Table(title="Events per Kind", show_header=True, header_style="header")
    table.add_column("Kind", style="info")
    table.add_column("Count", justify="right", style="metric")
    for kind, count in summary.events_per_kind.items():
        table.add_row(kind, str(count))
    return table


def format_seconds(seconds: float) -> str:
    """Format seconds for human-readable output."""
    if seconds > 60:
        return f"{seconds:.1f}s ({seconds / 60:.1f}m)"
    return f"{seconds:.3f}s"


def format_kb(size_kb: int) -> str:
    if size_kb >= 1024 * 1024:
        return f"{size_kb / (1024 * 1024):.2f} GB"
    if size_kb >= 1024:
        return f"{size_kb / 1024:.1f} MB"
    return f"{size_kb} KB"


def build_overview_rows(summary: GCSummary) -> list[tuple[str, str]]:
    """Build rows for the runtime overview."""
    rows = [
        ("Total events", str(summary.total_event_count)),
        ("GC events", str(summary.gc_event_count)),
        ("Concurrent events", str(summary.concurrent_event_count)),
        ("VM operations", str(summary.vm_operation_count)),
        ("Runtime", format_seconds(summary.runtime_seconds)),
    ]
    if summary.first_datestamp is not None and summary.last_datestamp is not None:
        rows.append(("First event timestamp", summary.first_datestamp.isoformat()))
        rows.append(("Last event timestamp", summary.last_datestamp.isoformat()))
    if summary.first_uptime is not None and summary.last_uptime is not None:
        rows.append(("First event uptime", f"{summary.first_uptime:.3f}s"))
        rows.append(("Last event uptime", f"{summary.last_uptime:.3f}s"))
    rows.extend(
        [
            ("GC overhead", f"{summary.gc_overhead_pct:.2f}%"),
            ("Throughput", f"{summary.throughput_pct:.2f}%"),
            ("Long pauses", str(summary.long_pause_count)),
            ("Peak heap used after GC", format_kb(summary.peak_post_used_kb)),
            ("Peak heap size", format_kb(summary.peak_total_kb)),
        ]
    )
    return rows


def _pause_row(label: str, stats: PauseStatistics) -> dict[str, str]:
    return {
        "type": label,
        "count": str(stats.count),
        "total": format_seconds(stats.total),
        "avg": format_seconds(stats.average),
        "median": format_seconds(stats.median),
        "p95": format_seconds(stats.p95),
        "p99": format_seconds(stats.p99),
        "max": format_seconds(stats.maximum),
    }


def build_pause_distribution_rows(summary: GCSummary) -> list[dict[str, str]]:
    """Build pause distribution rows for output rendering."""
    return [
        _pause_row("GC pauses", summary.gc_pauses),
        _pause_row("VM operations", summary.vm_operation_pauses),
    ]


def build_parsing_coverage_rows(
    total_log_lines: int,
    usable_event_count: int,
    diagnostics: CollectingDiagnosticsSink,
) -> list[tuple[str, str]]:
    """Build rows describing parsing coverage."""
    rows = [
        ("Total log lines", str(total_log_lines)),
        ("Usable events", str(usable_event_count)),
        ("Diagnostics", str(len(diagnostics))),
    ]
    counts = diagnostics.counts()
    for kind in DiagnosticKind:
        if counts[kind] > 0:
            rows.append((f"  {kind.value}", str(counts[kind])))
    return rows


def render_rich_output(
    summary: GCSummary,
    *,
    total_log_lines: int,
    diagnostics: CollectingDiagnosticsSink,
) -> None:
    console.print()
    console.print(create_key_value_table("Runtime Overview", build_overview_rows(summary)))
    console.print()
    console.print(create_pause_distribution_table(summary))
    console.print()
    console.print(create_events_per_kind_table(summary))
    console.print()
    console.print(
        create_key_value_table(
            "Parsing Coverage",
            build_parsing_coverage_rows(total_log_lines, summary.total_event_count, diagnostics),
        )
    )


# ============================================================
# MARKDOWN EXPORT
# ============================================================


def export_markdown_summary(
    summary: GCSummary,
    output_path: Path,
    *,
    log_file: Path,
    total_log_lines: int | None = None,
    diagnostics: CollectingDiagnosticsSink | None = None,
) -> None:
    """Export analysis summary to Markdown format."""
    md_content: list[str] = []

    md_content.append("# GC Analysis Report\n\n")
    md_content.append(f"**Generated:** {datetime.now().isoformat()}\n\n")
    md_content.append(f"**Log file:** {log_file}\n\n")

    md_content.append("## Runtime Overview\n\n")
    for label, value in build_overview_rows(summary):
        md_content.append(f"- **{label}:** {value}\n")
    md_content.append("\n")

    md_content.append("## Pause Time Analysis\n\n")
    md_content.append("| Pauses | Count | Total | Average | Median | P95 | P99 | Maximum |\n")
    md_content.append("|---|---:|---:|---:|---:|---:|---:|---:|\n")
    for row in build_pause_distribution_rows(summary):
        md_content.append(
            f"| {row['type']} | {row['count']} | {row['total']} | {row['avg']} | "
            f"{row['median']} | {row['p95']} | {row['p99']} | {row['max']} |\n"
        )
    md_content.append("\n")

    if summary.events_per_kind:
        md_content.append("## Events per Kind\n\n")
        md_content.append("| Kind | Count |\n")
        md_content.append("|---|---:|\n")
        for kind, count in summary.events_per_kind.items():
            md_content.append(f"| {kind} | {count} |\n")
        md_content.append("\n")

    if total_log_lines is not None and diagnostics is not None:
        md_content.append("## Parsing Coverage\n\n")
        for label, value in build_parsing_coverage_rows(
            total_log_lines, summary.total_event_count, diagnostics
        ):
            md_content.append(f"- **{label.strip()}:** {value}\n")
        md_content.append("\n")

    output_path.write_text("".join(md_content), encoding="utf-8")


# ============================================================
# TYPER CLI INTERFACE
# ============================================================

app = typer.Typer(
    name="ujl-analyze",
    help="GC log analyzer for the JVM unified logging format (Serial, Parallel, CMS, G1, Shenandoah, ZGC)",
    add_completion=False,
    rich_markup_mode="rich",
)

LogFileArgument = Annotated[
    Path,
    typer.Argument(
        help="Path to GC log file to analyze",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]

TimezoneOption = Annotated[
    str | None,
    typer.Option(
        "--timezone",
        "-z",
        help="IANA zone for timestamps derived from epoch milliseconds (default: local zone)",
    ),
]


@app.command()
def analyze(
    log_file: LogFileArgument,
    timezone: TimezoneOption = None,
    long_pause: Annotated[
        float,
        typer.Option(
            "--long-pause",
            help="Pause length in seconds counted as a long pause (default: 1.0)",
            min=0.0,
        ),
    ] = 1.0,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Export analysis report to Markdown file (e.g., report.md)",
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with detailed parsing information",
        ),
    ] = False,
) -> None:
    """Analyze a JVM unified logging GC log file.

    Exit codes: 0 = events found, 1 = error or no usable events.
    """
    configure_logging(verbose)

    try:
        config = ParserConfig(timezone=timezone)
        thresholds = SummaryThresholds(long_pause_seconds=long_pause)

        with log_file.open(encoding="utf-8", errors="replace") as f:
            lines = f.readlines()

        if verbose:
            console.print(f"[info]Read {len(lines)} lines from {log_file}[/info]")

        diagnostics = CollectingDiagnosticsSink(log=verbose)
        with Progress(
            SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console
        ) as progress:
            parse_task = progress.add_task("[cyan]Parsing unified logging events...", total=None)
            model = GCModel.from_lines(lines, config, diagnostics)
            progress.update(parse_task, completed=100)

        if not model.events:
            raise UnsupportedLogFormatError(
                f"No usable GC events found in {log_file} (is it a -Xlog:gc log?)"
            )

        if verbose:
            console.print(f"[info]Successfully parsed {len(model)} GC events[/info]")

        summary = model.summarize(thresholds)
        render_rich_output(summary, total_log_lines=len(lines), diagnostics=diagnostics)

        if output:
            export_markdown_summary(
                summary,
                output,
                log_file=log_file,
                total_log_lines=len(lines),
                diagnostics=diagnostics,
            )
            console.print(f"\n[success]Summary exported to {output}[/success]")

    except (UnifiedLogError, ValueError, OSError) as e:
        console.print(f"[critical]ERROR: {escape(str(e))}[/critical]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command()
def events(
    log_file: LogFileArgument,
    timezone: TimezoneOption = None,
) -> None:
    """Print every parsed event as one JSON object per line."""
    configure_logging(False)

    try:
        config = ParserConfig(timezone=timezone)
        with log_file.open(encoding="utf-8", errors="replace") as f:
            for event in read_events(f, config):
                record = {"variant": event.variant.value, **event.model_dump(mode="json")}
                typer.echo(json.dumps(record))
    except (UnifiedLogError, ValueError, OSError) as e:
        console.print(f"[critical]ERROR: {escape(str(e))}[/critical]")
        sys.exit(1)


@app.command()
def version() -> None:
    """Display version."""
    console.print(f"ujl-analyze {__version__}")


if __name__ == "__main__":
    app()
