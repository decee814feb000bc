"""
Terminal output for the llm-visibility commands.

Every printer checks the module-level output_mode, set once per command from
the --format and --quiet flags:

    text          Rich tables, panels, spinners and a progress bar
    text + quiet  one tab-separated line per row, nothing decorative
    json          nothing printed while the command runs; values collected
                  with add_json() are written to stdout as a single JSON
                  document by flush_json()

Errors always reach the user: on stderr in text mode, in the JSON document
otherwise.

    >>> output_mode.format = "json"
    >>> success("Project created: acme-shoes")
    >>> output_mode.flush_json()
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table


class OutputMode:
    """
    How the current command presents its output.

    Attributes:
        format: "text" for people, "json" for scripts and agents
        quiet: Tab-separated rows only (text mode)
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        """
        Raises:
            ValueError: If format_type is not "text" or "json"
        """
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        return self.format == "text"

    def is_agent(self) -> bool:
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Set a top-level key of the JSON document; later calls overwrite."""
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Write the collected document to stdout and start a new one.

        Does nothing in text mode or when nothing was collected.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


output_mode = OutputMode()

console = Console()
console_err = Console(stderr=True)


@contextmanager
def spinner(message: str):
    """
    Show a spinner with a message while the block runs (text mode only).
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def create_progress_bar() -> Progress | NoOpProgress:
    """
    Progress bar over the queries of an analysis run.

    Quiet and JSON modes get a NoOpProgress with the same methods.
    """
    if output_mode.is_human() and not output_mode.quiet:
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
    return NoOpProgress()


class NoOpProgress:
    """Stand-in for rich.progress.Progress that draws nothing."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass

    def add_task(self, _description: str, total: int | None = None) -> int:
        return 0

    def advance(self, _task_id: int, _advance: float = 1.0) -> None:
        pass


def success(message: str) -> None:
    """
    Report a completed step.

    In JSON mode the last message is kept under "message" with status "success".
    """
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Report a failure: stderr in text mode (quiet included), "error" in JSON.
    """
    if output_mode.is_human():
        console_err.print(f"[red]✗[/red] {message}", style="red")
    elif output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)


def warning(message: str) -> None:
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        output_mode.add_json("warning", message)


def info(message: str) -> None:
    """Informational line; text mode only."""
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def _format_delta(value: float | None) -> str:
    if value is None:
        return "[dim]–[/dim]"
    if value > 0:
        return f"[green]+{value:.1f}[/green]"
    if value < 0:
        return f"[red]{value:.1f}[/red]"
    return f"{value:.1f}"


def print_projects_table(projects: list[dict]) -> None:
    """
    Print the list of projects.

    Expected dict keys: id, name, brand, competitors, language
    """
    if output_mode.is_agent():
        output_mode.add_json("projects", projects)
        return

    if output_mode.quiet:
        for project in projects:
            print(f"{project['id']}\t{project['name']}\t{project['brand']}")
        return

    if not projects:
        info("No projects yet. Create one with 'llm-visibility project create'.")
        return

    table = Table(title="Projects", box=box.ROUNDED)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Brand", style="magenta")
    table.add_column("Competitors")
    table.add_column("Language", justify="center")

    for project in projects:
        table.add_row(
            project["id"],
            project["name"],
            project["brand"],
            ", ".join(project.get("competitors", [])),
            project.get("language", "en"),
        )

    console.print(table)


def print_topics_table(topics: list[dict], show_queries: bool = False) -> None:
    """
    Print the topics of a project.

    Expected dict keys: name, slug, queries
    """
    if output_mode.is_agent():
        output_mode.add_json("topics", topics)
        return

    if output_mode.quiet:
        for topic in topics:
            print(f"{topic['slug']}\t{topic['name']}\t{len(topic['queries'])}")
        return

    if not topics:
        info("No topics yet. Add one with 'llm-visibility topic add'.")
        return

    table = Table(title="Topics", box=box.ROUNDED)
    table.add_column("Topic", style="cyan", no_wrap=True)
    table.add_column("Slug", style="dim")
    table.add_column("Queries", justify="right")
    if show_queries:
        table.add_column("Query list")

    for topic in topics:
        row = [topic["name"], topic["slug"], str(len(topic["queries"]))]
        if show_queries:
            row.append("\n".join(topic["queries"]))
        table.add_row(*row)

    console.print(table)


def print_dashboard(dashboard: dict, topic_cards: list[dict]) -> None:
    """
    Print the visibility dashboard of a project.

    Args:
        dashboard: Output of report.views.build_dashboard
        topic_cards: Output of report.views.build_topic_cards
    """
    if output_mode.is_agent():
        output_mode.add_json("dashboard", dashboard)
        output_mode.add_json("topics", topic_cards)
        return

    comparison = dashboard.get("comparison") or {}

    if output_mode.quiet:
        for row in dashboard["brands"]:
            print(f"{row['brand']}\t{row['score']:.1f}\t{row['mentions']}")
        return

    project = dashboard["project"]
    if dashboard.get("latest") is None:
        warning(f"No analysis results for project '{project['id']}' yet")
        return

    table = Table(
        title=f"{project['name']} – visibility ({dashboard['latest']['timestamp']})",
        box=box.ROUNDED,
    )
    table.add_column("Brand", style="cyan", no_wrap=True)
    table.add_column("Score", justify="right")
    table.add_column("Mentions", justify="right")

    for row in dashboard["brands"]:
        name = f"[bold]{row['brand']}[/bold]" if row["is_primary"] else row["brand"]
        table.add_row(name, f"{row['score']:.1f}%", str(row["mentions"]))

    console.print(table)
    console.print(
        f"[bold]{project['brand']}[/bold] daily {_format_delta(comparison.get('daily'))}"
        f"  weekly {_format_delta(comparison.get('weekly'))}"
    )

    if topic_cards:
        topic_table = Table(title="Topics", box=box.ROUNDED)
        topic_table.add_column("Topic", style="cyan")
        topic_table.add_column("Score", justify="right")
        topic_table.add_column("Daily", justify="right")
        topic_table.add_column("Weekly", justify="right")
        for card in topic_cards:
            card_comparison = card.get("comparison") or {}
            topic_table.add_row(
                card["topic"],
                f"{card['score']:.1f}%",
                _format_delta(card_comparison.get("daily")),
                _format_delta(card_comparison.get("weekly")),
            )
        console.print(topic_table)


def print_history_table(project_brand: str, rows: list[dict]) -> None:
    """
    Print the analysis history of a project, newest first.

    Expected dict keys: analysis_id, timestamp, status, score
    """
    if output_mode.is_agent():
        output_mode.add_json("history", rows)
        return

    if output_mode.quiet:
        for row in rows:
            print(f"{row['analysis_id']}\t{row['timestamp']}\t{row['score']:.1f}")
        return

    if not rows:
        info("No analysis results yet.")
        return

    table = Table(title=f"History – {project_brand}", box=box.ROUNDED)
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("Analysis ID", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Score", justify="right")

    for row in rows:
        status = row.get("status", "complete")
        status_str = (
            "[green]complete[/green]" if status == "complete" else f"[yellow]{status}[/yellow]"
        )
        table.add_row(
            row["timestamp"], row["analysis_id"], status_str, f"{row['score']:.1f}%"
        )

    console.print(table)


def print_error_table(errors: list[dict]) -> None:
    """
    Print the queries that failed during an analysis run.

    Expected dict keys: topic, query, error
    """
    if output_mode.is_agent():
        output_mode.add_json("errors", errors)
        return

    if output_mode.quiet or not errors:
        return

    table = Table(title="Failed Queries", box=box.ROUNDED)
    table.add_column("Topic", style="cyan", no_wrap=True)
    table.add_column("Query")
    table.add_column("Error", style="red")

    for item in errors:
        table.add_row(item["topic"], item["query"], item["error"])

    console.print(table)


def print_banner(version: str) -> None:
    """Print the startup banner in human mode."""
    if not output_mode.is_human() or output_mode.quiet:
        return

    banner = f"""
[bold cyan]╔{"═" * 39}╗
║   LLM Visibility Tracker v{version:<11} ║
║   Track brand positions in LLM answers║
╚{"═" * 39}╝[/bold cyan]
"""

    console.print(banner)


def print_final_summary(summary: dict) -> None:
    """
    Print final summary of an analysis run.

    Human mode: Rich panel with colored border (green if all succeeded)
    Agent mode: Flush all buffered JSON including the summary
    Quiet mode: Tab-separated values

    Args:
        summary: Dictionary returned by llm_runner.runner.run_analysis
    """
    successful = summary["success_count"]
    total = summary["total_queries"]

    if output_mode.is_agent():
        for key, value in summary.items():
            output_mode.add_json(key, value)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        # analysis_id, status, successful, total
        print(f"{summary['analysis_id'] or '-'}\t{summary['status']}\t{successful}\t{total}")
        return

    success_rate = (successful / total * 100) if total > 0 else 0.0

    summary_text = f"""
[bold]Analysis ID:[/bold] {summary["analysis_id"] or "not stored"}
[bold]Project:[/bold] {summary["project_id"]}
[bold]Timestamp:[/bold] {summary["timestamp"]}
[bold]Queries:[/bold] {successful}/{total} successful ({success_rate:.1f}%)
"""
    if summary.get("skipped_count"):
        summary_text += f"[bold]Skipped:[/bold] {summary['skipped_count']} (cancelled)\n"

    if successful == total:
        border_style = "green"
        title = "[bold green]✓ Analysis Completed Successfully[/bold green]"
    elif successful > 0:
        border_style = "yellow"
        title = "[bold yellow]⚠ Analysis Completed with Partial Failures[/bold yellow]"
    else:
        border_style = "red"
        title = "[bold red]✗ Analysis Failed[/bold red]"

    panel = Panel(
        summary_text.strip(),
        title=title,
        border_style=border_style,
        box=box.ROUNDED,
    )

    console.print(panel)


def print_batch_summary(rows: list[dict]) -> None:
    """
    Print the outcome of analyze --all, one row per project.

    Expected dict keys: project_id, status, analysis_id, success_count,
    total_queries, error
    """
    failed = sum(1 for row in rows if row["status"] != "complete")

    if output_mode.is_agent():
        output_mode.add_json("projects", rows)
        output_mode.add_json("failed_count", failed)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        for row in rows:
            print(
                f"{row['project_id']}\t{row['status']}\t"
                f"{row['success_count']}\t{row['total_queries']}"
            )
        return

    table = Table(title="All Projects", box=box.ROUNDED)
    table.add_column("Project", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Queries", justify="right")
    table.add_column("Error", style="red")

    styles = {"complete": "green", "partial": "yellow", "failed": "red"}
    for row in rows:
        style = styles.get(row["status"], "white")
        table.add_row(
            row["project_id"],
            f"[{style}]{row['status']}[/{style}]",
            f"{row['success_count']}/{row['total_queries']}",
            row["error"] or "",
        )

    console.print(table)
    if failed:
        console.print(f"[yellow]⚠ {failed} of {len(rows)} projects did not complete[/yellow]")
    elif rows:
        console.print(f"[green]✓ All {len(rows)} projects analyzed[/green]")
