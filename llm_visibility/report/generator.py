"""
HTML report generation for LLM Visibility Tracker.

This module renders a project's stored analysis history into a
self-contained HTML monitoring report with inline CSS and no external assets.

Sections:
- Dashboard of overall brand scores with daily/weekly deltas
- Topic cards for the primary brand
- Score timeline per brand across the stored runs
- Per-query detail table of the latest run

Templates are rendered with autoescaping on, so brand names, queries and
LLM answers are always escaped.

Example:
    >>> with RecordStore(db_path) as store:
    ...     path = write_report(store, "acme-shoes", "./output")
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from llm_visibility.report.views import (
    build_dashboard,
    build_detail_rows,
    build_monitoring_series,
    build_topic_cards,
)
from llm_visibility.storage.store import AnalysisRecord, Project, RecordStore, Topic
from llm_visibility.utils.time import format_timestamp, utc_now

logger = logging.getLogger(__name__)

REPORT_FILENAME_TEMPLATE = "{project_id}-report.html"


def generate_report(
    project: Project,
    topics: Sequence[Topic],
    records: Sequence[AnalysisRecord],
    now: datetime | None = None,
    comparison_records: Sequence[AnalysisRecord] | None = None,
) -> str:
    """
    Render the HTML monitoring report for one project.

    Args:
        project: Project being reported
        topics: The project's topics, in display order
        records: Analysis history of the project, any order
        now: Comparison anchor; defaults to the newest record's timestamp
        comparison_records: Runs used for the day and week deltas; defaults
            to ``records``

    Returns:
        The rendered HTML document

    Raises:
        ValueError: If the template cannot be loaded or rendered
    """
    logger.info(f"Generating HTML report for project: {project.id}")

    template_dir = Path(__file__).parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    env.filters["signed"] = _format_signed

    try:
        template = env.get_template("report.html.j2")
    except Exception as e:
        logger.error(f"Failed to load template: {e}", exc_info=True)
        raise ValueError(f"Cannot load report template: {e}") from e

    latest = max(records, key=lambda r: r.timestamp) if records else None
    if comparison_records is None:
        comparison_records = records

    template_data = {
        "generated_at": format_timestamp(utc_now()),
        "dashboard": build_dashboard(project, comparison_records, now=now),
        "topic_cards": build_topic_cards(
            project, topics, comparison_records, now=now
        ),
        "series": build_monitoring_series(project, records),
        "details": build_detail_rows(latest, project.brands) if latest else [],
    }

    try:
        html = template.render(**template_data)
        logger.info("Rendered HTML report")
        return html
    except Exception as e:
        logger.error(f"Failed to render template: {e}", exc_info=True)
        raise ValueError(f"Cannot render report template: {e}") from e


def write_report(
    store: RecordStore,
    project_id: str,
    output_dir: str | Path,
    limit: int | None = None,
    now: datetime | None = None,
) -> Path:
    """
    Generate a project's report and write it to ``output_dir``.

    Returns:
        Path of the written HTML file

    Raises:
        ProjectNotFoundError: If the project does not exist
        ValueError: If report generation fails
        OSError: If the report cannot be written to disk
    """
    project = store.get_project(project_id)
    topics = store.list_topics(project_id)
    records = store.get_analysis_history(project_id, limit=limit)
    comparison_records = store.get_comparison_history(project_id)

    html = generate_report(
        project, topics, records, now=now, comparison_records=comparison_records
    )

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    report_path = output_path / REPORT_FILENAME_TEMPLATE.format(project_id=project.id)
    report_path.write_text(html, encoding="utf-8")

    logger.info(f"HTML report written to: {report_path}")
    return report_path


def _format_signed(value: float | None) -> str:
    """Delta formatting for the template: +5.0, -2.5, 0.0 or an en dash."""
    if value is None:
        return "–"
    if value > 0:
        return f"+{value:.1f}"
    return f"{value:.1f}"
